from __future__ import annotations

from typing import Callable, Generic, Iterable, TextIO, TypeVar

from svd2nim.codegen.accessors import create_accessors
from svd2nim.codegen.bitfields import create_bitfield_structs, create_peripheral_enums
from svd2nim.codegen.names import TypeNames, resolve_type_names
from svd2nim.codegen.options import CodeGenOptions
from svd2nim.codegen.render import (
    render_banner,
    render_enum,
    render_exception_numbers,
    render_interrupts,
    render_peripheral,
    render_preamble,
    render_proc,
    render_type,
)
from svd2nim.codegen.typedefs import TypeDef, create_peripheral_types
from svd2nim.errors import DuplicateArtifactError
from svd2nim.svd.checks import validate_device
from svd2nim.svd.model import SvdDevice
from svd2nim.utils.logger import get_logger

log = get_logger(__name__)

T = TypeVar("T")


class DedupTable(Generic[T]):
    """First definition of a name wins; later ones are dropped.

    Later definitions are still compared with the first. A mismatch means
    two different things were generated under one name: it is logged, or
    raised as DuplicateArtifactError in strict mode.
    """

    def __init__(self, kind: str, strict: bool = False):
        self.kind = kind
        self.strict = strict
        self._items: dict[str, T] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, key: str, item: T) -> bool:
        """Record ``item`` under ``key``; True if it is the first definition."""
        prev = self._items.get(key)
        if prev is None:
            self._items[key] = item
            return True
        if prev != item:
            msg = f"{self.kind} {key} is generated twice with different content, keeping the first"
            if self.strict:
                raise DuplicateArtifactError(msg)
            log.warning("%s", msg)
        else:
            log.debug("%s %s already emitted", self.kind, key)
        return False

    def values(self) -> list[T]:
        return list(self._items.values())


def create_type_defs(d: SvdDevice, names: TypeNames, opts: CodeGenOptions) -> list[TypeDef]:
    """Object types of all peripherals, each name once, dependencies first."""
    table: DedupTable[TypeDef] = DedupTable("type", strict=opts.strict_dedup)
    for p in d.peripherals:
        for td in create_peripheral_types(p, names, opts):
            table.add(td.name, td)
    return table.values()


def _emit(table: DedupTable[T], items: Iterable[tuple[str, T]], render: Callable[[T, TextIO], None], out: TextIO) -> None:
    for key, item in items:
        if table.add(key, item):
            render(item, out)


def render_device(d: SvdDevice, out: TextIO, opts: CodeGenOptions = CodeGenOptions()) -> None:
    """Write the complete Nim module for ``d`` to ``out``."""
    validate_device(d)
    names = resolve_type_names(d)

    render_preamble(d, out)
    render_exception_numbers(d.cpu, out)
    render_interrupts(d, out)

    render_banner("# Type definitions for peripheral registers", out)
    type_defs = create_type_defs(d, names, opts)
    for td in type_defs:
        render_type(td, out)
        out.write("\n")

    render_banner("# Peripheral object instances", out)
    for p in d.peripherals:
        render_peripheral(p, names, opts, out)

    render_banner("# Accessors for peripheral registers", out)
    # Peripherals derived from one another, or expanded from one dim list,
    # produce the same artifacts under the same names.
    strict = opts.strict_dedup
    field_structs: DedupTable = DedupTable("field struct", strict=strict)
    field_enums: DedupTable = DedupTable("enum", strict=strict)
    accessors: DedupTable = DedupTable("accessor", strict=strict)

    def render_struct(td: TypeDef, o: TextIO) -> None:
        render_type(td, o)
        o.write("\n")

    for p in d.peripherals:
        _emit(field_structs, ((td.name, td) for td in create_bitfield_structs(p, names)), render_struct, out)
        _emit(field_enums, ((en.name, en) for en in create_peripheral_enums(p, names)), render_enum, out)
        _emit(accessors, create_accessors(p, names), render_proc, out)

    log.info(
        "Generated %d types, %d field structs, %d enums, %d accessors",
        len(type_defs),
        len(field_structs),
        len(field_enums),
        len(accessors),
    )
