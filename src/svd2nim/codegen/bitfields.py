from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from svd2nim.codegen.names import TypeNames, append_type_name
from svd2nim.codegen.typedefs import TypeDef, TypeDefField
from svd2nim.svd.model import SvdField, SvdPeripheral, SvdRegister, iter_registers
from svd2nim.utils.bits import bit_width, max_value
from svd2nim.utils.idents import sanitize_ident

RESERVED_NAME = "RESERVED"


@dataclass(frozen=True)
class PackedField:
    name: str
    lsb: int
    msb: int
    filler: bool = False

    @property
    def bit_width(self) -> int:
        return bit_width(self.lsb, self.msb)


@dataclass(frozen=True)
class EnumDef:
    """A Nim ``{.pure.}`` enum extracted from a field's enumerated values."""

    name: str
    fields: tuple[tuple[str, int], ...] = ()
    public: bool = True


def has_fields(r: SvdRegister) -> bool:
    # A single field covering the whole register is the same as no field.
    if not r.fields:
        return False
    return not (len(r.fields) == 1 and r.fields[0].bit_width == r.size)


def _filler_names(taken: set[str]) -> Iterable[str]:
    k = 0
    while True:
        name = RESERVED_NAME if k == 0 else f"{RESERVED_NAME}{k}"
        k += 1
        if name not in taken:
            yield name


def pad_fields(fields: Iterable[SvdField], reg_size: int) -> list[PackedField]:
    """Sort fields by lsb and fill every uncovered bit range with a filler."""
    ordered = sorted(fields, key=lambda f: f.lsb)
    fillers = iter(_filler_names({f.name for f in ordered}))

    result: list[PackedField] = []
    prev_msb = -1
    for f in ordered:
        if f.lsb > prev_msb + 1:
            result.append(PackedField(next(fillers), prev_msb + 1, f.lsb - 1, filler=True))
        result.append(PackedField(f.name, f.lsb, f.msb))
        prev_msb = f.msb

    if prev_msb < reg_size - 1:
        # pad end of register
        result.append(PackedField(next(fillers), prev_msb + 1, reg_size - 1, filler=True))
    return result


def field_value_type(width: int) -> str:
    if width == 1:
        return "bool"
    return f"0'u .. {max_value(width)}'u"


def field_struct_name(reg_type_name: str) -> str:
    return append_type_name(reg_type_name, "Fields")


def create_field_struct(r: SvdRegister, type_name: str) -> TypeDef:
    return TypeDef(
        name=field_struct_name(type_name),
        public=True,
        fields=tuple(
            TypeDefField(
                name=f.name,
                type_name=field_value_type(f.bit_width),
                public=not f.filler,
                bitsize=f.bit_width,
            )
            for f in pad_fields(r.fields, r.size)
        ),
    )


def create_field_enums(r: SvdRegister, type_name: str) -> list[EnumDef]:
    result: list[EnumDef] = []
    for f in r.fields:
        if f.enum_values is None:
            continue
        ev = f.enum_values
        name = ev.header_enum_name or append_type_name(type_name, f.name)
        result.append(
            EnumDef(
                name=sanitize_ident(name),
                # Nim enums need ascending ordinals
                fields=tuple(sorted(((sanitize_ident(k), v) for k, v in ev.values), key=lambda kv: kv[1])),
            )
        )
    return result


def create_bitfield_structs(p: SvdPeripheral, names: TypeNames) -> list[TypeDef]:
    return [create_field_struct(reg, names[path]) for path, reg in iter_registers(p) if has_fields(reg)]


def create_peripheral_enums(p: SvdPeripheral, names: TypeNames) -> list[EnumDef]:
    result: list[EnumDef] = []
    for path, reg in iter_registers(p):
        result.extend(create_field_enums(reg, names[path]))
    return result
