from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from svd2nim.codegen.bitfields import field_struct_name, has_fields
from svd2nim.codegen.names import TypeNames
from svd2nim.svd.model import SvdPeripheral, SvdRegister, iter_registers

_MODIFY_BODY = """\
## Read-modify-write of the register. Not atomic: concurrent users of the
## same register (threads, interrupt handlers) must synchronize themselves.
block:
  var it {.inject.} = reg.read()
  op
  reg.write(it)"""


@dataclass(frozen=True)
class ProcDef:
    """A Nim routine (``proc``, ``template``, ...) definition."""

    keyword: str
    name: str
    args: tuple[tuple[str, str], ...]
    body: str
    ret_type: Optional[str] = None
    public: bool = True


def int_type_name(r: SvdRegister) -> str:
    return f"uint{r.size}"


def register_value_type(r: SvdRegister, type_name: str) -> str:
    """What ``read`` returns and ``write`` takes for this register."""
    if has_fields(r):
        return field_struct_name(type_name)
    return int_type_name(r)


def create_register_accessors(r: SvdRegister, type_name: str) -> dict[str, ProcDef]:
    intname = int_type_name(r)
    val_type = register_value_type(r, type_name)
    fields = has_fields(r)
    access = r.access
    result: dict[str, ProcDef] = {}

    if access.readable:
        load = f"volatileLoad(cast[ptr {intname}](reg.loc))"
        result[f"read[{type_name}]"] = ProcDef(
            keyword="template",
            name="read",
            args=(("reg", type_name),),
            ret_type=val_type,
            body=f"cast[{val_type}]({load})" if fields else load,
        )

    if access.writable:
        value = f"cast[{intname}](val)" if fields else "val"
        result[f"write[{type_name}]"] = ProcDef(
            keyword="template",
            name="write",
            args=(("reg", type_name), ("val", val_type)),
            body=f"volatileStore(cast[ptr {intname}](reg.loc), {value})",
        )

    if access.readable and access.writable:
        result[f"modifyIt[{type_name}]"] = ProcDef(
            keyword="template",
            name="modifyIt",
            args=(("reg", type_name), ("op", "untyped")),
            ret_type="untyped",
            body=_MODIFY_BODY,
        )

    return result


def create_accessors(p: SvdPeripheral, names: TypeNames) -> list[tuple[str, ProcDef]]:
    """Accessor templates of every register in ``p``, keyed by routine and register type."""
    result: list[tuple[str, ProcDef]] = []
    for path, reg in iter_registers(p):
        result.extend(create_register_accessors(reg, names[path]).items())
    return result
