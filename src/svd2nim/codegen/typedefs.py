from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from svd2nim.codegen.names import TypeNames
from svd2nim.codegen.options import CodeGenOptions
from svd2nim.svd.checks import dim_layout
from svd2nim.svd.model import (
    NodePath,
    SvdCluster,
    SvdContainer,
    SvdMember,
    SvdPeripheral,
    SvdRegister,
    sorted_members,
)
from svd2nim.utils.idents import sanitize_ident, strip_placeholder


@dataclass(frozen=True)
class TypeDefField:
    name: str
    type_name: str
    public: bool = True
    bitsize: Optional[int] = None


@dataclass(frozen=True)
class TypeDef:
    """A Nim ``object`` type definition."""

    name: str
    fields: tuple[TypeDefField, ...] = ()
    public: bool = False


@dataclass(frozen=True)
class MemberNaming:
    """Decoration applied to register member names of one peripheral."""

    prefix: str = ""
    suffix: str = ""

    @classmethod
    def for_peripheral(cls, p: SvdPeripheral, opts: CodeGenOptions) -> MemberNaming:
        return cls(
            prefix=(p.prepend_to_name or "") if not opts.ignore_prepend else "",
            suffix=(p.append_to_name or "") if not opts.ignore_append else "",
        )

    def field_name(self, member: SvdMember) -> str:
        if isinstance(member, SvdRegister):
            name = self.prefix + strip_placeholder(member.name) + self.suffix
        elif isinstance(member, SvdCluster):
            name = strip_placeholder(member.name)
        else:
            raise TypeError(f"unexpected member kind {type(member).__name__}")
        return sanitize_ident(name)


def member_type_name(member: SvdMember, type_name: str) -> str:
    if member.is_dim_array:
        count, _ = dim_layout(member.dim_group, member.name)
        return f"array[{count}, {type_name}]"
    return type_name


def _container_fields(
    c: SvdContainer,
    path: NodePath,
    names: TypeNames,
    naming: MemberNaming,
) -> tuple[TypeDefField, ...]:
    return tuple(
        TypeDefField(
            name=naming.field_name(m),
            type_name=member_type_name(m, names[path + (m.name,)]),
        )
        for m in sorted_members(c)
    )


def create_register_type(type_name: str) -> TypeDef:
    # a register instance only knows where it lives
    return TypeDef(
        name=type_name,
        fields=(TypeDefField(name="loc", type_name="uint", public=False),),
    )


def create_peripheral_types(p: SvdPeripheral, names: TypeNames, opts: CodeGenOptions) -> list[TypeDef]:
    """Object types for ``p`` and everything nested in it, leaves first."""
    naming = MemberNaming.for_peripheral(p, opts)
    path: NodePath = (p.name,)

    result = [TypeDef(name=names[path], fields=_container_fields(p, path, names, naming))]
    for reg in p.registers:
        result.append(create_register_type(names[path + (reg.name,)]))

    # Depth-first walk yields containers before their contents; reversing
    # at the end puts every type after the types it embeds.
    stack: list[tuple[NodePath, SvdCluster]] = [(path + (c.name,), c) for c in p.clusters]
    while stack:
        cpath, cls = stack.pop()
        result.append(TypeDef(name=names[cpath], fields=_container_fields(cls, cpath, names, naming)))
        for reg in cls.registers:
            result.append(create_register_type(names[cpath + (reg.name,)]))
        for child in cls.clusters:
            stack.append((cpath + (child.name,), child))

    result.reverse()
    return result
