from __future__ import annotations

from types import MappingProxyType
from typing import Hashable, Mapping, Optional

from svd2nim.svd.model import (
    NodePath,
    SvdCluster,
    SvdContainer,
    SvdDevice,
    SvdPeripheral,
    SvdRegister,
    sorted_members,
)
from svd2nim.utils.idents import sanitize_ident

TYPE_SUFFIX = "_Type"

TypeNames = Mapping[NodePath, str]


def strip_type_suffix(type_name: str) -> str:
    if type_name.endswith(TYPE_SUFFIX):
        return type_name[: -len(TYPE_SUFFIX)]
    return type_name


def append_type_name(parent_type_name: str, name: str) -> str:
    """``UART_Type`` + ``CR`` -> ``UART_CR``."""
    return f"{strip_type_suffix(parent_type_name)}_{name}"


class _NameRegistry:
    """Device-wide type name claims.

    Each claim carries an owner key. The same key always gets the same name
    back, which is how identical layouts end up sharing one type. A
    different key asking for a taken name gets a numbered variant.
    """

    def __init__(self) -> None:
        self._owner_of: dict[str, Hashable] = {}
        self._name_of: dict[Hashable, str] = {}

    def claim(self, base: str, key: Hashable) -> str:
        if key in self._name_of:
            return self._name_of[key]

        stem = sanitize_ident(base)
        name = stem + TYPE_SUFFIX
        n = 0
        while name in self._owner_of:
            n += 1
            name = f"{stem}_{n}{TYPE_SUFFIX}"

        self._owner_of[name] = key
        self._name_of[key] = name
        return name


def _dim_name(e: SvdPeripheral | SvdCluster | SvdRegister) -> Optional[str]:
    if e.dim_group is not None and e.dim_group.dim_name:
        return e.dim_group.dim_name
    return None


def _override(e: SvdPeripheral | SvdCluster | SvdRegister) -> Optional[str]:
    name = _dim_name(e)
    if name is None and not isinstance(e, SvdRegister):
        name = e.header_struct_name
    return name


def _member_type_name(e: SvdCluster | SvdRegister, parent_type_name: str, registry: _NameRegistry) -> str:
    override = _override(e)
    if override is not None:
        return registry.claim(override, ("struct", override))
    return registry.claim(append_type_name(parent_type_name, e.base_name), (parent_type_name, e.base_name))


def _peripheral_type_name(p: SvdPeripheral, registry: _NameRegistry) -> str:
    # keyed apart from cluster and register overrides; a derived peripheral
    # naming its base's struct still lands on the same type
    base = _override(p) or p.base_name
    return registry.claim(base, ("peripheral", base))


def _resolve_container(
    c: SvdContainer,
    path: NodePath,
    type_name: str,
    registry: _NameRegistry,
    out: dict[NodePath, str],
) -> None:
    for member in sorted_members(c):
        mpath = path + (member.name,)
        if isinstance(member, SvdRegister):
            out[mpath] = _member_type_name(member, type_name, registry)
        elif isinstance(member, SvdCluster):
            out[mpath] = _member_type_name(member, type_name, registry)
            _resolve_container(member, mpath, out[mpath], registry, out)
        else:
            raise TypeError(f"unexpected member kind {type(member).__name__}")


def resolve_type_names(device: SvdDevice) -> TypeNames:
    """Assign a Nim type name to every peripheral, cluster and register.

    Returns a read-only mapping from node path (raw SVD names starting at
    the peripheral) to type name. The device is not modified.

    Priority for each entity: dimName, then headerStructName (peripherals
    and clusters only), then the parent type name joined with the entity's
    own name. Everything ends in ``_Type``.
    """
    registry = _NameRegistry()
    out: dict[NodePath, str] = {}
    for p in device.peripherals:
        path = (p.name,)
        out[path] = _peripheral_type_name(p, registry)
        _resolve_container(p, path, out[path], registry, out)
    return MappingProxyType(out)
