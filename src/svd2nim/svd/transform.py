from __future__ import annotations

import re
from dataclasses import replace
from typing import Optional

from svd2nim.errors import SvdModelError
from svd2nim.svd.checks import dim_layout
from svd2nim.svd.model import (
    SvdCluster,
    SvdContainer,
    SvdDevice,
    SvdDimGroup,
    SvdMember,
    SvdPeripheral,
    SvdRegister,
    SvdRegisterProperties,
)
from svd2nim.utils.logger import get_logger

log = get_logger(__name__)

MAX_DERIVE_DEPTH = 8

_RE_NUM_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_RE_CHAR_RANGE = re.compile(r"^\s*([A-Za-z])\s*-\s*([A-Za-z])\s*$")


# ---------------------------------------------------------------------------
# derivedFrom
# ---------------------------------------------------------------------------


def _struct_name(p: SvdPeripheral) -> str:
    if p.dim_group is not None and p.dim_group.dim_name:
        return p.dim_group.dim_name
    return p.header_struct_name or p.base_name


def _merge_peripheral(p: SvdPeripheral, base: SvdPeripheral) -> SvdPeripheral:
    own_layout = bool(p.registers or p.clusters)
    header = p.header_struct_name
    if header is None and not own_layout:
        # same layout as the base: share its generated types
        header = _struct_name(base)

    return replace(
        p,
        registers=p.registers if own_layout else base.registers,
        clusters=p.clusters if own_layout else base.clusters,
        header_struct_name=header,
        prepend_to_name=p.prepend_to_name if p.prepend_to_name is not None else base.prepend_to_name,
        append_to_name=p.append_to_name if p.append_to_name is not None else base.append_to_name,
        properties=p.properties.inherit(base.properties),
        description=p.description or base.description,
        group_name=p.group_name or base.group_name,
        size=p.size if p.size is not None else base.size,
        derived_from=None,
    )


def _merge_member(m: SvdMember, base: SvdMember) -> SvdMember:
    if isinstance(m, SvdRegister):
        if not isinstance(base, SvdRegister):
            raise SvdModelError(f"register {m.name} is derived from non-register {base.name}")
        return replace(
            m,
            properties=m.properties.inherit(base.properties),
            fields=m.fields or base.fields,
            description=m.description or base.description,
            reset_value=m.reset_value if m.reset_value is not None else base.reset_value,
            derived_from=None,
        )
    elif isinstance(m, SvdCluster):
        if not isinstance(base, SvdCluster):
            raise SvdModelError(f"cluster {m.name} is derived from non-cluster {base.name}")
        own_layout = bool(m.registers or m.clusters)
        return replace(
            m,
            registers=m.registers if own_layout else base.registers,
            clusters=m.clusters if own_layout else base.clusters,
            header_struct_name=m.header_struct_name or base.header_struct_name,
            properties=m.properties.inherit(base.properties),
            description=m.description or base.description,
            derived_from=None,
        )
    raise TypeError(f"unexpected member kind {type(m).__name__}")


def _find_child(container: SvdContainer, name: str) -> Optional[SvdMember]:
    for m in (*container.registers, *container.clusters):
        if m.name == name:
            return m
    return None


class _Deriver:
    def __init__(self, peripherals: dict[str, SvdPeripheral]):
        self.peripherals = peripherals

    def lookup(self, ref: str, container: SvdContainer) -> tuple[SvdMember, SvdContainer]:
        """Resolve ``ref`` as a sibling name or as a dotted absolute path."""
        if "." not in ref:
            found = _find_child(container, ref)
            if found is None:
                raise SvdModelError(f"derivedFrom target not found: {ref}")
            return found, container

        head, *rest = ref.split(".")
        node: Optional[SvdContainer] = self.peripherals.get(head)
        if node is None:
            raise SvdModelError(f"derivedFrom target not found: {ref}")
        parent: SvdContainer = node
        member: Optional[SvdMember] = None
        for part in rest:
            if not isinstance(node, (SvdPeripheral, SvdCluster)):
                raise SvdModelError(f"derivedFrom target not found: {ref}")
            member = _find_child(node, part)
            if member is None:
                raise SvdModelError(f"derivedFrom target not found: {ref}")
            parent = node
            node = member if isinstance(member, SvdCluster) else None
        if member is None:
            raise SvdModelError(f"derivedFrom target is a peripheral, expected register or cluster: {ref}")
        return member, parent

    def member(self, m: SvdMember, container: SvdContainer, depth: int = 0) -> SvdMember:
        if m.derived_from is None:
            return m
        if depth > MAX_DERIVE_DEPTH:
            raise SvdModelError(f"derivedFrom chain too deep at {m.name}")
        base, base_container = self.lookup(m.derived_from, container)
        base = self.member(base, base_container, depth + 1)
        return _merge_member(m, base)

    def container(self, c: SvdContainer) -> SvdContainer:
        regs = tuple(self.member(r, c) for r in c.registers)
        clusters = []
        for cls in c.clusters:
            derived = self.member(cls, c)
            if not isinstance(derived, SvdCluster):
                raise SvdModelError(f"cluster {cls.name} derives from register {cls.derived_from}")
            clusters.append(self.container(derived))
        return replace(c, registers=regs, clusters=tuple(clusters))


def derive_all(device: SvdDevice) -> SvdDevice:
    """Flatten derivedFrom on peripherals, clusters and registers."""
    raw = {p.name: p for p in device.peripherals}
    resolved: dict[str, SvdPeripheral] = {}

    def resolve(name: str, depth: int = 0) -> SvdPeripheral:
        if name in resolved:
            return resolved[name]
        if depth > MAX_DERIVE_DEPTH:
            raise SvdModelError(f"derivedFrom chain too deep at {name}")

        entry = raw.get(name)
        if entry is None:
            raise SvdModelError(f"peripheral not found: {name}")

        periph = entry
        if entry.derived_from:
            periph = _merge_peripheral(entry, resolve(entry.derived_from, depth + 1))
        resolved[name] = periph
        return periph

    peripherals = [resolve(p.name) for p in device.peripherals]

    # member-level references may point into any (already flattened) peripheral
    deriver = _Deriver({p.name: p for p in peripherals})
    flattened = tuple(deriver.container(p) for p in peripherals)
    return replace(device, peripherals=flattened)


# ---------------------------------------------------------------------------
# dim lists
# ---------------------------------------------------------------------------


def dim_indices(dim: SvdDimGroup, what: str) -> list[str]:
    """The substitution strings for a dim list, one per instance."""
    count = dim.dim or 0
    if dim.dim_index is None:
        return [str(i) for i in range(count)]

    num = _RE_NUM_RANGE.match(dim.dim_index)
    char = _RE_CHAR_RANGE.match(dim.dim_index)
    if num:
        indices = [str(i) for i in range(int(num.group(1)), int(num.group(2)) + 1)]
    elif char:
        indices = [chr(c) for c in range(ord(char.group(1)), ord(char.group(2)) + 1)]
    else:
        indices = [s.strip() for s in dim.dim_index.split(",")]

    if len(indices) != count:
        raise SvdModelError(f"{what}: dimIndex {dim.dim_index!r} gives {len(indices)} names for dim={count}")
    return indices


def _is_dim_list(name: str, dim: Optional[SvdDimGroup]) -> bool:
    return dim is not None and "%s" in name and "[%s]" not in name


def _expand_registers(regs: tuple[SvdRegister, ...]) -> tuple[SvdRegister, ...]:
    out: list[SvdRegister] = []
    for r in regs:
        if not _is_dim_list(r.name, r.dim_group):
            out.append(r)
            continue
        _, inc = dim_layout(r.dim_group, f"register {r.name}")
        for i, idx in enumerate(dim_indices(r.dim_group, f"register {r.name}")):
            out.append(replace(r, name=r.name.replace("%s", idx), offset=r.offset + i * inc, dim_group=None))
    return tuple(out)


def _expand_clusters(clusters: tuple[SvdCluster, ...]) -> tuple[SvdCluster, ...]:
    out: list[SvdCluster] = []
    for c in clusters:
        c = replace(c, registers=_expand_registers(c.registers), clusters=_expand_clusters(c.clusters))
        if not _is_dim_list(c.name, c.dim_group):
            out.append(c)
            continue
        _, inc = dim_layout(c.dim_group, f"cluster {c.name}")
        header = c.header_struct_name or c.dim_group.dim_name
        for i, idx in enumerate(dim_indices(c.dim_group, f"cluster {c.name}")):
            out.append(
                replace(
                    c,
                    name=c.name.replace("%s", idx),
                    offset=c.offset + i * inc,
                    header_struct_name=header,
                    dim_group=None,
                )
            )
    return tuple(out)


def expand_all(device: SvdDevice) -> SvdDevice:
    """Expand ``%s`` dim lists into instances; ``[%s]`` arrays are kept."""
    peripherals: list[SvdPeripheral] = []
    for p in device.peripherals:
        p = replace(p, registers=_expand_registers(p.registers), clusters=_expand_clusters(p.clusters))
        if not _is_dim_list(p.name, p.dim_group):
            peripherals.append(p)
            continue
        _, inc = dim_layout(p.dim_group, f"peripheral {p.name}")
        header = _struct_name(p)
        indices = dim_indices(p.dim_group, f"peripheral {p.name}")
        log.debug("Expanding peripheral %s into %d instances", p.name, len(indices))
        for i, idx in enumerate(indices):
            peripherals.append(
                replace(
                    p,
                    name=p.name.replace("%s", idx),
                    base_address=p.base_address + i * inc,
                    header_struct_name=header,
                    dim_group=None,
                )
            )
    return replace(device, peripherals=tuple(peripherals))


# ---------------------------------------------------------------------------
# register properties
# ---------------------------------------------------------------------------


def _inherit_cluster(c: SvdCluster, parent: SvdRegisterProperties) -> SvdCluster:
    props = c.properties.inherit(parent)
    return replace(
        c,
        properties=props,
        registers=tuple(replace(r, properties=r.properties.inherit(props)) for r in c.registers),
        clusters=tuple(_inherit_cluster(cl, props) for cl in c.clusters),
    )


def inherit_properties(device: SvdDevice) -> SvdDevice:
    """Push size/access defaults from device, peripheral and cluster down to registers."""
    peripherals = []
    for p in device.peripherals:
        props = p.properties.inherit(device.properties)
        peripherals.append(
            replace(
                p,
                properties=props,
                registers=tuple(replace(r, properties=r.properties.inherit(props)) for r in p.registers),
                clusters=tuple(_inherit_cluster(c, props) for c in p.clusters),
            )
        )
    return replace(device, peripherals=tuple(peripherals))


def process_device(device: SvdDevice) -> SvdDevice:
    return inherit_properties(expand_all(derive_all(device)))
