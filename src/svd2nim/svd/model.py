from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from svd2nim.utils.idents import strip_placeholder

DEFAULT_REGISTER_SIZE = 32

# Path of raw SVD names from the peripheral down to a cluster or register.
NodePath = tuple[str, ...]


class SvdAccess(enum.Enum):
    READ_ONLY = "read-only"
    WRITE_ONLY = "write-only"
    READ_WRITE = "read-write"
    WRITE_ONCE = "writeOnce"
    READ_WRITE_ONCE = "read-writeOnce"

    @property
    def readable(self) -> bool:
        return self in (SvdAccess.READ_ONLY, SvdAccess.READ_WRITE, SvdAccess.READ_WRITE_ONCE)

    @property
    def writable(self) -> bool:
        return self in (
            SvdAccess.WRITE_ONLY,
            SvdAccess.WRITE_ONCE,
            SvdAccess.READ_WRITE,
            SvdAccess.READ_WRITE_ONCE,
        )


DEFAULT_ACCESS = SvdAccess.READ_WRITE


@dataclass(frozen=True)
class SvdRegisterProperties:
    size: Optional[int] = None  # bits
    access: Optional[SvdAccess] = None

    def inherit(self, parent: SvdRegisterProperties) -> SvdRegisterProperties:
        return SvdRegisterProperties(
            size=self.size if self.size is not None else parent.size,
            access=self.access if self.access is not None else parent.access,
        )


@dataclass(frozen=True)
class SvdDimGroup:
    dim: Optional[int] = None
    dim_increment: Optional[int] = None
    dim_index: Optional[str] = None
    dim_name: Optional[str] = None


@dataclass(frozen=True)
class SvdEnumeratedValues:
    values: tuple[tuple[str, int], ...] = ()
    name: Optional[str] = None
    header_enum_name: Optional[str] = None
    derived_from: Optional[str] = None


@dataclass(frozen=True)
class SvdField:
    name: str
    lsb: int
    msb: int
    description: Optional[str] = None
    enum_values: Optional[SvdEnumeratedValues] = None
    dim_group: Optional[SvdDimGroup] = None
    derived_from: Optional[str] = None

    @property
    def bit_width(self) -> int:
        return self.msb - self.lsb + 1


@dataclass(frozen=True)
class SvdRegister:
    name: str
    offset: int
    properties: SvdRegisterProperties = field(default_factory=SvdRegisterProperties)
    fields: tuple[SvdField, ...] = ()
    dim_group: Optional[SvdDimGroup] = None
    description: Optional[str] = None
    reset_value: Optional[int] = None
    derived_from: Optional[str] = None

    @property
    def base_name(self) -> str:
        return strip_placeholder(self.name)

    @property
    def is_dim_array(self) -> bool:
        return self.dim_group is not None and self.dim_group.dim is not None

    @property
    def size(self) -> int:
        if self.properties.size is None:
            return DEFAULT_REGISTER_SIZE
        return self.properties.size

    @property
    def access(self) -> SvdAccess:
        return self.properties.access or DEFAULT_ACCESS


@dataclass(frozen=True)
class SvdCluster:
    name: str
    offset: int
    registers: tuple[SvdRegister, ...] = ()
    clusters: tuple[SvdCluster, ...] = ()
    header_struct_name: Optional[str] = None
    dim_group: Optional[SvdDimGroup] = None
    properties: SvdRegisterProperties = field(default_factory=SvdRegisterProperties)
    description: Optional[str] = None
    derived_from: Optional[str] = None

    @property
    def base_name(self) -> str:
        return strip_placeholder(self.name)

    @property
    def is_dim_array(self) -> bool:
        return self.dim_group is not None and self.dim_group.dim is not None


@dataclass(frozen=True)
class SvdInterrupt:
    name: str
    value: int
    description: Optional[str] = None


@dataclass(frozen=True)
class SvdPeripheral:
    name: str
    base_address: int
    registers: tuple[SvdRegister, ...] = ()
    clusters: tuple[SvdCluster, ...] = ()
    interrupts: tuple[SvdInterrupt, ...] = ()
    header_struct_name: Optional[str] = None
    prepend_to_name: Optional[str] = None
    append_to_name: Optional[str] = None
    dim_group: Optional[SvdDimGroup] = None
    properties: SvdRegisterProperties = field(default_factory=SvdRegisterProperties)
    description: Optional[str] = None
    group_name: Optional[str] = None
    size: Optional[int] = None  # bytes, from addressBlock
    derived_from: Optional[str] = None

    @property
    def base_name(self) -> str:
        return strip_placeholder(self.name)

    @property
    def is_dim_array(self) -> bool:
        return self.dim_group is not None and self.dim_group.dim is not None


@dataclass(frozen=True)
class SvdCpu:
    name: str
    revision: str = ""
    endian: str = "little"
    mpu_present: bool = False
    fpu_present: bool = False
    vtor_present: bool = False
    nvic_prio_bits: int = 0
    vendor_systick_config: bool = False


@dataclass(frozen=True)
class SvdDevice:
    name: str
    peripherals: tuple[SvdPeripheral, ...] = ()
    cpu: Optional[SvdCpu] = None
    vendor: Optional[str] = None
    description: Optional[str] = None
    properties: SvdRegisterProperties = field(default_factory=SvdRegisterProperties)


SvdMember = Union[SvdRegister, SvdCluster]
SvdContainer = Union[SvdPeripheral, SvdCluster]


def sorted_members(container: SvdContainer) -> list[SvdMember]:
    """Registers and clusters of ``container`` by ascending offset.

    The sort is stable, so members sharing an offset keep declaration order
    with registers ahead of clusters.
    """
    members: list[SvdMember] = [*container.registers, *container.clusters]
    return sorted(members, key=lambda m: m.offset)


def iter_registers(p: SvdPeripheral) -> Iterator[tuple[NodePath, SvdRegister]]:
    """Every register below ``p`` with its node path, depth first."""

    def walk(container: SvdContainer, path: NodePath) -> Iterator[tuple[NodePath, SvdRegister]]:
        for reg in container.registers:
            yield path + (reg.name,), reg
        for cls in container.clusters:
            yield from walk(cls, path + (cls.name,))

    yield from walk(p, (p.name,))
