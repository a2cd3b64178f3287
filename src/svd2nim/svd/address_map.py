from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from svd2nim.svd.checks import dim_layout
from svd2nim.svd.model import SvdCluster, SvdContainer, SvdDevice, SvdDimGroup, SvdRegister
from svd2nim.utils.idents import strip_placeholder


@dataclass(frozen=True)
class RegisterAddress:
    path: str  # e.g. "PORT.GROUP[1].DIR"
    address: int
    size: int  # bits
    register: SvdRegister


@dataclass(frozen=True)
class AddressMap:
    device_name: str
    registers: tuple[RegisterAddress, ...] = ()
    _by_path: Dict[str, RegisterAddress] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_path", {r.path: r for r in self.registers})

    def find_register(self, addr: int) -> Optional[RegisterAddress]:
        # registers are sorted by address; linear scan is fine for lookups
        for r in self.registers:
            if r.address <= addr < r.address + max(r.size // 8, 1):
                return r
        return None

    def find_by_path(self, path: str) -> Optional[RegisterAddress]:
        return self._by_path.get(path)

    def dump(self) -> str:
        """One ``PATH:0xADDR`` line per register instance."""
        return "\n".join(f"{r.path}:0x{r.address:08x}" for r in self.registers)


def _instances(name: str, offset: int, dim: Optional[SvdDimGroup], is_array: bool) -> Iterator[tuple[str, int]]:
    base = strip_placeholder(name)
    if not is_array:
        yield base, offset
        return
    count, inc = dim_layout(dim, name)
    for i in range(count):
        yield f"{base}[{i}]", offset + i * inc


def _walk(c: SvdContainer, prefix: str, base: int) -> Iterator[RegisterAddress]:
    for reg in c.registers:
        for name, offset in _instances(reg.name, reg.offset, reg.dim_group, reg.is_dim_array):
            yield RegisterAddress(path=f"{prefix}.{name}", address=base + offset, size=reg.size, register=reg)
    for cls in c.clusters:
        yield from _walk_cluster(cls, prefix, base)


def _walk_cluster(c: SvdCluster, prefix: str, base: int) -> Iterator[RegisterAddress]:
    for name, offset in _instances(c.name, c.offset, c.dim_group, c.is_dim_array):
        yield from _walk(c, f"{prefix}.{name}", base + offset)


def build_address_map(device: SvdDevice) -> AddressMap:
    """Absolute address of every register instance of ``device``.

    Computed straight from the model (peripheral base plus every enclosing
    cluster offset and array stride), independently of code generation, so
    generated output can be checked against it.
    """
    regs: list[RegisterAddress] = []
    for p in device.peripherals:
        for name, base in _instances(p.name, p.base_address, p.dim_group, p.is_dim_array):
            regs.extend(_walk(p, name, base))
    regs.sort(key=lambda r: r.address)
    return AddressMap(device_name=device.name, registers=tuple(regs))
