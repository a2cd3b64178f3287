from __future__ import annotations

from typing import Iterator, Optional, Union

from svd2nim.errors import SvdModelError
from svd2nim.svd.model import (
    SvdCluster,
    SvdContainer,
    SvdDevice,
    SvdDimGroup,
    SvdPeripheral,
    SvdRegister,
    iter_registers,
)
from svd2nim.utils.logger import get_logger

log = get_logger(__name__)


def dim_layout(dim: Optional[SvdDimGroup], what: str) -> tuple[int, int]:
    """``(dim, dim_increment)`` of a repeated node; SvdModelError if incomplete."""
    if dim is None or dim.dim is None or dim.dim_increment is None:
        raise SvdModelError(f"{what} has an incomplete dim group (needs both <dim> and <dimIncrement>)")
    if dim.dim < 1:
        raise SvdModelError(f"{what} has dim={dim.dim}, expected at least 1")
    return dim.dim, dim.dim_increment


def _check_dim(what: str, dim: Optional[SvdDimGroup]) -> None:
    if dim is not None:
        dim_layout(dim, what)


def _walk(container: SvdContainer, path: str) -> Iterator[tuple[str, Union[SvdRegister, SvdCluster]]]:
    for reg in container.registers:
        yield f"{path}.{reg.name}", reg
    for cls in container.clusters:
        cpath = f"{path}.{cls.name}"
        yield cpath, cls
        yield from _walk(cls, cpath)


def validate_device(device: SvdDevice) -> None:
    """Reject models the generator cannot render; raises SvdModelError."""
    for p in device.peripherals:
        _check_dim(f"peripheral {p.name}", p.dim_group)
        for path, node in _walk(p, p.name):
            kind = "register" if isinstance(node, SvdRegister) else "cluster"
            _check_dim(f"{kind} {path}", node.dim_group)


def _peripheral_warnings(p: SvdPeripheral) -> Iterator[str]:
    if p.dim_group is not None and "[%s]" in p.name:
        yield f"Peripheral {p.name} is a dim array, not implemented."

    for _, reg in iter_registers(p):
        for f in reg.fields:
            if f.derived_from is not None:
                yield f"Register field {reg.name}.{f.name} of peripheral {p.name} is derived, not implemented."
            if f.dim_group is not None:
                yield f"Register field {reg.name}.{f.name} of peripheral {p.name} contains dimGroup, not implemented."
            if f.enum_values is not None and f.enum_values.derived_from is not None:
                yield (
                    f"Register field {reg.name}.{f.name} of peripheral {p.name} "
                    "contains a derived enumeration, not implemented."
                )


def warn_not_implemented(device: SvdDevice) -> list[str]:
    """Log a warning for every construct that is only partially supported."""
    messages: list[str] = []
    for p in device.peripherals:
        for msg in _peripheral_warnings(p):
            log.warning("%s", msg)
            messages.append(msg)
    return messages
