from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from svd2nim.errors import SvdParseError
from svd2nim.svd.model import (
    SvdAccess,
    SvdCluster,
    SvdCpu,
    SvdDevice,
    SvdDimGroup,
    SvdEnumeratedValues,
    SvdField,
    SvdInterrupt,
    SvdPeripheral,
    SvdRegister,
    SvdRegisterProperties,
)
from svd2nim.utils.logger import get_logger

log = get_logger(__name__)

_RE_BIT_RANGE = re.compile(r"^\[\s*(\d+)\s*:\s*(\d+)\s*\]$")


def _t(node: Optional[ET.Element], tag: str) -> Optional[str]:
    if node is None:
        return None
    e = node.find(tag)
    return e.text.strip() if (e is not None and e.text) else None


def _int(s: Optional[str], default: Optional[int] = None) -> Optional[int]:
    if s is None:
        return default
    s = s.strip()
    if s.startswith("#"):
        # SVD binary notation; 'x' marks don't-care bits
        try:
            return int(s[1:], 2)
        except ValueError:
            return default
    try:
        return int(s, 0)
    except ValueError:
        # some SVDs use hex without 0x, others zero-padded decimals
        try:
            return int(s, 16) if not s.isdigit() else int(s, 10)
        except ValueError:
            return default


def _bool(s: Optional[str]) -> bool:
    return s is not None and s.strip().lower() in ("true", "1")


def _desc(s: Optional[str]) -> Optional[str]:
    # descriptions are often wrapped over several lines
    return " ".join(s.split()) if s else None


def _required(node: ET.Element, tag: str, what: str) -> str:
    value = _t(node, tag)
    if value is None:
        raise SvdParseError(f"{what} is missing <{tag}>")
    return value


def _access(s: Optional[str]) -> Optional[SvdAccess]:
    if s is None:
        return None
    try:
        return SvdAccess(s)
    except ValueError:
        log.warning("Unknown access type %r, using default", s)
        return None


def parse_properties(node: ET.Element) -> SvdRegisterProperties:
    return SvdRegisterProperties(
        size=_int(_t(node, "size")),
        access=_access(_t(node, "access")),
    )


def parse_dim_group(node: ET.Element) -> Optional[SvdDimGroup]:
    dim = _t(node, "dim")
    inc = _t(node, "dimIncrement")
    index = _t(node, "dimIndex")
    dim_name = _t(node, "dimName")
    if dim is None and inc is None and index is None and dim_name is None:
        return None
    # incomplete groups are kept as-is and rejected by validation
    return SvdDimGroup(
        dim=_int(dim),
        dim_increment=_int(inc),
        dim_index=index,
        dim_name=dim_name,
    )


def parse_bit_range(f: ET.Element, what: str) -> tuple[int, int]:
    offset = _int(_t(f, "bitOffset"))
    if offset is not None:
        width = _int(_t(f, "bitWidth"), 1) or 1
        return offset, offset + width - 1

    bit_range = _t(f, "bitRange")
    if bit_range is not None:
        m = _RE_BIT_RANGE.match(bit_range)
        if not m:
            raise SvdParseError(f"{what} has malformed <bitRange> {bit_range!r}")
        return int(m.group(2)), int(m.group(1))

    lsb = _int(_t(f, "lsb"))
    msb = _int(_t(f, "msb"))
    if lsb is None or msb is None:
        raise SvdParseError(f"{what} has no bit range")
    return lsb, msb


def parse_enumerated_values(node: ET.Element, what: str) -> SvdEnumeratedValues:
    values: list[tuple[str, int]] = []
    for ev in node.findall("enumeratedValue"):
        name = _t(ev, "name")
        raw = _t(ev, "value")
        if name is None or raw is None:
            # isDefault entries have no value of their own
            continue
        value = _int(raw)
        if value is None:
            log.debug("%s: skipping enumerated value %s=%r", what, name, raw)
            continue
        values.append((name, value))
    return SvdEnumeratedValues(
        values=tuple(values),
        name=_t(node, "name"),
        header_enum_name=_t(node, "headerEnumName"),
        derived_from=node.get("derivedFrom"),
    )


def parse_field(f: ET.Element, reg_name: str) -> SvdField:
    name = _required(f, "name", f"field of register {reg_name}")
    what = f"field {reg_name}.{name}"
    lsb, msb = parse_bit_range(f, what)

    # read and write usages may carry separate sets; only the first is used
    enum_node = f.find("enumeratedValues")
    enum_values = parse_enumerated_values(enum_node, what) if enum_node is not None else None

    return SvdField(
        name=name,
        lsb=lsb,
        msb=msb,
        description=_desc(_t(f, "description")),
        enum_values=enum_values,
        dim_group=parse_dim_group(f),
        derived_from=f.get("derivedFrom"),
    )


def parse_register(r: ET.Element) -> SvdRegister:
    name = _required(r, "name", "register")
    fields: list[SvdField] = []
    fnode = r.find("fields")
    if fnode is not None:
        for f in fnode.findall("field"):
            fields.append(parse_field(f, name))

    return SvdRegister(
        name=name,
        offset=_int(_t(r, "addressOffset"), 0) or 0,
        properties=parse_properties(r),
        fields=tuple(fields),
        dim_group=parse_dim_group(r),
        description=_desc(_t(r, "description")),
        reset_value=_int(_t(r, "resetValue")),
        derived_from=r.get("derivedFrom"),
    )


def _parse_children(node: Optional[ET.Element]) -> tuple[tuple[SvdRegister, ...], tuple[SvdCluster, ...]]:
    if node is None:
        return (), ()
    regs = tuple(parse_register(r) for r in node.findall("register"))
    clusters = tuple(parse_cluster(c) for c in node.findall("cluster"))
    return regs, clusters


def parse_cluster(c: ET.Element) -> SvdCluster:
    name = _required(c, "name", "cluster")
    # cluster children sit directly under <cluster>
    regs, clusters = _parse_children(c)
    return SvdCluster(
        name=name,
        offset=_int(_t(c, "addressOffset"), 0) or 0,
        registers=regs,
        clusters=clusters,
        header_struct_name=_t(c, "headerStructName"),
        dim_group=parse_dim_group(c),
        properties=parse_properties(c),
        description=_desc(_t(c, "description")),
        derived_from=c.get("derivedFrom"),
    )


def parse_interrupt(i: ET.Element, periph_name: str) -> SvdInterrupt:
    name = _required(i, "name", f"interrupt of peripheral {periph_name}")
    value = _int(_t(i, "value"))
    if value is None:
        raise SvdParseError(f"interrupt {name} of peripheral {periph_name} has no <value>")
    return SvdInterrupt(name=name, value=value, description=_desc(_t(i, "description")))


def parse_peripheral(p: ET.Element) -> SvdPeripheral:
    name = _required(p, "name", "peripheral")
    regs, clusters = _parse_children(p.find("registers"))
    ab = p.find("addressBlock")

    return SvdPeripheral(
        name=name,
        base_address=_int(_t(p, "baseAddress"), 0) or 0,
        registers=regs,
        clusters=clusters,
        interrupts=tuple(parse_interrupt(i, name) for i in p.findall("interrupt")),
        header_struct_name=_t(p, "headerStructName"),
        prepend_to_name=_t(p, "prependToName"),
        append_to_name=_t(p, "appendToName"),
        dim_group=parse_dim_group(p),
        properties=parse_properties(p),
        description=_desc(_t(p, "description")),
        group_name=_t(p, "groupName"),
        size=_int(_t(ab, "size")),
        derived_from=p.get("derivedFrom"),  # attribute on peripheral element
    )


def parse_cpu(c: ET.Element) -> SvdCpu:
    return SvdCpu(
        name=_t(c, "name") or "",
        revision=_t(c, "revision") or "",
        endian=_t(c, "endian") or "little",
        mpu_present=_bool(_t(c, "mpuPresent")),
        fpu_present=_bool(_t(c, "fpuPresent")),
        vtor_present=_bool(_t(c, "vtorPresent")),
        nvic_prio_bits=_int(_t(c, "nvicPrioBits"), 0) or 0,
        vendor_systick_config=_bool(_t(c, "vendorSystickConfig")),
    )


def parse_device(root: ET.Element, default_name: str = "device") -> SvdDevice:
    if root.tag != "device":
        raise SvdParseError(f"expected <device> root element, got <{root.tag}>")

    dev_name = _t(root, "name") or default_name
    cpu_node = root.find("cpu")
    perips_node = root.find("peripherals")

    peripherals: tuple[SvdPeripheral, ...] = ()
    if perips_node is None:
        log.warning("No <peripherals> found in SVD device %s", dev_name)
    else:
        peripherals = tuple(parse_peripheral(p) for p in perips_node.findall("peripheral"))

    return SvdDevice(
        name=dev_name,
        peripherals=peripherals,
        cpu=parse_cpu(cpu_node) if cpu_node is not None else None,
        vendor=_t(root, "vendor"),
        description=_desc(_t(root, "description")),
        properties=parse_properties(root),
    )


def loads_svd(text: str) -> SvdDevice:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise SvdParseError(f"invalid SVD XML: {e}") from e
    return parse_device(root)


def load_svd(path: Path) -> SvdDevice:
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise SvdParseError(f"invalid SVD XML in {path}: {e}") from e

    device = parse_device(tree.getroot(), default_name=path.stem)
    log.info("Loaded SVD device=%s peripherals=%d", device.name, len(device.peripherals))
    return device
