from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, TextIO

from svd2nim.codegen.accessors import ProcDef
from svd2nim.codegen.bitfields import EnumDef
from svd2nim.codegen.names import TypeNames
from svd2nim.codegen.options import CodeGenOptions
from svd2nim.codegen.typedefs import MemberNaming, TypeDef
from svd2nim.svd.checks import dim_layout
from svd2nim.svd.model import (
    NodePath,
    SvdCluster,
    SvdContainer,
    SvdCpu,
    SvdDevice,
    SvdInterrupt,
    SvdPeripheral,
    SvdRegister,
    sorted_members,
)
from svd2nim.utils.idents import sanitize_ident, strip_placeholder

INDENT = "  "


@dataclass(frozen=True)
class _Exception:
    name: str
    value: int
    description: str


CORTEX_M_EXCEPTIONS = (
    _Exception("NonMaskableInt", -14, "Exception 2: Non Maskable Interrupt"),
    _Exception("HardFault", -13, "Exception 3: Hard fault Interrupt"),
    _Exception("MemoryManagement", -12, "Exception 4: Memory Management Interrupt [Not on Cortex M0 variants]"),
    _Exception("BusFault", -11, "Exception 5: Bus Fault Interrupt [Not on Cortex M0 variants]"),
    _Exception("UsageFault", -10, "Exception 6: Usage Fault Interrupt [Not on Cortex M0 variants]"),
    _Exception("SecureFault", -9, "Exception 7: Secure Fault Interrupt [Only on Armv8-M]"),
    _Exception("SVCall", -5, "Exception 11: SV Call Interrupt"),
    _Exception("DebugMonitor", -4, "Exception 12: Debug Monitor Interrupt [Not on Cortex M0 variants]"),
    _Exception("PendSV", -2, "Exception 14: Pend SV Interrupt [Not on Cortex M0 variants]"),
    _Exception("SysTick", -1, "Exception 15: System Tick Interrupt"),
    _Exception("WWDG", 0, "Window WatchDog Interrupt"),
    _Exception("PVD", 1, "PVD through EXTI Line detection Interrupt"),
)

M0_CORES = ("CM0", "CM0+", "CM0PLUS")
M0_MISSING_EXCEPTIONS = (-12, -11, -10, -9, -4)
ARMV7_MISSING_EXCEPTIONS = (-9,)


def render_banner(text: str, out: TextIO) -> None:
    out.write("\n")
    out.write("#" * 80 + "\n")
    out.write(text + "\n")
    out.write("#" * 80 + "\n")


def _section(text: str) -> str:
    return text + "#" * (80 - len(text))


def cpu_const_name(cpu: SvdCpu) -> str:
    # Nim identifiers cannot hold '+': CM0+ -> CM0PLUS
    return sanitize_ident(re.sub(r"(M\d+)\+", r"\1PLUS", cpu.name))


def render_preamble(d: SvdDevice, out: TextIO) -> None:
    out.write(f"# Peripheral access API for {d.name.upper()} microcontrollers (generated using svd2nim)\n\n")
    out.write("import std/volatile\n\n")
    # Suppress name hints
    out.write("{.hint[name]: off.}\n\n")

    if d.cpu is None:
        return
    cpu = d.cpu
    out.write("# Some information about this device.\n")
    out.write(f'const DEVICE* = "{d.name}"\n')
    if cpu.name:
        out.write(f"const {cpu_const_name(cpu)}_REV* = 0x0001\n")
    out.write(f"const MPU_PRESENT* = {int(cpu.mpu_present)}\n")
    out.write(f"const FPU_PRESENT* = {int(cpu.fpu_present)}\n")
    out.write(f"const VTOR_PRESENT* = {int(cpu.vtor_present)}\n")
    out.write(f"const NVIC_PRIO_BITS* = {cpu.nvic_prio_bits}\n")
    out.write(f"const Vendor_SysTickConfig* = {int(cpu.vendor_systick_config)}\n")


def render_exception_numbers(cpu: Optional[SvdCpu], out: TextIO) -> None:
    is_m0 = cpu is not None and cpu.name.upper() in M0_CORES
    skipped = M0_MISSING_EXCEPTIONS if is_m0 else ARMV7_MISSING_EXCEPTIONS

    render_banner("# Interrupt Number Definition", out)
    out.write("type IRQn* = enum\n")
    out.write(_section("# #### Cortex-M Processor Exception Numbers ") + "\n")
    for exc in CORTEX_M_EXCEPTIONS:
        if exc.value in skipped:
            continue
        if exc.value == 0:
            out.write(_section("# #### Device specific Interrupt numbers ") + "\n")
        item = f"  {exc.name}_IRQn = {exc.value},"
        out.write(f"{item.ljust(40)}# {exc.description}\n")


def collect_interrupts(d: SvdDevice) -> list[SvdInterrupt]:
    """Interrupts of all peripherals, sorted by number (stable)."""
    irqs = [irq for p in d.peripherals for irq in p.interrupts]
    return sorted(irqs, key=lambda irq: irq.value)


def render_interrupts(d: SvdDevice, out: TextIO) -> None:
    for irq in collect_interrupts(d):
        # 0 and 1 are taken by the fixed table above
        if irq.value <= 1:
            continue
        item = f"  {sanitize_ident(irq.name.upper())}_IRQn = {irq.value},"
        if irq.description:
            out.write(f"{item.ljust(60)}# {irq.description}\n")
        else:
            out.write(item + "\n")


def render_type(typ: TypeDef, out: TextIO) -> None:
    star = "*" if typ.public else ""
    out.write(f"type {sanitize_ident(typ.name)}{star} = object\n")
    for f in typ.fields:
        fstar = "*" if f.public else ""
        fname = sanitize_ident(strip_placeholder(f.name))
        prag = f" {{.bitsize:{f.bitsize}.}}" if f.bitsize is not None else ""
        out.write(f"{INDENT}{fname}{fstar}{prag}: {f.type_name}\n")


def render_enum(en: EnumDef, out: TextIO) -> None:
    star = "*" if en.public else ""
    out.write(f"type {en.name}{star} {{.pure.}} = enum\n")
    for key, value in en.fields:
        out.write(f"{INDENT}{key} = {value:#x},\n")
    out.write("\n")


def render_proc(prd: ProcDef, out: TextIO) -> None:
    args = ", ".join(f"{name}: {typ}" for name, typ in prd.args)
    ret = f": {prd.ret_type}" if prd.ret_type is not None else ""
    star = "*" if prd.public else ""
    out.write(f"{prd.keyword} {prd.name}{star}({args}){ret} =\n")
    for line in prd.body.splitlines():
        out.write(INDENT + line + "\n")
    out.write("\n")


# ---------------------------------------------------------------------------
# peripheral instances
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _InstanceRenderer:
    names: TypeNames
    naming: MemberNaming
    out: TextIO

    def register(self, r: SvdRegister, path: NodePath, indent: int, base_address: int) -> None:
        type_name = self.names[path]
        if r.is_dim_array:
            count, inc = dim_layout(r.dim_group, f"register {r.name}")
            pad = INDENT * (indent + 1)
            self.out.write("[\n")
            for i in range(count):
                address = base_address + r.offset + i * inc
                self.out.write(f"{pad}{type_name}(loc: {address:#x}),\n")
            self.out.write(INDENT * indent + "],\n")
        else:
            address = base_address + r.offset
            self.out.write(f"{type_name}(loc: {address:#x}),\n")

    def cluster(self, c: SvdCluster, path: NodePath, indent: int, base_address: int) -> None:
        type_name = self.names[path]
        if c.is_dim_array:
            count, inc = dim_layout(c.dim_group, f"cluster {c.name}")
            pad = INDENT * (indent + 1)
            self.out.write("[\n")
            for i in range(count):
                address = base_address + c.offset + i * inc
                self.out.write(f"{pad}{type_name}(\n")
                self.members(c, path, indent + 2, address)
                self.out.write(pad + "),\n")
            self.out.write(INDENT * indent + "],\n")
        else:
            self.out.write(f"{type_name}(\n")
            self.members(c, path, indent + 1, base_address + c.offset)
            self.out.write(INDENT * indent + "),\n")

    def members(self, c: SvdContainer, path: NodePath, indent: int, base_address: int) -> None:
        pad = INDENT * indent
        for m in sorted_members(c):
            self.out.write(f"{pad}{self.naming.field_name(m)}: ")
            mpath = path + (m.name,)
            if isinstance(m, SvdRegister):
                self.register(m, mpath, indent, base_address)
            elif isinstance(m, SvdCluster):
                self.cluster(m, mpath, indent, base_address)
            else:
                raise TypeError(f"unexpected member kind {type(m).__name__}")


def render_peripheral(p: SvdPeripheral, names: TypeNames, opts: CodeGenOptions, out: TextIO) -> None:
    """Write the ``const`` instance of ``p`` with every register's absolute address."""
    renderer = _InstanceRenderer(names=names, naming=MemberNaming.for_peripheral(p, opts), out=out)
    ins_name = sanitize_ident(p.base_name)
    path: NodePath = (p.name,)
    type_name = names[path]

    if p.is_dim_array:
        count, inc = dim_layout(p.dim_group, f"peripheral {p.name}")
        out.write(f"const {ins_name}* = [\n")
        for i in range(count):
            address = p.base_address + i * inc
            out.write(f"{INDENT}{type_name}(\n")
            renderer.members(p, path, 2, address)
            out.write(INDENT + "),\n")
        out.write("]\n\n")
    else:
        out.write(f"const {ins_name}* = {type_name}(\n")
        renderer.members(p, path, 1, p.base_address)
        out.write(")\n\n")
