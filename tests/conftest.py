from __future__ import annotations

import io
import re

import pytest

from svd2nim.codegen.options import CodeGenOptions
from svd2nim.codegen.render import render_peripheral
from svd2nim.codegen.names import resolve_type_names
from svd2nim.svd.model import (
    SvdCluster,
    SvdDevice,
    SvdDimGroup,
    SvdPeripheral,
    SvdRegister,
)

SAMPLE_SVD = """\
<?xml version="1.0" encoding="utf-8"?>
<device schemaVersion="1.3">
  <vendor>Acme</vendor>
  <name>TESTDEV</name>
  <description>Test
    device</description>
  <cpu>
    <name>CM0+</name>
    <revision>r0p1</revision>
    <endian>little</endian>
    <mpuPresent>true</mpuPresent>
    <fpuPresent>false</fpuPresent>
    <vtorPresent>1</vtorPresent>
    <nvicPrioBits>2</nvicPrioBits>
    <vendorSystickConfig>false</vendorSystickConfig>
  </cpu>
  <size>32</size>
  <access>read-write</access>
  <peripherals>
    <peripheral>
      <name>TIMER0</name>
      <description>Timer</description>
      <groupName>TIMER</groupName>
      <baseAddress>0x40000c00</baseAddress>
      <addressBlock>
        <offset>0</offset>
        <size>0x400</size>
        <usage>registers</usage>
      </addressBlock>
      <interrupt>
        <name>timer0</name>
        <description>Timer 0 interrupt</description>
        <value>5</value>
      </interrupt>
      <registers>
        <register>
          <name>CTRL</name>
          <addressOffset>0x00</addressOffset>
          <resetValue>0x00000000</resetValue>
          <fields>
            <field>
              <name>EN</name>
              <bitOffset>0</bitOffset>
              <bitWidth>1</bitWidth>
            </field>
            <field>
              <name>MODE</name>
              <bitRange>[5:4]</bitRange>
              <enumeratedValues>
                <enumeratedValue>
                  <name>ONESHOT</name>
                  <value>0</value>
                </enumeratedValue>
                <enumeratedValue>
                  <name>PERIODIC</name>
                  <value>0x1</value>
                </enumeratedValue>
                <enumeratedValue>
                  <name>FREE-RUN</name>
                  <value>#10</value>
                </enumeratedValue>
                <enumeratedValue>
                  <name>other</name>
                  <isDefault>true</isDefault>
                </enumeratedValue>
              </enumeratedValues>
            </field>
          </fields>
        </register>
        <register>
          <name>STATUS</name>
          <addressOffset>0x4</addressOffset>
          <size>16</size>
          <access>read-only</access>
        </register>
        <cluster>
          <name>CH</name>
          <addressOffset>0x100</addressOffset>
          <register>
            <dim>4</dim>
            <dimIncrement>0x4</dimIncrement>
            <name>CC[%s]</name>
            <addressOffset>0x10</addressOffset>
            <access>write-only</access>
          </register>
        </cluster>
      </registers>
    </peripheral>
    <peripheral derivedFrom="TIMER0">
      <name>TIMER1</name>
      <baseAddress>0x40001000</baseAddress>
      <interrupt>
        <name>timer1</name>
        <value>6</value>
      </interrupt>
    </peripheral>
  </peripherals>
</device>
"""

_RE_LOC = re.compile(r"loc: (0x[0-9a-f]+)")


@pytest.fixture
def sample_svd() -> str:
    return SAMPLE_SVD


@pytest.fixture
def sample_svd_path(tmp_path):
    path = tmp_path / "testdev.svd"
    path.write_text(SAMPLE_SVD, encoding="utf-8")
    return path


def loc_addresses(text: str) -> list[int]:
    """Every ``loc: 0x...`` literal in generated code, in order."""
    return [int(m, 16) for m in _RE_LOC.findall(text)]


def render_instance(device: SvdDevice, opts: CodeGenOptions = CodeGenOptions()) -> str:
    names = resolve_type_names(device)
    buf = io.StringIO()
    for p in device.peripherals:
        render_peripheral(p, names, opts, buf)
    return buf.getvalue()


def array(count: int, increment: int, dim_name=None) -> SvdDimGroup:
    return SvdDimGroup(dim=count, dim_increment=increment, dim_name=dim_name)


@pytest.fixture
def nested_device() -> SvdDevice:
    """Peripheral with plain, arrayed and nested cluster members."""
    inner = SvdCluster(
        name="INNER",
        offset=0x8,
        registers=(SvdRegister(name="DEEP", offset=0x4),),
    )
    ch = SvdCluster(
        name="CH[%s]",
        offset=0x40,
        dim_group=array(2, 0x20),
        registers=(
            SvdRegister(name="CFG", offset=0x0),
            SvdRegister(name="DATA[%s]", offset=0x10, dim_group=array(2, 0x4)),
        ),
        clusters=(inner,),
    )
    periph = SvdPeripheral(
        name="DMA",
        base_address=0x40020000,
        registers=(
            SvdRegister(name="ISR", offset=0x4),
            SvdRegister(name="CR", offset=0x0),
        ),
        clusters=(ch,),
    )
    return SvdDevice(name="NESTED", peripherals=(periph,))
