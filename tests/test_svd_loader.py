from __future__ import annotations

import pytest

from svd2nim.errors import SvdParseError
from svd2nim.svd.model import SvdAccess, SvdDimGroup
from svd2nim.svd.svd_loader import load_svd, loads_svd


def test_device_and_cpu(sample_svd):
    dev = loads_svd(sample_svd)

    assert dev.name == "TESTDEV"
    assert dev.vendor == "Acme"
    assert dev.description == "Test device"
    assert dev.properties.size == 32
    assert dev.properties.access is SvdAccess.READ_WRITE
    assert dev.cpu is not None
    assert dev.cpu.name == "CM0+"
    assert dev.cpu.mpu_present
    assert not dev.cpu.fpu_present
    assert dev.cpu.vtor_present
    assert dev.cpu.nvic_prio_bits == 2


def test_peripherals(sample_svd):
    timer0, timer1 = loads_svd(sample_svd).peripherals

    assert timer0.base_address == 0x40000C00
    assert timer0.size == 0x400
    assert timer0.group_name == "TIMER"
    assert [(i.name, i.value, i.description) for i in timer0.interrupts] == [("timer0", 5, "Timer 0 interrupt")]
    assert [r.name for r in timer0.registers] == ["CTRL", "STATUS"]
    assert [c.name for c in timer0.clusters] == ["CH"]

    assert timer1.derived_from == "TIMER0"
    assert timer1.registers == ()


def test_registers_and_fields(sample_svd):
    timer0 = loads_svd(sample_svd).peripherals[0]
    ctrl, status = timer0.registers

    assert ctrl.reset_value == 0
    assert [(f.name, f.lsb, f.msb) for f in ctrl.fields] == [("EN", 0, 0), ("MODE", 4, 5)]
    mode = ctrl.fields[1]
    assert mode.enum_values is not None
    assert mode.enum_values.values == (("ONESHOT", 0), ("PERIODIC", 1), ("FREE-RUN", 2))

    assert status.offset == 4
    assert status.properties.size == 16
    assert status.access is SvdAccess.READ_ONLY

    cc = timer0.clusters[0].registers[0]
    assert cc.name == "CC[%s]"
    assert cc.offset == 0x10
    assert cc.dim_group == SvdDimGroup(dim=4, dim_increment=4)
    assert cc.is_dim_array


def test_bit_range_forms():
    svd = """
    <device><name>D</name><peripherals><peripheral>
      <name>P</name><baseAddress>0</baseAddress>
      <registers><register>
        <name>R</name><addressOffset>0</addressOffset>
        <fields>
          <field><name>A</name><lsb>8</lsb><msb>11</msb></field>
          <field><name>B</name><bitRange>[ 3 : 2 ]</bitRange></field>
          <field><name>C</name><bitOffset>12</bitOffset></field>
        </fields>
      </register></registers>
    </peripheral></peripherals></device>
    """
    reg = loads_svd(svd).peripherals[0].registers[0]
    assert [(f.name, f.lsb, f.msb) for f in reg.fields] == [("A", 8, 11), ("B", 2, 3), ("C", 12, 12)]


def test_incomplete_dim_group_is_kept_for_validation():
    svd = """
    <device><name>D</name><peripherals><peripheral>
      <name>P</name><baseAddress>0</baseAddress>
      <registers><register><name>R%s</name><dim>2</dim><addressOffset>0</addressOffset></register></registers>
    </peripheral></peripherals></device>
    """
    reg = loads_svd(svd).peripherals[0].registers[0]
    assert reg.dim_group == SvdDimGroup(dim=2)


def test_unknown_access_falls_back_to_default():
    svd = """
    <device><name>D</name><peripherals><peripheral>
      <name>P</name><baseAddress>0</baseAddress>
      <registers><register><name>R</name><addressOffset>0</addressOffset><access>bogus</access></register></registers>
    </peripheral></peripherals></device>
    """
    reg = loads_svd(svd).peripherals[0].registers[0]
    assert reg.properties.access is None
    assert reg.access is SvdAccess.READ_WRITE


@pytest.mark.parametrize(
    "svd",
    [
        "<device><name>D</name>",
        "<notadevice/>",
        "<device><peripherals><peripheral><baseAddress>0</baseAddress></peripheral></peripherals></device>",
        """<device><peripherals><peripheral><name>P</name><registers><register>
           <name>R</name><fields><field><name>F</name><bitRange>3:2</bitRange></field></fields>
           </register></registers></peripheral></peripherals></device>""",
    ],
)
def test_malformed_documents(svd):
    with pytest.raises(SvdParseError):
        loads_svd(svd)


def test_load_from_file(sample_svd_path):
    dev = load_svd(sample_svd_path)
    assert len(dev.peripherals) == 2
