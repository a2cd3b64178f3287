from __future__ import annotations

import pytest

from svd2nim.codegen.bitfields import (
    create_field_enums,
    create_field_struct,
    field_struct_name,
    field_value_type,
    has_fields,
    pad_fields,
)
from svd2nim.svd.model import SvdEnumeratedValues, SvdField, SvdRegister, SvdRegisterProperties


def _reg(*fields: SvdField, size: int = 32) -> SvdRegister:
    return SvdRegister(name="R", offset=0, properties=SvdRegisterProperties(size=size), fields=fields)


def _assert_covers(packed, width):
    bit = 0
    for f in packed:
        assert f.lsb == bit, f"gap or overlap at bit {bit}"
        bit = f.msb + 1
    assert bit == width


def test_gaps_and_tail_get_fillers():
    fields = [SvdField("MODE", lsb=4, msb=5), SvdField("EN", lsb=0, msb=0)]
    packed = pad_fields(fields, 8)

    assert [(f.name, f.lsb, f.msb, f.filler) for f in packed] == [
        ("EN", 0, 0, False),
        ("RESERVED", 1, 3, True),
        ("MODE", 4, 5, False),
        ("RESERVED1", 6, 7, True),
    ]
    _assert_covers(packed, 8)


@pytest.mark.parametrize(
    "ranges, width, fillers",
    [
        ([(0, 31)], 32, 0),
        ([(0, 15), (16, 31)], 32, 0),
        ([(8, 15)], 32, 2),
        ([(0, 0), (2, 2), (4, 4)], 8, 3),
        ([(1, 1)], 2, 1),
    ],
)
def test_full_coverage(ranges, width, fillers):
    fields = [SvdField(f"F{i}", lsb=lsb, msb=msb) for i, (lsb, msb) in enumerate(ranges)]
    packed = pad_fields(fields, width)

    _assert_covers(packed, width)
    assert sum(f.filler for f in packed) == fillers


def test_filler_names_avoid_real_fields():
    fields = [SvdField("RESERVED", lsb=4, msb=7), SvdField("A", lsb=0, msb=0)]
    packed = pad_fields(fields, 16)
    names = [f.name for f in packed]

    assert names == ["A", "RESERVED1", "RESERVED", "RESERVED2"]
    assert len(set(names)) == len(names)


def test_value_types():
    assert field_value_type(1) == "bool"
    assert field_value_type(2) == "0'u .. 3'u"
    assert field_value_type(12) == "0'u .. 4095'u"


def test_single_full_width_field_is_no_fields():
    assert not has_fields(_reg())
    assert not has_fields(_reg(SvdField("VAL", lsb=0, msb=31)))
    assert not has_fields(_reg(SvdField("VAL", lsb=0, msb=15), size=16))
    assert has_fields(_reg(SvdField("VAL", lsb=0, msb=15)))
    assert has_fields(_reg(SvdField("A", lsb=0, msb=0), SvdField("B", lsb=1, msb=31)))


def test_field_struct():
    reg = _reg(SvdField("EN", lsb=0, msb=0), SvdField("MODE", lsb=4, msb=5), size=8)
    td = create_field_struct(reg, "TIMER_CTRL_Type")

    assert td.name == field_struct_name("TIMER_CTRL_Type") == "TIMER_CTRL_Fields"
    assert td.public
    assert [(f.name, f.bitsize, f.public, f.type_name) for f in td.fields] == [
        ("EN", 1, True, "bool"),
        ("RESERVED", 3, False, "0'u .. 7'u"),
        ("MODE", 2, True, "0'u .. 3'u"),
        ("RESERVED1", 2, False, "0'u .. 3'u"),
    ]


def test_enum_extraction():
    ev = SvdEnumeratedValues(values=(("SLOW", 2), ("FAST-1", 0), ("type", 1)))
    named = SvdEnumeratedValues(values=(("OFF", 0), ("ON", 1)), header_enum_name="PowerState")
    reg = _reg(
        SvdField("SPEED", lsb=0, msb=1, enum_values=ev),
        SvdField("PWR", lsb=2, msb=2, enum_values=named),
        SvdField("PLAIN", lsb=3, msb=3),
    )
    enums = create_field_enums(reg, "CLK_CFG_Type")

    assert [e.name for e in enums] == ["CLK_CFG_SPEED", "PowerState"]
    # symbols sanitized, members ordered by value
    assert enums[0].fields == (("FAST_1", 0), ("`type`", 1), ("SLOW", 2))
    assert enums[1].fields == (("OFF", 0), ("ON", 1))
