from __future__ import annotations


def bit_width(lsb: int, msb: int) -> int:
    return msb - lsb + 1


def max_value(width: int) -> int:
    """Largest unsigned value representable in ``width`` bits."""
    return (1 << width) - 1
