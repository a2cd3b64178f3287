from __future__ import annotations

import re

NIM_KEYWORDS = frozenset(
    """
    addr and as asm bind block break case cast concept const continue
    converter defer discard distinct div do elif else end enum except export
    finally for from func if import in include interface is isnot iterator
    let macro method mixin mod nil not notin object of or out proc ptr raise
    ref return shl shr static template try tuple type using var when while
    xor yield
    """.split()
)

_PLACEHOLDER_RE = re.compile(r"\[%s\]|%s")
_INVALID_CHARS_RE = re.compile(r"[^0-9A-Za-z_]")
_UNDERSCORES_RE = re.compile(r"_+")


def strip_placeholder(name: str) -> str:
    """Remove dim placeholders: ``DATA[%s]`` -> ``DATA``, ``CH%s_CR`` -> ``CH_CR``."""
    return _PLACEHOLDER_RE.sub("", name)


def _nim_normalize(ident: str) -> str:
    # Nim compares identifiers case-insensitively except for the first char,
    # and ignores underscores.
    return ident[0] + ident[1:].lower().replace("_", "")


def sanitize_ident(name: str) -> str:
    """Turn an arbitrary SVD name into a valid Nim identifier.

    Invalid characters become underscores, runs of underscores collapse and
    leading/trailing ones are dropped (Nim rejects both). Names starting
    with a digit get an ``x`` prefix and keywords are backtick-quoted.
    """
    s = _INVALID_CHARS_RE.sub("_", name)
    s = _UNDERSCORES_RE.sub("_", s).strip("_")
    if not s:
        return "x"
    if s[0].isdigit():
        s = "x" + s
    if _nim_normalize(s) in NIM_KEYWORDS:
        return f"`{s}`"
    return s
