from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CodeGenOptions:
    ignore_prepend: bool = False  # drop peripheral <prependToName>
    ignore_append: bool = False  # drop peripheral <appendToName>
    strict_dedup: bool = False  # fail when a shared name has differing definitions
