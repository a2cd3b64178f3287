from __future__ import annotations


class SvdError(Exception):
    pass


class SvdParseError(SvdError):
    """The SVD document is malformed or lacks a required element."""


class SvdModelError(SvdError):
    """The device model is structurally inconsistent; generation must stop."""


class DuplicateArtifactError(SvdError):
    """Two generated artifacts share a name but differ in content."""
