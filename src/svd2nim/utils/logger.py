from __future__ import annotations

import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "svd2nim"

_handler: Optional[logging.Handler] = None


def setup_logging(level: str = "INFO", quiet: bool = False) -> logging.Logger:
    """Send svd2nim diagnostics to stderr; the root logger is left alone.

    Calling it again replaces the handler from the previous call, so the
    CLI can run several times in one process without duplicated lines.
    """
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)

    lvl = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(lvl)

    # stdout may carry generated output
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setLevel(lvl)
    fmt = "[%(levelname)s] %(name)s: %(message)s" if not quiet else "%(message)s"
    _handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(_handler)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger under the package namespace."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
