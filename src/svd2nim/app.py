from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

from svd2nim.codegen.device import render_device
from svd2nim.codegen.options import CodeGenOptions
from svd2nim.svd.address_map import build_address_map
from svd2nim.svd.checks import validate_device, warn_not_implemented
from svd2nim.svd.model import SvdDevice
from svd2nim.svd.svd_loader import load_svd
from svd2nim.svd.transform import process_device
from svd2nim.utils.logger import get_logger, setup_logging

log = get_logger(__name__)

VERSION = "0.4.1"


def prepare_device(device: SvdDevice) -> SvdDevice:
    """Validate, report unsupported constructs, then flatten the model for codegen."""
    validate_device(device)
    warn_not_implemented(device)
    return process_device(device)


def process_svd(path: Path) -> SvdDevice:
    return prepare_device(load_svd(path))


def generate(device: SvdDevice, opts: CodeGenOptions) -> str:
    buf = io.StringIO()
    render_device(device, buf, opts)
    return buf.getvalue()


def run_app(
    svd_path: Path,
    out_path: Optional[Path],
    opts: CodeGenOptions,
    dump_addresses: Optional[Path] = None,
    log_level: str = "INFO",
    quiet: bool = False,
) -> Path:
    setup_logging(level=log_level, quiet=quiet)

    log.info("svd2nim %s", VERSION)
    log.info("SVD: %s", svd_path)

    device = process_svd(svd_path)
    # render fully before touching the output file
    text = generate(device, opts)

    if out_path is None:
        out_path = Path(device.name.lower() + ".nim")
    out_path.write_text(text, encoding="utf-8")
    log.info("Wrote %s (%d bytes)", out_path, len(text))

    if dump_addresses is not None:
        amap = build_address_map(device)
        dump_addresses.write_text(amap.dump() + "\n", encoding="utf-8")
        log.info("Wrote %d register addresses to %s", len(amap.registers), dump_addresses)

    return out_path
