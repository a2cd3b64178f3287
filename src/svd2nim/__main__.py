from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from svd2nim.app import VERSION, run_app
from svd2nim.codegen.options import CodeGenOptions
from svd2nim.errors import SvdError
from svd2nim.utils.logger import get_logger

log = get_logger("svd2nim")


def main(argv: Optional[Sequence[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="svd2nim",
        description="Generate Nim peripheral register APIs for ARM using CMSIS-SVD files.",
    )
    p.add_argument("svd_file", type=Path, help="CMSIS-SVD XML file path")
    p.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: ./<device_name>.nim)")
    p.add_argument("--ignore-prepend", action="store_true", help="Ignore peripheral <prependToName>")
    p.add_argument("--ignore-append", action="store_true", help="Ignore peripheral <appendToName>")
    p.add_argument("--strict", action="store_true", help="Fail when a shared name is generated with different content")
    p.add_argument("--dump-addresses", type=Path, default=None, help="Also write PATH:0xADDR lines for every register")
    p.add_argument("-v", "--version", action="version", version=f"%(prog)s {VERSION}")

    # Logging
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--quiet", action="store_true", help="Reduce console output")

    args = p.parse_args(argv)

    opts = CodeGenOptions(
        ignore_prepend=args.ignore_prepend,
        ignore_append=args.ignore_append,
        strict_dedup=args.strict,
    )
    try:
        run_app(
            svd_path=args.svd_file,
            out_path=args.output,
            opts=opts,
            dump_addresses=args.dump_addresses,
            log_level=args.log_level,
            quiet=args.quiet,
        )
    except SvdError as e:
        log.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
