"""CLI entry point for the catalog build.

Supports running via ``python -m dexcatalog.main`` and the ``dexcatalog``
console script.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .config import DEFAULT_CONFIG_PATH
from .errors import PreconditionError
from .export import run_export_workbook
from .pipeline import STAGES, run_build


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(prog="dexcatalog")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH)
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command")

    build = sub.add_parser("build")
    build.add_argument("target", choices=list(STAGES) + ["all"])
    build.add_argument("--limit", type=int, default=None)
    build.add_argument("--force", action="store_true")

    export = sub.add_parser("export")
    export_sub = export.add_subparsers(dest="stage")
    export_sub.add_parser("workbook")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "build":
            return run_build(args.target, args.limit, args.force, args.config)
        if args.command == "export" and args.stage == "workbook":
            return run_export_workbook(args.config)
    except PreconditionError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
