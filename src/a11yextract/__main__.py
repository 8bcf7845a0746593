from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
import sys
from typing import Sequence

from .config import load_settings
from .errors import A11yExtractError
from .extraction import extract_accessible_text, extract_links


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a11yextract",
        description="Extract accessible names, selectors and XPaths from an HTML document",
    )
    parser.add_argument("source", nargs="?", default="-", help="HTML file to read, or - for stdin")
    parser.add_argument("--links", action="store_true", help="Only report links")
    parser.add_argument(
        "--renderer",
        choices=("browser", "static"),
        help="Rendering provider (default: A11YEXTRACT_RENDERER or browser)",
    )
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _configure_logging(level_name: str) -> logging.Logger:
    package_logger = logging.getLogger("a11yextract")
    package_logger.setLevel(getattr(logging, level_name.upper(), logging.WARNING))
    if not package_logger.handlers:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        package_logger.addHandler(stream_handler)
    return logging.getLogger("a11yextract.cli")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logger = _configure_logging(str(args.log_level))

    settings = load_settings()
    if args.renderer:
        settings = replace(settings, renderer=args.renderer)

    try:
        markup = _read_source(args.source)
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.source, exc)
        return 2

    try:
        if args.links:
            records = [record.to_dict() for record in extract_links(markup, settings=settings)]
        else:
            records = [record.to_dict() for record in extract_accessible_text(markup, settings=settings)]
    except A11yExtractError as exc:
        logger.error("%s", exc)
        return 1

    json.dump(records, sys.stdout, indent=2 if args.pretty else None, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
