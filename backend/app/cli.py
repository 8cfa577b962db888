"""Command line entry point.

``lookup`` runs the whole batch over a CSV file, ``normalize`` and ``street``
expose the address parser on a single string.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from app.core.config import Settings, get_settings
from app.core.logging import configure_logging, get_logger
from app.domain.address import AddressNormalizer, extract_street
from app.services.lookup_service import run_batch


_logger = get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adresse-finder",
        description="Find and normalize postal addresses of establishments.",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose console logs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Complete addresses of a CSV file")
    lookup.add_argument("input", nargs="?", type=Path, help="Input CSV")
    lookup.add_argument("output", nargs="?", type=Path, help="Output CSV")
    lookup.add_argument("--delay-min", type=float, help="Minimum pause in seconds")
    lookup.add_argument("--delay-max", type=float, help="Maximum pause in seconds")

    normalize = subparsers.add_parser("normalize", help="Parse one address text")
    normalize.add_argument("text")
    normalize.add_argument(
        "--basic",
        action="store_true",
        help="Keep the full city text and skip the empty-city fallback",
    )

    street = subparsers.add_parser("street", help="Extract number and street name")
    street.add_argument("text")

    return parser


def _lookup_settings(args: argparse.Namespace, settings: Settings) -> Settings:
    overrides: dict[str, object] = {}
    if args.delay_min is not None:
        overrides["delay_min"] = args.delay_min
    if args.delay_max is not None:
        overrides["delay_max"] = args.delay_max
    if not overrides:
        return settings
    return Settings.model_validate({**settings.model_dump(), **overrides})


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(args.debug or settings.debug)

    if args.command == "normalize":
        parsed = AddressNormalizer(advanced=not args.basic).normalize(args.text)
        print(json.dumps(parsed.to_dict(), ensure_ascii=False))
        return 0

    if args.command == "street":
        print(extract_street(args.text))
        return 0

    try:
        settings = _lookup_settings(args, settings)
    except ValidationError as exc:
        parser.error(f"invalid delay range: {exc.errors()[0]['msg']}")
    input_path = args.input or settings.input_path
    output_path = args.output or settings.output_path
    if not input_path.exists():
        _logger.error("Input file not found", path=str(input_path))
        return 1

    outcomes = asyncio.run(run_batch(settings, input_path, output_path))
    found = sum(1 for outcome in outcomes if outcome.status == "found")
    _logger.info(
        "Output written",
        path=str(output_path),
        total=len(outcomes),
        found=found,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
