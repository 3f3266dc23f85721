from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from typing import Sequence

from .errors import ConfigError, ExtractionError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gomockery",
        description="Generate testify mocks for Go interfaces.",
    )
    parser.add_argument(
        "--name",
        default="",
        help="Name or matching regular expression of interface to generate mock for.",
    )
    parser.add_argument("--print", action="store_true", help="Print the generated mock to stdout.")
    parser.add_argument(
        "--output",
        default=None,
        help="Directory to write mocks to (default: GOMOCKERY_OUTPUT or ./mocks).",
    )
    parser.add_argument("--dir", default=".", help="Directory to search for interfaces.")
    parser.add_argument("--recursive", action="store_true", help="Recurse search into sub-directories.")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Generate mocks for all found interfaces in all sub-directories.",
    )
    parser.add_argument(
        "--inpkg",
        action="store_true",
        help="Generate a mock that goes inside the original package.",
    )
    parser.add_argument(
        "--case",
        default="camel",
        choices=["camel", "underscore"],
        help="Name the mocked file using casing convention.",
    )
    parser.add_argument("--note", default=None, help="Comment to insert into prologue of each generated file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log skipped files and failures.")
    parser.add_argument("--version", action="store_true", help="Print gomockery version.")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.version:
        try:
            print(importlib.metadata.version("gomockery"))
        except importlib.metadata.PackageNotFoundError:
            # Source checkout without installed metadata.
            print("0.0.0")
        return

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    from .config import RunConfig
    from .walk import generate_mocks

    try:
        config = RunConfig.from_args(args)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(1)

    try:
        report = generate_mocks(config)
    except ExtractionError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(1)
    except KeyboardInterrupt:
        raise SystemExit(130)

    for r in report.results:
        if r.ok:
            if r.path is not None:
                print(f"Generating mock for: {r.interface.name}")
        else:
            print(f"Unable to generate mock for '{r.interface.name}': {r.error}")

    if config.name and not report.matched:
        print(f"Unable to find {config.name} in any go files under this path")
        raise SystemExit(1)
    if report.failed:
        raise SystemExit(1)
