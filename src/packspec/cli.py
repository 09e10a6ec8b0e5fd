"""CLI entry point for running packspec specifications.

Usage:
    packspec
    packspec packspec/ --target py
    packspec packspec.yml -v
"""

import argparse
import logging
import sys

from .plugin import discover_specifications, get_target
from .report import format_feature, format_summary
from .runner import SpecRunner


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="packspec",
        description="Check a package implementation against packspec specifications.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Specification file or directory (default: packspec.yml, then packspec/*.yml).",
    )
    parser.add_argument(
        "--target",
        default=None,
        help="Target identifier for filter tags (default: $PACKSPEC_TARGET or py).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every executed feature and scope binding.",
    )
    return parser


def main(args: list[str] | None = None) -> int:
    """Run specifications and return the process exit code."""
    options = build_parser().parse_args(args)
    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    target = get_target(options.target)
    specs = discover_specifications(options.path, target=target)
    if not specs:
        print(f"No {target} specifications found.")
        return 1

    print(f"\n #  packspec ({target})\n")
    runner = SpecRunner(on_result=lambda result: print(format_feature(result)))
    success = True
    for spec in specs:
        print("---")
        spec_result = runner.run_specification(spec)
        print()
        print(format_summary(spec_result))
        print()
        success = success and spec_result.success

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
