"""Command-line argument parsing for the technical debt analyzer."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

COMMANDS = ("debt", "breakdown", "correlation", "trends")


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for an analysis run.

    Returns:
        Parsed CLI arguments containing the API URL, organization, optional
        product area, trend months, log level and the analysis command.
    """
    parser = argparse.ArgumentParser(
        prog="techdebt-analyzer",
        description=(
            "Score technical debt per product area from support tickets and "
            "usage data, and report ticket, correlation and trend analytics."
        ),
    )

    parser.add_argument(
        "command",
        choices=COMMANDS,
        help="Analysis to run.",
    )
    parser.add_argument(
        "--api-url",
        required=True,
        help="Base URL of the support backend API (for example https://host/api).",
    )
    parser.add_argument(
        "--org",
        required=True,
        help="Organization to analyze.",
    )
    parser.add_argument(
        "--product-area",
        default=None,
        help="Restrict the 'debt' analysis to a single product area.",
    )
    parser.add_argument(
        "--months",
        type=_positive_int,
        default=6,
        help="Number of calendar months for trend analysis (default: 6).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity (default: WARNING).",
    )

    return parser.parse_args(argv)
