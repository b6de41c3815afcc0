#!/usr/bin/env python3
"""
Argument parsing for the Mersenne search entry point.
"""
import argparse
import logging
from typing import Optional

from .bigint import BACKENDS

logger = logging.getLogger(__name__)

DEFAULT_START = 1


def parse_int_with_scientific(value: str) -> int:
    """
    Parse a non-negative integer, supporting scientific notation.

    Examples:
        "1000000" -> 1000000
        "1e6" -> 1000000
        "82589933" -> 82589933

    Raises:
        argparse.ArgumentTypeError: If value cannot be parsed or is negative
    """
    value = value.strip()
    try:
        result = int(value)
    except ValueError:
        try:
            as_float = float(value)
        except ValueError as e:
            raise argparse.ArgumentTypeError(f"Invalid integer or scientific notation: {value}") from e
        if not as_float.is_integer():
            raise argparse.ArgumentTypeError(f"Not a whole number: {value}")
        result = int(as_float)

    if result < 0:
        raise argparse.ArgumentTypeError(f"Value must be non-negative: {value}")
    return result


def parse_start_exponent(value: Optional[str], default: int = DEFAULT_START) -> int:
    """
    Parse the starting exponent, falling back to `default`.

    A missing, unparsable or negative value is not an error; the search
    simply starts from the default.
    """
    if value is None:
        return default
    try:
        return parse_int_with_scientific(value)
    except (argparse.ArgumentTypeError, OverflowError):
        logger.warning(f"Ignoring invalid starting exponent '{value}', starting at {default}")
        return default


def create_search_parser() -> argparse.ArgumentParser:
    """Create argument parser for mersenne_search.py."""
    parser = argparse.ArgumentParser(
        description='Mersenne prime search - threaded Lucas-Lehmer worker pool',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search from p=1 until interrupted
  python3 mersenne_search.py

  # Resume from a given exponent
  python3 mersenne_search.py 9689

  # Check a finite range with 4 workers on GMP
  python3 mersenne_search.py 2 --end 5000 --workers 4 --backend gmpy2
"""
    )

    parser.add_argument('start', nargs='?', default=None,
                        help='Starting exponent (default: 1; invalid values fall back to 1)')
    parser.add_argument('--end', type=parse_int_with_scientific,
                        help='Last exponent to check, inclusive (default: run until interrupted)')

    # Configuration
    parser.add_argument('--config', default='mersenne.yaml', help='Config file path')

    # Pool
    parser.add_argument('--workers', type=int,
                        help='Number of worker threads (default from config: 8)')
    parser.add_argument('--queue-capacity', type=int,
                        help='Bounded task queue capacity (default from config: 100)')

    # Pipeline
    parser.add_argument('--backend', choices=sorted(BACKENDS),
                        help='Big-integer backend (default from config: python)')
    parser.add_argument('--rounds', type=int,
                        help='Miller-Rabin rounds for the probable-prime filters (default from config: 25)')

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    return parser
