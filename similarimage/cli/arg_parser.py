"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
similarimage command-line interface. Pipeline sizing options default to
None so that unset flags fall back to the user configuration.
"""

from __future__ import annotations

import argparse
from pathlib import Path


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--db',
        type=Path,
        default=None,
        help='Record database file. Default: user config or ~/.similarimage_records.db'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance with index, query, stats and
        config subcommands
    """
    parser = argparse.ArgumentParser(
        prog='similarimage',
        description='Index images by perceptual fingerprint and query for similar ones',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s index /path/to/photos
      Fingerprint every image under the directory (already indexed files are skipped)

  %(prog)s index /path/to/photos --workers 8 --queue-capacity 200
      Index with more hash workers and a smaller decode buffer

  %(prog)s query /path/to/photo.jpg --threshold 5
      List indexed images within 5 bits of the photo

  %(prog)s stats
      Show record database statistics

  %(prog)s config --init
      Create an example configuration file
        """
    )
    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND')
    subparsers.required = True

    # index
    index_parser = subparsers.add_parser(
        'index',
        help='Fingerprint images in a directory and store the records'
    )
    index_parser.add_argument(
        'directory',
        type=Path,
        help='Directory to index'
    )
    index_parser.add_argument(
        '-r', '--no-recursive',
        action='store_true',
        help='Do not scan subdirectories'
    )
    index_parser.add_argument(
        '-l', '--loaders',
        type=_positive_int,
        default=None,
        help='Number of image loader threads'
    )
    index_parser.add_argument(
        '-w', '--workers',
        type=_positive_int,
        default=None,
        help='Number of hash worker threads'
    )
    index_parser.add_argument(
        '--queue-capacity',
        type=_positive_int,
        default=None,
        help='Maximum decoded images held in memory'
    )
    index_parser.add_argument(
        '--batch-size',
        type=_positive_int,
        default=None,
        help='Images drained per worker batch'
    )
    index_parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )
    _add_common_options(index_parser)

    # query
    query_parser = subparsers.add_parser(
        'query',
        help='Find indexed images similar to an image'
    )
    query_parser.add_argument(
        'image',
        type=Path,
        help='Image to compare against the index'
    )
    query_parser.add_argument(
        '-t', '--threshold',
        type=int,
        default=None,
        help='Maximum Hamming distance (0-64, lower=stricter). Default: user config or 8'
    )
    query_parser.add_argument(
        '-n', '--limit',
        type=_positive_int,
        default=None,
        help='Show at most this many matches'
    )
    _add_common_options(query_parser)

    # stats
    stats_parser = subparsers.add_parser(
        'stats',
        help='Show record database statistics'
    )
    stats_parser.add_argument(
        '--cleanup',
        action='store_true',
        help='Remove records for files that no longer exist'
    )
    _add_common_options(stats_parser)

    # config
    config_parser = subparsers.add_parser(
        'config',
        help='Show or create the user configuration'
    )
    config_parser.add_argument(
        '-i', '--init',
        action='store_true',
        help='Create an example configuration file'
    )
    config_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['index', '/path/to/photos', '--workers', '4'])
        >>> args.command
        'index'
        >>> args.workers
        4
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
