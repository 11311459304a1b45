"""
Report formatting and display for the CLI interface.

Prints run summaries, similarity query results and store statistics in a
human-readable format.
"""

from __future__ import annotations

from typing import Optional

from ..models import ImageRecord, RunStats
from ..utils.formatters import format_duration, format_number, format_size


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def print_run_summary(stats: RunStats, stopped: bool = False) -> None:
    """
    Print the counters of an indexing run.

    Args:
        stats: Counter snapshot returned by ImageIndexer.join()
        stopped: True if the run was stopped before completing
    """
    print("\n" + "=" * 70)
    print("INDEXING SUMMARY" + (" (STOPPED)" if stopped else ""))
    print("=" * 70)

    print(f"\nProcessed:       {format_number(stats.processed)} / {format_number(stats.total)} files")
    print(f"New records:     {format_number(stats.records_added)}")
    print(f"Already indexed: {format_number(stats.skipped)}")
    print(f"Bad files:       {format_number(stats.bad_files)}")

    failures = stats.read_failures + stats.hash_failures + stats.write_failures
    if failures:
        print(f"Failures:        {format_number(stats.read_failures)} read, "
              f"{format_number(stats.hash_failures)} hash, "
              f"{format_number(stats.write_failures)} write")

    print(f"\nElapsed:         {format_duration(stats.elapsed_seconds)} "
          f"({stats.rate:.1f} files/s)")
    print("=" * 70)


def print_query_results(
    query_path: str,
    fingerprint: int,
    matches: list[tuple[ImageRecord, int]],
    threshold: int,
    limit: Optional[int] = None,
) -> None:
    """
    Print the records matching a similarity query.

    Args:
        query_path: Image the query was made for
        fingerprint: Fingerprint of the query image
        matches: (record, distance) pairs, closest first
        threshold: Distance threshold used
        limit: Maximum number of matches to print
    """
    _print_section_header(f"SIMILAR IMAGES (threshold={threshold})")
    print(f"Query: {query_path}")
    print(f"Fingerprint: {fingerprint:016x}")

    if not matches:
        print("\nNo similar images found.")
        return

    shown = matches if limit is None else matches[:limit]
    print(f"\n{format_number(len(matches))} match(es):")
    for record, distance in shown:
        print(f"  [{distance:2d}] {record.path}")

    if len(shown) < len(matches):
        print(f"  ... and {format_number(len(matches) - len(shown))} more")


def print_store_stats(stats: dict) -> None:
    """Print record store statistics as returned by get_stats()."""
    _print_section_header("RECORD DATABASE")
    print(f"Location:  {stats['db_path']}")
    print(f"Records:   {format_number(stats['total_records'])}")
    print(f"Bad files: {format_number(stats['bad_files'])}")
    print(f"Size:      {format_size(stats['db_size_bytes'])}")


__all__ = ['print_run_summary', 'print_query_results', 'print_store_stats']
