"""
Fingerprint distance queries.

Compares stored fingerprints by Hamming distance. Grouping records into
duplicate clusters is left to callers; this module only answers "how far
apart" and "what is within distance D of X".
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional

from .config import DEFAULT_THRESHOLD
from .models import ImageRecord
from .pipeline.hashing import PerceptualHasher, hamming_distance
from .pipeline.loader import decode_image


def is_similar(first: int, second: int, threshold: int = DEFAULT_THRESHOLD) -> bool:
    """
    Check whether two fingerprints are within threshold bits of each other.

    Examples:
        >>> is_similar(0b1010, 0b1000, threshold=1)
        True
        >>> is_similar(0b1010, 0b0101, threshold=3)
        False
    """
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")
    return hamming_distance(first, second) <= threshold


def find_similar(
    records: Iterable[ImageRecord],
    fingerprint: int,
    threshold: int = DEFAULT_THRESHOLD,
    exclude_path: Optional[str] = None,
) -> list[tuple[ImageRecord, int]]:
    """
    Find records whose fingerprint is within threshold of fingerprint.

    Args:
        records: Records to search (e.g. store.iter_records())
        fingerprint: Query fingerprint
        threshold: Maximum Hamming distance (inclusive)
        exclude_path: Path to leave out of the results (the query image)

    Returns:
        (record, distance) pairs, closest first, ties ordered by path
    """
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")

    matches = []
    for record in records:
        if exclude_path is not None and record.path == exclude_path:
            continue
        distance = hamming_distance(record.fingerprint, fingerprint)
        if distance <= threshold:
            matches.append((record, distance))

    matches.sort(key=lambda match: (match[1], match[0].path))
    return matches


def fingerprint_image(filepath: str | Path, hasher: Optional[PerceptualHasher] = None) -> int:
    """
    Decode and fingerprint a single file.

    Raises:
        OSError: If the file cannot be read
        DecodeError: If the file is not a decodable image
        HashError: If the decoded image cannot be hashed
    """
    hasher = hasher or PerceptualHasher()
    image = decode_image(Path(filepath).read_bytes())
    try:
        return hasher(image)
    finally:
        image.close()


__all__ = ['is_similar', 'find_similar', 'fingerprint_image']
