"""
Path source for the indexer: collects image files under a directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from ..config import IMAGE_EXTENSIONS, HEIF_EXTENSIONS
from .dependencies import HAS_HEIF_SUPPORT


def _scannable_extensions() -> frozenset[str]:
    # HEIC/HEIF files cannot be decoded without pillow-heif
    if HAS_HEIF_SUPPORT:
        return frozenset(IMAGE_EXTENSIONS)
    return frozenset(IMAGE_EXTENSIONS - HEIF_EXTENSIONS)


def _walk(root: Path, recursive: bool) -> Iterator[Path]:
    entries = root.rglob('*') if recursive else root.iterdir()
    return (entry for entry in entries if entry.is_file())


def find_image_files(root_path: str | Path, recursive: bool = True) -> list[str]:
    """
    List the image files under root_path.

    Matching is by extension only (case-insensitive). Symlinks are resolved,
    so a file reachable through several links appears once.

    Args:
        root_path: Directory to search
        recursive: Descend into subdirectories

    Returns:
        Sorted canonical absolute paths
    """
    extensions = _scannable_extensions()
    return sorted({
        str(entry.resolve())
        for entry in _walk(Path(root_path), recursive)
        if entry.suffix.lower() in extensions
    })


__all__ = ['find_image_files']
