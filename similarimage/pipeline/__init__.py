"""
Pipeline package for SimilarImage.

Turns image paths into persisted perceptual fingerprints using a bounded
producer/consumer pipeline: loader threads decode files into a bounded
buffer, and a pool of hash workers drains it in batches.

Public API:
- find_image_files: Discover image files in directories
- PerceptualHasher: DCT perceptual hash of a decoded image
- hamming_distance: Bit distance between two fingerprints
- ImageLoader: Decoding stage with backpressure
- HashWorkerPool: Hashing and persisting stage
- BlockingQueue: Monitor-based queue shared by the stages
- ProgressSink and its implementations
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .discovery import find_image_files
from .hashing import (
    PerceptualHasher,
    hamming_distance,
    to_image_hash,
    fingerprint_to_hex,
    hex_to_fingerprint,
)
from .queues import BlockingQueue, QueueClosed
from .counters import AtomicCounter, PipelineCounters
from .progress import ProgressSink, NullProgress, LoggingProgress, TqdmProgress
from .loader import ImageLoader, decode_image
from .worker import HashWorkerPool

from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # File discovery
    'find_image_files',
    # Hashing
    'PerceptualHasher',
    'hamming_distance',
    'to_image_hash',
    'fingerprint_to_hex',
    'hex_to_fingerprint',
    # Queue and counters
    'BlockingQueue',
    'QueueClosed',
    'AtomicCounter',
    'PipelineCounters',
    # Progress
    'ProgressSink',
    'NullProgress',
    'LoggingProgress',
    'TqdmProgress',
    # Stages
    'ImageLoader',
    'decode_image',
    'HashWorkerPool',
    # Feature detection
    'has_heif_support',
]
