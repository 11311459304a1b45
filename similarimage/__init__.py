"""
SimilarImage
============
Perceptual fingerprint indexing for large image collections.

Features:
- Bounded producer/consumer pipeline: loader threads decode, hash workers fingerprint
- 64-bit DCT perceptual hash per image
- SQLite record store with quarantine for undecodable files
- Idempotent re-runs (already indexed and bad files are skipped)
- Hamming distance similarity queries
- CLI for automation
"""

__version__ = "1.0.0"

from .models import ImageRecord, BadFileRecord, BatchWriteResult, RunStats, IndexerSettings
from .config import IMAGE_EXTENSIONS, DEFAULT_THRESHOLD
from .errors import (
    SimilarImageError,
    DecodeError,
    HashError,
    StoreError,
    DuplicateRecordError,
    StoreUnavailableError,
)
from .pipeline import (
    find_image_files,
    PerceptualHasher,
    hamming_distance,
    ImageLoader,
    HashWorkerPool,
    ProgressSink,
    NullProgress,
    LoggingProgress,
    TqdmProgress,
)
from .database import RecordStore, SQLiteRecordStore, open_store
from .indexer import ImageIndexer
from .similarity import is_similar, find_similar, fingerprint_image

__all__ = [
    "ImageRecord",
    "BadFileRecord",
    "BatchWriteResult",
    "RunStats",
    "IndexerSettings",
    "IMAGE_EXTENSIONS",
    "DEFAULT_THRESHOLD",
    "SimilarImageError",
    "DecodeError",
    "HashError",
    "StoreError",
    "DuplicateRecordError",
    "StoreUnavailableError",
    "find_image_files",
    "PerceptualHasher",
    "hamming_distance",
    "ImageLoader",
    "HashWorkerPool",
    "ProgressSink",
    "NullProgress",
    "LoggingProgress",
    "TqdmProgress",
    "RecordStore",
    "SQLiteRecordStore",
    "open_store",
    "ImageIndexer",
    "is_similar",
    "find_similar",
    "fingerprint_image",
]
