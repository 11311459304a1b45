"""
Data models for SimilarImage.

Contains dataclasses for persisted records, batch write results, run
statistics and indexer settings.
"""

from dataclasses import dataclass, field
from typing import Optional
import os

from .config import (
    DEFAULT_LOADER_THREADS,
    DEFAULT_WORKER_THREADS,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_HASH_SIZE,
    DEFAULT_HIGHFREQ_FACTOR,
    DEFAULT_STOP_TIMEOUT,
)


def fingerprint_to_hex(fingerprint: int) -> str:
    """Render a fingerprint as zero-padded hex (16 digits for 64 bits)."""
    return format(fingerprint, 'x').zfill(16)


def hex_to_fingerprint(value: str) -> int:
    """Parse a hex fingerprint back into an integer."""
    return int(value, 16)


@dataclass(frozen=True)
class ImageRecord:
    """
    A persisted {path, fingerprint} pair.

    Attributes:
        path: Absolute path to the image file (identity key)
        fingerprint: Unsigned perceptual hash of the decoded image
    """
    path: str
    fingerprint: int

    @property
    def filename(self) -> str:
        """Return just the filename portion of the path."""
        return os.path.basename(self.path)

    @property
    def fingerprint_hex(self) -> str:
        """Return the fingerprint as hex, the form it is stored in."""
        return fingerprint_to_hex(self.fingerprint)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'path': self.path,
            'filename': self.filename,
            'fingerprint': self.fingerprint_hex,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ImageRecord':
        """Create ImageRecord from dictionary."""
        fingerprint = data['fingerprint']
        if isinstance(fingerprint, str):
            fingerprint = hex_to_fingerprint(fingerprint)
        return cls(path=data['path'], fingerprint=fingerprint)


@dataclass(frozen=True)
class BadFileRecord:
    """A file that failed to decode and is skipped on later runs."""
    path: str
    reason: Optional[str] = None


@dataclass
class BatchWriteResult:
    """
    Outcome of a batched record write.

    Attributes:
        added: Number of records inserted
        failures: (path, StoreError) for every record that was rejected
    """
    added: int = 0
    failures: list = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class RunStats:
    """Counter snapshot for one indexing run."""
    total: int = 0
    processed: int = 0
    hashed: int = 0
    records_added: int = 0
    skipped: int = 0
    bad_files: int = 0
    read_failures: int = 0
    hash_failures: int = 0
    write_failures: int = 0
    elapsed_seconds: float = 0.0

    @property
    def complete(self) -> bool:
        """True once every submitted path has been through the loader."""
        return self.processed >= self.total

    @property
    def rate(self) -> float:
        """Processed files per second."""
        if self.elapsed_seconds <= 0:
            return 0.0
        return self.processed / self.elapsed_seconds

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'processed': self.processed,
            'hashed': self.hashed,
            'records_added': self.records_added,
            'skipped': self.skipped,
            'bad_files': self.bad_files,
            'read_failures': self.read_failures,
            'hash_failures': self.hash_failures,
            'write_failures': self.write_failures,
            'elapsed_seconds': round(self.elapsed_seconds, 3),
        }


@dataclass
class IndexerSettings:
    """
    Sizing for an indexing run.

    Attributes:
        loader_threads: Threads decoding files into the buffer
        worker_threads: Threads hashing and persisting buffered images
        queue_capacity: Maximum decoded images held between the stages
        batch_size: Items drained per worker wake-up
        hash_size: Side of the retained DCT block (bits = hash_size ** 2), at least 2
        highfreq_factor: Downsample side = hash_size * highfreq_factor, at least 2
        stop_timeout: Seconds to wait for threads after a stop request
    """
    loader_threads: int = DEFAULT_LOADER_THREADS
    worker_threads: int = DEFAULT_WORKER_THREADS
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    batch_size: int = DEFAULT_BATCH_SIZE
    hash_size: int = DEFAULT_HASH_SIZE
    highfreq_factor: int = DEFAULT_HIGHFREQ_FACTOR
    stop_timeout: float = DEFAULT_STOP_TIMEOUT

    def __post_init__(self):
        for name in ('loader_threads', 'worker_threads', 'queue_capacity',
                     'batch_size', 'hash_size', 'highfreq_factor'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.hash_size < 2 or self.highfreq_factor < 2:
            raise ValueError("hash_size and highfreq_factor must be at least 2")
        if self.stop_timeout <= 0:
            raise ValueError(f"stop_timeout must be positive, got {self.stop_timeout!r}")

    @property
    def hash_bits(self) -> int:
        return self.hash_size * self.hash_size
