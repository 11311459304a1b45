"""
Exception hierarchy for SimilarImage.

Only StoreUnavailableError is fatal to an indexing run; every other error is
handled per file inside the pipeline threads.
"""


class SimilarImageError(Exception):
    """Base class for all SimilarImage errors."""


class DecodeError(SimilarImageError):
    """A file could not be decoded into an image."""


class HashError(SimilarImageError):
    """A decoded image could not be fingerprinted."""


class StoreError(SimilarImageError):
    """A record store operation failed."""


class DuplicateRecordError(StoreError):
    """A record for this path already exists."""


class StoreUnavailableError(StoreError):
    """The record store cannot be reached at all."""


__all__ = [
    'SimilarImageError',
    'DecodeError',
    'HashError',
    'StoreError',
    'DuplicateRecordError',
    'StoreUnavailableError',
]
