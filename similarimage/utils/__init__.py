"""
Utilities package for SimilarImage.

Provides:
- formatters: Human-readable formatting for numbers, durations, and file sizes
- validators: Input validation for CLI arguments
"""

from __future__ import annotations

from . import formatters
from . import validators

from .formatters import format_number, format_duration, format_size
from .validators import validate_directory, validate_image_file, validate_threshold

__all__ = [
    # Submodules
    'formatters',
    'validators',
    # Formatters
    'format_number',
    'format_duration',
    'format_size',
    # Validators
    'validate_directory',
    'validate_image_file',
    'validate_threshold',
]
