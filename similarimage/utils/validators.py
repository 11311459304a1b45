"""
Input validation for SimilarImage.

Validators return (is_valid, error_message) tuples so callers can report
the problem without catching exceptions.
"""

from __future__ import annotations

import os


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is readable.

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_image_file(filepath: str) -> tuple[bool, str]:
    """
    Validate that a file exists and is readable.

    Examples:
        >>> validate_image_file('/nonexistent/file.jpg')
        (False, 'File not found: /nonexistent/file.jpg')
    """
    if not os.path.exists(filepath):
        return False, f"File not found: {filepath}"

    if not os.path.isfile(filepath):
        return False, f"Path is not a file: {filepath}"

    if not os.access(filepath, os.R_OK):
        return False, f"File is not readable (permission denied): {filepath}"

    return True, ""


def validate_threshold(threshold: int, max_bits: int = 64) -> tuple[bool, str]:
    """
    Validate that a Hamming distance threshold is within range.

    Args:
        threshold: Threshold value to validate
        max_bits: Fingerprint width in bits

    Examples:
        >>> validate_threshold(10)
        (True, '')
        >>> validate_threshold(100)
        (False, 'Threshold must be between 0 and 64')
    """
    try:
        threshold = int(threshold)
        if not 0 <= threshold <= max_bits:
            return False, f"Threshold must be between 0 and {max_bits}"
        return True, ""
    except (ValueError, TypeError):
        return False, "Threshold must be an integer"


__all__ = [
    'validate_directory',
    'validate_image_file',
    'validate_threshold',
]
