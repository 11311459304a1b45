"""
Configuration constants for SimilarImage.

This module contains all configurable defaults including:
- Supported image extensions
- Pipeline sizing (loader threads, hash workers, buffer capacity, batch size)
- Perceptual hash parameters
"""

import os

# Image extensions picked up by file discovery
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # Formats Pillow decodes natively
    '.ico', '.icns', '.psd', '.tga', '.dds', '.pcx', '.sgi', '.rgb', '.rgba', '.bw',
    '.pbm', '.pgm', '.ppm', '.pnm',
    '.jp2', '.j2k', '.jpf', '.jpx',
    # Requires pillow-heif
    '.heic', '.heif', '.avif',
}

HEIF_EXTENSIONS = {'.heic', '.heif'}

# Loader threads decode files into the bounded buffer
DEFAULT_LOADER_THREADS = 2

# Hash workers drain the buffer, fingerprint images and write records
DEFAULT_WORKER_THREADS = 6

# Maximum number of decoded images held in memory between the two stages
DEFAULT_QUEUE_CAPACITY = 400

# Items a worker drains per wake-up (and per batched store write)
DEFAULT_BATCH_SIZE = 20

# Perceptual hash parameters
# hash_size=8 yields a 64-bit fingerprint; the image is reduced to
# (hash_size * highfreq_factor) squared before the DCT
DEFAULT_HASH_SIZE = 8
DEFAULT_HIGHFREQ_FACTOR = 4

# Default Hamming distance for similarity queries
# Lower = stricter matching (0-64 range)
DEFAULT_THRESHOLD = 8

# Seconds to wait for threads to exit after a stop request
DEFAULT_STOP_TIMEOUT = 10.0

# Decompression bomb limit for Pillow (500 megapixels)
MAX_IMAGE_PIXELS = 500_000_000

# SQLite record store location
RECORD_DB_FILE = os.path.join(os.path.expanduser('~'), '.similarimage_records.db')
