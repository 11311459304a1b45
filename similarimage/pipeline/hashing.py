"""
Perceptual hashing module for the pipeline package.

Provides the DCT based perceptual hash used to fingerprint decoded images,
plus helpers for converting and comparing fingerprints.

The hasher holds no mutable state and performs no I/O, so every hash worker
calls the same instance concurrently without locking.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..config import DEFAULT_HASH_SIZE, DEFAULT_HIGHFREQ_FACTOR
from ..errors import HashError
from ..models import fingerprint_to_hex, hex_to_fingerprint
from .dependencies import Image, imagehash, numpy, scipy


@dataclass(frozen=True)
class PerceptualHasher:
    """
    DCT perceptual hash (pHash variant without the DC term).

    Algorithm:
    1. Convert to greyscale and downsample to (hash_size * highfreq_factor)²
    2. Apply a 2-D type-II DCT
    3. Keep the hash_size x hash_size low-frequency block, skipping the
       DC row and column
    4. Emit one bit per coefficient: 1 if above the block median

    Usage:
        hasher = PerceptualHasher()
        with Image.open(path) as img:
            fingerprint = hasher(img)
    """
    hash_size: int = DEFAULT_HASH_SIZE
    highfreq_factor: int = DEFAULT_HIGHFREQ_FACTOR

    def __post_init__(self):
        if self.hash_size < 2:
            raise ValueError(f"hash_size must be at least 2, got {self.hash_size}")
        if self.highfreq_factor < 2:
            # The block starts at index 1, so the DCT must be wider than hash_size
            raise ValueError(f"highfreq_factor must be at least 2, got {self.highfreq_factor}")

    @property
    def bits(self) -> int:
        """Width of the produced fingerprint in bits."""
        return self.hash_size * self.hash_size

    @property
    def image_size(self) -> int:
        """Side length the image is downsampled to before the DCT."""
        return self.hash_size * self.highfreq_factor

    def __call__(self, image: Image.Image) -> int:
        return self.hash_image(image)

    def hash_image(self, image: Image.Image) -> int:
        """
        Fingerprint a decoded image.

        Args:
            image: Decoded PIL image (any mode Pillow can convert to 'L')

        Returns:
            Unsigned integer fingerprint of self.bits bits

        Raises:
            HashError: For zero-size images or unconvertible pixel data
        """
        width, height = image.size
        if width == 0 or height == 0:
            raise HashError(f"Cannot hash zero-size image ({width}x{height})")

        try:
            grey = image.convert('L').resize(
                (self.image_size, self.image_size),
                Image.Resampling.LANCZOS,
            )
            pixels = numpy.asarray(grey, dtype=numpy.float64)
        except Exception as e:
            raise HashError(f"Cannot convert image (mode={image.mode}): {e}") from e

        dct = scipy.fftpack.dct(scipy.fftpack.dct(pixels, axis=0), axis=1)
        block = dct[1:self.hash_size + 1, 1:self.hash_size + 1]
        median = numpy.median(block)

        return bits_to_fingerprint((block > median).flatten())


def bits_to_fingerprint(bits) -> int:
    """Pack a flat boolean sequence into an integer, first bit most significant."""
    fingerprint = 0
    for bit in bits:
        fingerprint = (fingerprint << 1) | int(bool(bit))
    return fingerprint


def hamming_distance(first: int, second: int) -> int:
    """Number of differing bits between two fingerprints."""
    return bin(first ^ second).count('1')


def to_image_hash(fingerprint: int, hash_size: int = DEFAULT_HASH_SIZE) -> imagehash.ImageHash:
    """
    View a fingerprint as an imagehash.ImageHash.

    Lets fingerprints interoperate with tools built on imagehash
    (subtraction gives the Hamming distance, str() gives hex).
    """
    bits = hash_size * hash_size
    if fingerprint < 0 or fingerprint >= (1 << bits):
        raise ValueError(f"Fingerprint does not fit in {bits} bits")
    flat = [(fingerprint >> (bits - 1 - i)) & 1 for i in range(bits)]
    return imagehash.ImageHash(numpy.array(flat, dtype=bool).reshape(hash_size, hash_size))


__all__ = [
    'PerceptualHasher',
    'bits_to_fingerprint',
    'hamming_distance',
    'to_image_hash',
    'fingerprint_to_hex',
    'hex_to_fingerprint',
]
