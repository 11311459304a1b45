"""
Third-party imports for the pipeline package.

Pillow, imagehash, numpy and scipy are required. pillow-heif (HEIC/HEIF
decoding) and tqdm (progress bars) are optional and reported through the
HAS_HEIF_SUPPORT and HAS_TQDM flags.

Importing this module also configures Pillow for the pipeline: the
decompression-bomb limit is raised so large scans decode instead of being
quarantined.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any, Optional

from ..config import MAX_IMAGE_PIXELS

_logger = logging.getLogger(__name__)

try:
    from PIL import Image
    import imagehash
    import numpy
    import scipy.fftpack
except ImportError as e:
    raise ImportError(
        f"Missing required package ({e.name}).\n"
        "Install with: pip install Pillow imagehash numpy scipy"
    ) from e

# Must be registered before the first HEIC file is opened
HAS_HEIF_SUPPORT = False
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HAS_HEIF_SUPPORT = True
    _logger.debug("HEIC/HEIF decoding enabled via pillow-heif")
except ImportError:
    _logger.warning(
        "pillow-heif not installed - HEIC/HEIF files will be skipped by discovery. "
        "Install with: pip install pillow-heif"
    )

Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS
warnings.filterwarnings("ignore", category=Image.DecompressionBombWarning)

HAS_TQDM = False
_tqdm_class: Optional[Any] = None
try:
    from tqdm import tqdm as _tqdm_class
    HAS_TQDM = True
except ImportError:
    pass


__all__ = [
    'Image',
    'imagehash',
    'numpy',
    'scipy',
    'HAS_HEIF_SUPPORT',
    'HAS_TQDM',
    '_tqdm_class',
]
