"""
Packaging for SimilarImage.

    pip install -e .            # editable install
    pip install -e .[dev]       # plus pytest
    pip install -e .[progress]  # plus tqdm progress bars
"""

from setuptools import setup, find_packages
from pathlib import Path
import re

HERE = Path(__file__).parent


def read_version() -> str:
    # __version__ in similarimage/__init__.py is the only place it is defined
    source = (HERE / "similarimage" / "__init__.py").read_text(encoding="utf-8")
    match = re.search(r'^__version__\s*=\s*[\'"]([^\'"]+)[\'"]', source, re.MULTILINE)
    if match is None:
        raise RuntimeError("__version__ not found in similarimage/__init__.py")
    return match.group(1)


readme = HERE / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

setup(
    name="similarimage",
    version=read_version(),
    description="Perceptual fingerprint indexing and similarity search for image collections",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "Pillow>=9.1.0",
        "imagehash>=4.0.0",
        "numpy>=1.20.0",
        "scipy>=1.6.0",
        "pillow-heif>=0.10.0",  # HEIC/HEIF format support
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "progress": [
            "tqdm>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "similarimage=similarimage.__main__:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Graphics",
        "Topic :: Utilities",
    ],
    keywords="image perceptual hash phash similarity index dct",
)
