"""
Allow running the package with: python -m similarimage

Examples:
    python -m similarimage index /path/to/photos      # Fingerprint a directory
    python -m similarimage query /path/to/photo.jpg   # Find similar images
    python -m similarimage stats                      # Record database statistics
    python -m similarimage config --init              # Create example config file
"""

import sys


def main():
    from .cli import main as cli_main
    sys.exit(cli_main())


if __name__ == '__main__':
    main()
