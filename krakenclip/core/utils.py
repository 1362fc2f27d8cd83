"""Utility functions for KrakenClip."""

import gzip
import logging
from pathlib import Path
from typing import IO, Union

from krakenclip.models.errors import InputError

# Logger configuration
logger = logging.getLogger(__name__)

# Static global variables
TAXON_LEVELS = [
    ('D', 'domain'),
    ('K', 'kingdom'),
    ('P', 'phylum'),
    ('C', 'class'),
    ('O', 'order'),
    ('F', 'family'),
    ('G', 'genus'),
    ('S', 'species'),
]
COMMON_RANK_CODES = ['U', 'R', 'D', 'K', 'P', 'C', 'O', 'F', 'G', 'S']
UNCLASSIFIED_NAME = "Unclassified"
FLUSH_THRESHOLD = 1024 * 1024
READ_BUFFER_SIZE = 1024 * 1024

def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the KrakenClip application.

    Args:
        verbose: Whether to enable verbose (DEBUG) logging

    Returns:
        Logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    return logging.getLogger('krakenclip')

def check_input_file(path: Union[str, Path]) -> Path:
    """
    Make sure an input file exists and is a regular file.

    Raises:
        InputError: If the file cannot be found
    """
    path = Path(path)
    if not path.is_file():
        raise InputError(f"Input file not found: {path}")
    return path

def open_text(path: Union[str, Path]) -> IO[str]:
    """Open a plain or gzip-compressed text file for reading."""
    path = check_input_file(path)
    try:
        if str(path).endswith(".gz"):
            return gzip.open(path, "rt", encoding="utf-8", errors="replace")
        return open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        raise InputError(f"Cannot open {path}: {e}")

def open_binary(path: Union[str, Path]) -> IO[bytes]:
    """Open a plain or gzip-compressed file for binary reading."""
    path = check_input_file(path)
    try:
        if str(path).endswith(".gz"):
            return gzip.open(path, "rb")
        return open(path, "rb", buffering=READ_BUFFER_SIZE)
    except OSError as e:
        raise InputError(f"Cannot open {path}: {e}")
