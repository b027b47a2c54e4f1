"""Path normalization shared by the archive scan and the streaming passes."""

import unicodedata
from pathlib import Path


def normalize_path(path: Path | str) -> str:
    """
    Normalize a path for consistent storage and comparison.

    Applies Unicode NFC normalization and converts backslashes to forward
    slashes, so the same logical name compares equal regardless of which
    archiver or filesystem produced it.

    Args:
        path: Path object or string to normalize

    Returns:
        Normalized path string

    Examples:
        >>> normalize_path(Path("café/résumé.txt"))
        'café/résumé.txt'
        >>> normalize_path(r"Takeout\\Google Photos\\a.jpg")
        'Takeout/Google Photos/a.jpg'
    """
    normalized = unicodedata.normalize('NFC', str(path))
    return normalized.replace('\\', '/')


def normalize_archive_path(name: str) -> str:
    """Normalize an entry name recorded inside an archive.

    On top of :func:`normalize_path`, strips the ``./`` and ``/`` prefixes
    that ``tar -C dir .`` and some zip tools put in front of every member.

    Examples:
        >>> normalize_archive_path("./Takeout/Google Photos/a.jpg")
        'Takeout/Google Photos/a.jpg'
    """
    normalized = normalize_path(name)
    while normalized.startswith('./'):
        normalized = normalized[2:]
    return normalized.lstrip('/')
