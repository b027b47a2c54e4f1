"""Sidecar JSON name prediction.

Google names the sidecar of ``photo.jpg`` ``photo.jpg.supplemental-metadata.json``,
but when the resulting filename would exceed an internal length limit the
exporter cuts the ``supplemental-metadata`` literal short at any character:
``photo.jpg.supplemental-metadat.json``, ``photo.jpg.supplemental-m.json``,
down to ``photo.jpg.s.json``. Every media path therefore has a fixed set of
possible sidecar names.
"""

from typing import Callable, Iterator, Optional, TypeVar

SUPPLEMENTAL_LITERAL = "supplemental-metadata"

# Longest first; each entry is followed by "json" to form the full suffix
SUPPLEMENTAL_SUFFIXES = tuple(
    f".{SUPPLEMENTAL_LITERAL[:length]}."
    for length in range(len(SUPPLEMENTAL_LITERAL), 0, -1)
)

_FULL_SUFFIXES = tuple(f"{suffix}json" for suffix in SUPPLEMENTAL_SUFFIXES)

T = TypeVar('T')


def is_supplemental_metadata_path(path: str) -> bool:
    """Check whether ``path`` names a sidecar file (case-insensitive)."""
    return path.lower().endswith(_FULL_SUFFIXES)


def sidecar_candidates(media_path: str) -> Iterator[str]:
    """Yield every sidecar path the exporter may have produced for ``media_path``,
    untruncated form first."""
    for suffix in _FULL_SUFFIXES:
        yield f"{media_path}{suffix}"


def find_sidecar(media_path: str, lookup: Callable[[str], Optional[T]]) -> Optional[T]:
    """Return the first candidate sidecar that ``lookup`` resolves.

    ``lookup`` maps a candidate path to an indexed entry or None. If an export
    somehow contains two truncation lengths for the same media file, the
    longer one wins.
    """
    for candidate in sidecar_candidates(media_path):
        found = lookup(candidate)
        if found is not None:
            return found
    return None
