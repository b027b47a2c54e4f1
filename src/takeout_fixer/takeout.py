"""In-memory index of every file found across the input archives."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import DuplicateFileError
from .sidecar import find_sidecar, is_supplemental_metadata_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveFile:
    """A file inside one of the source archives.

    Attributes:
        archive_path: Normalized path inside the archive; unique across the takeout
        source_archive: Archive on disk that holds the file
        index: Position within the archive. Zip entries are fetched by it;
            tar entries are re-located by path during a streaming pass instead.
        size: Declared size in bytes
    """
    archive_path: str
    source_archive: Path
    index: int
    size: int

    def is_supplemental_metadata(self) -> bool:
        return is_supplemental_metadata_path(self.archive_path)


class Takeout:
    """A complete Google Takeout, possibly spread over several archives.

    Files are keyed by archive path. Inserting a path that is already
    present fails with :class:`DuplicateFileError`; the index never picks a
    winner on its own.
    """

    def __init__(self) -> None:
        self._files: Dict[str, ArchiveFile] = {}
        # Lowercased path -> stored key, for case-insensitive sidecar lookup
        self._folded: Dict[str, str] = {}
        self._source_archives: List[Path] = []

    def add_source_archive(self, path: Path) -> None:
        """Register an archive as part of this takeout. Idempotent."""
        path = Path(path)
        if path not in self._source_archives:
            self._source_archives.append(path)

    def insert(self, file: ArchiveFile) -> None:
        """Add a file to the index.

        Raises:
            DuplicateFileError: If a file with the same archive path exists
        """
        existing = self._files.get(file.archive_path)
        if existing is not None:
            raise DuplicateFileError(
                path=file.archive_path,
                existing_archive=existing.source_archive,
                new_archive=file.source_archive,
            )

        self._files[file.archive_path] = file
        self._folded.setdefault(file.archive_path.lower(), file.archive_path)

    def get(self, archive_path: str) -> Optional[ArchiveFile]:
        return self._files.get(archive_path)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, archive_path: object) -> bool:
        return archive_path in self._files

    def files(self) -> Iterator[ArchiveFile]:
        """Iterate over all files (no particular order)."""
        return iter(self._files.values())

    def supplemental_metadata_files(self) -> Iterator[ArchiveFile]:
        """Iterate over the sidecar JSON files."""
        return (f for f in self._files.values() if f.is_supplemental_metadata())

    def source_archives(self) -> List[Path]:
        return list(self._source_archives)

    def files_in_directory(self, dir_path: str) -> List[ArchiveFile]:
        """Return every file below ``dir_path`` (recursively)."""
        prefix = dir_path if dir_path.endswith('/') else f"{dir_path}/"
        return [f for f in self._files.values() if f.archive_path.startswith(prefix)]

    def find_metadata_for(self, media_path: str) -> Optional[ArchiveFile]:
        """Find the sidecar JSON that belongs to ``media_path``.

        Tries every known truncation of the ``supplemental-metadata`` suffix,
        longest first, and returns the first one present in the index.
        """
        return find_sidecar(media_path, self._lookup_folded)

    def _lookup_folded(self, path: str) -> Optional[ArchiveFile]:
        exact = self._files.get(path)
        if exact is not None:
            return exact
        key = self._folded.get(path.lower())
        return self._files.get(key) if key is not None else None

    def __repr__(self) -> str:
        return f"Takeout(files={len(self._files)}, source_archives={len(self._source_archives)})"
