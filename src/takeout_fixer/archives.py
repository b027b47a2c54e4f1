"""Archive readers for Google Takeout exports.

Takeout ships either ``.zip`` files, whose entries can be fetched by index in
any order, or ``.tar.gz`` files, which can only be read front to back. Both
are wrapped in an :class:`ArchiveReader` so the rest of the pipeline asks for
"the bytes of these entries" without caring which kind it is talking to.
"""

import logging
import tarfile
import zipfile
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .common import normalize_archive_path
from .errors import ArchiveReadError, UnsupportedArchiveError
from .takeout import ArchiveFile, Takeout

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024

# Errors the zip/tar/gzip modules raise on truncated or corrupt input
_READ_ERRORS = (OSError, EOFError, zlib.error, zipfile.BadZipFile, tarfile.TarError)


class ArchiveKind(str, Enum):
    """How entries of an archive can be reached."""

    SEEKABLE = "zip"
    SEQUENTIAL = "tar.gz"


EXTENSION_MAP = {
    '.zip': ArchiveKind.SEEKABLE,
    '.tar.gz': ArchiveKind.SEQUENTIAL,
    '.tgz': ArchiveKind.SEQUENTIAL,
}


def detect_archive_kind(path: Path) -> Optional[ArchiveKind]:
    """Detect the archive kind from the file name, or None if unsupported."""
    name = Path(path).name.lower()
    for ext, kind in EXTENSION_MAP.items():
        if name.endswith(ext):
            return kind
    return None


def is_archive_file(path: Path) -> bool:
    return detect_archive_kind(path) is not None


class ArchiveReader(ABC):
    """Common interface over seekable and sequential-only archives."""

    kind: ArchiveKind

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @abstractmethod
    def scan(self, prefix: str) -> Iterator[ArchiveFile]:
        """Yield every regular file whose normalized path starts with ``prefix``."""

    @abstractmethod
    def fetch_many(self, entries: Iterable[ArchiveFile]) -> Dict[str, bytes]:
        """Return the bytes of ``entries`` keyed by archive path."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"


class ZipArchiveReader(ArchiveReader):
    """Random access by entry index. The zip file is opened on first use
    and stays open until :meth:`close`."""

    kind = ArchiveKind.SEEKABLE

    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self._zip: Optional[zipfile.ZipFile] = None
        self._infos: List[zipfile.ZipInfo] = []

    def _open(self) -> zipfile.ZipFile:
        if self._zip is None:
            try:
                self._zip = zipfile.ZipFile(self.path, 'r')
            except _READ_ERRORS as e:
                raise ArchiveReadError(
                    f"Failed to read zip archive {self.path}: {e}", archive=str(self.path)
                ) from e
            self._infos = self._zip.infolist()
            logger.debug(f"Opened zip archive: {{'path': {str(self.path)!r}, 'entries': {len(self._infos)}}}")
        return self._zip

    def scan(self, prefix: str) -> Iterator[ArchiveFile]:
        self._open()
        for index, info in enumerate(self._infos):
            if info.is_dir():
                continue
            name = normalize_archive_path(info.filename)
            if name.startswith(prefix):
                yield ArchiveFile(
                    archive_path=name,
                    source_archive=self.path,
                    index=index,
                    size=info.file_size,
                )

    def fetch(self, entry: ArchiveFile) -> bytes:
        """Read one entry by its index.

        Raises:
            ArchiveReadError: If the entry cannot be read or the index does
                not point at the expected path
        """
        zf = self._open()
        if not 0 <= entry.index < len(self._infos):
            raise ArchiveReadError(
                f"Entry index {entry.index} out of range in {self.path}",
                archive=str(self.path), path=entry.archive_path,
            )

        info = self._infos[entry.index]
        if normalize_archive_path(info.filename) != entry.archive_path:
            raise ArchiveReadError(
                f"Entry {entry.index} in {self.path} is '{info.filename}', "
                f"expected '{entry.archive_path}'",
                archive=str(self.path), path=entry.archive_path,
            )

        try:
            return zf.read(info)
        except (*_READ_ERRORS, RuntimeError) as e:
            # RuntimeError: encrypted entry without a password
            raise ArchiveReadError(
                f"Failed to read '{entry.archive_path}' from {self.path}: {e}",
                archive=str(self.path), path=entry.archive_path,
            ) from e

    def fetch_many(self, entries: Iterable[ArchiveFile]) -> Dict[str, bytes]:
        return {entry.archive_path: self.fetch(entry) for entry in entries}

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
            self._infos = []


@dataclass
class StreamEntry:
    """One regular file met during a forward pass over a sequential archive.

    The content can be consumed once, with :meth:`read` or :meth:`drain`,
    and only until the pass moves on to the next entry.
    """
    archive_path: str
    index: int
    size: int
    _fileobj: Optional[object] = field(default=None, repr=False)
    _archive: Path = field(default=Path(), repr=False)
    consumed: bool = False

    def read(self) -> bytes:
        """Read the whole entry.

        Raises:
            ArchiveReadError: If decompression fails; the stream position is
                lost and the rest of the archive cannot be read
        """
        self._check_unconsumed()
        self.consumed = True
        if self._fileobj is None:
            return b""
        try:
            return self._fileobj.read()
        except _READ_ERRORS as e:
            raise ArchiveReadError(
                f"Failed to read '{self.archive_path}' from {self._archive}: {e}",
                archive=str(self._archive), path=self.archive_path,
            ) from e

    def drain(self) -> None:
        """Read through the entry without keeping its bytes."""
        self._check_unconsumed()
        self.consumed = True
        if self._fileobj is None:
            return
        try:
            while self._fileobj.read(READ_CHUNK_SIZE):
                pass
        except _READ_ERRORS as e:
            raise ArchiveReadError(
                f"Failed to skip '{self.archive_path}' in {self._archive}: {e}",
                archive=str(self._archive), path=self.archive_path,
            ) from e

    def _check_unconsumed(self) -> None:
        if self.consumed:
            raise ArchiveReadError(
                f"Entry '{self.archive_path}' was already consumed",
                archive=str(self._archive), path=self.archive_path,
            )


class TarGzArchiveReader(ArchiveReader):
    """Gzip-compressed tar read strictly front to back.

    Each call to :meth:`scan`, :meth:`fetch_many` or :meth:`stream` makes
    one full forward pass over a freshly opened stream.
    """

    kind = ArchiveKind.SEQUENTIAL

    def _open_stream(self) -> tarfile.TarFile:
        try:
            return tarfile.open(self.path, mode='r|gz')
        except _READ_ERRORS as e:
            raise ArchiveReadError(
                f"Failed to open tar archive {self.path}: {e}", archive=str(self.path)
            ) from e

    def _members(self, tf: tarfile.TarFile) -> Iterator[tuple[int, tarfile.TarInfo]]:
        iterator = iter(tf)
        index = 0
        while True:
            try:
                member = next(iterator)
            except StopIteration:
                return
            except _READ_ERRORS as e:
                raise ArchiveReadError(
                    f"Failed to read tar entries from {self.path}: {e}", archive=str(self.path)
                ) from e
            yield index, member
            index += 1

    def scan(self, prefix: str) -> Iterator[ArchiveFile]:
        with self._open_stream() as tf:
            for index, member in self._members(tf):
                if not member.isfile():
                    continue
                name = normalize_archive_path(member.name)
                if name.startswith(prefix):
                    yield ArchiveFile(
                        archive_path=name,
                        source_archive=self.path,
                        index=index,
                        size=member.size,
                    )

    def fetch_many(self, entries: Iterable[ArchiveFile]) -> Dict[str, bytes]:
        """Collect the wanted entries in a single forward pass.

        Everything else is skipped; the pass ends early once every wanted
        entry has been found.
        """
        wanted = {entry.archive_path for entry in entries}
        found: Dict[str, bytes] = {}
        if not wanted:
            return found

        for entry in self.stream():
            if entry.archive_path in wanted:
                found[entry.archive_path] = entry.read()
                if len(found) == len(wanted):
                    break

        missing = wanted - found.keys()
        if missing:
            logger.warning(f"Entries not found during pass: {{'archive': {str(self.path)!r}, 'missing': {len(missing)}}}")
        return found

    def stream(self) -> Iterator[StreamEntry]:
        """Yield every regular file in physical order.

        An entry the caller did not consume is drained before the pass moves
        on, so the cursor always sits at the next member header.
        """
        with self._open_stream() as tf:
            for index, member in self._members(tf):
                if not member.isfile():
                    continue
                try:
                    fileobj = tf.extractfile(member)
                except _READ_ERRORS as e:
                    raise ArchiveReadError(
                        f"Failed to open '{member.name}' in {self.path}: {e}",
                        archive=str(self.path), path=member.name,
                    ) from e

                entry = StreamEntry(
                    archive_path=normalize_archive_path(member.name),
                    index=index,
                    size=member.size,
                    _fileobj=fileobj,
                    _archive=self.path,
                )
                yield entry
                if not entry.consumed:
                    entry.drain()


def open_archive_reader(path: Path) -> ArchiveReader:
    """Create the reader matching the archive's file name.

    Raises:
        UnsupportedArchiveError: If the extension is not .zip, .tar.gz or .tgz
    """
    kind = detect_archive_kind(path)
    if kind is ArchiveKind.SEEKABLE:
        return ZipArchiveReader(path)
    if kind is ArchiveKind.SEQUENTIAL:
        return TarGzArchiveReader(path)
    raise UnsupportedArchiveError(
        f"Unsupported archive format: {Path(path).name}", archive=str(path)
    )


class ReaderCache:
    """Open readers for one run, keyed by archive path.

    A reader is created the first time its archive is asked for and reused
    afterwards, so every zip is opened at most once per run. :meth:`close`
    (or leaving the ``with`` block) closes all of them.
    """

    def __init__(self, factory: Callable[[Path], ArchiveReader] = open_archive_reader) -> None:
        self._factory = factory
        self._readers: Dict[Path, ArchiveReader] = {}

    def get(self, path: Path) -> ArchiveReader:
        path = Path(path)
        reader = self._readers.get(path)
        if reader is None:
            reader = self._factory(path)
            self._readers[path] = reader
        return reader

    def fetch(self, entry: ArchiveFile) -> bytes:
        """Fetch a single entry from a seekable archive."""
        reader = self.get(entry.source_archive)
        if not isinstance(reader, ZipArchiveReader):
            raise ArchiveReadError(
                f"Cannot fetch '{entry.archive_path}' by index from sequential archive {entry.source_archive}",
                archive=str(entry.source_archive), path=entry.archive_path,
            )
        return reader.fetch(entry)

    def __len__(self) -> int:
        return len(self._readers)

    def close(self) -> None:
        for reader in self._readers.values():
            reader.close()
        self._readers.clear()

    def __enter__(self) -> "ReaderCache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def load_archive_into_takeout(takeout: Takeout, path: Path, photo_path_prefix: str) -> int:
    """Index every file under ``photo_path_prefix`` in one archive.

    Returns:
        Number of files added

    Raises:
        UnsupportedArchiveError: If the archive type is not supported
        ArchiveReadError: If the archive cannot be read
        DuplicateFileError: If a path is already indexed from another archive
    """
    path = Path(path)
    takeout.add_source_archive(path)

    count = 0
    with open_archive_reader(path) as reader:
        for archive_file in reader.scan(photo_path_prefix):
            logger.debug(f"Found: {{'path': {archive_file.archive_path!r}, 'size': {archive_file.size}}}")
            takeout.insert(archive_file)
            count += 1

    logger.info(f"Loaded archive: {{'archive': {str(path)!r}, 'kind': {reader.kind.value!r}, 'files': {count}}}")
    return count


def build_takeout(archive_paths: Iterable[Path], photo_path_prefix: str) -> Takeout:
    """Scan all archives into a single :class:`Takeout` index.

    Any error aborts the scan; the index is useless if part of the input
    could not be read.
    """
    takeout = Takeout()
    for path in archive_paths:
        logger.info(f"Reading archive: {{'archive': {str(path)!r}}}")
        load_archive_into_takeout(takeout, Path(path), photo_path_prefix)

    logger.info(
        f"Takeout indexed: {{'files': {len(takeout)}, "
        f"'source_archives': {len(takeout.source_archives())}}}"
    )
    return takeout
