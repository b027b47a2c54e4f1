"""Fix pipeline: index -> sidecar pre-fetch -> per-file processing -> unused report.

Seekable archives are processed one file at a time through a
:class:`ReaderCache`; each sequential archive is processed in a single
forward pass. Per-file failures become :class:`FileOutcome` values folded
into :class:`ProcessStats`; they never stop the run.
"""

import logging
import posixpath
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set

from .archives import ArchiveKind, ReaderCache, TarGzArchiveReader, detect_archive_kind
from .common import LogContext
from .errors import ArchiveReadError, MetadataError, OutputError, classify_error
from .media_types import MediaKind, is_media_file, media_kind
from .metadata import apply_google_metadata, load_exif, write_exif
from .progress import ProgressTracker
from .takeout import ArchiveFile, Takeout

logger = logging.getLogger(__name__)

# Failures that cost one file but never the run
_PER_FILE_ERRORS = (ArchiveReadError, MetadataError, OutputError)


@dataclass
class FileOutcome:
    """Result of handling one media file."""

    archive_path: str
    output_path: Path
    kind: MediaKind
    had_metadata: bool = False
    error: Optional[str] = None
    error_category: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ProcessStats:
    """Counters for one run."""

    media_processed: int = 0
    images_processed_with_metadata: int = 0
    images_processed_without_metadata: int = 0
    videos_copied: int = 0
    metadata_applied: int = 0
    media_copied_without_metadata: int = 0
    unused_metadata_files: int = 0
    errors: int = 0
    unused_metadata: List[str] = field(default_factory=list, repr=False)

    def record(self, outcome: FileOutcome) -> None:
        if not outcome.ok:
            self.errors += 1
            return

        self.media_processed += 1
        if outcome.kind is MediaKind.VIDEO:
            self.videos_copied += 1
            self.media_copied_without_metadata += 1
        elif outcome.had_metadata:
            self.images_processed_with_metadata += 1
            self.metadata_applied += 1
        else:
            self.images_processed_without_metadata += 1
            self.media_copied_without_metadata += 1

    def as_dict(self) -> Dict[str, int]:
        """Counters only, in declaration order."""
        counters = asdict(self)
        counters.pop('unused_metadata')
        return counters


def extract_album_path(archive_path: str, photo_path_prefix: str) -> str:
    """Album (directory below the photos prefix) of an in-archive path.

    >>> extract_album_path("Takeout/Google Photos/Trip 2019/a.jpg", "Takeout/Google Photos/")
    'Trip 2019'
    """
    relative = archive_path
    if archive_path.startswith(photo_path_prefix):
        relative = archive_path[len(photo_path_prefix):]
    return posixpath.dirname(relative)


def output_path_for(output_dir: Path, archive_path: str, photo_path_prefix: str) -> Path:
    """``<output_dir>/<album>/<filename>`` for an in-archive path.

    Raises:
        OutputError: If the path has an empty, ``.`` or ``..`` segment and
            so could resolve outside ``output_dir``
    """
    relative = archive_path
    if archive_path.startswith(photo_path_prefix):
        relative = archive_path[len(photo_path_prefix):]
    if any(part in ('', '.', '..') for part in relative.split('/')):
        raise OutputError(f"Unsafe path in archive: {archive_path}", path=archive_path)

    album = extract_album_path(archive_path, photo_path_prefix)
    filename = posixpath.basename(archive_path)
    if album:
        return Path(output_dir) / album / filename
    return Path(output_dir) / filename


def _decode_sidecar(archive_path: str, data: bytes) -> Optional[str]:
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        logger.warning(f"Sidecar is not valid UTF-8, ignoring: {{'path': {archive_path!r}, 'error': {str(e)!r}}}")
        return None


def build_metadata_cache(takeout: Takeout, readers: ReaderCache) -> Dict[str, str]:
    """Read every sidecar into a path -> JSON text table.

    Seekable archives are read entry by entry through ``readers``; each
    sequential archive gets one forward pass collecting only its sidecars.

    Raises:
        ArchiveReadError: If an archive cannot be read
    """
    by_archive: Dict[Path, List[ArchiveFile]] = {}
    for entry in takeout.supplemental_metadata_files():
        by_archive.setdefault(entry.source_archive, []).append(entry)

    metadata: Dict[str, str] = {}
    for archive in takeout.source_archives():
        entries = by_archive.get(archive)
        if not entries:
            continue

        logger.debug(f"Loading sidecars: {{'archive': {str(archive)!r}, 'count': {len(entries)}}}")
        blobs = readers.get(archive).fetch_many(entries)
        for archive_path, data in blobs.items():
            text = _decode_sidecar(archive_path, data)
            if text is not None:
                metadata[archive_path] = text

    logger.info(f"Sidecars loaded: {{'count': {len(metadata)}}}")
    return metadata


def _write_bytes(path: Path, data: bytes) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise OutputError(f"Failed to write {path}: {e}", path=str(path)) from e


class TakeoutProcessor:
    """Runs the fix pipeline over an indexed Takeout.

    Example:
        >>> takeout = build_takeout(paths, "Takeout/Google Photos/")
        >>> stats = TakeoutProcessor(takeout, Path("out"), "Takeout/Google Photos/").run()
    """

    def __init__(
        self,
        takeout: Takeout,
        output_dir: Path,
        photo_path_prefix: str,
        dry_run: bool = False,
        show_progress: bool = True,
        progress_log_interval: int = 100,
    ):
        self.takeout = takeout
        self.output_dir = Path(output_dir)
        self.photo_path_prefix = photo_path_prefix
        self.dry_run = dry_run
        self.show_progress = show_progress
        self.progress_log_interval = progress_log_interval

        self._metadata: Dict[str, str] = {}
        self._used_metadata: Set[str] = set()
        self._progress: Optional[ProgressTracker] = None

    def run(self) -> ProcessStats:
        """Process every media file in the index.

        Returns:
            Counters for the run

        Raises:
            ArchiveReadError: If a sidecar pre-fetch fails
        """
        stats = ProcessStats()
        self._used_metadata = set()

        with ReaderCache() as readers:
            self._metadata = build_metadata_cache(self.takeout, readers)

            seekable: List[ArchiveFile] = []
            sequential: Dict[Path, int] = {}
            for file in self.takeout.files():
                if not is_media_file(file.archive_path):
                    continue
                if detect_archive_kind(file.source_archive) is ArchiveKind.SEQUENTIAL:
                    sequential[file.source_archive] = sequential.get(file.source_archive, 0) + 1
                else:
                    seekable.append(file)

            total = len(seekable) + sum(sequential.values())
            logger.info(f"Processing media: {{'total': {total}, 'dry_run': {self.dry_run}}}")
            if self.show_progress:
                self._progress = ProgressTracker(total_files=total, log_interval=self.progress_log_interval)

            seekable.sort(key=lambda f: (str(f.source_archive), f.index))
            for file in seekable:
                outcome = self._process_file(file, lambda file=file: readers.fetch(file))
                self._record(stats, outcome)

            for archive in self.takeout.source_archives():
                expected = sequential.get(archive, 0)
                if expected:
                    self._process_sequential_archive(archive, expected, stats)

        self._report_unused_metadata(stats)

        if self._progress is not None:
            self._progress.log_final_summary(stats)

        return stats

    def _record(self, stats: ProcessStats, outcome: FileOutcome) -> None:
        stats.record(outcome)
        if self._progress is not None:
            self._progress.advance(outcome)

    def _process_sequential_archive(self, archive: Path, expected: int, stats: ProcessStats) -> None:
        """One forward pass over a tar.gz, handling media in stream order.

        A read failure leaves the stream cursor in an unknown state, so it
        ends the pass. Every media file of the archive that was not recorded
        by then counts as one error, and the failure itself costs at least
        one.
        """
        done = 0
        failed = False
        with LogContext(logger, archive=str(archive)):
            logger.info(f"Streaming archive: {{'archive': {str(archive)!r}, 'media': {expected}}}")
            try:
                with TarGzArchiveReader(archive) as reader:
                    for entry in reader.stream():
                        file = self.takeout.get(entry.archive_path)
                        if file is None or not is_media_file(file.archive_path):
                            continue

                        if self.dry_run:
                            entry.drain()
                            outcome = self._process_file(file, None)
                        else:
                            data = entry.read()
                            outcome = self._process_file(file, lambda data=data: data)
                        self._record(stats, outcome)
                        done += 1
            except ArchiveReadError as e:
                logger.error(
                    f"Aborting archive after read failure: {{'archive': {str(archive)!r}, "
                    f"'processed': {done}, 'expected': {expected}, 'error': {str(e)!r}}}"
                )
                failed = True

        lost = expected - done
        if failed:
            stats.errors += max(1, lost)
        elif lost > 0:
            logger.error(
                f"Media missing from archive stream: {{'archive': {str(archive)!r}, "
                f"'found': {done}, 'expected': {expected}}}"
            )
            stats.errors += lost

    def _fail(self, outcome: FileOutcome, error: Exception) -> None:
        outcome.error = str(error)
        outcome.error_category = classify_error(error)
        logger.error(
            f"Failed to process file: {{'path': {outcome.archive_path!r}, "
            f"'category': {outcome.error_category!r}, 'error': {str(error)!r}}}"
        )

    def _process_file(self, file: ArchiveFile, load: Optional[Callable[[], bytes]]) -> FileOutcome:
        """Handle one media file; ``load`` supplies its bytes (unused in dry run)."""
        kind = media_kind(file.archive_path)

        sidecar = self.takeout.find_metadata_for(file.archive_path)
        if sidecar is not None:
            self._used_metadata.add(sidecar.archive_path)

        try:
            output_path = output_path_for(self.output_dir, file.archive_path, self.photo_path_prefix)
        except OutputError as e:
            outcome = FileOutcome(archive_path=file.archive_path, output_path=self.output_dir, kind=kind)
            self._fail(outcome, e)
            return outcome
        outcome = FileOutcome(archive_path=file.archive_path, output_path=output_path, kind=kind)

        metadata_json: Optional[str] = None
        if sidecar is not None:
            metadata_json = self._metadata.get(sidecar.archive_path)
            if metadata_json is None:
                logger.warning(
                    f"Sidecar not loaded, processing without metadata: "
                    f"{{'path': {file.archive_path!r}, 'sidecar': {sidecar.archive_path!r}}}"
                )

        if self.dry_run:
            outcome.had_metadata = kind is MediaKind.IMAGE and metadata_json is not None
            action = "apply metadata and write" if outcome.had_metadata else "copy"
            logger.info(f"[DRY RUN] Would {action}: {{'path': {file.archive_path!r}, 'output': {str(output_path)!r}}}")
            return outcome

        logger.debug(f"Processing: {{'path': {file.archive_path!r}, 'sidecar': {metadata_json is not None}}}")

        try:
            data = load()
            if kind is MediaKind.IMAGE:
                outcome.had_metadata = self._write_image(data, metadata_json, output_path)
            else:
                _write_bytes(output_path, data)
        except _PER_FILE_ERRORS as e:
            self._fail(outcome, e)

        return outcome

    def _write_image(self, data: bytes, metadata_json: Optional[str], output_path: Path) -> bool:
        """Write an image, embedding sidecar metadata when there is any.

        Translation errors propagate before anything is written. A failure
        to embed the tags is logged; the image bytes stay on disk.

        Returns:
            True if a sidecar was applied
        """
        if metadata_json is None:
            _write_bytes(output_path, data)
            return False

        exif_dict = apply_google_metadata(metadata_json, load_exif(data))
        _write_bytes(output_path, data)

        try:
            write_exif(output_path, exif_dict)
        except Exception as e:
            logger.warning(f"Could not embed EXIF metadata: {{'path': {str(output_path)!r}, 'error': {str(e)!r}}}")

        return True

    def _report_unused_metadata(self, stats: ProcessStats) -> None:
        unused = sorted(
            entry.archive_path
            for entry in self.takeout.supplemental_metadata_files()
            if entry.archive_path not in self._used_metadata
        )
        stats.unused_metadata = unused
        stats.unused_metadata_files = len(unused)

        if unused:
            logger.warning(f"Sidecars with no matching media: {{'count': {len(unused)}}}")
            for path in unused:
                logger.warning(f"Unused sidecar: {{'path': {path!r}}}")


def process_takeout(
    takeout: Takeout,
    output_dir: Path,
    photo_path_prefix: str,
    dry_run: bool = False,
    show_progress: bool = True,
    progress_log_interval: int = 100,
) -> ProcessStats:
    """Run the fix pipeline over ``takeout`` and return its counters."""
    processor = TakeoutProcessor(
        takeout=takeout,
        output_dir=output_dir,
        photo_path_prefix=photo_path_prefix,
        dry_run=dry_run,
        show_progress=show_progress,
        progress_log_interval=progress_log_interval,
    )
    return processor.run()
