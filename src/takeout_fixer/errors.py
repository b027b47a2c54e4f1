"""Error classes for takeout-fixer."""

from pathlib import Path

from .common import TakeoutFixerError

ISSUES_URL = "https://github.com/takeout-fixer/takeout-fixer/issues/new"


class ArchiveError(TakeoutFixerError):
    """Archive processing failed."""
    pass


class UnsupportedArchiveError(ArchiveError):
    """Archive format is not supported."""
    pass


class ArchiveReadError(ArchiveError):
    """An archive or one of its entries could not be opened or read."""
    pass


class DuplicateFileError(ArchiveError):
    """The same in-archive path was found in two input archives.

    Two archives covering overlapping export ranges would make sidecar
    lookup ambiguous, so this always aborts the run.
    """

    def __init__(self, path: str, existing_archive: Path, new_archive: Path) -> None:
        super().__init__(
            f"Duplicate file '{path}' found in archives: "
            f"'{existing_archive}' and '{new_archive}'",
            path=path,
            existing_archive=str(existing_archive),
            new_archive=str(new_archive),
        )
        self.path = path
        self.existing_archive = existing_archive
        self.new_archive = new_archive


class MetadataError(TakeoutFixerError):
    """Sidecar metadata could not be translated."""
    pass


class JsonParseError(MetadataError):
    """Sidecar JSON is malformed or does not match the expected schema."""

    def __init__(self, message: str, json: str) -> None:
        super().__init__(
            "Failed to parse Google metadata JSON.\n\n"
            f"Error: {message}\n\n"
            "This may indicate an unknown metadata format from Google Takeout.\n"
            f"Please create an issue at:\n{ISSUES_URL}\n\n"
            f"Include the following JSON in your report:\n---\n{json}\n---",
            reason=message,
        )
        self.reason = message
        self.json = json


class UnknownFieldError(MetadataError):
    """Sidecar JSON carries a field this tool does not know about."""

    def __init__(self, field: str, json: str) -> None:
        super().__init__(
            f"Unknown field '{field}' found in Google metadata.\n\n"
            "This tool may need to be updated to handle new Google Takeout formats.\n"
            f"Please create an issue at:\n{ISSUES_URL}\n\n"
            f"Include the following JSON in your report:\n---\n{json}\n---",
            field=field,
        )
        self.field = field
        self.json = json


class InvalidTimestampError(MetadataError):
    """Timestamp cannot be represented as a calendar date."""

    def __init__(self, timestamp: int) -> None:
        super().__init__(f"Invalid timestamp: {timestamp}", timestamp=timestamp)
        self.timestamp = timestamp


class OutputError(TakeoutFixerError):
    """Writing to the output tree failed."""
    pass


def classify_error(exception: Exception) -> str:
    """
    Classify an exception into an error category.

    Args:
        exception: The exception to classify

    Returns:
        Error category string: 'duplicate', 'archive', 'metadata', 'output',
        'io', or 'unknown'
    """
    if isinstance(exception, DuplicateFileError):
        return 'duplicate'
    elif isinstance(exception, ArchiveError):
        return 'archive'
    elif isinstance(exception, MetadataError):
        return 'metadata'
    elif isinstance(exception, OutputError):
        return 'output'
    elif isinstance(exception, OSError):
        return 'io'
    else:
        return 'unknown'
