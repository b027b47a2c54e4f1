"""Shared infrastructure for takeout-fixer: errors, logging, configuration, paths."""

from .config import ConfigLoader
from .logging import setup_logging, LogContext
from .logging_config import LoggingConfig
from .errors import TakeoutFixerError
from .path_utils import normalize_path, normalize_archive_path

__all__ = [
    'ConfigLoader',
    'LoggingConfig',
    'setup_logging',
    'LogContext',
    'TakeoutFixerError',
    'normalize_path',
    'normalize_archive_path',
]
