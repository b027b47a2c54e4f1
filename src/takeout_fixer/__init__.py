"""takeout-fixer: restore Google Photos metadata from Takeout archives."""

__version__ = "0.1.0"

from .archives import build_takeout
from .process import ProcessStats, process_takeout
from .takeout import ArchiveFile, Takeout

__all__ = [
    '__version__',
    'ArchiveFile',
    'ProcessStats',
    'Takeout',
    'build_takeout',
    'process_takeout',
]
