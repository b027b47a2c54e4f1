"""Command-line interface for takeout-fixer."""

import argparse
import glob
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from pydantic import ValidationError

from . import __version__
from .archives import build_takeout, is_archive_file
from .common import ConfigLoader, TakeoutFixerError, setup_logging
from .config import TakeoutFixerConfig
from .process import process_takeout

APP_NAME = "takeout-fixer"

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_COMPLETED_WITH_ERRORS = 2

_GLOB_CHARS = ('*', '?', '[')


def expand_paths(paths: Iterable[str]) -> List[Path]:
    """Turn CLI arguments into an ordered list of archive paths.

    - a directory contributes every supported archive directly inside it
    - an argument with glob characters contributes its supported matches
    - anything else is taken as an archive path and must exist

    Results for each argument are sorted; duplicates keep their first
    position.

    Raises:
        FileNotFoundError: If a plain path does not exist, or a glob or
            directory yields no archives
    """
    result: List[Path] = []
    seen = set()

    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            matches = sorted(p for p in path.iterdir() if p.is_file() and is_archive_file(p))
            if not matches:
                raise FileNotFoundError(f"No Takeout archives found in directory: {path}")
        elif any(char in raw for char in _GLOB_CHARS):
            matches = sorted(Path(p) for p in glob.glob(raw) if is_archive_file(Path(p)))
            if not matches:
                raise FileNotFoundError(f"No Takeout archives match: {raw}")
        elif path.exists():
            matches = [path]
        else:
            raise FileNotFoundError(f"Archive not found: {path}")

        for match in matches:
            if match not in seen:
                seen.add(match)
                result.append(match)

    return result


def fix_command(
    config: TakeoutFixerConfig,
    paths: Sequence[str],
) -> int:
    """Index the archives, run the pipeline and report.

    Args:
        config: Configuration with CLI overrides already applied
        paths: Archive paths, directories or globs

    Returns:
        Exit code
    """
    logger = logging.getLogger(__package__ or __name__)

    fixer = config.fixer
    output_dir = Path(fixer.output_dir)
    prefix = fixer.photo_path_prefix

    logger.info(
        f"Configuration: {{'output_dir': {str(output_dir)!r}, 'photo_path_prefix': {prefix!r}, "
        f"'dry_run': {fixer.dry_run}}}"
    )

    if output_dir.exists() and not fixer.dry_run:
        logger.error(f"Output directory already exists: {{'path': {str(output_dir)!r}}}")
        return EXIT_FATAL

    try:
        archive_paths = expand_paths(paths)
    except FileNotFoundError as e:
        logger.error(str(e))
        return EXIT_FATAL

    try:
        takeout = build_takeout(archive_paths, prefix)
        stats = process_takeout(
            takeout=takeout,
            output_dir=output_dir,
            photo_path_prefix=prefix,
            dry_run=fixer.dry_run,
            show_progress=fixer.show_progress,
            progress_log_interval=fixer.progress_log_interval,
        )
    except TakeoutFixerError as e:
        logger.error(f"Aborted: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.exception(f"Fix failed: {e}")
        return EXIT_FATAL

    logger.info(f"Summary: {stats.as_dict()}")

    if stats.errors:
        logger.warning(f"Completed with {stats.errors} errors")
        return EXIT_COMPLETED_WITH_ERRORS

    logger.info("Completed successfully")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Restore Google Photos metadata from Takeout sidecar files into the images"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config file (defaults.toml)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Only log what would be written"
    )
    parser.add_argument(
        "-p", "--photo-dir",
        help="Photos directory inside the Takeout root (overrides config, default: 'Google Photos')"
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output directory (overrides config)"
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not log progress"
    )

    subparsers = parser.add_subparsers(dest="command")
    fix_parser = subparsers.add_parser("fix", help="Fix metadata for the given Takeout archives")
    fix_parser.add_argument(
        "paths",
        nargs="+",
        help="Takeout archives (.zip, .tgz, .tar.gz), directories containing them, or glob patterns"
    )

    return parser


def apply_overrides(config: TakeoutFixerConfig, args: argparse.Namespace) -> TakeoutFixerConfig:
    """Return a copy of ``config`` with command-line options applied."""
    fixer_updates = {}
    if args.dry_run:
        fixer_updates["dry_run"] = True
    if args.photo_dir:
        fixer_updates["photo_dir"] = args.photo_dir
    if args.output is not None:
        fixer_updates["output_dir"] = str(args.output)
    if args.no_progress:
        fixer_updates["show_progress"] = False

    updates = {}
    if fixer_updates:
        updates["fixer"] = config.fixer.model_copy(update=fixer_updates)
    if args.debug:
        updates["logging"] = config.logging.model_copy(update={"level": "DEBUG"})

    return config.model_copy(update=updates) if updates else config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for takeout-fixer."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_usage(sys.stderr)
        return EXIT_FATAL

    loader = ConfigLoader(
        app_name=APP_NAME,
        config_class=TakeoutFixerConfig
    )

    try:
        config = loader.load(defaults_path=args.config)
    except (FileNotFoundError, ValidationError) as e:
        print(f"{APP_NAME}: invalid configuration: {e}", file=sys.stderr)
        return EXIT_FATAL

    config = apply_overrides(config, args)

    log_file = Path(config.logging.file) if config.logging.file else None
    setup_logging(level=config.logging.level, format=config.logging.format, log_file=log_file)

    return fix_command(config=config, paths=args.paths)


if __name__ == "__main__":
    sys.exit(main())
