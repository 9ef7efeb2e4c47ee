import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from tqdm import tqdm

from . import config
from .core import CatalogUpdater
from .exceptions import MediaCatalogError
from .models import CatalogStats, ProgressEvent


def setup_logging(verbose: bool, log_file: Optional[Path] = None):
    """Sets up logging to the console and optionally to a file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    handlers: list = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Keep a JSON catalog of photo/video metadata in sync with a folder")

    p.add_argument("-m", "--media", type=Path, required=True, help="Root folder with photos and videos")
    p.add_argument("-d", "--database", type=Path, default=None,
                   help="Path to the JSON catalog file (omit for an in-memory dry run)")
    p.add_argument("--exiftool", default=config.EXIFTOOL_EXECUTABLE,
                   help=f"exiftool executable (default: {config.EXIFTOOL_EXECUTABLE} on PATH)")
    p.add_argument("--no-progress", action="store_true", help="Do not display a progress bar")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")

    return p.parse_args(argv)


class ProgressDisplay:
    """Prints the summary and drives a tqdm bar sized from it."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.bar: Optional[tqdm] = None

    def on_stats(self, stats: CatalogStats):
        print(f"Updating catalog with {stats.total} files")
        print(f" - {stats.unchanged} unchanged")
        print(f" - {stats.added} added")
        print(f" - {stats.modified} modified")
        print(f" - {stats.deleted} deleted")
        print("")
        if self.enabled and stats.to_process > 0:
            self.bar = tqdm(total=stats.to_process, desc="Extracting", unit="file")

    def on_progress(self, event: ProgressEvent):
        if self.bar is not None:
            self.bar.update(1)

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    media_root = args.media.resolve()
    logging.info("=== Media Catalog Update Started ===")
    logging.info(f"Media:    {media_root}")
    logging.info(f"Catalog:  {args.database if args.database else '(in memory)'}")

    # Debug output would interleave with the bar
    display = ProgressDisplay(enabled=not (args.no_progress or args.verbose))

    try:
        updater = CatalogUpdater(media_root, args.database, exiftool=args.exiftool)
        result = updater.run(on_stats=display.on_stats, on_progress=display.on_progress)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except MediaCatalogError as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1
    finally:
        display.close()

    if not result.ok:
        print(f"Unexpected error: {result.error}", file=sys.stderr)
        return 1

    print(f"Finished updating ({len(result.records)} total)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
