import logging
from pathlib import Path
from typing import Callable, Optional

from .catalog.diff import build_lookup, find_changes
from .catalog.merge import compute_stats, merge, to_process
from .database.store import CatalogStore
from .exceptions import CatalogWriteError, ExtractionLaunchError, ScanError
from .metadata.exiftool import ExifToolAdapter, ProgressCallback
from .models import CatalogStats, UpdateResult
from .scanning.filesystem import TreeScanner

StatsCallback = Callable[[CatalogStats], None]


class CatalogUpdater:
    """
    Brings a catalog up to date with a media folder.

    The catalog file (if any) is loaded and validated on construction,
    so a broken catalog is reported before anything is scanned.
    Without a catalog path the result only lives in memory. Each
    successful run becomes the baseline for the next one.
    """

    def __init__(self,
                 media_root: Path,
                 catalog_path: Optional[Path] = None,
                 exiftool=None,
                 logger: Optional[logging.Logger] = None):
        self.media_root = Path(media_root)
        self.logger = logger
        self.log = logger or logging.getLogger(__name__)

        self.store = CatalogStore(catalog_path, logger) if catalog_path else None
        self.records = self.store.load() if self.store else []

        self.scanner = TreeScanner(logger=logger)
        self.extractor = ExifToolAdapter(exiftool, logger=logger)

    def run(self,
            on_stats: Optional[StatsCallback] = None,
            on_progress: Optional[ProgressCallback] = None) -> UpdateResult:
        """
        Executes one update pass.
        1. Scan the media folder
        2. Diff against the loaded catalog (stats are reported here)
        3. Run exiftool on added and modified files
        4. Merge, then save if a catalog path was given
        """
        catalog = build_lookup(self.records)

        # --- Step 1: Scanning ---
        self.log.info(f"Scanning {self.media_root}...")
        try:
            disk_entries = self.scanner.scan(self.media_root)
        except ScanError as e:
            self.log.error(str(e))
            return UpdateResult(error=e)

        # --- Step 2: Diff ---
        changes = find_changes(catalog, disk_entries, self.logger)
        stats = compute_stats(changes, len(disk_entries))
        self.log.info(
            f"{stats.total} files: {stats.unchanged} unchanged, {stats.added} added, "
            f"{stats.modified} modified, {stats.deleted} deleted"
        )
        if on_stats is not None:
            on_stats(stats)

        # --- Step 3: Extraction ---
        try:
            extracted = self.extractor.read(self.media_root, to_process(changes), on_progress)
        except ExtractionLaunchError as e:
            self.log.error(str(e))
            return UpdateResult(stats=stats, error=e)

        # --- Step 4: Merge & Save ---
        records = merge(changes, catalog, extracted, self.logger)

        if self.store is not None:
            try:
                self.store.save(records)
            except CatalogWriteError as e:
                self.log.error(str(e))
                return UpdateResult(stats=stats, error=e)

        # The next run diffs against what this one produced
        self.records = records

        self.log.info(f"Catalog update complete ({len(records)} records).")
        return UpdateResult(stats=stats, records=records)


def update_catalog(media_root: Path,
                   catalog_path: Optional[Path] = None,
                   on_stats: Optional[StatsCallback] = None,
                   on_progress: Optional[ProgressCallback] = None,
                   exiftool=None,
                   logger: Optional[logging.Logger] = None) -> UpdateResult:
    """
    Shortcut for CatalogUpdater(...).run(...).

    Raises:
        CatalogValidationError: the existing catalog file is invalid.
    """
    updater = CatalogUpdater(media_root, catalog_path, exiftool=exiftool, logger=logger)
    return updater.run(on_stats=on_stats, on_progress=on_progress)
