"""
Change detection: compares a disk listing with the existing catalog.
"""
import logging
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .. import config
from ..models import ChangeSet, DiskEntry, MediaRecord, file_modify_date, source_file


def build_lookup(records: Iterable[MediaRecord]) -> Dict[str, MediaRecord]:
    """Maps SourceFile -> record. Later duplicates win, records without SourceFile are skipped."""
    lookup: Dict[str, MediaRecord] = {}
    for rec in records:
        key = source_file(rec)
        if key is not None:
            lookup[key] = rec
    return lookup


def parse_modify_date(value: Any) -> Optional[int]:
    """
    Converts a stored FileModifyDate to epoch milliseconds.

    Accepts the exiftool format ("2017:01:12 17:42:37+00:00"), the same
    without offset (read as local time) or a number of epoch milliseconds.
    Returns None when the value cannot be interpreted.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        # json.loads accepts NaN and Infinity
        if not math.isfinite(value):
            return None
        return int(value)
    if not isinstance(value, str):
        return None

    clean = value.strip()
    for fmt in config.FILE_MODIFY_DATE_FORMATS:
        try:
            dt = datetime.strptime(clean, fmt)
        except ValueError:
            continue
        try:
            return round(dt.timestamp() * 1000)
        except (OverflowError, OSError, ValueError):
            # e.g. "0001:01:01 00:00:00" read as local time
            return None
    return None


def is_modified(stored_ms: Optional[int], disk_ms: int) -> bool:
    if stored_ms is None:
        return True
    return abs(stored_ms - disk_ms) >= config.MODIFY_TOLERANCE_MS


def find_changes(catalog: Mapping[str, MediaRecord],
                 disk_entries: List[DiskEntry],
                 logger: Optional[logging.Logger] = None) -> ChangeSet:
    """
    Classifies every disk entry as unchanged, added or modified, and every
    catalog entry without a disk file as deleted.
    """
    log = logger or logging.getLogger(__name__)
    changes = ChangeSet()

    for entry in disk_entries:
        record = catalog.get(entry.path)
        if record is None:
            log.debug(f"Not in catalog: {entry.path}")
            changes.added.append(entry.path)
            continue

        stored = file_modify_date(record)
        if is_modified(parse_modify_date(stored), entry.mtime_ms):
            log.debug(f"In catalog, updated: {entry.path} (from {stored} to {entry.mtime_ms})")
            changes.modified.append(entry.path)
        else:
            changes.unchanged.append(entry.path)

    matched = set(changes.modified) | set(changes.unchanged)
    changes.deleted = [key for key in catalog if key not in matched]
    for key in changes.deleted:
        log.debug(f"Removed from catalog: {key}")

    return changes
