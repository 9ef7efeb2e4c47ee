import logging
from typing import Iterable, List, Mapping, Optional, Set

from ..models import CatalogStats, ChangeSet, MediaRecord, source_file


def compute_stats(changes: ChangeSet, total: int) -> CatalogStats:
    return CatalogStats(
        unchanged=len(changes.unchanged),
        added=len(changes.added),
        modified=len(changes.modified),
        deleted=len(changes.deleted),
        total=total,
    )


def to_process(changes: ChangeSet) -> List[str]:
    """Paths that need extraction: added first, then modified."""
    seen: Set[str] = set()
    paths = []
    for path in changes.added + changes.modified:
        if path not in seen:
            seen.add(path)
            paths.append(path)
    return paths


def merge(changes: ChangeSet,
          catalog: Mapping[str, MediaRecord],
          extracted: Iterable[MediaRecord],
          logger: Optional[logging.Logger] = None) -> List[MediaRecord]:
    """
    Builds the new catalog.

    Unchanged records come first, untouched and in scan order, followed by
    the freshly extracted records in the order exiftool returned them.
    A SourceFile never appears twice; the first occurrence wins.
    """
    log = logger or logging.getLogger(__name__)

    records: List[MediaRecord] = []
    seen: Set[str] = set()

    for path in changes.unchanged:
        if path in seen:
            continue
        seen.add(path)
        records.append(catalog[path])

    for rec in extracted:
        key = source_file(rec)
        if key is None:
            log.warning(f"Dropping extracted record without SourceFile: {rec!r:.200}")
            continue
        if key in seen:
            log.debug(f"Duplicate extracted record ignored: {key}")
            continue
        seen.add(key)
        records.append(rec)

    return records
