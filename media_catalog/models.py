from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# A catalog entry is the exiftool JSON object for one file, kept as-is:
# {"SourceFile": "holidays/beach.jpg", "File": {"FileModifyDate": ...}, "EXIF": {...}, ...}
MediaRecord = Dict[str, Any]


def source_file(record: MediaRecord) -> Optional[str]:
    """Returns the record's relative path, or None if it has no string SourceFile."""
    value = record.get("SourceFile") if isinstance(record, dict) else None
    return value if isinstance(value, str) else None


def file_modify_date(record: MediaRecord) -> Any:
    """Returns the raw File.FileModifyDate value (usually a string), or None."""
    group = record.get("File")
    if not isinstance(group, dict):
        return None
    return group.get("FileModifyDate")


@dataclass
class DiskEntry:
    """
    A media file found during a scan.
    """
    path: str               # relative to the media root, '/' separated
    mtime_ms: int           # last modification, epoch milliseconds


@dataclass
class ChangeSet:
    unchanged: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


@dataclass
class ProgressEvent:
    """One progress line reported by exiftool."""
    path: str
    index: int              # 1-based
    total: int


@dataclass
class CatalogStats:
    unchanged: int
    added: int
    modified: int
    deleted: int
    total: int

    @property
    def to_process(self) -> int:
        return self.added + self.modified

    def as_dict(self) -> Dict[str, int]:
        return {
            'unchanged': self.unchanged,
            'added': self.added,
            'modified': self.modified,
            'deleted': self.deleted,
            'total': self.total,
        }


@dataclass
class UpdateResult:
    """
    Outcome of one catalog update.

    On success `records` holds the new catalog and `error` is None.
    On failure `error` holds the cause and nothing was written.
    """
    stats: Optional[CatalogStats] = None
    records: List[MediaRecord] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
