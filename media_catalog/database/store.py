"""
Catalog file management.

The catalog is a JSON array of exiftool records, pretty-printed with two
spaces. Saving writes a temporary file next to the target and renames it
over the old one, so readers never see a half-written catalog.
"""
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, List, Optional

from .. import config
from ..exceptions import CatalogValidationError, CatalogWriteError
from ..models import MediaRecord


def validate(data: Any) -> List[MediaRecord]:
    """Sanity check that `data` looks like exiftool JSON output."""
    if not isinstance(data, list):
        raise CatalogValidationError("Invalid catalog file: not an array")
    if data and not (isinstance(data[0], dict) and isinstance(data[0].get("SourceFile"), str)):
        raise CatalogValidationError("Invalid catalog file: unrecognised exiftool format")
    return data


class CatalogStore:
    def __init__(self, catalog_path: Path, logger: Optional[logging.Logger] = None):
        self.catalog_path = Path(catalog_path)
        self.log = logger or logging.getLogger(__name__)

    def load(self) -> List[MediaRecord]:
        """
        Reads the catalog. A missing or empty file is an empty catalog.

        Raises:
            CatalogValidationError: the file is not a JSON array of exiftool records.
        """
        try:
            content = self.catalog_path.read_text(encoding=config.CATALOG_ENCODING)
        except FileNotFoundError:
            self.log.info(f"No catalog at {self.catalog_path}, starting from scratch")
            return []
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogValidationError(f"Invalid catalog file {self.catalog_path}: {e}") from e

        if content.strip() == "":
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise CatalogValidationError(f"Invalid catalog file: JSON syntax error: {e}") from e

        records = validate(data)
        self.log.info(f"Loaded {len(records)} records from {self.catalog_path}")
        return records

    def save(self, records: List[MediaRecord]):
        """
        Atomically replaces the catalog file with `records`.

        Raises:
            CatalogWriteError: the file could not be written.
        """
        target = self.catalog_path
        tmp_name = None
        replaced = False
        try:
            content = json.dumps(records, indent=config.CATALOG_INDENT, ensure_ascii=False)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent)
            )
            with os.fdopen(fd, "w", encoding=config.CATALOG_ENCODING) as f:
                f.write(content)
            # mkstemp creates the file as 0600
            if target.exists():
                shutil.copymode(target, tmp_name)
            else:
                os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
            replaced = True
        except (OSError, TypeError, ValueError) as e:
            # ValueError covers UnicodeEncodeError, e.g. lone surrogates in a loaded catalog
            raise CatalogWriteError(f"Could not write catalog {target}: {e}") from e
        finally:
            if not replaced and tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        self.log.info(f"Saved {len(records)} records to {target}")
