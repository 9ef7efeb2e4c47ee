import os
import logging
from pathlib import Path
from typing import Iterator, Iterable, List, Optional, Set, Tuple

from .. import config
from ..exceptions import ScanError
from ..models import DiskEntry


class TreeScanner:
    """
    Lists the media files below a root directory.

    Symlinks are followed, but each directory is walked at most once and a
    file reached through a symlink is skipped when the same file (device and
    inode) is already listed, so link cycles and aliases are harmless.
    Hard links are separate paths and are all listed.
    """

    def __init__(self,
                 extensions: Optional[Iterable[str]] = None,
                 logger: Optional[logging.Logger] = None):
        exts = extensions if extensions is not None else config.MEDIA_EXTS
        self.extensions = {e.lower() if e.startswith('.') else f".{e.lower()}" for e in exts}
        self.log = logger or logging.getLogger(__name__)

    def scan(self, root: Path) -> List[DiskEntry]:
        """
        Returns a DiskEntry for every matching file under root.

        Raises:
            ScanError: root is missing, not a directory or not readable.
        """
        root = Path(root)
        if not root.is_dir():
            raise ScanError(f"Media root {root} does not exist or is not a directory.")

        found = list(self._iter_files(root))

        # Files reached without any symlink always count
        direct_keys = {key for _, _, key, via_link in found if key and not via_link}
        linked_keys: Set[Tuple[int, int]] = set()

        entries = []
        for path, mtime_ns, key, via_link in found:
            if via_link and key:
                if key in direct_keys or key in linked_keys:
                    self.log.debug(f"Symlink to an already listed file, skipping: {path}")
                    continue
                linked_keys.add(key)
            rel = path.relative_to(root).as_posix()
            entries.append(DiskEntry(path=rel, mtime_ms=mtime_ns // 1_000_000))

        self.log.info(f"Found {len(entries)} media files in {root}")
        return entries

    def is_media(self, name: str) -> bool:
        return os.path.splitext(name)[1].lower() in self.extensions

    def _iter_files(self, root: Path) -> Iterator[Tuple[Path, int, Optional[Tuple[int, int]], bool]]:
        """
        Depth-first walker using os.scandir.
        Yields (path, mtime_ns, (dev, ino) or None, reached_through_symlink).

        Symlinked directories are walked after the real tree, so a directory
        reachable both ways is listed under its real path.
        """
        seen_dirs: Set[Tuple[int, int]] = set()

        stack: List[Tuple[Path, bool]] = [(root, False)]
        deferred: List[Tuple[Path, bool]] = []
        while stack or deferred:
            if not stack:
                stack = list(reversed(deferred))
                deferred = []
            current, via_link = stack.pop()

            try:
                st = current.stat()
                dir_key = (st.st_dev, st.st_ino)
                if st.st_ino and dir_key in seen_dirs:
                    self.log.debug(f"Already visited, skipping: {current}")
                    continue
                seen_dirs.add(dir_key)

                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                if current == root:
                    raise ScanError(f"Cannot read media root {root}: {e}") from e
                self.log.warning(f"Cannot read directory {current}: {e}")
                continue

            # Sort for stable traversal order
            entries.sort(key=lambda e: e.name.lower())

            dirs = []
            for e in entries:
                try:
                    is_link = e.is_symlink()
                    if e.is_dir():
                        if is_link or via_link:
                            deferred.append((Path(e.path), True))
                        else:
                            dirs.append(Path(e.path))
                        continue
                    if not e.is_file() or not self.is_media(e.name):
                        continue
                    st = e.stat()
                except OSError as err:
                    self.log.warning(f"Cannot stat {e.path}: {err}")
                    continue

                file_key = (st.st_dev, st.st_ino) if st.st_ino else None
                yield Path(e.path), st.st_mtime_ns, file_key, via_link or is_link

            # Push dirs to stack (reversed so we process A before Z)
            for d in reversed(dirs):
                stack.append((d, False))
