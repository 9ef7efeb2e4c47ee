import json
import logging
import os
import queue
import subprocess
import threading
from pathlib import Path
from typing import IO, Callable, List, Optional, Sequence, Union

from .. import config
from ..exceptions import ExtractionLaunchError
from ..models import MediaRecord, ProgressEvent

ProgressCallback = Callable[[ProgressEvent], None]


def parse_progress_line(line: str) -> Optional[ProgressEvent]:
    """Parses an exiftool '-progress' line such as '======== a/b.jpg [2/7]'."""
    match = config.PROGRESS_PATTERN.match(line)
    if not match:
        return None
    return ProgressEvent(path=match.group(1), index=int(match.group(2)), total=int(match.group(3)))


class ExifToolAdapter:
    """
    Runs exiftool over a batch of files and returns its grouped JSON output.

    One process is started per call. The file list is written to stdin
    (no command-line length limits), progress is read from stderr while
    the JSON document accumulates from stdout. Both pipes are drained by
    their own thread so neither can fill up and stall the process.
    """

    def __init__(self,
                 executable: Union[str, os.PathLike, Sequence[str], None] = None,
                 logger: Optional[logging.Logger] = None):
        exe = executable if executable is not None else config.EXIFTOOL_EXECUTABLE
        if isinstance(exe, (str, os.PathLike)):
            self.command = [os.fspath(exe)]
        else:
            self.command = [os.fspath(part) for part in exe]
        self.log = logger or logging.getLogger(__name__)

    def build_command(self) -> List[str]:
        return self.command + config.EXIFTOOL_ARGS

    def read(self,
             root: Path,
             paths: Sequence[str],
             progress: Optional[ProgressCallback] = None) -> List[MediaRecord]:
        """
        Extracts metadata for `paths` (relative to `root`).

        The returned records are not guaranteed to follow the input order;
        match them by SourceFile. Output that is not a JSON array yields an
        empty list.

        Raises:
            ExtractionLaunchError: exiftool could not be started.
        """
        if not paths:
            return []

        cmd = self.build_command()
        self.log.info(f"Extracting metadata for {len(paths)} files with {cmd[0]}")

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(root),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise ExtractionLaunchError(f"Could not start {cmd[0]}: {e}") from e

        events: "queue.Queue[Optional[ProgressEvent]]" = queue.Queue()
        stdout_chunks: List[bytes] = []
        messages: List[str] = []

        stdout_reader = threading.Thread(
            target=self._drain_stdout, args=(proc.stdout, stdout_chunks), daemon=True
        )
        stderr_reader = threading.Thread(
            target=self._drain_stderr, args=(proc.stderr, events, messages), daemon=True
        )
        stdout_reader.start()
        stderr_reader.start()

        try:
            self._write_paths(proc, paths)

            # Progress callbacks run here, in the caller's thread
            while True:
                event = events.get()
                if event is None:
                    break
                if progress is not None:
                    progress(event)

            stdout_reader.join()
            stderr_reader.join()
            returncode = proc.wait()
        except BaseException:
            proc.kill()
            proc.wait()
            raise

        if returncode != 0:
            # exiftool exits with 1 when some of the files could not be read
            self.log.warning(f"exiftool exited with status {returncode}")
            for msg in messages:
                self.log.warning(f"exiftool: {msg}")

        return self._parse_output(b"".join(stdout_chunks))

    def _write_paths(self, proc: subprocess.Popen, paths: Sequence[str]):
        data = "".join(f"{p}\n" for p in paths).encode("utf-8")
        try:
            proc.stdin.write(data)
        except BrokenPipeError:
            self.log.warning("exiftool closed its input before reading the full file list")
        finally:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                # Same as subprocess.communicate(): the process already went away
                pass

    def _drain_stdout(self, stream: IO[bytes], chunks: List[bytes]):
        with stream:
            while chunk := stream.read(64 * 1024):
                chunks.append(chunk)

    def _drain_stderr(self,
                      stream: IO[bytes],
                      events: "queue.Queue[Optional[ProgressEvent]]",
                      messages: List[str]):
        try:
            with stream:
                for raw in iter(stream.readline, b''):
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    event = parse_progress_line(line)
                    if event is not None:
                        self.log.debug(f"[{event.index}/{event.total}] {event.path}")
                        events.put(event)
                    elif line.strip():
                        self.log.debug(f"exiftool: {line}")
                        messages.append(line)
        finally:
            # Always release the consumer loop, even if reading failed
            events.put(None)

    def _parse_output(self, data: bytes) -> List[MediaRecord]:
        if not data.strip():
            self.log.warning("exiftool produced no output")
            return []

        try:
            result = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self.log.warning(f"Could not parse exiftool output, treating it as empty: {e}")
            return []

        if not isinstance(result, list):
            self.log.warning(f"Unexpected exiftool output ({type(result).__name__}), treating it as empty")
            return []

        return result
