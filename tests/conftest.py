import json
import os
import stat
import sys
from pathlib import Path

import pytest

MEDIA_FILES = [
    "holidays/beach.jpg",
    "holidays/sunset.JPG",
    "home/dog.png",
    "videos/clip.mov",
]

# 2020-09-13 12:26:40.500 UTC, half a second past the stored (truncated) time
BASE_MTIME_NS = 1_600_000_000_500_000_000

# Stand-in for exiftool: same stdin/stdout/stderr protocol, behaviour picked
# with FAKE_EXIFTOOL_MODE (ok, garbage, reverse, big). Every invocation is
# appended to FAKE_EXIFTOOL_LOG when that variable is set.
FAKE_EXIFTOOL = r'''
import json
import os
import sys
from datetime import datetime, timezone

mode = os.environ.get("FAKE_EXIFTOOL_MODE", "ok")
args = sys.argv[1:]
paths = [p for p in sys.stdin.buffer.read().decode("utf-8").splitlines() if p]

log_path = os.environ.get("FAKE_EXIFTOOL_LOG")
if log_path:
    with open(log_path, "a", encoding="utf-8") as f:
        f.write(json.dumps({"cwd": os.getcwd(), "args": args, "paths": paths}) + "\n")

def modify_date(path):
    mtime = os.stat(path).st_mtime
    local = datetime.fromtimestamp(int(mtime), timezone.utc).astimezone()
    text = local.strftime("%Y:%m:%d %H:%M:%S%z")
    return text[:-2] + ":" + text[-2:]

records = []
failed = False
for i, path in enumerate(paths, 1):
    if not os.path.exists(path):
        sys.stderr.write(f"Error: File not found - {path}\n")
        failed = True
        continue
    sys.stderr.write(f"======== {path} [{i}/{len(paths)}]\n")
    sys.stderr.flush()
    rec = {
        "SourceFile": path,
        "File": {"FileName": os.path.basename(path), "FileModifyDate": modify_date(path)},
        "Composite": {"ImageSize": "1x1"},
    }
    if mode == "big":
        rec["Composite"]["Padding"] = "x" * 300000
        for _ in range(2000):
            sys.stderr.write("Warning: [minor] filler line to fill the stderr pipe\n")
    records.append(rec)

if mode == "reverse":
    records.reverse()

if mode == "garbage":
    sys.stdout.write('[{"SourceFile": "holidays/bea')
elif records:
    sys.stdout.write(json.dumps(records, indent=4))
sys.stdout.flush()
sys.exit(1 if failed else 0)
'''


@pytest.fixture
def fake_exiftool_script(tmp_path) -> Path:
    """Writes the fake exiftool, executable through its shebang on POSIX."""
    script = tmp_path / "bin" / "fake_exiftool.py"
    script.parent.mkdir()
    script.write_text(f"#!{sys.executable}\n{FAKE_EXIFTOOL}", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def fake_exiftool(fake_exiftool_script):
    """Command prefix running the fake exiftool with the current interpreter."""
    return [sys.executable, str(fake_exiftool_script)]


@pytest.fixture
def exiftool_calls(tmp_path, monkeypatch):
    """Returns a function listing the fake exiftool invocations so far."""
    log_path = tmp_path / "exiftool_calls.jsonl"
    monkeypatch.setenv("FAKE_EXIFTOOL_LOG", str(log_path))

    def calls():
        if not log_path.exists():
            return []
        return [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]

    return calls


@pytest.fixture
def media_root(tmp_path) -> Path:
    """A small media tree: 4 media files plus files that must be ignored."""
    root = tmp_path / "collection"
    for i, rel in enumerate(MEDIA_FILES):
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(f"media {i}".encode("ascii"))
        mtime = BASE_MTIME_NS + i * 60_000_000_000
        os.utime(p, ns=(mtime, mtime))

    (root / "notes.txt").write_text("not media")
    (root / "holidays" / "beach.xmp").write_text("<x:xmpmeta/>")
    return root
