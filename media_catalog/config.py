"""
Configuration constants for the media catalog.
"""
import re

# --- File Type Definitions ---
PHOTO_EXTS = {'.bmp', '.gif', '.jpg', '.jpeg', '.png', '.tif', '.tiff', '.webp'}
VIDEO_EXTS = {'.3gp', '.flv', '.m2ts', '.mkv', '.mp4', '.mov', '.mts', '.ogg', '.ogv', '.webm'}

MEDIA_EXTS = PHOTO_EXTS | VIDEO_EXTS

# --- ExifTool ---
EXIFTOOL_EXECUTABLE = "exiftool"

# Fixed argument set. Paths are never passed here, they go through stdin.
EXIFTOOL_ARGS = [
    '-a',           # include duplicate tags
    '-s',           # tag IDs instead of display names
    '-g',           # group names as nested objects
    '-c', '%+.6f',  # GPS lat/long as signed floats
    '-struct',      # keep XMP structures
    '-json',
    '-progress',    # per-file progress on stderr
    '-@', '-',      # read file list from stdin
]

# e.g. "======== holidays/beach.jpg [1/4]"
PROGRESS_PATTERN = re.compile(r'^=+\s(.+)\s\[(\d+)/(\d+)]\s*$')

# --- Change Detection ---
# ExifTool stores FileModifyDate to the second, filesystems may report milliseconds.
MODIFY_TOLERANCE_MS = 1000

FILE_MODIFY_DATE_FORMATS = [
    "%Y:%m:%d %H:%M:%S%z",
    "%Y:%m:%d %H:%M:%S.%f%z",
    "%Y:%m:%d %H:%M:%S",
]

# --- Catalog File ---
CATALOG_ENCODING = "utf-8"
CATALOG_INDENT = 2
