"""
Custom exception hierarchy for the media catalog.

Fatal conditions of a catalog update each get their own type so the
command line (or any other caller) can report them distinctly.
"""


class MediaCatalogError(Exception):
    """Base exception for all media catalog errors."""
    pass


class CatalogValidationError(MediaCatalogError):
    """Raised when the catalog file is not a valid exiftool JSON array."""
    pass


class ScanError(MediaCatalogError):
    """Raised when the media root is missing or cannot be read."""
    pass


class ExtractionLaunchError(MediaCatalogError):
    """Raised when the exiftool process cannot be started."""
    pass


class CatalogWriteError(MediaCatalogError):
    """Raised when the catalog file cannot be written."""
    pass
