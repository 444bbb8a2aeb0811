"""
Capture module for MapFlam.

This module provides functionality for:
- Rasterizing a live map region through Playwright
- Cover-fitting the capture onto an exact export size
- Writing PNG exports atomically
- Generating small data-URL thumbnails with a placeholder fallback

Main classes:
- MapRegion: Handle to the map element on a page
- CaptureEngine: Region to Pillow image
- ExportCompositor: Fixed-size PNG exports
- ThumbnailGenerator: Saved-composition previews

Errors:
- CaptureError: Capture failures
- RegionNotFoundError: Missing map region
"""

from .capture_engine import CaptureEngine, CaptureOptions, MapRegion
from .capture_errors import CaptureError, RegionNotFoundError
from .capture_export import CoverFit, ExportCompositor, compute_cover_fit, default_export_filename
from .capture_thumbnail import PLACEHOLDER_THUMBNAIL, ThumbnailGenerator

__all__ = [
    # Main classes
    "MapRegion",
    "CaptureEngine",
    "CaptureOptions",
    "ExportCompositor",
    "ThumbnailGenerator",
    "CoverFit",
    "compute_cover_fit",
    "default_export_filename",
    "PLACEHOLDER_THUMBNAIL",

    # Errors
    "CaptureError",
    "RegionNotFoundError",
]

# Version info
__version__ = "1.0.0"
__author__ = "MapFlam Team"
