"""
Custom exceptions for the capture module.

Export surfaces these to the user action that started it; the thumbnail
generator absorbs them and falls back to its placeholder image.
"""


class CaptureError(Exception):
    """Raised when rasterizing a region fails or times out."""
    pass


class RegionNotFoundError(CaptureError):
    """Raised when the target region cannot be located on the page."""
    pass
