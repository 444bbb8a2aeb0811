"""
Thumbnail generator for saved-composition previews.

Captures the map region without its controls, cover-fits it into a small
square and returns it as a PNG data URL. Thumbnails are best effort: any
failure yields a fixed placeholder so a saved composition always has a
renderable preview.
"""

import base64
import io
from typing import Optional

from PIL import Image

from ..config.logger_module import log_info, log_error
from .capture_engine import LEAFLET_CHROME, CaptureEngine, CaptureOptions, MapRegion
from .capture_export import DEFAULT_BACKGROUND, compose_cover_fit, compute_cover_fit, encode_png


THUMBNAIL_SIZE = 102
THUMBNAIL_SUPERSAMPLE = 1.5
THUMBNAIL_SETTLE_SECONDS = 0.25
THUMBNAIL_IMAGE_TIMEOUT_SECONDS = 2.0

DATA_URL_PREFIX = "data:image/png;base64,"

PLACEHOLDER_THUMBNAIL = (
    DATA_URL_PREFIX
    + "iVBORw0KGgoAAAANSUhEUgAAAEAAAABACAYAAACqaXHeAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=="
)


def to_data_url(image: Image.Image) -> str:
    """Encode an image as a base64 PNG data URL."""
    return DATA_URL_PREFIX + base64.b64encode(encode_png(image)).decode("ascii")


def decode_thumbnail(data_url: str) -> Image.Image:
    """
    Decode a PNG data URL back into an image.

    Raises:
        ValueError: If the string is not a base64 PNG data URL
    """
    if not data_url.startswith(DATA_URL_PREFIX):
        raise ValueError("Not a PNG data URL")

    try:
        raw = base64.b64decode(data_url[len(DATA_URL_PREFIX):], validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (OSError, ValueError) as e:
        raise ValueError(f"Invalid thumbnail data: {e}") from e

    return image


class ThumbnailGenerator:
    """Small square previews of a map region; never raises."""

    def __init__(self,
                 engine: Optional[CaptureEngine] = None,
                 size: int = THUMBNAIL_SIZE,
                 supersample: float = THUMBNAIL_SUPERSAMPLE,
                 settle_seconds: float = THUMBNAIL_SETTLE_SECONDS,
                 image_timeout_seconds: float = THUMBNAIL_IMAGE_TIMEOUT_SECONDS):
        """
        Initialize the generator.

        Args:
            engine: Capture engine (a default one if not given)
            size: Edge length of the square thumbnail in pixels
            supersample: Capture at this multiple of size, then downsample
            settle_seconds: Wait before capturing
            image_timeout_seconds: Upper bound on imagery loading and capture
        """
        self.engine = engine or CaptureEngine()
        self.size = size
        self.supersample = supersample
        self.settle_seconds = settle_seconds
        self.image_timeout_seconds = image_timeout_seconds

    def thumbnail(self, region: MapRegion) -> str:
        """
        Capture a preview of a region.

        Args:
            region: Live map region

        Returns:
            PNG data URL of a size x size image, or PLACEHOLDER_THUMBNAIL if
            anything goes wrong
        """
        try:
            source_width, source_height = region.measure()
            canvas_size = max(self.size, round(self.size * self.supersample))

            fit = compute_cover_fit(source_width, source_height, canvas_size, canvas_size)
            captured = self.engine.capture(region, CaptureOptions(
                scale=fit.scale,
                background=DEFAULT_BACKGROUND,
                exclude=LEAFLET_CHROME,
                settle_seconds=self.settle_seconds,
                image_timeout_seconds=self.image_timeout_seconds,
            ))

            image = compose_cover_fit(captured, canvas_size, canvas_size)
            if canvas_size != self.size:
                image = image.resize((self.size, self.size), Image.Resampling.LANCZOS)

            data_url = to_data_url(image)
        except Exception as e:
            log_error(
                f"Thumbnail generation for {region!r} failed, using placeholder: "
                f"{type(e).__name__}: {e}"
            )
            return PLACEHOLDER_THUMBNAIL

        log_info(f"Thumbnail captured, size: {len(data_url)} bytes")
        return data_url
