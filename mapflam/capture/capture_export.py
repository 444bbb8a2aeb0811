"""
Export compositor: turns a live map region into a fixed-size PNG.

The region is captured at a uniform cover-fit scale (large enough to cover
the target in both axes), then centred on a canvas of exactly the format's
size. Overflow on the non-bounding axis is cropped by overdraw, so the
output never shows a letterbox or a non-uniform stretch.
"""

import datetime
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from ..composition.composition_styles import export_size
from ..config.logger_module import log_info, log_error
from ..storage.storage_backend import write_atomic
from .capture_engine import CaptureEngine, CaptureOptions, MapRegion
from .capture_errors import CaptureError


DEFAULT_BACKGROUND = "#ffffff"
EXPORT_SETTLE_SECONDS = 0.5
EXPORT_IMAGE_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class CoverFit:
    """
    Geometry of a cover-fit placement.

    Offsets are (target - source * scale) / 2 per axis: zero on the bounding
    axis, negative on an axis where the capture overflows and gets cropped.
    """

    scale_x: float
    scale_y: float
    scale: float
    captured_width: int
    captured_height: int
    offset_x: float
    offset_y: float

    @property
    def crops(self) -> bool:
        """True when part of the capture falls outside the target."""
        return self.offset_x < 0 or self.offset_y < 0


def compute_cover_fit(source_width: float,
                      source_height: float,
                      target_width: int,
                      target_height: int) -> CoverFit:
    """
    Compute the uniform scale and centring offsets for a cover fit.

    Args:
        source_width: Region width in CSS pixels
        source_height: Region height in CSS pixels
        target_width: Output width in pixels
        target_height: Output height in pixels

    Returns:
        CoverFit with scale = max(target_w / source_w, target_h / source_h)

    Raises:
        CaptureError: If either source dimension is not positive
    """
    if source_width <= 0 or source_height <= 0:
        raise CaptureError(
            f"Cannot fit a region of {source_width}x{source_height} css px"
        )

    scale_x = target_width / source_width
    scale_y = target_height / source_height
    scale = max(scale_x, scale_y)

    scaled_width = source_width * scale
    scaled_height = source_height * scale

    return CoverFit(
        scale_x=scale_x,
        scale_y=scale_y,
        scale=scale,
        captured_width=max(1, round(scaled_width)),
        captured_height=max(1, round(scaled_height)),
        offset_x=(target_width - scaled_width) / 2,
        offset_y=(target_height - scaled_height) / 2,
    )


def compose_cover_fit(captured: Image.Image,
                      target_width: int,
                      target_height: int,
                      background: str = DEFAULT_BACKGROUND) -> Image.Image:
    """
    Centre a captured raster on a canvas of exactly the target size.

    Pixels falling outside the canvas are discarded by the paste.
    """
    canvas = Image.new("RGB", (target_width, target_height), background)

    offset_x = round((target_width - captured.width) / 2)
    offset_y = round((target_height - captured.height) / 2)
    canvas.paste(captured, (offset_x, offset_y))

    return canvas


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def default_export_filename(map_format: str,
                            today: Optional[datetime.date] = None) -> str:
    """Download name: mapflam_<format>_<YYYY-MM-DD>.png, dated in UTC"""
    today = today or datetime.datetime.now(datetime.timezone.utc).date()
    return f"mapflam_{map_format}_{today.isoformat()}.png"


class ExportCompositor:
    """
    Produces full-resolution exports of a map region.

    Failures are logged and re-raised; no file is written unless the
    whole image was produced.
    """

    def __init__(self,
                 engine: Optional[CaptureEngine] = None,
                 settle_seconds: float = EXPORT_SETTLE_SECONDS,
                 image_timeout_seconds: float = EXPORT_IMAGE_TIMEOUT_SECONDS,
                 background: str = DEFAULT_BACKGROUND):
        """
        Initialize the compositor.

        Args:
            engine: Capture engine (a default one if not given)
            settle_seconds: Wait for tiles to settle before capturing
            image_timeout_seconds: Upper bound on imagery loading and capture
            background: Canvas fill colour
        """
        self.engine = engine or CaptureEngine()
        self.settle_seconds = settle_seconds
        self.image_timeout_seconds = image_timeout_seconds
        self.background = background

    def render(self, region: MapRegion, map_format: str) -> Image.Image:
        """
        Render a region at the exact pixel size of a format.

        Args:
            region: Live map region
            map_format: "square", "16:9" or "9:16"

        Returns:
            RGB image of exactly EXPORT_SIZES[map_format]

        Raises:
            ValueError: For an unknown format
            RegionNotFoundError: If the region is missing
            CaptureError: If capturing fails
        """
        target_width, target_height = export_size(map_format)
        source_width, source_height = region.measure()

        fit = compute_cover_fit(source_width, source_height, target_width, target_height)
        log_info(
            f"Exporting {region.selector} as {map_format} ({target_width}x{target_height}): "
            f"source {source_width:.0f}x{source_height:.0f}, scale {fit.scale:.3f}, "
            f"offset ({fit.offset_x:.1f}, {fit.offset_y:.1f})"
        )

        captured = self.engine.capture(region, CaptureOptions(
            scale=fit.scale,
            background=self.background,
            settle_seconds=self.settle_seconds,
            image_timeout_seconds=self.image_timeout_seconds,
        ))

        return compose_cover_fit(captured, target_width, target_height, self.background)

    def export(self,
               region: MapRegion,
               map_format: str,
               filename: Optional[str] = None,
               output_dir: Union[str, Path] = ".") -> Path:
        """
        Render a region and write it as a PNG file.

        Args:
            region: Live map region
            map_format: "square", "16:9" or "9:16"
            filename: Explicit file name (default mapflam_<format>_<date>.png)
            output_dir: Directory receiving the file

        Returns:
            Path of the written file

        Raises:
            Any rendering or writing error, after logging it
        """
        try:
            image = self.render(region, map_format)
            data = encode_png(image)

            path = Path(output_dir) / (filename or default_export_filename(map_format))
            write_atomic(path, data)
        except Exception as e:
            log_error(f"Export of {region.selector} as {map_format} failed: {e}")
            raise

        log_info(f"Exported {map_format} map to {path} ({len(data)} bytes)")
        return path
