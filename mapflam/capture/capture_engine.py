"""
Capture engine: snapshots a live page region into a Pillow image.

The region is an explicit handle (Playwright page + CSS selector) passed in
by the caller. Capturing waits for tiled imagery to settle, screenshots the
element with chrome such as attribution and zoom controls hidden, then
resamples the screenshot to the requested resolution and flattens it onto a
solid background.
"""

import io
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator, Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..config.logger_module import log_debug, log_info, log_warning
from .capture_errors import CaptureError, RegionNotFoundError


# Leaflet controls left out of thumbnails
LEAFLET_CHROME = (
    ".leaflet-control-attribution",
    ".leaflet-control",
    ".leaflet-control-zoom",
)

TILE_SELECTOR = "img.leaflet-tile"

_TILES_LOADED_JS = """
(selector) => {
  const tiles = Array.from(document.querySelectorAll(selector));
  return tiles.every(t => t.complete && t.naturalWidth > 0);
}
"""


class MapRegion:
    """
    Handle on the map container inside a live page.

    Attributes:
        page: Playwright page hosting the map
        selector: CSS selector of the container to capture
    """

    def __init__(self, page: Page, selector: str = "#map"):
        self.page = page
        self.selector = selector

    def locate(self) -> Locator:
        """
        Find the region on the page.

        Raises:
            RegionNotFoundError: If no element matches the selector
            CaptureError: If the page cannot be queried
        """
        try:
            locator = self.page.locator(self.selector)
            count = locator.count()
        except PlaywrightError as e:
            raise CaptureError(f"Failed to query region {self.selector}: {e}") from e

        if count == 0:
            raise RegionNotFoundError(f"Region not found: {self.selector}")

        return locator.first

    def measure(self, locator: Optional[Locator] = None) -> Tuple[float, float]:
        """
        Current on-screen size of the region in CSS pixels.

        Args:
            locator: Already located region, to skip a second lookup

        Raises:
            RegionNotFoundError: If the region is missing or not rendered
        """
        if locator is None:
            locator = self.locate()

        try:
            box = locator.bounding_box()
        except PlaywrightError as e:
            raise CaptureError(f"Failed to measure region {self.selector}: {e}") from e

        if box is None:
            raise RegionNotFoundError(f"Region is not rendered: {self.selector}")

        return box["width"], box["height"]

    def __repr__(self) -> str:
        return f"MapRegion({self.selector!r})"


@dataclass
class CaptureOptions:
    """How to capture a region."""

    # Resolution multiplier applied to the CSS-pixel size
    scale: float = 1.0

    # Optional clip (CSS px) from the region origin; None captures the whole region
    width: Optional[float] = None
    height: Optional[float] = None

    background: str = "#ffffff"

    # CSS selectors of elements hidden while capturing
    exclude: Sequence[str] = ()

    settle_seconds: float = 0.0
    image_timeout_seconds: float = 5.0

    def __post_init__(self):
        """Validate option values."""
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")

        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.settle_seconds < 0 or self.image_timeout_seconds < 0:
            raise ValueError("settle_seconds and image_timeout_seconds cannot be negative")

    def exclusion_style(self) -> Optional[str]:
        """Stylesheet hiding the excluded elements, or None."""
        if not self.exclude:
            return None
        selectors = ", ".join(self.exclude)
        return f"{selectors} {{ visibility: hidden !important; }}"


class CaptureEngine:
    """
    Rasterizes MapRegion handles.

    Output size is exactly round(w * scale) x round(h * scale), where w x h
    is the captured CSS-pixel area (the region, or the clip within it).
    """

    def capture(self,
                region: MapRegion,
                options: Optional[CaptureOptions] = None) -> Image.Image:
        """
        Capture a region into an RGB image.

        Args:
            region: Region handle to capture
            options: Capture options (defaults: scale 1, white background)

        Returns:
            RGB Pillow image

        Raises:
            RegionNotFoundError: If the region is missing; nothing else runs
            CaptureError: On screenshot failure, timeout or unreadable output
        """
        options = options or CaptureOptions()

        locator = region.locate()
        css_width, css_height = region.measure(locator)
        if css_width <= 0 or css_height <= 0:
            raise CaptureError(
                f"Region {region.selector} has no area ({css_width}x{css_height})"
            )

        timeout_ms = options.image_timeout_seconds * 1000

        try:
            if options.settle_seconds > 0:
                region.page.wait_for_timeout(options.settle_seconds * 1000)

            self._wait_for_tiles(region, timeout_ms)

            png_bytes = locator.screenshot(
                type="png",
                scale="device",
                animations="disabled",
                style=options.exclusion_style(),
                timeout=timeout_ms,
            )
        except PlaywrightTimeoutError as e:
            raise CaptureError(
                f"Capture of {region.selector} timed out after {options.image_timeout_seconds}s"
            ) from e
        except PlaywrightError as e:
            raise CaptureError(f"Capture of {region.selector} failed: {e}") from e

        image = self._rasterize(png_bytes, css_width, css_height, options)

        log_info(
            f"Captured {region.selector} ({css_width:.0f}x{css_height:.0f} css px) "
            f"at scale {options.scale:.3f} -> {image.width}x{image.height}"
        )
        return image

    def _wait_for_tiles(self, region: MapRegion, timeout_ms: float) -> None:
        """Best effort: give map tiles until the timeout to finish loading."""
        try:
            region.page.wait_for_function(
                _TILES_LOADED_JS, arg=TILE_SELECTOR, timeout=timeout_ms
            )
        except PlaywrightTimeoutError:
            log_warning(
                f"Tiles in {region.selector} still loading after "
                f"{timeout_ms / 1000:.1f}s, capturing anyway"
            )

    def _rasterize(self,
                   png_bytes: bytes,
                   css_width: float,
                   css_height: float,
                   options: CaptureOptions) -> Image.Image:
        """Decode, clip, resample and flatten a screenshot."""
        try:
            shot = Image.open(io.BytesIO(png_bytes))
            shot.load()
        except (OSError, ValueError) as e:
            raise CaptureError(f"Screenshot could not be decoded: {e}") from e

        clip_width = min(options.width or css_width, css_width)
        clip_height = min(options.height or css_height, css_height)

        # Screenshots come back at device resolution
        device_ratio_x = shot.width / css_width
        device_ratio_y = shot.height / css_height

        if clip_width < css_width or clip_height < css_height:
            shot = shot.crop((
                0,
                0,
                max(1, round(clip_width * device_ratio_x)),
                max(1, round(clip_height * device_ratio_y)),
            ))

        out_size = (
            max(1, round(clip_width * options.scale)),
            max(1, round(clip_height * options.scale)),
        )
        if shot.size != out_size:
            log_debug(f"Resampling capture {shot.size} -> {out_size}")
            shot = shot.resize(out_size, Image.Resampling.LANCZOS)

        return flatten(shot, options.background)


def flatten(image: Image.Image, background: str) -> Image.Image:
    """Composite an image over a solid background, dropping transparency."""
    rgba = image.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas
