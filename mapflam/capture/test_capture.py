"""
Test suite for the capture module.

The Playwright page and locator are mocked; screenshots are real PNG bytes
generated with Pillow so resampling, cover-fit cropping and encoding run
for real.

To run tests:
- Command line: python -m pytest mapflam/capture/test_capture.py -v
"""

import base64
import datetime
import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .capture_engine import CaptureEngine, CaptureOptions, MapRegion, flatten
from .capture_errors import CaptureError, RegionNotFoundError
from .capture_export import (
    ExportCompositor,
    compose_cover_fit,
    compute_cover_fit,
    default_export_filename,
)
from .capture_thumbnail import (
    PLACEHOLDER_THUMBNAIL,
    ThumbnailGenerator,
    decode_thumbnail,
    to_data_url,
)


RED = (255, 0, 0)
BLUE = (0, 0, 255)


# ==================== FIXTURES ====================

@pytest.fixture(autouse=True)
def mock_logging():
    """Mock all logging functions to prevent actual logging during tests."""
    with patch('mapflam.capture.capture_engine.log_debug'), \
         patch('mapflam.capture.capture_engine.log_info'), \
         patch('mapflam.capture.capture_engine.log_warning') as warning, \
         patch('mapflam.capture.capture_export.log_info'), \
         patch('mapflam.capture.capture_export.log_error'), \
         patch('mapflam.capture.capture_thumbnail.log_info'), \
         patch('mapflam.capture.capture_thumbnail.log_error'):
        yield warning


def split_png(width: int, height: int, top=RED, bottom=BLUE) -> bytes:
    """PNG with the top half in one colour and the bottom half in another."""
    image = Image.new("RGB", (width, height), top)
    image.paste(bottom, (0, height // 2, width, height))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def make_page(css_width: float = 800, css_height: float = 600, device_ratio: int = 1, count: int = 1):
    """Mock page whose map locator screenshots a red/blue split image."""
    locator = MagicMock()
    locator.count.return_value = count
    locator.first = locator
    locator.bounding_box.return_value = {"x": 0, "y": 0, "width": css_width, "height": css_height}
    locator.screenshot.return_value = split_png(
        int(css_width * device_ratio), int(css_height * device_ratio)
    )

    page = MagicMock()
    page.locator.return_value = locator
    return page, locator


@pytest.fixture
def region():
    page, _ = make_page()
    return MapRegion(page, "#map")


# ==================== MAP REGION ====================

class TestMapRegion:
    """Test region lookup and measurement."""

    def test_measure(self, region):
        assert region.measure() == (800, 600)
        region.page.locator.assert_called_with("#map")

    def test_missing_region(self):
        page, _ = make_page(count=0)

        with pytest.raises(RegionNotFoundError) as exc_info:
            MapRegion(page, "#missing").locate()
        assert "#missing" in str(exc_info.value)

    def test_unrendered_region(self):
        page, locator = make_page()
        locator.bounding_box.return_value = None

        with pytest.raises(RegionNotFoundError):
            MapRegion(page).measure()

    def test_page_error_wrapped(self):
        page, locator = make_page()
        locator.count.side_effect = PlaywrightError("Target closed")

        with pytest.raises(CaptureError):
            MapRegion(page).locate()

    def test_region_not_found_is_capture_error(self):
        assert issubclass(RegionNotFoundError, CaptureError)


# ==================== CAPTURE ENGINE ====================

class TestCaptureOptions:
    """Test option validation."""

    @pytest.mark.parametrize("kwargs", [
        {"scale": 0},
        {"scale": -1},
        {"width": 0},
        {"height": -5},
        {"settle_seconds": -0.1},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            CaptureOptions(**kwargs)

    def test_exclusion_style(self):
        assert CaptureOptions().exclusion_style() is None

        style = CaptureOptions(exclude=(".a", ".b")).exclusion_style()
        assert style == ".a, .b { visibility: hidden !important; }"


class TestCaptureEngine:
    """Test region rasterization."""

    def test_output_size_follows_scale(self, region):
        image = CaptureEngine().capture(region, CaptureOptions(scale=2.4))

        assert image.size == (1920, 1440)
        assert image.mode == "RGB"

    def test_device_resolution_screenshot_resampled(self):
        page, _ = make_page(device_ratio=2)

        image = CaptureEngine().capture(MapRegion(page), CaptureOptions(scale=1))

        assert image.size == (800, 600)

    def test_clip_from_origin(self, region):
        image = CaptureEngine().capture(region, CaptureOptions(scale=0.5, width=400, height=200))

        assert image.size == (200, 100)
        # Clip keeps only the top (red) part
        assert image.getpixel((100, 90)) == RED

    def test_screenshot_parameters(self, region):
        CaptureEngine().capture(region, CaptureOptions(
            exclude=(".leaflet-control",), image_timeout_seconds=2
        ))

        kwargs = region.page.locator.return_value.screenshot.call_args[1]
        assert kwargs["type"] == "png"
        assert kwargs["animations"] == "disabled"
        assert kwargs["timeout"] == 2000
        assert ".leaflet-control" in kwargs["style"]

    def test_settle_wait(self, region):
        CaptureEngine().capture(region, CaptureOptions(settle_seconds=0.5))
        region.page.wait_for_timeout.assert_called_once_with(500)

    def test_missing_region_captures_nothing(self):
        page, locator = make_page(count=0)

        with pytest.raises(RegionNotFoundError):
            CaptureEngine().capture(MapRegion(page))
        locator.screenshot.assert_not_called()

    def test_slow_tiles_only_warn(self, region, mock_logging):
        region.page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")

        image = CaptureEngine().capture(region)

        assert image.size == (800, 600)
        mock_logging.assert_called_once()

    def test_screenshot_timeout(self, region):
        region.page.locator.return_value.screenshot.side_effect = PlaywrightTimeoutError("Timeout")

        with pytest.raises(CaptureError) as exc_info:
            CaptureEngine().capture(region)
        assert "timed out" in str(exc_info.value)

    def test_undecodable_screenshot(self, region):
        region.page.locator.return_value.screenshot.return_value = b"not a png"

        with pytest.raises(CaptureError):
            CaptureEngine().capture(region)

    def test_flatten_removes_transparency(self):
        transparent = Image.new("RGBA", (4, 4), (0, 0, 0, 0))

        flat = flatten(transparent, "#ffffff")

        assert flat.mode == "RGB"
        assert flat.getpixel((2, 2)) == (255, 255, 255)


# ==================== COVER FIT ====================

class TestCoverFit:
    """Test cover-fit geometry."""

    @pytest.mark.parametrize("source,target", [
        ((800, 600), (1920, 1080)),
        ((800, 600), (1080, 1080)),
        ((800, 600), (1080, 1920)),
        ((375, 812), (1920, 1080)),
        ((1080, 1080), (1080, 1080)),
        ((333, 777), (1080, 1920)),
    ])
    def test_never_letterboxes(self, source, target):
        fit = compute_cover_fit(*source, *target)

        assert fit.scale == max(fit.scale_x, fit.scale_y)
        assert source[0] * fit.scale >= target[0] - 1e-9
        assert source[1] * fit.scale >= target[1] - 1e-9
        assert fit.offset_x <= 1e-9 and fit.offset_y <= 1e-9
        # One axis exactly fills the target
        assert min(abs(fit.offset_x), abs(fit.offset_y)) < 1e-9

    def test_wide_target_from_landscape_region(self):
        fit = compute_cover_fit(800, 600, 1920, 1080)

        assert fit.scale == pytest.approx(2.4)
        assert (fit.captured_width, fit.captured_height) == (1920, 1440)
        assert fit.offset_x == pytest.approx(0)
        assert fit.offset_y == pytest.approx(-180)
        assert fit.crops

    def test_exact_aspect_does_not_crop(self):
        fit = compute_cover_fit(960, 540, 1920, 1080)

        assert fit.scale == 2
        assert not fit.crops

    @pytest.mark.parametrize("width,height", [(0, 600), (800, 0), (-1, 10)])
    def test_degenerate_region(self, width, height):
        with pytest.raises(CaptureError):
            compute_cover_fit(width, height, 1080, 1080)

    def test_compose_centres_and_crops(self):
        captured = Image.new("RGB", (1920, 1440), RED)
        captured.paste(BLUE, (0, 720, 1920, 1440))

        canvas = compose_cover_fit(captured, 1920, 1080)

        assert canvas.size == (1920, 1080)
        assert canvas.getpixel((960, 5)) == RED
        assert canvas.getpixel((960, 1074)) == BLUE


# ==================== EXPORT ====================

class TestExportCompositor:
    """Test fixed-size PNG exports."""

    @pytest.mark.parametrize("map_format,size", [
        ("square", (1080, 1080)),
        ("16:9", (1920, 1080)),
        ("9:16", (1080, 1920)),
    ])
    def test_render_exact_size(self, region, map_format, size):
        image = ExportCompositor(settle_seconds=0).render(region, map_format)

        assert image.size == size

    def test_render_keeps_centre_of_region(self, region):
        image = ExportCompositor(settle_seconds=0).render(region, "16:9")

        # 800x600 region at scale 2.4: 180 px trimmed from top and bottom
        assert image.getpixel((960, 10)) == RED
        assert image.getpixel((960, 1070)) == BLUE

    def test_render_waits_for_settle(self, region):
        ExportCompositor().render(region, "square")
        region.page.wait_for_timeout.assert_called_once_with(500)

    def test_unknown_format(self, region):
        with pytest.raises(ValueError):
            ExportCompositor().render(region, "4:3")

    def test_export_writes_png(self, region, tmp_path):
        path = ExportCompositor(settle_seconds=0).export(
            region, "16:9", filename="lagos.png", output_dir=tmp_path
        )

        assert path == tmp_path / "lagos.png"
        with Image.open(path) as written:
            assert written.format == "PNG"
            assert written.size == (1920, 1080)
        assert [p.name for p in tmp_path.iterdir()] == ["lagos.png"]

    def test_export_default_filename(self, region, tmp_path):
        path = ExportCompositor(settle_seconds=0).export(region, "square", output_dir=tmp_path)

        assert path.name.startswith("mapflam_square_")
        assert path.suffix == ".png"

    def test_failed_export_writes_nothing(self, region, tmp_path):
        region.page.locator.return_value.screenshot.side_effect = PlaywrightError("Target closed")

        with pytest.raises(CaptureError):
            ExportCompositor(settle_seconds=0).export(region, "square", output_dir=tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_missing_region_export(self, tmp_path):
        page, _ = make_page(count=0)

        with pytest.raises(RegionNotFoundError):
            ExportCompositor().export(MapRegion(page), "square", output_dir=tmp_path)
        assert list(tmp_path.iterdir()) == []

    def test_default_export_filename(self):
        day = datetime.date(2024, 3, 5)

        assert default_export_filename("square", day) == "mapflam_square_2024-03-05.png"
        assert default_export_filename("16:9", day) == "mapflam_16:9_2024-03-05.png"

    @patch('mapflam.capture.capture_export.datetime')
    def test_default_export_filename_uses_utc_date(self, mock_datetime):
        mock_datetime.timezone.utc = datetime.timezone.utc
        mock_datetime.datetime.now.return_value = datetime.datetime(
            2024, 3, 5, 23, 30, tzinfo=datetime.timezone.utc
        )

        assert default_export_filename("square") == "mapflam_square_2024-03-05.png"
        mock_datetime.datetime.now.assert_called_once_with(datetime.timezone.utc)


# ==================== THUMBNAIL ====================

class TestThumbnailGenerator:
    """Test thumbnail previews."""

    def test_thumbnail_is_square_data_url(self, region):
        data_url = ThumbnailGenerator().thumbnail(region)

        assert data_url.startswith("data:image/png;base64,")
        assert decode_thumbnail(data_url).size == (102, 102)

    def test_thumbnail_hides_map_controls(self, region):
        ThumbnailGenerator().thumbnail(region)

        style = region.page.locator.return_value.screenshot.call_args[1]["style"]
        assert ".leaflet-control-attribution" in style
        assert ".leaflet-control-zoom" in style

    def test_thumbnail_custom_size(self, region):
        data_url = ThumbnailGenerator(size=64, supersample=1).thumbnail(region)
        assert decode_thumbnail(data_url).size == (64, 64)

    def test_missing_region_gives_placeholder(self):
        page, _ = make_page(count=0)
        assert ThumbnailGenerator().thumbnail(MapRegion(page)) == PLACEHOLDER_THUMBNAIL

    def test_capture_failure_gives_placeholder(self, region):
        region.page.locator.return_value.screenshot.side_effect = PlaywrightTimeoutError("Timeout")
        assert ThumbnailGenerator().thumbnail(region) == PLACEHOLDER_THUMBNAIL

    def test_placeholder_is_png_data_url(self):
        assert PLACEHOLDER_THUMBNAIL.startswith("data:image/png;base64,")

        raw = base64.b64decode(PLACEHOLDER_THUMBNAIL.split(",", 1)[1])
        with Image.open(io.BytesIO(raw)) as header:
            assert header.format == "PNG"
            assert header.size == (64, 64)

    def test_data_url_round_trip(self):
        image = Image.new("RGB", (10, 10), RED)
        assert decode_thumbnail(to_data_url(image)).getpixel((5, 5)) == RED

    @pytest.mark.parametrize("value", ["", "data:image/jpeg;base64,AAAA", "data:image/png;base64,@@@"])
    def test_decode_rejects_bad_input(self, value):
        with pytest.raises(ValueError):
            decode_thumbnail(value)
