"""
Fixed lookup tables for map compositions.

Holds the colour palette, pin icons and sizes, label sizes, tile provider
templates and the export format table shared by the data model and the
capture pipeline.
"""

from typing import Dict, Tuple


# 6-color fixed palette, first entry is the default
COLOR_PALETTE = (
    "#5422b0",  # purple
    "#02441F",  # dark green
    "#004269",  # dark blue
    "#AB0000",  # red
    "#000000",  # black
    "#FFFFFF",  # white
)

DEFAULT_COLOR = COLOR_PALETTE[0]

ICON_FILES: Dict[str, str] = {
    "pin1": "icon-pin1-fill.svg",
    "pin2": "icon-pin1.svg",
    "pin3": "icon-pin2-fill.svg",
    "pin4": "icon-pin2.svg",
    "pin5": "icon-pin3-fill.svg",
    "pin6": "icon-pin3.svg",
}

# Pin size level -> render scale factor (24px base icon)
SIZE_MAP: Dict[int, float] = {
    1: 1.2,
    2: 1.5,
    3: 2.0,
    4: 2.5,
    5: 3.0,
}

DEFAULT_PIN_SIZE = 3

LABEL_SIZES: Dict[str, str] = {
    "small": "12px",
    "medium": "16px",
    "large": "18px",
}

EXPORT_SIZES: Dict[str, Tuple[int, int]] = {
    "square": (1080, 1080),
    "16:9": (1920, 1080),
    "9:16": (1080, 1920),
}

BASE_MAP_TILES: Dict[str, Dict[str, str]] = {
    "positron": {
        "url": "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
        "attribution": "© OpenStreetMap contributors, © CartoDB",
    },
    "positron-nolabels": {
        "url": "https://{s}.basemaps.cartocdn.com/light_nolabels/{z}/{x}/{y}{r}.png",
        "attribution": "© OpenStreetMap contributors, © CartoDB",
    },
    "toner": {
        "url": "https://tile.openstreetmap.de/tiles/osmde/{z}/{x}/{y}.png",
        "attribution": "© OpenStreetMap contributors, © Stamen Design",
    },
}

INSET_MAP_TILES: Dict[str, Dict[str, str]] = {
    "positron-nolabels": {
        "url": "https://{s}.basemaps.cartocdn.com/light_nolabels/{z}/{x}/{y}{r}.png",
        "attribution": "© OpenStreetMap contributors, © CartoDB",
        "name": "Light",
    },
    "watercolor": {
        "url": "https://tiles.stadiamaps.com/tiles/stamen_watercolor/{z}/{x}/{y}.jpg",
        "attribution": "© OpenStreetMap contributors, © Stamen Design",
        "name": "Watercolor",
    },
    "voyager": {
        "url": "https://{s}.basemaps.cartocdn.com/rastertiles/voyager_nolabels/{z}/{x}/{y}{r}.png",
        "attribution": "© OpenStreetMap contributors, © CartoDB",
        "name": "Voyager",
    },
}

# Inset edge length in CSS pixels
INSET_SIZE_MAP: Dict[str, int] = {
    "small": 100,
    "medium": 140,
    "large": 180,
}

# Lagos
DEFAULT_CENTER = (6.5244, 3.3792)
DEFAULT_ZOOM = 12
DEFAULT_INSET_ZOOM = 5


def is_palette_color(color: str) -> bool:
    """Check palette membership, ignoring hex digit case."""
    return color.lower() in {c.lower() for c in COLOR_PALETTE}


def export_size(map_format: str) -> Tuple[int, int]:
    """
    Resolve an output format to its fixed pixel size.

    Args:
        map_format: One of "square", "16:9", "9:16"

    Returns:
        (width, height) in pixels

    Raises:
        ValueError: For an unknown format
    """
    try:
        return EXPORT_SIZES[map_format]
    except KeyError:
        raise ValueError(
            f"Unknown map format: {map_format}. "
            f"Must be one of {', '.join(EXPORT_SIZES)}"
        )


def tile_url(template: str,
             z: int,
             x: int,
             y: int,
             subdomain: str = "a",
             retina: bool = False) -> str:
    """
    Expand a tile provider URL template.

    Fills the {s}, {z}, {x}, {y} and {r} tokens; {r} becomes "@2x" for
    high-resolution tiles and is dropped otherwise.
    """
    return (
        template
        .replace("{s}", subdomain)
        .replace("{z}", str(z))
        .replace("{x}", str(x))
        .replace("{y}", str(y))
        .replace("{r}", "@2x" if retina else "")
    )
