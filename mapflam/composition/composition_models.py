"""
Data model for map compositions.

Pydantic models for markers, labels, view state, inset maps and saved
compositions. Every model validates on construction so coordinates, sizes,
opacities and colours are always drawn from their finite domains.

Models serialize with the camelCase keys used by the browser application,
so a dumped store is interchangeable with its persisted value.
"""

import re
import time
import uuid
from typing import Annotated, List, Literal, Optional, Sequence

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel

from .composition_styles import (
    DEFAULT_CENTER,
    DEFAULT_COLOR,
    DEFAULT_INSET_ZOOM,
    DEFAULT_PIN_SIZE,
    DEFAULT_ZOOM,
    SIZE_MAP,
    is_palette_color,
)


IconType = Literal["pin1", "pin2", "pin3", "pin4", "pin5", "pin6"]
LabelSize = Literal["small", "medium", "large"]
MapFormat = Literal["square", "16:9", "9:16"]
BaseMap = Literal["positron", "positron-nolabels", "toner"]
InsetPosition = Literal["top-left", "top-right", "bottom-left", "bottom-right"]
InsetSize = Literal["small", "medium", "large"]
InsetBaseMap = Literal["positron-nolabels", "watercolor", "voyager"]

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def _new_id() -> str:
    return str(uuid.uuid4())


def _check_palette(color: str) -> str:
    if not is_palette_color(color):
        raise ValueError(f"Color {color} is not in the palette")
    return color


Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
Percent = Annotated[int, Field(ge=0, le=100)]
SizeLevel = Annotated[int, Field(ge=1, le=5)]
PaletteColor = Annotated[str, AfterValidator(_check_palette)]


class CompositionModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """Serialize to the JSON-ready persisted shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LatLng(CompositionModel):
    """A valid geographic position."""

    lat: Latitude
    lng: Longitude


class Label(CompositionModel):
    """Text label attached to a marker."""

    text: str
    size: LabelSize = "medium"
    bg_color: PaletteColor = DEFAULT_COLOR
    bg_opacity: Percent = 100
    offset_x: float = 0
    offset_y: float = 0


class Marker(CompositionModel):
    """A pin placed on the map."""

    id: str = Field(default_factory=_new_id)
    lat: Latitude
    lng: Longitude
    icon: IconType = "pin1"
    size: SizeLevel = DEFAULT_PIN_SIZE
    opacity: Percent = 100
    color: PaletteColor = DEFAULT_COLOR
    name: str = "Pin 1"
    label: Optional[Label] = None

    @property
    def scale(self) -> float:
        """Render scale factor for the marker's size level."""
        return SIZE_MAP[self.size]


class Spotlight(CompositionModel):
    """Highlight circle drawn on the inset map."""

    enabled: bool = False
    lat: Latitude
    lng: Longitude
    color: PaletteColor = DEFAULT_COLOR
    size: SizeLevel = 3
    opacity: Percent = 100


class InsetConfig(CompositionModel):
    """Locator map drawn in a corner of the main map."""

    enabled: bool = False
    position: InsetPosition = "top-right"
    size: InsetSize = "medium"
    border_color: str = DEFAULT_COLOR
    base_map: InsetBaseMap = "positron-nolabels"
    center: LatLng = Field(
        default_factory=lambda: LatLng(lat=DEFAULT_CENTER[0], lng=DEFAULT_CENTER[1])
    )
    zoom: float = Field(default=DEFAULT_INSET_ZOOM, ge=0)
    spotlight: Spotlight = Field(
        default_factory=lambda: Spotlight(lat=DEFAULT_CENTER[0], lng=DEFAULT_CENTER[1])
    )

    @field_validator("border_color")
    @classmethod
    def _check_border_color(cls, value: str) -> str:
        if not _HEX_COLOR.match(value):
            raise ValueError(f"Border color must be a #rrggbb hex string, got {value}")
        return value


class ViewState(CompositionModel):
    """Where the map looks and how it is exported."""

    center: LatLng = Field(
        default_factory=lambda: LatLng(lat=DEFAULT_CENTER[0], lng=DEFAULT_CENTER[1]),
        alias="mapCenter",
    )
    zoom: float = Field(default=DEFAULT_ZOOM, ge=0, alias="mapZoom")
    format: MapFormat = Field(default="square", alias="selectedFormat")
    base_map: BaseMap = Field(default="positron", alias="selectedBaseMap")
    inset: Optional[InsetConfig] = Field(default=None, alias="insetConfig")


class CompositionState(ViewState):
    """View state plus markers: everything needed to restore editing."""

    markers: List[Marker] = Field(default_factory=list)


class SavedComposition(CompositionModel):
    """
    One saved unit of the store.

    Frozen: a rename produces a copy with only the name changed, so id,
    created_at, state and thumbnail never change after creation.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(default_factory=_new_id)
    name: str
    created_at: int
    state: CompositionState
    thumbnail: str

    @computed_field(alias="pinCount")
    @property
    def pin_count(self) -> int:
        return len(self.state.markers)

    @classmethod
    def create(cls,
               name: str,
               state: CompositionState,
               thumbnail: str,
               now_ms: Optional[int] = None) -> "SavedComposition":
        """
        Build a new composition with a fresh id and creation timestamp.

        Args:
            name: User-facing name
            state: View state and markers to persist
            thumbnail: Data URL of the preview image
            now_ms: Creation time in epoch milliseconds (defaults to now)
        """
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return cls(name=name, created_at=now_ms, state=state, thumbnail=thumbnail)

    def renamed(self, new_name: str) -> "SavedComposition":
        """Return a copy carrying a new name."""
        return self.model_copy(update={"name": new_name})


class LocationResult(BaseModel):
    """A geocoded place, normalized across providers."""

    place_id: str
    lat: Latitude
    lng: Longitude
    display_name: str
    name: str = ""
    category: str = "place"
    provider: str

    @property
    def position(self) -> LatLng:
        return LatLng(lat=self.lat, lng=self.lng)


def next_marker_name(markers: Sequence[Marker]) -> str:
    """Default name for the next pin: "Pin 1", "Pin 2", ..."""
    return f"Pin {len(markers) + 1}"


def next_composition_name(saved: Sequence[SavedComposition]) -> str:
    """Default name for the next saved map, skipping names already taken."""
    taken = {composition.name for composition in saved}
    number = len(saved) + 1
    while f"Map {number}" in taken:
        number += 1
    return f"Map {number}"
