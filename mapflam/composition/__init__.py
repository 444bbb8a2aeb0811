"""
Composition module for MapFlam.

This module provides:
- Pydantic models for markers, labels, the inset map and saved compositions
- The fixed colour palette, icon set, size scales and export formats
- Tile URL templates for the base and inset maps

Main classes:
- CompositionState: Everything needed to restore a map view
- SavedComposition: A named, timestamped snapshot with its thumbnail
- Marker: A placed pin with optional label
- LocationResult: One geocoding match
"""

from .composition_models import (
    CompositionState,
    InsetConfig,
    Label,
    LatLng,
    LocationResult,
    Marker,
    SavedComposition,
    Spotlight,
    ViewState,
    next_composition_name,
    next_marker_name,
)
from .composition_styles import COLOR_PALETTE, EXPORT_SIZES, export_size, is_palette_color

__all__ = [
    # Models
    "CompositionState",
    "ViewState",
    "SavedComposition",
    "Marker",
    "Label",
    "LatLng",
    "InsetConfig",
    "Spotlight",
    "LocationResult",

    # Helpers
    "next_marker_name",
    "next_composition_name",
    "export_size",
    "is_palette_color",
    "COLOR_PALETTE",
    "EXPORT_SIZES",
]

# Version info
__version__ = "1.0.0"
__author__ = "MapFlam Team"
