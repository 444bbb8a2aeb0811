"""
Geocoding module for MapFlam.

This module provides functionality for:
- Free-text place search against Nominatim with a fallback provider
- Caching search results with a time-to-live
- Recognising "lat,lng" queries without a network call
- Debouncing keystroke-driven searches

Main classes:
- GeocodingGateway: High-level search interface
- NominatimProvider: Primary OpenStreetMap geocoder
- MapboxProvider: Secondary geocoder
- GoogleGeocodingProvider: Optional secondary geocoder
- SearchCache: TTL cache of search results
- SearchDebouncer: Quiet-period gate for search input

Errors:
- GeocodingError: Geocoding failures
- ProviderRequestError: Transport or HTTP status failures
- ProviderResponseError: Unparseable provider responses
"""

from .geocoding_cache import SearchCache
from .geocoding_debounce import SearchDebouncer
from .geocoding_errors import GeocodingError, ProviderRequestError, ProviderResponseError
from .geocoding_gateway import GeocodingGateway, create_gateway_from_config, parse_gps_coordinates
from .geocoding_providers import (
    GeocodingProvider,
    GoogleGeocodingProvider,
    MapboxProvider,
    NominatimProvider,
)

__all__ = [
    # Main classes
    "GeocodingGateway",
    "GeocodingProvider",
    "NominatimProvider",
    "MapboxProvider",
    "GoogleGeocodingProvider",
    "SearchCache",
    "SearchDebouncer",
    "create_gateway_from_config",
    "parse_gps_coordinates",

    # Errors
    "GeocodingError",
    "ProviderRequestError",
    "ProviderResponseError",
]

# Version info
__version__ = "1.0.0"
__author__ = "MapFlam Team"
