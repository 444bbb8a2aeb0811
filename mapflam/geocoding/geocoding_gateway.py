"""
Geocoding gateway: one search call over a primary provider, a fallback
provider and a short-lived result cache.

A search never raises. Provider failures are logged and turn into a
fallback attempt, and a search nobody can answer returns an empty list,
which callers treat as "no matches".
"""

import re
from typing import List, Optional

from ..composition.composition_models import LatLng, LocationResult
from ..config.config_module import get_config, get_float_config, get_int_config, validate_config
from ..config.logger_module import log_info, log_warning, log_error
from .geocoding_cache import DEFAULT_TTL_SECONDS, SearchCache
from .geocoding_errors import GeocodingError
from .geocoding_providers import (
    DEFAULT_LIMIT,
    GeocodingProvider,
    GoogleGeocodingProvider,
    MapboxProvider,
    NominatimProvider,
)


_COORDINATES_PATTERN = re.compile(r"^([-+]?\d+\.?\d*)\s*,\s*([-+]?\d+\.?\d*)$")


def parse_gps_coordinates(query: str) -> Optional[LatLng]:
    """
    Recognize a "<lat>,<lng>" query without any network lookup.

    Args:
        query: Raw search text, e.g. "40.7128,-74.0060"

    Returns:
        The coordinates, or None when the text is not a pair of numbers or
        either number is outside the valid latitude/longitude range
    """
    match = _COORDINATES_PATTERN.match(query.strip())
    if not match:
        return None

    lat = float(match.group(1))
    lng = float(match.group(2))

    if not (-90 <= lat <= 90) or not (-180 <= lng <= 180):
        return None

    return LatLng(lat=lat, lng=lng)


class GeocodingGateway:
    """
    Resolves free-text queries to ranked LocationResult lists.

    Policy:
    1. Blank query -> [] without a network call
    2. Fresh cache entry -> cached results
    3. Primary provider; on zero results or failure, the secondary provider
    4. Non-empty results are cached, whichever provider produced them

    The gateway does no rate limiting; callers debounce keystrokes
    (see SearchDebouncer).
    """

    def __init__(self,
                 primary: Optional[GeocodingProvider] = None,
                 secondary: Optional[GeocodingProvider] = None,
                 cache: Optional[SearchCache] = None,
                 max_results: int = DEFAULT_LIMIT,
                 use_fallback: bool = True):
        """
        Initialize the gateway.

        Args:
            primary: First provider asked (Nominatim if not given)
            secondary: Fallback provider (Mapbox if not given)
            cache: Result cache (5 minute TTL if not given)
            max_results: Cap on returned results
            use_fallback: Set False to query the primary provider only
        """
        self.primary = primary or NominatimProvider()
        self.secondary = (secondary or MapboxProvider()) if use_fallback else None
        self.cache = cache if cache is not None else SearchCache()
        self.max_results = max_results

        log_info(
            f"GeocodingGateway initialized (primary={self.primary.name}, "
            f"secondary={self.secondary.name if self.secondary else 'none'}, "
            f"ttl={self.cache.ttl}s)"
        )

    def search(self, query: str) -> List[LocationResult]:
        """
        Search for places matching a query.

        Args:
            query: Free-text query; the exact string is the cache key

        Returns:
            Up to max_results results, possibly empty; never raises
        """
        if not query or not query.strip():
            return []

        cached = self.cache.get(query)
        if cached is not None:
            return cached

        results = self._query_provider(self.primary, query)

        if not results and self.secondary is not None:
            log_info(
                f"No results from {self.primary.name} for '{query}', "
                f"falling back to {self.secondary.name}"
            )
            results = self._query_provider(self.secondary, query)

        if results:
            self.cache.put(query, results)
        else:
            log_info(f"No matches for '{query}'")

        return results

    def lookup(self, query: str) -> List[LocationResult]:
        """
        Search, but answer coordinate queries directly.

        A "<lat>,<lng>" query yields a single synthetic result without
        touching the network or the cache.
        """
        coordinates = parse_gps_coordinates(query) if query else None
        if coordinates is not None:
            label = f"{coordinates.lat}, {coordinates.lng}"
            return [LocationResult(
                place_id=f"coords:{coordinates.lat},{coordinates.lng}",
                lat=coordinates.lat,
                lng=coordinates.lng,
                display_name=label,
                name=label,
                category="coordinates",
                provider="coordinates",
            )]
        return self.search(query)

    def clear_cache(self) -> None:
        """Forget every cached search."""
        self.cache.clear()
        log_info("Search cache cleared")

    def _query_provider(self,
                        provider: GeocodingProvider,
                        query: str) -> List[LocationResult]:
        """Run one provider, turning any failure into an empty result."""
        try:
            return provider.search(query, self.max_results)[:self.max_results]
        except GeocodingError as e:
            log_error(f"Geocoding search via {provider.name} failed for '{query}': {e}")
        except Exception as e:
            log_error(
                f"Unexpected error in geocoding search via {provider.name} "
                f"for '{query}': {type(e).__name__}: {e}"
            )
        return []


def create_gateway_from_config() -> GeocodingGateway:
    """
    Build a gateway from environment configuration.

    MAPFLAM_GEOCODER_FALLBACK selects the secondary provider:
    "mapbox" (default), "google" or "none". MAPFLAM_SEARCH_TTL overrides the
    cache TTL in seconds and MAPFLAM_SEARCH_LIMIT the result cap.

    Raises:
        ConfigError: If the google fallback is selected without an API key
    """
    fallback = (get_config("MAPFLAM_GEOCODER_FALLBACK", "mapbox") or "mapbox").strip().lower()
    ttl = get_float_config("MAPFLAM_SEARCH_TTL", DEFAULT_TTL_SECONDS)
    max_results = get_int_config("MAPFLAM_SEARCH_LIMIT", DEFAULT_LIMIT)

    secondary: Optional[GeocodingProvider] = None
    if fallback == "google":
        validate_config(["GOOGLE_MAPS_API_KEY"], context="Google geocoding fallback")
        secondary = GoogleGeocodingProvider()
    elif fallback == "mapbox":
        secondary = MapboxProvider()
    elif fallback != "none":
        log_warning(f"Unknown geocoder fallback '{fallback}', using mapbox")
        secondary = MapboxProvider()

    return GeocodingGateway(
        primary=NominatimProvider(),
        secondary=secondary,
        cache=SearchCache(ttl_seconds=ttl),
        max_results=max_results,
        use_fallback=fallback != "none",
    )
