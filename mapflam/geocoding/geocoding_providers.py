"""
Geocoding provider clients.

Each provider turns a free-text query into a ranked list of LocationResult,
normalizing its own response shape so the gateway never sees provider
specifics. Failures are raised as ProviderRequestError (network, timeout,
HTTP status) or ProviderResponseError (unusable payload).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import googlemaps
import requests
from pydantic import ValidationError
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..composition.composition_models import LocationResult
from ..config.config_module import get_config
from ..config.logger_module import log_info, log_warning
from .geocoding_errors import ProviderRequestError, ProviderResponseError


DEFAULT_USER_AGENT = "MapFlam/1.0"
DEFAULT_REQUEST_TIMEOUT = 10
DEFAULT_LIMIT = 5

# Only transport-level failures are worth retrying; HTTP errors are not.
_TRANSIENT_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


class GeocodingProvider(ABC):
    """Abstract base for geocoding providers."""

    name = "provider"

    @abstractmethod
    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[LocationResult]:
        """
        Look up a free-text query.

        Args:
            query: Text to search for
            limit: Maximum number of results to request

        Returns:
            Results in provider relevance order (may be empty)

        Raises:
            ProviderRequestError: On network failure, timeout or HTTP error
            ProviderResponseError: On a payload that cannot be normalized
        """
        pass


class HttpGeocodingProvider(GeocodingProvider):
    """
    Shared HTTP plumbing for JSON geocoding endpoints.

    Uses a requests session with a fixed timeout and retries transient
    transport errors with exponential backoff before giving up.
    """

    def __init__(self,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 retry_attempts: int = 2,
                 retry_backoff: float = 0.25,
                 session: Optional[requests.Session] = None):
        """
        Args:
            request_timeout: HTTP request timeout in seconds
            retry_attempts: Total attempts for transient transport errors
            retry_backoff: Multiplier for the exponential wait between attempts
            session: Optional preconfigured session
        """
        self.request_timeout = request_timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff

        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": get_config("MAPFLAM_USER_AGENT", DEFAULT_USER_AGENT)
        })

    def _get_json(self,
                  url: str,
                  params: Optional[Dict[str, Any]] = None,
                  headers: Optional[Dict[str, str]] = None) -> Any:
        """GET a URL and decode its JSON body."""
        retrying = Retrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=self.retry_backoff, max=2),
            retry=retry_if_exception_type(_TRANSIENT_ERRORS),
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    response = self._session.get(
                        url,
                        params=params,
                        headers=headers,
                        timeout=self.request_timeout
                    )
        except requests.exceptions.Timeout as e:
            raise ProviderRequestError(f"{self.name}: request timed out after {self.request_timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise ProviderRequestError(f"{self.name}: request failed: {e}") from e

        if response.status_code != 200:
            raise ProviderRequestError(
                f"{self.name}: HTTP {response.status_code}: {response.text[:200]}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"{self.name}: response is not JSON") from e

    def _normalize_all(self, items: List[Any], limit: int) -> List[LocationResult]:
        """Normalize raw items, skipping any single malformed entry."""
        results = []
        for item in items[:limit]:
            try:
                results.append(self._normalize(item))
            except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
                log_warning(f"{self.name}: skipping malformed result {str(item)[:100]}: {e}")
        return results

    @abstractmethod
    def _normalize(self, item: Any) -> LocationResult:
        """Convert one raw provider item into a LocationResult."""
        pass


class NominatimProvider(HttpGeocodingProvider):
    """OpenStreetMap Nominatim search (primary provider)."""

    name = "nominatim"
    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[LocationResult]:
        log_info(f"Nominatim search: '{query}'")

        payload = self._get_json(
            self.BASE_URL,
            params={
                "q": query,
                "format": "json",
                "limit": str(limit),
                "addressdetails": "1",
            },
            headers={"Accept-Language": "en"}
        )

        if not isinstance(payload, list):
            raise ProviderResponseError(f"nominatim: expected a list, got {type(payload).__name__}")

        return self._normalize_all(payload, limit)

    def _normalize(self, item: Dict[str, Any]) -> LocationResult:
        display_name = item["display_name"]
        return LocationResult(
            place_id=str(item["place_id"]),
            lat=float(item["lat"]),
            lng=float(item["lon"]),
            display_name=display_name,
            name=item.get("name") or display_name.split(",")[0],
            category=item.get("type") or item.get("class") or "place",
            provider=self.name,
        )


class MapboxProvider(HttpGeocodingProvider):
    """Mapbox forward geocoding (default secondary provider)."""

    name = "mapbox"
    BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        """
        Args:
            api_key: Mapbox access token (loaded from config if not provided)
            **kwargs: Passed to HttpGeocodingProvider
        """
        super().__init__(**kwargs)
        self.api_key = api_key or get_config("MAPBOX_API_KEY")

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[LocationResult]:
        if not self.api_key:
            log_warning("Mapbox API key not configured, skipping Mapbox search")
            return []

        log_info(f"Mapbox search: '{query}'")

        payload = self._get_json(
            f"{self.BASE_URL}/{quote(query, safe='')}.json",
            params={
                "access_token": self.api_key,
                "limit": str(limit),
                "language": "en",
            }
        )

        if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
            raise ProviderResponseError("mapbox: response has no feature list")

        return self._normalize_all(payload["features"], limit)

    def _normalize(self, feature: Dict[str, Any]) -> LocationResult:
        # Mapbox centers are [lng, lat]
        lng, lat = feature["center"][0], feature["center"][1]
        place_types = feature.get("place_type") or ["place"]
        return LocationResult(
            place_id=str(feature["id"]),
            lat=float(lat),
            lng=float(lng),
            display_name=feature["place_name"],
            name=feature.get("text", ""),
            category=place_types[0],
            provider=self.name,
        )


class GoogleGeocodingProvider(GeocodingProvider):
    """Google Maps geocoding through the googlemaps SDK (optional secondary)."""

    name = "google"

    def __init__(self,
                 api_key: Optional[str] = None,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        """
        Args:
            api_key: Google Maps API key (loaded from config if not provided)
            request_timeout: SDK request timeout in seconds
        """
        self.api_key = api_key or get_config("GOOGLE_MAPS_API_KEY")
        self.request_timeout = request_timeout
        self._gmaps = None

    def _client(self) -> "googlemaps.Client":
        if self._gmaps is None:
            try:
                self._gmaps = googlemaps.Client(key=self.api_key, timeout=self.request_timeout)
            except ValueError as e:
                raise ProviderRequestError(f"google: invalid client configuration: {e}") from e
        return self._gmaps

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> List[LocationResult]:
        if not self.api_key:
            log_warning("Google Maps API key not configured, skipping Google search")
            return []

        log_info(f"Google search: '{query}'")

        try:
            raw_results = self._client().geocode(query, language="en")
        except googlemaps.exceptions.Timeout as e:
            raise ProviderRequestError("google: request timed out") from e
        except (googlemaps.exceptions.ApiError,
                googlemaps.exceptions.HTTPError,
                googlemaps.exceptions.TransportError) as e:
            raise ProviderRequestError(f"google: request failed: {e}") from e

        if not isinstance(raw_results, list):
            raise ProviderResponseError("google: expected a list of results")

        results = []
        for item in raw_results[:limit]:
            try:
                results.append(self._normalize(item))
            except (KeyError, IndexError, TypeError, ValueError, ValidationError) as e:
                log_warning(f"google: skipping malformed result: {e}")
        return results

    def _normalize(self, item: Dict[str, Any]) -> LocationResult:
        location = item["geometry"]["location"]
        components = item.get("address_components") or []
        types = item.get("types") or ["place"]
        return LocationResult(
            place_id=str(item["place_id"]),
            lat=float(location["lat"]),
            lng=float(location["lng"]),
            display_name=item["formatted_address"],
            name=components[0]["long_name"] if components else item["formatted_address"],
            category=types[0],
            provider=self.name,
        )
