"""
Custom exceptions for the geocoding module.

Providers raise these; the gateway catches them to decide on fallback, so
none of them reach the caller of a search.
"""


class GeocodingError(Exception):
    """Base exception for geocoding failures."""
    pass


class ProviderRequestError(GeocodingError):
    """Raised when a provider request fails: network error, timeout or non-200 status."""
    pass


class ProviderResponseError(GeocodingError):
    """Raised when a provider answers with a payload that cannot be normalized."""
    pass
