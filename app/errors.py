"""Errors raised while looking up AQI readings."""


class AqiServiceError(Exception):
    """Base exception for AQI lookup failures."""
    pass


class MissingCityError(AqiServiceError):
    """Raised when the request carries no usable city name."""
    pass


class CityNotFoundError(AqiServiceError):
    """Raised when geocoding returns no results."""
    pass


class UpstreamError(AqiServiceError):
    """Raised when an Open-Meteo API call fails or returns a bad payload."""
    pass
