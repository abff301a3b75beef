"""
Exceptions for meteodb operations.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .cache import CacheKey
    from .models import LatLon


class MeteoDBError(Exception):
    """Base exception for all meteodb errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class DirectoryUnavailable(MeteoDBError):
    """The station list could not be obtained from cache or network."""

    pass


class StationNotFound(MeteoDBError):
    """No station with the requested identifier exists in the directory."""

    def __init__(self, station_id: str):
        super().__init__(
            f"Station '{station_id}' not found in the station directory",
            {"station_id": station_id},
        )
        self.station_id = station_id


class NoStationFound(MeteoDBError):
    """A location search returned no station matching the request."""

    def __init__(self, location: "LatLon", max_distance_km: Optional[float]):
        radius = (
            f"within {max_distance_km:g} km" if max_distance_km is not None else "anywhere"
        )
        super().__init__(
            f"No station found {radius} of "
            f"({location.latitude:.4f}, {location.longitude:.4f})",
            {"location": location, "max_distance_km": max_distance_km},
        )
        self.location = location
        self.max_distance_km = max_distance_km


class FetchFailed(MeteoDBError):
    """Downloading or decompressing a remote resource failed."""

    def __init__(
        self,
        key: "CacheKey",
        cause: str,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            f"Failed to fetch {key}: {cause}",
            {"key": key, "status_code": status_code},
        )
        self.key = key
        self.cause = cause
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code == 404:
            return f"{self.message} (the provider has no file for this resource)"
        return self.message


class FetchTimeout(FetchFailed):
    """A fetch did not complete within the caller's timeout."""

    pass


class ParseError(MeteoDBError):
    """Cached data could not be decoded into the expected schema."""

    def __init__(self, detail: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Parse error: {detail}", details)
        self.detail = detail


class UnsupportedFilter(MeteoDBError):
    """The filter does not apply to the dataset's frequency."""

    pass


class EngineError(MeteoDBError):
    """The columnar engine failed while evaluating a query plan."""

    pass


class SchemaMismatchError(MeteoDBError):
    """A frame's columns do not match the schema of its frequency."""

    pass


class ExpectedSingleRow(MeteoDBError):
    """A single-row collection produced zero or several rows."""

    def __init__(self, actual: int):
        super().__init__(
            f"Expected exactly one row, got {actual}", {"actual": actual}
        )
        self.actual = actual


__all__ = [
    "MeteoDBError",
    "DirectoryUnavailable",
    "StationNotFound",
    "NoStationFound",
    "FetchFailed",
    "FetchTimeout",
    "ParseError",
    "UnsupportedFilter",
    "EngineError",
    "SchemaMismatchError",
    "ExpectedSingleRow",
]
