"""
High-level convenience functions for weather data access.

The async functions require a ``client``. Their blocking ``.sync`` variants
open a temporary :class:`MeteoClient` when none is passed.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

import polars as pl

from .client import MeteoClient
from .frames import LazyDataset
from .models import AnyData, Frequency, InventoryRequest, InventoryRequirement, LatLon
from .periods import CalendarDate, Period, Year, YearMonth
from .utils import add_sync_version

FrequencyLike = Union[Frequency, str]
PeriodLike = Union[Period, int, date]


def _as_frequency(frequency: FrequencyLike) -> Frequency:
    if isinstance(frequency, Frequency):
        return frequency
    try:
        return Frequency(frequency.lower())
    except ValueError:
        valid = ", ".join(f.value for f in Frequency)
        raise ValueError(f"Unknown frequency '{frequency}'. Choose one of: {valid}") from None


def _as_period(period: PeriodLike) -> Period:
    """Accept a Year/YearMonth/CalendarDate, a bare year or a date."""
    if isinstance(period, (Year, YearMonth, CalendarDate)):
        return period
    if isinstance(period, datetime):
        return CalendarDate(period.date())
    if isinstance(period, date):
        return CalendarDate(period)
    if isinstance(period, int):
        return Year(period)
    raise TypeError(f"Unsupported period: {period!r}")


def _apply_period(dataset: LazyDataset, period: Optional[PeriodLike]) -> pl.DataFrame:
    if period is not None:
        dataset = dataset.for_period(_as_period(period))
    return dataset.sort().materialize()


@add_sync_version
async def find_nearby_stations(
    latitude: float,
    longitude: float,
    max_distance_km: float = 50.0,
    limit: int = 5,
    frequency: Optional[FrequencyLike] = None,
    requirement: Optional[InventoryRequirement] = None,
    client: Optional[MeteoClient] = None,
) -> List[Dict[str, Any]]:
    """
    Find stations near a point.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        max_distance_km: Search radius
        limit: Maximum number of stations
        frequency: Only stations with data for this frequency
        requirement: Inventory requirement for ``frequency``
        client: Optional client instance

    Returns:
        List of station dictionaries, nearest first, with ``distance_km``

    Example:
        >>> stations = find_nearby_stations.sync(40.7128, -74.0060)
        >>> stations[0]["id"]
    """
    if client is None:
        raise TypeError("client parameter is required")

    inventory = None
    if frequency is not None:
        inventory = InventoryRequest(_as_frequency(frequency), requirement or AnyData())
    elif requirement is not None:
        raise ValueError("requirement needs a frequency to be evaluated against")

    matches = await client.find_stations(
        LatLon(latitude, longitude), max_distance_km, limit, inventory
    )
    return [
        {
            "id": m.station.id,
            "name": m.station.display_name(),
            "country": m.station.country,
            "region": m.station.region,
            "latitude": m.station.location.latitude,
            "longitude": m.station.location.longitude,
            "elevation": m.station.location.elevation,
            "timezone": m.station.timezone,
            "distance_km": round(m.distance_km, 2),
        }
        for m in matches
    ]


@add_sync_version
async def get_station_data(
    station_id: str,
    frequency: FrequencyLike = Frequency.DAILY,
    period: Optional[PeriodLike] = None,
    requirement: Optional[InventoryRequirement] = None,
    client: Optional[MeteoClient] = None,
) -> pl.DataFrame:
    """
    Weather data for a station as a polars DataFrame sorted by time.

    Args:
        station_id: Station identifier (e.g., '10637')
        frequency: 'hourly', 'daily', 'monthly' or 'climate'
        period: Year, YearMonth, CalendarDate, a bare year or a date
        requirement: Inventory requirement driving cache freshness
        client: Optional client instance

    Example:
        >>> frame = get_station_data.sync("10637", "daily", period=2023)
    """
    if client is None:
        raise TypeError("client parameter is required")

    dataset = await client.frequency(_as_frequency(frequency)).by_station(station_id, requirement)
    return _apply_period(dataset, period)


@add_sync_version
async def get_location_data(
    latitude: float,
    longitude: float,
    frequency: FrequencyLike = Frequency.DAILY,
    period: Optional[PeriodLike] = None,
    max_distance_km: float = 50.0,
    station_limit: int = 1,
    requirement: Optional[InventoryRequirement] = None,
    client: Optional[MeteoClient] = None,
) -> pl.DataFrame:
    """
    Weather data from the nearest suitable station to a point.

    Args:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        frequency: 'hourly', 'daily', 'monthly' or 'climate'
        period: Year, YearMonth, CalendarDate, a bare year or a date
        max_distance_km: Search radius
        station_limit: Number of nearby stations to try
        requirement: Inventory requirement the station must satisfy
        client: Optional client instance
    """
    if client is None:
        raise TypeError("client parameter is required")

    dataset = await client.frequency(_as_frequency(frequency)).by_location(
        LatLon(latitude, longitude),
        max_distance_km=max_distance_km,
        station_limit=station_limit,
        requirement=requirement,
    )
    return _apply_period(dataset, period)
