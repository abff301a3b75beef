"""
Per-frequency entry points that resolve a station and return a lazy dataset.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .cache import CacheKey, CacheManager, InventoryFreshness
from .config import ClientConfig
from .exceptions import FetchFailed, NoStationFound
from .frames import LazyDataset, dataset_for
from .models import (
    AnyData,
    Frequency,
    InventoryRequest,
    InventoryRequirement,
    LatLon,
    StationMatch,
)
from .parsing import parse_frame
from .stations import StationDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StationRequest:
    """Request data for one station by identifier."""

    station_id: str
    requirement: Optional[InventoryRequirement] = None

    def validate(self) -> None:
        if not isinstance(self.station_id, str) or not self.station_id.strip():
            raise ValueError("station_id must be a non-empty string")


@dataclass(frozen=True)
class LocationRequest:
    """Request data for the nearest suitable station to a coordinate."""

    location: LatLon
    max_distance_km: float = 50.0
    station_limit: int = 1
    requirement: Optional[InventoryRequirement] = None

    def validate(self) -> None:
        if not isinstance(self.location, LatLon):
            raise ValueError(f"location must be a LatLon, got {type(self.location).__name__}")
        if self.max_distance_km < 0:
            raise ValueError(f"max_distance_km must not be negative, got {self.max_distance_km}")
        if self.station_limit < 1:
            raise ValueError(f"station_limit must be at least 1, got {self.station_limit}")


Request = Union[StationRequest, LocationRequest]


class FrequencyClient:
    """
    Fetches datasets of one frequency by station id or location.

    Instances are obtained from :class:`meteodb.MeteoClient`, e.g.
    ``client.daily()``.
    """

    def __init__(
        self,
        frequency: Frequency,
        directory: StationDirectory,
        cache: CacheManager,
        config: Optional[ClientConfig] = None,
    ):
        self.frequency = frequency
        self.directory = directory
        self.cache = cache
        self.config = config or cache.config

    def __repr__(self) -> str:
        return f"FrequencyClient({self.frequency.value})"

    async def execute(self, request: Request) -> LazyDataset:
        """
        Validate and run a request.

        Raises:
            ValueError: If the request is invalid
            StationNotFound: For an unknown station id
            NoStationFound: If a location search finds no suitable station
            FetchFailed: If the data file cannot be obtained
            ParseError: If the data file is malformed
        """
        request.validate()
        await self.directory.ensure_loaded()
        if isinstance(request, StationRequest):
            return await self._load_station(request.station_id.strip(), request.requirement)
        if isinstance(request, LocationRequest):
            return await self._load_location(request)
        raise TypeError(f"Unsupported request type: {type(request).__name__}")

    async def by_station(
        self,
        station_id: str,
        requirement: Optional[InventoryRequirement] = None,
    ) -> LazyDataset:
        """Dataset for a station identifier."""
        return await self.execute(StationRequest(station_id, requirement))

    async def by_location(
        self,
        location: LatLon,
        max_distance_km: Optional[float] = None,
        station_limit: int = 1,
        requirement: Optional[InventoryRequirement] = None,
    ) -> LazyDataset:
        """
        Dataset for the nearest station that satisfies ``requirement``.

        Up to ``station_limit`` candidates are tried nearest first; a
        candidate whose file cannot be downloaded is skipped.
        """
        if max_distance_km is None:
            max_distance_km = self.config.default_max_distance_km
        return await self.execute(
            LocationRequest(location, max_distance_km, station_limit, requirement)
        )

    async def nearest_station(
        self,
        location: LatLon,
        max_distance_km: Optional[float] = None,
        requirement: Optional[InventoryRequirement] = None,
    ) -> StationMatch:
        """
        The station :meth:`by_location` would try first.

        Raises:
            NoStationFound: If no station matches
        """
        if max_distance_km is None:
            max_distance_km = self.config.default_max_distance_km
        request = LocationRequest(location, max_distance_km, 1, requirement)
        request.validate()
        await self.directory.ensure_loaded()
        return self._candidates(request)[0]

    def _candidates(self, request: LocationRequest) -> List[StationMatch]:
        inventory = InventoryRequest(self.frequency, request.requirement or AnyData())
        matches = self.directory.find(
            request.location,
            max_distance_km=request.max_distance_km,
            limit=request.station_limit,
            inventory=inventory,
        )
        if not matches:
            raise NoStationFound(request.location, request.max_distance_km)
        return matches

    async def _load_location(self, request: LocationRequest) -> LazyDataset:
        matches = self._candidates(request)
        failures: List[FetchFailed] = []
        for match in matches:
            try:
                dataset = await self._load_station(match.station.id, request.requirement)
            except FetchFailed as e:
                logger.warning(
                    f"No {self.frequency.value} data for station {match.station.id} "
                    f"({match.distance_km:.1f} km): {e}"
                )
                failures.append(e)
                continue
            logger.debug(
                f"Using station {match.station.id} at {match.distance_km:.1f} km "
                f"for {self.frequency.value} data"
            )
            return dataset
        # _candidates never returns an empty list, so every candidate failed
        raise failures[-1]

    async def _load_station(
        self,
        station_id: str,
        requirement: Optional[InventoryRequirement],
    ) -> LazyDataset:
        station = self.directory.by_id(station_id)
        policy = InventoryFreshness(requirement, self.config.weather_max_age)
        entry = await self.cache.get(CacheKey.for_station(station.id, self.frequency), policy)
        raw = await asyncio.to_thread(entry.read_bytes)
        frame = await asyncio.to_thread(parse_frame, raw, self.frequency)
        return dataset_for(self.frequency, frame, station_id=station.id)
