"""
Top-level async client for historical weather data.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .cache import CacheKey, CacheManager
from .config import ClientConfig
from .frequency import FrequencyClient
from .models import Frequency, InventoryRequest, LatLon, Station, StationMatch
from .stations import StationDirectory

logger = logging.getLogger(__name__)


class MeteoClient:
    """
    Async client for Meteostat bulk weather data.

    The client owns the cache manager and the station directory shared by
    its per-frequency clients.

    Example:
        >>> async with MeteoClient() as client:
        ...     daily = await client.daily().by_station("10637")
        ...     frame = daily.for_period(Year(2023)).materialize()
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or ClientConfig()
        self.cache = CacheManager(self.config, http_client=http_client)
        self.directory = StationDirectory(self.cache)
        self._frequency_clients: Dict[Frequency, FrequencyClient] = {}

    async def __aenter__(self) -> "MeteoClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP connection pool."""
        await self.cache.close()

    def frequency(self, frequency: Frequency) -> FrequencyClient:
        """Client for ``frequency``; one instance per frequency is reused."""
        client = self._frequency_clients.get(frequency)
        if client is None:
            client = FrequencyClient(frequency, self.directory, self.cache, self.config)
            self._frequency_clients[frequency] = client
        return client

    def hourly(self) -> FrequencyClient:
        return self.frequency(Frequency.HOURLY)

    def daily(self) -> FrequencyClient:
        return self.frequency(Frequency.DAILY)

    def monthly(self) -> FrequencyClient:
        return self.frequency(Frequency.MONTHLY)

    def climate(self) -> FrequencyClient:
        return self.frequency(Frequency.CLIMATE)

    async def station(self, station_id: str) -> Station:
        """Look up station metadata by identifier."""
        await self.directory.ensure_loaded()
        return self.directory.by_id(station_id)

    async def find_stations(
        self,
        location: LatLon,
        max_distance_km: Optional[float] = None,
        limit: Optional[int] = 5,
        inventory: Optional[InventoryRequest] = None,
    ) -> List[StationMatch]:
        """
        Find stations near ``location``, nearest first.

        Args:
            location: Search centre
            max_distance_km: Search radius; defaults to the configured radius
            limit: Maximum number of stations, None for all
            inventory: Only return stations whose inventory satisfies this request
        """
        if max_distance_km is None:
            max_distance_km = self.config.default_max_distance_km
        await self.directory.ensure_loaded()
        return self.directory.find(location, max_distance_km, limit, inventory)

    async def rebuild_station_list(self) -> None:
        """Download the station list again and reload the directory."""
        await self.directory.refresh()

    def clear_station_list_cache(self) -> bool:
        """Delete the cached station list; the loaded directory is kept."""
        return self.cache.clear_station_list()

    def clear_weather_cache(
        self,
        station_id: Optional[str] = None,
        frequency: Optional[Frequency] = None,
    ) -> None:
        """
        Delete cached weather files.

        Args:
            station_id: Only this station's files; all stations when None
            frequency: Only this frequency; all frequencies when None
        """
        if station_id is None:
            self.cache.clear(frequency)
            return
        frequencies = [frequency] if frequency is not None else list(Frequency)
        for freq in frequencies:
            self.cache.invalidate(CacheKey.for_station(station_id, freq))
        logger.info(f"Cleared cached weather data for station {station_id}")

    def clear_cache(self) -> None:
        """Delete every cached file."""
        self.cache.clear_all()

    async def clear_cache_and_rebuild(self) -> None:
        """Delete every cached file, then download and reload the station list."""
        self.clear_cache()
        await self.rebuild_station_list()
