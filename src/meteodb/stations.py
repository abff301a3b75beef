"""
Station directory: loading, indexing and searching the provider's station list.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .cache import AlwaysFresh, CacheEntry, CacheKey, CacheManager
from .exceptions import DirectoryUnavailable, FetchFailed, ParseError, StationNotFound
from .models import InventoryRequest, LatLon, Station, StationMatch
from .spatial import GridIndex, haversine_km

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Snapshot:
    """Station map and spatial index built from one load; swapped as a unit."""

    stations: Dict[str, Station]
    index: GridIndex[Station]


def _decode_stations(raw: bytes) -> Tuple[Dict[str, Station], int]:
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"station list is not valid JSON: {e}") from e
    if not isinstance(document, list):
        raise ParseError(
            f"station list must be a JSON array, got {type(document).__name__}"
        )

    stations: Dict[str, Station] = {}
    skipped = 0
    for record in document:
        try:
            station = Station.from_dict(record)
        except (KeyError, TypeError, ValueError, AttributeError):
            skipped += 1
            continue
        stations[station.id] = station
    return stations, skipped


def _build_snapshot(raw: bytes) -> Tuple[_Snapshot, int]:
    stations, skipped = _decode_stations(raw)
    index = GridIndex(
        (s.location.latitude, s.location.longitude, s) for s in stations.values()
    )
    return _Snapshot(stations, index), skipped


class StationDirectory:
    """
    In-memory view of the provider's station list.

    The directory is loaded through the :class:`CacheManager` and kept as an
    immutable snapshot, so searches never observe a half-built index.

    Example:
        >>> directory = StationDirectory(cache)
        >>> await directory.load()
        >>> matches = directory.find(LatLon(40.7128, -74.0060), max_distance_km=50, limit=5)
    """

    def __init__(self, cache: CacheManager):
        self.cache = cache
        self._snapshot: Optional[_Snapshot] = None
        self._load_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    def _require(self) -> _Snapshot:
        if self._snapshot is None:
            raise DirectoryUnavailable(
                "Station directory is not loaded; call load() first"
            )
        return self._snapshot

    @property
    def stations(self) -> List[Station]:
        return list(self._require().stations.values())

    def __len__(self) -> int:
        return len(self._snapshot.stations) if self._snapshot else 0

    def __contains__(self, station_id: object) -> bool:
        return self._snapshot is not None and station_id in self._snapshot.stations

    async def _install(self, entry: CacheEntry) -> None:
        raw = await asyncio.to_thread(entry.read_bytes)
        snapshot, skipped = await asyncio.to_thread(_build_snapshot, raw)
        if skipped:
            logger.warning(f"Skipped {skipped} malformed station records")
        self._snapshot = snapshot
        logger.info(f"Loaded {len(snapshot.stations)} stations from {entry.path}")

    async def load(self) -> None:
        """
        Load the station list from cache, downloading it when absent.

        Raises:
            DirectoryUnavailable: If no cached copy exists and the download fails
            ParseError: If the station list is malformed
        """
        try:
            entry = await self.cache.get(CacheKey.station_list(), AlwaysFresh())
        except FetchFailed as e:
            raise DirectoryUnavailable(
                f"Station list unavailable: {e}", {"cause": e}
            ) from e
        await self._install(entry)

    async def ensure_loaded(self) -> None:
        """Load once; concurrent callers wait for the same load."""
        if self._snapshot is not None:
            return
        async with self._load_lock:
            if self._snapshot is None:
                await self.load()

    async def refresh(self) -> None:
        """
        Download the station list again and swap in the new snapshot.

        The previous snapshot stays active if the download or parse fails.

        Raises:
            FetchFailed: If the download fails
            ParseError: If the new station list is malformed
        """
        async with self._load_lock:
            entry = await self.cache.force_refresh(CacheKey.station_list())
            await self._install(entry)

    def by_id(self, station_id: str) -> Station:
        """
        Look up a station by identifier.

        Raises:
            StationNotFound: If no station has this identifier
        """
        station = self._require().stations.get(station_id)
        if station is None:
            raise StationNotFound(station_id)
        return station

    def find(
        self,
        location: LatLon,
        max_distance_km: Optional[float] = None,
        limit: Optional[int] = None,
        inventory: Optional[InventoryRequest] = None,
    ) -> List[StationMatch]:
        """
        Find stations near a location, nearest first.

        Args:
            location: Search centre
            max_distance_km: Exclude stations farther than this; unbounded when None
            limit: Maximum number of matches; unbounded when None
            inventory: Only keep stations whose inventory satisfies this request

        Returns:
            List of StationMatch sorted by distance, then station id. An empty
            list when nothing matches.
        """
        if max_distance_km is not None and max_distance_km < 0:
            raise ValueError(f"max_distance_km must not be negative, got {max_distance_km}")
        if limit is not None and limit < 0:
            raise ValueError(f"limit must not be negative, got {limit}")

        snapshot = self._require()
        if max_distance_km is None:
            candidates: Any = snapshot.stations.values()
        else:
            candidates = snapshot.index.candidates(
                location.latitude, location.longitude, max_distance_km
            )

        matches = []
        for station in candidates:
            if inventory is not None and not inventory.matches(station):
                continue
            distance = haversine_km(
                location.latitude,
                location.longitude,
                station.location.latitude,
                station.location.longitude,
            )
            if max_distance_km is not None and distance > max_distance_km:
                continue
            matches.append(StationMatch(station, distance))

        matches.sort(key=lambda m: (m.distance_km, m.station.id))
        if limit is not None:
            matches = matches[:limit]
        return matches
