"""
On-disk cache for station metadata and per-station weather files.

Each cached resource is identified by a :class:`CacheKey` and stored
decompressed under the configured cache directory::

    <cache_dir>/stations.json
    <cache_dir>/<hourly|daily|monthly|normals>/<station id>.csv

Files are replaced atomically, so a cache file is either complete or absent.
Concurrent requests for the same key share a single download.
"""

import asyncio
import functools
import gzip
import logging
import os
import shutil
import tempfile
import zlib
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from .config import ClientConfig
from .exceptions import FetchFailed, FetchTimeout
from .models import Frequency, InventoryRequirement

logger = logging.getLogger(__name__)

STATION_LIST_RESOURCE = "stations"
STATION_LIST_REMOTE_PATH = "stations/lite.json.gz"
STATION_LIST_FILENAME = "stations.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheKey:
    """Identifies one cached resource: the station list or a station's weather file."""

    resource: str
    frequency: Optional[Frequency] = None

    def __post_init__(self) -> None:
        if not self.resource or "/" in self.resource or "\\" in self.resource:
            raise ValueError(f"Invalid cache resource name: {self.resource!r}")
        if self.resource.startswith("."):
            raise ValueError(f"Invalid cache resource name: {self.resource!r}")

    @classmethod
    def station_list(cls) -> "CacheKey":
        return cls(STATION_LIST_RESOURCE)

    @classmethod
    def for_station(cls, station_id: str, frequency: Frequency) -> "CacheKey":
        return cls(station_id, frequency)

    @property
    def is_station_list(self) -> bool:
        return self.frequency is None

    def __str__(self) -> str:
        if self.frequency is None:
            return self.resource
        return f"{self.frequency.path_segment}/{self.resource}"


@dataclass(frozen=True)
class CacheEntry:
    """A cached file and the moment it was stored."""

    key: CacheKey
    path: Path
    fetched_at: datetime

    def age(self, now: Optional[datetime] = None) -> timedelta:
        return (now or _utcnow()) - self.fetched_at

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class CacheState(Enum):
    """Lifecycle state of a cache key."""

    MISSING = "missing"
    FETCHING = "fetching"
    CACHED = "cached"
    STALE = "stale"


class FreshnessPolicy:
    """Decides whether an existing cache entry must be downloaded again."""

    def is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        raise NotImplementedError


class AlwaysFresh(FreshnessPolicy):
    """An entry never goes stale once present."""

    def is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        return False

    def __repr__(self) -> str:
        return "AlwaysFresh()"


@dataclass(frozen=True)
class MaxAge(FreshnessPolicy):
    """An entry goes stale once it is older than ``max_age``."""

    max_age: timedelta

    def is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        return entry.age(now) > self.max_age


@dataclass(frozen=True)
class InventoryFreshness(FreshnessPolicy):
    """
    Staleness rule for weather files.

    A file is stale when the requirement asks for data on or after the day
    the file was fetched (data the file cannot contain yet) and the file is
    older than ``max_age``. Requests without a dated requirement reuse any
    cached file.
    """

    requirement: Optional[InventoryRequirement] = None
    max_age: timedelta = field(default=timedelta(hours=24))

    def is_stale(self, entry: CacheEntry, now: datetime) -> bool:
        if self.requirement is None:
            return False
        if entry.age(now) <= self.max_age:
            return False
        latest = self.requirement.latest_date(now.date())
        if latest is None:
            return False
        return latest >= entry.fetched_at.date()


def _atomic_write(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp_", suffix=path.suffix)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


class CacheManager:
    """
    Downloads, decompresses and stores provider files, one fetch per key at a time.

    The manager owns its ``httpx.AsyncClient`` unless one is passed in.

    Example:
        >>> async with CacheManager(ClientConfig(cache_dir=tmp)) as cache:
        ...     entry = await cache.get(CacheKey.station_list(), AlwaysFresh())
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or ClientConfig()
        self._client = http_client
        self._owns_client = http_client is None
        self._inflight: Dict[CacheKey, "asyncio.Task[CacheEntry]"] = {}

    @property
    def cache_dir(self) -> Path:
        return self.config.cache_dir

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this manager created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.config.user_agent},
            )
            self._owns_client = True
        return self._client

    def path_for(self, key: CacheKey) -> Path:
        """Local path of the decompressed file for ``key``."""
        frequency = key.frequency
        if frequency is None:
            return self.cache_dir / STATION_LIST_FILENAME
        return self.cache_dir / frequency.path_segment / f"{key.resource}.csv"

    def url_for(self, key: CacheKey) -> str:
        """Remote URL of the gzip-compressed file for ``key``."""
        frequency = key.frequency
        if frequency is None:
            return f"{self.config.base_url}/{STATION_LIST_REMOTE_PATH}"
        return f"{self.config.base_url}/{frequency.path_segment}/{key.resource}.csv.gz"

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the cached entry for ``key`` or None when nothing is stored."""
        path = self.path_for(key)
        try:
            stat = path.stat()
        except FileNotFoundError:
            return None
        return CacheEntry(
            key=key,
            path=path,
            fetched_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def state(
        self,
        key: CacheKey,
        policy: Optional[FreshnessPolicy] = None,
        now: Optional[datetime] = None,
    ) -> CacheState:
        """Report the lifecycle state of ``key`` under ``policy``."""
        task = self._inflight.get(key)
        if task is not None and not task.done():
            return CacheState.FETCHING
        existing = self.entry(key)
        if existing is None:
            return CacheState.MISSING
        if policy is not None and policy.is_stale(existing, now or _utcnow()):
            return CacheState.STALE
        return CacheState.CACHED

    async def get(
        self,
        key: CacheKey,
        policy: FreshnessPolicy,
        timeout: Optional[float] = None,
    ) -> CacheEntry:
        """
        Return a cache entry for ``key``, downloading it when missing or stale.

        Args:
            key: Resource to obtain
            policy: Decides whether an existing entry must be refreshed
            timeout: Seconds to wait for a download; the shared download keeps
                running after the timeout expires

        Returns:
            CacheEntry for the stored file

        Raises:
            FetchFailed: If the download fails and no usable entry exists
            FetchTimeout: If ``timeout`` expires before the file is stored
        """
        existing = self.entry(key)
        if existing is not None:
            if not policy.is_stale(existing, _utcnow()):
                logger.debug(f"Cache hit for {key}")
                return existing
            logger.info(f"Cached {key} is stale (fetched {existing.fetched_at}), refreshing")

        try:
            return await self._join_fetch(key, timeout)
        except FetchFailed as e:
            if existing is None:
                raise
            logger.warning(f"Refresh of {key} failed, serving stale copy: {e}")
            return existing

    async def force_refresh(self, key: CacheKey, timeout: Optional[float] = None) -> CacheEntry:
        """
        Download ``key`` regardless of its cached state.

        On failure the previously cached file, if any, is left untouched.

        Raises:
            FetchFailed: If the download fails
        """
        logger.info(f"Forcing refresh of {key}")
        return await self._join_fetch(key, timeout)

    async def _join_fetch(self, key: CacheKey, timeout: Optional[float]) -> CacheEntry:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._fetch(key))
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._fetch_done, key))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")

        try:
            if timeout is None:
                return await asyncio.shield(task)
            return await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError as e:
            raise FetchTimeout(key, f"no result within {timeout}s") from e

    def _fetch_done(self, key: CacheKey, task: "asyncio.Task[CacheEntry]") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter timed out
            task.exception()

    async def _fetch(self, key: CacheKey) -> CacheEntry:
        url = self.url_for(key)
        logger.info(f"Downloading {url}")
        client = self._get_client()

        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchFailed(key, f"request timeout after {self.config.timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchFailed(key, f"HTTP error {status}", status_code=status) from e
        except httpx.RequestError as e:
            raise FetchFailed(key, f"network error: {e}") from e

        try:
            data = await asyncio.to_thread(gzip.decompress, response.content)
        except (OSError, EOFError, zlib.error) as e:
            raise FetchFailed(key, f"invalid gzip payload: {e}") from e

        path = self.path_for(key)
        try:
            await asyncio.to_thread(_atomic_write, path, data)
        except OSError as e:
            raise FetchFailed(key, f"could not store cache file: {e}") from e

        logger.debug(f"Stored {len(data)} bytes for {key} at {path}")
        stored = self.entry(key)
        if stored is None:
            raise FetchFailed(key, f"cache file {path} vanished after write")
        return stored

    def invalidate(self, key: CacheKey) -> bool:
        """Delete the cached file for ``key``. Returns whether a file was removed."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return False
        logger.debug(f"Invalidated {key}")
        return True

    def clear_station_list(self) -> bool:
        """Delete the cached station list."""
        return self.invalidate(CacheKey.station_list())

    def clear(self, frequency: Optional[Frequency] = None) -> List[Path]:
        """
        Delete cached weather files.

        Args:
            frequency: Only clear this frequency's files; all frequencies when None

        Returns:
            Directories that were removed
        """
        frequencies = [frequency] if frequency is not None else list(Frequency)
        removed = []
        for freq in frequencies:
            directory = self.cache_dir / freq.path_segment
            if directory.is_dir():
                shutil.rmtree(directory)
                removed.append(directory)
        if removed:
            logger.info(f"Cleared cached weather data in {len(removed)} directories")
        return removed

    def clear_all(self) -> None:
        """Delete the station list and all weather files."""
        self.clear_station_list()
        self.clear()
