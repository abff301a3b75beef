"""
Shared fixtures for meteodb tests.

No test touches the network: the HTTP client is an AsyncMock whose ``get``
serves gzip payloads registered on a :class:`FakeProvider`.
"""

import asyncio
import gzip
import json
from datetime import date, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from meteodb.cache import CacheManager
from meteodb.config import ClientConfig
from meteodb.stations import StationDirectory

BASE_URL = "https://bulk.example.test/v2"

NYC = (40.7128, -74.0060)


def station_record(
    station_id,
    name,
    latitude,
    longitude,
    daily=(None, None),
    hourly=(None, None),
    monthly=(None, None),
    normals=(None, None),
    country="US",
):
    return {
        "id": station_id,
        "country": country,
        "region": None,
        "timezone": "America/New_York" if country == "US" else "Europe/Berlin",
        "name": {"en": name},
        "identifiers": {"national": None, "wmo": station_id, "icao": None},
        "location": {"latitude": latitude, "longitude": longitude, "elevation": 10},
        "inventory": {
            "daily": {"start": daily[0], "end": daily[1]},
            "hourly": {"start": hourly[0], "end": hourly[1]},
            "model": {"start": None, "end": None},
            "monthly": {"start": monthly[0], "end": monthly[1]},
            "normals": {"start": normals[0], "end": normals[1]},
        },
    }


STATIONS = [
    station_record(
        "72502", "Newark Airport", 40.6895, -74.1745,
        daily=("1893-01-01", "2024-06-30"), hourly=("1973-01-01", "2024-06-30"),
        monthly=(1893, 2024), normals=(1991, 2020),
    ),
    station_record(
        "74486", "New York JFK Airport", 40.6386, -73.7622,
        daily=("1948-07-01", "2024-06-30"), hourly=("1973-01-01", "2024-06-30"),
        monthly=(1948, 2024), normals=(1991, 2020),
    ),
    station_record(
        "72503", "New York LaGuardia", 40.7794, -73.8803,
        daily=("1939-10-07", "2015-12-31"), monthly=(1940, 2015),
    ),
    station_record(
        "KJRB0", "Wall Street Heliport", 40.7012, -74.0090,
        hourly=("2010-01-01", "2024-06-30"),
    ),
    station_record(
        "10637", "Frankfurt Airport", 50.0500, 8.6000,
        daily=("1949-01-01", "2024-06-30"), hourly=("1949-01-01", "2024-06-30"),
        monthly=(1949, 2024), normals=(1991, 2020), country="DE",
    ),
    station_record(
        "91066", "Midway Atoll", 28.2167, -177.3667,
        daily=("1950-01-01", "2024-06-30"),
    ),
    station_record(
        "91938", "Fiji Lautoka", -17.6000, 177.4500,
        daily=("1960-01-01", "2024-06-30"),
    ),
]

SPECIAL_DAY = date(2023, 10, 26)
SPECIAL_DAILY_ROW = "2023-10-26,9.5,6.1,13.2,0.3,,220,11.2,29.6,1019.4,180"


def gz(data: bytes) -> bytes:
    return gzip.compress(data)


def stations_payload(records=None) -> bytes:
    return json.dumps(STATIONS if records is None else records).encode("utf-8")


def daily_csv() -> bytes:
    """Daily rows for every day of 2023 plus two days either side."""
    lines = []
    day = date(2022, 12, 30)
    while day <= date(2024, 1, 1):
        if day == SPECIAL_DAY:
            lines.append(SPECIAL_DAILY_ROW)
        else:
            lines.append(f"{day.isoformat()},5.0,1.0,9.0,0.0,,180,10.0,,1015.0,")
        day += timedelta(days=1)
    return ("\n".join(lines) + "\n").encode("utf-8")


def hourly_csv() -> bytes:
    lines = []
    for hour in range(24):
        lines.append(f"2023-10-26,{hour},{10 + hour * 0.5},5.0,80,0.0,,200,12.0,,1018.0,,3")
    lines.append("2023-10-27,0,8.0,4.0,85,0.2,,210,9.0,20.0,1017.5,0,8")
    return ("\n".join(lines) + "\n").encode("utf-8")


def monthly_csv() -> bytes:
    lines = []
    for year in (2022, 2023):
        for month in range(1, 13):
            lines.append(f"{year},{month},{month}.5,{month}.0,{month + 5}.0,50.0,10.0,1015.0,9000")
    return ("\n".join(lines) + "\n").encode("utf-8")


def climate_csv() -> bytes:
    lines = []
    for month in range(1, 13):
        lines.append(f"1991,2020,{month},{month - 3}.0,{month + 4}.0,55.0,12.0,1016.0,")
    return ("\n".join(lines) + "\n").encode("utf-8")


class FakeProvider:
    """Serves registered files through an AsyncMock standing in for httpx.AsyncClient."""

    def __init__(self, base_url=BASE_URL):
        self.base_url = base_url
        self.routes = {}
        self.gate = None
        self.client = AsyncMock(spec=httpx.AsyncClient)
        self.client.get.side_effect = self._get

    def add(self, path, content: bytes, status: int = 200, compress: bool = True):
        self.routes[f"{self.base_url}/{path}"] = (status, gz(content) if compress else content)

    def remove(self, path):
        self.routes.pop(f"{self.base_url}/{path}", None)

    def calls(self, path) -> int:
        url = f"{self.base_url}/{path}"
        return sum(1 for call in self.client.get.call_args_list if call.args[0] == url)

    async def _get(self, url, **kwargs):
        if self.gate is not None:
            await self.gate.wait()
        request = httpx.Request("GET", url)
        if url not in self.routes:
            return httpx.Response(404, request=request)
        status, body = self.routes[url]
        return httpx.Response(status, content=body, request=request)

    def hold(self) -> asyncio.Event:
        """Block every request until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate


@pytest.fixture
def config(tmp_path):
    """Client configuration rooted in a temporary cache directory."""
    return ClientConfig(cache_dir=tmp_path / "cache", base_url=BASE_URL, timeout=5)


@pytest.fixture
def provider():
    """Fake provider with the station list and Frankfurt files registered."""
    fake = FakeProvider()
    fake.add("stations/lite.json.gz", stations_payload())
    fake.add("daily/10637.csv.gz", daily_csv())
    fake.add("hourly/10637.csv.gz", hourly_csv())
    fake.add("monthly/10637.csv.gz", monthly_csv())
    fake.add("normals/10637.csv.gz", climate_csv())
    fake.add("daily/72502.csv.gz", daily_csv())
    return fake


@pytest.fixture
def cache(config, provider):
    return CacheManager(config, http_client=provider.client)


@pytest.fixture
def directory(cache):
    return StationDirectory(cache)
