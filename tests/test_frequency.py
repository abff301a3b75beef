"""
Tests for per-frequency clients.
"""

import os
import time
from datetime import date

import pytest

from meteodb.cache import CacheKey
from meteodb.exceptions import FetchFailed, NoStationFound, ParseError, StationNotFound
from meteodb.frames import ClimateDataset, DailyDataset, HourlyDataset, MonthlyDataset
from meteodb.frequency import FrequencyClient, LocationRequest, StationRequest
from meteodb.models import Frequency, FullYear, LatLon, SinceDate
from meteodb.periods import Year

from .conftest import NYC, daily_csv


def make_client(frequency, directory, cache):
    return FrequencyClient(frequency, directory, cache)


class TestRequests:
    """Test request validation."""

    def test_station_request_requires_id(self):
        with pytest.raises(ValueError, match="station_id"):
            StationRequest("  ").validate()

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_distance_km": -1.0}, {"station_limit": 0}],
    )
    def test_location_request_bounds(self, kwargs):
        with pytest.raises(ValueError):
            LocationRequest(LatLon(*NYC), **kwargs).validate()

    def test_location_request_type(self):
        with pytest.raises(ValueError, match="LatLon"):
            LocationRequest((40.7, -74.0)).validate()

    @pytest.mark.asyncio
    async def test_execute_validates_before_loading(self, directory, cache, provider):
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(ValueError):
            await client.execute(StationRequest(""))
        provider.client.get.assert_not_called()


class TestByStation:
    """Test fetching a station's dataset."""

    @pytest.mark.asyncio
    async def test_daily_year_2023(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)

        dataset = await client.by_station("10637")

        assert isinstance(dataset, DailyDataset)
        assert dataset.station_id == "10637"
        assert dataset.for_period(Year(2023)).count() == 365
        record = dataset.at(date(2023, 10, 26)).collect_one()
        assert record.temp_max == 13.2

    @pytest.mark.asyncio
    async def test_each_frequency_returns_its_dataset(self, directory, cache):
        expected = {
            Frequency.HOURLY: HourlyDataset,
            Frequency.DAILY: DailyDataset,
            Frequency.MONTHLY: MonthlyDataset,
            Frequency.CLIMATE: ClimateDataset,
        }
        for frequency, dataset_type in expected.items():
            dataset = await make_client(frequency, directory, cache).by_station("10637")
            assert type(dataset) is dataset_type

    @pytest.mark.asyncio
    async def test_cached_file_is_reused(self, directory, cache, provider):
        client = make_client(Frequency.DAILY, directory, cache)
        await client.by_station("10637", FullYear(2023))
        await client.by_station("10637", FullYear(2023))
        assert provider.calls("daily/10637.csv.gz") == 1

    @pytest.mark.asyncio
    async def test_open_ended_requirement_refreshes_old_file(self, directory, cache, provider):
        client = make_client(Frequency.DAILY, directory, cache)
        await client.by_station("10637")
        path = cache.path_for(CacheKey.for_station("10637", Frequency.DAILY))
        stamp = time.time() - 3 * 86400
        os.utime(path, (stamp, stamp))

        await client.by_station("10637", SinceDate(date(2023, 1, 1)))

        assert provider.calls("daily/10637.csv.gz") == 2

    @pytest.mark.asyncio
    async def test_unknown_station(self, directory, cache, provider):
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(StationNotFound):
            await client.by_station("00000")
        assert provider.calls("daily/00000.csv.gz") == 0

    @pytest.mark.asyncio
    async def test_corrupted_cache_file(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)
        await client.by_station("10637")
        path = cache.path_for(CacheKey.for_station("10637", Frequency.DAILY))
        path.write_bytes(b"2023-01-01,only,three\n")

        with pytest.raises(ParseError):
            await client.by_station("10637")

    @pytest.mark.asyncio
    async def test_truncated_cache_file(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)
        await client.by_station("10637")
        path = cache.path_for(CacheKey.for_station("10637", Frequency.DAILY))
        content = path.read_bytes()
        path.write_bytes(content[: content.rindex(b",")])

        with pytest.raises(ParseError):
            await client.by_station("10637")

    @pytest.mark.asyncio
    async def test_failed_refresh_after_corruption_keeps_file(self, directory, cache, provider):
        client = make_client(Frequency.DAILY, directory, cache)
        await client.by_station("10637")
        key = CacheKey.for_station("10637", Frequency.DAILY)
        path = cache.path_for(key)
        path.write_bytes(b"2023-01-01,5.0,1.0\n")

        with pytest.raises(ParseError):
            await client.by_station("10637")

        provider.add("daily/10637.csv.gz", b"", status=502, compress=False)
        with pytest.raises(FetchFailed):
            await cache.force_refresh(key)
        assert path.read_bytes() == b"2023-01-01,5.0,1.0\n"

        provider.add("daily/10637.csv.gz", daily_csv())
        await cache.force_refresh(key)
        dataset = await client.by_station("10637")
        assert dataset.for_period(Year(2023)).count() == 365

    @pytest.mark.asyncio
    async def test_missing_remote_file(self, directory, cache):
        client = make_client(Frequency.MONTHLY, directory, cache)
        with pytest.raises(FetchFailed):
            await client.by_station("72502")


class TestByLocation:
    """Test fetching the nearest suitable station's dataset."""

    @pytest.mark.asyncio
    async def test_nearest_station_with_full_year(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)

        dataset = await client.by_location(LatLon(*NYC), requirement=FullYear(2023))

        assert dataset.station_id == "72502"
        assert dataset.for_period(Year(2023)).count() == 365

    @pytest.mark.asyncio
    async def test_nearest_station_lookup(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)
        match = await client.nearest_station(LatLon(*NYC), requirement=FullYear(2023))
        assert match.station.id == "72502"
        assert match.distance_km < 50

    @pytest.mark.asyncio
    async def test_falls_through_to_next_candidate(self, directory, cache, provider):
        provider.remove("daily/72502.csv.gz")
        provider.add("daily/74486.csv.gz", daily_csv())
        client = make_client(Frequency.DAILY, directory, cache)

        dataset = await client.by_location(LatLon(*NYC), station_limit=3, requirement=FullYear(2023))

        assert dataset.station_id == "74486"

    @pytest.mark.asyncio
    async def test_single_candidate_failure_raises(self, directory, cache, provider):
        provider.remove("daily/72502.csv.gz")
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(FetchFailed):
            await client.by_location(LatLon(*NYC), requirement=FullYear(2023))

    @pytest.mark.asyncio
    async def test_every_candidate_failing_raises_last_failure(self, directory, cache, provider):
        provider.remove("daily/72502.csv.gz")
        provider.remove("daily/74486.csv.gz")
        client = make_client(Frequency.DAILY, directory, cache)

        with pytest.raises(FetchFailed) as exc_info:
            await client.by_location(LatLon(*NYC), station_limit=3, requirement=FullYear(2023))

        assert exc_info.value.key == CacheKey.for_station("74486", Frequency.DAILY)
        assert provider.calls("daily/72502.csv.gz") == 1
        assert provider.calls("daily/74486.csv.gz") == 1

    @pytest.mark.asyncio
    async def test_parse_error_is_not_skipped(self, directory, cache, provider):
        provider.add("daily/72502.csv.gz", b"garbage,row\n")
        provider.add("daily/74486.csv.gz", daily_csv())
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(ParseError):
            await client.by_location(LatLon(*NYC), station_limit=3, requirement=FullYear(2023))

    @pytest.mark.asyncio
    async def test_no_station_in_range(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(NoStationFound, match="within 50 km"):
            await client.by_location(LatLon(0.0, 0.0))

    @pytest.mark.asyncio
    async def test_no_station_with_inventory(self, directory, cache):
        client = make_client(Frequency.DAILY, directory, cache)
        with pytest.raises(NoStationFound):
            await client.by_location(LatLon(*NYC), requirement=FullYear(2030))
