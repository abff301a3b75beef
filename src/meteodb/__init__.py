"""
meteodb: historical weather data from the Meteostat bulk service.

Resolves stations by identifier or coordinate, caches the provider's
compressed files on disk and exposes them as lazily evaluated polars
datasets with typed record access.
"""

from .cache import (
    AlwaysFresh,
    CacheEntry,
    CacheKey,
    CacheManager,
    CacheState,
    FreshnessPolicy,
    InventoryFreshness,
    MaxAge,
)
from .client import MeteoClient
from .config import ClientConfig, default_cache_dir
from .convenience import find_nearby_stations, get_location_data, get_station_data
from .exceptions import (
    DirectoryUnavailable,
    EngineError,
    ExpectedSingleRow,
    FetchFailed,
    FetchTimeout,
    MeteoDBError,
    NoStationFound,
    ParseError,
    SchemaMismatchError,
    StationNotFound,
    UnsupportedFilter,
)
from .frames import (
    ClimateDataset,
    DailyDataset,
    HourlyDataset,
    LazyDataset,
    MonthlyDataset,
)
from .frequency import FrequencyClient, LocationRequest, StationRequest
from .models import (
    AnyData,
    DateCoverage,
    DateRange,
    Frequency,
    FullYear,
    Identifiers,
    Inventory,
    InventoryRequest,
    InventoryRequirement,
    LatLon,
    Location,
    SinceDate,
    SpecificDate,
    Station,
    StationMatch,
    YearCoverage,
)
from .periods import CalendarDate, ClimateKey, Year, YearMonth
from .records import (
    ClimateRecord,
    DailyRecord,
    HourlyRecord,
    MonthlyRecord,
    WeatherCondition,
)
from .stations import StationDirectory

__version__ = "0.1.0"

__all__ = [
    # Client
    "MeteoClient",
    "ClientConfig",
    "default_cache_dir",
    "FrequencyClient",
    "StationRequest",
    "LocationRequest",
    # Directory and cache
    "StationDirectory",
    "CacheManager",
    "CacheKey",
    "CacheEntry",
    "CacheState",
    "FreshnessPolicy",
    "AlwaysFresh",
    "MaxAge",
    "InventoryFreshness",
    # Models
    "Frequency",
    "Station",
    "StationMatch",
    "Location",
    "Identifiers",
    "Inventory",
    "DateCoverage",
    "YearCoverage",
    "LatLon",
    "InventoryRequest",
    "InventoryRequirement",
    "AnyData",
    "SpecificDate",
    "DateRange",
    "FullYear",
    "SinceDate",
    # Periods
    "Year",
    "YearMonth",
    "CalendarDate",
    "ClimateKey",
    # Datasets and records
    "LazyDataset",
    "HourlyDataset",
    "DailyDataset",
    "MonthlyDataset",
    "ClimateDataset",
    "HourlyRecord",
    "DailyRecord",
    "MonthlyRecord",
    "ClimateRecord",
    "WeatherCondition",
    # Convenience
    "find_nearby_stations",
    "get_station_data",
    "get_location_data",
    # Exceptions
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
