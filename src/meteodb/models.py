"""
Data models for stations, inventories and retrieval requirements.
"""

import math
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple, Union

import polars as pl


class Frequency(Enum):
    """Temporal granularity of a weather dataset."""

    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"
    CLIMATE = "climate"

    @property
    def path_segment(self) -> str:
        """Directory name used by the provider and the local cache."""
        if self is Frequency.CLIMATE:
            return "normals"
        return self.value

    @property
    def raw_columns(self) -> Tuple[str, ...]:
        """Column order of the provider's headerless CSV files."""
        return RAW_COLUMNS[self]

    @property
    def schema(self) -> Dict[str, Any]:
        """Column names and polars dtypes of a parsed dataset."""
        return SCHEMAS[self]

    @property
    def time_key(self) -> Tuple[str, ...]:
        """Columns that identify a row in time."""
        return TIME_KEYS[self]


RAW_COLUMNS: Dict[Frequency, Tuple[str, ...]] = {
    Frequency.HOURLY: (
        "date", "hour", "temp", "dwpt", "rhum", "prcp", "snow",
        "wdir", "wspd", "wpgt", "pres", "tsun", "coco",
    ),
    Frequency.DAILY: (
        "date", "tavg", "tmin", "tmax", "prcp", "snow",
        "wdir", "wspd", "wpgt", "pres", "tsun",
    ),
    Frequency.MONTHLY: (
        "year", "month", "tavg", "tmin", "tmax", "prcp", "wspd", "pres", "tsun",
    ),
    Frequency.CLIMATE: (
        "start_year", "end_year", "month", "tmin", "tmax", "prcp", "wspd", "pres", "tsun",
    ),
}

# Integer-valued measurement and key columns; everything else is Float64
INTEGER_COLUMNS = frozenset(
    {"hour", "rhum", "snow", "wdir", "tsun", "coco", "year", "month", "start_year", "end_year"}
)


def _build_schema(frequency: Frequency) -> Dict[str, Any]:
    schema: Dict[str, Any] = {}
    for name in RAW_COLUMNS[frequency]:
        if name == "hour":
            continue
        if name == "date":
            if frequency is Frequency.HOURLY:
                schema["datetime"] = pl.Datetime("us")
            else:
                schema["date"] = pl.Date
        elif name in INTEGER_COLUMNS:
            schema[name] = pl.Int64
        else:
            schema[name] = pl.Float64
    return schema


SCHEMAS: Dict[Frequency, Dict[str, Any]] = {f: _build_schema(f) for f in Frequency}

TIME_KEYS: Dict[Frequency, Tuple[str, ...]] = {
    Frequency.HOURLY: ("datetime",),
    Frequency.DAILY: ("date",),
    Frequency.MONTHLY: ("year", "month"),
    Frequency.CLIMATE: ("start_year", "end_year", "month"),
}


@dataclass(frozen=True)
class LatLon:
    """A geographic coordinate in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(f"Coordinates must be finite, got {self}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude must be within [-90, 90], got {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude must be within [-180, 180], got {self.longitude}")


@dataclass(frozen=True)
class DateCoverage:
    """Inclusive date span for which a station reports data."""

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def has_data(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, start: date, end: date) -> bool:
        """Whether the coverage fully contains ``[start, end]``."""
        if not self.has_data:
            return False
        return self.start <= start and self.end >= end  # type: ignore[operator]

    def reaches(self, day: date) -> bool:
        """Whether the coverage ends on or after ``day``."""
        return self.has_data and self.end >= day  # type: ignore[operator]


@dataclass(frozen=True)
class YearCoverage:
    """Inclusive year span for monthly data and climate normals."""

    start: Optional[int] = None
    end: Optional[int] = None

    @property
    def has_data(self) -> bool:
        return self.start is not None and self.end is not None

    def contains(self, start: date, end: date) -> bool:
        if not self.has_data:
            return False
        return self.start <= start.year and self.end >= end.year  # type: ignore[operator]

    def reaches(self, day: date) -> bool:
        return self.has_data and self.end >= day.year  # type: ignore[operator]


Coverage = Union[DateCoverage, YearCoverage]


@dataclass(frozen=True)
class Inventory:
    """Per-frequency data coverage of a station."""

    hourly: DateCoverage = field(default_factory=DateCoverage)
    daily: DateCoverage = field(default_factory=DateCoverage)
    model: DateCoverage = field(default_factory=DateCoverage)
    monthly: YearCoverage = field(default_factory=YearCoverage)
    normals: YearCoverage = field(default_factory=YearCoverage)

    def for_frequency(self, frequency: Frequency) -> Coverage:
        """Return the coverage consulted for ``frequency``."""
        if frequency is Frequency.HOURLY:
            return self.hourly
        if frequency is Frequency.DAILY:
            return self.daily
        if frequency is Frequency.MONTHLY:
            return self.monthly
        return self.normals


class InventoryRequirement:
    """Base class for inventory requirements on a single frequency."""

    def satisfied_by(self, coverage: Coverage) -> bool:
        raise NotImplementedError

    def latest_date(self, today: date) -> Optional[date]:
        """Newest date implied by the requirement, or None when unbounded."""
        return None


@dataclass(frozen=True)
class AnyData(InventoryRequirement):
    """The station reports any data at all for the frequency."""

    def satisfied_by(self, coverage: Coverage) -> bool:
        return coverage.has_data


@dataclass(frozen=True)
class SpecificDate(InventoryRequirement):
    """The station covers one particular day."""

    day: date

    def satisfied_by(self, coverage: Coverage) -> bool:
        return coverage.contains(self.day, self.day)

    def latest_date(self, today: date) -> Optional[date]:
        return self.day


@dataclass(frozen=True)
class DateRange(InventoryRequirement):
    """The station covers every day of an inclusive date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def satisfied_by(self, coverage: Coverage) -> bool:
        return coverage.contains(self.start, self.end)

    def latest_date(self, today: date) -> Optional[date]:
        return self.end


@dataclass(frozen=True)
class FullYear(InventoryRequirement):
    """The station covers a whole calendar year."""

    year: int

    def satisfied_by(self, coverage: Coverage) -> bool:
        return coverage.contains(date(self.year, 1, 1), date(self.year, 12, 31))

    def latest_date(self, today: date) -> Optional[date]:
        return date(self.year, 12, 31)


@dataclass(frozen=True)
class SinceDate(InventoryRequirement):
    """The station reports data on or after a given day."""

    day: date

    def satisfied_by(self, coverage: Coverage) -> bool:
        return coverage.reaches(self.day)

    def latest_date(self, today: date) -> Optional[date]:
        return max(today, self.day)


@dataclass(frozen=True)
class InventoryRequest:
    """A requirement evaluated against one frequency's coverage."""

    frequency: Frequency
    requirement: InventoryRequirement = field(default_factory=AnyData)

    def matches(self, station: "Station") -> bool:
        return self.requirement.satisfied_by(station.inventory.for_frequency(self.frequency))


@dataclass(frozen=True)
class Identifiers:
    """External identifiers of a station."""

    national: Optional[str] = None
    wmo: Optional[str] = None
    icao: Optional[str] = None


@dataclass(frozen=True)
class Location:
    """Position of a station; elevation in meters."""

    latitude: float
    longitude: float
    elevation: Optional[float] = None

    def to_latlon(self) -> LatLon:
        return LatLon(self.latitude, self.longitude)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return date.fromisoformat(str(value))


def _parse_year(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True)
class Station:
    """A weather station from the provider's station list."""

    id: str
    name: Dict[str, str]
    country: str
    location: Location
    region: Optional[str] = None
    timezone: Optional[str] = None
    identifiers: Identifiers = field(default_factory=Identifiers)
    inventory: Inventory = field(default_factory=Inventory)

    def display_name(self, language: str = "en") -> str:
        """Name in ``language``, falling back to any available name, then the id."""
        if language in self.name:
            return self.name[language]
        for value in self.name.values():
            return value
        return self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Station":
        """
        Build a station from one record of the provider's station list.

        Raises:
            KeyError, TypeError, ValueError: If required fields are missing
                or malformed
        """
        location = data["location"]
        identifiers = data.get("identifiers") or {}
        inventory = data.get("inventory") or {}

        def date_cov(key: str) -> DateCoverage:
            span = inventory.get(key) or {}
            return DateCoverage(_parse_date(span.get("start")), _parse_date(span.get("end")))

        def year_cov(key: str) -> YearCoverage:
            span = inventory.get(key) or {}
            return YearCoverage(_parse_year(span.get("start")), _parse_year(span.get("end")))

        elevation = location.get("elevation")
        name = data.get("name") or {}
        if not isinstance(name, dict):
            raise TypeError(f"Station name must be a mapping, got {type(name).__name__}")

        station_id = str(data["id"])
        if not station_id:
            raise ValueError("Station id is empty")

        return cls(
            id=station_id,
            name={str(k): str(v) for k, v in name.items()},
            country=str(data.get("country") or ""),
            region=data.get("region"),
            timezone=data.get("timezone"),
            location=Location(
                latitude=float(location["latitude"]),
                longitude=float(location["longitude"]),
                elevation=float(elevation) if elevation is not None else None,
            ),
            identifiers=Identifiers(
                national=identifiers.get("national"),
                wmo=identifiers.get("wmo"),
                icao=identifiers.get("icao"),
            ),
            inventory=Inventory(
                hourly=date_cov("hourly"),
                daily=date_cov("daily"),
                model=date_cov("model"),
                monthly=year_cov("monthly"),
                normals=year_cov("normals"),
            ),
        )


class StationMatch(NamedTuple):
    """A station returned by a location search with its distance."""

    station: Station
    distance_km: float
