"""
Typed row records for materialized weather datasets.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum
from typing import Any, Dict, Optional


class WeatherCondition(IntEnum):
    """Weather condition codes reported in the hourly ``coco`` column."""

    CLEAR = 1
    FAIR = 2
    CLOUDY = 3
    OVERCAST = 4
    FOG = 5
    FREEZING_FOG = 6
    LIGHT_RAIN = 7
    RAIN = 8
    HEAVY_RAIN = 9
    FREEZING_RAIN = 10
    HEAVY_FREEZING_RAIN = 11
    SLEET = 12
    HEAVY_SLEET = 13
    LIGHT_SNOWFALL = 14
    SNOWFALL = 15
    HEAVY_SNOWFALL = 16
    RAIN_SHOWER = 17
    HEAVY_RAIN_SHOWER = 18
    SLEET_SHOWER = 19
    HEAVY_SLEET_SHOWER = 20
    SNOW_SHOWER = 21
    HEAVY_SNOW_SHOWER = 22
    LIGHTNING = 23
    HAIL = 24
    THUNDERSTORM = 25
    HEAVY_THUNDERSTORM = 26
    STORM = 27

    @classmethod
    def from_code(cls, code: Optional[int]) -> Optional["WeatherCondition"]:
        """Map a raw code to a condition; unknown or missing codes give None."""
        if code is None:
            return None
        try:
            return cls(int(code))
        except ValueError:
            return None


@dataclass(frozen=True)
class HourlyRecord:
    """One hour of observations."""

    datetime: datetime
    temperature: Optional[float]
    dew_point: Optional[float]
    relative_humidity: Optional[int]
    precipitation: Optional[float]
    snow: Optional[int]
    wind_direction: Optional[int]
    wind_speed: Optional[float]
    peak_wind_gust: Optional[float]
    pressure: Optional[float]
    sunshine_minutes: Optional[int]
    condition: Optional[WeatherCondition]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HourlyRecord":
        return cls(
            datetime=row["datetime"],
            temperature=row["temp"],
            dew_point=row["dwpt"],
            relative_humidity=row["rhum"],
            precipitation=row["prcp"],
            snow=row["snow"],
            wind_direction=row["wdir"],
            wind_speed=row["wspd"],
            peak_wind_gust=row["wpgt"],
            pressure=row["pres"],
            sunshine_minutes=row["tsun"],
            condition=WeatherCondition.from_code(row["coco"]),
        )


@dataclass(frozen=True)
class DailyRecord:
    """Daily aggregates."""

    date: date
    temp_avg: Optional[float]
    temp_min: Optional[float]
    temp_max: Optional[float]
    precipitation: Optional[float]
    snow_depth: Optional[int]
    wind_direction_avg: Optional[int]
    wind_speed_avg: Optional[float]
    peak_wind_gust: Optional[float]
    pressure_avg: Optional[float]
    sunshine_total: Optional[int]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DailyRecord":
        return cls(
            date=row["date"],
            temp_avg=row["tavg"],
            temp_min=row["tmin"],
            temp_max=row["tmax"],
            precipitation=row["prcp"],
            snow_depth=row["snow"],
            wind_direction_avg=row["wdir"],
            wind_speed_avg=row["wspd"],
            peak_wind_gust=row["wpgt"],
            pressure_avg=row["pres"],
            sunshine_total=row["tsun"],
        )


@dataclass(frozen=True)
class MonthlyRecord:
    """Monthly aggregates."""

    year: int
    month: int
    temp_avg: Optional[float]
    temp_min_avg: Optional[float]
    temp_max_avg: Optional[float]
    precipitation_total: Optional[float]
    wind_speed_avg: Optional[float]
    pressure_avg: Optional[float]
    sunshine_total: Optional[int]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "MonthlyRecord":
        return cls(
            year=row["year"],
            month=row["month"],
            temp_avg=row["tavg"],
            temp_min_avg=row["tmin"],
            temp_max_avg=row["tmax"],
            precipitation_total=row["prcp"],
            wind_speed_avg=row["wspd"],
            pressure_avg=row["pres"],
            sunshine_total=row["tsun"],
        )


@dataclass(frozen=True)
class ClimateRecord:
    """Long-term monthly normals over a reference period."""

    start_year: int
    end_year: int
    month: int
    temp_min_avg: Optional[float]
    temp_max_avg: Optional[float]
    precipitation_avg: Optional[float]
    wind_speed_avg: Optional[float]
    pressure_avg: Optional[float]
    sunshine_avg: Optional[int]

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ClimateRecord":
        return cls(
            start_year=row["start_year"],
            end_year=row["end_year"],
            month=row["month"],
            temp_min_avg=row["tmin"],
            temp_max_avg=row["tmax"],
            precipitation_avg=row["prcp"],
            wind_speed_avg=row["wspd"],
            pressure_avg=row["pres"],
            sunshine_avg=row["tsun"],
        )
