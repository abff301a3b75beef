"""
Time periods accepted by dataset filters.
"""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Tuple, Union


@dataclass(frozen=True)
class Year:
    """A calendar year."""

    year: int

    def span(self) -> Tuple[date, date]:
        """Inclusive first and last day of the period."""
        return date(self.year, 1, 1), date(self.year, 12, 31)


@dataclass(frozen=True)
class YearMonth:
    """A calendar month of a given year."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be within 1-12, got {self.month}")

    def span(self) -> Tuple[date, date]:
        last = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, 1), date(self.year, self.month, last)

    @property
    def ordinal(self) -> int:
        return self.year * 12 + self.month


@dataclass(frozen=True)
class CalendarDate:
    """A single day."""

    day: date

    def span(self) -> Tuple[date, date]:
        return self.day, self.day


@dataclass(frozen=True)
class ClimateKey:
    """Identifies one row of a climate normals table."""

    start_year: int
    end_year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be within 1-12, got {self.month}")
        if self.start_year > self.end_year:
            raise ValueError(
                f"Normals start year {self.start_year} is after end year {self.end_year}"
            )


Period = Union[Year, YearMonth, CalendarDate]
