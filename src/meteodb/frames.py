"""
Lazily evaluated weather datasets with time filters and typed record access.

Every filter returns a new dataset wrapping an extended polars query plan;
nothing is computed until :meth:`LazyDataset.materialize` or one of the
``collect_*`` methods runs.

Example:
    >>> daily = await client.daily().by_station("10637")
    >>> october = daily.for_period(YearMonth(2023, 10))
    >>> record = october.at(date(2023, 10, 26)).collect_one()
    >>> record.temp_max
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import TYPE_CHECKING, Any, ClassVar, List, Optional, Type, TypeVar, Union

import polars as pl

from .exceptions import (
    EngineError,
    ExpectedSingleRow,
    SchemaMismatchError,
    UnsupportedFilter,
)
from .models import Frequency
from .periods import CalendarDate, ClimateKey, Period, Year, YearMonth
from .records import ClimateRecord, DailyRecord, HourlyRecord, MonthlyRecord

if TYPE_CHECKING:
    try:
        import pandas as pd
    except ImportError:
        pd = None  # type: ignore

logger = logging.getLogger(__name__)

D = TypeVar("D", bound="LazyDataset")
DateLike = Union[date, datetime]


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class LazyDataset:
    """
    Base wrapper around a polars LazyFrame tagged with its frequency.

    Subclasses fix the frequency and the record type used by
    :meth:`collect_all` and :meth:`collect_one`.
    """

    frequency: ClassVar[Frequency]
    record_type: ClassVar[Type[Any]]

    def __init__(
        self,
        frame: Union[pl.LazyFrame, pl.DataFrame],
        station_id: Optional[str] = None,
    ):
        if isinstance(frame, pl.DataFrame):
            frame = frame.lazy()
        self._check_schema(frame)
        self._frame = frame
        self.station_id = station_id

    def _check_schema(self, frame: pl.LazyFrame) -> None:
        try:
            schema = frame.collect_schema()
        except pl.exceptions.PolarsError as e:
            raise EngineError(f"Could not resolve dataset schema: {e}") from e

        expected = self.frequency.schema
        actual = dict(zip(schema.names(), schema.dtypes()))
        if set(actual) != set(expected):
            missing = sorted(set(expected) - set(actual))
            extra = sorted(set(actual) - set(expected))
            raise SchemaMismatchError(
                f"Frame does not match the {self.frequency.value} schema "
                f"(missing: {missing}, unexpected: {extra})",
                {"missing": missing, "unexpected": extra},
            )
        wrong = [name for name, dtype in expected.items() if actual[name] != dtype]
        if wrong:
            raise SchemaMismatchError(
                f"Columns with unexpected types for {self.frequency.value} data: {wrong}",
                {"columns": wrong},
            )

    def _wrap(self: D, frame: pl.LazyFrame) -> D:
        return type(self)(frame, station_id=self.station_id)

    @property
    def frame(self) -> pl.LazyFrame:
        """The underlying query plan."""
        return self._frame

    @property
    def columns(self) -> List[str]:
        return list(self.frequency.schema)

    def __repr__(self) -> str:
        station = f" station={self.station_id!r}" if self.station_id else ""
        return f"<{type(self).__name__}{station}>"

    def filter(self: D, predicate: pl.Expr) -> D:
        """Keep rows matching an arbitrary polars expression."""
        return self._wrap(self._frame.filter(predicate))

    def for_period(self: D, period: Period) -> D:
        """
        Keep rows whose time key falls within ``period``.

        Args:
            period: A :class:`Year`, :class:`YearMonth` or :class:`CalendarDate`

        Raises:
            UnsupportedFilter: For climate normals, which have no calendar time axis
            TypeError: If ``period`` is not a supported period type
        """
        if not isinstance(period, (Year, YearMonth, CalendarDate)):
            raise TypeError(f"Unsupported period type: {type(period).__name__}")
        start, end = period.span()
        return self._wrap(self._frame.filter(self._date_span(start, end)))

    def for_range(self: D, start: DateLike, end: DateLike) -> D:
        """
        Keep rows between ``start`` and ``end``, both inclusive.

        Raises:
            UnsupportedFilter: For climate normals
            ValueError: If ``start`` is after ``end``
        """
        return self._wrap(self._frame.filter(self._range(start, end)))

    def _date_span(self, start: date, end: date) -> pl.Expr:
        raise UnsupportedFilter(
            f"Date filters are not supported for {self.frequency.value} data"
        )

    def _range(self, start: DateLike, end: DateLike) -> pl.Expr:
        def as_date(value: DateLike) -> date:
            return value.date() if isinstance(value, datetime) else value

        first, last = as_date(start), as_date(end)
        if first > last:
            raise ValueError(f"Range start {start} is after end {end}")
        return self._date_span(first, last)

    def sort(self: D, descending: bool = False) -> D:
        """Order rows by the time key."""
        return self._wrap(self._frame.sort(list(self.frequency.time_key), descending=descending))

    def concat(self: D, other: "LazyDataset") -> D:
        """
        Append the rows of another dataset of the same frequency.

        Raises:
            SchemaMismatchError: If ``other`` has a different frequency
        """
        if other.frequency is not self.frequency:
            raise SchemaMismatchError(
                f"Cannot combine {self.frequency.value} and {other.frequency.value} datasets"
            )
        columns = self.columns
        combined = pl.concat([self._frame.select(columns), other.frame.select(columns)])
        return self._wrap(combined)

    def materialize(self) -> pl.DataFrame:
        """
        Execute the query plan.

        Raises:
            EngineError: If polars fails to evaluate the plan
        """
        try:
            frame = self._frame.collect()
        except pl.exceptions.PolarsError as e:
            raise EngineError(f"Failed to evaluate {self.frequency.value} query: {e}") from e
        logger.debug(f"Materialized {frame.height} {self.frequency.value} rows")
        return frame

    def count(self) -> int:
        """Number of rows the plan produces."""
        try:
            return int(self._frame.select(pl.len()).collect().item())
        except pl.exceptions.PolarsError as e:
            raise EngineError(f"Failed to count {self.frequency.value} rows: {e}") from e

    def collect_all(self) -> List[Any]:
        """Materialize and convert every row to a typed record."""
        frame = self.materialize()
        return [self.record_type.from_row(row) for row in frame.iter_rows(named=True)]

    def collect_one(self) -> Any:
        """
        Materialize and return the single resulting row as a typed record.

        Raises:
            ExpectedSingleRow: If the plan yields zero or several rows
        """
        frame = self.materialize()
        if frame.height != 1:
            raise ExpectedSingleRow(frame.height)
        return self.record_type.from_row(frame.row(0, named=True))

    def to_pandas(self) -> "pd.DataFrame":
        """Materialize into a pandas DataFrame."""
        try:
            import pandas  # noqa: F401
        except ImportError:
            raise ImportError(
                "pandas is required for DataFrame conversion. Install with: pip install meteodb[pandas]"
            ) from None
        return self.materialize().to_pandas()


class HourlyDataset(LazyDataset):
    """Hourly observations keyed by ``datetime`` (UTC)."""

    frequency = Frequency.HOURLY
    record_type = HourlyRecord

    def _date_span(self, start: date, end: date) -> pl.Expr:
        lower = datetime.combine(start, time())
        upper = datetime.combine(end, time()) + timedelta(days=1)
        return (pl.col("datetime") >= lower) & (pl.col("datetime") < upper)

    def _range(self, start: DateLike, end: DateLike) -> pl.Expr:
        lower = (
            _naive_utc(start) if isinstance(start, datetime) else datetime.combine(start, time())
        )
        if isinstance(end, datetime):
            upper = _naive_utc(end)
            if lower > upper:
                raise ValueError(f"Range start {start} is after end {end}")
            return (pl.col("datetime") >= lower) & (pl.col("datetime") <= upper)
        upper = datetime.combine(end, time()) + timedelta(days=1)
        if lower >= upper:
            raise ValueError(f"Range start {start} is after end {end}")
        return (pl.col("datetime") >= lower) & (pl.col("datetime") < upper)

    @staticmethod
    def round_to_hour(moment: datetime) -> datetime:
        """Round to the nearest hour; half past rounds up."""
        moment = _naive_utc(moment)
        base = moment.replace(minute=0, second=0, microsecond=0)
        if moment.minute >= 30:
            base += timedelta(hours=1)
        return base

    def at(self, moment: datetime) -> "HourlyDataset":
        """Keep the row for the hour nearest to ``moment``."""
        return self._wrap(self._frame.filter(pl.col("datetime") == self.round_to_hour(moment)))


class DailyDataset(LazyDataset):
    """Daily aggregates keyed by ``date``."""

    frequency = Frequency.DAILY
    record_type = DailyRecord

    def _date_span(self, start: date, end: date) -> pl.Expr:
        return pl.col("date").is_between(start, end, closed="both")

    def at(self, day: DateLike) -> "DailyDataset":
        """Keep the row for ``day``."""
        if isinstance(day, datetime):
            day = day.date()
        return self._wrap(self._frame.filter(pl.col("date") == day))


class MonthlyDataset(LazyDataset):
    """Monthly aggregates keyed by ``year`` and ``month``."""

    frequency = Frequency.MONTHLY
    record_type = MonthlyRecord

    @staticmethod
    def _ordinal() -> pl.Expr:
        return pl.col("year") * 12 + pl.col("month")

    def _date_span(self, start: date, end: date) -> pl.Expr:
        first = start.year * 12 + start.month
        last = end.year * 12 + end.month
        return self._ordinal().is_between(first, last, closed="both")

    def at(self, year: Union[int, YearMonth], month: Optional[int] = None) -> "MonthlyDataset":
        """Keep the row for ``year``/``month`` or a :class:`YearMonth`."""
        if isinstance(year, YearMonth):
            key = year
        else:
            if month is None:
                raise TypeError("at() requires a month when year is an int")
            key = YearMonth(year, month)
        return self._wrap(
            self._frame.filter((pl.col("year") == key.year) & (pl.col("month") == key.month))
        )


class ClimateDataset(LazyDataset):
    """Climate normals keyed by reference period and month."""

    frequency = Frequency.CLIMATE
    record_type = ClimateRecord

    def _range(self, start: DateLike, end: DateLike) -> pl.Expr:
        raise UnsupportedFilter("Range filters are not supported for climate normals")

    def at(
        self,
        start_year: Union[int, ClimateKey],
        end_year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> "ClimateDataset":
        """Keep the row for a reference period and month, or a :class:`ClimateKey`."""
        if isinstance(start_year, ClimateKey):
            key = start_year
        else:
            if end_year is None or month is None:
                raise TypeError("at() requires end_year and month when start_year is an int")
            key = ClimateKey(start_year, end_year, month)
        return self._wrap(
            self._frame.filter(
                (pl.col("start_year") == key.start_year)
                & (pl.col("end_year") == key.end_year)
                & (pl.col("month") == key.month)
            )
        )


DATASET_TYPES = {
    Frequency.HOURLY: HourlyDataset,
    Frequency.DAILY: DailyDataset,
    Frequency.MONTHLY: MonthlyDataset,
    Frequency.CLIMATE: ClimateDataset,
}


def dataset_for(
    frequency: Frequency,
    frame: Union[pl.LazyFrame, pl.DataFrame],
    station_id: Optional[str] = None,
) -> LazyDataset:
    """Wrap ``frame`` in the dataset class of ``frequency``."""
    return DATASET_TYPES[frequency](frame, station_id=station_id)
