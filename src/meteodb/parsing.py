"""
Decoding of cached provider CSV files into typed polars frames.
"""

import io
import logging
from typing import List

import polars as pl

from .exceptions import ParseError
from .models import INTEGER_COLUMNS, Frequency

logger = logging.getLogger(__name__)


def empty_frame(frequency: Frequency) -> pl.DataFrame:
    """Return a zero-row frame with the parsed schema of ``frequency``."""
    return pl.DataFrame(schema=frequency.schema)


def _cast_expressions(frequency: Frequency) -> List[pl.Expr]:
    exprs: List[pl.Expr] = []
    for name in frequency.raw_columns:
        if name == "hour":
            continue
        col = pl.col(name)
        if name == "date":
            day = col.str.strip_chars().str.to_date("%Y-%m-%d", strict=True)
            if frequency is Frequency.HOURLY:
                hour = pl.col("hour").cast(pl.Float64, strict=True).cast(pl.Int64, strict=True)
                exprs.append(
                    (day.cast(pl.Datetime("us")) + pl.duration(hours=hour)).alias("datetime")
                )
            else:
                exprs.append(day.alias("date"))
        elif name in INTEGER_COLUMNS:
            # Integer columns are sometimes written as "12.0"
            exprs.append(
                col.cast(pl.Float64, strict=True).cast(pl.Int64, strict=True).alias(name)
            )
        else:
            exprs.append(col.cast(pl.Float64, strict=True).alias(name))
    return exprs


def _check_field_counts(raw: bytes, frequency: Frequency) -> None:
    # read_csv pads short rows with nulls
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"{frequency.value} data is not UTF-8 text: {e}") from e

    lines = pl.Series("line", text.splitlines(), dtype=pl.String)
    lines = lines.filter(lines.str.strip_chars() != "")
    fields = lines.str.count_matches(",", literal=True) + 1
    expected = len(frequency.raw_columns)
    bad = (fields != expected).arg_true()
    if bad.len():
        first = bad[0]
        raise ParseError(
            f"{frequency.value} row {first + 1} has {fields[first]} columns, expected {expected}",
            {"expected": expected, "actual": fields[first], "bad_rows": bad.len()},
        )


def parse_frame(raw: bytes, frequency: Frequency) -> pl.DataFrame:
    """
    Parse a headerless provider CSV into the schema of ``frequency``.

    Empty cells become nulls. The time key columns must be present on every
    row.

    Args:
        raw: Decompressed CSV content
        frequency: Frequency whose column layout the file follows

    Returns:
        polars DataFrame with ``frequency.schema``

    Raises:
        ParseError: If the column count, a value or a time key is invalid
    """
    if not raw.strip():
        logger.debug(f"Empty {frequency.value} file, returning empty frame")
        return empty_frame(frequency)

    columns = frequency.raw_columns
    _check_field_counts(raw, frequency)
    try:
        frame = pl.read_csv(io.BytesIO(raw), has_header=False, infer_schema=False)
    except pl.exceptions.PolarsError as e:
        raise ParseError(f"unreadable {frequency.value} CSV: {e}") from e

    frame = frame.rename(dict(zip(frame.columns, columns)))
    # Blank cells arrive as empty strings when a value is absent
    frame = frame.with_columns(
        [
            pl.when(pl.col(c).str.strip_chars() == "").then(None).otherwise(pl.col(c)).alias(c)
            for c in columns
        ]
    )

    try:
        parsed = frame.select(_cast_expressions(frequency))
    except pl.exceptions.PolarsError as e:
        raise ParseError(f"invalid value in {frequency.value} data: {e}") from e

    key_nulls = parsed.select(
        pl.any_horizontal(pl.col(list(frequency.time_key)).is_null()).sum()
    ).item()
    if key_nulls:
        raise ParseError(
            f"{key_nulls} {frequency.value} rows are missing their time key",
            {"rows": key_nulls},
        )

    logger.debug(f"Parsed {parsed.height} {frequency.value} rows")
    return parsed
