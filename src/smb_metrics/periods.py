# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SMB Metrics.

This module defines a MonthBucket value object and helpers to derive the
calendar months of the trailing KPI window from a reference instant.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

import pandas as pd

TRAILING_MONTHS = 6

DateLike = Union[date, datetime, pd.Timestamp, str]


@dataclass(frozen=True)
class MonthBucket:
    """A calendar month with a short display label ('Jan') and a key ('2025-01')."""

    start: date
    end: date
    label: str
    key: str


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def to_naive_timestamp(value: Optional[DateLike]) -> pd.Timestamp:
    """
    Convert a reference instant to a naive pandas Timestamp.

    None means "now" (through `_today()`); timezone-aware values are
    converted to UTC before dropping the timezone.
    """
    if value is None:
        return pd.Timestamp(_today())
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def month_bucket(year: int, month: int) -> MonthBucket:
    """Build the bucket covering the given calendar month."""
    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])
    return MonthBucket(
        start=start,
        end=end,
        label=start.strftime("%b"),
        key=f"{year:04d}-{month:02d}",
    )


def previous_month(year: int, month: int) -> tuple[int, int]:
    """Return (year, month) of the calendar month before the given one."""
    if month == 1:
        return year - 1, 12
    return year, month - 1


def trailing_months(
    now: Optional[DateLike] = None,
    count: int = TRAILING_MONTHS,
) -> list[MonthBucket]:
    """
    Return the `count` calendar months ending at the month of `now`.

    Buckets are ordered oldest first and may span a year boundary.
    """
    if count <= 0:
        raise ValueError("count must be a positive number of months.")

    ts = to_naive_timestamp(now)
    year, month = ts.year, ts.month

    buckets = []
    for _ in range(count):
        buckets.append(month_bucket(year, month))
        year, month = previous_month(year, month)
    buckets.reverse()
    return buckets


def filter_transactions_by_bucket(
    transactions: pd.DataFrame, bucket: MonthBucket
) -> pd.DataFrame:
    """
    Keep only transactions whose timestamp falls within the bucket month.

    The `transactions` DataFrame is expected to contain a 'date' column of
    type datetime64[ns]. Bounds are inclusive of the whole last day.
    """
    start = pd.Timestamp(bucket.start)
    end = pd.Timestamp(bucket.end) + pd.Timedelta(days=1)
    mask = (transactions["date"] >= start) & (transactions["date"] < end)
    return transactions.loc[mask].copy()
