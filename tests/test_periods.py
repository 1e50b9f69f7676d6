from datetime import date

import pandas as pd
import pytest

import smb_metrics.periods as periods


def test_trailing_months_spans_year_boundary() -> None:
    """Six buckets ending at the reference month, oldest first."""
    buckets = periods.trailing_months(date(2025, 2, 10))

    assert [b.label for b in buckets] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]
    assert buckets[0].key == "2024-09"
    assert buckets[-1].key == "2025-02"
    assert buckets[-1].start == date(2025, 2, 1)
    assert buckets[-1].end == date(2025, 2, 28)


def test_trailing_months_custom_count() -> None:
    buckets = periods.trailing_months("2024-03-31", count=2)
    assert [b.key for b in buckets] == ["2024-02", "2024-03"]
    assert buckets[0].end == date(2024, 2, 29)


def test_trailing_months_rejects_non_positive_count() -> None:
    with pytest.raises(ValueError):
        periods.trailing_months(date(2025, 1, 1), count=0)


def test_trailing_months_defaults_to_today(monkeypatch) -> None:
    """Without a reference instant, the current month comes from _today()."""
    monkeypatch.setattr(periods, "_today", lambda: date(2025, 7, 4))

    buckets = periods.trailing_months()

    assert buckets[-1].key == "2025-07"
    assert buckets[0].key == "2025-02"


def test_previous_month() -> None:
    assert periods.previous_month(2025, 1) == (2024, 12)
    assert periods.previous_month(2025, 7) == (2025, 6)


def test_to_naive_timestamp_converts_aware_values_to_utc() -> None:
    ts = periods.to_naive_timestamp(pd.Timestamp("2025-03-01T00:30:00+02:00"))
    assert ts.tzinfo is None
    assert ts == pd.Timestamp("2025-02-28T22:30:00")


def test_filter_transactions_by_bucket_includes_whole_last_day() -> None:
    """Timestamps late on the last day of the month stay in the bucket."""
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(
                [
                    "2025-01-31 23:59:59",
                    "2025-02-01 00:00:00",
                    "2025-02-28 23:59:59",
                    "2025-03-01 00:00:00",
                ]
            ),
            "amount": [1.0, 2.0, 3.0, 4.0],
        }
    )

    filtered = periods.filter_transactions_by_bucket(df, periods.month_bucket(2025, 2))

    assert filtered["amount"].tolist() == [2.0, 3.0]
