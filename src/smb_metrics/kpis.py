# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
KPI aggregation engine for SMB Metrics.

This module turns the raw transaction log into the KPI block shown on the
dashboard. It is the transaction-side counterpart of ``scoring.py``.

1. Transaction frame
   -----------------
   ``transactions_frame()`` normalizes a DataFrame or a list of mappings
   into a DataFrame with the columns:
       id, date (datetime64[ns], naive), amount (float, signed),
       category (str), customer_id (str or missing)
   A positive amount is income, a negative amount is an expense.

2. Monthly series
   --------------
   ``aggregate_kpis()`` partitions transactions by calendar month and
   builds exactly 6 buckets ending at the month of the reference instant
   (oldest first). Each bucket carries:
       - revenue      : sum of positive amounts,
       - customers    : distinct-customer estimate,
       - transactions : number of records (income and expenses).
   Months without data are reported as zeros.

3. Headline figures
   ----------------
   - revenue         : current-month income,
   - growth          : month-over-month income growth in percent, 0 when
                       the previous month had no income,
   - customers       : distinct-customer estimate over all transactions,
   - readiness_score : data-richness heuristic in [40, 90], unrelated to
                       the profile-based investment readiness of
                       ``scoring.py``.

4. Category breakdown
   ------------------
   The top 4 categories by share of absolute transaction volume, as
   integer percentages (rounded independently, so they need not sum to
   100), colored from a fixed gold palette in rank order.

Customer estimate
-----------------
Distinct ``customer_id`` values are used when the log carries any. When it
does not and a prefix separator is configured, customers are recovered
from the prefix of transaction identifiers ("C042-0007" -> "C042").
Otherwise the estimate falls back to ``floor(income / divisor)``, a
revenue-based proxy (500 per customer by default).

An empty transaction log is reported as ``None`` ("no real data"): the
caller substitutes cached or default data instead of a zeroed snapshot.
"""

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import pandas as pd

from .periods import (
    DateLike,
    filter_transactions_by_bucket,
    to_naive_timestamp,
    trailing_months,
)
from .scoring import clamp, round_half_up

logger = logging.getLogger(__name__)

GOLD_PALETTE = ("#D4AF37", "#FFD700", "#B8960F", "#F4E4B1")
MAX_CATEGORIES = len(GOLD_PALETTE)

READINESS_BASE = 50
READINESS_PER_TRANSACTION = 2
READINESS_PER_CATEGORY = 5
READINESS_MIN = 40
READINESS_MAX = 90

UNCATEGORIZED = "Uncategorized"
FRAME_COLUMNS = ["id", "date", "amount", "category", "customer_id"]

_COLUMN_ALIASES = {
    "timestamp": "date",
    "customerid": "customer_id",
    "customer": "customer_id",
}

TransactionsInput = Union[pd.DataFrame, Iterable[Mapping[str, Any]]]


@dataclass(frozen=True)
class KPIOptions:
    """Tunables of the customer estimate."""

    customer_estimate_divisor: float = 500.0
    customer_id_prefix_separator: Optional[str] = None


@dataclass(frozen=True)
class MonthlyMetrics:
    """Metrics of one calendar month of the trailing series."""

    month: str
    revenue: float
    customers: int
    transactions: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "revenue": self.revenue,
            "customers": self.customers,
            "transactions": self.transactions,
        }


@dataclass(frozen=True)
class CategoryShare:
    """One entry of the category breakdown."""

    name: str
    value: int
    color: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "value": self.value, "color": self.color}


@dataclass(frozen=True)
class KPISnapshot:
    """KPI block derived from real transactions."""

    revenue: float
    growth: int
    customers: int
    readiness_score: int
    monthly_data: tuple[MonthlyMetrics, ...]
    category_breakdown: tuple[CategoryShare, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Return the persisted (camelCase) representation."""
        return {
            "revenue": self.revenue,
            "growth": self.growth,
            "customers": self.customers,
            "readinessScore": self.readiness_score,
            "monthlyData": [m.to_dict() for m in self.monthly_data],
            "categoryBreakdown": [c.to_dict() for c in self.category_breakdown],
        }


# ---------------------------------------------------------------------------
# Transaction frame
# ---------------------------------------------------------------------------


def transactions_frame(transactions: Optional[TransactionsInput]) -> pd.DataFrame:
    """
    Normalize transactions into the canonical frame used by the aggregator.

    Raises
    ------
    ValueError
        If the input has no 'date' or 'amount' column, or contains
        unparseable dates or amounts.
    """
    if transactions is None:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    if isinstance(transactions, pd.DataFrame):
        df = transactions.copy()
    else:
        df = pd.DataFrame(list(transactions))

    if df.empty:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df.columns = [str(c).strip() for c in df.columns]
    renames = {
        c: _COLUMN_ALIASES[c.lower()]
        for c in df.columns
        if c.lower() in _COLUMN_ALIASES and _COLUMN_ALIASES[c.lower()] not in df.columns
    }
    df = df.rename(columns=renames)

    missing = {"date", "amount"}.difference(df.columns)
    if missing:
        raise ValueError(
            f"Transactions are missing required column(s): {', '.join(sorted(missing))}"
        )

    try:
        dates = pd.to_datetime(df["date"], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid values in 'date' column.") from exc
    if isinstance(dates.dtype, pd.DatetimeTZDtype):
        dates = dates.dt.tz_convert("UTC").dt.tz_localize(None)
    df["date"] = dates

    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    if df["amount"].isna().any():
        raise ValueError("Invalid numeric values in 'amount' column.")
    df["amount"] = df["amount"].astype(float)

    if "category" not in df.columns:
        df["category"] = UNCATEGORIZED
    df["category"] = (
        df["category"].fillna(UNCATEGORIZED).astype(str).str.strip().replace("", UNCATEGORIZED)
    )

    if "customer_id" not in df.columns:
        df["customer_id"] = None
    df["customer_id"] = df["customer_id"].map(_clean_identifier)

    if "id" not in df.columns:
        df["id"] = None
    df["id"] = df["id"].map(_clean_identifier)

    return df[FRAME_COLUMNS].reset_index(drop=True)


def _clean_identifier(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def _income(df: pd.DataFrame) -> float:
    """Sum of positive amounts."""
    if df.empty:
        return 0.0
    return float(df.loc[df["amount"] > 0, "amount"].sum())


# ---------------------------------------------------------------------------
# Customer estimate
# ---------------------------------------------------------------------------


def _customer_mode(df: pd.DataFrame, options: KPIOptions) -> str:
    """
    Decide once, for the whole log, how customers are counted.

    Returns 'customer_id', 'id_prefix' or 'revenue'.
    """
    if df["customer_id"].notna().any():
        return "customer_id"
    sep = options.customer_id_prefix_separator
    if sep and df["id"].dropna().str.contains(sep, regex=False).any():
        return "id_prefix"
    return "revenue"


def _count_customers(df: pd.DataFrame, mode: str, options: KPIOptions) -> int:
    if df.empty:
        return 0
    if mode == "customer_id":
        return int(df["customer_id"].dropna().nunique())
    if mode == "id_prefix":
        sep = options.customer_id_prefix_separator or ""
        ids = df["id"].dropna()
        prefixes = ids[ids.str.contains(sep, regex=False)].str.split(sep, n=1).str[0]
        return int(prefixes[prefixes != ""].nunique())
    # Revenue-based proxy, used only when no identifier can be recovered.
    return int(math.floor(_income(df) / options.customer_estimate_divisor))


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def compute_growth(current_revenue: float, previous_revenue: float) -> int:
    """Month-over-month growth in percent, 0 when the previous month is 0."""
    if previous_revenue <= 0:
        return 0
    return round_half_up(100 * (current_revenue - previous_revenue) / previous_revenue)


def category_volumes(df: pd.DataFrame) -> pd.Series:
    """
    Absolute transaction volume per category, largest first.

    Ties are broken by category name so the ranking is deterministic.
    """
    if df.empty:
        return pd.Series(dtype=float)
    volumes = df.assign(volume=df["amount"].abs()).groupby("category")["volume"].sum()
    ordered = sorted(volumes.items(), key=lambda kv: (-kv[1], kv[0]))
    return pd.Series(dict(ordered), dtype=float)


def compute_category_breakdown(df: pd.DataFrame) -> tuple[CategoryShare, ...]:
    """Top categories by share of volume, with palette colors in rank order."""
    volumes = category_volumes(df)
    total = float(volumes.sum()) if not volumes.empty else 0.0
    if total <= 0:
        return ()

    shares = []
    for rank, (name, volume) in enumerate(volumes.head(MAX_CATEGORIES).items()):
        shares.append(
            CategoryShare(
                name=str(name),
                value=max(0, round_half_up(volume / total * 100)),
                color=GOLD_PALETTE[rank],
            )
        )
    return tuple(shares)


def compute_kpi_readiness(transaction_count: int, category_count: int) -> int:
    """Data-richness heuristic clamped to [40, 90]."""
    raw = (
        READINESS_BASE
        + READINESS_PER_TRANSACTION * transaction_count
        + READINESS_PER_CATEGORY * category_count
    )
    return int(clamp(raw, READINESS_MIN, READINESS_MAX))


def summarize_transactions(transactions: Optional[TransactionsInput]) -> dict[str, Any]:
    """
    Pre-aggregated view of the log: total income and per-category share.

    Returns
    -------
    dict
        ``{"totalIncome": float, "categoryBreakdown": [{"category", "percentage"}]}``
        with every category, largest share first, percentages rounded to
        two decimals.
    """
    df = transactions_frame(transactions)
    volumes = category_volumes(df)
    total = float(volumes.sum()) if not volumes.empty else 0.0

    breakdown = []
    if total > 0:
        for name, volume in volumes.items():
            breakdown.append(
                {"category": str(name), "percentage": round(volume / total * 100, 2)}
            )
    return {"totalIncome": round(_income(df), 2), "categoryBreakdown": breakdown}


def aggregate_kpis(
    transactions: Optional[TransactionsInput],
    now: Optional[DateLike] = None,
    *,
    options: Optional[KPIOptions] = None,
) -> Optional[KPISnapshot]:
    """
    Aggregate the transaction log into a KPI snapshot.

    Parameters
    ----------
    transactions:
        Full transaction log (DataFrame or list of mappings).
    now:
        Reference instant; defaults to today. The current month is the
        calendar month of `now`.
    options:
        Customer estimate options.

    Returns
    -------
    KPISnapshot or None
        None when the log is empty.
    """
    options = options or KPIOptions()
    df = transactions_frame(transactions)
    if df.empty:
        logger.debug("No transactions available, no KPI snapshot computed")
        return None

    reference = to_naive_timestamp(now)
    mode = _customer_mode(df, options)

    monthly = []
    for bucket in trailing_months(reference):
        month_df = filter_transactions_by_bucket(df, bucket)
        monthly.append(
            MonthlyMetrics(
                month=bucket.label,
                revenue=round(_income(month_df), 2),
                customers=_count_customers(month_df, mode, options),
                transactions=int(len(month_df)),
            )
        )

    current_revenue = monthly[-1].revenue
    previous_revenue = monthly[-2].revenue

    snapshot = KPISnapshot(
        revenue=current_revenue,
        growth=compute_growth(current_revenue, previous_revenue),
        customers=_count_customers(df, mode, options),
        readiness_score=compute_kpi_readiness(len(df), int(df["category"].nunique())),
        monthly_data=tuple(monthly),
        category_breakdown=compute_category_breakdown(df),
    )
    logger.debug(
        "Aggregated %s transactions (customer estimate: %s), revenue=%s growth=%s",
        len(df),
        mode,
        snapshot.revenue,
        snapshot.growth,
    )
    return snapshot
