# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Metrics.

This module turns the sub-documents served by the Metrics Store (plain
dicts in their persisted camelCase shape) into pandas DataFrames that are
easy to print or export:

- headline:   revenue, growth, customers, readiness score,
- monthly:    the 6-month series (month, revenue, customers, transactions),
- categories: the category breakdown (name, value, color),
- profile:    the profile summary (display fields, verification, scores),
- analytics:  per-category share of the transaction source.

Views never compute metrics themselves. They work the same on real, cached
and default data.
"""

from collections.abc import Mapping
from typing import Any

import pandas as pd

MONTHLY_COLUMNS = ["month", "revenue", "customers", "transactions"]
CATEGORY_COLUMNS = ["name", "value", "color"]
FIELD_COLUMNS = ["field", "value"]

_HEADLINE_LABELS = (
    ("revenue", "Revenue (current month)"),
    ("growth", "Growth vs previous month (%)"),
    ("customers", "Customers (estimate)"),
    ("readinessScore", "Readiness score"),
)

_PROFILE_LABELS = (
    ("businessName", "Business name"),
    ("industry", "Industry"),
    ("founded", "Founded"),
    ("employees", "Employees"),
    ("location", "Location"),
    ("revenue", "Monthly revenue"),
    ("fundingNeeded", "Funding needed"),
    ("description", "Description"),
)

_SCORE_LABELS = (
    ("profileCompleteness", "Profile completeness (%)"),
    ("businessHealth", "Business health"),
    ("investmentReadiness", "Investment readiness"),
    ("growthPotential", "Growth potential"),
)


def headline_frame(kpis: Mapping[str, Any]) -> pd.DataFrame:
    """Headline KPI figures, one row per metric."""
    rows = [
        {"metric": label, "value": kpis.get(key)}
        for key, label in _HEADLINE_LABELS
    ]
    return pd.DataFrame(rows, columns=["metric", "value"])


def monthly_series_frame(kpis: Mapping[str, Any]) -> pd.DataFrame:
    """Monthly series, oldest month first, as stored in the KPI block."""
    rows = kpis.get("monthlyData") or []
    df = pd.DataFrame(list(rows))
    if df.empty:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)
    return df.reindex(columns=MONTHLY_COLUMNS)


def category_breakdown_frame(kpis: Mapping[str, Any]) -> pd.DataFrame:
    rows = kpis.get("categoryBreakdown") or []
    df = pd.DataFrame(list(rows))
    if df.empty:
        return pd.DataFrame(columns=CATEGORY_COLUMNS)
    return df.reindex(columns=CATEGORY_COLUMNS)


def profile_summary_frame(profile: Mapping[str, Any]) -> pd.DataFrame:
    """
    Profile summary as (field, value) rows.

    Display fields come first, then the verification flags, then the scores.
    Absent keys are rendered as empty strings so that a partial (for example
    legacy) profile block still renders.
    """
    rows: list[dict[str, object]] = []
    for key, label in _PROFILE_LABELS:
        rows.append({"field": label, "value": profile.get(key, "")})

    verification = profile.get("verificationStatus") or {}
    for key in ("email", "phone", "business"):
        state = "verified" if verification.get(key) else "not verified"
        rows.append({"field": f"{key.capitalize()} verification", "value": state})

    scores = profile.get("scores") or {}
    for key, label in _SCORE_LABELS:
        rows.append({"field": label, "value": scores.get(key, "")})

    return pd.DataFrame(rows, columns=FIELD_COLUMNS)


def analytics_frame(analytics: Mapping[str, Any]) -> pd.DataFrame:
    """Per-category share of the transaction source (category, percentage)."""
    rows = analytics.get("categoryBreakdown") or []
    df = pd.DataFrame(list(rows))
    if df.empty:
        return pd.DataFrame(columns=["category", "percentage"])
    return df.reindex(columns=["category", "percentage"])
