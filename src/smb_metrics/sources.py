# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction and profile sources consumed by the Metrics Store.

Sources are read-only from the engine's point of view:

- TransactionSource.list_all()  -> full transaction log (DataFrame)
- TransactionSource.analytics() -> pre-aggregated totals and categories
- ProfileSource.get_profile()   -> business profile record, or None

A source that cannot reach its backing store raises SourceUnavailableError.
Missing data is never an error: an empty log or an absent profile is simply
returned as such.
"""

import sqlite3
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Protocol

import pandas as pd

from .db import DatabaseConfig, load_profile, load_transactions
from .kpis import summarize_transactions, transactions_frame


class SourceUnavailableError(RuntimeError):
    """Raised when a source cannot read its backing store."""


class TransactionSource(Protocol):
    def list_all(self) -> pd.DataFrame: ...

    def analytics(self) -> dict[str, Any]: ...


class ProfileSource(Protocol):
    def get_profile(self) -> Optional[Mapping[str, Any]]: ...


class InMemoryTransactionSource:
    """Transaction source over a list of records held in memory."""

    def __init__(self, records: Optional[Iterable[Mapping[str, Any]]] = None):
        self.records = [dict(r) for r in (records or [])]

    def list_all(self) -> pd.DataFrame:
        return transactions_frame(self.records)

    def analytics(self) -> dict[str, Any]:
        return summarize_transactions(self.records)


class StaticProfileSource:
    """Profile source returning a fixed record (or None)."""

    def __init__(self, profile: Optional[Mapping[str, Any]] = None):
        self.profile = dict(profile) if profile is not None else None

    def get_profile(self) -> Optional[Mapping[str, Any]]:
        return None if self.profile is None else dict(self.profile)


class SqliteTransactionSource:
    """Transaction source backed by the `transactions` table."""

    def __init__(self, cfg: DatabaseConfig):
        self.cfg = cfg

    def list_all(self) -> pd.DataFrame:
        try:
            return load_transactions(self.cfg)
        except (sqlite3.Error, OSError) as exc:
            raise SourceUnavailableError(f"Cannot load transactions: {exc}") from exc

    def analytics(self) -> dict[str, Any]:
        return summarize_transactions(self.list_all())


class SqliteProfileSource:
    """Profile source backed by the `business_profile` table."""

    def __init__(self, cfg: DatabaseConfig):
        self.cfg = cfg

    def get_profile(self) -> Optional[Mapping[str, Any]]:
        try:
            profile = load_profile(self.cfg)
        except (sqlite3.Error, OSError) as exc:
            raise SourceUnavailableError(f"Cannot load profile: {exc}") from exc
        return profile or None
