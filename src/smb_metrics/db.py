# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SMB Metrics.

This module provides the low-level accessors for the SQLite database used by
the application. It is responsible for:

- Initializing the database schema.
- Recording import batches (CSV, manual, API sources).
- Inserting transactions in bulk during an import, skipping duplicates.
- Storing the key-value business profile record.
- Storing the persisted dashboard document(s) under a storage key.

The database is the single source of truth for transactions and for the
business profile. Higher layers (sources, storage, store) never open
connections themselves.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) import_batches
   One row per import batch.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - created_at     TEXT    NOT NULL (ISO datetime, UTC)
   - source_type    TEXT    NOT NULL  -- "csv" | "manual" | "api"
   - source_label   TEXT    NOT NULL  -- file path, connector name, etc.
   - rows_inserted  INTEGER NOT NULL

2) transactions
   Append-only transaction log.

   - id              INTEGER PRIMARY KEY AUTOINCREMENT
   - external_id     TEXT    UNIQUE    -- identifier from the source, optional
   - occurred_at     TEXT    NOT NULL  -- ISO datetime "YYYY-MM-DDTHH:MM:SS"
   - amount_cents    INTEGER NOT NULL  -- signed, positive = income
   - category        TEXT    NOT NULL
   - customer_id     TEXT
   - description     TEXT
   - import_batch_id INTEGER NOT NULL  -- foreign key to import_batches.id

3) business_profile
   Key-value profile record. Values are JSON-encoded so that flags and
   numbers survive the round trip.

   - field       TEXT PRIMARY KEY
   - value       TEXT NOT NULL
   - updated_at  TEXT NOT NULL

4) documents
   Persisted JSON documents keyed by storage key.

   - key         TEXT PRIMARY KEY
   - payload     TEXT NOT NULL
   - updated_at  TEXT NOT NULL

------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC for metadata).
- Foreign key enforcement is explicitly enabled.
- Amounts are stored as integer cents to avoid float drift.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Literal

import pandas as pd

logger = logging.getLogger(__name__)

TRANSACTION_COLUMNS = ["id", "date", "amount", "category", "customer_id", "description"]

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SMB Metrics.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of an import of transactions into the database.

    Attributes
    ----------
    batch_id:
        Identifier of the batch row in `import_batches`.
    rows_inserted:
        Number of rows inserted into `transactions`.
    duplicates_skipped:
        Number of rows skipped because their external id already exists.
    """

    batch_id: int
    rows_inserted: int
    duplicates_skipped: int


SourceType = Literal["csv", "manual", "api"]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS import_batches (
            id            INTEGER PRIMARY KEY AUTOINCREMENT,
            created_at    TEXT    NOT NULL,
            source_type   TEXT    NOT NULL,
            source_label  TEXT    NOT NULL,
            rows_inserted INTEGER NOT NULL DEFAULT 0
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id              INTEGER PRIMARY KEY AUTOINCREMENT,
            external_id     TEXT    UNIQUE,
            occurred_at     TEXT    NOT NULL,
            amount_cents    INTEGER NOT NULL,
            category        TEXT    NOT NULL,
            customer_id     TEXT,
            description     TEXT,
            import_batch_id INTEGER NOT NULL,

            FOREIGN KEY (import_batch_id) REFERENCES import_batches(id)
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS business_profile (
            field       TEXT PRIMARY KEY,
            value       TEXT NOT NULL,
            updated_at  TEXT NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
            key         TEXT PRIMARY KEY,
            payload     TEXT NOT NULL,
            updated_at  TEXT NOT NULL
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_occurred_at
            ON transactions(occurred_at);
        """
    )

    conn.commit()


def _ensure_dataframe_columns(df: pd.DataFrame) -> None:
    """Validate that the DataFrame contains the expected columns."""
    required = {"date", "amount", "category"}
    missing = required.difference(df.columns)
    if missing:
        cols = ", ".join(sorted(missing))
        msg = f"DataFrame is missing required column(s): {cols}"
        raise ValueError(msg)


def _to_iso_datetime(value) -> str:
    """
    Convert a date-like value to an ISO 'YYYY-MM-DDTHH:MM:SS' string.

    Timezone-aware values are converted to UTC before the offset is dropped,
    so stored instants land in the same calendar month as in-memory ones.
    """
    ts = pd.Timestamp(value)
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts.to_pydatetime().isoformat(timespec="seconds")


def _optional_text(value: Any) -> str | None:
    """Return a stripped string, or None for empty / missing values."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


# ---------------------------------------------------------------------------
# Public API: schema and transactions
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if it does not exist.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def import_transactions(
    df: pd.DataFrame,
    cfg: DatabaseConfig,
    *,
    source_type: SourceType = "csv",
    source_label: str,
) -> ImportStats:
    """
    Import a normalized transactions DataFrame into the database.

    Parameters
    ----------
    df:
        DataFrame with at least ``date``, ``amount`` and ``category`` columns,
        as produced by :func:`smb_metrics.io.read_transactions`. Optional
        columns ``id``, ``customer_id`` and ``description`` are stored when
        present.
    cfg:
        Database configuration.
    source_type, source_label:
        Metadata recorded on the import batch.

    Returns
    -------
    ImportStats
        Batch id, number of inserted rows and number of skipped duplicates.
        A row is a duplicate when its ``id`` matches the external id of an
        existing transaction. Rows without ``id`` are always inserted.
    """
    _ensure_dataframe_columns(df)
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO import_batches (created_at, source_type, source_label)
            VALUES (?, ?, ?);
            """,
            (_now_utc_iso(), source_type, source_label),
        )
        batch_id = int(cur.lastrowid)

        inserted = 0
        duplicates = 0
        for row in df.to_dict(orient="records"):
            external_id = _optional_text(row.get("id"))
            amount = float(row["amount"])
            params = (
                external_id,
                _to_iso_datetime(row["date"]),
                int(round(amount * 100)),
                _optional_text(row.get("category")) or "Uncategorized",
                _optional_text(row.get("customer_id")),
                _optional_text(row.get("description")),
                batch_id,
            )
            try:
                cur.execute(
                    """
                    INSERT INTO transactions (
                        external_id, occurred_at, amount_cents, category,
                        customer_id, description, import_batch_id
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?);
                    """,
                    params,
                )
            except sqlite3.IntegrityError:
                duplicates += 1
                continue
            inserted += 1

        cur.execute(
            "UPDATE import_batches SET rows_inserted = ? WHERE id = ?;",
            (inserted, batch_id),
        )
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Imported batch #%s from %s: %s rows, %s duplicates skipped",
        batch_id,
        source_label,
        inserted,
        duplicates,
    )
    return ImportStats(
        batch_id=batch_id,
        rows_inserted=inserted,
        duplicates_skipped=duplicates,
    )


def load_transactions(
    cfg: DatabaseConfig,
    start: date | None = None,
    end: date | None = None,
) -> pd.DataFrame:
    """
    Load transactions from the database, optionally bounded by date.

    Parameters
    ----------
    cfg:
        Database configuration.
    start, end:
        Optional inclusive date bounds.

    Returns
    -------
    pandas.DataFrame
        A DataFrame with columns ``id`` (external id, or the row id when the
        source did not provide one), ``date`` (datetime64[ns]), ``amount``
        (float, signed), ``category``, ``customer_id`` and ``description``.
        If no transactions are found, an empty DataFrame with the same
        columns is returned.
    """
    init_database(cfg)

    clauses = []
    params: list[str] = []
    if start is not None:
        clauses.append("occurred_at >= ?")
        params.append(datetime(start.year, start.month, start.day).isoformat())
    if end is not None:
        clauses.append("occurred_at < ?")
        params.append(
            (pd.Timestamp(end) + pd.Timedelta(days=1)).to_pydatetime().isoformat()
        )
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute(
            f"""
            SELECT COALESCE(external_id, CAST(id AS TEXT)),
                   occurred_at, amount_cents, category, customer_id, description
              FROM transactions
              {where}
             ORDER BY occurred_at, id;
            """,
            params,
        )
        rows = cur.fetchall()
    finally:
        conn.close()

    if not rows:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)

    df = pd.DataFrame(
        rows,
        columns=["id", "date", "amount_cents", "category", "customer_id", "description"],
    )
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%dT%H:%M:%S")
    df["amount"] = df["amount_cents"].astype(float) / 100.0
    df = df.drop(columns=["amount_cents"])
    return df[TRANSACTION_COLUMNS]


def has_transactions(cfg: DatabaseConfig) -> bool:
    """Return True if the database contains at least one transaction."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute("SELECT 1 FROM transactions LIMIT 1;")
        return cur.fetchone() is not None
    finally:
        conn.close()


def list_import_batches(cfg: DatabaseConfig) -> pd.DataFrame:
    """
    Return the list of import batches stored in the database.

    Columns: id, created_at, source_type, source_label, rows_inserted.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        df = pd.read_sql_query(
            """
            SELECT id, created_at, source_type, source_label, rows_inserted
              FROM import_batches
             ORDER BY id;
            """,
            conn,
        )
    finally:
        conn.close()
    return df


# ---------------------------------------------------------------------------
# Public API: business profile
# ---------------------------------------------------------------------------


def save_profile_fields(cfg: DatabaseConfig, fields: Mapping[str, Any]) -> None:
    """
    Insert or replace profile fields.

    Fields set to None are removed from the profile record.
    """
    init_database(cfg)

    now = _now_utc_iso()
    conn = _connect(cfg)
    try:
        for field, value in fields.items():
            if value is None:
                conn.execute(
                    "DELETE FROM business_profile WHERE field = ?;", (str(field),)
                )
                continue
            conn.execute(
                """
                INSERT INTO business_profile (field, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(field) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at;
                """,
                (str(field), json.dumps(value), now),
            )
        conn.commit()
    finally:
        conn.close()


def load_profile(cfg: DatabaseConfig) -> dict[str, Any]:
    """
    Return the business profile record as a plain mapping.

    An empty dict is returned when no profile fields are stored. Values that
    cannot be decoded as JSON are returned as raw text.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute("SELECT field, value FROM business_profile ORDER BY field;")
        rows = cur.fetchall()
    finally:
        conn.close()

    profile: dict[str, Any] = {}
    for field, raw in rows:
        try:
            profile[field] = json.loads(raw)
        except json.JSONDecodeError:
            profile[field] = raw
    return profile


# ---------------------------------------------------------------------------
# Public API: persisted documents
# ---------------------------------------------------------------------------


def read_document(cfg: DatabaseConfig, key: str) -> str | None:
    """Return the payload stored under `key`, or None if absent."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.cursor()
        cur.execute("SELECT payload FROM documents WHERE key = ?;", (key,))
        row = cur.fetchone()
    finally:
        conn.close()
    return None if row is None else str(row[0])


def write_document(cfg: DatabaseConfig, key: str, payload: str) -> None:
    """Insert or replace the payload stored under `key`."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        conn.execute(
            """
            INSERT INTO documents (key, payload, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                payload = excluded.payload,
                updated_at = excluded.updated_at;
            """,
            (key, payload, _now_utc_iso()),
        )
        conn.commit()
    finally:
        conn.close()

