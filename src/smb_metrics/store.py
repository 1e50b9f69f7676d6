# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Metrics Store: persisted dashboard snapshot with fallback policy.

The store is the only stateful component of SMB Metrics. It owns the
persisted dashboard document (see ``document.py``), orchestrates the score
calculator (``scoring.py``) and the KPI aggregator (``kpis.py``), and
exposes read/update operations to presentation layers (CLI, Web UI).

Read state machine
------------------
``get_kpi_data()`` and ``get_profile_summary()`` follow the same steps:

1. Compute from the live sources (transaction log, profile record).
2. Usable live data -> persist the result immediately and return it
   (origin "real").
3. No usable live data -> return the last persisted snapshot
   (origin "cached").
4. Nothing persisted (first run, unreadable or malformed storage) ->
   return the built-in defaults, which are persisted (origin "default").

A snapshot is always either fully real or fully default within one pass.
The origin is returned alongside the data through ``MetricsResult`` so that
a presentation layer can tell degraded data apart if it wants to.

Failure policy
--------------
The store never raises to its callers for data problems:

- storage read errors and malformed documents are logged and treated as
  "nothing persisted",
- storage write errors are logged and swallowed; the in-memory document
  stays authoritative for the rest of the session,
- source errors are logged and treated as "no usable data".

Lifecycle
---------
One store is built per process or session (see ``open_store``) and passed
to its consumers. The persisted document is loaded lazily on first access.
All operations are synchronous and run on the caller's thread.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Optional

from .config import DEFAULT_STORAGE_KEY, AppConfig
from .db import init_database
from .document import (
    ORIGIN_DEFAULT,
    ORIGIN_REAL,
    DocumentError,
    default_document,
    parse_document,
    section_copy,
    serialize_document,
)
from .kpis import KPIOptions, KPISnapshot, aggregate_kpis
from .periods import DateLike
from .scoring import (
    ProfileScores,
    has_profile_data,
    normalize_profile,
    score_profile,
    verification_flag,
)
from .sources import (
    ProfileSource,
    SourceUnavailableError,
    SqliteProfileSource,
    SqliteTransactionSource,
    TransactionSource,
)
from .storage import DocumentStorage, SqliteDocumentStorage, StorageError
from .views import monthly_series_frame

logger = logging.getLogger(__name__)

ORIGIN_CACHED = "cached"
EXPORT_FORMATS = ("json", "csv")


@dataclass(frozen=True)
class MetricsResult:
    """
    A sub-document served by the store, with its origin.

    Attributes
    ----------
    data :
        Deep copy of the sub-document (safe to mutate).
    origin :
        "real" (computed from live sources during this call), "cached"
        (last persisted real snapshot) or "default" (built-in defaults).
    """

    data: dict[str, Any]
    origin: str

    @property
    def is_real(self) -> bool:
        return self.origin == ORIGIN_REAL


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def build_profile_summary(
    profile: Mapping[str, Any], scores: ProfileScores
) -> dict[str, Any]:
    """Persisted profile sub-document: display fields, verification and scores."""
    record = normalize_profile(profile)
    location = ", ".join(
        part
        for part in (_text(record.get("location")), _text(record.get("region")))
        if part
    )
    return {
        "businessName": _text(record.get("business_name")),
        "industry": _text(record.get("business_type")),
        "founded": _text(record.get("year_established")),
        "employees": _text(record.get("employee_count")),
        "location": location,
        "revenue": _text(record.get("monthly_revenue")),
        "fundingNeeded": _text(record.get("funding_needed")),
        "description": _text(record.get("business_description")),
        "verificationStatus": {
            "email": verification_flag(record.get("is_email_verified")),
            "phone": verification_flag(record.get("is_phone_verified")),
            "business": verification_flag(record.get("is_business_verified")),
        },
        "scores": scores.to_dict(),
    }


class MetricsStore:
    """
    Persisted dashboard snapshot with live-cached-default fallback.

    Parameters
    ----------
    storage :
        Backend holding the JSON document.
    transactions, profiles :
        Live sources.
    storage_key :
        Key of the document in the storage backend.
    kpi_options :
        Customer estimate options forwarded to the KPI aggregator.
    """

    def __init__(
        self,
        storage: DocumentStorage,
        transactions: TransactionSource,
        profiles: ProfileSource,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        kpi_options: Optional[KPIOptions] = None,
    ):
        self.storage = storage
        self.transactions = transactions
        self.profiles = profiles
        self.storage_key = storage_key
        self.kpi_options = kpi_options or KPIOptions()
        self._doc: Optional[dict[str, Any]] = None

    # ------------------------------------------------------------------
    # Document lifecycle
    # ------------------------------------------------------------------

    def _document(self) -> dict[str, Any]:
        if self._doc is None:
            self._doc = self._load()
        return self._doc

    def _load(self) -> dict[str, Any]:
        try:
            raw = self.storage.read(self.storage_key)
        except StorageError as exc:
            logger.error("Error loading dashboard data: %s", exc)
            raw = None

        if raw is not None:
            try:
                return parse_document(raw)
            except DocumentError as exc:
                logger.warning(
                    "Discarding malformed dashboard document %r: %s",
                    self.storage_key,
                    exc,
                )
        else:
            logger.info(
                "No dashboard document under %r, initializing defaults",
                self.storage_key,
            )

        doc = default_document()
        self._save(doc)
        return doc

    def _save(self, doc: dict[str, Any]) -> None:
        try:
            self.storage.write(self.storage_key, serialize_document(doc))
        except StorageError as exc:
            logger.error(
                "Error saving dashboard data, keeping in-memory snapshot: %s", exc
            )

    def _mark(self, doc: dict[str, Any], section: str, origin: str) -> None:
        doc["meta"][f"{section}Origin"] = origin
        doc["meta"][f"{section}UpdatedAt"] = datetime.now(timezone.utc).isoformat(
            timespec="seconds"
        )

    def _fallback(self, section: str) -> MetricsResult:
        doc = self._document()
        if doc["meta"].get(f"{section}Origin") == ORIGIN_REAL:
            logger.info("No live data for %s, serving cached snapshot", section)
            return MetricsResult(section_copy(doc, section), ORIGIN_CACHED)
        logger.info("No live data for %s, serving built-in defaults", section)
        return MetricsResult(section_copy(doc, section), ORIGIN_DEFAULT)

    # ------------------------------------------------------------------
    # Live computations
    # ------------------------------------------------------------------

    def _live_kpis(self, now: Optional[DateLike]) -> Optional[KPISnapshot]:
        try:
            transactions = self.transactions.list_all()
            return aggregate_kpis(transactions, now, options=self.kpi_options)
        except SourceUnavailableError as exc:
            logger.warning("Transaction source unavailable: %s", exc)
        except ValueError as exc:
            logger.error("Transactions could not be aggregated: %s", exc)
        return None

    def _live_profile(self) -> Optional[Mapping[str, Any]]:
        try:
            return self.profiles.get_profile()
        except SourceUnavailableError as exc:
            logger.warning("Profile source unavailable: %s", exc)
            return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_kpi_data(self, now: Optional[DateLike] = None) -> MetricsResult:
        """
        Return the KPI block (revenue, growth, customers, readiness score,
        monthly series and category breakdown).

        `now` is the reference instant of the trailing window (today by
        default).
        """
        doc = self._document()
        snapshot = self._live_kpis(now)
        if snapshot is None:
            return self._fallback("kpis")

        doc["kpis"] = snapshot.to_dict()
        self._mark(doc, "kpis", ORIGIN_REAL)
        self._save(doc)
        return MetricsResult(section_copy(doc, "kpis"), ORIGIN_REAL)

    def get_profile_summary(self, today: Optional[date] = None) -> MetricsResult:
        """
        Return the profile summary: display fields, verification status and
        the completeness / health / readiness / growth potential scores.

        The score calculator is not invoked for an absent or empty profile.
        """
        doc = self._document()
        profile = self._live_profile()
        if not has_profile_data(profile):
            return self._fallback("profile")

        scores = score_profile(profile, today=today)
        doc["profile"] = build_profile_summary(profile, scores)
        self._mark(doc, "profile", ORIGIN_REAL)
        self._save(doc)
        return MetricsResult(section_copy(doc, "profile"), ORIGIN_REAL)

    def get_transaction_analytics(self) -> dict[str, Any]:
        """Pre-aggregated view of the transaction source (empty on failure)."""
        try:
            return self.transactions.analytics()
        except SourceUnavailableError as exc:
            logger.warning("Transaction source unavailable: %s", exc)
            return {"totalIncome": 0.0, "categoryBreakdown": []}

    def get_assessment_data(self) -> dict[str, Any]:
        return section_copy(self._document(), "assessment")

    def get_bootcamp_data(self) -> dict[str, Any]:
        return section_copy(self._document(), "bootcamp")

    def get_settings(self) -> dict[str, Any]:
        return section_copy(self._document(), "settings")

    def update_settings(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge `updates` into the settings sub-document and persist."""
        doc = self._document()
        doc["settings"].update(dict(updates))
        self._save(doc)
        return section_copy(doc, "settings")

    def reset_to_defaults(self) -> None:
        """Replace the whole document with the built-in defaults and persist it."""
        logger.info("Resetting dashboard document %r to defaults", self.storage_key)
        self._doc = default_document()
        self._save(self._doc)

    def export_data(self, fmt: str = "json") -> str:
        """
        Export the dashboard state.

        - "json": the full persisted document, pretty-printed.
        - "csv" : the monthly KPI series as a table.

        Raises
        ------
        ValueError
            If `fmt` is not a supported export format.
        """
        doc = self._document()
        if fmt == "json":
            return serialize_document(doc, pretty=True)
        if fmt == "csv":
            return monthly_series_frame(doc["kpis"]).to_csv(index=False)
        raise ValueError(
            f"Unsupported export format {fmt!r}, expected one of: "
            f"{', '.join(EXPORT_FORMATS)}."
        )


def open_store(app_config: AppConfig) -> MetricsStore:
    """Build the store wired to the SQLite database of the configuration."""
    db_cfg = app_config.database
    init_database(db_cfg)
    return MetricsStore(
        SqliteDocumentStorage(db_cfg),
        SqliteTransactionSource(db_cfg),
        SqliteProfileSource(db_cfg),
        storage_key=app_config.storage_key,
        kpi_options=app_config.kpi_options,
    )
