# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
SMB Metrics
-----------

A Python-based metrics engine powering the business dashboard of Small and
Medium-sized Businesses (SMBs). It derives scored metrics from a business
profile and a transaction log, and keeps a persisted snapshot of them across
sessions.

Main capabilities:
- profile scoring (completeness, business health, investment readiness,
  growth potential),
- KPI aggregation over a trailing 6-month window (revenue, growth,
  customers, transaction counts, category breakdown),
- a persisted, versioned dashboard document with fallback to cached or
  built-in default data,
- a database-first architecture for transactions and profile (SQLite),
- CSV / TOML import and JSON / CSV export.

SMB Metrics separates computation (scoring, kpis), configuration (TOML),
persistence (db, storage, document) and presentation (CLI), making it
suitable for scripting and for serving a dashboard front-end.


Version: 0.2.0

Usage:
    python -m smb_metrics.cli --help
"""

__all__ = ["scoring", "kpis", "store", "io"]

__version__ = "0.2.0"
