# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SMB Metrics.

This module wires together the main building blocks of SMB Metrics:

- application configuration (database, storage key, KPI options, display),
- transaction and profile import into the database,
- the Metrics Store (KPI snapshot, profile summary, settings, export),
- view helpers (tabular rendering).

The CLI is intentionally thin: it does not compute any metric itself.
Instead, it orchestrates the underlying modules based on command-line
arguments and the configuration file.


High-level pipeline
-------------------

1) Load the TOML configuration (smb_metrics_config.toml by default) and
   configure logging.

2) Open the Metrics Store on the configured SQLite database.

3) Optionally import transactions (CSV) and/or the business profile (TOML)
   into the database.

4) Optionally apply maintenance actions: reset the dashboard document to
   its defaults, update settings, export the document.

5) Render the selected scope (KPIs, profile, or both) as console tables
   and/or CSV files depending on the display mode. Each block is labelled
   with the origin of its data:

   - real    : computed from the database during this run,
   - cached  : last snapshot computed from real data,
   - default : built-in sample data (no real data yet).


Examples
--------

    python -m smb_metrics.cli --import-transactions data/input/transactions.csv
    python -m smb_metrics.cli --import-profile data/input/profile.toml --scope profile
    python -m smb_metrics.cli --set-setting theme=dark --set-setting notifications.email=false
    python -m smb_metrics.cli --export json --output data/output
    python -m smb_metrics.cli --reset
"""

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from . import __version__
from .config import LOG_LEVELS, AppConfig, load_app_config
from .db import has_transactions, import_transactions, save_profile_fields
from .io import read_profile, read_transactions
from .logging_setup import setup_logging
from .store import EXPORT_FORMATS, MetricsResult, MetricsStore, open_store
from .views import (
    analytics_frame,
    category_breakdown_frame,
    headline_frame,
    monthly_series_frame,
    profile_summary_frame,
)

logger = logging.getLogger(__name__)

_ORIGIN_LABELS = {
    "real": "real data",
    "cached": "cached snapshot, no live data",
    "default": "built-in defaults, no real data yet",
}


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smb_metrics.cli",
        description=(
            "SMB Metrics - Business dashboard metrics engine for SMBs. "
            "Aggregates transactions into dashboard KPIs, scores the business "
            "profile and keeps the last snapshot for offline display."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smb_metrics and exit.",
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'smb_metrics_config.toml' in the current directory is used."
        ),
    )

    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=sorted(LOG_LEVELS),
        help="Override the logging.level setting from the configuration file.",
    )

    # Optional imports: feed the database before rendering the dashboard
    ap.add_argument(
        "--import-transactions",
        dest="transactions_path",
        metavar="CSV_PATH",
        help=(
            "Import transactions from the given CSV file into the database "
            "before rendering the dashboard."
        ),
    )
    ap.add_argument(
        "--import-profile",
        dest="profile_path",
        metavar="TOML_PATH",
        help=(
            "Import the business profile from the [profile] table of the given "
            "TOML file into the database."
        ),
    )

    # Maintenance actions
    ap.add_argument(
        "--reset",
        action="store_true",
        help="Reset the persisted dashboard document to its built-in defaults.",
    )
    ap.add_argument(
        "--set-setting",
        dest="settings",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help=(
            "Update a dashboard setting (repeatable). VALUE is parsed as JSON "
            "when possible (true, 3, \"text\"), otherwise kept as text. "
            "Dotted keys update nested settings, e.g. notifications.email=false."
        ),
    )
    ap.add_argument(
        "--export",
        dest="export_format",
        choices=list(EXPORT_FORMATS),
        help=(
            "Export the dashboard: 'json' writes the full persisted document, "
            "'csv' writes the monthly KPI series."
        ),
    )

    # Scope: what to render
    ap.add_argument(
        "--scope",
        choices=["kpis", "profile", "all", "none"],
        default="all",
        help=(
            "Select what to render: "
            "'kpis' = KPI block only; "
            "'profile' = profile summary only; "
            "'all' = both; "
            "'none' = nothing (imports and maintenance actions only)."
        ),
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV and export files are written. "
            "If omitted, display.output_dir from the configuration is used."
        ),
    )

    return ap


def _parse_setting(raw: str) -> tuple[list[str], Any]:
    """
    Parse a KEY=VALUE setting argument.

    Returns the key path (split on dots) and the decoded value.

    Raises
    ------
    ValueError
        If the argument has no '=' or an empty key.
    """
    key, sep, value = raw.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Invalid setting {raw!r}, expected KEY=VALUE.")
    try:
        decoded = json.loads(value)
    except json.JSONDecodeError:
        decoded = value
    return key.split("."), decoded


def _settings_updates(
    current: dict[str, Any], raw_settings: list[str]
) -> dict[str, Any]:
    """Build top-level settings updates, merging dotted keys into nested tables."""
    updates: dict[str, Any] = {}
    for raw in raw_settings:
        path, value = _parse_setting(raw)
        head = path[0]
        if len(path) == 1:
            updates[head] = value
            continue
        base = updates.get(head, current.get(head))
        node = dict(base) if isinstance(base, dict) else {}
        updates[head] = node
        for part in path[1:-1]:
            child = node.get(part)
            node[part] = dict(child) if isinstance(child, dict) else {}
            node = node[part]
        node[path[-1]] = value
    return updates


def _print_block(title: str, result: MetricsResult) -> None:
    print()
    print(f"=== {title} ({_ORIGIN_LABELS.get(result.origin, result.origin)}) ===")


def _print_frame(df: pd.DataFrame, empty_message: str) -> None:
    if df.empty:
        print(empty_message)
    else:
        print(df.to_string(index=False))


def _write_csv(df: pd.DataFrame, output_dir: Path, name: str, timestamp: str) -> None:
    path = output_dir / f"{name}_{timestamp}.csv"
    df.to_csv(path, index=False)
    print(f"Wrote {path} ({len(df)} rows)")


def _handle_imports(
    args: argparse.Namespace, parser: argparse.ArgumentParser, config: AppConfig
) -> None:
    if args.transactions_path:
        csv_path = Path(args.transactions_path)
        if not csv_path.is_file():
            parser.error(f"CSV file for --import-transactions not found: {csv_path}")

        print(f"Importing transactions from {csv_path} into the database...")
        try:
            df_import = read_transactions(csv_path)
        except ValueError as exc:
            parser.error(str(exc))
        stats = import_transactions(
            df_import,
            config.database,
            source_type="csv",
            source_label=str(csv_path),
        )
        print(
            f"Imported batch #{stats.batch_id}: "
            f"{stats.rows_inserted} transactions, "
            f"{stats.duplicates_skipped} duplicates skipped."
        )

    if args.profile_path:
        profile_path = Path(args.profile_path)
        if not profile_path.is_file():
            parser.error(f"Profile file for --import-profile not found: {profile_path}")
        try:
            profile = read_profile(profile_path)
        except ValueError as exc:
            parser.error(str(exc))
        save_profile_fields(config.database, profile)
        print(f"Imported {len(profile)} profile field(s) from {profile_path}.")


def _render_kpis(
    store: MetricsStore,
    display_mode: str,
    output_dir: Path,
    timestamp: str,
) -> None:
    result = store.get_kpi_data()
    headline = headline_frame(result.data)
    monthly = monthly_series_frame(result.data)
    categories = category_breakdown_frame(result.data)

    if display_mode in {"table", "both"}:
        _print_block("KPIs", result)
        print(headline.to_string(index=False))
        print()
        print("--- Monthly series ---")
        _print_frame(monthly, "No monthly data.")
        print()
        print("--- Category breakdown ---")
        _print_frame(categories, "No category data.")
        if result.is_real:
            analytics = analytics_frame(store.get_transaction_analytics())
            print()
            print("--- Category share of transaction volume (%) ---")
            _print_frame(analytics, "No category data.")

    if display_mode in {"csv", "both"}:
        _write_csv(headline, output_dir, "kpis_headline", timestamp)
        _write_csv(monthly, output_dir, "kpis_monthly", timestamp)
        _write_csv(categories, output_dir, "kpis_categories", timestamp)


def _render_profile(
    store: MetricsStore,
    display_mode: str,
    output_dir: Path,
    timestamp: str,
) -> None:
    result = store.get_profile_summary()
    summary = profile_summary_frame(result.data)

    if display_mode in {"table", "both"}:
        _print_block("Business profile", result)
        print(summary.to_string(index=False))

    if display_mode in {"csv", "both"}:
        _write_csv(summary, output_dir, "profile_summary", timestamp)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SMB Metrics CLI.

    This function parses command-line arguments, loads the configuration,
    configures logging, opens the Metrics Store on the configured database,
    optionally imports transactions and the business profile, applies the
    requested maintenance actions (reset, settings, export), and finally
    renders the selected scope as console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smb_metrics version {__version__}")
        return

    # 1) Load application configuration and configure logging
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    setup_logging(args.log_level or config.logging.level, config.logging.format)

    # 2) Open the store (creates the database file and schema if needed)
    store = open_store(config)

    # 3) Optional imports
    _handle_imports(args, parser, config)

    if not args.transactions_path and not has_transactions(config.database):
        print(
            "Warning: no transactions in the database, use --import-transactions "
            "to load real data."
        )

    # 4) Maintenance actions
    if args.reset:
        store.reset_to_defaults()
        print("Dashboard data reset to defaults.")

    if args.settings:
        try:
            updates = _settings_updates(store.get_settings(), args.settings)
        except ValueError as exc:
            parser.error(str(exc))
        settings = store.update_settings(updates)
        print(f"Settings updated: {json.dumps(settings, sort_keys=True)}")

    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir
    timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

    if args.export_format:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"dashboard_export_{timestamp}.{args.export_format}"
        path.write_text(store.export_data(args.export_format), encoding="utf-8")
        print(f"Wrote {path}")

    # 5) Render the selected scope
    if args.scope == "none":
        return

    if display_mode in {"csv", "both"}:
        output_dir.mkdir(parents=True, exist_ok=True)

    if args.scope in {"kpis", "all"}:
        _render_kpis(store, display_mode, output_dir, timestamp)

    if args.scope in {"profile", "all"}:
        _render_profile(store, display_mode, output_dir, timestamp)

    logger.debug("CLI run finished (scope=%s, display=%s)", args.scope, display_mode)


if __name__ == "__main__":
    main()
