# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB Metrics.

This module is responsible for:
- loading the main application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig
from .kpis import KPIOptions

DEFAULT_CONFIG_FILE = "smb_metrics_config.toml"
DEFAULT_STORAGE_KEY = "dashboard_data"

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMATS = {"text", "json"}
DISPLAY_MODES = {"table", "csv", "both"}


@dataclass(frozen=True)
class LoggingConfig:
    """Logging options (root logger level and output format)."""

    level: str = "INFO"
    format: str = "text"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB Metrics.

    This aggregates:
    - the database configuration (transactions, profile, documents),
    - the storage key of the persisted dashboard document,
    - the KPI aggregation options,
    - logging and display options.
    """

    database: DatabaseConfig
    storage_key: str
    kpi_options: KPIOptions
    logging: LoggingConfig
    display_mode: str
    output_dir: Path


def load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a top-level table, or an empty mapping when absent or invalid."""
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _parse_kpi_options(kpis_section: Mapping[str, Any]) -> KPIOptions:
    """
    Build KPIOptions from the [kpis] table.

    Raises:
        ValueError: if customer_estimate_divisor is not a positive number.
    """
    raw_divisor = kpis_section.get("customer_estimate_divisor", 500)
    try:
        divisor = float(raw_divisor)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'kpis.customer_estimate_divisor' in the "
            "configuration. Expected a number."
        ) from exc
    if divisor <= 0:
        raise ValueError("'kpis.customer_estimate_divisor' must be positive.")

    separator = str(kpis_section.get("customer_id_prefix_separator") or "")

    return KPIOptions(
        customer_estimate_divisor=divisor,
        customer_id_prefix_separator=separator or None,
    )


def _parse_logging(logging_section: Mapping[str, Any]) -> LoggingConfig:
    """Build LoggingConfig from the [logging] table, validating its values."""
    level = str(logging_section.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid logging.level {level!r} in the configuration.")

    fmt = str(logging_section.get("format", "text")).lower()
    if fmt not in LOG_FORMATS:
        raise ValueError(
            f"Invalid logging.format {fmt!r}, expected one of: "
            f"{', '.join(sorted(LOG_FORMATS))}."
        )
    return LoggingConfig(level=level, format=fmt)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB Metrics application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        Database engine and SQLite file path. The database stores
        transactions, the business profile and the persisted dashboard
        document.

    [storage]
        `key`: storage key of the persisted dashboard document.

    [kpis]
        `customer_estimate_divisor`: revenue per estimated customer when
        transactions carry no customer identifier (default 500).
        `customer_id_prefix_separator`: when set, customer identifiers are
        recovered from the prefix of transaction identifiers.

    [logging]
        `level` and `format` ("text" or "json").

    [display]
        `mode` ("table", "csv", "both") and `output_dir` for CSV files.

    All sections are optional. File paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML configuration file. Defaults to
        ``smb_metrics_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = load_toml(config_file)
    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/smb_metrics.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    database_config = DatabaseConfig(engine=db_engine, path=db_path)

    # 2) Storage section
    storage_section = _section(raw, "storage")
    storage_key = str(storage_section.get("key") or DEFAULT_STORAGE_KEY)

    # 3) KPI options
    kpi_options = _parse_kpi_options(_section(raw, "kpis"))

    # 4) Logging
    logging_config = _parse_logging(_section(raw, "logging"))

    # 5) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display.mode {display_mode!r}, expected one of: "
            f"{', '.join(sorted(DISPLAY_MODES))}."
        )
    output_dir = (base_dir / str(display_section.get("output_dir") or "data/output")).resolve()

    return AppConfig(
        database=database_config,
        storage_key=storage_key,
        kpi_options=kpi_options,
        logging=logging_config,
        display_mode=display_mode,
        output_dir=output_dir,
    )
