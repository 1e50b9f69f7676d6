# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Root logger configuration (plain text or structured JSON)."""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "smb-metrics"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class MetricsJsonFormatter(JsonFormatter):
    """JSON formatter adding timestamp, level and service fields."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = SERVICE_NAME


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Configure the root logger with a single stderr handler.

    Existing handlers are removed so that repeated calls do not duplicate
    output.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(MetricsJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
