# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Document storage backends.

A storage backend keeps raw JSON payloads under string keys, in the manner
of a browser key-value store. Two backends are provided:

- SqliteDocumentStorage : the `documents` table of the application database,
- InMemoryDocumentStorage: a dict, for tests and scripting.

Backend failures are raised as StorageError so that the Metrics Store can
handle them without knowing the backend.
"""

import sqlite3
from typing import Optional, Protocol

from .db import DatabaseConfig, read_document, write_document


class StorageError(RuntimeError):
    """Raised when a storage backend cannot read or write a payload."""


class DocumentStorage(Protocol):
    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, payload: str) -> None: ...


class SqliteDocumentStorage:
    """Document storage backed by the SQLite `documents` table."""

    def __init__(self, cfg: DatabaseConfig):
        self.cfg = cfg

    def read(self, key: str) -> Optional[str]:
        try:
            return read_document(self.cfg, key)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot read document {key!r}: {exc}") from exc

    def write(self, key: str, payload: str) -> None:
        try:
            write_document(self.cfg, key, payload)
        except (sqlite3.Error, OSError) as exc:
            raise StorageError(f"Cannot write document {key!r}: {exc}") from exc


class InMemoryDocumentStorage:
    """Dict-backed document storage."""

    def __init__(self, items: Optional[dict[str, str]] = None):
        self.items: dict[str, str] = dict(items or {})

    def read(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def write(self, key: str, payload: str) -> None:
        self.items[key] = payload
