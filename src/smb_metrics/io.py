# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SMB Metrics.

This module handles reading transactions from a CSV file and the business
profile from a TOML file, and normalizing them for import into the database.

Expected transaction formats
----------------------------

Two canonical input formats are supported (column names are case-insensitive):

1) Signed amount format
   --------------------
       date, amount, category[, id, customer_id, description]

   - ``amount`` is signed: positive for income, negative for expenses.

2) Typed amount format
   -------------------
       date, amount, type, category[, id, customer_id, description]

   - ``type`` is ``income`` or ``expense`` (case-insensitive),
   - ``amount`` is the unsigned magnitude. The signed amount is computed as:

       amount = +amount  for income
       amount = -amount  for expense

Column aliases
--------------
``timestamp`` is accepted for ``date``, ``transaction_id`` for ``id`` and
``customer`` for ``customer_id``.

Output schema
-------------
Regardless of the input format, ``read_transactions`` returns a pandas
DataFrame with the following columns:

    - ``id``          (str or None)
    - ``date``        (datetime64[ns])
    - ``amount``      (float, signed)
    - ``category``    (str)
    - ``customer_id`` (str or None)
    - ``description`` (str)

Any other columns present in the input file are ignored.

Profile file
------------
``read_profile`` reads a TOML file with a ``[profile]`` table whose keys are
the profile field names (``business_name``, ``employee_count``,
``is_email_verified``...).
"""

import os
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .config import load_toml

OUTPUT_COLUMNS = ["id", "date", "amount", "category", "customer_id", "description"]

_ALIASES = {
    "timestamp": "date",
    "transaction_id": "id",
    "customer": "customer_id",
}


def _parse_dates(d: pd.DataFrame) -> None:
    try:
        d["date"] = pd.to_datetime(d["date"], errors="raise")
    except Exception as exc:  # noqa: BLE001
        raise ValueError("Invalid values in 'date' column.") from exc


def _parse_amounts(d: pd.DataFrame) -> None:
    d["amount"] = pd.to_numeric(d["amount"], errors="coerce")
    if d["amount"].isna().any():
        raise ValueError("Invalid numeric values in 'amount' column.")
    d["amount"] = d["amount"].astype(float)


def _optional_text(value: Any) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def _finalize(d: pd.DataFrame) -> pd.DataFrame:
    for col in ("id", "customer_id"):
        if col not in d.columns:
            d[col] = None
        else:
            d[col] = d[col].map(_optional_text)
    if "description" not in d.columns:
        d["description"] = ""
    d["description"] = d["description"].fillna("").astype(str)
    d["category"] = d["category"].fillna("").astype(str).str.strip()
    return d[OUTPUT_COLUMNS].reset_index(drop=True)


def read_transactions(path: Union[str, "os.PathLike[str]"]) -> pd.DataFrame:
    """
    Read transactions from a CSV file and normalize them.

    Parameters
    ----------
    path:
        Path to the CSV file containing transactions.

    Returns
    -------
    pandas.DataFrame
        A DataFrame with exactly the columns id, date, amount, category,
        customer_id and description (see module docstring).

    Raises
    ------
    ValueError
        If the CSV does not contain one of the supported column sets, if a
        ``type`` value is neither income nor expense, or if numeric/date
        parsing fails.
    """
    # Every column is read as text so identifiers keep their exact spelling
    # whatever the header case; dates and amounts are parsed below.
    df = pd.read_csv(path, dtype=str)

    df.columns = [c.lower().strip() for c in df.columns]
    renames = {
        alias: target
        for alias, target in _ALIASES.items()
        if alias in df.columns and target not in df.columns
    }
    df = df.rename(columns=renames)
    cols = set(df.columns)

    required_signed = {"date", "amount", "category"}
    required_typed = {"date", "amount", "type", "category"}

    # ----- Case 1: typed amount format --------------------------------------
    if required_typed.issubset(cols):
        d = df.copy()
        _parse_dates(d)
        _parse_amounts(d)

        kinds = d["type"].astype(str).str.strip().str.lower()
        unknown = sorted(set(kinds) - {"income", "expense"})
        if unknown:
            raise ValueError(
                f"Invalid values in 'type' column: {', '.join(unknown)} "
                "(expected 'income' or 'expense')."
            )
        d["amount"] = d["amount"].abs().where(kinds == "income", -d["amount"].abs())
        return _finalize(d)

    # ----- Case 2: signed amount format -------------------------------------
    if required_signed.issubset(cols):
        d = df.copy()
        _parse_dates(d)
        _parse_amounts(d)
        return _finalize(d)

    # ----- Invalid structure → raise with clear message ---------------------
    raise ValueError(
        "Invalid transactions structure. Expected either:\n"
        "  - date, amount, category (signed amount)\n"
        "  - date, amount, type, category (type = income | expense)\n"
        "(column names are case-insensitive; id, customer_id and description "
        "are optional)."
    )


def read_profile(path: Union[str, "os.PathLike[str]"]) -> dict[str, Any]:
    """
    Read the business profile from a TOML file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file cannot be parsed or has no ``[profile]`` table.
    """
    raw = load_toml(Path(path))
    profile = raw.get("profile")
    if not isinstance(profile, dict):
        raise ValueError(f"Missing [profile] table in {path}.")
    return dict(profile)
