# SMB Metrics - Business dashboard metrics engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Persisted dashboard document.

The dashboard state is stored as a single JSON document under one storage
key. The document is versioned and made of independent sub-documents:

    {
      "version":    1,
      "kpis":       {...},   owned by this engine (KPI snapshot)
      "profile":    {...},   owned by this engine (profile summary + scores)
      "assessment": {...},   opaque, owned by the assessment views
      "bootcamp":   {...},   opaque, owned by the bootcamp views
      "settings":   {...},   opaque, user settings
      "meta":       {...}    origin ("real" / "default") and update times
    }

Opaque sub-documents are never reshaped: they are passed through exactly as
they were read. Documents written before versioning (the five sub-documents
only, no "version" key) are upgraded to version 1 on read.
"""

import copy
import json
from datetime import datetime, timezone
from typing import Any, Optional

DOCUMENT_VERSION = 1

OWNED_SECTIONS = ("kpis", "profile")
OPAQUE_SECTIONS = ("assessment", "bootcamp", "settings")

ORIGIN_REAL = "real"
ORIGIN_DEFAULT = "default"


class DocumentError(ValueError):
    """Raised when a persisted document cannot be used."""


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def default_kpis() -> dict[str, Any]:
    """Built-in KPI block shown until real transactions are available."""
    return {
        "revenue": 35000,
        "growth": 25,
        "customers": 105,
        "readinessScore": 72,
        "monthlyData": [
            {"month": "Jan", "revenue": 12000, "customers": 45, "transactions": 320},
            {"month": "Feb", "revenue": 15000, "customers": 52, "transactions": 380},
            {"month": "Mar", "revenue": 18000, "customers": 61, "transactions": 420},
            {"month": "Apr", "revenue": 22000, "customers": 73, "transactions": 490},
            {"month": "May", "revenue": 28000, "customers": 89, "transactions": 560},
            {"month": "Jun", "revenue": 35000, "customers": 105, "transactions": 640},
        ],
        "categoryBreakdown": [
            {"name": "Products", "value": 45, "color": "#D4AF37"},
            {"name": "Services", "value": 30, "color": "#FFD700"},
            {"name": "Subscriptions", "value": 15, "color": "#B8960F"},
            {"name": "Other", "value": 10, "color": "#F4E4B1"},
        ],
    }


def default_profile() -> dict[str, Any]:
    """Built-in profile summary shown until a profile record is available."""
    return {
        "businessName": "Your Business Name",
        "industry": "Technology & Innovation",
        "founded": "2022",
        "employees": "10-25",
        "location": "Accra, Ghana",
        "revenue": "GHS 500K - 1M",
        "description": (
            "Add your business description here to help investors understand "
            "your value proposition and market opportunity."
        ),
        "verificationStatus": {"email": False, "phone": False, "business": False},
        "scores": {
            "profileCompleteness": 0,
            "businessHealth": 0,
            "investmentReadiness": 0,
            "growthPotential": "low",
        },
    }


def default_assessment() -> dict[str, Any]:
    return {
        "overallScore": 72,
        "categories": {
            "businessModel": 85,
            "financialHealth": 70,
            "marketOpportunity": 75,
            "teamLeadership": 60,
        },
        "lastUpdated": _now_utc_iso(),
    }


def default_bootcamp() -> dict[str, Any]:
    return {
        "modules": [
            {
                "id": "foundation",
                "name": "Foundation Module",
                "progress": 30,
                "completed": 3,
                "total": 10,
                "locked": False,
            },
            {
                "id": "financial",
                "name": "Financial Management",
                "progress": 0,
                "completed": 0,
                "total": 8,
                "locked": False,
            },
            {
                "id": "growth",
                "name": "Advanced Growth",
                "progress": 0,
                "completed": 0,
                "total": 12,
                "locked": True,
            },
        ]
    }


def default_settings() -> dict[str, Any]:
    return {
        "notifications": {
            "email": True,
            "assessmentReminders": True,
            "marketingUpdates": False,
        },
        "theme": "light",
    }


_SECTION_DEFAULTS = {
    "kpis": default_kpis,
    "profile": default_profile,
    "assessment": default_assessment,
    "bootcamp": default_bootcamp,
    "settings": default_settings,
}


def default_meta() -> dict[str, Any]:
    return {
        "kpisOrigin": ORIGIN_DEFAULT,
        "profileOrigin": ORIGIN_DEFAULT,
        "kpisUpdatedAt": None,
        "profileUpdatedAt": None,
    }


def default_document() -> dict[str, Any]:
    """Return a fresh built-in document (every section at its default)."""
    doc: dict[str, Any] = {"version": DOCUMENT_VERSION}
    for name, factory in _SECTION_DEFAULTS.items():
        doc[name] = factory()
    doc["meta"] = default_meta()
    return doc


def _matches_default(section: dict[str, Any], default: dict[str, Any]) -> bool:
    # Legacy documents hold the defaults of their time, which lack newer keys.
    shared = [k for k in section if k in default]
    return bool(shared) and all(section[k] == default[k] for k in shared)


def parse_document(text: Optional[str]) -> dict[str, Any]:
    """
    Parse and validate a persisted document.

    Missing sections are filled from the defaults. Missing origin metadata
    is recorded as "default" for sections that were filled in, and for
    owned sections of a legacy document as "real" unless they still hold
    the built-in defaults.

    Raises
    ------
    DocumentError
        If the payload is empty, not valid JSON, not a JSON object, has a
        non-object section, or has an unsupported version.
    """
    if not text or not text.strip():
        raise DocumentError("Persisted document is empty.")

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DocumentError(f"Persisted document is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise DocumentError("Persisted document root must be a JSON object.")

    version = raw.get("version", 0)
    if (
        not isinstance(version, int)
        or isinstance(version, bool)
        or version not in (0, DOCUMENT_VERSION)
    ):
        raise DocumentError(f"Unsupported document version: {version!r}")

    raw_meta = raw.get("meta")
    meta = default_meta()
    if isinstance(raw_meta, dict):
        meta.update(raw_meta)

    doc: dict[str, Any] = {"version": DOCUMENT_VERSION}
    for name, factory in _SECTION_DEFAULTS.items():
        section = raw.get(name)
        if section is None:
            doc[name] = factory()
            if name in OWNED_SECTIONS:
                meta[f"{name}Origin"] = ORIGIN_DEFAULT
            continue
        if not isinstance(section, dict):
            raise DocumentError(f"Section {name!r} must be a JSON object.")
        doc[name] = section
        if version == 0 and name in OWNED_SECTIONS:
            meta[f"{name}Origin"] = (
                ORIGIN_DEFAULT if _matches_default(section, factory()) else ORIGIN_REAL
            )

    doc["meta"] = meta
    return doc


def serialize_document(doc: dict[str, Any], *, pretty: bool = False) -> str:
    """Serialize a document to JSON (compact, or indented for export)."""
    if pretty:
        return json.dumps(doc, indent=2, ensure_ascii=False)
    return json.dumps(doc, ensure_ascii=False, separators=(",", ":"))


def section_copy(doc: dict[str, Any], name: str) -> dict[str, Any]:
    """Deep copy of a section, so callers cannot mutate the held document."""
    return copy.deepcopy(doc[name])
