import json

import pytest

from smb_metrics.document import (
    DOCUMENT_VERSION,
    DocumentError,
    default_document,
    default_kpis,
    default_settings,
    parse_document,
    serialize_document,
)


def test_default_document_layout() -> None:
    doc = default_document()

    assert list(doc) == [
        "version",
        "kpis",
        "profile",
        "assessment",
        "bootcamp",
        "settings",
        "meta",
    ]
    assert doc["version"] == DOCUMENT_VERSION
    assert doc["meta"]["kpisOrigin"] == "default"
    assert doc["meta"]["profileOrigin"] == "default"


def test_default_kpis_shape() -> None:
    kpis = default_kpis()

    assert len(kpis["monthlyData"]) == 6
    assert [c["color"] for c in kpis["categoryBreakdown"]] == [
        "#D4AF37",
        "#FFD700",
        "#B8960F",
        "#F4E4B1",
    ]


def test_defaults_are_fresh_objects() -> None:
    """Mutating one default must not leak into the next one."""
    first = default_kpis()
    first["monthlyData"].clear()

    assert len(default_kpis()["monthlyData"]) == 6


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "",
        "   ",
        "{oops",
        "[1, 2]",
        '"text"',
        '{"version": 2}',
        '{"version": true}',
        '{"version": 1.0}',
        '{"version": "1"}',
        '{"settings": []}',
    ],
)
def test_parse_document_rejects_unusable_payloads(payload) -> None:
    with pytest.raises(DocumentError):
        parse_document(payload)


def test_parse_document_fills_missing_sections() -> None:
    doc = parse_document(json.dumps({"version": 1, "settings": {"theme": "dark"}}))

    assert doc["settings"] == {"theme": "dark"}
    assert doc["kpis"] == default_kpis()
    assert doc["meta"]["kpisOrigin"] == "default"


def test_parse_document_keeps_meta_of_versioned_documents() -> None:
    original = default_document()
    original["meta"]["kpisOrigin"] = "real"

    doc = parse_document(serialize_document(original))

    assert doc["meta"]["kpisOrigin"] == "real"


def test_legacy_document_is_upgraded() -> None:
    legacy = {"kpis": dict(default_kpis(), revenue=1), "settings": default_settings()}

    doc = parse_document(json.dumps(legacy))

    assert doc["version"] == DOCUMENT_VERSION
    assert doc["kpis"]["revenue"] == 1
    assert doc["meta"]["kpisOrigin"] == "real"
    assert doc["meta"]["profileOrigin"] == "default"


def test_serialize_document_compact_and_pretty() -> None:
    doc = default_document()

    compact = serialize_document(doc)
    pretty = serialize_document(doc, pretty=True)

    assert "\n" not in compact
    assert pretty.startswith('{\n  "version": 1,')
    assert json.loads(compact) == json.loads(pretty) == doc
