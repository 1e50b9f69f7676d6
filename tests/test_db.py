from datetime import date, datetime

import pandas as pd
import pytest

from smb_metrics.db import (
    DatabaseConfig,
    has_transactions,
    import_transactions,
    init_database,
    list_import_batches,
    load_profile,
    load_transactions,
    read_document,
    save_profile_fields,
    write_document,
)


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "db" / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def sample_transactions() -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": "T-1",
                "date": datetime(2025, 1, 1, 9, 30),
                "amount": 1000.0,
                "category": "Products",
                "customer_id": "C1",
                "description": "Sale A",
            },
            {
                "id": "T-2",
                "date": date(2025, 1, 15),
                "amount": -300.25,
                "category": "Supplies",
                "customer_id": None,
                "description": "Purchase B",
            },
        ]
    )


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file (and its folder)."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)
    assert cfg.path.exists()

    assert has_transactions(cfg) is False
    assert load_transactions(cfg).empty


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.sqlite")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_import_and_load_transactions_round_trip(tmp_path):
    """Amounts survive the integer-cents storage, ids and dates are kept."""
    cfg = make_tmp_db_cfg(tmp_path)

    stats = import_transactions(sample_transactions(), cfg, source_label="test.csv")

    assert stats.rows_inserted == 2
    assert stats.duplicates_skipped == 0
    assert has_transactions(cfg) is True

    df = load_transactions(cfg)
    assert list(df.columns) == [
        "id",
        "date",
        "amount",
        "category",
        "customer_id",
        "description",
    ]
    assert df["id"].tolist() == ["T-1", "T-2"]
    assert df["amount"].tolist() == [1000.0, -300.25]
    assert df.loc[0, "date"] == pd.Timestamp("2025-01-01 09:30:00")
    assert df.loc[0, "customer_id"] == "C1"
    assert pd.isna(df.loc[1, "customer_id"])


def test_load_transactions_date_bounds_are_inclusive(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    import_transactions(sample_transactions(), cfg, source_label="test.csv")

    only_first = load_transactions(cfg, start=date(2025, 1, 1), end=date(2025, 1, 1))
    only_second = load_transactions(cfg, start=date(2025, 1, 2))

    assert only_first["id"].tolist() == ["T-1"]
    assert only_second["id"].tolist() == ["T-2"]


def test_reimport_skips_transactions_with_known_ids(tmp_path):
    """Re-importing the same file does not duplicate identified rows."""
    cfg = make_tmp_db_cfg(tmp_path)
    df = sample_transactions()

    import_transactions(df, cfg, source_label="batch1.csv")
    stats = import_transactions(df, cfg, source_label="batch2.csv")

    assert stats.rows_inserted == 0
    assert stats.duplicates_skipped == 2
    assert len(load_transactions(cfg)) == 2

    batches = list_import_batches(cfg)
    assert len(batches) == 2
    assert batches["rows_inserted"].tolist() == [2, 0]
    assert set(batches.columns) == {
        "id",
        "created_at",
        "source_type",
        "source_label",
        "rows_inserted",
    }


def test_rows_without_id_are_always_inserted(tmp_path):
    """Without an id, the row id stands in as transaction identifier."""
    cfg = make_tmp_db_cfg(tmp_path)
    df = pd.DataFrame([{"date": "2025-02-01", "amount": 5, "category": "Other"}])

    import_transactions(df, cfg, source_label="a")
    import_transactions(df, cfg, source_label="b")

    loaded = load_transactions(cfg)
    assert loaded["id"].tolist() == ["1", "2"]


def test_import_requires_core_columns(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    with pytest.raises(ValueError):
        import_transactions(
            pd.DataFrame([{"date": "2025-01-01"}]), cfg, source_label="x"
        )


def test_profile_fields_round_trip(tmp_path):
    """Flags and numbers survive the JSON encoding; None removes a field."""
    cfg = make_tmp_db_cfg(tmp_path)
    assert load_profile(cfg) == {}

    save_profile_fields(
        cfg,
        {"business_name": "Acme", "year_established": 2020, "is_email_verified": True},
    )
    save_profile_fields(cfg, {"business_name": "Acme Ltd", "year_established": None})

    assert load_profile(cfg) == {"business_name": "Acme Ltd", "is_email_verified": True}


def test_documents_upsert(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)

    assert read_document(cfg, "dashboard_data") is None
    write_document(cfg, "dashboard_data", '{"a": 1}')
    write_document(cfg, "dashboard_data", '{"a": 2}')

    assert read_document(cfg, "dashboard_data") == '{"a": 2}'
    assert read_document(cfg, "other") is None


def test_offset_timestamps_are_stored_in_utc(tmp_path):
    """An aware timestamp keeps its instant, not its local wall-clock time."""
    cfg = make_tmp_db_cfg(tmp_path)
    df = pd.DataFrame(
        {
            "date": pd.to_datetime(["2025-07-01T01:00:00+02:00"]),
            "amount": [100.0],
            "category": ["Sales"],
        }
    )

    import_transactions(df, cfg, source_label="offset.csv")

    loaded = load_transactions(cfg)
    assert loaded.loc[0, "date"] == pd.Timestamp("2025-06-30 23:00:00")
