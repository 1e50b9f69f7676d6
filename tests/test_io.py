import pandas as pd
import pytest

from smb_metrics.db import DatabaseConfig, import_transactions, load_transactions
from smb_metrics.io import read_profile, read_transactions
from smb_metrics.kpis import aggregate_kpis


def write(tmp_path, name: str, content: str):
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_read_signed_amount_format(tmp_path):
    path = write(
        tmp_path,
        "tx.csv",
        "ID,Date,Amount,Category,Customer_ID,Description\n"
        "T-1,2025-06-01,1200,Products,C042,Order 1042\n"
        "T-2,2025-06-03,-300,Supplies,,\n",
    )

    df = read_transactions(path)

    assert list(df.columns) == [
        "id",
        "date",
        "amount",
        "category",
        "customer_id",
        "description",
    ]
    assert df["id"].tolist() == ["T-1", "T-2"]
    assert df["amount"].tolist() == [1200.0, -300.0]
    assert df.loc[0, "date"] == pd.Timestamp("2025-06-01")
    assert df.loc[0, "customer_id"] == "C042"
    assert df.loc[1, "customer_id"] is None
    assert df.loc[1, "description"] == ""


def test_read_typed_amount_format(tmp_path):
    """Unsigned amounts are signed from the income / expense type."""
    path = write(
        tmp_path,
        "typed.csv",
        "date,amount,type,category\n"
        "2025-06-01,100,income,Sales\n"
        "2025-06-02,40,Expense,Rent\n"
        "2025-06-03,-5,INCOME,Sales\n",
    )

    df = read_transactions(path)

    assert df["amount"].tolist() == [100.0, -40.0, 5.0]
    assert df["id"].isna().all()


def test_optional_columns_and_aliases(tmp_path):
    path = write(
        tmp_path,
        "alias.csv",
        "timestamp,amount,category,customer\n2025-06-01T10:15:00,10,Sales,C1\n",
    )

    df = read_transactions(path)

    assert df.loc[0, "date"] == pd.Timestamp("2025-06-01 10:15:00")
    assert df.loc[0, "customer_id"] == "C1"
    assert df.loc[0, "id"] is None


def test_invalid_type_is_rejected(tmp_path):
    path = write(
        tmp_path,
        "bad_type.csv",
        "date,amount,type,category\n2025-06-01,100,refund,Sales\n",
    )
    with pytest.raises(ValueError, match="type"):
        read_transactions(path)


@pytest.mark.parametrize(
    "content",
    [
        "date,amount,category\nnot-a-date,10,Sales\n",
        "date,amount,category\n2025-06-01,ten,Sales\n",
        "when,how_much\n2025-06-01,10\n",
    ],
)
def test_invalid_files_raise_value_error(tmp_path, content):
    path = write(tmp_path, "bad.csv", content)
    with pytest.raises(ValueError):
        read_transactions(path)


def test_read_profile(tmp_path):
    path = write(
        tmp_path,
        "profile.toml",
        "[profile]\n"
        'business_name = "Acme"\n'
        "year_established = 2020\n"
        "is_email_verified = true\n",
    )

    assert read_profile(path) == {
        "business_name": "Acme",
        "year_established": 2020,
        "is_email_verified": True,
    }


def test_read_profile_requires_profile_table(tmp_path):
    path = write(tmp_path, "empty.toml", 'title = "nothing here"\n')
    with pytest.raises(ValueError):
        read_profile(path)


def test_read_profile_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_profile(tmp_path / "missing.toml")


def test_identifiers_stay_text_whatever_the_header_case(tmp_path):
    """Numeric-looking ids are not turned into floats by a blank cell."""
    path = write(
        tmp_path,
        "upper.csv",
        "Transaction_ID,DATE,Amount,Category,Customer\n"
        "1001,2025-06-01,10,Sales,42\n"
        "1002,2025-06-02,20,Sales,\n",
    )

    df = read_transactions(path)

    assert df["id"].tolist() == ["1001", "1002"]
    assert df.loc[0, "customer_id"] == "42"
    assert df.loc[1, "customer_id"] is None
    assert df["amount"].tolist() == [10.0, 20.0]


def test_same_customer_across_imports_counts_once(tmp_path):
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "io.sqlite")
    first = write(
        tmp_path,
        "first.csv",
        "Date,Amount,Category,Customer_ID\n"
        "2025-06-01,10,Sales,42\n"
        "2025-06-02,10,Sales,\n",
    )
    second = write(
        tmp_path,
        "second.csv",
        "Date,Amount,Category,Customer_ID\n2025-06-03,10,Sales,42\n",
    )

    import_transactions(read_transactions(first), cfg, source_label="first.csv")
    import_transactions(read_transactions(second), cfg, source_label="second.csv")

    snapshot = aggregate_kpis(load_transactions(cfg), "2025-06-15")
    assert snapshot is not None
    assert snapshot.customers == 1
