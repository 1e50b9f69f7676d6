import json

import pytest

import smb_metrics.cli as cli
from smb_metrics import __version__


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Config file + sample inputs in a temporary folder; logging left alone."""
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)

    config = tmp_path / "smb_metrics_config.toml"
    config.write_text(
        '[database]\npath = "db/metrics.sqlite"\n\n[display]\noutput_dir = "out"\n',
        encoding="utf-8",
    )
    transactions = tmp_path / "transactions.csv"
    transactions.write_text(
        "id,date,amount,category\n"
        "T-1,2025-01-02,100,Products\n"
        "T-2,2025-01-10,-40,Supplies\n",
        encoding="utf-8",
    )
    profile = tmp_path / "profile.toml"
    profile.write_text(
        '[profile]\nbusiness_name = "Acme"\nbusiness_type = "Retail"\n',
        encoding="utf-8",
    )
    return {
        "dir": tmp_path,
        "config": str(config),
        "transactions": str(transactions),
        "profile": str(profile),
    }


def test_version(capsys) -> None:
    cli.main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_first_run_shows_defaults(app, capsys) -> None:
    cli.main(["--config", app["config"]])

    out = capsys.readouterr().out
    assert "Warning: no transactions in the database" in out
    assert "=== KPIs (built-in defaults, no real data yet) ===" in out
    assert "=== Business profile (built-in defaults, no real data yet) ===" in out
    assert "Your Business Name" in out


def test_import_then_render_real_data(app, capsys) -> None:
    cli.main(
        [
            "--config",
            app["config"],
            "--import-transactions",
            app["transactions"],
            "--import-profile",
            app["profile"],
        ]
    )

    out = capsys.readouterr().out
    assert "Imported batch #1: 2 transactions, 0 duplicates skipped." in out
    assert "Imported 2 profile field(s)" in out
    assert "=== KPIs (real data) ===" in out
    assert "=== Business profile (real data) ===" in out
    assert "Acme" in out

    # Importing the same file again skips identified rows.
    cli.main(
        [
            "--config",
            app["config"],
            "--import-transactions",
            app["transactions"],
            "--scope",
            "none",
        ]
    )
    assert "0 transactions, 2 duplicates skipped." in capsys.readouterr().out


def test_settings_export_and_reset(app, capsys) -> None:
    cli.main(
        [
            "--config",
            app["config"],
            "--set-setting",
            "theme=dark",
            "--set-setting",
            "notifications.email=false",
            "--export",
            "json",
            "--scope",
            "none",
        ]
    )

    out = capsys.readouterr().out
    assert "Settings updated:" in out
    exports = list((app["dir"] / "out").glob("dashboard_export_*.json"))
    assert len(exports) == 1
    doc = json.loads(exports[0].read_text(encoding="utf-8"))
    assert doc["settings"]["theme"] == "dark"
    assert doc["settings"]["notifications"]["email"] is False
    assert doc["settings"]["notifications"]["assessmentReminders"] is True

    cli.main(["--config", app["config"], "--reset", "--scope", "none"])
    assert "Dashboard data reset to defaults." in capsys.readouterr().out


def test_csv_display_mode_writes_files(app, capsys) -> None:
    cli.main(["--config", app["config"], "--display-mode", "csv", "--scope", "kpis"])

    out = capsys.readouterr().out
    assert "=== KPIs" not in out
    names = sorted(p.name.rsplit("_", 1)[0] for p in (app["dir"] / "out").glob("*.csv"))
    assert names == ["kpis_categories", "kpis_headline", "kpis_monthly"]


def test_invalid_inputs_exit_with_usage_error(app, tmp_path) -> None:
    bad_csv = tmp_path / "bad.csv"
    bad_csv.write_text("when,how_much\n2025-01-01,1\n", encoding="utf-8")

    with pytest.raises(SystemExit):
        cli.main(["--config", app["config"], "--import-transactions", str(bad_csv)])
    with pytest.raises(SystemExit):
        cli.main(["--config", app["config"], "--set-setting", "no-equals-sign"])
    with pytest.raises(SystemExit):
        cli.main(["--config", str(tmp_path / "missing.toml")])
