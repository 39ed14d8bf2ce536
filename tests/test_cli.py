"""Tests for CLI commands using click CliRunner. No network; uses fixture data."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cli.main import cli
from conftest import IBKR_CSV, TRADINGVIEW_CSV


@pytest.fixture
def tmp_config(tmp_path: Path) -> Path:
    """Write a temp config.yaml pointing the store, journal and remote into tmp_path."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
currency: USD
store:
  path: "{tmp_path / 'data' / 'trades.db'}"
journal:
  path: "{tmp_path / 'data' / 'journal.jsonl'}"
  echo_stdout: false
import:
  default_format: auto
remote:
  kind: directory
  location: "{tmp_path / 'remote'}"
alerting:
  structured_logs: false
"""
    )
    return config_path


@pytest.fixture
def orders_csv(tmp_path: Path) -> Path:
    path = tmp_path / "orders.csv"
    path.write_text(TRADINGVIEW_CSV)
    return path


def _run(config: Path, *args: str, **kwargs):
    return CliRunner().invoke(cli, ["--config", str(config), *args], **kwargs)


def test_cli_import(tmp_config: Path, orders_csv: Path, tmp_path: Path) -> None:
    result = _run(tmp_config, "import", str(orders_csv))
    assert result.exit_code == 0, result.output
    assert "=== Import: tradingview ===" in result.output
    assert "5 trades processed, 0 orders could not be matched" in result.output
    assert "New          : 5" in result.output
    assert (tmp_path / "data" / "trades.db").exists()

    lines = (tmp_path / "data" / "journal.jsonl").read_text().splitlines()
    record = json.loads(lines[-1])
    assert record["event"] == "import_completed"
    assert record["new"] == 5


def test_cli_reimport_adds_nothing(tmp_config: Path, orders_csv: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    result = _run(tmp_config, "import", str(orders_csv))
    assert result.exit_code == 0, result.output
    assert "New          : 0" in result.output
    assert "Duplicates   : 5" in result.output
    assert "Store        : 5 trades" in result.output


def test_cli_import_dry_run_saves_nothing(tmp_config: Path, orders_csv: Path) -> None:
    result = _run(tmp_config, "import", str(orders_csv), "--dry-run")
    assert result.exit_code == 0, result.output
    assert "Import (dry run)" in result.output
    listing = _run(tmp_config, "trades")
    assert "No trades in store." in listing.output


def test_cli_import_ibkr(tmp_config: Path, tmp_path: Path) -> None:
    path = tmp_path / "ibkr.csv"
    path.write_text(IBKR_CSV)
    result = _run(tmp_config, "import", str(path), "--format", "ibkr")
    assert result.exit_code == 0, result.output
    assert "=== Import: ibkr ===" in result.output
    assert "New          : 2" in result.output
    summary = _run(tmp_config, "summary", "--symbol", "NQ1!")
    assert "Net P&L      : $195.50" in summary.output


def test_cli_import_bad_file(tmp_config: Path, tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("Symbol,Side\nES1!,Buy\n")
    result = _run(tmp_config, "import", str(path), "--format", "tradingview")
    assert result.exit_code == 1
    assert "missing column" in result.output


def test_cli_summary(tmp_config: Path, orders_csv: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    result = _run(tmp_config, "summary")
    assert result.exit_code == 0, result.output
    assert "Trades       : 5 (W:3 / L:2)" in result.output
    assert "Net P&L      : $2,500.00" in result.output
    other = _run(tmp_config, "summary", "--symbol", "NQ1!")
    assert "No trades." in other.output


def test_cli_trades_last(tmp_config: Path, orders_csv: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    result = _run(tmp_config, "trades", "--last", "2")
    assert result.exit_code == 0, result.output
    assert "=== Trades (2) ===" in result.output
    everything = _run(tmp_config, "trades", "--symbol", "CME_MINI:ES1!")
    assert "=== Trades (5) ===" in everything.output


def test_cli_export(tmp_config: Path, orders_csv: Path, tmp_path: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    out = tmp_path / "out" / "trades.csv"
    result = _run(tmp_config, "export", str(out))
    assert result.exit_code == 0, result.output
    assert "Exported 5 trades" in result.output
    assert len(out.read_text().splitlines()) == 6


def test_cli_backup_clear_restore(tmp_config: Path, orders_csv: Path, tmp_path: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    backup_path = tmp_path / "backup.json"
    result = _run(tmp_config, "backup", str(backup_path))
    assert "Backed up 5 trades" in result.output
    assert json.loads(backup_path.read_text())["total_trades"] == 5

    cleared = _run(tmp_config, "clear", "--yes")
    assert cleared.exit_code == 0, cleared.output
    assert "Cleared 5 trades." in cleared.output

    restored = _run(tmp_config, "restore", str(backup_path))
    assert restored.exit_code == 0, restored.output
    assert "Restored 5 trades (0 already present)." in restored.output
    again = _run(tmp_config, "restore", str(backup_path))
    assert "Restored 0 trades (5 already present)." in again.output


def test_cli_restore_unreadable_backup(tmp_config: Path, tmp_path: Path) -> None:
    path = tmp_path / "backup.json"
    path.write_text("{not json")
    result = _run(tmp_config, "restore", str(path))
    assert result.exit_code == 1
    assert "cannot read backup" in result.output


def test_cli_clear_requires_confirmation(tmp_config: Path, orders_csv: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    result = _run(tmp_config, "clear", input="n\n")
    assert result.exit_code == 1
    assert "Summary" in _run(tmp_config, "summary").output
    assert "Trades       : 5" in _run(tmp_config, "summary").output


def test_cli_sync_push_then_pull(tmp_config: Path, orders_csv: Path, tmp_path: Path) -> None:
    _run(tmp_config, "import", str(orders_csv))
    pushed = _run(tmp_config, "sync", "push")
    assert pushed.exit_code == 0, pushed.output
    assert "Pushed 5 trades (0 duplicates removed)." in pushed.output
    assert (tmp_path / "remote" / "tradeDatabase.json").exists()

    _run(tmp_config, "clear", "--yes")
    pulled = _run(tmp_config, "sync", "pull")
    assert pulled.exit_code == 0, pulled.output
    assert "Pulled 5 new trades (0 already present)." in pulled.output
    assert "Trades       : 5" in _run(tmp_config, "summary").output


def test_cli_sync_not_configured(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(f'store:\n  path: "{tmp_path / "trades.db"}"\nalerting:\n  structured_logs: false\n')
    result = _run(config_path, "sync", "pull")
    assert result.exit_code == 1
    assert "not configured" in result.output


def test_cli_health_ok(tmp_config: Path) -> None:
    result = _run(tmp_config, "health")
    assert result.exit_code == 0, result.output
    assert "[OK] config" in result.output
    assert "[OK] instruments" in result.output
    assert "Health: HEALTHY" in result.output


def test_cli_health_bad_instrument_overrides(tmp_path: Path) -> None:
    overrides = tmp_path / "instruments.json"
    overrides.write_text("{not json")
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f'store:\n  path: "{tmp_path / "trades.db"}"\ninstruments:\n  overrides_path: "{overrides}"\n'
    )
    result = _run(config_path, "health")
    assert result.exit_code == 1
    assert "[FAIL] instruments" in result.output


def test_cli_missing_config(tmp_path: Path) -> None:
    result = _run(tmp_path / "nope.yaml", "health")
    assert result.exit_code == 1
    assert "[FAIL] config" in result.output
    summary = _run(tmp_path / "nope.yaml", "summary")
    assert summary.exit_code == 1
