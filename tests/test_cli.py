import json

import pytest

from yield_optimizer import cli
from yield_optimizer.cli import main
from yield_optimizer.constants import DATA_DIR_ENV, DECISION_LOG_FILE, RATE_HISTORY_FILE


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    target = tmp_path / "data"
    monkeypatch.setenv(DATA_DIR_ENV, str(target))
    return target


def _write_roster(path, entries):
    path.write_text(json.dumps(entries), encoding="utf-8")
    return str(path)


ROSTER = [
    {"id": "hold_jitosol", "name": "Hold JitoSOL", "grossApy": 5.57},
    {"id": "lp_vault", "name": "LP Vault JitoSOL-SOL", "grossApy": 11.0},
    {"id": "klend_jitosol_supply", "name": "K-Lend JitoSOL", "grossApy": 6.2},
    {"id": "multiply", "name": "Multiply JitoSOL/SOL", "grossApy": 7.2},
]


def test_cost_command(capsys):
    assert main(["cost", "--from", "hold_jitosol", "--to", "lp_vault", "--amount", "2"]) == 0
    out = capsys.readouterr().out
    assert "hold_jitosol → lp_vault" in out
    assert "Transactions: 1" in out
    assert "Swap required: no" in out


def test_evaluate_writes_history_and_log(tmp_path, data_dir, capsys):
    roster = _write_roster(tmp_path / "roster.json", ROSTER)
    argv = ["evaluate", "--roster", roster, "--current", "hold_jitosol", "--capital", "2", "--price", "200"]
    assert main(argv) == 0
    out = capsys.readouterr().out
    assert "REBALANCER DECISION" in out
    assert "HOLD" in out

    history = json.loads((data_dir / RATE_HISTORY_FILE).read_text(encoding="utf-8"))
    assert len(history) == len(ROSTER)
    log_lines = (data_dir / DECISION_LOG_FILE).read_text(encoding="utf-8").splitlines()
    assert len(log_lines) == 1
    record = json.loads(log_lines[0])
    assert record["currentStrategy"] == "hold_jitosol"
    assert record["currentApy"] == 5.57


def test_evaluate_no_log(tmp_path, data_dir):
    roster = _write_roster(tmp_path / "roster.json", ROSTER)
    argv = ["evaluate", "--roster", roster, "--current", "lp_vault", "--capital", "2", "--price", "200", "--no-log"]
    assert main(argv) == 0
    assert not (data_dir / DECISION_LOG_FILE).exists()


def test_evaluate_fetches_price_when_not_given(tmp_path, monkeypatch, capsys):
    from decimal import Decimal

    monkeypatch.setattr(cli, "fetch_reference_price", lambda: Decimal(150))
    roster = _write_roster(tmp_path / "roster.json", ROSTER)
    assert main(["evaluate", "--roster", roster, "--current", "hold_jitosol", "--capital", "2"]) == 0
    assert "($300.00)" in capsys.readouterr().out


def test_evaluate_levers_up_multiply(tmp_path, capsys):
    roster = _write_roster(tmp_path / "roster.json", ROSTER)
    argv = [
        "evaluate",
        "--roster",
        roster,
        "--current",
        "multiply",
        "--capital",
        "2",
        "--price",
        "200",
        "--leverage",
        "1.1",
        "--borrow-apy",
        "5",
    ]
    assert main(argv) == 0
    out = capsys.readouterr().out
    assert "LEVER UP" in out
    assert "multiply @ 5.63%" in out


def test_evaluate_empty_roster_exits_1(tmp_path, capsys):
    roster = _write_roster(tmp_path / "roster.json", [])
    assert main(["evaluate", "--roster", roster, "--current", "hold_jitosol", "--capital", "2", "--price", "200"]) == 1
    assert "no usable strategies" in capsys.readouterr().err


def test_evaluate_missing_roster_exits_2(tmp_path, capsys):
    argv = ["evaluate", "--roster", str(tmp_path / "nope.json"), "--current", "hold_jitosol", "--capital", "2"]
    assert main(argv) == 2
    assert "failed to load roster" in capsys.readouterr().err


def test_evaluate_needs_current_apy_when_not_in_roster(tmp_path, capsys):
    roster = _write_roster(tmp_path / "roster.json", ROSTER[:2])
    argv = ["evaluate", "--roster", roster, "--current", "klend_sol_supply", "--capital", "2", "--price", "200"]
    assert main(argv) == 2
    assert "--current-apy is required" in capsys.readouterr().err


def test_unknown_strategy_is_an_argument_error():
    with pytest.raises(SystemExit) as exc:
        main(["cost", "--from", "moon", "--to", "lp_vault", "--amount", "2"])
    assert exc.value.code == 2


def test_backtest_single_mode(capsys):
    assert main(["backtest", "--mode", "hold", "--days", "3", "--seed", "1"]) == 0
    captured = capsys.readouterr()
    assert "BACKTEST: hold" in captured.out
    assert "synthetic rates" in captured.out
    assert "Insufficient recorded history" in captured.err


def test_backtest_compare(capsys):
    assert main(["backtest", "--compare", "--days", "3", "--seed", "1"]) == 0
    out = capsys.readouterr().out
    assert "STRATEGY COMPARISON" in out
    assert "Best mode:" in out
    assert "Optimizer alpha vs hold" in out


def test_backtest_rejects_non_positive_days(capsys):
    assert main(["backtest", "--days", "0"]) == 2
