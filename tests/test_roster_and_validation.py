import dataclasses
import json
from decimal import Decimal

import pytest
import requests

from yield_optimizer.constants import DEFAULT_REFERENCE_PRICE
from yield_optimizer.fee_model import compute_switch_cost
from yield_optimizer.formatters import as_decimal, break_even_json, format_break_even
from yield_optimizer.models import StrategyCandidate, StrategyId
from yield_optimizer.price import fetch_reference_price
from yield_optimizer.roster import collect_candidates, load_roster, parse_candidate
from yield_optimizer.validation import validate_candidate, validate_switch_cost


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, Decimal(0)),
        (5, Decimal(5)),
        (5.57, Decimal("5.57")),
        ("6.5", Decimal("6.5")),
        (" 6.5% ", Decimal("6.5")),
        (Decimal("1.1"), Decimal("1.1")),
        (float("nan"), Decimal(0)),
        ("Infinity", Decimal(0)),
        (True, Decimal(1)),
    ],
)
def test_as_decimal(value, expected):
    assert as_decimal(value) == expected


def test_as_decimal_rejects_garbage():
    with pytest.raises(ValueError):
        as_decimal("lots")


def test_break_even_formatting():
    assert format_break_even(float("inf")) == "N/A"
    assert format_break_even(3.0) == "3.0d"
    assert break_even_json(float("inf")) is None
    assert break_even_json(1.5) == 1.5


def test_load_roster_skips_bad_entries(tmp_path, capsys):
    path = tmp_path / "roster.json"
    path.write_text(
        json.dumps(
            [
                {"id": "hold_jitosol", "name": "Hold JitoSOL", "grossApy": 5.57},
                {"id": "lp_vault", "grossApy": "11.2%", "address": "LpVault111"},
                {"id": "not_a_strategy", "grossApy": 9},
                {"id": "klend_sol_supply"},
                {"id": "multiply", "grossApy": 5000},
                {"id": "lp_vault", "grossApy": 3},
                "garbage",
            ]
        ),
        encoding="utf-8",
    )
    candidates = load_roster(path)
    assert [c.id for c in candidates] == [StrategyId.HOLD_JITOSOL, StrategyId.LP_VAULT]
    assert candidates[1].gross_apy == Decimal("11.2")
    assert candidates[1].name == "lp_vault"
    assert candidates[1].address == "LpVault111"
    err = capsys.readouterr().err
    assert err.count("Skipping roster entry") == 4
    assert "Duplicate roster entry" in err


def test_load_roster_accepts_object_form(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text(
        json.dumps({"strategies": [{"strategyId": "klend_jitosol_supply", "gross_apy": 6.1, "available": False}]}),
        encoding="utf-8",
    )
    [c] = load_roster(path)
    assert c.id == StrategyId.KLEND_JITOSOL_SUPPLY
    assert c.available is False


def test_load_roster_rejects_unreadable_file(tmp_path):
    path = tmp_path / "roster.json"
    path.write_text("{", encoding="utf-8")
    with pytest.raises(ValueError):
        load_roster(path)
    with pytest.raises(OSError):
        load_roster(tmp_path / "missing.json")


def test_parse_candidate_requires_apy():
    with pytest.raises(ValueError, match="grossApy"):
        parse_candidate({"id": "lp_vault"})


def test_collect_candidates_omits_failing_providers(capsys):
    def lp_vault():
        return StrategyCandidate(id=StrategyId.LP_VAULT, name="LP", gross_apy=Decimal(11))

    def klend():
        return {"id": "klend_sol_supply", "grossApy": 7.2}

    def multiply():
        raise ConnectionError("rpc down")

    def offline():
        return None

    candidates = collect_candidates([lp_vault, klend, multiply, offline])
    assert [c.id for c in candidates] == [StrategyId.LP_VAULT, StrategyId.KLEND_SOL_SUPPLY]
    assert "Strategy provider multiply failed: rpc down" in capsys.readouterr().err


def test_validate_candidate():
    ok = StrategyCandidate(id=StrategyId.LP_VAULT, name="LP", gross_apy=Decimal(11))
    assert validate_candidate(ok) == []

    bad = StrategyCandidate(id=StrategyId.LP_VAULT, name=" ", gross_apy=Decimal(-500))
    with pytest.raises(ValueError, match="empty name"):
        validate_candidate(bad)
    issues = validate_candidate(bad, warn_only=True)
    assert len(issues) == 2


def test_validate_switch_cost_flags_tampered_total():
    b = compute_switch_cost(StrategyId.HOLD_JITOSOL, StrategyId.LP_VAULT, Decimal(2), Decimal(200), Decimal(5))
    tampered = dataclasses.replace(b, total_cost=b.total_cost + Decimal("0.001"))
    with pytest.raises(ValueError, match="sum of components"):
        validate_switch_cost(tampered)
    negative = dataclasses.replace(b, slippage=Decimal(-1))
    assert len(validate_switch_cost(negative, warn_only=True)) == 2


class _FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self.payload


def test_fetch_reference_price(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse({"solana": {"usd": 187.42}}))
    assert fetch_reference_price() == Decimal("187.42")


@pytest.mark.parametrize("payload", [{}, {"solana": {"usd": 0}}, {"solana": {"usd": "n/a"}}])
def test_fetch_reference_price_falls_back_on_bad_payload(monkeypatch, capsys, payload):
    monkeypatch.setattr(requests, "get", lambda url, timeout: _FakeResponse(payload))
    assert fetch_reference_price() == DEFAULT_REFERENCE_PRICE
    assert "Price fetch failed" in capsys.readouterr().err


def test_fetch_reference_price_falls_back_on_network_error(monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", boom)
    assert fetch_reference_price() == DEFAULT_REFERENCE_PRICE
