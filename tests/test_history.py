from decimal import Decimal

from yield_optimizer.constants import MS_PER_HOUR, RATE_HISTORY_MAX_ENTRIES
from yield_optimizer.history import RateHistory
from yield_optimizer.models import StrategyCandidate, StrategyId
from yield_optimizer.storage import JsonArrayStore, MemoryStore

NOW = 1_700_000_000_000
MINUTE = 60 * 1000


def cand(strategy_id, apy):
    return StrategyCandidate(id=strategy_id, name=str(strategy_id), gross_apy=Decimal(str(apy)))


def test_record_stamps_every_candidate_with_same_timestamp():
    history = RateHistory(MemoryStore())
    history.record([cand(StrategyId.HOLD_JITOSOL, 5.57), cand(StrategyId.LP_VAULT, 11)], now_ms=NOW)
    entries = history.entries()
    assert [e.strategy_id for e in entries] == [StrategyId.HOLD_JITOSOL, StrategyId.LP_VAULT]
    assert {e.timestamp for e in entries} == {NOW}
    assert entries[1].apy == 11.0


def test_record_uses_injected_clock():
    history = RateHistory(MemoryStore(), clock=lambda: NOW)
    history.record([cand(StrategyId.LP_VAULT, 9)])
    assert history.entries()[0].timestamp == NOW


def test_retention_is_capped(tmp_path):
    history = RateHistory(JsonArrayStore(tmp_path / "h.json", max_entries=RATE_HISTORY_MAX_ENTRIES))
    roster = [cand(s, 6) for s in StrategyId]
    for i in range(120):
        history.record(roster, now_ms=NOW + i)
    entries = history.entries()
    assert len(entries) == RATE_HISTORY_MAX_ENTRIES
    assert entries[-1].timestamp == NOW + 119


def test_malformed_records_are_skipped():
    store = MemoryStore()
    store.append(
        [
            {"timestamp": NOW, "strategyId": "bogus", "apy": 5},
            {"timestamp": NOW, "strategyId": "lp_vault"},
            {"timestamp": NOW, "strategyId": "lp_vault", "apy": "high"},
            {"timestamp": NOW, "strategyId": "lp_vault", "apy": 7.5},
        ]
    )
    entries = RateHistory(store).entries()
    assert len(entries) == 1
    assert entries[0].apy == 7.5


def test_not_sustained_without_history():
    history = RateHistory(MemoryStore())
    assert history.has_sustained_above(StrategyId.LP_VAULT, 1, now_ms=NOW) is False


def test_not_sustained_when_samples_are_too_recent():
    history = RateHistory(MemoryStore())
    for minutes_ago in (20, 10, 0):
        history.record([cand(StrategyId.LP_VAULT, 12)], now_ms=NOW - minutes_ago * MINUTE)
    assert history.has_sustained_above(StrategyId.LP_VAULT, 6, now_ms=NOW) is False


def test_sustained_when_every_sample_in_window_is_above():
    history = RateHistory(MemoryStore())
    for minutes_ago in (45, 30, 15, 0):
        history.record([cand(StrategyId.LP_VAULT, 12)], now_ms=NOW - minutes_ago * MINUTE)
    assert history.has_sustained_above(StrategyId.LP_VAULT, 6, now_ms=NOW) is True
    # Threshold equal to the samples still counts
    assert history.has_sustained_above(StrategyId.LP_VAULT, 12, now_ms=NOW) is True


def test_single_dip_breaks_sustained_yield():
    history = RateHistory(MemoryStore())
    for minutes_ago, apy in ((45, 12), (30, 5), (15, 12), (0, 12)):
        history.record([cand(StrategyId.LP_VAULT, apy)], now_ms=NOW - minutes_ago * MINUTE)
    assert history.has_sustained_above(StrategyId.LP_VAULT, 6, now_ms=NOW) is False


def test_samples_outside_window_are_ignored():
    history = RateHistory(MemoryStore())
    history.record([cand(StrategyId.LP_VAULT, 1)], now_ms=NOW - 2 * MS_PER_HOUR)
    for minutes_ago in (40, 0):
        history.record([cand(StrategyId.LP_VAULT, 12)], now_ms=NOW - minutes_ago * MINUTE)
    assert history.has_sustained_above(StrategyId.LP_VAULT, 6, now_ms=NOW) is True


def test_other_strategies_do_not_count():
    history = RateHistory(MemoryStore())
    history.record([cand(StrategyId.HOLD_JITOSOL, 12)], now_ms=NOW - 45 * MINUTE)
    history.record([cand(StrategyId.LP_VAULT, 12)], now_ms=NOW)
    assert history.has_sustained_above(StrategyId.LP_VAULT, 6, now_ms=NOW) is False


def test_corrupt_history_file_is_empty(tmp_path):
    path = tmp_path / "rate-history.json"
    path.write_text("]]]", encoding="utf-8")
    history = RateHistory(JsonArrayStore(path, max_entries=10))
    assert history.entries() == []
    assert history.has_sustained_above(StrategyId.LP_VAULT, 0, now_ms=NOW) is False
