"""Rate history and spike protection.

Every evaluation cycle records the APY of each candidate. Before switching, the policy asks
whether the target's yield has stayed above the current one for long enough; a single
high sample is treated as noise.
"""

import time
from collections.abc import Callable, Iterable

from yield_optimizer.constants import (
    RATE_HISTORY_FILE,
    RATE_HISTORY_MAX_ENTRIES,
    SUSTAINED_MIN_COVERAGE,
    SUSTAINED_YIELD_WINDOW_MS,
)
from yield_optimizer.models import RateHistoryEntry, StrategyCandidate, StrategyId
from yield_optimizer.storage import JsonArrayStore, TimeSeriesStore, get_data_dir


def current_time_ms() -> int:
    """Current wall-clock time in ms since epoch."""
    return int(time.time() * 1000)


def _parse_entry(record: dict) -> RateHistoryEntry | None:
    try:
        apy = record["apy"]
        if isinstance(apy, bool) or not isinstance(apy, (int, float)):
            return None
        return RateHistoryEntry(
            timestamp=int(record["timestamp"]),
            strategy_id=StrategyId(record["strategyId"]),
            apy=float(apy),
        )
    except (KeyError, TypeError, ValueError):
        return None


class RateHistory:
    """Rate samples over an injected time-series store."""

    def __init__(self, store: TimeSeriesStore, clock: Callable[[], int] | None = None):
        self.store = store
        self.clock = clock or current_time_ms

    def record(self, candidates: Iterable[StrategyCandidate], now_ms: int | None = None) -> None:
        """Append one sample per candidate, all stamped with the same timestamp."""
        ts = self.clock() if now_ms is None else now_ms
        records = [{"timestamp": ts, "strategyId": str(c.id), "apy": float(c.gross_apy)} for c in candidates]
        if records:
            self.store.append(records)

    def entries(self, start_ms: int | None = None, end_ms: int | None = None) -> list[RateHistoryEntry]:
        """Stored samples in insertion order; malformed records are skipped."""
        out = []
        for record in self.store.query_window(start_ms, end_ms):
            entry = _parse_entry(record)
            if entry is not None:
                out.append(entry)
        return out

    def has_sustained_above(
        self,
        strategy_id: StrategyId,
        threshold_apy,
        min_duration_ms: int = SUSTAINED_YIELD_WINDOW_MS,
        now_ms: int | None = None,
    ) -> bool:
        """True when every sample of `strategy_id` inside the window is >= `threshold_apy`.

        With no samples, or samples that cover less than half the window, the answer is False:
        we don't know enough to call it sustained.
        """
        now = self.clock() if now_ms is None else now_ms
        cutoff = now - min_duration_ms
        sid = StrategyId(strategy_id)
        samples = [e for e in self.entries() if e.strategy_id == sid and e.timestamp > cutoff]
        if not samples:
            return False
        oldest = min(e.timestamp for e in samples)
        if now - oldest < min_duration_ms * SUSTAINED_MIN_COVERAGE:
            return False
        threshold = float(threshold_apy)
        return all(e.apy >= threshold for e in samples)


def default_rate_history() -> RateHistory:
    """Rate history persisted in the data directory, capped to the most recent samples."""
    store = JsonArrayStore(get_data_dir() / RATE_HISTORY_FILE, max_entries=RATE_HISTORY_MAX_ENTRIES)
    return RateHistory(store)
