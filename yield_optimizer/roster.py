"""Roster loading: turns provider output into validated strategy candidates."""

import json
import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from yield_optimizer.formatters import as_decimal
from yield_optimizer.models import StrategyCandidate, StrategyId
from yield_optimizer.validation import validate_candidate


def parse_candidate(entry: dict[str, Any]) -> StrategyCandidate:
    """
    Parse one roster entry into a StrategyCandidate.

    Accepts camelCase (`grossApy`) or snake_case (`gross_apy`) keys. Raises ValueError on a missing
    or unknown strategy id, an unparseable APY, or a candidate that fails validation.
    """
    if not isinstance(entry, dict):
        raise ValueError(f"Unexpected roster entry (expected JSON object): {entry!r}")
    raw_id = entry.get("id") or entry.get("strategyId")
    if raw_id is None:
        raise ValueError(f"Roster entry without id: {entry!r}")
    strategy_id = StrategyId(str(raw_id))

    raw_apy = entry.get("grossApy", entry.get("gross_apy"))
    if raw_apy is None:
        raise ValueError(f"Roster entry {strategy_id} without grossApy")

    candidate = StrategyCandidate(
        id=strategy_id,
        name=str(entry.get("name") or strategy_id),
        gross_apy=as_decimal(raw_apy, default=None),
        available=bool(entry.get("available", True)),
        address=str(entry.get("address") or ""),
        meta=dict(entry.get("meta") or {}),
    )
    if candidate.gross_apy is None:
        raise ValueError(f"Roster entry {strategy_id}: non-finite grossApy {raw_apy!r}")
    validate_candidate(candidate)
    return candidate


def _dedupe(candidates: list[StrategyCandidate]) -> list[StrategyCandidate]:
    seen: set[StrategyId] = set()
    out = []
    for c in candidates:
        if c.id in seen:
            print(f"⚠️  Duplicate roster entry for {c.id} ignored", file=sys.stderr)
            continue
        seen.add(c.id)
        out.append(c)
    return out


def parse_roster(data: Any) -> list[StrategyCandidate]:
    """Parse a roster document (JSON list, or object with a `strategies` list). Bad entries are skipped."""
    if isinstance(data, dict):
        data = data.get("strategies", [])
    if not isinstance(data, list):
        raise ValueError("Unexpected roster format (expected JSON list of strategies)")
    out: list[StrategyCandidate] = []
    for i, entry in enumerate(data):
        try:
            out.append(parse_candidate(entry))
        except (TypeError, ValueError) as ex:
            print(f"⚠️  Skipping roster entry #{i}: {ex}", file=sys.stderr)
    return _dedupe(out)


def load_roster(path: Path | str) -> list[StrategyCandidate]:
    """Load a roster JSON file. Raises OSError / ValueError when the file itself is unreadable."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    return parse_roster(data)


def collect_candidates(providers: Iterable[Callable[[], Any]]) -> list[StrategyCandidate]:
    """
    Call each provider and collect the candidates they return.

    A provider may return a StrategyCandidate, a roster entry dict, or None (venue unavailable).
    Providers that raise or return something unusable are left out with a warning.
    """
    out: list[StrategyCandidate] = []
    for provider in providers:
        name = getattr(provider, "__name__", repr(provider))
        try:
            result = provider()
            if result is None:
                continue
            if isinstance(result, StrategyCandidate):
                validate_candidate(result)
                out.append(result)
            else:
                out.append(parse_candidate(result))
        except Exception as ex:  # pylint: disable=broad-exception-caught
            print(f"⚠️  Strategy provider {name} failed: {ex}", file=sys.stderr)
    return _dedupe(out)
