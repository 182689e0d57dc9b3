"""Append-only decision log (one JSON object per evaluation cycle)."""

from typing import Any

from yield_optimizer.constants import DECISION_LOG_FILE
from yield_optimizer.formatters import break_even_json
from yield_optimizer.models import HoldAction, RebalanceRecommendation, SwitchAction
from yield_optimizer.storage import JsonLinesStore, TimeSeriesStore, get_data_dir


def _action_label(rec: RebalanceRecommendation) -> str:
    action = rec.action
    if isinstance(action, SwitchAction):
        return f"switch {action.from_strategy} -> {action.to_strategy}"
    if isinstance(action, HoldAction):
        return "hold"
    return f"lever_up {action.current_leverage:.2f}x -> {action.target_leverage:.2f}x"


def build_decision_record(rec: RebalanceRecommendation) -> dict[str, Any]:
    """Flatten a recommendation into the decision-log record format."""
    best = rec.best_alternative
    idle = rec.idle_recommendation
    return {
        "timestamp": int(round(rec.timestamp.timestamp() * 1000)),
        "time": rec.timestamp.isoformat(),
        "shouldRebalance": rec.should_rebalance,
        "action": _action_label(rec),
        "currentStrategy": str(rec.current_strategy),
        "currentApy": float(rec.current_apy),
        "bestAlternative": str(best.candidate.id) if best else None,
        "bestAlternativeApy": float(best.candidate.gross_apy) if best else None,
        "switchCostSol": float(best.switch_cost.total_cost) if best else None,
        "switchCostUsd": float(best.switch_cost.total_cost_in_reference) if best else None,
        "breakEvenDays": break_even_json(best.break_even_days) if best else None,
        "capitalSol": float(rec.capital),
        "idleSol": float(rec.idle_capital),
        "idleDeploy": idle.should_deploy if idle else False,
        "idleStrategy": str(idle.best_strategy.id) if idle else None,
        "reasoning": list(rec.reasoning),
        "strategies": [
            {
                "id": str(s.candidate.id),
                "grossApy": float(s.gross_apy),
                "netApy": float(s.net_apy),
                "switchCostSol": float(s.switch_cost.total_cost),
                "breakEvenDays": break_even_json(s.break_even_days),
                "score": float(s.score),
            }
            for s in rec.all_strategies
        ],
    }


class DecisionLog:
    """Decision log over an injected time-series store."""

    def __init__(self, store: TimeSeriesStore):
        self.store = store

    def append(self, rec: RebalanceRecommendation) -> None:
        self.store.append([build_decision_record(rec)])

    def records(self, start_ms: int | None = None, end_ms: int | None = None) -> list[dict[str, Any]]:
        return self.store.query_window(start_ms, end_ms)


def default_decision_log() -> DecisionLog:
    """Decision log persisted as JSON Lines in the data directory."""
    return DecisionLog(JsonLinesStore(get_data_dir() / DECISION_LOG_FILE))
