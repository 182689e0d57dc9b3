"""Rebalancing decision policy.

One call to `evaluate` is one decision cycle: record rates, score the roster, apply the three
switch criteria (break-even, minimum improvement, sustained yield), decide what to do with idle
capital, check whether an open multiply position should lever up, and log the outcome.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from yield_optimizer.constants import (
    DEFAULT_STAKING_APY,
    IDLE_DUST_THRESHOLD_SOL,
    MAX_BREAK_EVEN_DAYS,
    MIN_APY_IMPROVEMENT,
    MS_PER_HOUR,
    SUSTAINED_YIELD_WINDOW_MS,
)
from yield_optimizer.decision_log import DecisionLog
from yield_optimizer.formatters import (
    action_marker,
    as_decimal,
    format_apy,
    format_break_even,
    format_signed_pct,
    format_sol,
    format_usd,
)
from yield_optimizer.history import RateHistory
from yield_optimizer.leverage import needs_lever_up
from yield_optimizer.models import (
    HoldAction,
    IdleCapitalRecommendation,
    LeverageState,
    LeverUpAction,
    RebalanceAction,
    RebalanceRecommendation,
    ScoredStrategy,
    StrategyCandidate,
    StrategyId,
    SwitchAction,
)
from yield_optimizer.scorer import score_all


@dataclass(frozen=True)
class PolicyThresholds:
    """Switch criteria. A switch needs all three to pass."""

    max_break_even_days: float = MAX_BREAK_EVEN_DAYS
    min_apy_improvement: Decimal = MIN_APY_IMPROVEMENT
    sustained_window_ms: int = SUSTAINED_YIELD_WINDOW_MS


def baseline_apy(candidates: Sequence[StrategyCandidate]) -> Decimal:
    """Gross APY of holding JitoSOL, from the roster when present."""
    for c in candidates:
        if c.id == StrategyId.HOLD_JITOSOL:
            return as_decimal(c.gross_apy)
    return DEFAULT_STAKING_APY


def _best_alternative(scored: Sequence[ScoredStrategy], exclude: StrategyId) -> ScoredStrategy | None:
    for s in scored:
        if s.candidate.available and s.candidate.id != exclude:
            return s
    return None


def evaluate_idle(
    candidates: Sequence[StrategyCandidate],
    idle_capital,
    reference_price,
    thresholds: PolicyThresholds = PolicyThresholds(),
) -> IdleCapitalRecommendation | None:
    """Decide whether idle JitoSOL should be deployed. None when there is nothing to deploy to."""
    idle = as_decimal(idle_capital)
    hold_apy = baseline_apy(candidates)
    scored = score_all(candidates, StrategyId.HOLD_JITOSOL, hold_apy, idle, reference_price)
    best = _best_alternative(scored, StrategyId.HOLD_JITOSOL)
    if best is None:
        return None
    improvement = best.net_apy - hold_apy
    # Same inclusive break-even ceiling as the main switch criterion.
    should_deploy = (
        improvement > as_decimal(thresholds.min_apy_improvement)
        and best.break_even_days <= thresholds.max_break_even_days
    )
    if should_deploy:
        reason = (
            f"Deploy idle JitoSOL to {best.candidate.id}: {format_signed_pct(improvement)} APY, "
            f"break-even in {format_break_even(best.break_even_days)}"
        )
    else:
        reason = (
            f"Keep idle: improvement {format_signed_pct(improvement)} too small "
            f"or break-even {format_break_even(best.break_even_days)} too long"
        )
    return IdleCapitalRecommendation(
        best_strategy=best.candidate,
        net_apy_after_fees=best.net_apy,
        improvement=improvement,
        switch_cost=best.switch_cost,
        break_even_days=best.break_even_days,
        should_deploy=should_deploy,
        reasoning=reason,
    )


def evaluate(
    candidates: Sequence[StrategyCandidate],
    current_strategy_id: StrategyId,
    current_apy,
    capital,
    idle_capital,
    reference_price,
    *,
    rate_history: RateHistory,
    decision_log: DecisionLog | None,
    leverage: LeverageState | None = None,
    thresholds: PolicyThresholds = PolicyThresholds(),
    now_ms: int | None = None,
) -> RebalanceRecommendation:
    """Run one decision cycle and return an immutable recommendation.

    Exactly one record is appended to `decision_log` (when given).
    """
    candidates = list(candidates)
    current_id = StrategyId(current_strategy_id)
    current = as_decimal(current_apy)
    capital_sol = as_decimal(capital)
    idle = as_decimal(idle_capital)
    price = as_decimal(reference_price)
    now = rate_history.clock() if now_ms is None else now_ms
    max_break_even = float(thresholds.max_break_even_days)
    min_improvement = as_decimal(thresholds.min_apy_improvement)
    window_hours = thresholds.sustained_window_ms / MS_PER_HOUR

    rate_history.record(candidates, now_ms=now)
    scored = score_all(candidates, current_id, current, capital_sol, price)

    reasoning = [
        f"Current strategy: {current_id} @ {format_apy(current)} APY",
        f"Capital: {capital_sol:.4f} SOL ({format_usd(capital_sol * price)})",
        f"Idle: {idle:.4f} SOL",
    ]

    action: RebalanceAction = HoldAction()
    best = _best_alternative(scored, current_id)
    if best is None:
        reasoning.append("No alternatives available.")
    else:
        improvement = best.net_apy - current
        cost = best.switch_cost
        reasoning.append(
            f"Best alternative: {best.candidate.id} @ {format_apy(best.gross_apy)} gross, {format_apy(best.net_apy)} net"
        )
        reasoning.append(f"Net improvement: {format_signed_pct(improvement)} APY")
        reasoning.append(
            f"Switch cost: {format_sol(cost.total_cost)} ({format_usd(cost.total_cost_in_reference, decimals=4)})"
        )
        reasoning.append(f"Break-even: {format_break_even(best.break_even_days)}")

        break_even_ok = best.break_even_days <= max_break_even
        reasoning.append(
            f"{action_marker(break_even_ok)}: Break-even {format_break_even(best.break_even_days)} "
            f"{'<=' if break_even_ok else '>'} {max_break_even:g} day maximum"
        )

        improvement_ok = improvement > min_improvement
        reasoning.append(
            f"{action_marker(improvement_ok)}: Net improvement {format_signed_pct(improvement)} "
            f"{'>' if improvement_ok else '<='} {min_improvement}% minimum threshold"
        )

        sustained_ok = rate_history.has_sustained_above(
            best.candidate.id, current, min_duration_ms=thresholds.sustained_window_ms, now_ms=now
        )
        if sustained_ok:
            reasoning.append(f"{action_marker(True)}: {best.candidate.id} yield sustained > {window_hours:g}h")
        else:
            reasoning.append(
                f"{action_marker(False)}: {best.candidate.id} yield not sustained > {window_hours:g}h "
                f"above {format_apy(current)}"
            )

        if break_even_ok and improvement_ok and sustained_ok:
            action = SwitchAction(from_strategy=current_id, to_strategy=best.candidate.id)

    idle_recommendation = None
    if idle > IDLE_DUST_THRESHOLD_SOL:
        reasoning.append(f"Evaluating idle {idle:.4f} JitoSOL...")
        idle_recommendation = evaluate_idle(candidates, idle, price, thresholds)
        if idle_recommendation is not None:
            reasoning.append(f"Idle recommendation: {idle_recommendation.reasoning}")

    if current_id == StrategyId.MULTIPLY and isinstance(action, HoldAction) and leverage is not None:
        lever_up, target = needs_lever_up(leverage)
        if lever_up:
            current_lev = as_decimal(leverage.current_leverage)
            action = LeverUpAction(strategy=current_id, current_leverage=current_lev, target_leverage=target)
            reasoning.append(f"📈 Leverage {current_lev:.2f}x below target {target:.2f}x, levering up")

    recommendation = RebalanceRecommendation(
        action=action,
        should_rebalance=not isinstance(action, HoldAction),
        current_strategy=current_id,
        current_apy=current,
        best_alternative=best,
        all_strategies=tuple(scored),
        reasoning=tuple(reasoning),
        timestamp=datetime.fromtimestamp(now / 1000, tz=timezone.utc),
        capital=capital_sol,
        idle_capital=idle,
        idle_recommendation=idle_recommendation,
    )
    if decision_log is not None:
        decision_log.append(recommendation)
    return recommendation
