"""Strategy scoring: net APY, break-even and cost-adjusted ranking."""

import math
from collections.abc import Iterable
from decimal import Decimal

from yield_optimizer.constants import DAYS_PER_YEAR, LP_VAULT_IL_DRAG_APY, SCORE_AMORTIZATION_DAYS
from yield_optimizer.fee_model import compute_switch_cost
from yield_optimizer.formatters import as_decimal
from yield_optimizer.models import ScoredStrategy, StrategyCandidate, StrategyId, SwitchCostBreakdown

# Ongoing structural drag per strategy, in APY percentage points.
ONGOING_DRAG_APY: dict[StrategyId, Decimal] = {
    StrategyId.LP_VAULT: LP_VAULT_IL_DRAG_APY,
}


def ongoing_drag(strategy_id: StrategyId) -> Decimal:
    return ONGOING_DRAG_APY.get(StrategyId(strategy_id), Decimal(0))


def net_apy(candidate: StrategyCandidate) -> Decimal:
    """Gross APY minus the strategy's ongoing drag."""
    return as_decimal(candidate.gross_apy) - ongoing_drag(candidate.id)


def break_even_days(switch_cost: SwitchCostBreakdown, capital, net, current_apy) -> float:
    """Days until the yield improvement repays the switch cost.

    Returns math.inf when the target doesn't beat the current APY (regardless of cost), or when
    there is no capital earning the improvement.
    """
    improvement = as_decimal(net) - as_decimal(current_apy)
    if improvement <= 0:
        return math.inf
    daily_improvement = as_decimal(capital) * improvement / 100 / DAYS_PER_YEAR
    if daily_improvement <= 0:
        return math.inf
    days = switch_cost.total_cost / daily_improvement
    return round(float(days), 1)


def score_all(
    candidates: Iterable[StrategyCandidate],
    current_strategy_id: StrategyId,
    current_apy,
    capital_amount,
    reference_price,
) -> list[ScoredStrategy]:
    """Score every candidate against the current position, best first.

    Score is the "30-day adjusted APY": net APY minus the switch cost amortized over 30 days and
    annualized. The current strategy pays no switch cost and breaks even immediately. Ties keep
    roster order.
    """
    current_id = StrategyId(current_strategy_id)
    capital = as_decimal(capital_amount)
    current = as_decimal(current_apy)
    scored = []
    for candidate in candidates:
        net = net_apy(candidate)
        is_current = candidate.id == current_id
        cost = compute_switch_cost(current_id, candidate.id, capital, reference_price, current)
        if is_current:
            be_days = 0.0
            score = net
        else:
            be_days = break_even_days(cost, capital, net, current)
            if capital > 0:
                annualized_cost_pct = cost.total_cost / capital * 100 * DAYS_PER_YEAR / SCORE_AMORTIZATION_DAYS
                score = net - annualized_cost_pct
            else:
                score = net
        scored.append(
            ScoredStrategy(
                candidate=candidate,
                gross_apy=as_decimal(candidate.gross_apy),
                net_apy=net,
                switch_cost=cost,
                break_even_days=be_days,
                score=score,
            )
        )
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored
