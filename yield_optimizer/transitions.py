"""Strategy transition table.

Every ordered pair of strategies maps to the number of transactions the switch needs and
whether an external (Jupiter) swap is part of the route. The table is built once and
checked for completeness at import, so an unanticipated pair fails loudly instead of
falling through to a default.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from itertools import product

from yield_optimizer.constants import TX_COUNT_LEVERAGE_LOOP, TX_COUNT_ROUND_TRIP, TX_COUNT_SINGLE_LEG
from yield_optimizer.models import StrategyId


@dataclass(frozen=True)
class Transition:
    """Shape of a single strategy switch."""

    transaction_count: int
    swap_required: bool


NO_OP = Transition(transaction_count=0, swap_required=False)


def _transaction_count(src: StrategyId, dst: StrategyId) -> int:
    if src == dst:
        return 0
    # Multiply open/close loops borrow + swap + deposit several times. Checked before hold:
    # opening or unwinding from plain JitoSOL still runs the whole loop, not one deposit.
    if StrategyId.MULTIPLY in (src, dst):
        return TX_COUNT_LEVERAGE_LOOP
    # Holding needs no withdraw (when leaving) or no deposit (when entering).
    if StrategyId.HOLD_JITOSOL in (src, dst):
        return TX_COUNT_SINGLE_LEG
    return TX_COUNT_ROUND_TRIP


def _swap_required(src: StrategyId, dst: StrategyId) -> bool:
    if src == dst:
        return False
    # LP withdraw returns SOL + JitoSOL; the SOL leg is swapped back to JitoSOL.
    if src == StrategyId.LP_VAULT and dst == StrategyId.HOLD_JITOSOL:
        return True
    # SOL supply means swapping JitoSOL -> SOL on the way in and back on the way out.
    if StrategyId.KLEND_SOL_SUPPLY in (src, dst):
        return True
    # Multiply swaps internally; that cost is covered by its transaction count.
    return False


def build_transition_table() -> dict[tuple[StrategyId, StrategyId], Transition]:
    """Build the full (from, to) -> Transition table."""
    return {
        (src, dst): Transition(
            transaction_count=_transaction_count(src, dst),
            swap_required=_swap_required(src, dst),
        )
        for src, dst in product(StrategyId, StrategyId)
    }


def validate_transition_table(table: Mapping[tuple[StrategyId, StrategyId], Transition]) -> None:
    """Raise ValueError unless `table` covers exactly every (from, to) strategy pair."""
    expected = set(product(StrategyId, StrategyId))
    actual = set(table.keys())
    missing = expected - actual
    extra = actual - expected
    if missing or extra:
        raise ValueError(
            f"Transition table mismatch: missing={sorted(map(str, missing))}, extra={sorted(map(str, extra))}"
        )
    for (src, dst), transition in table.items():
        if transition.transaction_count < 0:
            raise ValueError(f"Negative transaction count for {src} -> {dst}")
        if src == dst and transition != NO_OP:
            raise ValueError(f"Self-transition {src} -> {dst} must be a no-op")


TRANSITIONS = build_transition_table()
validate_transition_table(TRANSITIONS)


def get_transition(src: StrategyId, dst: StrategyId) -> Transition:
    """Look up the transition for a strategy pair."""
    return TRANSITIONS[(StrategyId(src), StrategyId(dst))]
