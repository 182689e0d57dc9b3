from itertools import product

import pytest

from yield_optimizer.models import StrategyId
from yield_optimizer.transitions import (
    NO_OP,
    TRANSITIONS,
    Transition,
    build_transition_table,
    get_transition,
    validate_transition_table,
)


def test_table_covers_every_pair():
    assert len(TRANSITIONS) == len(StrategyId) ** 2
    assert set(TRANSITIONS) == set(product(StrategyId, StrategyId))


def test_self_transitions_are_no_ops():
    for s in StrategyId:
        assert get_transition(s, s) == NO_OP


def test_missing_pair_fails_validation():
    table = build_transition_table()
    del table[(StrategyId.LP_VAULT, StrategyId.MULTIPLY)]
    with pytest.raises(ValueError, match="missing"):
        validate_transition_table(table)


def test_negative_count_fails_validation():
    table = build_transition_table()
    table[(StrategyId.LP_VAULT, StrategyId.MULTIPLY)] = Transition(transaction_count=-1, swap_required=False)
    with pytest.raises(ValueError, match="Negative"):
        validate_transition_table(table)


def test_self_pair_with_transactions_fails_validation():
    table = build_transition_table()
    table[(StrategyId.LP_VAULT, StrategyId.LP_VAULT)] = Transition(transaction_count=1, swap_required=False)
    with pytest.raises(ValueError, match="no-op"):
        validate_transition_table(table)


@pytest.mark.parametrize(
    "src,dst,count,swap",
    [
        (StrategyId.HOLD_JITOSOL, StrategyId.LP_VAULT, 1, False),
        (StrategyId.LP_VAULT, StrategyId.HOLD_JITOSOL, 1, True),
        (StrategyId.HOLD_JITOSOL, StrategyId.KLEND_SOL_SUPPLY, 1, True),
        (StrategyId.KLEND_SOL_SUPPLY, StrategyId.HOLD_JITOSOL, 1, True),
        (StrategyId.HOLD_JITOSOL, StrategyId.KLEND_JITOSOL_SUPPLY, 1, False),
        (StrategyId.LP_VAULT, StrategyId.KLEND_SOL_SUPPLY, 2, True),
        (StrategyId.LP_VAULT, StrategyId.KLEND_JITOSOL_SUPPLY, 2, False),
        (StrategyId.KLEND_JITOSOL_SUPPLY, StrategyId.LP_VAULT, 2, False),
        (StrategyId.HOLD_JITOSOL, StrategyId.MULTIPLY, 8, False),
        (StrategyId.MULTIPLY, StrategyId.HOLD_JITOSOL, 8, False),
        (StrategyId.MULTIPLY, StrategyId.LP_VAULT, 8, False),
        (StrategyId.MULTIPLY, StrategyId.KLEND_SOL_SUPPLY, 8, True),
        (StrategyId.KLEND_SOL_SUPPLY, StrategyId.MULTIPLY, 8, True),
    ],
)
def test_transition_rules(src, dst, count, swap):
    t = get_transition(src, dst)
    assert t.transaction_count == count
    assert t.swap_required is swap


def test_lookup_accepts_plain_strings():
    assert get_transition("lp_vault", "klend_sol_supply") == get_transition(
        StrategyId.LP_VAULT, StrategyId.KLEND_SOL_SUPPLY
    )
