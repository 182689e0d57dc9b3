"""Leverage helpers for the multiply strategy."""

from decimal import Decimal

from yield_optimizer.constants import DEFAULT_TARGET_LEVERAGE, LEVER_UP_TOLERANCE, TARGET_LEVERAGE_SAFETY
from yield_optimizer.formatters import as_decimal
from yield_optimizer.models import LeverageState


def leveraged_net_apy(staking_apy, borrow_apy, leverage) -> Decimal:
    """Net APY of a leveraged LST position: staking * lev - borrow * (lev - 1)."""
    lev = as_decimal(leverage)
    return as_decimal(staking_apy) * lev - as_decimal(borrow_apy) * (lev - 1)


def target_leverage(max_leverage=None) -> Decimal:
    """Leverage we aim for: 80% of the market max, never above the default target."""
    if max_leverage is None:
        return DEFAULT_TARGET_LEVERAGE
    max_lev = as_decimal(max_leverage)
    if max_lev <= 0:
        return DEFAULT_TARGET_LEVERAGE
    return min(max_lev * TARGET_LEVERAGE_SAFETY, DEFAULT_TARGET_LEVERAGE)


def needs_lever_up(state: LeverageState) -> tuple[bool, Decimal]:
    """Whether the position sits below 95% of its target; also returns the target."""
    target = target_leverage(state.max_leverage)
    return as_decimal(state.current_leverage) < target * LEVER_UP_TOLERANCE, target
