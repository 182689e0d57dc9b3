"""Switch-cost model.

Computes the fully-loaded cost of moving capital between two strategies: tx fees,
withdrawal and deposit fees, swap slippage, aggregator fees, impermanent-loss risk and
opportunity cost. Pure: no I/O, and no numeric input makes it raise.
"""

from decimal import Decimal, InvalidOperation, Overflow, localcontext

from yield_optimizer.constants import (
    BASE_TX_FEE_SOL,
    COMPLEX_TX_FEE_SOL,
    IL_ESTIMATE_30D_RATE,
    KLEND_DEPOSIT_FEE_RATE,
    KLEND_WITHDRAW_FEE_RATE,
    LP_SINGLE_SIDED_SWAP_SHARE,
    LP_VAULT_DEPOSIT_FEE_RATE,
    LP_VAULT_WITHDRAW_FEE_RATE,
    MINUTES_PER_YEAR,
    PLATFORM_FEE_RATE,
    SLIPPAGE_RATE_LARGE,
    SLIPPAGE_TIERS,
    TRANSIT_TIME_MINUTES,
)
from yield_optimizer.formatters import as_decimal
from yield_optimizer.models import StrategyId, SwitchCostBreakdown
from yield_optimizer.transitions import get_transition

ZERO = Decimal(0)

# Fee rates keyed by the strategy being left / entered. Hold has nothing to withdraw or deposit.
WITHDRAW_FEE_RATES: dict[StrategyId, Decimal] = {
    StrategyId.HOLD_JITOSOL: ZERO,
    StrategyId.LP_VAULT: LP_VAULT_WITHDRAW_FEE_RATE,
    StrategyId.KLEND_SOL_SUPPLY: KLEND_WITHDRAW_FEE_RATE,
    StrategyId.KLEND_JITOSOL_SUPPLY: KLEND_WITHDRAW_FEE_RATE,
    StrategyId.MULTIPLY: ZERO,
}
DEPOSIT_FEE_RATES: dict[StrategyId, Decimal] = {
    StrategyId.HOLD_JITOSOL: ZERO,
    StrategyId.LP_VAULT: LP_VAULT_DEPOSIT_FEE_RATE,
    StrategyId.KLEND_SOL_SUPPLY: KLEND_DEPOSIT_FEE_RATE,
    StrategyId.KLEND_JITOSOL_SUPPLY: KLEND_DEPOSIT_FEE_RATE,
    StrategyId.MULTIPLY: ZERO,
}


def _safe_decimal(value) -> Decimal:
    try:
        return as_decimal(value)
    except (TypeError, ValueError):
        return ZERO


def estimate_slippage_rate(amount) -> Decimal:
    """Slippage rate (fraction) for a JitoSOL <> SOL swap of `amount` SOL.

    Step function of trade size: bigger trades pay a strictly higher percentage.
    """
    amt = _safe_decimal(amount)
    for upper_bound, rate in SLIPPAGE_TIERS:
        if amt < upper_bound:
            return rate
    return SLIPPAGE_RATE_LARGE


def zero_breakdown(*, transaction_count: int = 0, swap_required: bool = False) -> SwitchCostBreakdown:
    """A breakdown with every cost component at zero."""
    return SwitchCostBreakdown(
        tx_fees=ZERO,
        withdraw_fee=ZERO,
        deposit_fee=ZERO,
        slippage=ZERO,
        platform_fee=ZERO,
        impermanent_loss_risk=ZERO,
        opportunity_cost=ZERO,
        total_cost=ZERO,
        total_cost_in_reference=ZERO,
        transaction_count=transaction_count,
        swap_required=swap_required,
    )


def cost_components(b: SwitchCostBreakdown) -> dict[str, Decimal]:
    """The seven named components that make up `total_cost`."""
    return {
        "tx_fees": b.tx_fees,
        "withdraw_fee": b.withdraw_fee,
        "deposit_fee": b.deposit_fee,
        "slippage": b.slippage,
        "platform_fee": b.platform_fee,
        "impermanent_loss_risk": b.impermanent_loss_risk,
        "opportunity_cost": b.opportunity_cost,
    }


def _price_switch(src: StrategyId, dst: StrategyId, transition, amt: Decimal, price: Decimal, apy: Decimal):
    swap_required = transition.swap_required

    # 1. Transaction fees: swap routes touch more accounts, plus one priority fee for the swap itself.
    per_tx_fee = COMPLEX_TX_FEE_SOL if swap_required else BASE_TX_FEE_SOL
    tx_fees = per_tx_fee * transition.transaction_count
    if swap_required:
        tx_fees += COMPLEX_TX_FEE_SOL

    # 2-3. Withdrawal / deposit fees
    withdraw_fee = amt * WITHDRAW_FEE_RATES[src]
    deposit_fee = amt * DEPOSIT_FEE_RATES[dst]

    # 4. Slippage: external swap leg, plus the LP vault's internal single-sided swap.
    slippage = ZERO
    if swap_required:
        slippage += amt * estimate_slippage_rate(amt)
    if dst == StrategyId.LP_VAULT:
        swapped = amt * LP_SINGLE_SIDED_SWAP_SHARE
        slippage += swapped * estimate_slippage_rate(swapped)

    # 5. Aggregator platform fee
    platform_fee = amt * PLATFORM_FEE_RATE if swap_required else ZERO

    # 6. IL risk: charged on entry to the LP vault only.
    impermanent_loss_risk = amt * IL_ESTIMATE_30D_RATE if dst == StrategyId.LP_VAULT else ZERO

    # 7. Opportunity cost: yield of the strategy being left, over the transit window.
    opportunity_cost = amt * apy / 100 / MINUTES_PER_YEAR * TRANSIT_TIME_MINUTES

    total_cost = tx_fees + withdraw_fee + deposit_fee + slippage + platform_fee + impermanent_loss_risk + opportunity_cost

    return SwitchCostBreakdown(
        tx_fees=tx_fees,
        withdraw_fee=withdraw_fee,
        deposit_fee=deposit_fee,
        slippage=slippage,
        platform_fee=platform_fee,
        impermanent_loss_risk=impermanent_loss_risk,
        opportunity_cost=opportunity_cost,
        total_cost=total_cost,
        total_cost_in_reference=total_cost * price,
        transaction_count=transition.transaction_count,
        swap_required=swap_required,
    )


def _is_finite(b: SwitchCostBreakdown) -> bool:
    values = (*cost_components(b).values(), b.total_cost, b.total_cost_in_reference)
    return all(v.is_finite() for v in values)


def compute_switch_cost(
    from_strategy: StrategyId,
    to_strategy: StrategyId,
    amount,
    reference_price,
    current_apy,
) -> SwitchCostBreakdown:
    """Calculate the total cost of switching `amount` SOL from one strategy to another.

    `current_apy` is the APY (percent) of the strategy being left; it drives the opportunity
    cost of the transit window. Costs are in SOL; `total_cost_in_reference` is in USD.
    Inputs so large that a cost overflows are treated like non-finite input: every
    component comes back as zero.
    """
    src = StrategyId(from_strategy)
    dst = StrategyId(to_strategy)
    transition = get_transition(src, dst)
    if src == dst:
        return zero_breakdown()

    amt = _safe_decimal(amount)
    price = _safe_decimal(reference_price)
    # A strategy with negative yield forgoes nothing while in transit.
    apy = max(_safe_decimal(current_apy), ZERO)
    if amt == 0:
        return zero_breakdown(transaction_count=transition.transaction_count, swap_required=transition.swap_required)

    with localcontext() as ctx:
        # Overflow yields Infinity (and Infinity * 0 yields NaN) instead of raising.
        ctx.traps[Overflow] = False
        ctx.traps[InvalidOperation] = False
        breakdown = _price_switch(src, dst, transition, amt, price, apy)
    if not _is_finite(breakdown):
        return zero_breakdown(transaction_count=transition.transaction_count, swap_required=transition.swap_required)
    return breakdown
