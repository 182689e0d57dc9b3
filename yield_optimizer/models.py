"""Data models for yield optimization."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar


class StrategyId(str, Enum):
    """Fixed set of yield venues the bot can allocate capital to."""

    HOLD_JITOSOL = "hold_jitosol"
    LP_VAULT = "lp_vault"
    KLEND_SOL_SUPPLY = "klend_sol_supply"
    KLEND_JITOSOL_SUPPLY = "klend_jitosol_supply"
    MULTIPLY = "multiply"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StrategyCandidate:
    """A venue as reported by a roster provider for one evaluation cycle."""

    id: StrategyId
    name: str
    # Gross APY in percent, before any switch or ongoing costs.
    gross_apy: Decimal
    available: bool = True
    # On-chain address (vault / reserve / market).
    address: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SwitchCostBreakdown:
    """One-time cost of moving `amount` between two strategies, in SOL unless noted."""

    tx_fees: Decimal
    withdraw_fee: Decimal
    deposit_fee: Decimal
    slippage: Decimal
    platform_fee: Decimal
    impermanent_loss_risk: Decimal
    # Yield forgone while capital is in transit.
    opportunity_cost: Decimal
    # Exact sum of the seven components above.
    total_cost: Decimal
    total_cost_in_reference: Decimal
    transaction_count: int
    swap_required: bool


@dataclass(frozen=True)
class ScoredStrategy:
    """A candidate ranked by cost-adjusted yield."""

    candidate: StrategyCandidate
    gross_apy: Decimal
    # Gross APY minus ongoing structural drag (e.g. LP impermanent loss).
    net_apy: Decimal
    switch_cost: SwitchCostBreakdown
    # 0.0 for the current strategy, math.inf when the switch never pays back.
    break_even_days: float
    # "30-day adjusted APY": net APY minus annualized switch cost.
    score: Decimal


@dataclass(frozen=True)
class IdleCapitalRecommendation:
    """Verdict for capital that is not deployed in any yield-bearing strategy."""

    best_strategy: StrategyCandidate
    net_apy_after_fees: Decimal
    improvement: Decimal
    switch_cost: SwitchCostBreakdown
    break_even_days: float
    should_deploy: bool
    reasoning: str


@dataclass(frozen=True)
class LeverageState:
    """Current state of an open multiply position."""

    current_leverage: Decimal
    # Max leverage allowed by the market, when known.
    max_leverage: Decimal | None = None


@dataclass(frozen=True)
class HoldAction:
    """Keep capital where it is."""

    kind: ClassVar[str] = "hold"


@dataclass(frozen=True)
class SwitchAction:
    """Move capital from one strategy to another."""

    from_strategy: StrategyId
    to_strategy: StrategyId
    kind: ClassVar[str] = "switch"


@dataclass(frozen=True)
class LeverUpAction:
    """Run more borrow/swap/deposit loops on an existing leveraged position (not a switch)."""

    strategy: StrategyId
    current_leverage: Decimal
    target_leverage: Decimal
    kind: ClassVar[str] = "lever_up"


RebalanceAction = HoldAction | SwitchAction | LeverUpAction


@dataclass(frozen=True)
class RebalanceRecommendation:
    """Outcome of a single evaluation cycle. Built once, never mutated."""

    action: RebalanceAction
    should_rebalance: bool
    current_strategy: StrategyId
    current_apy: Decimal
    best_alternative: ScoredStrategy | None
    all_strategies: tuple[ScoredStrategy, ...]
    # Audit trail, in the order decisions were made.
    reasoning: tuple[str, ...]
    timestamp: datetime
    capital: Decimal
    idle_capital: Decimal
    idle_recommendation: IdleCapitalRecommendation | None


@dataclass(frozen=True)
class RateHistoryEntry:
    """A single observed yield sample."""

    timestamp: int  # ms since epoch
    strategy_id: StrategyId
    apy: float
