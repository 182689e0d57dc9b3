"""Historical backtesting engine.

Replays recorded (or synthetic) rate series through one of five allocation modes and tracks
capital, fees, drawdown and switch quality. Every switch pays the full modelled switch cost.
"""

import math
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum

import numpy as np
from tqdm import tqdm

from yield_optimizer.constants import (
    AGGRESSIVE_MAX_BREAK_EVEN_DAYS,
    AGGRESSIVE_MIN_APY_IMPROVEMENT,
    DAYS_PER_YEAR,
    DEFAULT_STAKING_APY,
    HOURS_PER_YEAR,
    MS_PER_DAY,
    MS_PER_HOUR,
    SYNTHETIC_APY_FLOOR,
    SYNTHETIC_LEVERAGED_APY_FLOOR,
    SYNTHETIC_MEAN_REVERSION,
    SYNTHETIC_NOISE_SCALE,
    SYNTHETIC_RATE_PARAMS,
)
from yield_optimizer.fee_model import compute_switch_cost
from yield_optimizer.formatters import as_decimal
from yield_optimizer.models import RateHistoryEntry, StrategyId
from yield_optimizer.scorer import break_even_days


class BacktestMode(str, Enum):
    """Allocation policy replayed by the backtester."""

    HOLD = "hold"  # always hold JitoSOL (baseline)
    OPTIMIZE = "optimize"  # configured thresholds
    AGGRESSIVE = "aggressive"  # looser fixed thresholds
    KLEND_ONLY = "klend_only"  # best of the two lending venues
    LP_ONLY = "lp_only"  # always in the LP vault

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BacktestConfig:
    initial_capital: Decimal = Decimal(2)
    reference_price: Decimal = Decimal(200)
    mode: BacktestMode = BacktestMode.OPTIMIZE
    days: int = 30
    min_apy_improvement: float = 1.0
    max_break_even_days: float = 7.0
    cycle_interval_hours: float = 2.0
    # Seed for the synthetic rate generator; None draws fresh entropy.
    seed: int | None = None
    # End of the synthetic series (ms since epoch); None means now.
    end_ms: int | None = None


@dataclass(frozen=True)
class BacktestSnapshot:
    timestamp: int
    day: float
    strategy: StrategyId
    apy: float
    capital: Decimal
    capital_in_reference: Decimal
    cumulative_fees: Decimal
    action: str


@dataclass(frozen=True)
class BacktestSummary:
    start_value: Decimal
    end_value: Decimal
    total_return: Decimal
    total_return_pct: float
    annualized_return: float
    max_drawdown_pct: float
    total_fees_paid: Decimal
    rebalance_count: int
    avg_holding_period_days: float
    days_per_strategy: dict[str, float] = field(default_factory=dict)
    win_rate_pct: float = 0.0


@dataclass(frozen=True)
class BacktestResult:
    config: BacktestConfig
    snapshots: tuple[BacktestSnapshot, ...]
    summary: BacktestSummary
    # True when the run used generated rates instead of recorded history.
    synthetic: bool = False


def required_samples(days: int, interval_hours: float) -> int:
    """Rate samples needed to cover `days` at one sample per strategy per cycle.

    A non-positive interval fits no cycles, so nothing is needed.
    """
    if not interval_hours > 0:
        return 0
    return math.ceil(days * 24 / interval_hours) * len(SYNTHETIC_RATE_PARAMS)


def generate_synthetic_rates(
    days: int,
    interval_hours: float,
    seed: int | None = None,
    end_ms: int | None = None,
) -> list[RateHistoryEntry]:
    """Mean-reverting random walk around observed APY ranges, one sample per strategy per cycle.

    Deterministic for a given (days, interval_hours, seed, end_ms). Empty when the interval is
    under one millisecond.
    """
    if not interval_hours > 0 or interval_hours * MS_PER_HOUR < 1:
        return []
    rng = np.random.default_rng(seed)
    end = int(time.time() * 1000) if end_ms is None else end_ms
    start = end - days * MS_PER_DAY
    interval_ms = int(round(interval_hours * MS_PER_HOUR))
    current = {sid: mean for sid, (mean, _vol) in SYNTHETIC_RATE_PARAMS.items()}

    rates: list[RateHistoryEntry] = []
    t = start
    while t <= end:
        for sid, (mean, vol) in SYNTHETIC_RATE_PARAMS.items():
            reversion = SYNTHETIC_MEAN_REVERSION * (mean - current[sid])
            noise = (rng.random() - 0.5) * vol * SYNTHETIC_NOISE_SCALE
            floor = SYNTHETIC_LEVERAGED_APY_FLOOR if sid == StrategyId.MULTIPLY.value else SYNTHETIC_APY_FLOOR
            current[sid] = max(floor, current[sid] + reversion + noise)
            rates.append(RateHistoryEntry(timestamp=t, strategy_id=StrategyId(sid), apy=float(current[sid])))
        t += interval_ms
    return rates


def _group_by_timestamp(rates: Sequence[RateHistoryEntry]) -> dict[int, dict[StrategyId, float]]:
    grouped: dict[int, dict[StrategyId, float]] = {}
    for r in rates:
        grouped.setdefault(r.timestamp, {})[r.strategy_id] = r.apy
    return grouped


def _pick_optimized(
    rates_at: dict[StrategyId, float],
    current: StrategyId,
    current_apy: float,
    capital: Decimal,
    reference_price: Decimal,
    min_improvement: float,
    max_break_even: float,
) -> StrategyId | None:
    """Highest-APY alternative that clears both the improvement and break-even thresholds."""
    best = None
    best_apy = current_apy
    for sid, apy in rates_at.items():
        if sid == current:
            continue
        # Leverage that costs more to borrow than it earns is never worth entering.
        if sid == StrategyId.MULTIPLY and apy <= 0:
            continue
        if apy - current_apy <= min_improvement:
            continue
        cost = compute_switch_cost(current, sid, capital, reference_price, current_apy)
        be_days = break_even_days(cost, capital, apy, current_apy)
        if be_days <= max_break_even and apy > best_apy:
            best, best_apy = sid, apy
    return best


def _pick_target(config: BacktestConfig, rates_at, current, current_apy, capital) -> StrategyId | None:
    mode = config.mode
    if mode == BacktestMode.HOLD:
        return None
    if mode in (BacktestMode.OPTIMIZE, BacktestMode.AGGRESSIVE):
        if mode == BacktestMode.AGGRESSIVE:
            min_improvement, max_break_even = AGGRESSIVE_MIN_APY_IMPROVEMENT, AGGRESSIVE_MAX_BREAK_EVEN_DAYS
        else:
            min_improvement, max_break_even = config.min_apy_improvement, config.max_break_even_days
        return _pick_optimized(
            rates_at,
            current,
            current_apy,
            capital,
            as_decimal(config.reference_price),
            float(min_improvement),
            float(max_break_even),
        )
    if mode == BacktestMode.KLEND_ONLY:
        klend_sol = rates_at.get(StrategyId.KLEND_SOL_SUPPLY, 0.0)
        klend_jitosol = rates_at.get(StrategyId.KLEND_JITOSOL_SUPPLY, 0.0)
        target = StrategyId.KLEND_JITOSOL_SUPPLY if klend_jitosol > klend_sol else StrategyId.KLEND_SOL_SUPPLY
    else:
        target = StrategyId.LP_VAULT
    return None if target == current else target


def run_backtest(config: BacktestConfig, history: Sequence[RateHistoryEntry] | None = None) -> BacktestResult:
    """Replay `history` (or synthetic rates when it is too short) through `config.mode`.

    Each cycle accrues yield at the current strategy's rate, then applies the mode's decision.
    """
    rates = list(history or [])
    synthetic = len(rates) < required_samples(config.days, config.cycle_interval_hours)
    if synthetic:
        rates = generate_synthetic_rates(config.days, config.cycle_interval_hours, config.seed, config.end_ms)

    price = as_decimal(config.reference_price)
    capital = as_decimal(config.initial_capital)
    start_value = capital
    cumulative_fees = Decimal(0)
    current = StrategyId.HOLD_JITOSOL
    peak = capital
    max_drawdown = 0.0
    rebalance_count = 0
    wins = 0
    # Capital just before the previous switch; a later switch "wins" when it ends above this.
    before_previous_switch: Decimal | None = None
    days_per_strategy: dict[str, float] = {}

    grouped = _group_by_timestamp(rates)
    timestamps = sorted(grouped)
    start_ts = timestamps[0] if timestamps else 0
    snapshots: list[BacktestSnapshot] = []

    for ts in timestamps:
        rates_at = grouped[ts]
        day = (ts - start_ts) / MS_PER_DAY
        current_apy = rates_at.get(current, float(DEFAULT_STAKING_APY))

        if snapshots:
            hours = Decimal(ts - snapshots[-1].timestamp) / MS_PER_HOUR
            capital += capital * as_decimal(current_apy) / 100 / HOURS_PER_YEAR * hours

        days_per_strategy[str(current)] = days_per_strategy.get(str(current), 0.0) + config.cycle_interval_hours / 24

        peak = max(peak, capital)
        if peak > 0:
            max_drawdown = max(max_drawdown, float((peak - capital) / peak))

        action = f"hold ({current})"
        target = _pick_target(config, rates_at, current, current_apy, capital)
        if target is not None:
            cost = compute_switch_cost(current, target, capital, price, current_apy)
            before = capital
            capital -= cost.total_cost
            cumulative_fees += cost.total_cost
            rebalance_count += 1
            if before_previous_switch is not None and capital > before_previous_switch:
                wins += 1
            before_previous_switch = before
            target_apy = rates_at.get(target, 0.0)
            action = (
                f"switch: {current} -> {target} ({current_apy:.2f}% -> {target_apy:.2f}%, "
                f"cost {cost.total_cost:.6f} SOL)"
            )
            current = target

        snapshots.append(
            BacktestSnapshot(
                timestamp=ts,
                day=day,
                strategy=current,
                apy=current_apy,
                capital=capital,
                capital_in_reference=capital * price,
                cumulative_fees=cumulative_fees,
                action=action,
            )
        )

    total_return = capital - start_value
    total_return_pct = float(total_return / start_value * 100) if start_value > 0 else 0.0
    total_days = snapshots[-1].day if snapshots else float(config.days)
    annualized = total_return_pct * DAYS_PER_YEAR / total_days if total_days > 0 else 0.0
    avg_holding = total_days / rebalance_count if rebalance_count else total_days
    win_rate = wins / (rebalance_count - 1) * 100 if rebalance_count > 1 else 0.0

    summary = BacktestSummary(
        start_value=start_value,
        end_value=capital,
        total_return=total_return,
        total_return_pct=total_return_pct,
        annualized_return=annualized,
        max_drawdown_pct=max_drawdown * 100,
        total_fees_paid=cumulative_fees,
        rebalance_count=rebalance_count,
        avg_holding_period_days=avg_holding,
        days_per_strategy=days_per_strategy,
        win_rate_pct=win_rate,
    )
    return BacktestResult(config=config, snapshots=tuple(snapshots), summary=summary, synthetic=synthetic)


def run_comparison(
    days: int = 30,
    initial_capital=Decimal(2),
    reference_price=Decimal(200),
    seed: int | None = None,
    history: Sequence[RateHistoryEntry] | None = None,
    base_config: BacktestConfig | None = None,
) -> dict[BacktestMode, BacktestResult]:
    """Run every mode over one shared rate series."""
    config = replace(
        base_config or BacktestConfig(),
        days=days,
        initial_capital=as_decimal(initial_capital),
        reference_price=as_decimal(reference_price),
        seed=seed,
    )
    rates = list(history or [])
    needed = required_samples(config.days, config.cycle_interval_hours)
    if len(rates) < needed:
        print(f"📊 Insufficient data ({len(rates)}/{needed}), using synthetic rates", file=sys.stderr)
        rates = generate_synthetic_rates(config.days, config.cycle_interval_hours, config.seed, config.end_ms)

    results: dict[BacktestMode, BacktestResult] = {}
    with tqdm(list(BacktestMode), desc="🧪 Backtesting modes", unit="mode", file=sys.stderr) as pbar:
        for mode in pbar:
            pbar.set_postfix(mode=str(mode))
            results[mode] = run_backtest(replace(config, mode=mode), history=rates)
    return results


def best_mode(results: dict[BacktestMode, BacktestResult]) -> BacktestMode:
    """Mode with the highest total return; earlier modes win ties."""
    return max(results, key=lambda m: results[m].summary.total_return_pct)


def optimizer_alpha(results: dict[BacktestMode, BacktestResult]) -> float:
    """Return of the optimize mode over passive holding, in percentage points."""
    return (
        results[BacktestMode.OPTIMIZE].summary.total_return_pct - results[BacktestMode.HOLD].summary.total_return_pct
    )
