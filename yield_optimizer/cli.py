"""CLI and main logic."""

import argparse
import sys
from decimal import Decimal

from yield_optimizer.backtest import BacktestConfig, BacktestMode, run_backtest, run_comparison
from yield_optimizer.console import print_backtest_detail, print_comparison, print_cost_breakdown, print_recommendation
from yield_optimizer.constants import DEFAULT_REFERENCE_PRICE, DEFAULT_STAKING_APY, MAX_BREAK_EVEN_DAYS, MIN_APY_IMPROVEMENT
from yield_optimizer.decision_log import default_decision_log
from yield_optimizer.fee_model import compute_switch_cost
from yield_optimizer.formatters import as_decimal
from yield_optimizer.history import default_rate_history
from yield_optimizer.leverage import leveraged_net_apy
from yield_optimizer.models import LeverageState, StrategyCandidate, StrategyId
from yield_optimizer.policy import PolicyThresholds, baseline_apy, evaluate
from yield_optimizer.price import fetch_reference_price
from yield_optimizer.roster import load_roster

STRATEGY_CHOICES = [s.value for s in StrategyId]
MODE_CHOICES = [m.value for m in BacktestMode]


def _add_evaluate_parser(sub) -> None:
    p = sub.add_parser("evaluate", help="Run one rebalancing decision cycle against a strategy roster.")
    p.add_argument("--roster", required=True, help="JSON file with the current strategy roster.")
    p.add_argument("--current", required=True, choices=STRATEGY_CHOICES, help="Strategy currently holding capital.")
    p.add_argument(
        "--current-apy",
        type=as_decimal,
        default=None,
        help="APY of the current position (%%). Default: roster APY, or the leveraged estimate for multiply.",
    )
    p.add_argument("--capital", type=as_decimal, required=True, help="Deployed capital (SOL).")
    p.add_argument("--idle", type=as_decimal, default=Decimal(0), help="Idle JitoSOL not deployed anywhere (SOL).")
    p.add_argument("--price", type=as_decimal, default=None, help="SOL/USD price. Default: fetched from CoinGecko.")
    p.add_argument("--leverage", type=as_decimal, default=None, help="Current leverage of the multiply position.")
    p.add_argument("--max-leverage", type=as_decimal, default=None, help="Max leverage allowed by the market.")
    p.add_argument(
        "--borrow-apy",
        type=as_decimal,
        default=None,
        help="SOL borrow APY (%%), used to estimate the multiply position's APY when --current-apy is omitted.",
    )
    p.add_argument("--min-improvement", type=as_decimal, default=MIN_APY_IMPROVEMENT, help="Minimum APY gain (%%).")
    p.add_argument("--max-break-even", type=float, default=MAX_BREAK_EVEN_DAYS, help="Maximum break-even (days).")
    p.add_argument("--no-log", action="store_true", help="Do not append this cycle to the decision log.")


def _add_cost_parser(sub) -> None:
    p = sub.add_parser("cost", help="Show the cost of a single strategy switch.")
    p.add_argument("--from", dest="from_strategy", required=True, choices=STRATEGY_CHOICES)
    p.add_argument("--to", dest="to_strategy", required=True, choices=STRATEGY_CHOICES)
    p.add_argument("--amount", type=as_decimal, required=True, help="Amount to move (SOL).")
    p.add_argument("--price", type=as_decimal, default=DEFAULT_REFERENCE_PRICE, help="SOL/USD price.")
    p.add_argument(
        "--current-apy", type=as_decimal, default=DEFAULT_STAKING_APY, help="APY of the strategy being left (%%)."
    )


def _add_backtest_parser(sub) -> None:
    p = sub.add_parser("backtest", help="Replay recorded (or synthetic) rates through an allocation mode.")
    p.add_argument("--days", type=int, default=30)
    p.add_argument("--capital", type=as_decimal, default=Decimal(2), help="Initial capital (SOL).")
    p.add_argument("--price", type=as_decimal, default=DEFAULT_REFERENCE_PRICE, help="SOL/USD price.")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--mode", choices=MODE_CHOICES, default=BacktestMode.OPTIMIZE.value)
    group.add_argument("--compare", action="store_true", help="Run every mode on the same rates.")
    p.add_argument("--seed", type=int, default=None, help="Seed for synthetic rates (reproducible runs).")
    p.add_argument("--min-improvement", type=float, default=1.0, help="Optimize mode: minimum APY gain (%%).")
    p.add_argument("--max-break-even", type=float, default=7.0, help="Optimize mode: maximum break-even (days).")
    p.add_argument("--interval", type=float, default=2.0, help="Cycle interval (hours).")


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(description="Cost-aware yield optimizer for SOL/JitoSOL strategies.")
    sub = p.add_subparsers(dest="command", required=True)
    _add_evaluate_parser(sub)
    _add_cost_parser(sub)
    _add_backtest_parser(sub)
    return p.parse_args(argv)


def _resolve_current_apy(args: argparse.Namespace, candidates: list[StrategyCandidate]) -> Decimal | None:
    if args.current_apy is not None:
        return args.current_apy
    current = StrategyId(args.current)
    if current == StrategyId.MULTIPLY and args.leverage is not None and args.borrow_apy is not None:
        return leveraged_net_apy(baseline_apy(candidates), args.borrow_apy, args.leverage)
    for c in candidates:
        if c.id == current:
            return c.gross_apy
    return None


def _run_evaluate(args: argparse.Namespace) -> int:
    try:
        candidates = load_roster(args.roster)
    except (OSError, ValueError) as ex:
        print(f"Error: failed to load roster {args.roster}: {ex}", file=sys.stderr)
        return 2
    if not candidates:
        print("Error: roster contains no usable strategies.", file=sys.stderr)
        return 1

    current_apy = _resolve_current_apy(args, candidates)
    if current_apy is None:
        print(
            f"Error: --current-apy is required ({args.current} is not in the roster).",
            file=sys.stderr,
        )
        return 2

    price = args.price if args.price is not None else fetch_reference_price()
    leverage = None
    if args.leverage is not None:
        leverage = LeverageState(current_leverage=args.leverage, max_leverage=args.max_leverage)

    rec = evaluate(
        candidates,
        StrategyId(args.current),
        current_apy,
        args.capital,
        args.idle,
        price,
        rate_history=default_rate_history(),
        decision_log=None if args.no_log else default_decision_log(),
        leverage=leverage,
        thresholds=PolicyThresholds(
            max_break_even_days=args.max_break_even,
            min_apy_improvement=args.min_improvement,
        ),
    )
    print_recommendation(rec)
    return 0


def _run_cost(args: argparse.Namespace) -> int:
    breakdown = compute_switch_cost(args.from_strategy, args.to_strategy, args.amount, args.price, args.current_apy)
    print_cost_breakdown(StrategyId(args.from_strategy), StrategyId(args.to_strategy), args.amount, breakdown)
    return 0


def _run_backtest(args: argparse.Namespace) -> int:
    if args.days <= 0 or args.interval <= 0:
        print("Error: --days and --interval must be positive.", file=sys.stderr)
        return 2

    history = default_rate_history().entries()
    config = BacktestConfig(
        initial_capital=args.capital,
        reference_price=args.price,
        mode=BacktestMode(args.mode),
        days=args.days,
        min_apy_improvement=args.min_improvement,
        max_break_even_days=args.max_break_even,
        cycle_interval_hours=args.interval,
        seed=args.seed,
    )
    if args.compare:
        results = run_comparison(
            args.days, args.capital, args.price, seed=args.seed, history=history, base_config=config
        )
        print_comparison(results)
        return 0

    result = run_backtest(config, history=history)
    if result.synthetic:
        print(f"📊 Insufficient recorded history ({len(history)} samples), using synthetic rates", file=sys.stderr)
    print_backtest_detail(result)
    return 0


def main(argv: list[str]) -> int:
    """Main entry point."""
    args = parse_args(argv)
    if args.command == "evaluate":
        return _run_evaluate(args)
    if args.command == "cost":
        return _run_cost(args)
    return _run_backtest(args)
