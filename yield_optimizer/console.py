"""Console output formatting."""

from yield_optimizer.backtest import BacktestMode, BacktestResult, best_mode, optimizer_alpha
from yield_optimizer.fee_model import cost_components
from yield_optimizer.formatters import (
    format_apy,
    format_break_even,
    format_signed_pct,
    format_sol,
    format_usd,
)
from yield_optimizer.models import (
    LeverUpAction,
    RebalanceRecommendation,
    StrategyId,
    SwitchAction,
    SwitchCostBreakdown,
)


def print_recommendation(rec: RebalanceRecommendation) -> None:
    """Print one decision cycle: strategy table, reasoning trail and verdict."""
    ts = rec.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
    print("=" * 70)
    print("🔄 REBALANCER DECISION")
    print(f"   🕐 {ts}  •  current={rec.current_strategy} @ {format_apy(rec.current_apy)}")
    print("=" * 70)

    print("\n📋 Strategies (best first):")
    print(f"   {'Strategy':<22} {'Gross':>8} {'Net':>8} {'Cost (SOL)':>12} {'Break-even':>11} {'Score':>8}")
    print("   " + "─" * 73)
    for s in rec.all_strategies:
        marker = "➡️ " if s.candidate.id == rec.current_strategy else "   "
        unavailable = "" if s.candidate.available else " (n/a)"
        print(
            f"{marker}{str(s.candidate.id) + unavailable:<22} {format_apy(s.gross_apy):>8} {format_apy(s.net_apy):>8} "
            f"{s.switch_cost.total_cost:>12.6f} {format_break_even(s.break_even_days):>11} {s.score:>8.2f}"
        )

    print("\n🧠 Reasoning:")
    for line in rec.reasoning:
        print(f"   {line}")

    print()
    action = rec.action
    if isinstance(action, SwitchAction):
        print(f"⚡ REBALANCE: {action.from_strategy} → {action.to_strategy}")
    elif isinstance(action, LeverUpAction):
        print(f"📈 LEVER UP: {action.current_leverage:.2f}x → {action.target_leverage:.2f}x ({action.strategy})")
    else:
        print("✋ HOLD: no rebalance")

    idle = rec.idle_recommendation
    if idle is not None:
        verdict = "🚀 DEPLOY" if idle.should_deploy else "💤 KEEP IDLE"
        print(f"{verdict}: {rec.idle_capital:.4f} SOL → {idle.best_strategy.id} ({idle.reasoning})")


def print_cost_breakdown(
    from_strategy: StrategyId, to_strategy: StrategyId, amount, b: SwitchCostBreakdown
) -> None:
    """Print a single switch-cost breakdown."""
    print(f"💸 Switch cost: {from_strategy} → {to_strategy} ({amount} SOL)")
    print("   " + "─" * 50)
    for name, value in cost_components(b).items():
        print(f"   • {name.replace('_', ' ').capitalize():<24} {format_sol(value, decimals=9)}")
    print("   " + "─" * 50)
    print(f"   Total:                     {format_sol(b.total_cost, decimals=9)} ({format_usd(b.total_cost_in_reference, decimals=4)})")
    print(f"   Transactions: {b.transaction_count}  •  Swap required: {'yes' if b.swap_required else 'no'}")


def print_backtest_detail(result: BacktestResult) -> None:
    """Print the summary of a single backtest run."""
    s = result.summary
    cfg = result.config
    source = "synthetic" if result.synthetic else "recorded"
    print("=" * 70)
    print(f"🧪 BACKTEST: {cfg.mode}  •  {cfg.days} days  •  {source} rates")
    print("=" * 70)
    print(f"   Start value:        {format_sol(s.start_value, decimals=4)}")
    print(f"   End value:          {format_sol(s.end_value, decimals=4)}")
    print(f"   Total return:       {format_sol(s.total_return, decimals=6)} ({format_signed_pct(s.total_return_pct)})")
    print(f"   Annualized return:  {format_signed_pct(s.annualized_return, decimals=1)}")
    print(f"   Max drawdown:       {s.max_drawdown_pct:.2f}%")
    print(f"   Fees paid:          {format_sol(s.total_fees_paid)}")
    print(f"   Rebalances:         {s.rebalance_count}")
    print(f"   Avg holding period: {s.avg_holding_period_days:.1f} days")
    print(f"   Win rate:           {s.win_rate_pct:.0f}%")
    print("   📅 Days per strategy:")
    for sid, days in sorted(s.days_per_strategy.items(), key=lambda kv: kv[1], reverse=True):
        print(f"      • {sid:<22} {days:.1f}")

    switches = [snap for snap in result.snapshots if snap.action.startswith("switch")]
    if switches:
        print("   🔀 Switches:")
        for snap in switches:
            print(f"      day {snap.day:5.1f}: {snap.action}")


def print_comparison(results: dict[BacktestMode, BacktestResult]) -> None:
    """Print the mode comparison table, best mode and optimizer alpha."""
    any_result = next(iter(results.values()))
    days = any_result.config.days
    print("=" * 78)
    print("📊 STRATEGY COMPARISON")
    print("=" * 78)
    print(f"   {'Mode':<12} │ {'End (SOL)':>10} │ {'Return':>8} │ {'Annual':>8} │ {'Max DD':>7} │ {'Fees (SOL)':>10} │ {'Rebal':>5}")
    print("   " + "─" * 75)
    for mode, result in results.items():
        s = result.summary
        print(
            f"   {str(mode):<12} │ {s.end_value:>10.4f} │ {format_signed_pct(s.total_return_pct):>8} │ "
            f"{format_signed_pct(s.annualized_return, decimals=1):>8} │ {s.max_drawdown_pct:>6.2f}% │ "
            f"{s.total_fees_paid:>10.4f} │ {s.rebalance_count:>5}"
        )

    winner = best_mode(results)
    print(f"\n🏆 Best mode: {winner} ({format_signed_pct(results[winner].summary.total_return_pct)})")
    if BacktestMode.OPTIMIZE in results and BacktestMode.HOLD in results:
        alpha = optimizer_alpha(results)
        print(f"📈 Optimizer alpha vs hold: {format_signed_pct(alpha)}")
        if alpha > 0:
            print(f"   ✅ The optimizer beat passive holding by {alpha:.2f}% over {days} days")
        else:
            print(f"   ⚠️  The optimizer did not beat passive holding over {days} days (fees outweighed gains)")
