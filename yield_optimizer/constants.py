"""Constants and fee assumptions for yield optimization.

All cost assumptions live here so they can be audited in one place.
Percentages stored as `*_RATE` are fractions (0.001 == 0.1%); APYs are percentages (5.57 == 5.57%).
"""

from decimal import Decimal

# Base Solana tx fee (single signature, simple transfer/deposit).
BASE_TX_FEE_SOL = Decimal("0.000005")

# Priority fee estimate for complex txs (Jupiter swaps, Kamino deposits with many accounts).
# Jupiter routes add 0.0001-0.001 SOL in priority fees; 0.0005 SOL is the conservative middle.
COMPLEX_TX_FEE_SOL = Decimal("0.0005")

# LP vault withdrawal: no explicit fee on-chain, cost is embedded in share price / exit impact.
LP_VAULT_WITHDRAW_FEE_RATE = Decimal("0.001")

# LP vault deposit: single-sided deposits route through an internal swap, modelled as 0.05% overhead.
LP_VAULT_DEPOSIT_FEE_RATE = Decimal("0.0005")

# K-Lend supply has no explicit deposit/withdrawal fees (cost is only tx fees).
KLEND_DEPOSIT_FEE_RATE = Decimal(0)
KLEND_WITHDRAW_FEE_RATE = Decimal(0)

# JitoSOL <> SOL slippage tiers: (upper bound in SOL, rate). The last tier has no upper bound.
# JitoSOL-SOL liquidity is deep; larger trades still pay a strictly higher percentage.
SLIPPAGE_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal(5), Decimal("0.003")),
    (Decimal(50), Decimal("0.005")),
)
SLIPPAGE_RATE_LARGE = Decimal("0.01")

# Share of an LP vault deposit that is swapped internally on a single-sided deposit.
LP_SINGLE_SIDED_SWAP_SHARE = Decimal("0.5")

# Jupiter platform fee on aggregated JitoSOL <> SOL routes.
PLATFORM_FEE_RATE = Decimal("0.001")

# Impermanent loss estimate for the JitoSOL-SOL concentrated position, per 30 days.
# Correlated pair with ~0.45% monthly ratio drift; concentration amplifies it, so 0.1% is conservative.
IL_ESTIMATE_30D_RATE = Decimal("0.001")

# Ongoing IL drag applied to LP vault APY (percentage points per year): 0.1% * 12 * 100.
LP_VAULT_IL_DRAG_APY = IL_ESTIMATE_30D_RATE * 12 * 100

# Minutes capital spends in transit during withdraw + swap + deposit.
TRANSIT_TIME_MINUTES = 5
MINUTES_PER_YEAR = 365 * 24 * 60

DAYS_PER_YEAR = 365
HOURS_PER_YEAR = DAYS_PER_YEAR * 24
MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

# Tx counts per switch shape.
TX_COUNT_SINGLE_LEG = 1  # deposit only or withdraw only
TX_COUNT_ROUND_TRIP = 2  # withdraw + deposit
TX_COUNT_LEVERAGE_LOOP = 8  # ~3 loop iterations x (borrow + swap + deposit) + initial deposit

# Score amortization window: switch cost is spread over this many days, then annualized.
SCORE_AMORTIZATION_DAYS = 30

# Decision criteria.
MAX_BREAK_EVEN_DAYS = 7.0
MIN_APY_IMPROVEMENT = Decimal(1)
SUSTAINED_YIELD_WINDOW_MS = MS_PER_HOUR
# Fraction of the sustained-yield window the oldest sample must cover.
SUSTAINED_MIN_COVERAGE = 0.5

# Idle capital below this (SOL) is dust and is never deployed.
IDLE_DUST_THRESHOLD_SOL = Decimal("0.01")

# Leverage targets for an existing multiply position.
DEFAULT_TARGET_LEVERAGE = Decimal("1.5")
TARGET_LEVERAGE_SAFETY = Decimal("0.8")  # fraction of max leverage we are willing to run
LEVER_UP_TOLERANCE = Decimal("0.95")  # lever up only when below 95% of target

# Baseline JitoSOL staking yield, used when no live rate is available.
DEFAULT_STAKING_APY = Decimal("5.57")

# Reference (SOL/USD) price.
DEFAULT_REFERENCE_PRICE = Decimal(200)
COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price?ids=solana&vs_currencies=usd"
DEFAULT_TIMEOUT = 10

# Rate history retention: enough for ~1 week at 2h intervals x 5 strategies.
RATE_HISTORY_MAX_ENTRIES = 500

# Backtest synthetic-rate model (observed Kamino ranges, Feb 2026): strategy id -> (mean APY, volatility).
SYNTHETIC_RATE_PARAMS: dict[str, tuple[float, float]] = {
    "hold_jitosol": (5.6, 0.3),  # very stable staking yield
    "lp_vault": (11.0, 4.0),  # LP fees fluctuate with volume
    "klend_sol_supply": (7.0, 2.5),  # lending rates depend on utilization
    "klend_jitosol_supply": (6.5, 1.5),
    "multiply": (-2.0, 5.0),  # often negative (borrow > staking)
}
SYNTHETIC_MEAN_REVERSION = 0.1
SYNTHETIC_NOISE_SCALE = 0.3
SYNTHETIC_APY_FLOOR = 0.0
SYNTHETIC_LEVERAGED_APY_FLOOR = -10.0

# Fixed thresholds for the "aggressive" backtest mode.
AGGRESSIVE_MIN_APY_IMPROVEMENT = 0.5
AGGRESSIVE_MAX_BREAK_EVEN_DAYS = 14.0

# Data files
DATA_DIR_NAME = "yield_optimizer"
DATA_DIR_ENV = "YIELD_OPTIMIZER_DATA_DIR"
RATE_HISTORY_FILE = "rate-history.json"
DECISION_LOG_FILE = "rebalancer-log.jsonl"
