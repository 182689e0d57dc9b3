"""Reference price (SOL/USD) fetching."""

import sys
from decimal import Decimal

from yield_optimizer.constants import COINGECKO_PRICE_URL, DEFAULT_REFERENCE_PRICE, DEFAULT_TIMEOUT
from yield_optimizer.formatters import as_decimal


def fetch_reference_price(*, url: str = COINGECKO_PRICE_URL, timeout_s: int = DEFAULT_TIMEOUT) -> Decimal:
    """Fetch the SOL/USD price from CoinGecko. Falls back to DEFAULT_REFERENCE_PRICE on any failure."""
    try:
        import requests
    except ImportError as ex:  # pragma: no cover
        raise RuntimeError("Missing dependency. Run: uv sync") from ex

    try:
        resp = requests.get(url, timeout=timeout_s)
        resp.raise_for_status()
        price = as_decimal(resp.json()["solana"]["usd"])
        if price <= 0:
            raise ValueError(f"non-positive price {price}")
        return price
    except Exception as ex:  # pylint: disable=broad-exception-caught
        print(f"⚠️  Price fetch failed ({ex}), using ${DEFAULT_REFERENCE_PRICE}", file=sys.stderr)
        return DEFAULT_REFERENCE_PRICE
