from dataclasses import dataclass

LEDGER_FILENAME = "etf_transactions.json"
ALLOCATIONS_FILENAME = "etf_allocations.json"
PRICE_CACHE_FILENAME = "etf_price_cache.json"

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS


@dataclass
class PriceUpdateConfig:
    """
    Dataclass holding the cadence of the price refreshes, in milliseconds.

    """

    market_hours_interval: int = 5 * MINUTE_MS
    after_hours_interval: int = 2 * HOUR_MS
    # Prices older than this are refreshed as soon as possible
    stale_threshold: int = 30 * MINUTE_MS
