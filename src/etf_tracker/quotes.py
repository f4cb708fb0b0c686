import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

from .config import PriceUpdateConfig
from .exceptions import QuoteSourceError
from .store import JsonStore
from .support import now_ms


class QuoteSource:
    """
    Interface of the providers of current market prices.

    `fetch` is best effort: a symbol missing from the result has no fresh quote.
    A provider that cannot answer at all raises QuoteSourceError.

    """

    def fetch(self, symbols: Iterable[str]) -> dict[str, float]:
        raise NotImplementedError


@dataclass
class StaticQuoteSource(QuoteSource):
    """
    Quote source answering from a fixed table of prices.

    """

    prices: dict[str, float] = field(default_factory=dict)

    def fetch(self, symbols: Iterable[str]) -> dict[str, float]:
        return {symbol: self.prices[symbol] for symbol in symbols if symbol in self.prices}


@dataclass
class PriceCache:
    """
    Dataclass keeping the last known price of each symbol and when they were refreshed.

    """

    prices: dict[str, float] = field(default_factory=dict)
    last_update: Optional[int] = None  # ms

    def get(self, symbol: str) -> Optional[float]:
        return self.prices.get(symbol)

    def update(self, prices: dict[str, float], timestamp: Optional[int] = None) -> list[str]:
        """
        Method to store fresh quotes.

        Non-positive quotes are ignored. The timestamp only moves when at least one price was stored.
        Returns the symbols updated.

        """
        updated = []
        for symbol, price in prices.items():
            if price is not None and math.isfinite(price) and price > 0:
                self.prices[symbol] = float(price)
                updated.append(symbol)
        if updated:
            self.last_update = timestamp if timestamp is not None else now_ms()
        return updated

    def age(self, now: Optional[int] = None) -> Optional[int]:
        """
        Method to get the time elapsed since the last refresh, in milliseconds.

        """
        if self.last_update is None:
            return None
        if now is None:
            now = now_ms()
        return now - self.last_update

    def is_stale(self, threshold: int, now: Optional[int] = None) -> bool:
        age = self.age(now)
        return age is None or age > threshold

    def refresh(self, source: QuoteSource, symbols: Iterable[str], timestamp: Optional[int] = None) -> list[str]:
        """
        Method to ask a quote source for prices and store them.

        Any failure of the source (transport error, timeout, malformed answer) is raised as QuoteSourceError,
        the cached prices stay as they were.

        """
        symbols = list(symbols)
        if not symbols:
            return []
        try:
            prices = source.fetch(symbols)
        except QuoteSourceError:
            raise
        except Exception as e:
            raise QuoteSourceError(f"{type(e).__name__}: {e}") from e
        if prices is None:
            raise QuoteSourceError("Quote source returned no data")
        if not isinstance(prices, Mapping):
            raise QuoteSourceError(f"Quote source returned {type(prices).__name__}, expected a mapping of prices")
        return self.update(prices, timestamp=timestamp)

    def to_dict(self) -> dict:
        return {"prices": dict(self.prices), "last_update": self.last_update}

    @classmethod
    def from_dict(cls, data: dict) -> "PriceCache":
        return cls(
            prices={symbol: float(price) for symbol, price in data.get("prices", {}).items()},
            last_update=data.get("last_update"),
        )

    @classmethod
    def load(cls, store: JsonStore, fallback: Optional[dict[str, float]] = None) -> "PriceCache":
        """
        Method to load the cached prices, or start from the fallback prices when nothing was cached.

        Fallback prices carry no timestamp, so they are always stale.

        """
        data = store.read()
        if data is None:
            return cls(prices=dict(fallback or {}))
        return cls.from_dict(data)

    def save(self, store: JsonStore) -> None:
        store.write(self.to_dict())


def is_market_hours(now: Optional[datetime] = None) -> bool:
    """
    Function to check if the US market is open.

    Regular session 9:30-16:00 ET taken loosely as 13:00-22:00 UTC, so it holds across daylight saving time.

    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    if now.weekday() >= 5:
        return False
    return 13 <= now.hour < 22


def update_interval(config: PriceUpdateConfig, now: Optional[datetime] = None) -> int:
    """
    Function to get the delay until the next price refresh, in milliseconds.

    """
    if is_market_hours(now):
        return config.market_hours_interval
    return config.after_hours_interval
