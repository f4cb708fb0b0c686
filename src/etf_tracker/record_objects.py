from dataclasses import dataclass, asdict
from datetime import date
from typing import Literal, Optional, Union

LITERAL_TRANSACTION_ACTION = Literal["BUY", "SELL"]
TRANSACTION_ACTIONS = ("BUY", "SELL")


@dataclass(frozen=True)
class Transaction:
    """
    Dataclass to store a transaction of the ledger.

    Once recorded a transaction is never modified, it can only be deleted from the ledger.
    The `total` is stored as given (it may include fees) and is never re-derived from shares and price.

    """

    date: date
    symbol: str
    action: LITERAL_TRANSACTION_ACTION
    shares: float
    price: float
    total: float
    notes: str = ""
    id: Optional[int] = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalization has to go through object.__setattr__
        # Non-string values are kept as given so that validation rejects them
        if isinstance(self.symbol, str):
            object.__setattr__(self, "symbol", self.symbol.strip().upper())
        if isinstance(self.action, str):
            object.__setattr__(self, "action", self.action.strip().upper())
        if self.notes is None:
            object.__setattr__(self, "notes", "")

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """
        Method to build a transaction from its stored representation.

        The date is expected as an ISO string (YYYY-MM-DD). When `total` is missing it is computed as shares * price.

        """
        transaction_date = data["date"]
        if isinstance(transaction_date, str):
            transaction_date = date.fromisoformat(transaction_date)
        shares = float(data["shares"])
        price = float(data["price"])
        total = data.get("total")
        if total is None:
            total = shares * price
        return cls(
            date=transaction_date,
            symbol=data["symbol"],
            action=data["action"],
            shares=shares,
            price=price,
            total=float(total),
            notes=data.get("notes") or "",
            id=data.get("id"),
        )

    def to_dict(self) -> dict[str, Union[str, float, int, None]]:
        """
        Method to get the stored representation of the transaction.

        """
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return data


@dataclass
class Position:
    """
    Dataclass to store the current holding of one instrument.

    It is derived from the ledger and never persisted on its own.

    """

    symbol: str
    shares: float = 0.0
    avg_entry: float = 0.0
    invested: float = 0.0
    reserved: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.shares > 0

    def close(self) -> None:
        """
        Method to flatten the position.

        """
        self.shares = 0.0
        self.avg_entry = 0.0
        self.invested = 0.0


@dataclass
class Allocation:
    """
    Dataclass to store the capital reserved for an instrument and its strategy note.

    These values are edited by hand, the ledger does not affect them.

    """

    symbol: str
    reserved: float = 0.0
    strategy: str = ""

    def __post_init__(self) -> None:
        self.symbol = self.symbol.strip().upper()

    @classmethod
    def from_dict(cls, data: dict) -> "Allocation":
        return cls(
            symbol=data["symbol"],
            reserved=float(data.get("reserved", 0.0)),
            strategy=data.get("strategy", ""),
        )

    def to_dict(self) -> dict[str, Union[str, float]]:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioMetrics:
    """
    Dataclass to store the aggregated figures of the portfolio.

    """

    total_invested: float
    total_value: float
    total_reserved: float
    total_gain_loss: float
    gain_loss_percent: float
    open_positions: int
