from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Union

import pandas as pd

from .reconciler import reconcile, validate_transaction
from .record_objects import Position, Transaction
from .support import check_property_update


TRANSACTION_COLUMNS = (
    "Id",
    "Date",
    "Symbol",
    "Action",
    "Shares",
    "Price",
    "Total",
    "Notes",
)


@dataclass
class Ledger:
    """
    Dataclass to store the ledger of the portfolio.

    The ledger is the single source of truth: positions are replayed from it after every append or deletion.

    """

    transactions: list[Transaction] = field(default_factory=list)
    last_transaction_id: int = 0

    def __post_init__(self):
        # Each mutation bumps the revision, a deletion followed by an append keeps the length but not the revision
        self._revision = 0
        self._properties_evolution_id = dict()
        self._properties_cached = dict()
        transactions = self.transactions
        self.transactions = []
        for transaction in transactions:
            self.append(transaction)

    @classmethod
    def from_transactions(cls, transactions: Iterable[Transaction]) -> "Ledger":
        """
        Method to build a ledger from stored transactions.

        Transactions without an id receive a new one, the stored ids are kept.

        """
        return cls(transactions=list(transactions))

    # Ledger actions methods ------------------------------------------------

    def new_transaction_id(self) -> int:
        """
        Method to get a new transaction ID.

        """
        self.last_transaction_id += 1
        return self.last_transaction_id

    def append(self, transaction: Transaction) -> Transaction:
        """
        Method to append an already built transaction to the ledger.

        The transaction is validated first, an invalid one leaves the ledger untouched.

        """
        validate_transaction(transaction)
        if transaction.id is None:
            transaction = replace(transaction, id=self.new_transaction_id())
        elif any(t.id == transaction.id for t in self.transactions):
            raise ValueError(f"Transaction id {transaction.id} is already in the ledger")
        else:
            self.last_transaction_id = max(self.last_transaction_id, transaction.id)
        self.transactions.append(transaction)
        self._revision += 1
        return transaction

    def record_transaction(
        self,
        date: date,
        symbol: str,
        action: str,
        shares: float,
        price: float,
        total: Optional[float] = None,
        notes: str = "",
    ) -> Transaction:
        """
        Method to record a transaction in the ledger.

        If no total is provided, it is the traded amount: shares * price.

        """
        shares = float(shares)
        price = float(price)
        if total is None:
            total = shares * price
        transaction = Transaction(
            date=date,
            symbol=symbol,
            action=action,
            shares=shares,
            price=price,
            total=float(total),
            notes=notes,
        )
        return self.append(transaction)

    def buy(
        self,
        date: date,
        symbol: str,
        shares: float,
        price: float,
        total: Optional[float] = None,
        notes: str = "",
    ) -> Transaction:
        """
        Method to record a buy transaction in the ledger.

        """
        return self.record_transaction(date, symbol, "BUY", shares, price, total, notes)

    def sell(
        self,
        date: date,
        symbol: str,
        shares: float,
        price: float,
        total: Optional[float] = None,
        notes: str = "",
    ) -> Transaction:
        """
        Method to record a sell transaction in the ledger.

        """
        return self.record_transaction(date, symbol, "SELL", shares, price, total, notes)

    def get_transaction(self, id: int) -> Transaction:
        transaction = next((t for t in self.transactions if t.id == id), None)
        if transaction is None:
            raise KeyError(f"Transaction {id} not found")
        return transaction

    def delete_transaction(self, id: int) -> Transaction:
        """
        Method to delete a transaction from the ledger by its id.

        """
        transaction = self.get_transaction(id)
        self.transactions.remove(transaction)
        self._revision += 1
        return transaction

    def restore_transaction(self, transaction: Transaction, index: int) -> None:
        """
        Method to put a deleted transaction back at its former place in the ledger.

        """
        if any(t.id == transaction.id for t in self.transactions):
            raise ValueError(f"Transaction id {transaction.id} is already in the ledger")
        self.transactions.insert(index, transaction)
        self._revision += 1

    # Ledger reporting methods ------------------------------------------------

    @property
    def evolution_id(self) -> str:
        """
        Property to identify the state of the ledger.

        This will be used to know if the ledger has changed and therefore if the properties need to be recalculated.

        """
        return f"r{self._revision}_t{len(self.transactions)}"

    @property
    def positions(self) -> dict[str, Position]:
        """
        Property to get the positions replayed from the whole ledger.

        The replay is cached until the ledger changes, callers receive copies so the cache cannot be altered.

        """
        return {symbol: replace(position) for symbol, position in self._replayed_positions().items()}

    @check_property_update
    def _replayed_positions(self) -> dict[str, Position]:
        return reconcile(self.transactions)

    @property
    def symbols(self) -> list[str]:
        """
        Property to get the symbols traded in the ledger, in first-seen order.

        """
        return list(dict.fromkeys(t.symbol for t in self.transactions))

    @property
    @check_property_update
    def transactions_df(self) -> pd.DataFrame:
        """
        Property to get the transactions' list as a DataFrame, in ledger order.

        """
        data = []
        for transaction in self.transactions:
            data.append(
                (
                    transaction.id,
                    pd.Timestamp(transaction.date),
                    transaction.symbol,
                    transaction.action,
                    transaction.shares,
                    transaction.price,
                    transaction.total,
                    transaction.notes,
                )
            )
        df = pd.DataFrame(data, columns=TRANSACTION_COLUMNS)
        return df

    @property
    def history_df(self) -> pd.DataFrame:
        """
        Property to get the transaction history, newest first.

        Transactions on the same date keep their ledger order.

        """
        df = self.transactions_df.copy()
        df = df.sort_values("Date", ascending=False, kind="stable")
        df.reset_index(drop=True, inplace=True)
        return df

    def transactions_count(self, symbol: Optional[str] = None) -> int:
        """
        Method to count the number of transactions in the ledger.

        If a symbol is provided, it returns the number of transactions for that symbol.

        """
        ledger_df = self.transactions_df
        if symbol is not None:
            return int((ledger_df["Symbol"] == symbol.upper()).sum())
        return len(ledger_df)

    def transactions_sum(self, symbol: Optional[str] = None) -> float:
        """
        Method to get the total traded amount in the ledger.

        If a symbol is provided, it returns the total traded amount for that symbol.

        """
        ledger_df = self.transactions_df
        if symbol is not None:
            ledger_df = ledger_df[ledger_df["Symbol"] == symbol.upper()]
        return float(ledger_df["Total"].sum())

    @property
    @check_property_update
    def traded_assets_values(self) -> pd.DataFrame:
        """
        Property to get the total traded amount for each symbol and segregated by action [BUY, SELL].

        """
        transactions = self.transactions_df
        if transactions.empty:
            return pd.DataFrame(columns=["BUY", "SELL"], dtype=float)
        traded_assets_values = transactions.pivot_table(
            index="Symbol", columns="Action", values="Total", aggfunc="sum"
        ).fillna(0)
        if "BUY" not in traded_assets_values.columns:
            traded_assets_values["BUY"] = 0.0
        if "SELL" not in traded_assets_values.columns:
            traded_assets_values["SELL"] = 0.0
        return traded_assets_values[["BUY", "SELL"]]

    def export_csv(self, path: Union[str, Path]) -> None:
        """
        Method to export the transactions to a CSV file.

        """
        df = self.transactions_df.copy()
        df["Date"] = pd.to_datetime(df["Date"]).dt.strftime("%Y-%m-%d")
        df.to_csv(path, index=False)
