from dataclasses import dataclass, field, replace
from datetime import date, datetime
from pathlib import Path
from typing import Literal, Optional, Union

import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.ticker import StrMethodFormatter

from .config import (
    ALLOCATIONS_FILENAME,
    LEDGER_FILENAME,
    PRICE_CACHE_FILENAME,
    PriceUpdateConfig,
)
from .defaults import DEFAULT_STRATEGY_NOTE, FALLBACK_PRICES, seed_allocations, seed_transactions
from .exceptions import QuoteSourceError
from .ledger import Ledger
from .quotes import PriceCache, QuoteSource, update_interval
from .record_objects import Allocation, PortfolioMetrics, Position, Transaction
from .store import AllocationStore, JsonStore, LedgerStore
from .support import (
    check_property_update,
    display_date,
    display_count,
    display_money,
    display_percentage,
    display_pretty_table,
    display_shares,
    get_random_name,
    now_ms,
)

VerboseType = Literal["silent", "action", "status", "verbose"]


@dataclass
class ActivityLog():
    symbol_quote: str

    def __post_init__(self) -> None:
        self.count = 0
        self.logs = []

    @property
    def last_log_id(self) -> int:
        return self.count - 1

    def new_entry(self, type: str, timestamp: Optional[int] = None, symbol: Optional[str] = None, msg: Optional[str] = None) -> int:
        id = self.count
        log_entry = {
            "id": id,
            "type": type,
            "timestamp": timestamp if timestamp is not None else now_ms(),
            "symbol": symbol,
            "msg": [],
        }
        if msg:
            log_entry["msg"].append(msg)
        self.logs.append(log_entry)
        self.count += 1
        return id

    def add_msg(self, id: int, msg: str) -> None:
        log_entry = self.logs[id]
        log_entry["msg"].append(msg)

    def entries(self, type: Optional[str] = None) -> list[dict]:
        if type is None:
            return list(self.logs)
        return [log_entry for log_entry in self.logs if log_entry["type"] == type]

    def print_log(self, id: int) -> None:
        log_entry = self.logs[id]
        title = log_entry["type"].upper()
        if log_entry["symbol"]:
            title = f"{log_entry['symbol']} - {title}"
        display_msg = f">>>>>>>>>>>>>>>>>>>> {title} <<<<<<<<<<<<<<<<<<<<"
        display_msg += f"\n[{id}] Timestamp: {log_entry['timestamp']}"
        for msg in log_entry["msg"]:
            display_msg += f"\n-> {msg}"
        print(display_msg)

    def print_symbol(self, symbol: str) -> None:
        for id in range(self.count):
            if symbol == self.logs[id]["symbol"]:
                self.print_log(id)

    def print_last_log(self) -> None:
        self.print_log(self.last_log_id)

    def __call__(self, log_id: Optional[int] = None) -> None:
        if log_id is not None:
            self.print_log(log_id)
        else:
            for id in range(self.count):
                self.print_log(id)


@dataclass
class Portfolio:
    """
    Dataclass holding the whole state of the tracker.

    The ledger is the source of truth. Holdings are replayed from it, then the reserved capital edited by hand is laid on top.
    When `data_dir` is set, the ledger, the allocations and the price cache are persisted there as JSON files.

    """

    name: str = ""
    currency_symbol: str = "USD"
    data_dir: Optional[Union[str, Path]] = None
    seed: bool = True
    verbosity: VerboseType = "verbose"
    price_config: PriceUpdateConfig = field(default_factory=PriceUpdateConfig)

    # Portfolio internal methods ------------------------------------------------

    def __post_init__(self) -> None:
        self.set_verbosity(self.verbosity)
        self.set_portfolio_name()
        self._revision = 0
        self._properties_evolution_id = dict()
        self._properties_cached = dict()
        self.ActivityLog = ActivityLog(symbol_quote=self.currency_symbol)
        self.set_stores()
        self.load()

    def set_portfolio_name(self) -> None:
        """
        Method to fill the name of the portfolio if it is empty.

        """
        if self.name == "":
            self.name = get_random_name()

    def set_verbosity(self, type: VerboseType) -> None:
        """
        Method to set the verbose status and action flags.

        """
        if type == "status":
            self.verbose_status = True
            self.verbose_action = False
        elif type == "action":
            self.verbose_status = False
            self.verbose_action = True
        elif type == "verbose":
            self.verbose_status = True
            self.verbose_action = True
        elif type == "silent":
            self.verbose_status = False
            self.verbose_action = False
        else:
            raise ValueError(f"Unknown verbosity '{type}'")
        self.verbosity = type

    def set_stores(self) -> None:
        if self.data_dir is None:
            self.ledger_store = None
            self.allocation_store = None
            self.price_store = None
        else:
            self.data_dir = Path(self.data_dir)
            self.ledger_store = LedgerStore(self.data_dir / LEDGER_FILENAME)
            self.allocation_store = AllocationStore(self.data_dir / ALLOCATIONS_FILENAME)
            self.price_store = JsonStore(self.data_dir / PRICE_CACHE_FILENAME)

    def load(self) -> None:
        """
        Method to load the stored state, seeding the defaults for whatever was never stored.

        """
        transactions = self.ledger_store.load() if self.ledger_store else None
        seeded_ledger = transactions is None
        if seeded_ledger:
            transactions = seed_transactions() if self.seed else []
        self.Ledger = Ledger.from_transactions(transactions)

        allocations = self.allocation_store.load() if self.allocation_store else None
        seeded_allocations = allocations is None
        if seeded_allocations:
            allocations = seed_allocations() if self.seed else dict()
        self.allocations: dict[str, Allocation] = allocations

        fallback = FALLBACK_PRICES if self.seed else None
        if self.price_store:
            self.PriceCache = PriceCache.load(self.price_store, fallback=fallback)
        else:
            self.PriceCache = PriceCache(prices=dict(fallback or {}))

        if seeded_ledger:
            self.save_ledger()
        if seeded_allocations:
            self.save_allocations()

    def save_ledger(self) -> None:
        if self.ledger_store:
            self.ledger_store.save(self.Ledger.transactions)

    def save_allocations(self) -> None:
        if self.allocation_store:
            self.allocation_store.save(self.allocations.values())

    def save_prices(self) -> None:
        if self.price_store:
            self.PriceCache.save(self.price_store)

    def save(self) -> None:
        self.save_ledger()
        self.save_allocations()
        self.save_prices()

    @property
    def evolution_id(self) -> str:
        """
        Property to identify the state of the ledger, the allocations and the prices.

        This is used to force the recalculation of the cached properties.

        """
        return f"{self.Ledger.evolution_id}_p{self._revision}"

    # Portfolio action methods ------------------------------------------------

    def add_transaction(
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
        Method to record a new transaction and persist the ledger.

        An invalid transaction raises InvalidTransaction and leaves the ledger untouched.
        If the ledger cannot be persisted the transaction is removed again and the error is raised.

        """
        transaction = self.Ledger.record_transaction(
            date=date,
            symbol=symbol,
            action=action,
            shares=shares,
            price=price,
            total=total,
            notes=notes,
        )
        try:
            self.save_ledger()
        except Exception:
            self.Ledger.delete_transaction(transaction.id)
            raise
        if transaction.symbol not in self.allocations:
            self.allocations[transaction.symbol] = Allocation(
                symbol=transaction.symbol, strategy=DEFAULT_STRATEGY_NOTE
            )
            self.save_allocations()
        self.log_transaction("transaction", transaction)
        self.print_portfolio()
        return transaction

    def buy(self, date: date, symbol: str, shares: float, price: float, total: Optional[float] = None, notes: str = "") -> Transaction:
        return self.add_transaction(date, symbol, "BUY", shares, price, total, notes)

    def sell(self, date: date, symbol: str, shares: float, price: float, total: Optional[float] = None, notes: str = "") -> Transaction:
        return self.add_transaction(date, symbol, "SELL", shares, price, total, notes)

    def delete_transaction(self, id: int) -> Transaction:
        """
        Method to delete a transaction by its id, the holdings are replayed from the remaining ledger.

        If the ledger cannot be persisted the transaction is put back in place and the error is raised.

        """
        index = self.Ledger.transactions.index(self.Ledger.get_transaction(id))
        transaction = self.Ledger.delete_transaction(id)
        try:
            self.save_ledger()
        except Exception:
            self.Ledger.restore_transaction(transaction, index)
            raise
        self.log_transaction("deletion", transaction)
        self.print_portfolio()
        return transaction

    def set_allocation(self, symbol: str, reserved: Optional[float] = None, strategy: Optional[str] = None) -> Allocation:
        """
        Method to edit the reserved capital and/or the strategy note of a symbol.

        """
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValueError("Symbol must not be empty")
        if reserved is not None and reserved < 0:
            raise ValueError(f"{symbol}: Reserved capital must not be negative, got {reserved}")
        allocation = self.allocations.get(symbol)
        if allocation is None:
            allocation = Allocation(symbol=symbol, strategy=DEFAULT_STRATEGY_NOTE)
            self.allocations[symbol] = allocation
        if reserved is not None:
            allocation.reserved = float(reserved)
        if strategy is not None:
            allocation.strategy = strategy
        self._revision += 1
        self.save_allocations()
        self.ActivityLog.new_entry(
            "allocation",
            symbol=symbol,
            msg=f"Reserved: {display_money(allocation.reserved, self.currency_symbol)} - Strategy: {allocation.strategy}",
        )
        return allocation

    def refresh_prices(self, source: QuoteSource, timestamp: Optional[int] = None) -> list[str]:
        """
        Method to refresh the cached prices of every held or watched symbol.

        A failing quote source is not fatal: the failure is logged and the cached prices are kept.

        """
        log_id = self.ActivityLog.new_entry("prices", timestamp=timestamp)
        try:
            updated = self.PriceCache.refresh(source, self.symbols, timestamp=timestamp)
        except QuoteSourceError as e:
            self.ActivityLog.add_msg(log_id, f"Unable to fetch prices, using cached prices: {e}")
            if self.verbose_action:
                self.ActivityLog.print_log(log_id)
            return []
        if updated:
            self._revision += 1
            self.save_prices()
        self.ActivityLog.add_msg(log_id, f"Updated: {', '.join(updated) if updated else 'None'}")
        if self.verbose_action:
            self.ActivityLog.print_log(log_id)
        return updated

    def needs_price_refresh(self, now: Optional[int] = None) -> bool:
        return self.PriceCache.is_stale(self.price_config.stale_threshold, now=now)

    def next_price_refresh(self, now: Optional[datetime] = None) -> int:
        """
        Method to get the delay until the next price refresh, in milliseconds.

        """
        return update_interval(self.price_config, now)

    def log_transaction(self, type: str, transaction: Transaction) -> None:
        position = self.holdings.get(transaction.symbol, Position(symbol=transaction.symbol))
        msg = (
            f"[{transaction.id}] {transaction.action} {display_shares(transaction.shares)} {transaction.symbol} "
            f"at {display_money(transaction.price, self.currency_symbol)} "
            f"(Total: {display_money(transaction.total, self.currency_symbol)}) on {transaction.date.isoformat()}"
        )
        log_id = self.ActivityLog.new_entry(type, symbol=transaction.symbol, msg=msg)
        self.ActivityLog.add_msg(
            log_id,
            f"Position: {display_shares(position.shares)} shares - Avg entry: {display_money(position.avg_entry, self.currency_symbol)} "
            f"- Invested: {display_money(position.invested, self.currency_symbol)}",
        )
        if self.verbose_action:
            self.ActivityLog.print_log(log_id)

    # Portfolio reporting methods ------------------------------------------------

    @property
    def holdings(self) -> dict[str, Position]:
        """
        Property to get the positions replayed from the ledger with their reserved capital.

        Symbols traded come first in first-seen order, followed by symbols that only have reserved capital.
        Callers receive copies, the cached holdings only change with the ledger or the allocations.

        """
        return {symbol: replace(position) for symbol, position in self._overlaid_holdings().items()}

    @check_property_update
    def _overlaid_holdings(self) -> dict[str, Position]:
        holdings = dict()
        for symbol, position in self.Ledger.positions.items():
            allocation = self.allocations.get(symbol)
            reserved = allocation.reserved if allocation else 0.0
            holdings[symbol] = replace(position, reserved=reserved)
        for symbol, allocation in self.allocations.items():
            if symbol not in holdings and allocation.reserved > 0:
                holdings[symbol] = Position(symbol=symbol, reserved=allocation.reserved)
        return holdings

    @property
    def open_positions(self) -> dict[str, Position]:
        return {symbol: position for symbol, position in self.holdings.items() if position.is_open}

    @property
    def symbols(self) -> list[str]:
        return list(self.holdings.keys())

    def current_price(self, symbol: str) -> float:
        """
        Method to get the price used to value a symbol: the cached quote, else the average entry, else 0.

        """
        price = self.PriceCache.get(symbol)
        if price:
            return price
        position = self.holdings.get(symbol)
        if position is not None and position.avg_entry:
            return position.avg_entry
        return 0.0

    @property
    @check_property_update
    def metrics(self) -> PortfolioMetrics:
        total_invested = 0.0
        total_value = 0.0
        total_reserved = 0.0
        for symbol, position in self.holdings.items():
            total_invested += position.invested
            total_reserved += position.reserved
            total_value += position.shares * self.current_price(symbol)
        total_gain_loss = total_value - total_invested
        gain_loss_percent = total_gain_loss / total_invested if total_invested > 0 else 0.0
        return PortfolioMetrics(
            total_invested=total_invested,
            total_value=total_value,
            total_reserved=total_reserved,
            total_gain_loss=total_gain_loss,
            gain_loss_percent=gain_loss_percent,
            open_positions=len(self.open_positions),
        )

    @property
    @check_property_update
    def positions_df(self) -> pd.DataFrame:
        """
        Property to get the holdings as a DataFrame valued at the current prices.

        """
        data = []
        for symbol, position in self.holdings.items():
            price = self.current_price(symbol)
            value = position.shares * price
            gain_loss = value - position.invested
            gain_loss_percent = gain_loss / position.invested if position.invested > 0 else 0.0
            data.append(
                (
                    symbol,
                    position.shares,
                    position.avg_entry,
                    price,
                    position.invested,
                    value,
                    gain_loss,
                    gain_loss_percent,
                    position.reserved,
                )
            )
        columns = (
            "Symbol",
            "Shares",
            "Avg_Entry",
            "Price",
            "Invested",
            "Value",
            "Gain_Loss",
            "Gain_Loss_Pct",
            "Reserved",
        )
        df = pd.DataFrame(data, columns=columns)
        df.set_index("Symbol", inplace=True)
        return df

    @property
    @check_property_update
    def strategy_df(self) -> pd.DataFrame:
        """
        Property to get the strategy notes next to the entry and current prices.

        """
        data = []
        for symbol, position in self.holdings.items():
            allocation = self.allocations.get(symbol)
            price = self.current_price(symbol)
            if position.avg_entry > 0:
                price_vs_entry = (price - position.avg_entry) / position.avg_entry
            else:
                price_vs_entry = 0.0
            data.append(
                (
                    symbol,
                    allocation.strategy if allocation else DEFAULT_STRATEGY_NOTE,
                    position.avg_entry,
                    price,
                    price_vs_entry,
                    position.reserved,
                )
            )
        columns = ("Symbol", "Strategy", "Avg_Entry", "Price", "Price_Vs_Entry", "Reserved")
        df = pd.DataFrame(data, columns=columns)
        df.set_index("Symbol", inplace=True)
        return df

    @property
    def history_df(self) -> pd.DataFrame:
        return self.Ledger.history_df

    @property
    def positions_table(self) -> str:
        """
        Property to create a pretty table with the holdings' information.

        """
        data = [
            [
                "Symbol",
                "Shares",
                "Avg entry",
                "Price",
                "Invested",
                "Value",
                "Gain/Loss",
                "Gain/Loss %",
                "Reserved",
            ]
        ]
        for symbol, row in self.positions_df.iterrows():
            data.append(
                [
                    symbol,
                    display_shares(row["Shares"]),
                    display_money(row["Avg_Entry"], self.currency_symbol),
                    display_money(row["Price"], self.currency_symbol),
                    display_money(row["Invested"], self.currency_symbol),
                    display_money(row["Value"], self.currency_symbol),
                    display_money(row["Gain_Loss"], self.currency_symbol),
                    display_percentage(row["Gain_Loss_Pct"]),
                    display_money(row["Reserved"], self.currency_symbol),
                    row["Value"],  # Only for sorting
                ]
            )
        return display_pretty_table(data, padding=6)

    @property
    def history_table(self) -> str:
        """
        Property to create a pretty table with the transaction history, newest first.

        """
        data = [["Id", "Date", "Symbol", "Action", "Shares", "Price", "Total", "Notes"]]
        for transaction in sorted(self.Ledger.transactions, key=lambda t: t.date, reverse=True):
            data.append(
                [
                    transaction.id,
                    display_date(transaction.date),
                    transaction.symbol,
                    transaction.action,
                    display_shares(transaction.shares),
                    display_money(transaction.price, self.currency_symbol),
                    display_money(transaction.total, self.currency_symbol),
                    transaction.notes or "-",
                    None,
                ]
            )
        return display_pretty_table(data, padding=6, sort=False)

    @property
    @check_property_update
    def text_repr(self) -> str:
        """
        Property to display the portfolio information as a string.

        """
        metrics = self.metrics
        text = (
            f"Portfolio ({self.name}):\n"
            f"  -> Total value = {display_money(metrics.total_value, self.currency_symbol)}\n"
            f"  -> Total invested = {display_money(metrics.total_invested, self.currency_symbol)}\n"
            f"  -> Reserved capital = {display_money(metrics.total_reserved, self.currency_symbol)}\n"
            f"  -> Gain/Loss = {display_money(metrics.total_gain_loss, self.currency_symbol)} ({display_percentage(metrics.gain_loss_percent)})\n"
            f"  -> Positions = {display_count(metrics.open_positions)}\n"
            f"  -> Transactions = {display_count(self.Ledger.transactions_count())}\n"
        )
        if self.PriceCache.last_update is None:
            text += "  -> Prices: fallback (never refreshed)\n"
        else:
            last_update = datetime.fromtimestamp(self.PriceCache.last_update / 1000)
            text += f"  -> Prices updated = {last_update:%Y-%m-%d %H:%M}\n"
        if len(self.holdings) > 0:
            text += f"  -> Holdings:\n{self.positions_table}\n"
        else:
            text += "  -> Holdings: None\n"
        return text

    def __repr__(self) -> str:
        return self.text_repr

    def print_portfolio(self) -> None:
        """
        Method to print the portfolio information if the verbose_status flag is set to True.

        """
        if self.verbose_status:
            print(self.__repr__())

    def print_history(self) -> None:
        print(self.history_table)

    # Export methods ------------------------------------------------

    def export_csv(self, path: Union[str, Path]) -> None:
        self.Ledger.export_csv(path)

    def export_json(self, path: Union[str, Path]) -> None:
        LedgerStore(path).save(self.Ledger.transactions)

    # Plotting methods ------------------------------------------------

    def plot_positions(self, fig_ax: Optional[tuple] = None):
        """
        Method to plot the invested capital and the current value of each open position.

        Returns the matplotlib figure.

        """
        if fig_ax is None:
            fig, ax = plt.subplots(figsize=(12, 6))
        else:
            fig, ax = fig_ax
        df = self.positions_df
        df = df[df["Shares"] > 0]
        symbols = list(df.index)
        x = range(len(symbols))
        width = 0.4
        ax.bar([i - width / 2 for i in x], df["Invested"], width=width, label="Invested", color="#1f77b4")
        value_colors = ["#2ca02c" if gain >= 0 else "#b62728" for gain in df["Gain_Loss"]]
        ax.bar([i + width / 2 for i in x], df["Value"], width=width, label="Value", color=value_colors)
        ax.set_xticks(list(x))
        ax.set_xticklabels(symbols)
        ax.yaxis.set_major_formatter(StrMethodFormatter("{x:,.0f}"))
        ax.set_ylabel(self.currency_symbol)
        ax.set_title(f"Portfolio ({self.name}) - Positions")
        ax.legend()
        ax.grid(axis="y", alpha=0.3)
        return fig
