"""
Replay of the transaction ledger into the current positions.

Positions are never patched incrementally: every change to the ledger is followed by a full replay from an empty state,
which is the only strategy that stays consistent when transactions are deleted.

"""
import math
from numbers import Real
from typing import Iterable

from .exceptions import InconsistentState, InvalidTransaction
from .record_objects import Position, Transaction, TRANSACTION_ACTIONS

# Tolerance used when checking avg_entry * shares against invested
EPSILON = 1e-6


def validate_transaction(transaction: Transaction) -> None:
    """
    Function to check that a transaction can be applied to a position.

    Raises InvalidTransaction for a missing or empty symbol, an unknown action, non-positive shares, a negative price,
    or any amount that is not a finite number (NaN, infinity).

    """
    if not isinstance(transaction.symbol, str) or not transaction.symbol:
        raise InvalidTransaction(f"Symbol must be a non-empty string, got {transaction.symbol!r}")
    if transaction.action not in TRANSACTION_ACTIONS:
        raise InvalidTransaction(
            f"{transaction.symbol}: Unknown action '{transaction.action}', expected one of {', '.join(TRANSACTION_ACTIONS)}"
        )
    for field_name in ("shares", "price", "total"):
        amount = getattr(transaction, field_name)
        if not isinstance(amount, Real) or not math.isfinite(amount):
            raise InvalidTransaction(f"{transaction.symbol}: {field_name.capitalize()} must be a finite number, got {amount!r}")
    if not transaction.shares > 0:
        raise InvalidTransaction(f"{transaction.symbol}: Shares must be positive, got {transaction.shares}")
    if transaction.price < 0:
        raise InvalidTransaction(f"{transaction.symbol}: Price must not be negative, got {transaction.price}")


def apply_buy(position: Position, transaction: Transaction) -> None:
    """
    Function to add a purchase to a position using weighted-average cost.

    """
    new_shares = position.shares + transaction.shares
    new_invested = position.invested + transaction.total
    position.avg_entry = new_invested / new_shares if new_shares > 0 else 0.0
    position.shares = new_shares
    position.invested = new_invested


def apply_sell(position: Position, transaction: Transaction) -> None:
    """
    Function to remove a sale from a position.

    The cost basis leaves at the average entry price, not at the sale price, so realized gains are not tracked.
    Selling everything (or more than held) flattens the position.

    """
    sold_cost_basis = transaction.shares * position.avg_entry
    position.shares -= transaction.shares
    position.invested -= sold_cost_basis
    if position.shares <= 0:
        position.close()


def check_position(position: Position) -> None:
    """
    Function to verify the invariants of a position after a replay step.

    """
    if position.shares < 0:
        raise InconsistentState(f"{position.symbol}: Negative shares {position.shares}")
    if position.shares == 0:
        if position.avg_entry != 0 or position.invested != 0:
            raise InconsistentState(f"{position.symbol}: Closed position keeps a cost basis")
    elif abs(position.avg_entry * position.shares - position.invested) > EPSILON * max(1.0, abs(position.invested)):
        raise InconsistentState(
            f"{position.symbol}: avg_entry * shares ({position.avg_entry * position.shares}) != invested ({position.invested})"
        )


def reconcile(transactions: Iterable[Transaction]) -> dict[str, Position]:
    """
    Function to replay a sequence of transactions into positions.

    Transactions are applied in the order given, not sorted by date. The whole sequence is validated
    before anything is applied, so an invalid transaction fails the call without a partial result.
    Every symbol ever traded is returned, closed positions included, in first-seen order.

    """
    transactions = list(transactions)
    for transaction in transactions:
        validate_transaction(transaction)
    positions: dict[str, Position] = dict()
    for transaction in transactions:
        position = positions.get(transaction.symbol)
        if position is None:
            position = Position(symbol=transaction.symbol)
            positions[transaction.symbol] = position
        if transaction.action == "BUY":
            apply_buy(position, transaction)
        else:
            apply_sell(position, transaction)
        check_position(position)
    return positions
