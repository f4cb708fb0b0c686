# tests/conftest.py - Pytest configuration and fixtures

from datetime import date

import matplotlib

matplotlib.use("Agg")

import pytest

from etf_tracker.portfolio import Portfolio
from etf_tracker.record_objects import Transaction


def make_transaction(action, symbol, shares, price, total=None, day=date(2024, 1, 15), notes=""):
    if total is None:
        total = shares * price
    return Transaction(date=day, symbol=symbol, action=action, shares=shares, price=price, total=total, notes=notes)


@pytest.fixture
def soxx_buys():
    return [
        make_transaction("BUY", "SOXX", 107, 280.00, total=29960),
        make_transaction("BUY", "SOXX", 48, 310.00, total=14880),
    ]


@pytest.fixture
def empty_portfolio():
    """In-memory portfolio without seed data."""
    return Portfolio(name="test", seed=False, verbosity="silent")


@pytest.fixture
def seeded_portfolio(tmp_path):
    """Portfolio persisted in a temporary directory, starting from the seed data."""
    return Portfolio(name="test", data_dir=tmp_path, verbosity="silent")
