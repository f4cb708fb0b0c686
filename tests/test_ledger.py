from dataclasses import replace
from datetime import date

import pandas as pd
import pytest

from etf_tracker.exceptions import InvalidTransaction
from etf_tracker.ledger import Ledger

from conftest import make_transaction


def test_record_assigns_ids_and_default_total():
    ledger = Ledger()

    first = ledger.buy(date(2024, 1, 15), "soxx", 10, 280)
    second = ledger.sell(date(2024, 2, 1), "SOXX", 4, 300, total=1195, notes="Trim")

    assert (first.id, second.id) == (1, 2)
    assert first.symbol == "SOXX"
    assert first.total == pytest.approx(2800)
    assert second.total == 1195
    assert second.notes == "Trim"


def test_invalid_transaction_leaves_ledger_untouched():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "IWM", 30.04, 249.63, total=7500)
    evolution_id = ledger.evolution_id

    with pytest.raises(InvalidTransaction):
        ledger.buy(date(2024, 1, 16), "IWM", 0, 250)
    with pytest.raises(InvalidTransaction):
        ledger.record_transaction(date(2024, 1, 16), "IWM", "SHORT", 1, 250)

    assert len(ledger.transactions) == 1
    assert ledger.evolution_id == evolution_id
    assert ledger.last_transaction_id == 1


def test_delete_replays_positions():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "VWO", 138.73, 54.06, total=7500)
    extra = ledger.buy(date(2024, 6, 15), "VWO", 275.73, 54.13, total=14925.26)
    assert ledger.positions["VWO"].shares == pytest.approx(414.46)

    ledger.delete_transaction(extra.id)

    assert ledger.positions["VWO"].shares == pytest.approx(138.73)
    assert ledger.positions["VWO"].invested == 7500


def test_delete_unknown_id():
    ledger = Ledger()

    with pytest.raises(KeyError):
        ledger.delete_transaction(42)


def test_positions_follow_delete_then_append_of_same_length():
    ledger = Ledger()
    first = ledger.buy(date(2024, 1, 15), "AIA", 10, 95)
    assert ledger.positions["AIA"].shares == 10

    ledger.delete_transaction(first.id)
    ledger.buy(date(2024, 1, 16), "INDA", 5, 53)

    assert list(ledger.positions) == ["INDA"]


def test_from_transactions_keeps_stored_ids():
    stored = [
        make_transaction("BUY", "HYG", 10, 80),
        make_transaction("BUY", "HYG", 5, 81),
    ]
    stored[0] = replace(stored[0], id=7)

    ledger = Ledger.from_transactions(stored)
    new = ledger.buy(date(2024, 3, 1), "HYG", 1, 82)

    assert [t.id for t in ledger.transactions] == [7, 8, 9]
    assert new.id == 9


def test_duplicate_id_is_rejected():
    ledger = Ledger()
    transaction = ledger.buy(date(2024, 1, 15), "SCHD", 10, 27.8)

    with pytest.raises(ValueError):
        ledger.append(transaction)


def test_history_is_newest_first():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "VWO", 1, 54)
    ledger.buy(date(2024, 6, 15), "VWO", 1, 54)
    ledger.buy(date(2024, 3, 1), "IWM", 1, 250)

    history = ledger.history_df

    assert list(history["Id"]) == [2, 3, 1]
    assert history["Date"].iloc[0] == pd.Timestamp("2024-06-15")


def test_counts_and_sums():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "SOXX", 10, 280, total=2800)
    ledger.buy(date(2024, 1, 15), "IWM", 10, 250, total=2500)
    ledger.sell(date(2024, 2, 1), "SOXX", 5, 300, total=1500)

    assert ledger.transactions_count() == 3
    assert ledger.transactions_count("soxx") == 2
    assert ledger.transactions_sum("SOXX") == 4300
    assert ledger.symbols == ["SOXX", "IWM"]

    traded = ledger.traded_assets_values
    assert traded.loc["SOXX", "BUY"] == 2800
    assert traded.loc["SOXX", "SELL"] == 1500
    assert traded.loc["IWM", "SELL"] == 0


def test_empty_ledger_reports():
    ledger = Ledger()

    assert ledger.positions == {}
    assert ledger.transactions_count() == 0
    assert ledger.transactions_df.empty
    assert list(ledger.traded_assets_values.columns) == ["BUY", "SELL"]


def test_export_csv(tmp_path):
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "SOXX", 107.14, 280.00, total=30000, notes="Initial Position")
    path = tmp_path / "transactions.csv"

    ledger.export_csv(path)

    df = pd.read_csv(path)
    assert list(df.columns) == ["Id", "Date", "Symbol", "Action", "Shares", "Price", "Total", "Notes"]
    assert df.loc[0, "Date"] == "2024-01-15"
    assert df.loc[0, "Total"] == 30000


def test_positions_cannot_be_altered_by_callers():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "AAA", 10, 10)

    ledger.positions["AAA"].shares = 999
    ledger.positions["AAA"].invested = 0

    assert ledger.positions["AAA"].shares == 10
    assert ledger.positions["AAA"].invested == 100


def test_non_finite_price_is_rejected():
    ledger = Ledger()

    with pytest.raises(InvalidTransaction):
        ledger.buy(date(2024, 1, 15), "SOXX", 10, float("nan"))
    with pytest.raises(InvalidTransaction):
        ledger.buy(date(2024, 1, 15), "SOXX", float("inf"), 10, total=100)

    assert ledger.transactions == []
    assert ledger.positions == {}


def test_restore_puts_transaction_back_in_place():
    ledger = Ledger()
    ledger.buy(date(2024, 1, 15), "VWO", 138.73, 54.06, total=7500)
    middle = ledger.buy(date(2024, 2, 1), "IWM", 10, 250)
    ledger.buy(date(2024, 6, 15), "VWO", 275.73, 54.13, total=14925.26)
    before = list(ledger.transactions)

    ledger.delete_transaction(middle.id)
    ledger.restore_transaction(middle, 1)

    assert ledger.transactions == before
    assert ledger.positions["IWM"].shares == 10
    with pytest.raises(ValueError):
        ledger.restore_transaction(middle, 0)
