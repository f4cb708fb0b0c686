import json
from datetime import date

import pytest

from etf_tracker.record_objects import Allocation, Transaction
from etf_tracker.store import AllocationStore, JsonStore, LedgerStore

from conftest import make_transaction


def test_missing_ledger_is_absent(tmp_path):
    store = LedgerStore(tmp_path / "ledger.json")

    assert not store.exists()
    assert store.load() is None


def test_ledger_is_stored_as_json(tmp_path):
    store = LedgerStore(tmp_path / "nested" / "ledger.json")
    transaction = make_transaction("BUY", "VWO", 275.73, 54.13, total=14925.26, day=date(2024, 6, 15), notes="Additional Purchase")

    store.save([transaction])

    raw = json.loads(store.path.read_text(encoding="utf-8"))
    assert raw[0]["date"] == "2024-06-15"
    assert raw[0]["total"] == 14925.26
    assert store.load() == [transaction]
    assert not store.path.with_suffix(".tmp").exists()


def test_transaction_without_total_gets_traded_amount():
    transaction = Transaction.from_dict(
        {"date": "2024-01-15", "symbol": "inda", "action": "buy", "shares": 10, "price": 53.41}
    )

    assert transaction.symbol == "INDA"
    assert transaction.action == "BUY"
    assert transaction.total == pytest.approx(534.1)
    assert transaction.notes == ""


def test_allocations_round_trip(tmp_path):
    store = AllocationStore(tmp_path / "allocations.json")

    store.save([Allocation("ibit", 70000, "BTC retracement targets")])
    allocations = store.load()

    assert list(allocations) == ["IBIT"]
    assert allocations["IBIT"].reserved == 70000


def test_corrupt_document_raises(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(json.JSONDecodeError):
        JsonStore(path).read()


def test_failed_write_keeps_previous_document(tmp_path):
    store = JsonStore(tmp_path / "prices.json")
    store.write({"prices": {"SOXX": 316.29}})

    with pytest.raises(TypeError):
        store.write({"prices": object()})

    assert store.read() == {"prices": {"SOXX": 316.29}}
    assert not store.path.with_suffix(".tmp").exists()


def test_failed_first_write_leaves_nothing_behind(tmp_path):
    store = JsonStore(tmp_path / "prices.json")

    with pytest.raises(TypeError):
        store.write({"prices": object()})

    assert not store.exists()
    assert list(tmp_path.iterdir()) == []
