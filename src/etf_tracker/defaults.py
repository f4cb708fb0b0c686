"""
Seed data used when no ledger has been stored yet.

"""
from .record_objects import Allocation, Transaction


SEED_TRANSACTIONS = [
    {"date": "2024-01-15", "symbol": "SOXX", "action": "BUY", "shares": 107.14, "price": 280.00, "total": 30000, "notes": "Initial Position"},
    {"date": "2024-01-15", "symbol": "IWM", "action": "BUY", "shares": 30.04, "price": 249.63, "total": 7500, "notes": "Initial Position"},
    {"date": "2024-01-15", "symbol": "VWO", "action": "BUY", "shares": 138.73, "price": 54.06, "total": 7500, "notes": "Initial Position"},
    {"date": "2024-06-15", "symbol": "VWO", "action": "BUY", "shares": 275.73, "price": 54.13, "total": 14925.26, "notes": "Additional Purchase"},
    {"date": "2024-01-15", "symbol": "INDA", "action": "BUY", "shares": 140.42, "price": 53.41, "total": 7500, "notes": "Initial Position"},
    {"date": "2024-01-15", "symbol": "AIA", "action": "BUY", "shares": 78.35, "price": 95.72, "total": 7500, "notes": "Initial Position"},
    {"date": "2024-01-15", "symbol": "SCHD", "action": "BUY", "shares": 449.64, "price": 27.80, "total": 12500, "notes": "Initial Position"},
    {"date": "2024-01-15", "symbol": "HYG", "action": "BUY", "shares": 123.92, "price": 80.70, "total": 10000, "notes": "Initial Position"},
]

SEED_ALLOCATIONS = [
    {"symbol": "SOXX", "reserved": 0, "strategy": "Semiconductors - Wait for RSI cooldown below 70."},
    {"symbol": "IWM", "reserved": 7500, "strategy": "Small-cap value - Buy on dips."},
    {"symbol": "ARKK", "reserved": 20000, "strategy": "Innovation - Wait for RSI < 70, target ~$75-78 range."},
    {"symbol": "VWO", "reserved": 0, "strategy": "Emerging markets diversification."},
    {"symbol": "INDA", "reserved": 0, "strategy": "India growth exposure."},
    {"symbol": "AIA", "reserved": 0, "strategy": "Asia ex-Japan exposure."},
    {"symbol": "SCHD", "reserved": 0, "strategy": "Good long-term entry anytime."},
    {"symbol": "HYG", "reserved": 0, "strategy": "Stable high-yield bond exposure."},
    {"symbol": "IBIT", "reserved": 70000, "strategy": "BTC retracement targets: -15%, -25%, -35%"},
]

# Last known quotes, shown until a quote source delivers fresh ones
FALLBACK_PRICES = {
    "SOXX": 316.29,
    "IWM": 254.81,
    "ARKK": 83.16,
    "VWO": 54.55,
    "INDA": 53.37,
    "AIA": 98.09,
    "SCHD": 27.57,
    "HYG": 80.74,
    "IBIT": 52.49,
}

DEFAULT_STRATEGY_NOTE = "Add your strategy notes here"


def seed_transactions() -> list[Transaction]:
    return [Transaction.from_dict(data) for data in SEED_TRANSACTIONS]


def seed_allocations() -> dict[str, Allocation]:
    allocations = [Allocation.from_dict(data) for data in SEED_ALLOCATIONS]
    return {allocation.symbol: allocation for allocation in allocations}
