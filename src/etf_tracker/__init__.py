from .exceptions import InconsistentState, InvalidTransaction, QuoteSourceError, TrackerError
from .ledger import Ledger
from .portfolio import Portfolio
from .quotes import PriceCache, QuoteSource, StaticQuoteSource
from .reconciler import reconcile, validate_transaction
from .record_objects import Allocation, Position, Transaction
from .store import AllocationStore, LedgerStore
