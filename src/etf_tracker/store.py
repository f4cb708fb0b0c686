import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from .record_objects import Allocation, Transaction


@dataclass
class JsonStore:
    """
    Dataclass keeping a JSON document in a local file.

    Writes go through a temporary file that replaces the target, so a reader never sees a half-written document.

    """

    path: Union[str, Path]

    def __post_init__(self) -> None:
        self.path = Path(self.path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> Optional[Union[dict, list]]:
        """
        Method to read the document, None if it has never been written.

        """
        if not self.path.exists():
            return None
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def write(self, data: Union[dict, list]) -> None:
        """
        Method to write the whole document.

        The document goes to a temporary file first, the stored one is only replaced once the dump is complete.

        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.path.with_suffix(".tmp")
        try:
            with tmp_file.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_file.replace(self.path)
        except BaseException:
            tmp_file.unlink(missing_ok=True)
            raise


@dataclass
class LedgerStore(JsonStore):
    """
    Store of the transaction ledger.

    """

    def load(self) -> Optional[list[Transaction]]:
        """
        Method to load the stored transactions.

        Returns None when nothing has been stored yet, the caller then seeds a default ledger.

        """
        data = self.read()
        if data is None:
            return None
        return [Transaction.from_dict(item) for item in data]

    def save(self, transactions: Iterable[Transaction]) -> None:
        self.write([transaction.to_dict() for transaction in transactions])


@dataclass
class AllocationStore(JsonStore):
    """
    Store of the reserved capital and strategy notes per symbol.

    """

    def load(self) -> Optional[dict[str, Allocation]]:
        data = self.read()
        if data is None:
            return None
        allocations = [Allocation.from_dict(item) for item in data]
        return {allocation.symbol: allocation for allocation in allocations}

    def save(self, allocations: Iterable[Allocation]) -> None:
        self.write([allocation.to_dict() for allocation in allocations])
