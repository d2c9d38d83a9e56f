# smartsupply/utils/cache/working_set.py
from typing import Dict, Iterable, List, Optional

from ...models import Customer


class WorkingSet:
    """
    In-memory set of customers keyed by id, in insertion order.
    No TTL and no eviction: the local store decides what exists, this is
    only the hot copy served to the UI.
    """

    def __init__(self):
        self._data: Dict[str, Customer] = {}

    def get(self, customer_id: str) -> Optional[Customer]:
        return self._data.get(customer_id)

    def put(self, record: Customer) -> None:
        """Insert or replace wholesale."""
        self._data[record.id] = record

    def replace_all(self, records: Iterable[Customer]) -> None:
        self._data = {record.id: record for record in records}

    def add_missing(self, records: Iterable[Customer]) -> int:
        """Append records whose id is not known yet. Known ids are left as they are."""
        added = 0
        for record in records:
            if record.id not in self._data:
                self._data[record.id] = record
                added += 1
        return added

    def patch_balance(self, customer_id: str, balance: float, fetched_at: float) -> bool:
        record = self._data.get(customer_id)
        if record is None:
            return False
        record.current_balance = balance
        record.balance_last_updated = fetched_at
        return True

    def values(self) -> List[Customer]:
        return list(self._data.values())

    @property
    def size(self) -> int:
        return len(self._data)
