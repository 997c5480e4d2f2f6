"""Process-local record store, used for local runs and tests."""
import itertools
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from schemas.nonconformity import NonConformityRecord
from constructsafe.stores.base_store import (
    DuplicateKeyError,
    OrderBy,
    QueryFilter,
    RecordNotFoundError,
    RecordStore,
)


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-memory record store.

    - Enforces a unique constraint on ticket_number, like the database store.
    - Each operation is atomic; nothing is locked across operations.
    - Records with equal created_at keep insertion order.
    """

    def __init__(self) -> None:
        super().__init__('memory')
        self._lock = threading.Lock()
        self._records: Dict[str, Tuple[int, NonConformityRecord]] = {}
        self._sequence = itertools.count(1)

    def query(
        self,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[NonConformityRecord]:
        with self._lock:
            rows = [
                (seq, record) for seq, record in self._records.values()
                if all(f.matches(record) for f in filters)
            ]

        if order_by is not None:
            def sort_key(row):
                value = getattr(row[1], order_by.field)
                return (value is None, value, row[0])

            rows.sort(key=sort_key, reverse=order_by.descending)

        if limit is not None:
            rows = rows[:limit]

        return [record.model_copy(deep=True) for _, record in rows]

    def create(self, record: NonConformityRecord) -> str:
        record_id = str(uuid4())
        stored = record.model_copy(deep=True)
        stored.id = record_id

        with self._lock:
            self._check_unique_ticket(stored.ticket_number)
            stored.created_at = datetime.now(timezone.utc)
            self._records[record_id] = (next(self._sequence), stored)

        self.logger.debug(f'Created {record_id} ({stored.ticket_number})')
        return record_id

    def retrieve(
        self,
        record_id: str,
        fields: Optional[Sequence[str]] = None,
    ) -> NonConformityRecord:
        with self._lock:
            row = self._records.get(record_id)
        if row is None:
            raise RecordNotFoundError(f'Record not found: {record_id}')

        record = row[1]
        if fields is None:
            return record.model_copy(deep=True)
        return NonConformityRecord(
            id=record.id,
            **{field: getattr(record, field) for field in fields if field != 'id'},
        )

    def update(self, record_id: str, delta: Dict[str, Any]) -> None:
        with self._lock:
            row = self._records.get(record_id)
            if row is None:
                raise RecordNotFoundError(f'Record not found: {record_id}')

            seq, record = row
            if 'ticket_number' in delta and delta['ticket_number'] != record.ticket_number:
                self._check_unique_ticket(delta['ticket_number'])

            updated = NonConformityRecord.model_validate(
                {**record.model_dump(), **delta}
            )
            self._records[record_id] = (seq, updated)

    def get_store_stats(self) -> Dict[str, Any]:
        with self._lock:
            count = len(self._records)
        return {
            'store': self.name,
            'records': count,
        }

    def _check_unique_ticket(self, ticket_number: Optional[str]) -> None:
        """Caller must hold the lock."""
        if ticket_number is None:
            return
        for _, existing in self._records.values():
            if existing.ticket_number == ticket_number:
                raise DuplicateKeyError('ticket_number', ticket_number)
