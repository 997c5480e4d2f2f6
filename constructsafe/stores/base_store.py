"""Base record store interface for Non-Conformity records."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging

from schemas.nonconformity import NonConformityRecord

logger = logging.getLogger(__name__)

ENTITY_NAME = 'nonconformity'


class RecordStoreError(Exception):
    """Raised when the record store fails to serve a request."""


class DuplicateKeyError(RecordStoreError):
    """Raised when a write violates a uniqueness constraint."""

    def __init__(self, field: str, value: Any):
        super().__init__(f'Duplicate value for {field}: {value!r}')
        self.field = field
        self.value = value


class RecordNotFoundError(RecordStoreError):
    """Raised when a record id does not exist."""


class FilterOperator(str, Enum):
    """Supported query conditions."""
    NOT_NULL = 'not_null'
    BEGINS_WITH = 'begins_with'
    EQUALS = 'equals'


@dataclass(frozen=True)
class QueryFilter:
    """A single query condition on a record field."""
    field: str
    operator: FilterOperator
    value: Any = None

    def matches(self, record: NonConformityRecord) -> bool:
        """Evaluate the condition against an in-memory record."""
        actual = getattr(record, self.field)
        if self.operator == FilterOperator.NOT_NULL:
            return actual is not None
        if self.operator == FilterOperator.BEGINS_WITH:
            return isinstance(actual, str) and actual.startswith(self.value)
        return actual == self.value


@dataclass(frozen=True)
class OrderBy:
    """Sort order for a query."""
    field: str
    descending: bool = False


class RecordStore(ABC):
    """
    Abstract base class for Non-Conformity record stores.

    Implementations must enforce uniqueness of ticket_number and raise
    DuplicateKeyError on violation; the ticket generator relies on it.
    """

    def __init__(self, name: str):
        """
        Initialize the store.

        Args:
            name: Name of the store (for logging)
        """
        self.name = name
        self.logger = logging.getLogger(f'{__name__}.{name}')

    @abstractmethod
    def query(
        self,
        filters: Sequence[QueryFilter] = (),
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[NonConformityRecord]:
        """
        Query records.

        Args:
            filters: Conditions that must all hold
            order_by: Optional sort order
            limit: Maximum number of records returned

        Returns:
            Matching records
        """
        pass

    @abstractmethod
    def create(self, record: NonConformityRecord) -> str:
        """
        Persist a new record.

        Args:
            record: Record to create (id and created_at are assigned here)

        Returns:
            The new record id

        Raises:
            DuplicateKeyError: If ticket_number is already taken
        """
        pass

    @abstractmethod
    def retrieve(
        self,
        record_id: str,
        fields: Optional[Sequence[str]] = None,
    ) -> NonConformityRecord:
        """
        Fetch one record by id.

        Args:
            record_id: Record id
            fields: Optional column set; other fields are left unset

        Raises:
            RecordNotFoundError: If the id is unknown
        """
        pass

    @abstractmethod
    def update(self, record_id: str, delta: Dict[str, Any]) -> None:
        """
        Apply a partial update.

        Args:
            record_id: Record id
            delta: Field name to new value
        """
        pass

    def get_store_stats(self) -> Dict[str, Any]:
        """Get statistics about the store."""
        return {
            'store': self.name,
        }
