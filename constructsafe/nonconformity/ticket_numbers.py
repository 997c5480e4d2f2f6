"""
Sequential ticket numbers for Non-Conformity records.

Format: <PREFIX>-<sequence>, zero-padded to the configured width
(NC-00001, NC-00002, ...). Sequences wider than the padding keep all digits.

Uniqueness under concurrent creation relies on the record store's unique
constraint on ticket_number: a collision clears the generated number and
recomputes it from the store, up to max_attempts times.
"""
import logging
from typing import Optional

from schemas.nonconformity import NonConformityRecord
from constructsafe.config.settings import settings
from constructsafe.nonconformity.errors import TicketNumberContentionError
from constructsafe.stores.base_store import (
    DuplicateKeyError,
    FilterOperator,
    OrderBy,
    QueryFilter,
    RecordStore,
)
from constructsafe.utils.helpers import retry_on_exception

logger = logging.getLogger(__name__)


class TicketNumberGenerator:
    """Assigns ticket numbers and creates records under them."""

    def __init__(
        self,
        store: RecordStore,
        prefix: Optional[str] = None,
        pad_width: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        self.store = store
        self.prefix = prefix or settings.TICKET_PREFIX
        self.pad_width = pad_width or settings.TICKET_PAD_WIDTH
        self.max_attempts = max_attempts or settings.TICKET_MAX_ATTEMPTS

    def format(self, sequence: int) -> str:
        """Render a sequence value, e.g. 42 -> 'NC-00042'."""
        return f'{self.prefix}-{sequence:0{self.pad_width}d}'

    def parse(self, ticket_number: Optional[str]) -> int:
        """
        Extract the sequence from a ticket number.

        Anything unparseable counts as 0, so numbering restarts at 1
        instead of blocking record creation.
        """
        if not ticket_number:
            return 0
        suffix = ticket_number.rsplit('-', 1)[-1]
        try:
            return int(suffix)
        except ValueError:
            logger.warning(f'Unparseable ticket number {ticket_number!r}; treating as 0')
            return 0

    def last_ticket_number(self) -> Optional[str]:
        """Ticket number of the most recently created numbered record."""
        latest = self.store.query(
            filters=[
                QueryFilter('ticket_number', FilterOperator.NOT_NULL),
                QueryFilter('ticket_number', FilterOperator.BEGINS_WITH, f'{self.prefix}-'),
            ],
            order_by=OrderBy('created_at', descending=True),
            limit=1,
        )
        return latest[0].ticket_number if latest else None

    def next_ticket_number(self) -> str:
        """Compute the next ticket number from the store. Store errors propagate."""
        last = self.last_ticket_number()
        return self.format(self.parse(last) + 1)

    def assign(self, candidate: NonConformityRecord) -> str:
        """
        Assign a ticket number to a record that is about to be created.

        A record that already carries a ticket number keeps it and the
        store is not queried.
        """
        if candidate.ticket_number:
            logger.debug(f'Ticket already set: {candidate.ticket_number}')
            return candidate.ticket_number

        ticket_number = self.next_ticket_number()
        candidate.ticket_number = ticket_number
        return ticket_number

    def create_with_ticket(self, candidate: NonConformityRecord) -> str:
        """
        Number and create a record as one unit of work.

        Returns:
            The new record id

        Raises:
            TicketNumberContentionError: Generated numbers kept colliding
            DuplicateKeyError: A pre-seeded ticket number is already taken
            RecordStoreError: Any other store failure
        """
        if candidate.ticket_number:
            return self.store.create(candidate)

        def attempt() -> str:
            ticket_number = self.assign(candidate)
            try:
                return self.store.create(candidate)
            except DuplicateKeyError:
                candidate.ticket_number = None
                logger.info(f'Ticket {ticket_number} taken concurrently; recomputing')
                raise

        try:
            record_id = retry_on_exception(
                attempt,
                max_attempts=self.max_attempts,
                exceptions=(DuplicateKeyError,),
            )
        except DuplicateKeyError as e:
            raise TicketNumberContentionError(self.max_attempts) from e

        logger.info(f'Assigned ticket {candidate.ticket_number} to {record_id}')
        return record_id
