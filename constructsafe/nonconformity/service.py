"""
Create and update Non-Conformity records.

Order of a create: field rules (forced values) -> validation gate ->
ticket number + store create (one unit, retried on ticket collisions) ->
post-commit notification event. A rejected record never reaches the store.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from schemas.nonconformity import IMMUTABLE_FIELDS, NonConformityRecord
from constructsafe.nonconformity.errors import ImmutableFieldError
from constructsafe.nonconformity.field_rules import FieldRuleEngine
from constructsafe.nonconformity.notifications import (
    NotificationQueue,
    NotificationTrigger,
    RecordEvent,
    should_notify,
)
from constructsafe.nonconformity.ticket_numbers import TicketNumberGenerator
from constructsafe.nonconformity.validation import ValidationGate
from constructsafe.stores.base_store import RecordStore

logger = logging.getLogger(__name__)


class NonConformityService:
    """Server-side save pipeline for Non-Conformity records."""

    def __init__(
        self,
        store: RecordStore,
        notifications: Optional[NotificationQueue] = None,
        tickets: Optional[TicketNumberGenerator] = None,
        rules: Optional[FieldRuleEngine] = None,
        gate: Optional[ValidationGate] = None,
    ):
        self.store = store
        self.notifications = notifications
        self.tickets = tickets or TicketNumberGenerator(store)
        self.rules = rules or FieldRuleEngine()
        self.gate = gate or ValidationGate()

    async def create(self, record: NonConformityRecord) -> NonConformityRecord:
        """
        Validate, number and persist a new record.

        Raises:
            ValidationRejectedError: The record failed validation
            TicketNumberContentionError: Numbering retries were exhausted
            RecordStoreError: The store failed
        """
        candidate = record.model_copy(deep=True)
        candidate.id = None
        candidate.created_at = None
        if candidate.date_reported is None:
            candidate.date_reported = datetime.now(timezone.utc)

        self.rules.apply_to_record(candidate)
        self.gate.validate(candidate).raise_for_rejection()

        record_id = await asyncio.to_thread(self.tickets.create_with_ticket, candidate)
        logger.info(f'Created non-conformity {candidate.ticket_number} ({record_id})')

        if candidate.assigned_manager:
            self._publish(RecordEvent(record_id, NotificationTrigger.CREATED))

        return await asyncio.to_thread(self.store.retrieve, record_id)

    async def update(self, record_id: str, changes: Dict[str, Any]) -> NonConformityRecord:
        """
        Apply a partial update.

        Raises:
            ImmutableFieldError: changes touch id, ticket_number or created_at
            ValidationRejectedError: The updated record failed validation
            RecordNotFoundError: Unknown record id
        """
        unknown = set(changes) - set(NonConformityRecord.model_fields)
        if unknown:
            raise ValueError(f'Unknown fields: {", ".join(sorted(unknown))}')

        current = await asyncio.to_thread(self.store.retrieve, record_id)

        blocked = sorted(
            f for f in IMMUTABLE_FIELDS.intersection(changes)
            if changes[f] != getattr(current, f)
        )
        if blocked:
            raise ImmutableFieldError(f'Cannot change {", ".join(blocked)} of {record_id}')

        updated = NonConformityRecord.model_validate({**current.model_dump(), **changes})
        self.rules.apply_to_record(updated)
        self.gate.validate(updated).raise_for_rejection()

        delta = {
            f: getattr(updated, f)
            for f in NonConformityRecord.model_fields
            if f not in IMMUTABLE_FIELDS and getattr(updated, f) != getattr(current, f)
        }
        if not delta:
            logger.debug(f'No changes for {record_id}')
            return current

        await asyncio.to_thread(self.store.update, record_id, delta)
        logger.info(f'Updated {current.ticket_number}: {", ".join(sorted(delta))}')

        changed = frozenset(delta)
        if should_notify(NotificationTrigger.UPDATED, changed):
            self._publish(RecordEvent(record_id, NotificationTrigger.UPDATED, changed))

        return await asyncio.to_thread(self.store.retrieve, record_id)

    def _publish(self, event: RecordEvent) -> None:
        if self.notifications is None:
            logger.debug(f'No notification queue; {event.trigger.value} event dropped')
            return
        self.notifications.publish(event)
