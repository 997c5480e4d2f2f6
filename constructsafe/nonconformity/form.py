"""
Entry points for the record form.

The form calls on_load when a record is opened (new or existing),
on_type_change whenever the type changes, and on_before_save right before
committing. Nothing here touches the record store.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

from schemas.nonconformity import NonConformityRecord
from constructsafe.nonconformity.field_rules import FieldConstraintSet, FieldRuleEngine
from constructsafe.nonconformity.validation import (
    SAFETY_LOCATION_REQUIRED,
    ValidationGate,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormNotification:
    """Banner shown on the form."""
    code: str
    message: str
    level: str = 'ERROR'


@dataclass(frozen=True)
class SaveDecision:
    """Whether the form may commit; carries the rejection when it may not."""
    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None


class NonConformityForm:
    """One editing session of a single record."""

    def __init__(
        self,
        rules: Optional[FieldRuleEngine] = None,
        gate: Optional[ValidationGate] = None,
    ):
        self.rules = rules or FieldRuleEngine()
        self.gate = gate or ValidationGate()
        self.notifications: Dict[str, FormNotification] = {}
        self.constraints: Optional[FieldConstraintSet] = None

    def on_load(self, record: NonConformityRecord, is_new: bool = False) -> FieldConstraintSet:
        """Apply the field rules and default the report date of new records."""
        if is_new and record.date_reported is None:
            record.date_reported = datetime.now(timezone.utc)
        self.constraints = self.rules.apply_to_record(record)
        logger.debug(f'Form loaded for {record.ticket_number or "new record"}')
        return self.constraints

    def on_type_change(self, record: NonConformityRecord) -> FieldConstraintSet:
        self.constraints = self.rules.apply_to_record(record)
        return self.constraints

    def on_before_save(self, record: NonConformityRecord) -> SaveDecision:
        """Block the save and show a banner when validation fails."""
        result = self.gate.validate(record)
        if not result.ok:
            self.notifications[result.code] = FormNotification(result.code, result.message)
            return SaveDecision(allowed=False, code=result.code, reason=result.message)

        self.notifications.pop(SAFETY_LOCATION_REQUIRED, None)
        return SaveDecision(allowed=True)
