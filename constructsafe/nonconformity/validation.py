"""Pre-save validation for Non-Conformity records."""
from dataclasses import dataclass
from typing import Optional

from schemas.nonconformity import NonConformityRecord, NonConformityType
from constructsafe.nonconformity.errors import ValidationRejectedError
from constructsafe.utils.helpers import is_blank

SAFETY_LOCATION_REQUIRED = 'SAFETY_LOCATION_REQUIRED'

MESSAGES = {
    SAFETY_LOCATION_REQUIRED: 'Safety non-conformities require a Location to be specified.',
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation run. ok=False carries code and message."""
    ok: bool
    code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def accepted(cls) -> 'ValidationResult':
        return cls(ok=True)

    @classmethod
    def rejected(cls, code: str) -> 'ValidationResult':
        return cls(ok=False, code=code, message=MESSAGES[code])

    def raise_for_rejection(self) -> None:
        if not self.ok:
            raise ValidationRejectedError(self.code, self.message)


class ValidationGate:
    """
    Checks a record immediately before it is committed.

    Works on the record as presented; keeps no state between calls and does
    not re-run the field rules.
    """

    def validate(self, record: NonConformityRecord) -> ValidationResult:
        if record.type == NonConformityType.SAFETY and is_blank(record.location):
            return ValidationResult.rejected(SAFETY_LOCATION_REQUIRED)
        return ValidationResult.accepted()
