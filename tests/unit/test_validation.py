"""Unit tests for the pre-save validation gate."""
import pytest

from schemas.nonconformity import NonConformityRecord, NonConformityType
from constructsafe.nonconformity.errors import ValidationRejectedError
from constructsafe.nonconformity.validation import (
    SAFETY_LOCATION_REQUIRED,
    ValidationGate,
)


@pytest.fixture
def gate():
    return ValidationGate()


class TestValidationGate:
    """Test the safety location rule."""

    @pytest.mark.parametrize("location", ['', '   ', None])
    def test_safety_without_location_rejected(self, gate, location):
        record = NonConformityRecord(type=NonConformityType.SAFETY, location=location)
        result = gate.validate(record)

        assert result.ok is False
        assert result.code == SAFETY_LOCATION_REQUIRED
        assert 'Location' in result.message

    def test_safety_with_location_ok(self, gate):
        result = gate.validate(
            NonConformityRecord(type=NonConformityType.SAFETY, location='Roof')
        )
        assert result.ok is True
        assert result.code is None

    @pytest.mark.parametrize("nc_type", [
        NonConformityType.QUALITY,
        NonConformityType.ENVIRONMENTAL,
        NonConformityType.DOCUMENTATION,
        NonConformityType.OTHER,
        None,
    ])
    def test_other_types_not_checked(self, gate, nc_type):
        assert gate.validate(NonConformityRecord(type=nc_type, location='')).ok is True

    def test_no_state_between_calls(self, gate):
        rejected = gate.validate(NonConformityRecord(type=NonConformityType.SAFETY))
        corrected = gate.validate(
            NonConformityRecord(type=NonConformityType.SAFETY, location='Level 3')
        )

        assert rejected.ok is False
        assert corrected.ok is True

    def test_raise_for_rejection(self, gate):
        result = gate.validate(NonConformityRecord(type=NonConformityType.SAFETY))

        with pytest.raises(ValidationRejectedError) as exc_info:
            result.raise_for_rejection()

        assert exc_info.value.to_dict() == {
            'code': SAFETY_LOCATION_REQUIRED,
            'message': 'Safety non-conformities require a Location to be specified.',
        }

    def test_raise_for_rejection_noop_when_ok(self, gate):
        gate.validate(NonConformityRecord()).raise_for_rejection()
