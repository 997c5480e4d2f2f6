"""
Type-dependent field rules for Non-Conformity records.

The rule engine is a pure function of (type, current values): every call
starts from the baseline for all governed fields and then applies the
overrides of the selected type, so switching types never leaves stale
constraints behind.

| Type          | Location  | Description | Severity            |
|---------------|-----------|-------------|---------------------|
| Safety        | Required  | Required    | High (locked)       |
| Quality       | Optional  | Required    | User choice         |
| Environmental | Required  | Required    | User choice         |
| Documentation | Hidden    | Required    | User choice         |
| Other         | Optional  | Optional    | User choice         |
"""
from dataclasses import dataclass, replace
from enum import Enum
from collections.abc import Mapping
from typing import Any, Dict, MutableMapping, Optional

from schemas.nonconformity import (
    NonConformityRecord,
    NonConformitySeverity,
    NonConformityType,
)


class GovernedField(str, Enum):
    """Fields whose form state depends on the record type."""
    LOCATION = 'location'
    DESCRIPTION = 'description'
    SEVERITY = 'severity'


@dataclass(frozen=True)
class FieldConstraint:
    """Form state of one governed field."""
    visible: bool = True
    required: bool = False
    locked: bool = False
    forced_value: Optional[Any] = None


BASELINE = FieldConstraint()

REQUIRED = {'required': True}
HIDDEN = {'visible': False, 'required': False}
FORCED_HIGH = {'locked': True, 'forced_value': NonConformitySeverity.HIGH}

# Overrides applied on top of BASELINE; fields not listed stay at baseline.
RULES: Dict[NonConformityType, Dict[GovernedField, Dict[str, Any]]] = {
    NonConformityType.SAFETY: {
        GovernedField.LOCATION: REQUIRED,
        GovernedField.DESCRIPTION: REQUIRED,
        GovernedField.SEVERITY: FORCED_HIGH,
    },
    NonConformityType.QUALITY: {
        GovernedField.DESCRIPTION: REQUIRED,
    },
    NonConformityType.ENVIRONMENTAL: {
        GovernedField.LOCATION: REQUIRED,
        GovernedField.DESCRIPTION: REQUIRED,
    },
    NonConformityType.DOCUMENTATION: {
        GovernedField.LOCATION: HIDDEN,
        GovernedField.DESCRIPTION: REQUIRED,
    },
    NonConformityType.OTHER: {},
}


class FieldConstraintSet(Mapping):
    """Read-only mapping of GovernedField -> FieldConstraint."""

    def __init__(self, constraints: Dict[GovernedField, FieldConstraint]):
        self._constraints = dict(constraints)

    def __getitem__(self, field: GovernedField) -> FieldConstraint:
        try:
            return self._constraints[GovernedField(field)]
        except ValueError:
            raise KeyError(field) from None

    def __iter__(self):
        return iter(self._constraints)

    def __len__(self) -> int:
        return len(self._constraints)

    def __repr__(self) -> str:
        return f'FieldConstraintSet({self._constraints!r})'

    @property
    def required_fields(self) -> set:
        return {f for f, c in self._constraints.items() if c.required and c.visible}

    @property
    def hidden_fields(self) -> set:
        return {f for f, c in self._constraints.items() if not c.visible}

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Plain dict for JSON responses to the form."""
        return {
            f.value: {
                'visible': c.visible,
                'required': c.required,
                'locked': c.locked,
                'forcedValue': c.forced_value.value
                if isinstance(c.forced_value, Enum) else c.forced_value,
            }
            for f, c in self._constraints.items()
        }


class FieldRuleEngine:
    """Stateless rule engine; one instance can be shared freely."""

    def apply(
        self,
        nc_type: Optional[NonConformityType],
        values: MutableMapping[GovernedField, Any],
    ) -> FieldConstraintSet:
        """
        Compute field constraints for a type and enforce forced values.

        Args:
            nc_type: Selected type, or None when not chosen yet
            values: Current governed field values; forced values are
                written into it before the constraints are returned

        Returns:
            Constraints for every governed field
        """
        constraints = {field: BASELINE for field in GovernedField}

        if nc_type is not None:
            for field, override in RULES[NonConformityType(nc_type)].items():
                constraints[field] = replace(BASELINE, **override)

        for field, constraint in constraints.items():
            if constraint.forced_value is not None:
                values[field] = constraint.forced_value

        return FieldConstraintSet(constraints)

    def apply_to_record(self, record: NonConformityRecord) -> FieldConstraintSet:
        """Apply the rules to a record, writing forced values back to it."""
        values = {field: getattr(record, field.value) for field in GovernedField}
        constraints = self.apply(record.type, values)
        for field in GovernedField:
            if getattr(record, field.value) != values[field]:
                setattr(record, field.value, values[field])
        return constraints
