"""
Record schemas for Non-Conformity data.

This module defines the Pydantic model and enums for Non-Conformity records
shared by the form, the save service, the stores and the notifier.

Usage:
    from schemas import NonConformityRecord, NonConformityType

    record = NonConformityRecord(name='Missing guardrail', type=NonConformityType.SAFETY)
"""

from .nonconformity import (
    IMMUTABLE_FIELDS,
    NOTIFICATION_COLUMNS,
    NOTIFICATION_FIELDS,
    NonConformityRecord,
    NonConformitySeverity,
    NonConformityStatus,
    NonConformityType,
)

__all__ = [
    'IMMUTABLE_FIELDS',
    'NOTIFICATION_COLUMNS',
    'NOTIFICATION_FIELDS',
    'NonConformityRecord',
    'NonConformitySeverity',
    'NonConformityStatus',
    'NonConformityType',
]
