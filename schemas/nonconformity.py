"""
Non-Conformity record schemas.

These schemas define the structure of a Non-Conformity (NC) record as held by
the record store and passed between the form, the service and the notifier.

Enum values are the display labels used in notification e-mails.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class NonConformityType(str, Enum):
    """Kind of non-conformity. Drives the field rules."""
    SAFETY = "Safety"
    QUALITY = "Quality"
    ENVIRONMENTAL = "Environmental"
    DOCUMENTATION = "Documentation"
    OTHER = "Other"


class NonConformitySeverity(str, Enum):
    """Severity chosen by the reporter (forced to HIGH for safety issues)."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class NonConformityStatus(str, Enum):
    """Workflow status."""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class NonConformityRecord(BaseModel):
    """
    Non-Conformity record schema.

    Store: RecordStore entity 'nonconformity'
    Purpose: Track safety, quality and environmental issues found on site.

    Note: id and created_at are assigned by the record store;
    ticket_number is assigned once at creation and never changes.
    """

    model_config = {'populate_by_name': True, 'validate_assignment': True}

    # Primary key
    id: Optional[str] = Field(default=None, description="Store-assigned identifier")

    ticket_number: Optional[str] = Field(default=None, description="Sequential ticket (NC-00001)")
    name: Optional[str] = Field(default=None, description="Short title")
    type: Optional[NonConformityType] = Field(default=None, description="Non-conformity type")
    severity: Optional[NonConformitySeverity] = Field(default=None, description="Severity level")
    status: NonConformityStatus = Field(default=NonConformityStatus.OPEN, description="Current status")
    location: Optional[str] = Field(default=None, description="Where on site the issue was found")
    description: Optional[str] = Field(default=None, description="Issue description")
    date_reported: Optional[datetime] = Field(default=None, description="When the issue was reported")
    assigned_manager: Optional[str] = Field(default=None, description="Manager principal (e-mail or user id)")
    created_at: Optional[datetime] = Field(default=None, description="Store creation timestamp")


# Fields the store owns or that may only be set once
IMMUTABLE_FIELDS = frozenset({'id', 'ticket_number', 'created_at'})

# Changes to these fields on update notify the assigned manager
NOTIFICATION_FIELDS = frozenset({'status', 'severity', 'assigned_manager'})

# Column set re-read by the notifier
NOTIFICATION_COLUMNS = (
    'name',
    'type',
    'severity',
    'status',
    'location',
    'ticket_number',
    'assigned_manager',
)
