"""
Lifecycle automation for construction Non-Conformity records.

Sequential ticket numbers, type-dependent field rules, a pre-save
validation gate and manager notifications.
"""

from .nonconformity.field_rules import FieldRuleEngine, GovernedField
from .nonconformity.notifications import NotificationDispatcher, NotificationQueue
from .nonconformity.service import NonConformityService
from .nonconformity.ticket_numbers import TicketNumberGenerator
from .nonconformity.validation import ValidationGate

__all__ = [
    "FieldRuleEngine",
    "GovernedField",
    "NotificationDispatcher",
    "NotificationQueue",
    "NonConformityService",
    "TicketNumberGenerator",
    "ValidationGate",
]
