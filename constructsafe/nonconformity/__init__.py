"""Ticket numbering, field rules, validation and notifications."""
