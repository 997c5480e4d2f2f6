"""Exceptions raised by the non-conformity services."""


class TicketNumberContentionError(Exception):
    """Ticket assignment kept colliding with concurrent creations."""

    def __init__(self, attempts: int):
        super().__init__(
            f'Ticket numbering contention exhausted after {attempts} attempts'
        )
        self.attempts = attempts


class ValidationRejectedError(Exception):
    """A save was blocked by the validation gate."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class ImmutableFieldError(ValueError):
    """An update tried to change a field that is fixed after creation."""


class RecordNotCommittedError(Exception):
    """The record has unsaved changes or has not been numbered yet."""
