from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError


class LedgerError(Exception):
    """Base class for every error raised by the ledger engine."""
    pass


class ValidationError(DjangoValidationError, LedgerError):
    """Malformed input, invalid enum value, bad amount.
    Also a Django ValidationError so forms and admin display it."""
    pass


class UnbalancedJournalError(ValidationError):
    """Raised when a JournalEntry fails double-entry balance check."""
    pass


class NotFoundError(ObjectDoesNotExist, LedgerError):
    """Referenced account, entry or period does not exist (for this company)."""
    pass


class ConflictError(LedgerError):
    """State machine violation or duplicate number."""

    @classmethod
    def duplicate(cls, resource, field, value):
        return cls(f"{resource} with {field} '{value}' already exists")

    @classmethod
    def state(cls, resource, current, required):
        return cls(
            f"{resource} is in '{current}' state, but '{required}' is required"
        )


class DomainError(LedgerError):
    """Business rule violation (closed period, inactive account, cycles...)."""
    pass
