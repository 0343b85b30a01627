"""
Ledger Exceptions
=================

Every failure raised by a ledger or chit operation is local and
recoverable: the caller shows the message and lets the operator retry.

    ValidationError            malformed / out-of-range input (Django's own)
    ├── InvalidAmount          non-positive amount, split that does not add up
    ├── ExceedsBalance         payment larger than the remaining balance
    ├── AlreadyPaid            chit member already paid for the month
    ├── InvalidSlot            slot outside 1..member_count or already settled
    ├── MissingWinner          auction without a (valid) winner
    └── IllegalStateTransition operation not allowed in the current status

    NotFound                   referenced record does not exist
    StorageError               database failure, never retried by the ledger
"""

from django.core.exceptions import ObjectDoesNotExist, ValidationError


class LedgerValidationError(ValidationError):
    """Base for ledger rule violations; carries a stable error code."""

    default_code = 'invalid'

    def __init__(self, message, code=None, params=None):
        super().__init__(message, code=code or self.default_code, params=params)


class InvalidAmount(LedgerValidationError):
    default_code = 'invalid_amount'


class ExceedsBalance(LedgerValidationError):
    default_code = 'exceeds_balance'


class AlreadyPaid(LedgerValidationError):
    default_code = 'already_paid'


class InvalidSlot(LedgerValidationError):
    default_code = 'invalid_slot'


class MissingWinner(LedgerValidationError):
    default_code = 'missing_winner'


class IllegalStateTransition(LedgerValidationError):
    default_code = 'illegal_state_transition'


class NotFound(ObjectDoesNotExist):
    """A loan, payment, member or auction id that does not exist."""


class StorageError(Exception):
    """Wraps a DatabaseError raised while a ledger mutation was running."""


def error_code(exc):
    """Stable machine-readable code for an exception raised by the ledger."""
    if isinstance(exc, NotFound):
        return 'not_found'
    if isinstance(exc, StorageError):
        return 'storage_error'
    return getattr(exc, 'code', None) or 'invalid'


def error_message(exc):
    """Single human-readable message for any ledger exception."""
    if isinstance(exc, ValidationError):
        return '; '.join(exc.messages)
    return str(exc)
