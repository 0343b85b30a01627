import functools
import logging
from datetime import date

from django.db import DatabaseError, transaction as db_transaction
from django.utils import timezone

from lending.exceptions import LedgerValidationError, StorageError
from lending.utils.money import (
    InstallmentCalculator, PeriodCalculator, normalize_period_unit,
)


logger = logging.getLogger(__name__)


# =============================================================================
# HELPER: ATOMIC LEDGER MUTATION
# =============================================================================

def ledger_atomic(func):
    """
    Run a ledger mutation inside one transaction

    A DatabaseError raised while the mutation runs is re-raised as
    StorageError; nothing the mutation did survives.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            with db_transaction.atomic():
                return func(*args, **kwargs)
        except DatabaseError as e:
            logger.error(f"Storage failure in {func.__qualname__}: {str(e)}")
            raise StorageError(str(e)) from e
    return wrapper


# =============================================================================
# HELPER: DATES AND MONTH KEYS
# =============================================================================

def today():
    return timezone.localdate()


def parse_date(value, default=None):
    """Accept a date, datetime or ISO string; `default` when value is empty."""
    if value in (None, ''):
        return default
    try:
        return PeriodCalculator.as_date(value)
    except ValueError:
        raise LedgerValidationError(f"Invalid date: {value!r}. Expected YYYY-MM-DD")


def parse_month(value):
    """
    Normalize a chit month key to 'YYYY-MM'

    Accepts '2024-03', '2024-3' or a date.
    """
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}"
    text = str(value or '').strip()
    parts = text.split('-')
    if len(parts) < 2:
        raise LedgerValidationError(f"Invalid month: {value!r}. Expected YYYY-MM")
    try:
        year, month = int(parts[0]), int(parts[1])
    except ValueError:
        raise LedgerValidationError(f"Invalid month: {value!r}. Expected YYYY-MM")
    if not 1 <= month <= 12 or year < 1900:
        raise LedgerValidationError(f"Invalid month: {value!r}. Expected YYYY-MM")
    return f"{year:04d}-{month:02d}"


def current_month():
    return parse_month(today())


# =============================================================================
# HELPER FUNCTION: GENERATE PAYMENT SCHEDULE
# =============================================================================

def generate_payment_schedule(loan, as_of_date=None):
    """
    Installment schedule for a loan with status indicators

    Installments are counted as paid from the number of payments recorded,
    the same way the overdue detector counts them.

    Returns:
        list: Schedule with due date, amount and status per installment
    """
    as_of = as_of_date or today()
    period_unit = normalize_period_unit(loan.period_unit)

    num_installments = InstallmentCalculator.total_periods(loan.principal, loan.installment)
    if num_installments == 0:
        return []

    payments_made = loan.payments.count() if loan.pk else 0
    # First installment falls one period after the start date
    due_dates = PeriodCalculator.due_dates(loan.start_date, period_unit, num_installments + 1)[1:]

    schedule = []
    remaining_balance = loan.principal

    for i, due_date in enumerate(due_dates):
        installment_number = i + 1

        # Last installment absorbs the remainder
        if installment_number == num_installments:
            current_installment = remaining_balance
        else:
            current_installment = min(loan.installment, remaining_balance)
        remaining_balance -= current_installment

        if installment_number <= payments_made:
            status = 'paid'
        elif due_date <= as_of:
            status = 'overdue'
        else:
            status = 'pending'

        schedule.append({
            'installment_number': installment_number,
            'due_date': due_date,
            'installment_amount': current_installment,
            'remaining_balance': max(remaining_balance, 0),
            'status': status,
            'is_paid': status == 'paid',
            'is_overdue': status == 'overdue',
            'days_overdue': (as_of - due_date).days if status == 'overdue' else None,
        })

    return schedule
