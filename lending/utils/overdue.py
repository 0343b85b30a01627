"""
Overdue Detection
=================

A loan is behind when fewer payments have been recorded than periods have
elapsed since its start date:

    expected = periods_elapsed(start_date, as_of, period_unit)
    missed   = max(0, expected - number_of_payments)
    overdue  = missed * installment

Payment amounts do not matter here, only the count: one payment of three
installments still counts as one period paid.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from django.db.models import Count, Max

from lending.models import Loan
from lending.utils.helpers import today
from lending.utils.money import PeriodCalculator


@dataclass(frozen=True)
class OverdueStatus:
    missed_periods: int
    overdue_amount: int
    last_payment_date: Optional[date]
    expected_payments: int
    actual_payments: int

    @property
    def is_overdue(self):
        return self.missed_periods > 0


def compute_overdue(loan, as_of_date=None, actual_payments=None, last_payment_date=None):
    """
    Overdue status of one loan as of a date; never changes the loan

    actual_payments / last_payment_date can be passed in when they were
    already fetched in bulk.
    """
    as_of = as_of_date or today()

    expected = PeriodCalculator.periods_elapsed(loan.start_date, as_of, loan.period_unit)

    if actual_payments is None:
        summary = loan.payments.aggregate(count=Count('id'), last=Max('payment_date'))
        actual_payments = summary['count']
        last_payment_date = summary['last']

    missed = max(0, expected - actual_payments)
    return OverdueStatus(
        missed_periods=missed,
        overdue_amount=missed * loan.installment,
        last_payment_date=last_payment_date,
        expected_payments=expected,
        actual_payments=actual_payments,
    )


def overdue_loans(loans=None, as_of_date=None):
    """
    Loans that are behind, most missed periods first

    Only loans with money still owed are considered. Ties are ordered by
    customer name.

    Returns:
        list of (loan, OverdueStatus)
    """
    if loans is None:
        loans = Loan.objects.outstanding()

    as_of = as_of_date or today()
    loans = (
        loans.filter(balance__gt=0)
        .exclude(status='archived')
        .select_related('customer')
        .annotate(payment_count=Count('payments'), last_payment=Max('payments__payment_date'))
    )

    rows = []
    for loan in loans:
        status = compute_overdue(
            loan, as_of,
            actual_payments=loan.payment_count,
            last_payment_date=loan.last_payment,
        )
        if status.is_overdue:
            rows.append((loan, status))

    rows.sort(key=lambda row: (-row[1].missed_periods, row[0].customer.name.lower()))
    return rows


def overdue_summary(rows):
    """Header numbers for the overdue screen."""
    return {
        'customers': len({loan.customer_id for loan, _ in rows}),
        'loans': len(rows),
        'total_missed_periods': sum(status.missed_periods for _, status in rows),
        'total_overdue_amount': sum(status.overdue_amount for _, status in rows),
    }
