"""
Dashboard and collection-sheet figures
"""

from datetime import timedelta

from django.db.models import Sum

from lending.models import Customer, Loan, Payment
from lending.utils.helpers import today
from lending.utils.money import DAILY, WEEKLY, PeriodCalculator


def dashboard_stats(as_of_date=None):
    """
    Headline numbers for the dashboard

    Payments "this week" are those dated in the seven days up to as_of.
    """
    as_of = as_of_date or today()
    active = Loan.objects.active()

    return {
        'active_loans': active.count(),
        'outstanding': active.aggregate(total=Sum('balance'))['total'] or 0,
        'total_customers': Customer.objects.count(),
        'payments_this_week': Payment.objects.between(as_of - timedelta(days=7), as_of).count(),
        'portfolio': Loan.objects.all().get_portfolio_summary(),
    }


def _collection_sheet(collection_date, period_unit, days_per_period):
    collection_date = PeriodCalculator.as_date(collection_date)

    loans = (
        Loan.objects.active()
        .filter(balance__gt=0, period_unit=period_unit)
        .select_related('customer')
    )
    paid_today = {
        p.loan_id: p
        for p in Payment.objects.filter(payment_date=collection_date, loan__in=loans)
    }

    rows = []
    for loan in loans:
        periods_diff = (collection_date - loan.start_date).days // days_per_period
        if periods_diff < 0 or periods_diff >= max(loan.total_periods, 1):
            continue

        payment = paid_today.get(loan.pk)
        rows.append({
            'loan': loan,
            'period_number': periods_diff + 1,
            'is_paid': payment is not None,
            'payment': payment,
        })

    rows.sort(key=lambda row: (row['is_paid'], row['loan'].customer.name.lower()))
    return rows


def sunday_collections(collection_date):
    """
    Collection sheet for one Sunday

    Every active weekly loan still owing whose schedule covers the date,
    with its week number and whether it has been paid on that day. Unpaid
    rows come first, then by customer name.
    """
    rows = _collection_sheet(collection_date, WEEKLY, 7)
    for row in rows:
        row['week_number'] = row.pop('period_number')
    return rows


def daily_collections(collection_date):
    """
    Collection sheet for one day of daily loans

    Same layout as the Sunday sheet, keyed by day number instead of week.
    """
    rows = _collection_sheet(collection_date, DAILY, 1)
    for row in rows:
        row['day_number'] = row.pop('period_number')
    return rows
