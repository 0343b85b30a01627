"""
Money and Period Calculation Utilities
======================================

All stored amounts are whole rupees. Fractions produced by division or
percentages are rounded half-up to the nearest rupee before they are stored.

Period arithmetic (weekly / monthly / daily) lives here as well so the
ledger, the overdue detector and the collection sheet agree on what
"one period" means.
"""

import math
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from dateutil.relativedelta import relativedelta
from django.conf import settings

from lending.exceptions import InvalidAmount, LedgerValidationError


WEEKLY = 'weekly'
MONTHLY = 'monthly'
DAILY = 'daily'

PERIOD_UNITS = (WEEKLY, MONTHLY, DAILY)

# Installment count used when a loan is created without an explicit installment
DEFAULT_PERIODS = {
    WEEKLY: 10,
    DAILY: 10,
    MONTHLY: 5,
}


def get_default_periods(period_unit):
    """Policy lookup for the default number of installments of a period unit."""
    table = getattr(settings, 'LEDGER_DEFAULT_PERIODS', DEFAULT_PERIODS)
    period_unit = normalize_period_unit(period_unit)
    return int(table.get(period_unit, DEFAULT_PERIODS[period_unit]))


def normalize_period_unit(period_unit):
    """Accept 'Weekly' / 'weekly' / ' WEEKLY ' and return the canonical key."""
    value = str(period_unit or '').strip().lower()
    if value not in PERIOD_UNITS:
        raise LedgerValidationError(
            f"Unknown period unit: {period_unit!r}. Expected one of {', '.join(PERIOD_UNITS)}"
        )
    return value


class MoneyCalculator:
    """
    Consistent whole-rupee calculations

    Usage:
        MoneyCalculator.round_currency(1234.5)          # 1235
        MoneyCalculator.calculate_percentage(10000, 3)  # 300
    """

    ONE = Decimal('1')

    @staticmethod
    def to_decimal(amount):
        if amount is None or amount == '':
            return Decimal('0')
        if isinstance(amount, bool):
            raise InvalidAmount("Invalid amount format")
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise InvalidAmount(f"Invalid amount format: {amount!r}")
        if not value.is_finite():
            raise InvalidAmount(f"Invalid amount format: {amount!r}")
        return value

    @staticmethod
    def round_currency(amount):
        """
        Round to the nearest whole rupee, half-up

        Returns:
            int
        """
        value = MoneyCalculator.to_decimal(amount)
        try:
            return int(value.quantize(MoneyCalculator.ONE, rounding=ROUND_HALF_UP))
        except InvalidOperation:
            raise InvalidAmount(f"Amount out of range: {amount!r}")

    @staticmethod
    def calculate_percentage(amount, percent):
        """
        Percentage of an amount, rounded to whole rupees

        Example:
            >>> MoneyCalculator.calculate_percentage(10000, 3)
            300
        """
        if not amount or not percent:
            return 0
        result = MoneyCalculator.to_decimal(amount) * MoneyCalculator.to_decimal(percent) / 100
        return MoneyCalculator.round_currency(result)

    @staticmethod
    def safe_divide(numerator, denominator, default=0):
        """Division rounded to whole rupees, `default` when dividing by zero."""
        if not denominator or MoneyCalculator.to_decimal(denominator) == 0:
            return default
        result = MoneyCalculator.to_decimal(numerator) / MoneyCalculator.to_decimal(denominator)
        return MoneyCalculator.round_currency(result)

    @staticmethod
    def format_currency(amount, symbol='₹'):
        """
        Indian digit grouping: 1234567 -> '₹12,34,567'
        """
        value = MoneyCalculator.round_currency(amount)
        sign = '-' if value < 0 else ''
        digits = str(abs(value))
        if len(digits) > 3:
            head, tail = digits[:-3], digits[-3:]
            groups = []
            while len(head) > 2:
                groups.insert(0, head[-2:])
                head = head[:-2]
            if head:
                groups.insert(0, head)
            digits = ','.join(groups + [tail])
        return f"{sign}{symbol}{digits}"


class PeriodCalculator:
    """
    Calendar arithmetic for weekly, monthly and daily loans
    """

    @staticmethod
    def as_date(value):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            return date.fromisoformat(value[:10])
        raise LedgerValidationError(f"Invalid date: {value!r}")

    @staticmethod
    def periods_elapsed(start_date, as_of_date, period_unit):
        """
        Whole periods between start_date and as_of_date

        Weekly and daily loans count elapsed days; monthly loans count
        calendar months, a month only counting once its day-of-month is
        reached. Never negative.
        """
        start = PeriodCalculator.as_date(start_date)
        as_of = PeriodCalculator.as_date(as_of_date)
        period_unit = normalize_period_unit(period_unit)

        if as_of <= start:
            return 0

        if period_unit == MONTHLY:
            months = (as_of.year - start.year) * 12 + (as_of.month - start.month)
            if as_of.day < start.day:
                months -= 1
            return max(months, 0)

        days = (as_of - start).days
        if period_unit == WEEKLY:
            return days // 7
        return days

    @staticmethod
    def due_dates(start_date, period_unit, count):
        """
        The first `count` due dates, one period apart, starting at start_date

        A monthly due date that falls past the end of a short month moves to
        the 1st of the following month, the first day periods_elapsed counts it.
        """
        start = PeriodCalculator.as_date(start_date)
        period_unit = normalize_period_unit(period_unit)
        dates = []
        for i in range(count):
            if period_unit == MONTHLY:
                due = start + relativedelta(months=i)
                if due.day < start.day:
                    due = due.replace(day=1) + relativedelta(months=1)
                dates.append(due)
            elif period_unit == WEEKLY:
                dates.append(start + timedelta(weeks=i))
            else:
                dates.append(start + timedelta(days=i))
        return dates

    @staticmethod
    def previous_sunday(value):
        """The Sunday on or before `value`."""
        day = PeriodCalculator.as_date(value)
        # Monday == 0 ... Sunday == 6
        return day - timedelta(days=(day.weekday() + 1) % 7)


class InstallmentCalculator:
    """
    Installment size and period counts for flat amortizing loans
    """

    @staticmethod
    def installment_for(principal, period_unit, installment=None):
        """
        Per-period installment

        An explicit installment is authoritative. Otherwise the principal is
        spread over the default number of periods for the unit
        (weekly/daily 10, monthly 5).
        """
        if installment not in (None, ''):
            value = MoneyCalculator.round_currency(installment)
            if value <= 0:
                raise InvalidAmount("Installment must be greater than zero")
            return value

        periods = get_default_periods(period_unit)
        value = MoneyCalculator.safe_divide(principal, periods)
        if value <= 0:
            raise InvalidAmount("Principal must be greater than zero")
        return value

    @staticmethod
    def total_periods(principal, installment):
        if not installment or installment <= 0:
            return 0
        return math.ceil(principal / installment)

    @staticmethod
    def periods_remaining(balance, installment):
        if not installment or installment <= 0 or balance <= 0:
            return 0
        return math.ceil(balance / installment)


class VaddiCalculator:
    """
    Flat vaddi (interest) previews for the vaddi calculator screen
    """

    @staticmethod
    def from_period_count(loan_amount, periods):
        """
        Per-period amount rounded up, and the vaddi that rounding produces

        Returns:
            dict: loan, periods, per_period_amount, total_collection,
                  total_vaddi, vaddi_percent
        """
        loan_amount = MoneyCalculator.round_currency(loan_amount)
        periods = int(periods)
        if loan_amount <= 0:
            raise InvalidAmount("Loan amount must be greater than zero")
        if periods <= 0:
            raise LedgerValidationError("Number of periods must be greater than zero")

        per_period = math.ceil(loan_amount / periods)
        total_collection = per_period * periods
        total_vaddi = total_collection - loan_amount
        vaddi_percent = (Decimal(total_vaddi) / Decimal(loan_amount) * 100).quantize(
            Decimal('0.01'), rounding=ROUND_HALF_UP
        )
        return {
            'loan': loan_amount,
            'periods': periods,
            'per_period_amount': per_period,
            'total_collection': total_collection,
            'total_vaddi': total_vaddi,
            'vaddi_percent': vaddi_percent,
        }

    @staticmethod
    def from_vaddi_percent(loan_amount, periods, vaddi_percent):
        """Per-period amount that collects loan + vaddi_percent% over `periods`."""
        loan_amount = MoneyCalculator.round_currency(loan_amount)
        periods = int(periods)
        if loan_amount <= 0:
            raise InvalidAmount("Loan amount must be greater than zero")
        if periods <= 0:
            raise LedgerValidationError("Number of periods must be greater than zero")

        total_vaddi = MoneyCalculator.calculate_percentage(loan_amount, vaddi_percent)
        total_collection = loan_amount + total_vaddi
        return {
            'loan': loan_amount,
            'periods': periods,
            'per_period_amount': math.ceil(total_collection / periods),
            'total_collection': total_collection,
            'total_vaddi': total_vaddi,
            'vaddi_percent': MoneyCalculator.to_decimal(vaddi_percent),
        }


class ChitCalculator:
    """
    Chit-fund pool arithmetic
    """

    @staticmethod
    def monthly_contribution(chit_amount, member_count):
        if not member_count or int(member_count) <= 0:
            raise LedgerValidationError("Member count must be at least 1")
        return MoneyCalculator.safe_divide(chit_amount, member_count)

    @staticmethod
    def settle_auction(monthly_amount, member_count, bid_amount, commission):
        """
        Split one month's pool between the winner, the bid and the commission

        The pool is taken as fully funded (contribution x members) whether or
        not every member has paid for the month.

        Returns:
            dict: total_collected, amount_to_winner, carry_forward
        """
        total_collected = int(monthly_amount) * int(member_count)
        amount_to_winner = max(0, total_collected - int(bid_amount) - int(commission))
        return {
            'total_collected': total_collected,
            'amount_to_winner': amount_to_winner,
            'carry_forward': int(bid_amount),
        }


# Quick access functions
def round_currency(amount):
    """Shortcut for MoneyCalculator.round_currency"""
    return MoneyCalculator.round_currency(amount)


def format_currency(amount):
    """Shortcut for MoneyCalculator.format_currency"""
    return MoneyCalculator.format_currency(amount)


def periods_elapsed(start_date, as_of_date, period_unit):
    """Shortcut for PeriodCalculator.periods_elapsed"""
    return PeriodCalculator.periods_elapsed(start_date, as_of_date, period_unit)


def installment_for(principal, period_unit, installment=None):
    """Shortcut for InstallmentCalculator.installment_for"""
    return InstallmentCalculator.installment_for(principal, period_unit, installment)


def top_up_preview(loan, additional_amount):
    """
    Numbers for the top-up confirmation panel

    Returns:
        dict: new principal and balance, periods added and the new totals
    """
    additional_amount = MoneyCalculator.round_currency(additional_amount)
    if additional_amount <= 0:
        raise InvalidAmount("Top-up amount must be greater than zero")

    new_principal = loan.principal + additional_amount
    new_balance = loan.balance + additional_amount
    periods_before = InstallmentCalculator.periods_remaining(loan.balance, loan.installment)
    periods_after = InstallmentCalculator.periods_remaining(new_balance, loan.installment)
    return {
        'additional_amount': additional_amount,
        'new_principal': new_principal,
        'new_balance': new_balance,
        'installment': loan.installment,
        'additional_periods': periods_after - periods_before,
        'periods_remaining': periods_after,
        'new_total_periods': InstallmentCalculator.total_periods(new_principal, loan.installment),
    }
