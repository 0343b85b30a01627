"""
Custom QuerySets and Managers
==============================

Provides reusable query methods for common filtering operations
"""

import logging

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Count, Q, Sum

from lending.exceptions import InvalidAmount, NotFound
from lending.utils.helpers import ledger_atomic, parse_date, today
from lending.utils.money import (
    MoneyCalculator, installment_for, normalize_period_unit,
)


logger = logging.getLogger(__name__)


class FetchMixin:
    """Lookup by primary key that raises NotFound instead of DoesNotExist"""

    def fetch(self, pk):
        try:
            return self.get(pk=pk)
        except (self.model.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"{self.model._meta.verbose_name.capitalize()} {pk} not found")


class ActiveInactiveQuerySet(models.QuerySet):
    """QuerySet with active/inactive filtering"""

    def active(self):
        """Get only active records"""
        return self.filter(is_active=True)


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerQuerySet(FetchMixin, models.QuerySet):
    """Custom QuerySet for Customer model"""

    def search(self, term):
        """Name or phone contains `term`"""
        if not term:
            return self
        return self.filter(Q(name__icontains=term) | Q(phone__icontains=term))

    def with_loan_summary(self):
        """Annotate outstanding balance and active loan count"""
        return self.annotate(
            outstanding=Sum('loans__balance', filter=Q(loans__balance__gt=0)),
            active_loan_count=Count('loans', filter=Q(loans__status='active')),
        )


class CustomerManager(models.Manager):
    """Custom Manager for Customer model"""

    def get_queryset(self):
        return CustomerQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def search(self, term):
        return self.get_queryset().search(term)


# =============================================================================
# LOANS
# =============================================================================

class LoanQuerySet(FetchMixin, models.QuerySet):
    """Custom QuerySet for Loan model"""

    def active(self):
        """Loans still collecting"""
        return self.filter(status='active')

    def closed(self):
        """Fully repaid loans"""
        return self.filter(status='closed')

    def defaulted(self):
        return self.filter(status='defaulted')

    def outstanding(self):
        """Loans with money still owed that can still be collected or triaged"""
        return self.filter(balance__gt=0).exclude(status='archived')

    def by_period_unit(self, period_unit):
        return self.filter(period_unit=normalize_period_unit(period_unit))

    def get_portfolio_summary(self):
        """Get loan portfolio summary"""
        aggregate_data = self.aggregate(
            total_loans=Count('id'),
            total_principal=Sum('principal'),
            total_outstanding=Sum('balance'),
        )
        total_principal = aggregate_data['total_principal'] or 0
        total_outstanding = aggregate_data['total_outstanding'] or 0

        return {
            'total_loans': aggregate_data['total_loans'],
            'active_loans': self.active().count(),
            'closed_loans': self.closed().count(),
            'defaulted_loans': self.defaulted().count(),
            'total_principal': total_principal,
            'total_outstanding': total_outstanding,
            'total_collected': total_principal - total_outstanding,
        }


class LoanManager(models.Manager):
    """Custom Manager for Loan model"""

    def get_queryset(self):
        return LoanQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def active(self):
        return self.get_queryset().active()

    def outstanding(self):
        return self.get_queryset().outstanding()

    @ledger_atomic
    def create_loan(self, customer, principal, period_unit='weekly', installment=None,
                    start_date=None, loan_name='', loan_given_date=None):
        """
        Open a new loan for a customer

        The installment defaults from the per-unit policy table when it is
        not given. Balance starts at the principal.

        Raises:
            InvalidAmount: principal or installment not positive
        """
        principal = MoneyCalculator.round_currency(principal)
        if principal <= 0:
            raise InvalidAmount("Loan amount must be greater than zero")

        period_unit = normalize_period_unit(period_unit)
        installment = installment_for(principal, period_unit, installment)
        start_date = parse_date(start_date, default=today())
        loan_given_date = parse_date(loan_given_date, default=start_date)

        loan = self.create(
            customer=customer,
            loan_name=(loan_name or '').strip(),
            period_unit=period_unit,
            principal=principal,
            installment=installment,
            balance=principal,
            start_date=start_date,
            loan_given_date=loan_given_date,
            status='active',
        )

        logger.info(
            f"Loan created: Loan={loan.pk}, Customer={customer.name}, "
            f"Principal=₹{principal}, Installment=₹{installment} {period_unit}"
        )
        return loan


# =============================================================================
# PAYMENTS
# =============================================================================

class PaymentQuerySet(FetchMixin, models.QuerySet):
    """Custom QuerySet for Payment model"""

    def for_loan(self, loan):
        return self.filter(loan=loan)

    def in_insertion_order(self):
        return self.order_by('created_at', 'week_number')

    def on_date(self, payment_date):
        return self.filter(payment_date=payment_date)

    def between(self, start_date, end_date):
        """Payments dated in range, both ends inclusive"""
        return self.filter(payment_date__gte=start_date, payment_date__lte=end_date)

    def recent(self, limit=50):
        return self.select_related('loan', 'loan__customer').order_by('-payment_date', '-created_at')[:limit]

    def get_totals(self):
        """Get total, offline and online amounts"""
        totals = self.aggregate(
            count=Count('id'),
            total=Sum('amount'),
            offline=Sum('offline_amount'),
            online=Sum('online_amount'),
        )
        return {
            'count': totals['count'],
            'total': totals['total'] or 0,
            'offline': totals['offline'] or 0,
            'online': totals['online'] or 0,
        }


class PaymentManager(models.Manager):
    """Custom Manager for Payment model"""

    def get_queryset(self):
        return PaymentQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def between(self, start_date, end_date):
        return self.get_queryset().between(start_date, end_date)

    def delete_payment(self, pk):
        """
        Remove a payment by id and rebuild its loan's balance

        Raises:
            NotFound: no payment with that id
        """
        payment = self.get_queryset().select_related('loan').fetch(pk)
        return payment.loan.delete_payment(payment)


# =============================================================================
# ARCHIVE
# =============================================================================

class ArchivedLoanQuerySet(FetchMixin, models.QuerySet):
    """Custom QuerySet for ArchivedLoan model"""

    def written_off(self):
        return self.filter(written_off=True)

    def search(self, term):
        if not term:
            return self
        return self.filter(
            Q(customer_name__icontains=term)
            | Q(customer_phone__icontains=term)
            | Q(loan_name__icontains=term)
        )


class ArchivedLoanManager(models.Manager):
    """Custom Manager for ArchivedLoan model"""

    def get_queryset(self):
        return ArchivedLoanQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def search(self, term):
        return self.get_queryset().search(term)


# =============================================================================
# CHIT FUNDS
# =============================================================================

class ChitGroupQuerySet(FetchMixin, ActiveInactiveQuerySet):
    """Custom QuerySet for ChitGroup model"""

    def with_member_counts(self):
        return self.annotate(
            enrolled_members=Count('members', filter=Q(members__is_active=True), distinct=True),
        )


class ChitGroupManager(models.Manager):
    """Custom Manager for ChitGroup model"""

    def get_queryset(self):
        return ChitGroupQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def active(self):
        return self.get_queryset().active()


class ChitMemberQuerySet(FetchMixin, ActiveInactiveQuerySet):
    """Custom QuerySet for ChitMember model"""


class ChitMemberManager(models.Manager):
    """Custom Manager for ChitMember model"""

    def get_queryset(self):
        return ChitMemberQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def active(self):
        return self.get_queryset().active()


class ChitPaymentQuerySet(FetchMixin, models.QuerySet):
    """Custom QuerySet for ChitPayment model"""

    def for_month(self, month):
        return self.filter(month=month)


class ChitPaymentManager(models.Manager):
    """Custom Manager for ChitPayment model"""

    def get_queryset(self):
        return ChitPaymentQuerySet(self.model, using=self._db)

    def fetch(self, pk):
        return self.get_queryset().fetch(pk)

    def for_month(self, month):
        return self.get_queryset().for_month(month)

    def undo_payment(self, pk):
        """
        Remove a chit payment by id

        Raises:
            NotFound: no chit payment with that id
        """
        payment = self.fetch(pk)
        payment.undo()
        return payment
