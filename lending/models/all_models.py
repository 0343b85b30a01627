"""
Lending Ledger - Consolidated Models
====================================

ALL MODELS IN ONE FILE

Customers and their weekly / monthly / daily loans, the payments collected
against them, top-ups, the loan archive, and the chit-fund groups with their
monthly collections and auctions.

Balance rule for every live loan:
    balance == principal - sum(payments.amount) >= 0
"""

from django.db import models, IntegrityError, transaction as db_transaction
from django.db.models import F, Sum
from django.utils import timezone
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError
from cloudinary.models import CloudinaryField
from decimal import Decimal, ROUND_HALF_UP

from .base import BaseModel, StatusTrackingMixin
from lending.exceptions import (
    AlreadyPaid, ExceedsBalance, IllegalStateTransition, InvalidAmount,
    InvalidSlot, LedgerValidationError, MissingWinner, NotFound,
)
from lending.managers import (
    ArchivedLoanManager, ChitGroupManager, ChitMemberManager, ChitPaymentManager,
    CustomerManager, LoanManager, PaymentManager,
)
from lending.utils.helpers import (
    current_month, generate_payment_schedule, ledger_atomic, parse_date, parse_month, today,
)
from lending.utils.money import (
    ChitCalculator, InstallmentCalculator, MoneyCalculator, PERIOD_UNITS,
)
from lending.utils.receipts import dispatch_chit_receipt, dispatch_loan_receipt

import logging


logger = logging.getLogger(__name__)


PERIOD_UNIT_CHOICES = [(unit, unit.capitalize()) for unit in PERIOD_UNITS]

PAYMENT_MODE_CHOICES = [
    ('cash',          'Cash'),
    ('upi',           'UPI'),
    ('bank_transfer', 'Bank Transfer'),
    ('cheque',        'Cheque'),
    ('mixed',         'Cash + Online'),
]

# Modes whose money arrives online when no split is given
ONLINE_MODES = ('upi', 'bank_transfer')


# =============================================================================
# CUSTOMER
# =============================================================================

class Customer(BaseModel):
    """
    A borrower, identified to staff by name and phone number

    Phone numbers are not unique: two relatives sharing a phone is normal.
    """

    name = models.CharField(max_length=200, db_index=True)
    phone = models.CharField(max_length=20, db_index=True, blank=True)
    address = models.TextField(blank=True)

    objects = CustomerManager()

    class Meta:
        db_table = 'customers'
        verbose_name = 'Customer'
        verbose_name_plural = 'Customers'
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.phone})" if self.phone else self.name

    @property
    def outstanding_balance(self):
        return self.loans.filter(balance__gt=0).aggregate(total=Sum('balance'))['total'] or 0

    @property
    def active_loans(self):
        return self.loans.filter(status='active')

    @ledger_atomic
    def remove(self):
        """
        Delete the customer with their loans and payments

        Archived loans keep their customer snapshot and survive.

        Raises:
            IllegalStateTransition: a live loan still has money owed
        """
        if self.loans.filter(balance__gt=0).exists():
            raise IllegalStateTransition(
                f"Cannot delete {self.name}: outstanding balance of "
                f"{MoneyCalculator.format_currency(self.outstanding_balance)}"
            )
        logger.info(f"Customer deleted: {self.pk} {self.name}")
        self.delete()


# =============================================================================
# LOAN
# =============================================================================

class Loan(BaseModel):
    """
    A flat, interest-free-in-the-ledger loan collected in fixed installments

    State machine:
        active --(balance reaches 0)--> closed
        closed --(top-up or payment removed)--> active
        active --(mark_defaulted)--> defaulted
        closed | (any, with override) --(archive)--> ArchivedLoan
    """

    STATUS_CHOICES = [
        ('active',    'Active'),
        ('closed',    'Closed'),
        ('defaulted', 'Defaulted'),
        ('archived',  'Archived'),
    ]

    # =========================================================================
    # RELATIONSHIPS / TERMS
    # =========================================================================

    customer = models.ForeignKey(
        Customer,
        on_delete=models.CASCADE,
        related_name='loans'
    )

    loan_name = models.CharField(
        max_length=200,
        blank=True,
        help_text="Friend / loan label shown next to the customer name"
    )

    period_unit = models.CharField(
        max_length=10,
        choices=PERIOD_UNIT_CHOICES,
        default='weekly',
        db_index=True
    )

    principal = models.IntegerField(
        validators=[MinValueValidator(1)],
        help_text="Principal to date, grows with every top-up"
    )

    installment = models.IntegerField(
        validators=[MinValueValidator(1)],
        help_text="Amount due each period"
    )

    balance = models.IntegerField(
        validators=[MinValueValidator(0)],
        help_text="Principal minus everything collected"
    )

    start_date = models.DateField(
        db_index=True,
        help_text="Collection starts counting periods from this date"
    )

    loan_given_date = models.DateField(null=True, blank=True)

    # =========================================================================
    # STATUS
    # =========================================================================

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default='active',
        db_index=True
    )

    closed_at = models.DateTimeField(null=True, blank=True)

    objects = LoanManager()

    class Meta:
        db_table = 'loans'
        verbose_name = 'Loan'
        verbose_name_plural = 'Loans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer', 'status']),
            models.Index(fields=['status', 'balance']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(principal__gt=0),
                name='loan_principal_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(installment__gt=0),
                name='loan_installment_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(balance__gte=0) & models.Q(balance__lte=F('principal')),
                name='loan_balance_within_principal'
            ),
        ]

    # =========================================================================
    # DUNDER / PROPERTIES
    # =========================================================================

    def __str__(self):
        label = f" - {self.loan_name}" if self.loan_name else ''
        return f"{self.customer.name}{label} (₹{self.principal} {self.period_unit})"

    @property
    def display_name(self):
        return self.loan_name or self.customer.name

    @property
    def total_paid(self):
        return self.payments.aggregate(total=Sum('amount'))['total'] or 0

    @property
    def total_periods(self):
        return InstallmentCalculator.total_periods(self.principal, self.installment)

    @property
    def periods_remaining(self):
        return InstallmentCalculator.periods_remaining(self.balance, self.installment)

    def progress(self):
        """
        Share of the principal collected so far

        Returns:
            dict: percent (0..100) and total_paid
        """
        total_paid = self.principal - self.balance
        if self.principal <= 0:
            percent = 0.0
        else:
            percent = round(total_paid / self.principal * 100, 2)
        return {
            'percent': min(max(percent, 0.0), 100.0),
            'total_paid': total_paid,
        }

    def get_payment_schedule(self, as_of_date=None):
        return generate_payment_schedule(self, as_of_date)

    def clean(self):
        errors = {}
        if self.principal is not None and self.principal <= 0:
            errors['principal'] = "Loan amount must be greater than zero"
        if self.installment is not None and self.installment <= 0:
            errors['installment'] = "Installment must be greater than zero"
        if self.balance is not None and self.principal is not None and self.balance > self.principal:
            errors['balance'] = "Balance cannot exceed the principal"
        if errors:
            raise ValidationError(errors)

    # =========================================================================
    # LOCKING
    # =========================================================================

    def _lock(self):
        """Reload this loan under a row lock for the rest of the transaction."""
        try:
            self.refresh_from_db(from_queryset=Loan.objects.select_for_update())
        except Loan.DoesNotExist:
            raise NotFound(f"Loan {self.pk} not found")

    # =========================================================================
    # PAYMENTS
    # =========================================================================

    @ledger_atomic
    def apply_payment(self, amount, offline_amount=None, online_amount=None,
                      payment_date=None, payment_mode='cash', notes=''):
        """
        Record a collection against this loan

        When neither sub-amount is given the split follows the payment mode:
        UPI and bank transfers count as online, everything else as offline.

        Raises:
            InvalidAmount: amount not positive, negative sub-amount, or a
                split that does not add up to the amount
            IllegalStateTransition: loan is archived or defaulted
            ExceedsBalance: amount larger than the remaining balance
        """
        amount = MoneyCalculator.round_currency(amount)
        if amount <= 0:
            raise InvalidAmount("Payment amount must be greater than zero")

        if payment_mode not in dict(PAYMENT_MODE_CHOICES):
            raise LedgerValidationError(f"Unknown payment mode: {payment_mode!r}")

        if offline_amount in (None, '') and online_amount in (None, ''):
            if payment_mode in ONLINE_MODES:
                offline_amount, online_amount = 0, amount
            else:
                offline_amount, online_amount = amount, 0
        else:
            offline_amount = MoneyCalculator.round_currency(offline_amount)
            online_amount = MoneyCalculator.round_currency(online_amount)
            if offline_amount < 0 or online_amount < 0:
                raise InvalidAmount("Offline and online amounts cannot be negative")
            if offline_amount + online_amount != amount:
                raise InvalidAmount(
                    f"Offline (₹{offline_amount}) + online (₹{online_amount}) "
                    f"must equal the payment amount (₹{amount})"
                )

        self._lock()

        if self.status in ('archived', 'defaulted'):
            raise IllegalStateTransition(
                f"Cannot record a payment on a {self.get_status_display().lower()} loan"
            )
        if amount > self.balance:
            raise ExceedsBalance(
                f"Amount exceeds remaining balance of {MoneyCalculator.format_currency(self.balance)}"
            )

        old_balance = self.balance
        week_number = self.payments.count() + 1

        self.balance = old_balance - amount
        update_fields = ['balance', 'updated_at']
        if self.balance == 0:
            self.status = 'closed'
            self.closed_at = timezone.now()
            update_fields += ['status', 'closed_at']
        self.save(update_fields=update_fields)

        payment = Payment.objects.create(
            loan=self,
            amount=amount,
            offline_amount=offline_amount,
            online_amount=online_amount,
            payment_date=parse_date(payment_date, default=today()),
            payment_mode=payment_mode,
            week_number=week_number,
            balance_after=self.balance,
            weeks_covered=Payment.periods_covered(amount, self.installment),
            notes=notes or '',
        )

        logger.info(
            f"Payment recorded: Loan={self.pk}, Amount=₹{amount}, Week={week_number}, "
            f"OldBalance=₹{old_balance}, NewBalance=₹{self.balance}"
        )
        if self.status == 'closed':
            logger.info(f"Loan closed: {self.pk} ({self.display_name})")

        receipt = self.receipt_data(payment)
        db_transaction.on_commit(lambda: dispatch_loan_receipt(receipt))

        return payment

    @ledger_atomic
    def delete_payment(self, payment):
        """
        Remove one payment and rebuild the balance from what remains

        Week numbers and balance_after of the remaining payments are
        re-stamped in insertion order. A closed loan with money owed again
        re-opens.

        Raises:
            NotFound: payment does not exist or belongs to another loan
        """
        self._lock()

        payment_id = getattr(payment, 'pk', payment)
        deleted, _ = Payment.objects.filter(pk=payment_id, loan=self).delete()
        if not deleted:
            raise NotFound(f"Payment {payment_id} not found on loan {self.pk}")

        self.recalculate_balance()

        logger.info(f"Payment deleted: Loan={self.pk}, Payment={payment_id}, NewBalance=₹{self.balance}")
        return self

    def recalculate_balance(self):
        """
        Rebuild balance, status and per-payment stamps from the payment rows

        Only active and closed loans change status here. A defaulted loan
        takes no payments, so deleting one can only raise its balance and
        it stays defaulted. Must run inside the transaction that changed
        the payments.
        """
        paid = self.payments.aggregate(total=Sum('amount'))['total'] or 0
        self.balance = self.principal - paid

        if self.balance > 0 and self.status == 'closed':
            self.status = 'active'
            self.closed_at = None
        elif self.balance == 0 and self.status == 'active':
            self.status = 'closed'
            self.closed_at = timezone.now()

        self.save(update_fields=['balance', 'status', 'closed_at', 'updated_at'])
        self._restamp_payments()

    def _restamp_payments(self):
        top_ups = list(self.top_ups.order_by('created_at'))
        running = self.principal - sum(t.amount for t in top_ups)
        next_top_up = 0

        changed = []
        for number, payment in enumerate(self.payments.all().in_insertion_order(), start=1):
            # Top-ups taken before this payment raise the running balance
            while next_top_up < len(top_ups) and top_ups[next_top_up].created_at <= payment.created_at:
                running += top_ups[next_top_up].amount
                next_top_up += 1
            running -= payment.amount

            if payment.week_number != number or payment.balance_after != running:
                payment.week_number = number
                payment.balance_after = running
                changed.append(payment)

        if changed:
            Payment.objects.bulk_update(changed, ['week_number', 'balance_after'])

    def receipt_data(self, payment):
        return {
            'customer_name': self.customer.name,
            'customer_phone': self.customer.phone,
            'loan_name': self.loan_name,
            'amount': payment.amount,
            'payment_date': payment.payment_date,
            'week_number': payment.week_number,
            'balance_after': payment.balance_after,
        }

    # =========================================================================
    # TOP-UP / RESTRUCTURE
    # =========================================================================

    @ledger_atomic
    def top_up(self, additional_amount, top_up_date=None, notes=''):
        """
        Lend more on the same loan

        Principal and balance both grow by the amount; the installment stays,
        so the remaining periods stretch. Past payments are untouched.

        Raises:
            InvalidAmount: amount not positive
            IllegalStateTransition: loan is archived
        """
        additional_amount = MoneyCalculator.round_currency(additional_amount)
        if additional_amount <= 0:
            raise InvalidAmount("Top-up amount must be greater than zero")

        self._lock()

        if self.status == 'archived':
            raise IllegalStateTransition("Cannot top up an archived loan")

        balance_before = self.balance
        self.principal += additional_amount
        self.balance += additional_amount
        if self.status == 'closed':
            self.status = 'active'
            self.closed_at = None
        self.save(update_fields=['principal', 'balance', 'status', 'closed_at', 'updated_at'])

        LoanTopUp.objects.create(
            loan=self,
            amount=additional_amount,
            balance_before=balance_before,
            balance_after=self.balance,
            principal_after=self.principal,
            top_up_date=parse_date(top_up_date, default=today()),
            notes=notes or '',
        )

        logger.info(
            f"Loan topped up: Loan={self.pk}, Amount=₹{additional_amount}, "
            f"NewBalance=₹{self.balance}, PeriodsRemaining={self.periods_remaining}"
        )
        return self

    # =========================================================================
    # STATUS CHANGES
    # =========================================================================

    @ledger_atomic
    def close(self):
        """Mark a fully repaid loan as closed."""
        self._lock()
        if self.status == 'closed':
            return self
        if self.balance > 0:
            raise IllegalStateTransition(
                f"Cannot close a loan with {MoneyCalculator.format_currency(self.balance)} outstanding; "
                f"archive it with override to write it off"
            )
        self.status = 'closed'
        self.closed_at = timezone.now()
        self.save(update_fields=['status', 'closed_at', 'updated_at'])
        logger.info(f"Loan closed manually: {self.pk}")
        return self

    @ledger_atomic
    def mark_defaulted(self):
        self._lock()
        if self.status != 'active':
            raise IllegalStateTransition(
                f"Cannot mark a {self.get_status_display().lower()} loan as defaulted"
            )
        self.status = 'defaulted'
        self.save(update_fields=['status', 'updated_at'])
        logger.warning(f"Loan marked defaulted: {self.pk}, Balance=₹{self.balance}")
        return self

    def rename(self, loan_name):
        self.loan_name = (loan_name or '').strip()
        self.save(update_fields=['loan_name', 'updated_at'])
        logger.info(f"Loan renamed: {self.pk} -> {self.loan_name!r}")
        return self

    # =========================================================================
    # ARCHIVE
    # =========================================================================

    @ledger_atomic
    def archive(self, override=False, reason=''):
        """
        Move this loan and its payments into the archive

        Allowed for closed loans, or for any loan with override=True (a
        written-off loan). Ids, timestamps and payment stamps are kept so
        ArchivedLoan.restore() brings back exactly this loan.

        Raises:
            IllegalStateTransition: loan still owes money and no override
        """
        self._lock()

        if self.status != 'closed' and not override:
            raise IllegalStateTransition(
                f"Only closed loans can be archived; this loan has "
                f"{MoneyCalculator.format_currency(self.balance)} outstanding"
            )

        archived = ArchivedLoan.objects.create(
            original_loan_id=self.pk,
            customer=self.customer,
            customer_name=self.customer.name,
            customer_phone=self.customer.phone,
            loan_name=self.loan_name,
            period_unit=self.period_unit,
            principal=self.principal,
            installment=self.installment,
            balance=self.balance,
            start_date=self.start_date,
            loan_given_date=self.loan_given_date,
            status_at_archive=self.status,
            closed_at=self.closed_at,
            loan_created_at=self.created_at,
            top_up_history=[
                {
                    'id': str(t.pk),
                    'amount': t.amount,
                    'balance_before': t.balance_before,
                    'balance_after': t.balance_after,
                    'principal_after': t.principal_after,
                    'top_up_date': t.top_up_date.isoformat(),
                    'notes': t.notes,
                    'created_at': t.created_at.isoformat(),
                }
                for t in self.top_ups.order_by('created_at')
            ],
            written_off=self.balance > 0,
            archive_reason=reason or '',
        )

        ArchivedPayment.objects.bulk_create([
            ArchivedPayment(
                archived_loan=archived,
                original_payment_id=p.pk,
                amount=p.amount,
                offline_amount=p.offline_amount,
                online_amount=p.online_amount,
                payment_date=p.payment_date,
                payment_mode=p.payment_mode,
                week_number=p.week_number,
                balance_after=p.balance_after,
                weeks_covered=p.weeks_covered,
                notes=p.notes,
                paid_at=p.created_at,
            )
            for p in self.payments.all().in_insertion_order()
        ])

        loan_id = self.pk
        self.delete()

        if archived.written_off:
            logger.warning(
                f"Loan archived with override: Loan={loan_id}, WrittenOff=₹{archived.balance}"
            )
        else:
            logger.info(f"Loan archived: Loan={loan_id}, Archive={archived.pk}")
        return archived


# =============================================================================
# PAYMENT
# =============================================================================

class Payment(BaseModel):
    """
    One collection against a loan

    week_number is the 1-based position of the payment among the loan's
    payments; balance_after is the loan balance right after it.
    """

    loan = models.ForeignKey(
        Loan,
        on_delete=models.CASCADE,
        related_name='payments'
    )

    amount = models.IntegerField(validators=[MinValueValidator(1)])
    offline_amount = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    online_amount = models.IntegerField(default=0, validators=[MinValueValidator(0)])

    payment_date = models.DateField(db_index=True)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default='cash')

    week_number = models.PositiveIntegerField()
    balance_after = models.IntegerField()
    weeks_covered = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Amount / installment; informational only"
    )

    notes = models.TextField(blank=True)

    objects = PaymentManager()

    class Meta:
        db_table = 'payments'
        verbose_name = 'Payment'
        verbose_name_plural = 'Payments'
        ordering = ['week_number', 'created_at']
        indexes = [
            models.Index(fields=['loan', 'created_at']),
            models.Index(fields=['payment_date']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name='payment_amount_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(amount=F('offline_amount') + F('online_amount')),
                name='payment_split_matches_amount'
            ),
        ]

    def __str__(self):
        return f"₹{self.amount} on {self.payment_date} (week {self.week_number})"

    @staticmethod
    def periods_covered(amount, installment):
        if not installment:
            return Decimal('0.00')
        return (Decimal(amount) / Decimal(installment)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class LoanTopUp(BaseModel):
    """Audit row for each additional amount lent on an existing loan"""

    loan = models.ForeignKey(
        Loan,
        on_delete=models.CASCADE,
        related_name='top_ups'
    )

    amount = models.IntegerField(validators=[MinValueValidator(1)])
    balance_before = models.IntegerField()
    balance_after = models.IntegerField()
    principal_after = models.IntegerField()
    top_up_date = models.DateField()
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'loan_top_ups'
        ordering = ['created_at']

    def __str__(self):
        return f"Top-up ₹{self.amount} on {self.top_up_date}"


# =============================================================================
# ARCHIVE
# =============================================================================

class ArchivedLoan(BaseModel):
    """
    A loan moved out of the live ledger, kept verbatim for restore

    The customer name and phone are copied so the archive still reads
    correctly after the customer is deleted.
    """

    original_loan_id = models.UUIDField(unique=True, db_index=True)

    customer = models.ForeignKey(
        Customer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='archived_loans'
    )
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20, blank=True)

    loan_name = models.CharField(max_length=200, blank=True)
    period_unit = models.CharField(max_length=10, choices=PERIOD_UNIT_CHOICES)
    principal = models.IntegerField()
    installment = models.IntegerField()
    balance = models.IntegerField()
    start_date = models.DateField()
    loan_given_date = models.DateField(null=True, blank=True)
    status_at_archive = models.CharField(max_length=20, choices=Loan.STATUS_CHOICES)
    closed_at = models.DateTimeField(null=True, blank=True)
    loan_created_at = models.DateTimeField()
    top_up_history = models.JSONField(default=list, blank=True)

    written_off = models.BooleanField(
        default=False,
        help_text="Archived with money still owed"
    )
    archived_at = models.DateTimeField(default=timezone.now, db_index=True)
    archive_reason = models.TextField(blank=True)

    objects = ArchivedLoanManager()

    class Meta:
        db_table = 'archived_loans'
        verbose_name = 'Archived Loan'
        verbose_name_plural = 'Archived Loans'
        ordering = ['-archived_at']

    def __str__(self):
        return f"{self.customer_name} - ₹{self.principal} (archived {self.archived_at:%d/%m/%Y})"

    @property
    def total_paid(self):
        return self.principal - self.balance

    @ledger_atomic
    def restore(self):
        """
        Bring the loan back into the live ledger exactly as it was archived

        The customer is re-created from the snapshot when it has been
        deleted in the meantime.

        Raises:
            IllegalStateTransition: a live loan with the original id exists
        """
        if Loan.objects.filter(pk=self.original_loan_id).exists():
            raise IllegalStateTransition(
                f"Loan {self.original_loan_id} is already in the live ledger"
            )

        customer = self.customer
        if customer is None:
            customer = Customer.objects.create(name=self.customer_name, phone=self.customer_phone)
            logger.info(f"Customer re-created for restore: {customer.pk} {customer.name}")

        status = 'active' if self.balance > 0 else 'closed'
        loan = Loan(
            id=self.original_loan_id,
            customer=customer,
            loan_name=self.loan_name,
            period_unit=self.period_unit,
            principal=self.principal,
            installment=self.installment,
            balance=self.balance,
            start_date=self.start_date,
            loan_given_date=self.loan_given_date,
            status=status,
            closed_at=self.closed_at if status == 'closed' else None,
            created_at=self.loan_created_at,
        )
        loan.save(force_insert=True)

        Payment.objects.bulk_create([
            Payment(
                id=ap.original_payment_id,
                loan=loan,
                amount=ap.amount,
                offline_amount=ap.offline_amount,
                online_amount=ap.online_amount,
                payment_date=ap.payment_date,
                payment_mode=ap.payment_mode,
                week_number=ap.week_number,
                balance_after=ap.balance_after,
                weeks_covered=ap.weeks_covered,
                notes=ap.notes,
                created_at=ap.paid_at,
            )
            for ap in self.payments.all()
        ])

        LoanTopUp.objects.bulk_create([
            LoanTopUp(
                id=entry['id'],
                loan=loan,
                amount=entry['amount'],
                balance_before=entry['balance_before'],
                balance_after=entry['balance_after'],
                principal_after=entry['principal_after'],
                top_up_date=parse_date(entry['top_up_date']),
                notes=entry.get('notes', ''),
                created_at=entry['created_at'],
            )
            for entry in self.top_up_history
        ])

        logger.info(f"Loan restored: Loan={loan.pk}, Status={status}, Archive={self.pk}")
        self.delete()
        return loan

    @ledger_atomic
    def delete_permanently(self):
        """Irreversibly remove the archived loan and its payments."""
        logger.warning(
            f"Archived loan permanently deleted: Loan={self.original_loan_id}, "
            f"Customer={self.customer_name}, Principal=₹{self.principal}"
        )
        self.delete()


class ArchivedPayment(BaseModel):
    """A payment of an archived loan, stamps kept verbatim"""

    archived_loan = models.ForeignKey(
        ArchivedLoan,
        on_delete=models.CASCADE,
        related_name='payments'
    )

    original_payment_id = models.UUIDField()
    amount = models.IntegerField()
    offline_amount = models.IntegerField(default=0)
    online_amount = models.IntegerField(default=0)
    payment_date = models.DateField()
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default='cash')
    week_number = models.PositiveIntegerField()
    balance_after = models.IntegerField()
    weeks_covered = models.DecimalField(max_digits=8, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    paid_at = models.DateTimeField(help_text="created_at of the original payment")

    class Meta:
        db_table = 'archived_payments'
        ordering = ['paid_at', 'week_number']

    def __str__(self):
        return f"₹{self.amount} on {self.payment_date} (week {self.week_number})"


# =============================================================================
# CHIT FUNDS
# =============================================================================

class ChitGroup(BaseModel, StatusTrackingMixin):
    """
    A rotating savings pool

    Every member pays monthly_amount each month; each month one slot is
    auctioned and the winner takes the pool less the bid and commission.
    """

    name = models.CharField(max_length=200)
    chit_amount = models.IntegerField(validators=[MinValueValidator(1)])
    member_count = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    monthly_amount = models.IntegerField(
        editable=False,
        help_text="chit_amount / member_count, rounded"
    )
    due_day = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(31)]
    )
    duration_months = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Defaults to the member count"
    )
    start_month = models.CharField(max_length=7, help_text="YYYY-MM")
    notes = models.TextField(blank=True)

    objects = ChitGroupManager()

    class Meta:
        db_table = 'chit_groups'
        verbose_name = 'Chit Group'
        verbose_name_plural = 'Chit Groups'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(chit_amount__gt=0),
                name='chit_amount_positive'
            ),
            models.CheckConstraint(
                condition=models.Q(member_count__gte=1),
                name='chit_member_count_minimum'
            ),
            models.CheckConstraint(
                condition=models.Q(due_day__gte=1) & models.Q(due_day__lte=31),
                name='chit_due_day_range'
            ),
        ]

    def __str__(self):
        return f"{self.name} (₹{self.chit_amount} / {self.member_count})"

    def save(self, *args, **kwargs):
        self.monthly_amount = ChitCalculator.monthly_contribution(self.chit_amount, self.member_count)
        if not self.duration_months:
            self.duration_months = self.member_count
        self.start_month = parse_month(self.start_month or current_month())
        if kwargs.get('update_fields') is not None:
            kwargs['update_fields'] = set(kwargs['update_fields']) | {'monthly_amount'}
        super().save(*args, **kwargs)

    def clean(self):
        errors = {}
        if self.member_count is not None and self.member_count < 1:
            errors['member_count'] = "Member count must be at least 1"
        if self.chit_amount is not None and self.chit_amount <= 0:
            errors['chit_amount'] = "Chit amount must be greater than zero"
        if self.due_day is not None and not 1 <= self.due_day <= 31:
            errors['due_day'] = "Due day must be between 1 and 31"
        if errors:
            raise ValidationError(errors)

    def _member(self, member):
        """Resolve a member instance or id and check it belongs to this group."""
        if not isinstance(member, ChitMember):
            member = ChitMember.objects.fetch(member)
        if member.group_id != self.pk:
            raise LedgerValidationError(f"{member.name} is not a member of {self.name}")
        return member

    def month_settings(self, month):
        month = parse_month(month)
        return self.month_settings_set.filter(month=month).first() or ChitMonthSettings(group=self, month=month)

    # =========================================================================
    # MONTHLY COLLECTION
    # =========================================================================

    @ledger_atomic
    def record_member_payment(self, member, month, amount=None, payment_date=None, notes=''):
        """
        Mark a member as paid for a month

        Raises:
            NotFound: unknown member id
            LedgerValidationError: member belongs to another group
            IllegalStateTransition: member has been removed
            AlreadyPaid: member already paid for this month
        """
        member = self._member(member)
        if not member.is_active:
            raise IllegalStateTransition(f"{member.name} has been removed from {self.name}")

        month = parse_month(month)
        amount = self.monthly_amount if amount in (None, '') else MoneyCalculator.round_currency(amount)
        if amount <= 0:
            raise InvalidAmount("Chit payment amount must be greater than zero")

        if ChitPayment.objects.filter(member=member, month=month).exists():
            raise AlreadyPaid(f"{member.name} has already paid for {month}")

        try:
            with db_transaction.atomic():
                payment = ChitPayment.objects.create(
                    group=self,
                    member=member,
                    month=month,
                    amount=amount,
                    payment_date=parse_date(payment_date, default=today()),
                    notes=notes or '',
                )
        except IntegrityError:
            raise AlreadyPaid(f"{member.name} has already paid for {month}")

        logger.info(
            f"Chit payment recorded: Group={self.name}, Member={member.name}, "
            f"Month={month}, Amount=₹{amount}"
        )

        receipt = payment.receipt_data()
        db_transaction.on_commit(lambda: dispatch_chit_receipt(receipt))

        return payment

    def month_overview(self, month=None):
        """
        Who has paid for a month

        Returns:
            dict: month, members (with is_paid / payment_id), paid_count,
                  pending_count, collected, expected, auction, settings
        """
        month = parse_month(month or current_month())
        payments = {p.member_id: p for p in self.payments.for_month(month)}

        members = []
        for member in self.members.all():
            payment = payments.get(member.pk)
            # Removed members only show up for months they paid
            if not member.is_active and payment is None:
                continue
            members.append({
                'member': member,
                'is_paid': payment is not None,
                'payment_id': payment.pk if payment else None,
                'amount': payment.amount if payment else 0,
                'payment_date': payment.payment_date if payment else None,
            })

        paid_count = sum(1 for row in members if row['is_paid'])
        return {
            'month': month,
            'members': members,
            'paid_count': paid_count,
            'pending_count': len(members) - paid_count,
            'collected': sum(row['amount'] for row in members),
            'expected': self.monthly_amount * self.member_count,
            'auction': self.auctions.filter(month=month).first(),
            'settings': self.month_settings(month),
        }

    # =========================================================================
    # AUCTIONS
    # =========================================================================

    @ledger_atomic
    def record_auction(self, month, slot_number, winner, bid_amount, commission=0,
                       auction_date=None, disbursement_date=None, notes='',
                       photo=None, signature=None):
        """
        Settle the month's auction, or correct an already recorded one

        The pool is taken as fully funded: monthly_amount x member_count.

        Raises:
            InvalidSlot: slot outside 1..member_count or used by another month
            MissingWinner: no winner, or winner not an active member of this group
            InvalidAmount: negative bid or commission
        """
        self.refresh_from_db(from_queryset=ChitGroup.objects.select_for_update())

        month = parse_month(month)

        try:
            slot_number = int(slot_number)
        except (TypeError, ValueError):
            raise InvalidSlot(f"Invalid slot: {slot_number!r}")
        if not 1 <= slot_number <= self.member_count:
            raise InvalidSlot(f"Slot must be between 1 and {self.member_count}")

        if winner in (None, ''):
            raise MissingWinner("An auction needs a winner")
        try:
            winner = self._member(winner)
        except (NotFound, LedgerValidationError):
            raise MissingWinner(f"Winner is not a member of {self.name}")
        if not winner.is_active:
            raise MissingWinner(f"{winner.name} has been removed from {self.name}")

        bid_amount = MoneyCalculator.round_currency(bid_amount)
        commission = MoneyCalculator.round_currency(commission)
        if bid_amount < 0 or commission < 0:
            raise InvalidAmount("Bid and commission cannot be negative")

        existing = self.auctions.filter(month=month).first()
        slot_taken = self.auctions.filter(slot_number=slot_number)
        if existing:
            slot_taken = slot_taken.exclude(pk=existing.pk)
        if slot_taken.exists():
            raise InvalidSlot(f"Slot {slot_number} has already been auctioned")

        settlement = ChitCalculator.settle_auction(
            self.monthly_amount, self.member_count, bid_amount, commission
        )

        auction = existing or ChitAuction(group=self, month=month)
        auction.slot_number = slot_number
        auction.winner = winner
        auction.winner_name = winner.name
        auction.bid_amount = bid_amount
        auction.commission = commission
        auction.total_collected = settlement['total_collected']
        auction.amount_to_winner = settlement['amount_to_winner']
        auction.carry_forward = settlement['carry_forward']
        auction.auction_date = parse_date(auction_date, default=today())
        auction.disbursement_date = parse_date(disbursement_date)
        auction.notes = notes or ''
        if photo is not None:
            auction.photo = photo
        if signature is not None:
            auction.signature = signature
        auction.save()

        logger.info(
            f"Chit auction {'updated' if existing else 'recorded'}: Group={self.name}, "
            f"Month={month}, Slot={slot_number}, Winner={winner.name}, "
            f"ToWinner=₹{auction.amount_to_winner}"
        )
        return auction

    def slots_dashboard(self):
        """Every slot 1..member_count with its auction, if settled."""
        auctions = {a.slot_number: a for a in self.auctions.select_related('winner')}
        return [
            {
                'slot_number': slot,
                'completed': slot in auctions,
                'auction': auctions.get(slot),
            }
            for slot in range(1, self.member_count + 1)
        ]


class ChitMember(BaseModel, StatusTrackingMixin):
    """A subscriber of a chit group"""

    group = models.ForeignKey(
        ChitGroup,
        on_delete=models.CASCADE,
        related_name='members'
    )
    name = models.CharField(max_length=200)
    phone = models.CharField(max_length=20, blank=True)
    member_number = models.PositiveIntegerField(null=True, blank=True)

    objects = ChitMemberManager()

    class Meta:
        db_table = 'chit_members'
        verbose_name = 'Chit Member'
        verbose_name_plural = 'Chit Members'
        ordering = ['member_number', 'name']

    def __str__(self):
        return f"{self.name} ({self.group.name})"

    @ledger_atomic
    def remove(self):
        """
        Take the member out of the group

        Members with payments or auctions on record are deactivated so the
        history stays readable; others are deleted.

        Returns:
            str: 'deactivated' or 'deleted'
        """
        if self.payments.exists() or self.auctions_won.exists():
            self.deactivate(reason='Removed from group')
            logger.info(f"Chit member deactivated: {self.name} ({self.group.name})")
            return 'deactivated'

        logger.info(f"Chit member deleted: {self.name} ({self.group.name})")
        self.delete()
        return 'deleted'


class ChitPayment(BaseModel):
    """A member's contribution for one month"""

    group = models.ForeignKey(
        ChitGroup,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    member = models.ForeignKey(
        ChitMember,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    month = models.CharField(max_length=7, db_index=True, help_text="YYYY-MM")
    amount = models.IntegerField(validators=[MinValueValidator(1)])
    payment_date = models.DateField()
    notes = models.TextField(blank=True)

    objects = ChitPaymentManager()

    class Meta:
        db_table = 'chit_payments'
        verbose_name = 'Chit Payment'
        verbose_name_plural = 'Chit Payments'
        ordering = ['month', 'created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['member', 'month'],
                name='unique_chit_payment_per_member_month'
            ),
        ]

    def __str__(self):
        return f"{self.member.name} - {self.month} (₹{self.amount})"

    def receipt_data(self):
        settings_row = self.group.month_settings(self.month)
        return {
            'group_name': self.group.name,
            'chit_number': settings_row.chit_number,
            'custom_note': settings_row.custom_note,
            'member_name': self.member.name,
            'member_phone': self.member.phone,
            'amount': self.amount,
            'month': self.month,
            'payment_date': self.payment_date,
        }

    @ledger_atomic
    def undo(self):
        """Remove this payment record."""
        logger.info(
            f"Chit payment undone: Group={self.group.name}, Member={self.member.name}, Month={self.month}"
        )
        self.delete()


class ChitAuction(BaseModel):
    """
    The settlement of one month's auction

    amount_to_winner = max(0, total_collected - bid_amount - commission)
    carry_forward    = bid_amount
    """

    group = models.ForeignKey(
        ChitGroup,
        on_delete=models.CASCADE,
        related_name='auctions'
    )
    month = models.CharField(max_length=7, help_text="YYYY-MM")
    slot_number = models.PositiveSmallIntegerField(validators=[MinValueValidator(1)])

    winner = models.ForeignKey(
        ChitMember,
        on_delete=models.RESTRICT,
        related_name='auctions_won'
    )
    winner_name = models.CharField(max_length=200)

    bid_amount = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    commission = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    total_collected = models.IntegerField(default=0)
    amount_to_winner = models.IntegerField(default=0)
    carry_forward = models.IntegerField(default=0)

    auction_date = models.DateField()
    disbursement_date = models.DateField(null=True, blank=True)

    photo = CloudinaryField(
        'auction_photo',
        folder='chits/auctions/photos',
        null=True,
        blank=True,
        help_text="Photo taken at the auction"
    )
    signature = CloudinaryField(
        'winner_signature',
        folder='chits/auctions/signatures',
        null=True,
        blank=True,
        help_text="Winner's signature on receiving the amount"
    )

    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'chit_auctions'
        verbose_name = 'Chit Auction'
        verbose_name_plural = 'Chit Auctions'
        ordering = ['slot_number']
        constraints = [
            models.UniqueConstraint(
                fields=['group', 'month'],
                name='unique_chit_auction_per_month'
            ),
            models.UniqueConstraint(
                fields=['group', 'slot_number'],
                name='unique_chit_auction_slot'
            ),
            models.CheckConstraint(
                condition=models.Q(bid_amount__gte=0) & models.Q(commission__gte=0),
                name='chit_auction_amounts_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.group.name} slot {self.slot_number} ({self.month}) - {self.winner_name}"


class ChitMonthSettings(BaseModel):
    """Chit number and receipt note for one month of a group"""

    group = models.ForeignKey(
        ChitGroup,
        on_delete=models.CASCADE,
        related_name='month_settings_set'
    )
    month = models.CharField(max_length=7, help_text="YYYY-MM")
    chit_number = models.CharField(max_length=50, blank=True)
    custom_note = models.TextField(blank=True)

    class Meta:
        db_table = 'chit_month_settings'
        verbose_name = 'Chit Month Settings'
        verbose_name_plural = 'Chit Month Settings'
        constraints = [
            models.UniqueConstraint(
                fields=['group', 'month'],
                name='unique_chit_settings_per_month'
            ),
        ]

    def __str__(self):
        return f"{self.group.name} {self.month}"
