from datetime import date

from django.test import TestCase

from lending.exceptions import IllegalStateTransition
from lending.models import ArchivedLoan, ArchivedPayment, Customer, Loan, LoanTopUp, Payment


def make_loan(principal=10000, **kwargs):
    customer = Customer.objects.create(name='Meena', phone='9123456780')
    return Loan.objects.create_loan(
        customer=customer,
        principal=principal,
        start_date=date(2024, 1, 7),
        loan_name='Tailoring',
        **kwargs
    )


class ArchiveTests(TestCase):

    def test_open_loan_needs_override(self):
        loan = make_loan()
        with self.assertRaises(IllegalStateTransition):
            loan.archive()
        self.assertTrue(Loan.objects.filter(pk=loan.pk).exists())
        self.assertFalse(ArchivedLoan.objects.exists())

    def test_archive_closed_loan(self):
        loan = make_loan()
        loan.apply_payment(4000, payment_date='2024-01-14')
        loan.apply_payment(6000, payment_date='2024-01-21')
        payment_ids = list(loan.payments.values_list('pk', flat=True).order_by('week_number'))
        loan_id = loan.pk

        archived = loan.archive(reason='repaid')

        self.assertFalse(Loan.objects.filter(pk=loan_id).exists())
        self.assertFalse(Payment.objects.exists())
        self.assertEqual(archived.original_loan_id, loan_id)
        self.assertEqual(archived.customer_name, 'Meena')
        self.assertEqual(archived.status_at_archive, 'closed')
        self.assertFalse(archived.written_off)
        self.assertEqual(archived.total_paid, 10000)
        self.assertEqual(
            list(archived.payments.values_list('original_payment_id', flat=True)),
            payment_ids,
        )
        self.assertEqual(
            list(archived.payments.values_list('week_number', 'balance_after')),
            [(1, 6000), (2, 0)],
        )

    def test_override_writes_off_the_balance(self):
        loan = make_loan()
        loan.apply_payment(2500)
        archived = loan.archive(override=True, reason='moved away')

        self.assertTrue(archived.written_off)
        self.assertEqual(archived.balance, 7500)
        self.assertEqual(archived.status_at_archive, 'active')
        self.assertEqual(archived.archive_reason, 'moved away')


class RestoreTests(TestCase):

    def test_round_trip(self):
        loan = make_loan()
        first = loan.apply_payment(3000, payment_date='2024-01-14')
        loan.top_up(2000, top_up_date='2024-01-20')
        second = loan.apply_payment(1000, payment_date='2024-01-21', payment_mode='upi')
        loan.refresh_from_db()
        top_up = loan.top_ups.get()
        original = {
            'id': loan.pk,
            'created_at': loan.created_at,
            'principal': loan.principal,
            'balance': loan.balance,
            'installment': loan.installment,
            'start_date': loan.start_date,
            'loan_name': loan.loan_name,
        }

        archived = loan.archive(override=True)
        restored = archived.restore()
        restored.refresh_from_db()

        for field, value in original.items():
            self.assertEqual(getattr(restored, field), value, field)
        self.assertEqual(restored.status, 'active')
        self.assertFalse(ArchivedLoan.objects.exists())
        self.assertFalse(ArchivedPayment.objects.exists())

        payments = list(restored.payments.all())
        self.assertEqual([p.pk for p in payments], [first.pk, second.pk])
        self.assertEqual([p.week_number for p in payments], [1, 2])
        self.assertEqual([p.balance_after for p in payments], [7000, 8000])
        self.assertEqual(payments[1].online_amount, 1000)
        self.assertEqual(payments[0].created_at, first.created_at)

        restored_top_up = LoanTopUp.objects.get(loan=restored)
        self.assertEqual(restored_top_up.pk, top_up.pk)
        self.assertEqual(restored_top_up.amount, 2000)
        self.assertEqual(restored_top_up.top_up_date, date(2024, 1, 20))

    def test_restored_closed_loan_stays_closed(self):
        loan = make_loan()
        loan.apply_payment(10000)
        restored = loan.archive().restore()
        self.assertEqual(restored.status, 'closed')
        self.assertEqual(restored.balance, 0)

    def test_restore_refuses_duplicate(self):
        loan = make_loan()
        loan.apply_payment(10000)
        archived = loan.archive()

        Loan.objects.create(
            id=archived.original_loan_id,
            customer=archived.customer,
            principal=500,
            installment=50,
            balance=500,
            start_date=date(2024, 2, 1),
        )
        with self.assertRaises(IllegalStateTransition):
            archived.restore()
        self.assertTrue(ArchivedLoan.objects.filter(pk=archived.pk).exists())

    def test_restore_recreates_deleted_customer(self):
        loan = make_loan()
        loan.apply_payment(10000)
        archived = loan.archive()

        Customer.objects.all().delete()
        archived.refresh_from_db()
        self.assertIsNone(archived.customer)

        restored = archived.restore()
        self.assertEqual(restored.customer.name, 'Meena')
        self.assertEqual(restored.customer.phone, '9123456780')

    def test_delete_permanently(self):
        loan = make_loan()
        loan.apply_payment(10000)
        archived = loan.archive()

        with self.assertLogs('lending.models.all_models', level='WARNING'):
            archived.delete_permanently()

        self.assertFalse(ArchivedLoan.objects.exists())
        self.assertFalse(ArchivedPayment.objects.exists())

    def test_search(self):
        loan = make_loan()
        loan.apply_payment(10000)
        loan.archive()
        self.assertEqual(ArchivedLoan.objects.search('meen').count(), 1)
        self.assertEqual(ArchivedLoan.objects.search('tailor').count(), 1)
        self.assertEqual(ArchivedLoan.objects.search('nobody').count(), 0)
