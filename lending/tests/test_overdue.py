from datetime import date, timedelta

from django.test import TestCase

from lending.models import Customer, Loan
from lending.utils.overdue import compute_overdue, overdue_loans, overdue_summary


AS_OF = date(2024, 3, 17)


def make_loan(name, principal=10000, period_unit='weekly', start_date=None, installment=None):
    customer = Customer.objects.create(name=name, phone='9000000000')
    return Loan.objects.create_loan(
        customer=customer,
        principal=principal,
        period_unit=period_unit,
        installment=installment,
        start_date=start_date or AS_OF - timedelta(weeks=10),
    )


class ComputeOverdueTests(TestCase):

    def test_nothing_paid_after_ten_weeks(self):
        loan = make_loan('Anbu')
        status = compute_overdue(loan, AS_OF)
        self.assertEqual(status.expected_payments, 10)
        self.assertEqual(status.missed_periods, 10)
        self.assertEqual(status.overdue_amount, 10000)
        self.assertIsNone(status.last_payment_date)
        self.assertTrue(status.is_overdue)

    def test_one_payment_counts_one_period_whatever_its_size(self):
        loan = make_loan('Anbu')
        loan.apply_payment(3000, payment_date=AS_OF - timedelta(days=3))

        status = compute_overdue(loan, AS_OF)
        self.assertEqual(loan.balance, 7000)
        self.assertEqual(status.missed_periods, 9)
        self.assertEqual(status.overdue_amount, 9000)
        self.assertEqual(status.last_payment_date, AS_OF - timedelta(days=3))

    def test_future_start(self):
        loan = make_loan('Anbu', start_date=AS_OF + timedelta(days=3))
        status = compute_overdue(loan, AS_OF)
        self.assertEqual(status.missed_periods, 0)
        self.assertFalse(status.is_overdue)

    def test_monthly_loan(self):
        loan = make_loan('Anbu', period_unit='monthly', start_date=date(2024, 1, 15))
        loan.apply_payment(2000, payment_date=date(2024, 2, 15))

        status = compute_overdue(loan, date(2024, 4, 20))
        self.assertEqual(status.expected_payments, 3)
        self.assertEqual(status.missed_periods, 2)
        self.assertEqual(status.overdue_amount, 4000)

    def test_monthly_loan_started_at_month_end(self):
        loan = make_loan('Anbu', period_unit='monthly', start_date=date(2024, 1, 31))
        self.assertEqual(compute_overdue(loan, date(2024, 2, 29)).missed_periods, 0)
        self.assertEqual(compute_overdue(loan, date(2024, 3, 1)).missed_periods, 1)

    def test_missed_periods_never_decrease_over_time(self):
        loan = make_loan('Anbu', start_date=date(2024, 1, 7))
        loan.apply_payment(1000, payment_date=date(2024, 1, 14))

        previous = 0
        for days in range(0, 120, 5):
            missed = compute_overdue(loan, date(2024, 1, 7) + timedelta(days=days)).missed_periods
            self.assertGreaterEqual(missed, previous)
            previous = missed

    def test_does_not_change_the_loan(self):
        loan = make_loan('Anbu')
        compute_overdue(loan, AS_OF)
        loan.refresh_from_db()
        self.assertEqual(loan.status, 'active')
        self.assertEqual(loan.balance, 10000)


class OverdueListTests(TestCase):

    def test_most_missed_first(self):
        five = make_loan('Bala', start_date=AS_OF - timedelta(weeks=5))
        eight = make_loan('Chitra', start_date=AS_OF - timedelta(weeks=8))
        make_loan('Devi', start_date=AS_OF)

        repaid = make_loan('Arun')
        repaid.apply_payment(10000)

        rows = overdue_loans(as_of_date=AS_OF)

        self.assertEqual([loan.pk for loan, _ in rows], [eight.pk, five.pk])
        self.assertEqual([status.missed_periods for _, status in rows], [8, 5])

        summary = overdue_summary(rows)
        self.assertEqual(summary, {
            'customers': 2,
            'loans': 2,
            'total_missed_periods': 13,
            'total_overdue_amount': 13000,
        })

    def test_ties_ordered_by_customer_name(self):
        make_loan('zara', start_date=AS_OF - timedelta(weeks=3))
        make_loan('Arjun', start_date=AS_OF - timedelta(weeks=3))

        rows = overdue_loans(as_of_date=AS_OF)
        self.assertEqual([loan.customer.name for loan, _ in rows], ['Arjun', 'zara'])

    def test_defaulted_loans_stay_listed(self):
        loan = make_loan('Bala', start_date=AS_OF - timedelta(weeks=2))
        loan.mark_defaulted()
        rows = overdue_loans(as_of_date=AS_OF)
        self.assertEqual(len(rows), 1)

    def test_uses_bulk_payment_counts(self):
        loan = make_loan('Bala', start_date=AS_OF - timedelta(weeks=4))
        loan.apply_payment(1000, payment_date=AS_OF - timedelta(weeks=3))
        loan.apply_payment(1000, payment_date=AS_OF - timedelta(weeks=2))

        (row_loan, status), = overdue_loans(as_of_date=AS_OF)
        self.assertEqual(status.actual_payments, 2)
        self.assertEqual(status.missed_periods, 2)
        self.assertEqual(status.last_payment_date, AS_OF - timedelta(weeks=2))
