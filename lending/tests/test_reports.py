from datetime import date, timedelta
from io import BytesIO, StringIO

import pandas as pd
from django.core.management import call_command
from django.test import TestCase

from lending.models import ChitGroup, ChitMember, Customer, Loan, Payment
from lending.utils.excel_export import (
    export_payment_tracker_csv, export_payment_tracker_excel, payment_tracker_dataframe,
)
from lending.utils.reports import daily_collections, dashboard_stats, sunday_collections


SUNDAY = date(2024, 3, 10)


def make_loan(name, start_date, principal=10000, period_unit='weekly', loan_name=''):
    customer = Customer.objects.create(name=name, phone='9000000001')
    return Loan.objects.create_loan(
        customer=customer,
        principal=principal,
        period_unit=period_unit,
        start_date=start_date,
        loan_name=loan_name,
    )


class DashboardStatsTests(TestCase):

    def test_counts(self):
        active = make_loan('Anbu', SUNDAY - timedelta(weeks=2))
        active.apply_payment(1000, payment_date=SUNDAY - timedelta(days=2))
        active.apply_payment(1000, payment_date=SUNDAY - timedelta(days=20))

        closed = make_loan('Bala', SUNDAY - timedelta(weeks=2), principal=5000)
        closed.apply_payment(5000, payment_date=SUNDAY)

        stats = dashboard_stats(SUNDAY)
        self.assertEqual(stats, {
            'active_loans': 1,
            'outstanding': 8000,
            'total_customers': 2,
            'payments_this_week': 2,
            'portfolio': {
                'total_loans': 2,
                'active_loans': 1,
                'closed_loans': 1,
                'defaulted_loans': 0,
                'total_principal': 15000,
                'total_outstanding': 8000,
                'total_collected': 7000,
            },
        })


class SundayCollectionTests(TestCase):

    def test_sheet(self):
        paid = make_loan('Chitra', SUNDAY - timedelta(weeks=3))
        paid.apply_payment(1000, payment_date=SUNDAY)
        unpaid = make_loan('Bala', SUNDAY - timedelta(weeks=1))
        make_loan('Future', SUNDAY + timedelta(weeks=1))
        make_loan('Finished schedule', SUNDAY - timedelta(weeks=10))
        make_loan('Monthly', SUNDAY - timedelta(weeks=1), period_unit='monthly')

        rows = sunday_collections(SUNDAY)

        self.assertEqual([row['loan'].pk for row in rows], [unpaid.pk, paid.pk])
        self.assertEqual([row['week_number'] for row in rows], [2, 4])
        self.assertEqual([row['is_paid'] for row in rows], [False, True])
        self.assertEqual(rows[1]['payment'].amount, 1000)


class DailyCollectionTests(TestCase):

    def test_sheet(self):
        day = date(2024, 3, 12)
        paid = make_loan('Chitra', day - timedelta(days=3), period_unit='daily')
        paid.apply_payment(1000, payment_date=day)
        unpaid = make_loan('Bala', day, period_unit='daily')
        make_loan('Future', day + timedelta(days=1), period_unit='daily')
        make_loan('Finished schedule', day - timedelta(days=10), period_unit='daily')
        make_loan('Weekly', day - timedelta(days=1))

        rows = daily_collections(day)

        self.assertEqual([row['loan'].pk for row in rows], [unpaid.pk, paid.pk])
        self.assertEqual([row['day_number'] for row in rows], [1, 4])
        self.assertEqual([row['is_paid'] for row in rows], [False, True])
        self.assertEqual(rows[1]['payment'].amount, 1000)

class PaymentTrackerTests(TestCase):

    def setUp(self):
        self.loan = make_loan('Anbu', date(2024, 1, 7), loan_name='Shop')
        self.loan.apply_payment(1000, payment_date=date(2024, 1, 21))
        self.loan.apply_payment(1500, payment_date=date(2024, 1, 14))
        make_loan('Bala', date(2024, 1, 7), period_unit='monthly')

    def test_dataframe(self):
        df = payment_tracker_dataframe(Loan.objects.all(), date(2024, 1, 28))

        self.assertEqual(list(df.columns), [
            'Date', 'Customer Name', 'Friend/Loan Name', 'Type', 'Periods',
            '14/01/2024', '21/01/2024', 'Total Paid',
        ])
        anbu = df[df['Customer Name'] == 'Anbu'].iloc[0]
        self.assertEqual(anbu['Periods'], '2/10')
        self.assertEqual(anbu['Type'], 'Weekly')
        self.assertEqual(anbu['14/01/2024'], 1500)
        self.assertEqual(anbu['Total Paid'], 2500)

        bala = df[df['Customer Name'] == 'Bala'].iloc[0]
        self.assertEqual(bala['Periods'], '0/5')
        self.assertEqual(bala['21/01/2024'], 0)

    def test_repaid_loans_are_left_out(self):
        self.loan.apply_payment(self.loan.balance)
        df = payment_tracker_dataframe(Loan.objects.all(), date(2024, 1, 28))
        self.assertEqual(list(df['Customer Name']), ['Bala'])

    def test_excel(self):
        response = export_payment_tracker_excel(Loan.objects.all(), 'Weekly', date(2024, 1, 28))

        self.assertEqual(
            response['Content-Type'],
            'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )
        self.assertIn('Weekly_Payment_Tracker_2024-01-28.xlsx', response['Content-Disposition'])

        df = pd.read_excel(BytesIO(response.content), sheet_name='Payment Tracker')
        self.assertEqual(len(df), 2)

    def test_csv(self):
        response = export_payment_tracker_csv(Loan.objects.all(), 'All', date(2024, 1, 28))
        self.assertEqual(response['Content-Type'], 'text/csv')
        df = pd.read_csv(StringIO(response.content.decode()))
        self.assertEqual(sorted(df['Customer Name']), ['Anbu', 'Bala'])


class ClearLedgerDataCommandTests(TestCase):

    def setUp(self):
        loan = make_loan('Anbu', date(2024, 1, 7))
        loan.apply_payment(1000)
        group = ChitGroup.objects.create(name='Sunday Chit', chit_amount=100000, member_count=20)
        member = ChitMember.objects.create(group=group, name='Lakshmi')
        group.record_member_payment(member, '2024-01')

    def test_keeps_customers_by_default(self):
        out = StringIO()
        call_command('clear_ledger_data', yes=True, stdout=out)

        self.assertFalse(Loan.objects.exists())
        self.assertFalse(Payment.objects.exists())
        self.assertFalse(ChitGroup.objects.exists())
        self.assertEqual(Customer.objects.count(), 1)
        self.assertIn('Ledger data cleared', out.getvalue())

    def test_include_customers(self):
        call_command('clear_ledger_data', yes=True, include_customers=True, stdout=StringIO())
        self.assertFalse(Customer.objects.exists())
