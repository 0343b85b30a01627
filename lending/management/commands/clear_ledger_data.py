"""
Management command to wipe ledger data before going live

Deletes:
- Payments, top-ups and loans
- Archived loans and their payments
- Chit payments, auctions, month settings, members and groups
- Customers (only with --include-customers)

Usage:
    python manage.py clear_ledger_data
    python manage.py clear_ledger_data --include-customers --yes
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from lending.models import (
    ArchivedLoan, ArchivedPayment, ChitAuction, ChitGroup, ChitMember, ChitMonthSettings,
    ChitPayment, Customer, Loan, LoanTopUp, Payment,
)


class Command(BaseCommand):
    help = 'Delete all loans, payments, archives and chit data'

    def add_arguments(self, parser):
        parser.add_argument(
            '--include-customers',
            action='store_true',
            help='Delete customers as well',
        )
        parser.add_argument(
            '--yes',
            action='store_true',
            help='Do not ask for confirmation',
        )

    def handle(self, *args, **options):
        if not options['yes']:
            answer = input('This deletes all ledger data and cannot be undone. Type "yes" to continue: ')
            if answer.strip().lower() != 'yes':
                self.stdout.write(self.style.WARNING('Cancelled.'))
                return

        models_in_order = [
            Payment, LoanTopUp, Loan,
            ArchivedPayment, ArchivedLoan,
            ChitPayment, ChitAuction, ChitMonthSettings, ChitMember, ChitGroup,
        ]
        if options['include_customers']:
            models_in_order.append(Customer)

        self.stdout.write(self.style.WARNING('\n=== Clearing ledger data ===\n'))

        with transaction.atomic():
            for model in models_in_order:
                count, _ = model.objects.all().delete()
                self.stdout.write(f'  Cleared {count} rows from {model._meta.verbose_name_plural}')

        self.stdout.write(self.style.SUCCESS('\n[SUCCESS] Ledger data cleared.\n'))
