"""
Report Views
============

Health check, dashboard stats, overdue triage, Sunday collection sheet and
the payment tracker export
"""

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from lending.models import Loan
from lending.serializers import overdue_to_dict, payment_to_dict
from lending.utils.excel_export import export_payment_tracker_csv, export_payment_tracker_excel
from lending.utils.helpers import today
from lending.utils.money import PeriodCalculator, normalize_period_unit
from lending.utils.overdue import overdue_loans, overdue_summary
from lending.utils.reports import daily_collections, dashboard_stats, sunday_collections
from lending.views.helpers import api_view, query_date


@require_http_methods(['GET'])
def health(request):
    return JsonResponse({
        'status': 'ok',
        'version': getattr(settings, 'LEDGER_VERSION', '1.0.0'),
        'date': today(),
    })


@login_required
@require_http_methods(['GET'])
@api_view
def stats(request):
    return JsonResponse(dashboard_stats(query_date(request)))


@login_required
@require_http_methods(['GET'])
@api_view
def overdue_list(request):
    """Loans behind schedule as of ?as_of= (today by default), worst first"""
    as_of = query_date(request, default=today())
    rows = overdue_loans(as_of_date=as_of)
    return JsonResponse({
        'as_of': as_of,
        'summary': overdue_summary(rows),
        'results': [overdue_to_dict(loan, status) for loan, status in rows],
    })


def _collection_row(row, number_field):
    loan = row['loan']
    return {
        'loan_id': loan.pk,
        'customer_name': loan.customer.name,
        'customer_phone': loan.customer.phone,
        'loan_name': loan.loan_name,
        'installment': loan.installment,
        'balance': loan.balance,
        number_field: row[number_field],
        'is_paid': row['is_paid'],
        'payment': payment_to_dict(row['payment']) if row['payment'] else None,
    }


@login_required
@require_http_methods(['GET'])
@api_view
def sunday_collection(request):
    """Collection sheet for ?date= (the most recent Sunday by default)"""
    collection_date = query_date(request, 'date', default=PeriodCalculator.previous_sunday(today()))
    rows = sunday_collections(collection_date)
    return JsonResponse({
        'date': collection_date,
        'paid_count': sum(1 for row in rows if row['is_paid']),
        'results': [_collection_row(row, 'week_number') for row in rows],
    })


@login_required
@require_http_methods(['GET'])
@api_view
def daily_collection(request):
    """Daily loans due on ?date= (today by default)"""
    collection_date = query_date(request, 'date', default=today())
    rows = daily_collections(collection_date)
    return JsonResponse({
        'date': collection_date,
        'paid_count': sum(1 for row in rows if row['is_paid']),
        'expected': sum(row['loan'].installment for row in rows),
        'collected': sum(row['payment'].amount for row in rows if row['payment']),
        'results': [_collection_row(row, 'day_number') for row in rows],
    })


@login_required
@require_http_methods(['GET'])
@api_view
def export_payments(request, file_format='xlsx'):
    """Payment tracker for ?type=weekly|monthly|daily (all loans by default)"""
    loans = Loan.objects.all()
    label = 'All'
    if request.GET.get('type'):
        period_unit = normalize_period_unit(request.GET['type'])
        loans = loans.by_period_unit(period_unit)
        label = period_unit.capitalize()

    if file_format == 'csv':
        return export_payment_tracker_csv(loans, label)
    return export_payment_tracker_excel(loans, label)
