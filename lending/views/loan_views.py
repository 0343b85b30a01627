"""
Loan Views
==========

Loan creation, detail, top-up, close, archive and payment posting
"""

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from lending.forms import (
    ArchiveForm, LoanCreateForm, LoanRenameForm, PaymentForm, TopUpForm, VaddiCalculatorForm,
)
from lending.models import Loan, Payment
from lending.serializers import (
    archived_loan_to_dict, loan_to_dict, overdue_to_dict, payment_to_dict,
)
from lending.utils.money import VaddiCalculator, top_up_preview
from lending.utils.overdue import compute_overdue
from lending.views.helpers import (
    api_view, form_error_response, parse_body, query_date, query_flag,
)


def _loan(loan_id):
    return Loan.objects.select_related('customer').fetch(loan_id)


# =============================================================================
# LOAN CREATE / DETAIL
# =============================================================================

@login_required
@require_http_methods(['POST'])
@api_view
def loan_create(request):
    form = LoanCreateForm(parse_body(request))
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    loan = Loan.objects.create_loan(
        customer=data['customer_id'],
        principal=data['principal'],
        period_unit=data['period_unit'],
        installment=data.get('installment'),
        start_date=data.get('start_date'),
        loan_name=data.get('loan_name', ''),
        loan_given_date=data.get('loan_given_date'),
    )
    return JsonResponse(loan_to_dict(loan), status=201)


@login_required
@require_http_methods(['GET', 'PATCH'])
@api_view
def loan_detail(request, loan_id):
    """
    GET:   loan with payments, top-ups, schedule and progress
    PATCH: rename the loan
    """
    loan = _loan(loan_id)

    if request.method == 'PATCH':
        form = LoanRenameForm(parse_body(request))
        if not form.is_valid():
            return form_error_response(form)
        loan.rename(form.cleaned_data.get('loan_name', ''))

    return JsonResponse(loan_to_dict(loan, detail=True))


# =============================================================================
# TOP-UP / STATUS CHANGES
# =============================================================================

@login_required
@require_http_methods(['GET', 'POST'])
@api_view
def loan_top_up(request, loan_id):
    """
    GET ?amount=:  preview of the loan after the top-up
    POST:          apply the top-up
    """
    loan = _loan(loan_id)

    if request.method == 'GET':
        return JsonResponse(top_up_preview(loan, request.GET.get('amount')))

    form = TopUpForm(parse_body(request))
    if not form.is_valid():
        return form_error_response(form)

    loan.top_up(
        form.cleaned_data['amount'],
        top_up_date=form.cleaned_data.get('top_up_date'),
        notes=form.cleaned_data.get('notes', ''),
    )
    return JsonResponse(loan_to_dict(loan, detail=True))


@login_required
@require_http_methods(['POST', 'PUT'])
@api_view
def loan_close(request, loan_id):
    loan = _loan(loan_id)
    loan.close()
    return JsonResponse(loan_to_dict(loan))


@login_required
@require_http_methods(['POST'])
@api_view
def loan_mark_defaulted(request, loan_id):
    loan = _loan(loan_id)
    loan.mark_defaulted()
    return JsonResponse(loan_to_dict(loan))


@login_required
@require_http_methods(['POST'])
@api_view
def loan_archive(request, loan_id):
    loan = _loan(loan_id)
    data = parse_body(request)
    form = ArchiveForm(data)
    if not form.is_valid():
        return form_error_response(form)

    archived = loan.archive(
        override=query_flag(request, data, 'override'),
        reason=form.cleaned_data.get('reason', ''),
    )
    return JsonResponse(archived_loan_to_dict(archived, detail=True), status=201)


@login_required
@require_http_methods(['GET'])
@api_view
def loan_overdue(request, loan_id):
    loan = _loan(loan_id)
    status = compute_overdue(loan, query_date(request))
    return JsonResponse(overdue_to_dict(loan, status))


# =============================================================================
# PAYMENTS
# =============================================================================

@login_required
@require_http_methods(['GET', 'POST'])
@api_view
def payment_list(request):
    """
    GET:  recent payments, or ?loan_id= for one loan, ?date= for one day
    POST: record a payment
    """
    if request.method == 'POST':
        form = PaymentForm(parse_body(request))
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        loan = data['loan_id']
        payment = loan.apply_payment(
            data['amount'],
            offline_amount=data.get('offline_amount'),
            online_amount=data.get('online_amount'),
            payment_date=data.get('payment_date'),
            payment_mode=data['payment_mode'],
            notes=data.get('notes', ''),
        )
        return JsonResponse({
            'payment': payment_to_dict(payment),
            'loan': loan_to_dict(loan),
        }, status=201)

    payments = Payment.objects.all()
    if request.GET.get('loan_id'):
        payments = payments.for_loan(_loan(request.GET['loan_id']))
    payment_date = query_date(request, 'date')
    if payment_date:
        payments = payments.on_date(payment_date)

    totals = payments.get_totals()
    limit = request.GET.get('limit', '')
    payments = payments.recent(limit=int(limit) if limit.isdigit() else 100)
    return JsonResponse({'totals': totals, 'results': [
        {
            **payment_to_dict(p),
            'customer_name': p.loan.customer.name,
            'loan_name': p.loan.loan_name,
        }
        for p in payments
    ]})


@login_required
@require_http_methods(['DELETE'])
@api_view
def payment_delete(request, payment_id):
    loan = Payment.objects.delete_payment(payment_id)
    return JsonResponse({'deleted': True, 'loan': loan_to_dict(loan)})


# =============================================================================
# VADDI CALCULATOR
# =============================================================================

@login_required
@require_http_methods(['GET'])
@api_view
def vaddi_calculator(request):
    """?loan_amount=&periods= and optionally &vaddi_percent="""
    form = VaddiCalculatorForm(request.GET)
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    if data.get('vaddi_percent') is not None:
        result = VaddiCalculator.from_vaddi_percent(data['loan_amount'], data['periods'], data['vaddi_percent'])
    else:
        result = VaddiCalculator.from_period_count(data['loan_amount'], data['periods'])
    return JsonResponse(result)
