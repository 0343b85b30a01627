"""
Customer Views
==============

Customer list, create, edit and delete
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from lending.forms import CustomerForm
from lending.models import Customer
from lending.serializers import customer_to_dict, loan_to_dict
from lending.views.helpers import api_view, form_error_response, parse_body


logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOMER LIST / CREATE
# =============================================================================

@login_required
@require_http_methods(['GET', 'POST'])
@api_view
def customer_list(request):
    """
    GET:  customers with outstanding balance and active loan count,
          optionally filtered by ?search=
    POST: create a customer
    """
    if request.method == 'POST':
        form = CustomerForm(parse_body(request))
        if not form.is_valid():
            return form_error_response(form)
        customer = form.save()
        logger.info(f"Customer created: {customer.pk} {customer.name}")
        return JsonResponse(customer_to_dict(customer), status=201)

    customers = Customer.objects.search(request.GET.get('search', '').strip()).with_loan_summary()
    return JsonResponse({'results': [customer_to_dict(c) for c in customers]})


# =============================================================================
# CUSTOMER DETAIL / EDIT / DELETE
# =============================================================================

@login_required
@require_http_methods(['GET', 'PUT', 'DELETE'])
@api_view
def customer_detail(request, customer_id):
    customer = Customer.objects.fetch(customer_id)

    if request.method == 'PUT':
        data = parse_body(request)
        # Partial edits keep the fields that were not sent
        payload = {field: data.get(field, getattr(customer, field)) for field in CustomerForm.Meta.fields}
        form = CustomerForm(payload, instance=customer)
        if not form.is_valid():
            return form_error_response(form)
        customer = form.save()
        logger.info(f"Customer updated: {customer.pk} {customer.name}")
        return JsonResponse(customer_to_dict(customer))

    if request.method == 'DELETE':
        customer.remove()
        return JsonResponse({'deleted': True})

    data = customer_to_dict(customer)
    data['outstanding'] = customer.outstanding_balance
    return JsonResponse(data)


@login_required
@require_http_methods(['GET'])
@api_view
def customer_loans(request, customer_id):
    customer = Customer.objects.fetch(customer_id)
    loans = customer.loans.select_related('customer')
    return JsonResponse({
        'customer': customer_to_dict(customer),
        'loans': [loan_to_dict(loan) for loan in loans],
    })
