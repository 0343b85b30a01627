"""
Chit Views
==========

Chit groups, members, monthly collections, auctions and month settings
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from lending.forms import (
    ChitAuctionForm, ChitGroupForm, ChitMemberForm, ChitMonthSettingsForm, ChitPaymentForm,
)
from lending.models import ChitGroup, ChitMember, ChitMonthSettings, ChitPayment
from lending.serializers import (
    chit_auction_to_dict, chit_group_to_dict, chit_member_to_dict, chit_payment_to_dict,
    month_overview_to_dict, month_settings_to_dict, slot_to_dict,
)
from lending.utils.helpers import parse_month
from lending.views.helpers import api_view, form_error_response, parse_body


logger = logging.getLogger(__name__)


# =============================================================================
# CHIT GROUPS
# =============================================================================

@login_required
@require_http_methods(['GET', 'POST'])
@api_view
def chit_group_list(request):
    if request.method == 'POST':
        form = ChitGroupForm(parse_body(request))
        if not form.is_valid():
            return form_error_response(form)
        group = form.save()
        logger.info(f"Chit group created: {group.name}, ₹{group.chit_amount} / {group.member_count} members")
        return JsonResponse(chit_group_to_dict(group), status=201)

    groups = ChitGroup.objects.all().with_member_counts()
    if request.GET.get('active') == '1':
        groups = groups.active()
    return JsonResponse({'results': [chit_group_to_dict(g) for g in groups]})


@login_required
@require_http_methods(['GET'])
@api_view
def chit_group_detail(request, group_id):
    """Month overview of a group for ?month=YYYY-MM (current month by default)"""
    group = ChitGroup.objects.fetch(group_id)
    overview = group.month_overview(request.GET.get('month'))
    return JsonResponse(month_overview_to_dict(group, overview))


@login_required
@require_http_methods(['GET'])
@api_view
def chit_group_slots(request, group_id):
    group = ChitGroup.objects.fetch(group_id)
    slots = group.slots_dashboard()
    return JsonResponse({
        'group': chit_group_to_dict(group),
        'completed': sum(1 for slot in slots if slot['completed']),
        'slots': [slot_to_dict(slot) for slot in slots],
    })


@login_required
@require_http_methods(['GET', 'POST'])
@api_view
def chit_group_auctions(request, group_id):
    """
    GET:  auctions of the group, by slot
    POST: record or correct the auction of a month (JSON or multipart with
          photo / signature files)
    """
    group = ChitGroup.objects.fetch(group_id)

    if request.method == 'GET':
        return JsonResponse({'results': [chit_auction_to_dict(a) for a in group.auctions.all()]})

    form = ChitAuctionForm(parse_body(request))
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    auction = group.record_auction(
        month=data['month'],
        slot_number=data['slot_number'],
        winner=data.get('winner_id') or None,
        bid_amount=data['bid_amount'],
        commission=data['commission'],
        auction_date=data.get('auction_date'),
        disbursement_date=data.get('disbursement_date'),
        notes=data.get('notes', ''),
        photo=request.FILES.get('photo'),
        signature=request.FILES.get('signature'),
    )
    return JsonResponse(chit_auction_to_dict(auction), status=201)


# =============================================================================
# MEMBERS
# =============================================================================

@login_required
@require_http_methods(['POST'])
@api_view
def chit_member_create(request):
    form = ChitMemberForm(parse_body(request))
    if not form.is_valid():
        return form_error_response(form)
    member = form.save()
    logger.info(f"Chit member added: {member.name} ({member.group.name})")
    return JsonResponse(chit_member_to_dict(member), status=201)


@login_required
@require_http_methods(['DELETE'])
@api_view
def chit_member_delete(request, member_id):
    member = ChitMember.objects.fetch(member_id)
    outcome = member.remove()
    return JsonResponse({'removed': True, 'outcome': outcome})


# =============================================================================
# MONTHLY PAYMENTS
# =============================================================================

@login_required
@require_http_methods(['POST'])
@api_view
def chit_payment_create(request):
    form = ChitPaymentForm(parse_body(request))
    if not form.is_valid():
        return form_error_response(form)

    data = form.cleaned_data
    member = data['member_id']
    payment = member.group.record_member_payment(
        member,
        data['month'],
        amount=data.get('amount'),
        payment_date=data.get('payment_date'),
        notes=data.get('notes', ''),
    )
    return JsonResponse(chit_payment_to_dict(payment), status=201)


@login_required
@require_http_methods(['DELETE'])
@api_view
def chit_payment_delete(request, payment_id):
    ChitPayment.objects.undo_payment(payment_id)
    return JsonResponse({'deleted': True})


# =============================================================================
# MONTH SETTINGS
# =============================================================================

@login_required
@require_http_methods(['GET', 'PUT'])
@api_view
def chit_month_settings(request, group_id, month):
    group = ChitGroup.objects.fetch(group_id)
    month = parse_month(month)

    if request.method == 'PUT':
        instance = ChitMonthSettings.objects.filter(group=group, month=month).first()
        instance = instance or ChitMonthSettings(group=group, month=month)
        form = ChitMonthSettingsForm(parse_body(request), instance=instance)
        if not form.is_valid():
            return form_error_response(form)
        settings_row = form.save()
        logger.info(f"Chit month settings saved: {group.name} {month}")
        return JsonResponse(month_settings_to_dict(settings_row))

    return JsonResponse(month_settings_to_dict(group.month_settings(month)))
