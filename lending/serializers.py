"""
JSON shapes for the API

Plain functions returning dicts; dates, UUIDs and Decimals are left for
DjangoJSONEncoder (used by JsonResponse) to encode.
"""


def customer_to_dict(customer):
    data = {
        'id': customer.pk,
        'name': customer.name,
        'phone': customer.phone,
        'address': customer.address,
        'created_at': customer.created_at,
    }
    # Present when the queryset came through with_loan_summary()
    if hasattr(customer, 'outstanding'):
        data['outstanding'] = customer.outstanding or 0
        data['active_loan_count'] = customer.active_loan_count
    return data


def payment_to_dict(payment):
    return {
        'id': payment.pk,
        'loan_id': payment.loan_id,
        'amount': payment.amount,
        'offline_amount': payment.offline_amount,
        'online_amount': payment.online_amount,
        'payment_date': payment.payment_date,
        'payment_mode': payment.payment_mode,
        'week_number': payment.week_number,
        'balance_after': payment.balance_after,
        'weeks_covered': payment.weeks_covered,
        'notes': payment.notes,
        'created_at': payment.created_at,
    }


def top_up_to_dict(top_up):
    return {
        'id': top_up.pk,
        'amount': top_up.amount,
        'balance_before': top_up.balance_before,
        'balance_after': top_up.balance_after,
        'principal_after': top_up.principal_after,
        'top_up_date': top_up.top_up_date,
        'notes': top_up.notes,
    }


def loan_to_dict(loan, detail=False):
    data = {
        'id': loan.pk,
        'customer_id': loan.customer_id,
        'customer_name': loan.customer.name,
        'customer_phone': loan.customer.phone,
        'loan_name': loan.loan_name,
        'period_unit': loan.period_unit,
        'principal': loan.principal,
        'installment': loan.installment,
        'balance': loan.balance,
        'start_date': loan.start_date,
        'loan_given_date': loan.loan_given_date,
        'status': loan.status,
        'closed_at': loan.closed_at,
        'total_periods': loan.total_periods,
        'periods_remaining': loan.periods_remaining,
        'created_at': loan.created_at,
    }
    if detail:
        data['progress'] = loan.progress()
        data['payments'] = [payment_to_dict(p) for p in loan.payments.all()]
        data['top_ups'] = [top_up_to_dict(t) for t in loan.top_ups.all()]
        data['schedule'] = loan.get_payment_schedule()
    return data


def overdue_to_dict(loan, status):
    return {
        'loan_id': loan.pk,
        'customer_id': loan.customer_id,
        'customer_name': loan.customer.name,
        'customer_phone': loan.customer.phone,
        'loan_name': loan.loan_name,
        'period_unit': loan.period_unit,
        'installment': loan.installment,
        'balance': loan.balance,
        'missed_periods': status.missed_periods,
        'overdue_amount': status.overdue_amount,
        'last_payment_date': status.last_payment_date,
        'expected_payments': status.expected_payments,
        'actual_payments': status.actual_payments,
    }


def archived_payment_to_dict(payment):
    return {
        'id': payment.original_payment_id,
        'amount': payment.amount,
        'offline_amount': payment.offline_amount,
        'online_amount': payment.online_amount,
        'payment_date': payment.payment_date,
        'payment_mode': payment.payment_mode,
        'week_number': payment.week_number,
        'balance_after': payment.balance_after,
        'notes': payment.notes,
    }


def archived_loan_to_dict(archived, detail=False):
    data = {
        'id': archived.pk,
        'original_loan_id': archived.original_loan_id,
        'customer_id': archived.customer_id,
        'customer_name': archived.customer_name,
        'customer_phone': archived.customer_phone,
        'loan_name': archived.loan_name,
        'period_unit': archived.period_unit,
        'principal': archived.principal,
        'installment': archived.installment,
        'balance': archived.balance,
        'total_paid': archived.total_paid,
        'start_date': archived.start_date,
        'status_at_archive': archived.status_at_archive,
        'written_off': archived.written_off,
        'archived_at': archived.archived_at,
        'archive_reason': archived.archive_reason,
    }
    if detail:
        data['payments'] = [archived_payment_to_dict(p) for p in archived.payments.all()]
        data['top_up_history'] = archived.top_up_history
    return data


# =============================================================================
# CHIT FUNDS
# =============================================================================

def chit_group_to_dict(group):
    data = {
        'id': group.pk,
        'name': group.name,
        'chit_amount': group.chit_amount,
        'member_count': group.member_count,
        'monthly_amount': group.monthly_amount,
        'due_day': group.due_day,
        'duration_months': group.duration_months,
        'start_month': group.start_month,
        'is_active': group.is_active,
        'notes': group.notes,
    }
    if hasattr(group, 'enrolled_members'):
        data['enrolled_members'] = group.enrolled_members
    return data


def chit_member_to_dict(member):
    return {
        'id': member.pk,
        'group_id': member.group_id,
        'name': member.name,
        'phone': member.phone,
        'member_number': member.member_number,
        'is_active': member.is_active,
    }


def chit_payment_to_dict(payment):
    return {
        'id': payment.pk,
        'group_id': payment.group_id,
        'member_id': payment.member_id,
        'month': payment.month,
        'amount': payment.amount,
        'payment_date': payment.payment_date,
        'notes': payment.notes,
    }


def _cloudinary_id(resource):
    return getattr(resource, 'public_id', None) if resource else None


def chit_auction_to_dict(auction):
    return {
        'id': auction.pk,
        'group_id': auction.group_id,
        'month': auction.month,
        'slot_number': auction.slot_number,
        'winner_id': auction.winner_id,
        'winner_name': auction.winner_name,
        'bid_amount': auction.bid_amount,
        'commission': auction.commission,
        'total_collected': auction.total_collected,
        'amount_to_winner': auction.amount_to_winner,
        'carry_forward': auction.carry_forward,
        'auction_date': auction.auction_date,
        'disbursement_date': auction.disbursement_date,
        'photo': _cloudinary_id(auction.photo),
        'signature': _cloudinary_id(auction.signature),
        'notes': auction.notes,
    }


def month_settings_to_dict(settings_row):
    return {
        'group_id': settings_row.group_id,
        'month': settings_row.month,
        'chit_number': settings_row.chit_number,
        'custom_note': settings_row.custom_note,
    }


def month_overview_to_dict(group, overview):
    return {
        'group': chit_group_to_dict(group),
        'month': overview['month'],
        'members': [
            {
                **chit_member_to_dict(row['member']),
                'is_paid': row['is_paid'],
                'payment_id': row['payment_id'],
                'amount_paid': row['amount'],
                'payment_date': row['payment_date'],
            }
            for row in overview['members']
        ],
        'paid_count': overview['paid_count'],
        'pending_count': overview['pending_count'],
        'collected': overview['collected'],
        'expected': overview['expected'],
        'auction': chit_auction_to_dict(overview['auction']) if overview['auction'] else None,
        'settings': month_settings_to_dict(overview['settings']),
    }


def slot_to_dict(slot):
    return {
        'slot_number': slot['slot_number'],
        'completed': slot['completed'],
        'auction': chit_auction_to_dict(slot['auction']) if slot['auction'] else None,
    }
