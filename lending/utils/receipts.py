"""
Payment Receipts
================

Composes the WhatsApp receipt text for loan and chit payments (English or
Tamil) and hands it to the configured sender.

The sender is the callable named by settings.LEDGER_RECEIPT_SENDER and is
called as sender(phone, message, link). Delivery happens after the payment
has been committed; a failing sender is logged and never undoes a payment.
"""

import logging
import re
from urllib.parse import quote

from django.conf import settings
from django.utils.module_loading import import_string

from lending.utils.money import format_currency


logger = logging.getLogger(__name__)


ENGLISH = 'english'
TAMIL = 'tamil'

LABELS = {
    ENGLISH: {
        'loan_title': 'Loan Payment Receipt',
        'chit_title': 'Chit Payment Receipt',
        'customer': 'Customer',
        'loan': 'Loan',
        'chit': 'Chit',
        'chit_number': 'Chit No',
        'member': 'Member',
        'amount': 'Amount',
        'week': 'Week',
        'month': 'Month',
        'balance': 'Balance',
        'date': 'Date',
        'loan_thanks': 'Thank you!',
        'chit_thanks': 'Thank you!',
    },
    TAMIL: {
        'loan_title': 'கடன் பணம் ரசீது',
        'chit_title': 'சீட்டு பணம் ரசீது',
        'customer': 'வாடிக்கையாளர்',
        'loan': 'கடன்',
        'chit': 'சீட்டு',
        'chit_number': 'சீட்டு எண்',
        'member': 'உறுப்பினர்',
        'amount': 'தொகை',
        'week': 'வாரம்',
        'month': 'மாதம்',
        'balance': 'மீதி',
        'date': 'தேதி',
        'loan_thanks': 'நன்றி!',
        'chit_thanks': 'வணக்கம்!\nஇந்த மாதம் சீட்டு பணம் பெறப்பட்டது நன்றி',
    },
}

DEFAULT_SIGNATURES = {
    ENGLISH: 'Om Sai Murugan',
    TAMIL: 'ஓம் சாய் முருகன்',
}


def _language(language=None):
    value = (language or getattr(settings, 'LEDGER_RECEIPT_LANGUAGE', ENGLISH) or ENGLISH).lower()
    return value if value in LABELS else ENGLISH


def _signature(language):
    if language == TAMIL:
        return getattr(settings, 'LEDGER_RECEIPT_SIGNATURE_TAMIL', DEFAULT_SIGNATURES[TAMIL])
    return getattr(settings, 'LEDGER_RECEIPT_SIGNATURE', DEFAULT_SIGNATURES[ENGLISH])


def _quick_note(quick_note=None):
    if quick_note is None:
        quick_note = getattr(settings, 'LEDGER_RECEIPT_QUICK_NOTE', '')
    return (quick_note or '').strip()


def format_receipt_date(value):
    if not value:
        return ''
    return value.strftime('%d/%m/%Y')


# =============================================================================
# MESSAGE BUILDERS
# =============================================================================

def build_loan_receipt(data, language=None, quick_note=None):
    """
    Loan payment receipt text

    Args:
        data: dict with customer_name, loan_name, amount, week_number,
              balance_after and payment_date (see Loan.receipt_data)
    """
    language = _language(language)
    labels = LABELS[language]

    lines = [f"*{labels['loan_title']}*", '']
    lines.append(f"{labels['customer']}: {data['customer_name']}")
    if data.get('loan_name'):
        lines.append(f"{labels['loan']}: {data['loan_name']}")
    lines.append(f"{labels['amount']}: {format_currency(data['amount'])}")
    if data.get('week_number'):
        lines.append(f"{labels['week']}: {data['week_number']}")
    lines.append(f"{labels['balance']}: {format_currency(data['balance_after'])}")
    lines.append(f"{labels['date']}: {format_receipt_date(data.get('payment_date'))}")

    message = '\n'.join(lines) + f"\n\n{labels['loan_thanks']}\n- {_signature(language)}"

    note = _quick_note(quick_note)
    if note:
        message += f"\n\n{note}"
    return message


def build_chit_receipt(data, language=None, quick_note=None):
    """
    Chit payment receipt text

    Args:
        data: dict with group_name, chit_number, member_name, amount, month
              and payment_date (see ChitPayment.receipt_data)
    """
    language = _language(language)
    labels = LABELS[language]

    lines = [f"*{labels['chit_title']}*", '']
    lines.append(f"{labels['chit']}: {data['group_name']}")
    if data.get('chit_number'):
        lines.append(f"{labels['chit_number']}: {data['chit_number']}")
    lines.append(f"{labels['member']}: {data['member_name']}")
    lines.append(f"{labels['amount']}: {format_currency(data['amount'])}")
    lines.append(f"{labels['month']}: {data['month']}")
    lines.append(f"{labels['date']}: {format_receipt_date(data.get('payment_date'))}")

    message = '\n'.join(lines) + f"\n\n{labels['chit_thanks']}\n- {_signature(language)}"

    # A custom note set for the chit month takes precedence
    note = _quick_note(data.get('custom_note') or quick_note)
    if note:
        message += f"\n\n{note}"
    return message


def normalize_phone(phone):
    """Last ten digits of an Indian mobile number, None when too short."""
    digits = re.sub(r'\D', '', phone or '')
    if len(digits) < 10:
        return None
    return digits[-10:]


def whatsapp_link(phone, message):
    number = normalize_phone(phone)
    if not number:
        return None
    return f"https://wa.me/91{number}?text={quote(message, safe='')}"


# =============================================================================
# DELIVERY
# =============================================================================

def log_receipt(phone, message, link):
    """Default sender: records the deep link so staff can open it."""
    logger.info(f"Receipt ready for {phone}: {link}")


def get_receipt_sender():
    path = getattr(settings, 'LEDGER_RECEIPT_SENDER', 'lending.utils.receipts.log_receipt')
    return import_string(path)


def send_receipt(phone, message):
    """
    Deliver one receipt through the configured sender

    Returns:
        bool: True when the sender accepted the receipt
    """
    link = whatsapp_link(phone, message)
    if not link:
        logger.warning(f"Receipt not sent: no usable phone number ({phone!r})")
        return False

    try:
        sender = get_receipt_sender()
        sender(phone, message, link)
        return True
    except Exception as e:
        logger.error(f"Failed to send receipt to {phone}: {str(e)}")
        return False


def dispatch_loan_receipt(data):
    return send_receipt(data.get('customer_phone'), build_loan_receipt(data))


def dispatch_chit_receipt(data):
    return send_receipt(data.get('member_phone'), build_chit_receipt(data))
