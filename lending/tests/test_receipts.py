from datetime import date
from unittest import mock
from urllib.parse import unquote

from django.test import SimpleTestCase, override_settings

from lending.utils.receipts import (
    build_chit_receipt,
    build_loan_receipt,
    dispatch_loan_receipt,
    normalize_phone,
    send_receipt,
    whatsapp_link,
)


LOAN_RECEIPT = {
    'customer_name': 'Ravi Kumar',
    'customer_phone': '+91 98765 43210',
    'loan_name': 'Shop',
    'amount': 3000,
    'payment_date': date(2024, 3, 10),
    'week_number': 4,
    'balance_after': 107000,
}

CHIT_RECEIPT = {
    'group_name': 'Sunday Chit',
    'chit_number': '12',
    'custom_note': '',
    'member_name': 'Lakshmi',
    'member_phone': '9876500000',
    'amount': 5000,
    'month': '2024-03',
    'payment_date': date(2024, 3, 5),
}

captured = []


def capture_sender(phone, message, link):
    captured.append((phone, message, link))


def failing_sender(phone, message, link):
    raise ConnectionError("gateway timeout")


@override_settings(
    LEDGER_RECEIPT_LANGUAGE='english',
    LEDGER_RECEIPT_QUICK_NOTE='',
    LEDGER_RECEIPT_SIGNATURE='Om Sai Murugan',
    LEDGER_RECEIPT_SIGNATURE_TAMIL='ஓம் சாய் முருகன்',
)
class LoanReceiptTests(SimpleTestCase):

    def test_english(self):
        message = build_loan_receipt(LOAN_RECEIPT)
        self.assertEqual(message, (
            "*Loan Payment Receipt*\n"
            "\n"
            "Customer: Ravi Kumar\n"
            "Loan: Shop\n"
            "Amount: ₹3,000\n"
            "Week: 4\n"
            "Balance: ₹1,07,000\n"
            "Date: 10/03/2024\n"
            "\n"
            "Thank you!\n"
            "- Om Sai Murugan"
        ))

    def test_tamil(self):
        message = build_loan_receipt(LOAN_RECEIPT, language='tamil')
        self.assertTrue(message.startswith('*கடன் பணம் ரசீது*'))
        self.assertIn('தொகை: ₹3,000', message)
        self.assertTrue(message.endswith('- ஓம் சாய் முருகன்'))

    def test_quick_note_is_appended(self):
        message = build_loan_receipt(LOAN_RECEIPT, quick_note='Next due Sunday')
        self.assertTrue(message.endswith('- Om Sai Murugan\n\nNext due Sunday'))

    def test_loan_name_is_optional(self):
        message = build_loan_receipt(dict(LOAN_RECEIPT, loan_name=''))
        self.assertNotIn('Loan:', message)


@override_settings(LEDGER_RECEIPT_LANGUAGE='english', LEDGER_RECEIPT_QUICK_NOTE='Pay by the 5th')
class ChitReceiptTests(SimpleTestCase):

    def test_quick_note_from_settings(self):
        message = build_chit_receipt(CHIT_RECEIPT)
        self.assertIn('Chit: Sunday Chit\nChit No: 12\nMember: Lakshmi', message)
        self.assertIn('Month: 2024-03', message)
        self.assertTrue(message.endswith('\n\nPay by the 5th'))

    def test_month_note_wins(self):
        message = build_chit_receipt(dict(CHIT_RECEIPT, custom_note='Auction on the 10th'))
        self.assertTrue(message.endswith('\n\nAuction on the 10th'))
        self.assertNotIn('Pay by the 5th', message)


class WhatsAppLinkTests(SimpleTestCase):

    def test_normalize_phone(self):
        self.assertEqual(normalize_phone('+91 98765-43210'), '9876543210')
        self.assertEqual(normalize_phone('98765'), None)
        self.assertEqual(normalize_phone(None), None)

    def test_link(self):
        link = whatsapp_link('98765 43210', 'Paid ₹500 & thanks')
        self.assertTrue(link.startswith('https://wa.me/919876543210?text='))
        self.assertNotIn(' ', link)
        self.assertEqual(unquote(link.split('?text=', 1)[1]), 'Paid ₹500 & thanks')

    def test_no_link_without_phone(self):
        self.assertIsNone(whatsapp_link('', 'hello'))


class SendReceiptTests(SimpleTestCase):

    def setUp(self):
        captured.clear()

    @override_settings(LEDGER_RECEIPT_SENDER='lending.tests.test_receipts.capture_sender')
    def test_configured_sender_receives_link(self):
        self.assertTrue(dispatch_loan_receipt(LOAN_RECEIPT))
        (phone, message, link), = captured
        self.assertEqual(phone, LOAN_RECEIPT['customer_phone'])
        self.assertIn('Ravi Kumar', message)
        self.assertTrue(link.startswith('https://wa.me/919876543210'))

    @override_settings(LEDGER_RECEIPT_SENDER='lending.tests.test_receipts.failing_sender')
    def test_sender_failure_is_logged_not_raised(self):
        with self.assertLogs('lending.utils.receipts', level='ERROR') as logs:
            self.assertFalse(send_receipt('9876543210', 'hello'))
        self.assertIn('gateway timeout', logs.output[0])

    def test_unusable_phone_is_skipped(self):
        with mock.patch('lending.utils.receipts.get_receipt_sender') as get_sender:
            self.assertFalse(send_receipt('123', 'hello'))
        get_sender.assert_not_called()
