import uuid
from datetime import date
from unittest import mock

from django.test import TestCase

from lending.exceptions import (
    AlreadyPaid, IllegalStateTransition, InvalidAmount, InvalidSlot, LedgerValidationError,
    MissingWinner, NotFound,
)
from lending.models import ChitAuction, ChitGroup, ChitMember, ChitMonthSettings, ChitPayment


def make_group(name='Sunday Chit', chit_amount=100000, member_count=20, **kwargs):
    return ChitGroup.objects.create(
        name=name,
        chit_amount=chit_amount,
        member_count=member_count,
        start_month=kwargs.pop('start_month', '2024-1'),
        **kwargs
    )


def add_members(group, count):
    return [
        ChitMember.objects.create(group=group, name=f'Member {n}', phone=f'98765432{n:02d}', member_number=n)
        for n in range(1, count + 1)
    ]


class ChitGroupTests(TestCase):

    def test_derived_fields(self):
        group = make_group()
        self.assertEqual(group.monthly_amount, 5000)
        self.assertEqual(group.duration_months, 20)
        self.assertEqual(group.start_month, '2024-01')
        self.assertEqual(group.due_day, 1)

    def test_monthly_amount_follows_updates(self):
        group = make_group()
        group.member_count = 25
        group.save(update_fields=['member_count'])
        group.refresh_from_db()
        self.assertEqual(group.monthly_amount, 4000)

    def test_deactivate(self):
        group = make_group()
        group.deactivate(reason='Completed')
        group.refresh_from_db()
        self.assertFalse(group.is_active)
        self.assertEqual(group.deactivation_reason, 'Completed')
        self.assertEqual(list(ChitGroup.objects.active()), [])


class MemberPaymentTests(TestCase):

    def setUp(self):
        self.group = make_group()
        self.member, self.other = add_members(self.group, 2)

    def test_record_payment_defaults_to_monthly_amount(self):
        payment = self.group.record_member_payment(self.member, '2024-3', payment_date='2024-03-05')
        self.assertEqual(payment.amount, 5000)
        self.assertEqual(payment.month, '2024-03')
        self.assertEqual(payment.payment_date, date(2024, 3, 5))

    def test_accepts_member_id(self):
        payment = self.group.record_member_payment(str(self.member.pk), '2024-03', amount=4500)
        self.assertEqual(payment.member, self.member)
        self.assertEqual(payment.amount, 4500)

    def test_one_payment_per_member_per_month(self):
        self.group.record_member_payment(self.member, '2024-03')
        with self.assertRaises(AlreadyPaid):
            self.group.record_member_payment(self.member, '2024-03')

        self.group.record_member_payment(self.member, '2024-04')
        self.group.record_member_payment(self.other, '2024-03')
        self.assertEqual(ChitPayment.objects.filter(member=self.member).count(), 2)

    def test_undo_allows_paying_again(self):
        payment = self.group.record_member_payment(self.member, '2024-03')
        ChitPayment.objects.undo_payment(payment.pk)
        self.group.record_member_payment(self.member, '2024-03')
        self.assertEqual(ChitPayment.objects.count(), 1)

    def test_undo_unknown_payment(self):
        with self.assertRaises(NotFound):
            ChitPayment.objects.undo_payment(uuid.uuid4())

    def test_member_of_another_group(self):
        outsider = add_members(make_group(name='Friday Chit'), 1)[0]
        with self.assertRaises(LedgerValidationError):
            self.group.record_member_payment(outsider, '2024-03')

    def test_unknown_member(self):
        with self.assertRaises(NotFound):
            self.group.record_member_payment(uuid.uuid4(), '2024-03')

    def test_removed_member_cannot_pay(self):
        self.member.deactivate()
        with self.assertRaises(IllegalStateTransition):
            self.group.record_member_payment(self.member, '2024-03')

    def test_rejects_non_positive_amount(self):
        with self.assertRaises(InvalidAmount):
            self.group.record_member_payment(self.member, '2024-03', amount=0)

    def test_receipt_uses_month_settings(self):
        ChitMonthSettings.objects.create(group=self.group, month='2024-03', chit_number='7', custom_note='Auction on 10th')

        with mock.patch('lending.models.all_models.dispatch_chit_receipt') as dispatch:
            with self.captureOnCommitCallbacks(execute=True):
                self.group.record_member_payment(self.member, '2024-03')

        receipt = dispatch.call_args[0][0]
        self.assertEqual(receipt['chit_number'], '7')
        self.assertEqual(receipt['custom_note'], 'Auction on 10th')
        self.assertEqual(receipt['member_phone'], self.member.phone)

    def test_month_overview(self):
        self.group.record_member_payment(self.member, '2024-03')
        overview = self.group.month_overview('2024-03')

        self.assertEqual(overview['month'], '2024-03')
        self.assertEqual(overview['paid_count'], 1)
        self.assertEqual(overview['pending_count'], 1)
        self.assertEqual(overview['collected'], 5000)
        self.assertEqual(overview['expected'], 100000)
        self.assertIsNone(overview['auction'])
        self.assertEqual(overview['settings'].chit_number, '')
        self.assertFalse(ChitMonthSettings.objects.exists())

    def test_removed_member_only_shown_for_paid_months(self):
        self.group.record_member_payment(self.member, '2024-03')
        self.assertEqual(self.member.remove(), 'deactivated')

        march = [row['member'] for row in self.group.month_overview('2024-03')['members']]
        april = [row['member'] for row in self.group.month_overview('2024-04')['members']]
        self.assertIn(self.member, march)
        self.assertNotIn(self.member, april)


class MemberRemovalTests(TestCase):

    def test_member_without_history_is_deleted(self):
        group = make_group()
        member = add_members(group, 1)[0]
        self.assertEqual(member.remove(), 'deleted')
        self.assertFalse(ChitMember.objects.exists())

    def test_auction_winner_is_kept(self):
        group = make_group()
        member = add_members(group, 1)[0]
        group.record_auction('2024-01', 1, member, 8000)
        self.assertEqual(member.remove(), 'deactivated')
        member.refresh_from_db()
        self.assertFalse(member.is_active)


class AuctionTests(TestCase):

    def setUp(self):
        self.group = make_group()
        self.members = add_members(self.group, 3)

    def test_settlement(self):
        auction = self.group.record_auction(
            '2024-01', 1, self.members[0], bid_amount=8000, commission=4000,
            auction_date='2024-01-10', disbursement_date='2024-01-12',
        )
        self.assertEqual(auction.total_collected, 100000)
        self.assertEqual(auction.amount_to_winner, 88000)
        self.assertEqual(auction.carry_forward, 8000)
        self.assertEqual(auction.winner_name, 'Member 1')
        self.assertEqual(auction.disbursement_date, date(2024, 1, 12))

    def test_winner_amount_floors_at_zero(self):
        auction = self.group.record_auction('2024-01', 1, self.members[0], bid_amount=99000, commission=4000)
        self.assertEqual(auction.amount_to_winner, 0)

    def test_slot_range(self):
        for slot in (0, 21, 'x'):
            with self.assertRaises(InvalidSlot):
                self.group.record_auction('2024-01', slot, self.members[0], 8000)

    def test_slot_cannot_be_reused_by_another_month(self):
        self.group.record_auction('2024-01', 1, self.members[0], 8000)
        with self.assertRaises(InvalidSlot):
            self.group.record_auction('2024-02', 1, self.members[1], 7000)
        self.assertEqual(ChitAuction.objects.count(), 1)

    def test_recording_a_month_again_corrects_it(self):
        first = self.group.record_auction('2024-01', 1, self.members[0], 8000)
        corrected = self.group.record_auction('2024-01', 2, self.members[1], 9000, commission=1000)

        self.assertEqual(corrected.pk, first.pk)
        self.assertEqual(ChitAuction.objects.count(), 1)
        self.assertEqual(corrected.slot_number, 2)
        self.assertEqual(corrected.amount_to_winner, 90000)

    def test_winner_required(self):
        with self.assertRaises(MissingWinner):
            self.group.record_auction('2024-01', 1, None, 8000)
        with self.assertRaises(MissingWinner):
            self.group.record_auction('2024-01', 1, uuid.uuid4(), 8000)

    def test_winner_from_another_group(self):
        outsider = add_members(make_group(name='Friday Chit'), 1)[0]
        with self.assertRaises(MissingWinner):
            self.group.record_auction('2024-01', 1, outsider, 8000)

    def test_removed_member_cannot_win(self):
        self.group.record_member_payment(self.members[0], '2024-01')
        self.members[0].remove()
        with self.assertRaises(MissingWinner):
            self.group.record_auction('2024-02', 1, self.members[0], 8000)
        self.assertFalse(ChitAuction.objects.exists())

    def test_negative_amounts(self):
        with self.assertRaises(InvalidAmount):
            self.group.record_auction('2024-01', 1, self.members[0], -1)
        with self.assertRaises(InvalidAmount):
            self.group.record_auction('2024-01', 1, self.members[0], 8000, commission=-5)

    def test_slots_dashboard(self):
        self.group.record_auction('2024-01', 3, self.members[0], 8000)
        slots = self.group.slots_dashboard()

        self.assertEqual(len(slots), 20)
        self.assertEqual([s['slot_number'] for s in slots if s['completed']], [3])
        self.assertEqual(slots[2]['auction'].winner, self.members[0])

    def test_group_delete_removes_auctions(self):
        self.group.record_auction('2024-01', 1, self.members[0], 8000)
        self.group.delete()
        self.assertFalse(ChitAuction.objects.exists())
        self.assertFalse(ChitMember.objects.exists())
