"""
Chit Forms
==========

Validate the JSON payloads for chit groups, members, monthly payments and
auctions
"""

from django import forms
from django.core.exceptions import ValidationError

from lending.exceptions import LedgerValidationError
from lending.models import ChitGroup, ChitMember, ChitMonthSettings
from lending.utils.helpers import parse_month


class MonthField(forms.CharField):
    """'YYYY-MM' month key"""

    def clean(self, value):
        value = super().clean(value)
        if not value:
            return value
        try:
            return parse_month(value)
        except LedgerValidationError as e:
            raise ValidationError(e.messages)


class ChitGroupForm(forms.ModelForm):
    start_month = MonthField(required=False)

    class Meta:
        model = ChitGroup
        fields = ['name', 'chit_amount', 'member_count', 'due_day', 'duration_months', 'start_month', 'notes']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Falls back to the model default (1st of the month)
        self.fields['due_day'].required = False

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise ValidationError("Chit name is required")
        return name


class ChitMemberForm(forms.ModelForm):
    group_id = forms.ModelChoiceField(queryset=ChitGroup.objects.all())

    class Meta:
        model = ChitMember
        fields = ['name', 'phone', 'member_number']

    def clean(self):
        cleaned_data = super().clean()
        group = cleaned_data.get('group_id')
        if group and group.members.active().count() >= group.member_count:
            raise ValidationError(f"{group.name} already has {group.member_count} members")
        return cleaned_data

    def save(self, commit=True):
        self.instance.group = self.cleaned_data['group_id']
        return super().save(commit=commit)


class ChitPaymentForm(forms.Form):
    member_id = forms.ModelChoiceField(queryset=ChitMember.objects.all())
    month = MonthField()
    amount = forms.IntegerField(required=False)
    payment_date = forms.DateField(required=False)
    notes = forms.CharField(required=False)


class ChitAuctionForm(forms.Form):
    """
    Monthly auction settlement

    winner_id is optional here so a missing winner is reported by the
    ledger as such.
    """

    month = MonthField()
    slot_number = forms.IntegerField()
    winner_id = forms.CharField(required=False)
    bid_amount = forms.IntegerField()
    commission = forms.IntegerField(required=False)
    auction_date = forms.DateField(required=False)
    disbursement_date = forms.DateField(required=False)
    notes = forms.CharField(required=False)

    def clean_commission(self):
        return self.cleaned_data.get('commission') or 0


class ChitMonthSettingsForm(forms.ModelForm):
    class Meta:
        model = ChitMonthSettings
        fields = ['chit_number', 'custom_note']
