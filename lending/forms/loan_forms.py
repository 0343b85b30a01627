"""
Loan Forms
==========

Validate the JSON payloads for customers, loans, payments and top-ups.

The forms only check shape and types. Ledger rules (positive amounts,
balance limits, offline + online splits) are enforced by the models so the
API reports them with their own error codes.
"""

import re

from django import forms
from django.core.exceptions import ValidationError

from lending.models import Customer, Loan, PERIOD_UNIT_CHOICES, PAYMENT_MODE_CHOICES


class CustomerForm(forms.ModelForm):
    """Create or edit a customer"""

    class Meta:
        model = Customer
        fields = ['name', 'phone', 'address']

    def clean_name(self):
        name = (self.cleaned_data.get('name') or '').strip()
        if not name:
            raise ValidationError("Customer name is required")
        return name

    def clean_phone(self):
        phone = (self.cleaned_data.get('phone') or '').strip()
        if phone and len(re.sub(r'\D', '', phone)) < 10:
            raise ValidationError("Phone number must have at least 10 digits")
        return phone


class LoanCreateForm(forms.Form):
    """New loan for an existing customer"""

    customer_id = forms.ModelChoiceField(queryset=Customer.objects.all())
    principal = forms.IntegerField()
    period_unit = forms.ChoiceField(choices=PERIOD_UNIT_CHOICES, required=False)
    installment = forms.IntegerField(required=False)
    start_date = forms.DateField(required=False)
    loan_given_date = forms.DateField(required=False)
    loan_name = forms.CharField(max_length=200, required=False)

    def clean_period_unit(self):
        return self.cleaned_data.get('period_unit') or 'weekly'


class LoanRenameForm(forms.Form):
    loan_name = forms.CharField(max_length=200, required=False)


class PaymentForm(forms.Form):
    """
    A collection against a loan

    Leave offline_amount and online_amount out to let the payment mode
    decide the split.
    """

    loan_id = forms.ModelChoiceField(queryset=Loan.objects.all())
    amount = forms.IntegerField()
    offline_amount = forms.IntegerField(required=False)
    online_amount = forms.IntegerField(required=False)
    payment_date = forms.DateField(required=False)
    payment_mode = forms.ChoiceField(choices=PAYMENT_MODE_CHOICES, required=False)
    notes = forms.CharField(required=False)

    def clean_payment_mode(self):
        return self.cleaned_data.get('payment_mode') or 'cash'


class TopUpForm(forms.Form):
    amount = forms.IntegerField()
    top_up_date = forms.DateField(required=False)
    notes = forms.CharField(required=False)


class ArchiveForm(forms.Form):
    override = forms.BooleanField(required=False)
    reason = forms.CharField(required=False)


class VaddiCalculatorForm(forms.Form):
    """Preview of a flat-vaddi loan"""

    loan_amount = forms.IntegerField(min_value=1)
    periods = forms.IntegerField(min_value=1)
    vaddi_percent = forms.DecimalField(required=False, min_value=0, max_digits=6, decimal_places=2)
