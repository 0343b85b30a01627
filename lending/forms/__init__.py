from .loan_forms import (
    CustomerForm,
    LoanCreateForm,
    LoanRenameForm,
    PaymentForm,
    TopUpForm,
    ArchiveForm,
    VaddiCalculatorForm,
)
from .chit_forms import (
    ChitGroupForm,
    ChitMemberForm,
    ChitPaymentForm,
    ChitAuctionForm,
    ChitMonthSettingsForm,
)

__all__ = [
    'CustomerForm',
    'LoanCreateForm',
    'LoanRenameForm',
    'PaymentForm',
    'TopUpForm',
    'ArchiveForm',
    'VaddiCalculatorForm',
    'ChitGroupForm',
    'ChitMemberForm',
    'ChitPaymentForm',
    'ChitAuctionForm',
    'ChitMonthSettingsForm',
]
