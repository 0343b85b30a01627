"""
Lending Ledger - Complete Models Package
========================================

This file imports and exposes all models for Django.
"""

# First, import base classes
from .base import (
    BaseModel,
    StatusTrackingMixin
)

# Import all models from the consolidated models module
from .all_models import (

    # Constants
    PERIOD_UNIT_CHOICES,
    PAYMENT_MODE_CHOICES,

    # Loan Ledger
    Customer,
    Loan,
    Payment,
    LoanTopUp,

    # Archive
    ArchivedLoan,
    ArchivedPayment,

    # Chit Funds
    ChitGroup,
    ChitMember,
    ChitPayment,
    ChitAuction,
    ChitMonthSettings,
)


__all__ = [
    # Base
    'BaseModel',
    'StatusTrackingMixin',

    # Constants
    'PERIOD_UNIT_CHOICES',
    'PAYMENT_MODE_CHOICES',

    # Loan Ledger
    'Customer',
    'Loan',
    'Payment',
    'LoanTopUp',

    # Archive
    'ArchivedLoan',
    'ArchivedPayment',

    # Chit Funds
    'ChitGroup',
    'ChitMember',
    'ChitPayment',
    'ChitAuction',
    'ChitMonthSettings',
]
