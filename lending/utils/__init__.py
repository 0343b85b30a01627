"""
Utility modules for the lending app
"""

from .money import MoneyCalculator, PeriodCalculator, InstallmentCalculator, VaddiCalculator, ChitCalculator

__all__ = [
    'MoneyCalculator',
    'PeriodCalculator',
    'InstallmentCalculator',
    'VaddiCalculator',
    'ChitCalculator',
]
