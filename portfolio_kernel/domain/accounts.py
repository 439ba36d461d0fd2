"""
Account classification enums shared by every layer.

``AccountType`` values are the upper-case names used in the rendered JSON
output (``"ASSET"``, ``"LIABILITY"``, ...).
"""

from enum import Enum


class AccountType(str, Enum):
    """Types of accounts in a trial balance."""

    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


NORMAL_BALANCE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}

# Balance sheet types, in presentation order.
BALANCE_SHEET_TYPES: tuple[AccountType, ...] = (
    AccountType.ASSET,
    AccountType.LIABILITY,
    AccountType.EQUITY,
)

# Profit-and-loss types, in presentation order.
PROFIT_AND_LOSS_TYPES: tuple[AccountType, ...] = (
    AccountType.REVENUE,
    AccountType.EXPENSE,
)
