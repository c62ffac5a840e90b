"""
Ledger enumerations.

Closed sets of values shared by the accounting models and schemas.
"""

import enum


class AccountType(str, enum.Enum):
    """
    Account type enumeration.

    Types:
        ASSET: Money held by the unit (cash, cheques, bank)
        INCOME: Money received (subscriptions, activities)
        EXPENSE: Money spent, grouped by category
    """
    ASSET = "ASSET"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethod(str, enum.Enum):
    """How money was received or paid out."""
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    BANK_TRANSFER = "BANK_TRANSFER"


class PaymentType(str, enum.Enum):
    """What a received payment was for."""
    SUBS = "SUBS"
    ACTIVITY = "ACTIVITY"


class ExpenseClaimStatus(str, enum.Enum):
    """Reimbursement claim status enumeration."""
    DRAFT = "DRAFT"  # Leader is still adding receipts
    SUBMITTED = "SUBMITTED"  # Ready for settlement
    SETTLED = "SETTLED"  # Leader has been paid back
