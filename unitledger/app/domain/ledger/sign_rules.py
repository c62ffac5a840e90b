"""
Balance sign rule and money helpers.

ASSET and EXPENSE accounts grow with debits; INCOME accounts grow with credits.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from unitledger.app.models.enums import AccountType

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

_DEBIT_NORMAL_SIGN = {
    AccountType.ASSET: 1,
    AccountType.EXPENSE: 1,
    AccountType.INCOME: -1,
}


def balance_delta(account_type: AccountType, debit: Decimal, credit: Decimal) -> Decimal:
    """Change in an account's balance caused by one line."""
    return (debit - credit) * _DEBIT_NORMAL_SIGN[account_type]


def to_money(value: Any) -> Decimal:
    """
    Coerce a value to Decimal without rounding.

    Floats go through str() so 25.1 becomes Decimal("25.1"), not its binary expansion.
    """
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount


def has_cent_precision(amount: Decimal) -> bool:
    return amount == amount.quantize(CENT)


def format_money(amount: Decimal) -> str:
    return f"£{amount.quantize(CENT):,}"
