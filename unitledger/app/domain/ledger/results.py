"""
Result type for ledger operations.

Expected business failures (bad input, missing records, rule conflicts) are
returned, not raised, so callers can branch on them directly.
"""

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Why an operation was rejected."""
    VALIDATION = "VALIDATION"  # Input is malformed or unbalanced
    NOT_FOUND = "NOT_FOUND"  # Referenced account/transaction/expense/claim missing
    STATE_CONFLICT = "STATE_CONFLICT"  # Business rule forbids it in the current state


@dataclass(frozen=True)
class LedgerResult(Generic[T]):
    """
    Outcome of a ledger operation.

    Unpacks as (success, error_message, payload):

        ok, reason, txn = await LedgerEngine.create_transaction(...)
    """
    success: bool
    error_message: str = ""
    payload: Optional[T] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, payload: Optional[T] = None) -> "LedgerResult[T]":
        return cls(success=True, payload=payload)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "LedgerResult[T]":
        return cls(success=False, error_message=message, error_kind=kind)

    @classmethod
    def invalid(cls, message: str) -> "LedgerResult[T]":
        return cls.fail(ErrorKind.VALIDATION, message)

    @classmethod
    def not_found(cls, message: str) -> "LedgerResult[T]":
        return cls.fail(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "LedgerResult[T]":
        return cls.fail(ErrorKind.STATE_CONFLICT, message)

    def __iter__(self):
        return iter((self.success, self.error_message, self.payload))

    def __bool__(self) -> bool:
        return self.success
