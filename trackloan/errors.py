"""Domain error taxonomy for TrackLoan.

Workflow entry points never raise past their boundary. Failures are returned
as one of the error values below, wrapped in a failed :class:`Result`.
"""
from dataclasses import dataclass

from trackloan.exceptions import (
    CustomerNotFoundError,
    DuplicateReferenceError,
    LoanInactiveError,
    LoanNotFoundError,
    StoreError,
    TransactionNotFoundError,
)


class ErrorType:
    """Standard error type constants."""
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INACTIVE = "INACTIVE"
    DUPLICATE = "DUPLICATE"
    HAS_ACTIVE_LOANS = "HAS_ACTIVE_LOANS"
    DATABASE = "DATABASE"
    NETWORK = "NETWORK"


class DomainError:
    """Base for all domain error values."""
    error_type = None

    @property
    def message(self) -> str:
        raise NotImplementedError

    def __str__(self):
        return self.message


@dataclass(frozen=True)
class ValidationError(DomainError):
    field: str
    reason: str
    error_type = ErrorType.VALIDATION

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class NotFound(DomainError):
    entity_kind: str
    entity_id: int
    error_type = ErrorType.NOT_FOUND

    @property
    def message(self) -> str:
        return f"{self.entity_kind.capitalize()} {self.entity_id} not found"

    @classmethod
    def customer(cls, customer_id: int) -> 'NotFound':
        return cls("customer", customer_id)

    @classmethod
    def loan(cls, loan_id: int) -> 'NotFound':
        return cls("loan", loan_id)

    @classmethod
    def transaction(cls, transaction_id: int) -> 'NotFound':
        return cls("transaction", transaction_id)


@dataclass(frozen=True)
class InvalidAmount(DomainError):
    amount: float
    reason: str
    error_type = ErrorType.INVALID_AMOUNT

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class LoanAlreadyClosed(DomainError):
    loan_id: int
    error_type = ErrorType.INACTIVE

    @property
    def message(self) -> str:
        return f"Loan {self.loan_id} is already closed"


@dataclass(frozen=True)
class DuplicateTransaction(DomainError):
    transaction_ref: str
    error_type = ErrorType.DUPLICATE

    @property
    def message(self) -> str:
        return f"Transaction {self.transaction_ref} already exists"


@dataclass(frozen=True)
class CustomerHasActiveLoans(DomainError):
    """Declared for completeness; no workflow produces it yet."""
    customer_id: int
    count: int
    error_type = ErrorType.HAS_ACTIVE_LOANS

    @property
    def message(self) -> str:
        return f"Customer {self.customer_id} has {self.count} active loan(s)"


@dataclass(frozen=True)
class DatabaseError(DomainError):
    operation: str
    cause: str
    error_type = ErrorType.DATABASE

    @property
    def message(self) -> str:
        return f"Could not {self.operation.replace('_', ' ')}. Please try again."


@dataclass(frozen=True)
class NetworkError(DomainError):
    """Declared for completeness; there is no network layer."""
    operation: str
    error_type = ErrorType.NETWORK

    @property
    def message(self) -> str:
        return "Network unavailable"


def from_exception(exc: Exception, operation: str) -> DomainError:
    """Map an exception raised inside a workflow to its domain error value."""
    if isinstance(exc, DuplicateReferenceError):
        return DuplicateTransaction(exc.transaction_ref)
    if isinstance(exc, StoreError):
        return DatabaseError(operation, exc.cause)
    if isinstance(exc, CustomerNotFoundError):
        return NotFound.customer(exc.customer_id)
    if isinstance(exc, LoanNotFoundError):
        return NotFound.loan(exc.loan_id)
    if isinstance(exc, TransactionNotFoundError):
        return NotFound.transaction(exc.transaction_id)
    if isinstance(exc, LoanInactiveError):
        return LoanAlreadyClosed(exc.loan_id)
    return DatabaseError(operation, str(exc))
