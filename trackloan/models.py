"""Entities and value objects for TrackLoan."""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from trackloan.config import DATE_FORMAT_STORAGE, DATETIME_FORMAT_STORAGE


class EmiType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class LoanStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    # Modeled but never assigned by any workflow
    DEFAULTED = "DEFAULTED"


class TransactionStatus(str, Enum):
    PAID = "PAID"
    DUE = "DUE"
    # Read-time projection of DUE only, never stored
    OVERDUE = "OVERDUE"


def parse_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value[:10], DATE_FORMAT_STORAGE).date()


def parse_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if len(value) == 10:
        return datetime.strptime(value, DATE_FORMAT_STORAGE)
    return datetime.strptime(value, DATETIME_FORMAT_STORAGE)


@dataclass
class Customer:
    name: str
    mobile_number: Optional[str] = None
    address: Optional[str] = None
    id: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Customer':
        return cls(
            id=row['id'],
            name=row['name'],
            mobile_number=row.get('mobile_number'),
            address=row.get('address'),
            created_at=parse_datetime(row.get('created_at')),
        )


@dataclass
class Loan:
    customer_id: int
    loan_amount: float
    emi_amount: float
    emi_tenure: int
    emi_start_date: date
    emi_type: EmiType = EmiType.WEEKLY
    status: LoanStatus = LoanStatus.ACTIVE
    id: int = 0
    loan_number: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def total_expected(self) -> float:
        """Amount that must be collected before the loan may close."""
        return self.emi_amount * self.emi_tenure

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Loan':
        return cls(
            id=row['id'],
            loan_number=row.get('loan_number'),
            customer_id=row['customer_id'],
            loan_amount=row['loan_amount'],
            emi_amount=row['emi_amount'],
            emi_tenure=row['emi_tenure'],
            emi_type=EmiType(row['emi_type']),
            emi_start_date=parse_date(row['emi_start_date']),
            status=LoanStatus(row['status']),
            created_at=parse_datetime(row.get('created_at')),
        )


@dataclass
class Transaction:
    loan_id: int
    transaction_ref: str
    amount: float
    payment_date: datetime
    status: TransactionStatus = TransactionStatus.PAID
    id: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=row['id'],
            loan_id=row['loan_id'],
            transaction_ref=row['transaction_ref'],
            amount=row['amount'],
            payment_date=parse_datetime(row['payment_date']),
            status=TransactionStatus(row['status']),
        )


@dataclass(frozen=True)
class NextInstallment:
    number: int
    amount: float
    due_date: date


@dataclass(frozen=True)
class LoanProgress:
    total_expected: float
    paid_amount: float
    remaining: float
    completed_count: int
    total_count: int
    percent_complete: int


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of a processed payment.

    The payment and the loan closure are two separate writes. When the
    payment settles the loan but closing it fails, ``payment_recorded`` is
    still True while ``closure_applied`` is False and ``closure_error``
    holds the reason.
    """
    transaction_id: int
    transaction_ref: str
    is_last_payment: bool
    payment_recorded: bool = True
    closure_applied: bool = False
    closure_error: Optional[Any] = None


@dataclass
class LoanSummary:
    loan_id: int
    loan_number: str
    customer_name: str
    loan_amount: float
    total_paid: float
    remaining_amount: float
    next_emi_date: Optional[date]
    next_emi_amount: float
    total_emis: int
    paid_emis: int
    pending_emis: int
    status: LoanStatus


@dataclass
class ReportTotals:
    total_loans: int
    total_loan_amount: float
    total_paid_amount: float
    total_pending_amount: float
    total_customers: int
    total_transactions: int
    period_start: date
    period_end: date


@dataclass
class CustomerStatement:
    customer_id: int
    customer_name: str
    loans: List[LoanSummary] = field(default_factory=list)
    total_outstanding: float = 0.0
    last_payment_date: Optional[datetime] = None


@dataclass
class DashboardCounts:
    total_customers: int = 0
    active_loans: int = 0
    closed_loans: int = 0
    defaulted_loans: int = 0
    paid_transactions: int = 0
    # Stored DUE records, overdue ones included
    pending_payments: int = 0
