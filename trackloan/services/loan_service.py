"""Loan lifecycle service for TrackLoan.

This service handles all loan-related operations including:
- Loan disbursement
- Loan lookup and listing
- Repayment progress and summaries
- Loan deletion
"""
import logging
from datetime import date, datetime
from typing import Callable, List, Optional

from trackloan.config import (
    LOAN_AMOUNT_MULTIPLE,
    MAX_EMI_TENURE,
    MIN_EMI_TENURE,
)
from trackloan.database import LOANS, TRANSACTIONS
from trackloan.errors import NotFound, ValidationError
from trackloan.exceptions import LoanNotFoundError, TrackLoanError
from trackloan.models import EmiType, Loan, LoanProgress, LoanStatus, LoanSummary
from trackloan.result import Result
from trackloan.services import accounting

logger = logging.getLogger(__name__)


class LoanService:
    """Handles loan lifecycle operations.

    Disbursement is the only path that creates loans. Closing a loan is the
    payment workflow's job; nothing here changes a loan's status.
    """

    def __init__(self, db_manager, clock: Callable[[], datetime] = None):
        """Initialize LoanService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            clock: Optional callable returning the current datetime.
        """
        self.db = db_manager
        self.clock = clock or datetime.now

    def _today(self) -> date:
        return self.clock().date()

    def _require_loan(self, loan_id) -> Loan:
        loan = self.db.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def _validate_disbursement(self, customer_id, loan_amount, emi_amount, emi_tenure,
                               emi_start_date) -> Optional[ValidationError]:
        if customer_id is None or customer_id <= 0:
            return ValidationError("customer_id", "Invalid customer ID")
        if loan_amount is None or not loan_amount > 0:
            return ValidationError("loan_amount", "Loan amount must be greater than 0")
        if loan_amount % LOAN_AMOUNT_MULTIPLE != 0:
            return ValidationError("loan_amount",
                                   f"Loan amount must be in multiples of {LOAN_AMOUNT_MULTIPLE}")
        if emi_amount is None or not emi_amount > 0:
            return ValidationError("emi_amount", "EMI amount must be greater than 0")
        if emi_tenure is None or emi_tenure < MIN_EMI_TENURE:
            return ValidationError("emi_tenure", "EMI tenure must be greater than 0")
        if emi_tenure > MAX_EMI_TENURE:
            return ValidationError("emi_tenure", f"EMI tenure cannot exceed {MAX_EMI_TENURE} weeks")
        if emi_start_date is None or emi_start_date <= self._today():
            return ValidationError("emi_start_date", "EMI start date must be in the future")
        return None

    def disburse_loan(self, customer_id: int, loan_amount: float, emi_amount: float,
                      emi_tenure: int, emi_start_date: date) -> Result[int]:
        """Issue a new weekly loan.

        Args:
            customer_id: ID of the customer receiving the loan.
            loan_amount: Principal; positive multiple of 100.
            emi_amount: Flat installment amount.
            emi_tenure: Number of installments (1-52).
            emi_start_date: First installment date, strictly after today.

        Returns:
            Result carrying the new loan id.
        """
        if isinstance(emi_start_date, datetime):
            emi_start_date = emi_start_date.date()

        error = self._validate_disbursement(customer_id, loan_amount, emi_amount,
                                            emi_tenure, emi_start_date)
        if error:
            logger.debug("Rejected disbursement for customer %s: %s", customer_id, error.message)
            return Result.fail(error)

        loan = Loan(
            customer_id=customer_id,
            loan_amount=loan_amount,
            emi_amount=emi_amount,
            emi_tenure=emi_tenure,
            emi_type=EmiType.WEEKLY,
            emi_start_date=emi_start_date,
            status=LoanStatus.ACTIVE,
            created_at=self.clock(),
        )
        try:
            loan_id = self.db.add_loan(loan)
        except TrackLoanError as e:
            logger.error("Failed to disburse loan for customer %s: %s", customer_id, e)
            return Result.from_exception(e, "disburse_loan")

        logger.info("Disbursed loan %s to customer %s: %s over %s x %s",
                    loan_id, customer_id, loan_amount, emi_tenure, emi_amount)
        return Result.ok(loan_id)

    def get_loan(self, loan_id: int) -> Result[Loan]:
        try:
            return Result.ok(self._require_loan(loan_id))
        except TrackLoanError as e:
            return Result.from_exception(e, "get_loan")

    def get_loans(self, status: LoanStatus = None) -> Result[List[Loan]]:
        """All loans, newest first, optionally only those with ``status``."""
        try:
            return Result.ok(self.db.get_loans(status))
        except TrackLoanError as e:
            return Result.from_exception(e, "get_loans")

    def observe_loans(self, callback: Callable[[List[Loan]], None], customer_id: int = None):
        """Push all loans (or one customer's) to ``callback`` on every change."""
        if customer_id is None:
            fetch = self.db.get_loans
        else:
            fetch = lambda: self.db.get_loans_by_customer(customer_id)
        return self.db.observe([LOANS], fetch, callback)

    def get_loans_for_customer(self, customer_id: int) -> Result[List[Loan]]:
        try:
            return Result.ok(self.db.get_loans_by_customer(customer_id))
        except TrackLoanError as e:
            return Result.from_exception(e, "get_loans_for_customer")

    def get_loan_progress(self, loan_id: int) -> Result[LoanProgress]:
        try:
            loan = self._require_loan(loan_id)
            transactions = self.db.get_transactions_by_loan(loan_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_loan_progress")
        return Result.ok(accounting.compute_progress(loan, transactions))

    def build_summary(self, loan: Loan, customer_name: str, transactions) -> LoanSummary:
        """Combine progress and the next due installment into a LoanSummary."""
        progress = accounting.compute_progress(loan, transactions)
        next_due = None
        if loan.is_active:
            next_due = accounting.next_due_installment(loan, transactions, self._today())

        return LoanSummary(
            loan_id=loan.id,
            loan_number=loan.loan_number,
            customer_name=customer_name,
            loan_amount=loan.loan_amount,
            total_paid=progress.paid_amount,
            remaining_amount=progress.remaining,
            next_emi_date=next_due.due_date if next_due else None,
            next_emi_amount=next_due.amount if next_due else 0.0,
            total_emis=progress.total_count,
            paid_emis=progress.completed_count,
            pending_emis=max(progress.total_count - progress.completed_count, 0),
            status=loan.status,
        )

    def get_loan_summary(self, loan_id: int) -> Result[LoanSummary]:
        try:
            loan = self._require_loan(loan_id)
            customer = self.db.get_customer(loan.customer_id)
            transactions = self.db.get_transactions_by_loan(loan_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_loan_summary")

        customer_name = customer.name if customer else f"Customer {loan.customer_id}"
        return Result.ok(self.build_summary(loan, customer_name, transactions))

    def delete_loan(self, loan_id: int) -> Result[None]:
        """Delete a loan and its transactions."""
        try:
            self._require_loan(loan_id)
            self.db.delete_loan(loan_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "delete_loan")

        logger.info("Deleted loan %s", loan_id)
        return Result.ok()

    def observe_loan(self, loan_id: int, callback: Callable[[Optional[Loan]], None]):
        """Push the loan (or None once deleted) to ``callback`` on every change."""
        return self.db.observe([LOANS], lambda: self.db.get_loan(loan_id), callback)

    def observe_loan_summary(self, loan_id: int, callback: Callable[[Result], None]):
        """Push a fresh summary whenever the loan or its transactions change."""
        return self.db.observe([LOANS, TRANSACTIONS], lambda: self.get_loan_summary(loan_id), callback)
