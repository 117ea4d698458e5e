"""Payment service for TrackLoan.

This service records EMI payments against loans:
- Processed payments (status PAID), which may settle and close the loan
- Due records (status DUE), a promise to pay that never closes a loan
- Amount corrections on existing transactions
- Next-due lookups and transaction listings with the OVERDUE projection

Settlement is checked before the payment is inserted, and the loan is
closed in a separate write afterwards. The two writes are not atomic: if
closing fails the payment still stands and the failure is reported.
"""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from trackloan.config import (
    DUE_PAYMENT_MAX_DAYS_AHEAD,
    DUE_REF_PREFIX,
    MAX_PAYMENT_AMOUNT,
    PAYMENT_MAX_DAYS_AHEAD,
    PAYMENT_MAX_DAYS_PAST,
    PAYMENT_REF_PREFIX,
)
from trackloan.database import LOANS, TRANSACTIONS
from trackloan.errors import (
    DatabaseError,
    DomainError,
    InvalidAmount,
    NotFound,
    ValidationError,
)
from trackloan.exceptions import (
    LoanInactiveError,
    LoanNotFoundError,
    StoreError,
    TrackLoanError,
    TransactionNotFoundError,
)
from trackloan.models import (
    Loan,
    LoanStatus,
    NextInstallment,
    PaymentResult,
    Transaction,
    TransactionStatus,
)
from trackloan.references import ReferenceGenerator
from trackloan.result import Result
from trackloan.services import accounting

logger = logging.getLogger(__name__)


def log_error_reporter(error: DomainError, context: dict):
    """Default error reporter: write the failure to the log."""
    logger.error("%s (%s)", error.message, context)


class PaymentService:
    """Handles payment collection for loans."""

    def __init__(self, db_manager, clock: Callable[[], datetime] = None,
                 reference_generator: ReferenceGenerator = None,
                 error_reporter: Callable[[DomainError, dict], None] = None):
        """Initialize PaymentService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
            clock: Optional callable returning the current datetime.
            reference_generator: Builds transaction references.
            error_reporter: Receives failures that do not fail the operation,
                such as a loan that could not be closed after its last payment.
        """
        self.db = db_manager
        self.clock = clock or datetime.now
        self.reference_generator = reference_generator or ReferenceGenerator(clock=self.clock)
        self.error_reporter = error_reporter or log_error_reporter

    def _today(self) -> date:
        return self.clock().date()

    @property
    def max_payment_amount(self) -> float:
        value = self.db.get_setting("max_payment_amount")
        return float(value) if value is not None else MAX_PAYMENT_AMOUNT

    def _validate_amount(self, amount) -> Optional[DomainError]:
        # Comparisons are written so that NaN fails them
        if amount is None or not amount > 0:
            return InvalidAmount(amount, "Payment amount must be positive")
        if not amount <= self.max_payment_amount:
            return InvalidAmount(amount, "Payment amount exceeds maximum limit")
        return None

    def _validate_payment(self, loan_id, amount, payment_date: date) -> Optional[DomainError]:
        if loan_id is None or loan_id <= 0:
            return ValidationError("loan_id", "Invalid loan ID")
        error = self._validate_amount(amount)
        if error:
            return error

        today = self._today()
        if payment_date > today + timedelta(days=PAYMENT_MAX_DAYS_AHEAD):
            return ValidationError(
                "payment_date",
                f"Payment date cannot be more than {PAYMENT_MAX_DAYS_AHEAD} days in the future")
        if payment_date < today - timedelta(days=PAYMENT_MAX_DAYS_PAST):
            return ValidationError("payment_date", "Payment date cannot be more than 1 year in the past")
        return None

    def _validate_due_payment(self, loan_id, amount, payment_date: datetime) -> Optional[DomainError]:
        if loan_id is None or loan_id <= 0:
            return ValidationError("loan_id", "Invalid loan ID")
        error = self._validate_amount(amount)
        if error:
            return error

        if payment_date > self.clock() + timedelta(days=DUE_PAYMENT_MAX_DAYS_AHEAD):
            return ValidationError("payment_date", "Payment date cannot be in the future")
        return None

    def _require_active_loan(self, loan_id) -> Loan:
        loan = self.db.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        if not loan.is_active:
            raise LoanInactiveError(loan_id, loan.status.value)
        return loan

    def _close_loan(self, loan: Loan) -> Optional[DomainError]:
        """Close a settled loan; report rather than raise on failure."""
        try:
            changed = self.db.update_loan_status(loan.id, LoanStatus.CLOSED)
        except StoreError as e:
            error = DatabaseError("close_loan", e.cause)
            self.error_reporter(error, {'loan_id': loan.id})
            return error
        if changed == 0:
            error = DatabaseError("close_loan", f"loan {loan.id} no longer exists")
            self.error_reporter(error, {'loan_id': loan.id})
            return error
        logger.info("Loan %s settled and closed", loan.id)
        return None

    def process_payment(self, loan_id: int, amount: float, payment_date: date) -> Result[PaymentResult]:
        """Record a PAID installment and close the loan if it is now settled.

        Args:
            loan_id: ID of the loan being repaid.
            amount: Amount received; any positive value up to the cap.
            payment_date: Date of payment, within [today-365d, today+30d].

        Returns:
            Result carrying a PaymentResult. A failed closure leaves the
            Result successful, sets ``closure_applied`` to False and adds the
            error to ``Result.warnings``.
        """
        if isinstance(payment_date, datetime):
            payment_date = payment_date.date()

        try:
            error = self._validate_payment(loan_id, amount, payment_date)
            if error:
                logger.debug("Rejected payment on loan %s: %s", loan_id, error.message)
                return Result.fail(error)

            loan = self._require_active_loan(loan_id)
            existing = self.db.get_transactions_by_loan(loan_id)
            is_last_payment = accounting.will_settle_loan(loan, existing, amount)

            transaction = Transaction(
                loan_id=loan_id,
                transaction_ref=self.reference_generator.generate(PAYMENT_REF_PREFIX),
                amount=amount,
                payment_date=datetime.combine(payment_date, self.clock().time()),
                status=TransactionStatus.PAID,
            )
            transaction_id = self.db.add_transaction(transaction)
        except TrackLoanError as e:
            if isinstance(e, StoreError):
                logger.error("Failed to record payment on loan %s: %s", loan_id, e)
            return Result.from_exception(e, "process_payment")

        logger.info("Recorded payment %s of %s on loan %s", transaction.transaction_ref, amount, loan_id)

        closure_error = self._close_loan(loan) if is_last_payment else None
        payment = PaymentResult(
            transaction_id=transaction_id,
            transaction_ref=transaction.transaction_ref,
            is_last_payment=is_last_payment,
            payment_recorded=True,
            closure_applied=is_last_payment and closure_error is None,
            closure_error=closure_error,
        )
        return Result.ok(payment, warnings=[closure_error] if closure_error else None)

    def record_due_payment(self, loan_id: int, amount: float,
                           payment_date: datetime = None) -> Result[int]:
        """Record a DUE transaction (promise to pay). Never closes the loan.

        Returns:
            Result carrying the new transaction id.
        """
        if payment_date is None:
            payment_date = self.clock()
        elif not isinstance(payment_date, datetime):
            payment_date = datetime.combine(payment_date, datetime.min.time())

        try:
            error = self._validate_due_payment(loan_id, amount, payment_date)
            if error:
                logger.debug("Rejected due record on loan %s: %s", loan_id, error.message)
                return Result.fail(error)

            self._require_active_loan(loan_id)
            transaction = Transaction(
                loan_id=loan_id,
                transaction_ref=self.reference_generator.generate(DUE_REF_PREFIX),
                amount=amount,
                payment_date=payment_date,
                status=TransactionStatus.DUE,
            )
            transaction_id = self.db.add_transaction(transaction)
        except TrackLoanError as e:
            return Result.from_exception(e, "record_due_payment")

        logger.info("Recorded due %s of %s on loan %s", transaction.transaction_ref, amount, loan_id)
        return Result.ok(transaction_id)

    def update_transaction_amount(self, transaction_id: int, new_amount: float) -> Result[None]:
        """Correct the amount of an existing transaction."""
        try:
            error = self._validate_amount(new_amount)
            if error:
                return Result.fail(error)

            transaction = self.db.get_transaction(transaction_id)
            if transaction is None:
                raise TransactionNotFoundError(transaction_id)
            if new_amount == transaction.amount:
                return Result.fail(ValidationError(
                    "amount", "New amount must be different from current amount"))
            self.db.update_transaction_amount(transaction_id, new_amount)
        except TrackLoanError as e:
            return Result.from_exception(e, "update_transaction")

        logger.info("Transaction %s amount changed from %s to %s",
                    transaction_id, transaction.amount, new_amount)
        return Result.ok()

    def delete_transaction(self, transaction_id: int) -> Result[None]:
        try:
            if self.db.get_transaction(transaction_id) is None:
                raise TransactionNotFoundError(transaction_id)
            self.db.delete_transaction(transaction_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "delete_transaction")
        return Result.ok()

    def get_next_due_installment(self, loan_id: int) -> Result[Optional[NextInstallment]]:
        """Next installment for pre-filling a payment form.

        The value is None when every installment has been paid even though
        the loan may still be ACTIVE.
        """
        if loan_id is None or loan_id <= 0:
            return Result.fail(ValidationError("loan_id", "Invalid loan ID"))

        try:
            loan = self._require_active_loan(loan_id)
            transactions = self.db.get_transactions_by_loan(loan_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_next_due_installment")

        return Result.ok(accounting.next_due_installment(loan, transactions, self._today()))

    def get_transactions(self, loan_id: int) -> Result[List[Transaction]]:
        """Transactions for a loan, newest first, as presented (DUE may read OVERDUE)."""
        try:
            transactions = self.db.get_transactions_by_loan(loan_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_transactions")
        return Result.ok(accounting.project_transactions(transactions, self._today()))

    def get_customer_transactions(self, customer_id: int) -> Result[List[Transaction]]:
        """Transactions across all of a customer's loans, newest first, projected."""
        try:
            transactions = self.db.get_transactions_by_customer(customer_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_customer_transactions")
        return Result.ok(accounting.project_transactions(transactions, self._today()))

    def get_recent_transactions(self, limit: int = 10) -> Result[List[Transaction]]:
        """The ``limit`` most recent transactions store-wide, projected."""
        if limit is None or limit <= 0:
            return Result.fail(ValidationError("limit", "Limit must be positive"))
        try:
            transactions = self.db.get_recent_transactions(limit)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_recent_transactions")
        return Result.ok(accounting.project_transactions(transactions, self._today()))

    def get_transaction_by_ref(self, transaction_ref: str) -> Result[Transaction]:
        try:
            transaction = self.db.get_transaction_by_ref(transaction_ref)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_transaction")
        if transaction is None:
            return Result.fail(NotFound("transaction", transaction_ref))
        return Result.ok(accounting.project_transactions([transaction], self._today())[0])

    def observe_transactions(self, loan_id: int, callback: Callable[[List[Transaction]], None]):
        """Push the projected transaction list to ``callback`` on every change."""
        def fetch():
            return accounting.project_transactions(
                self.db.get_transactions_by_loan(loan_id), self._today())
        return self.db.observe([TRANSACTIONS], fetch, callback)

    def observe_customer_transactions(self, customer_id: int,
                                      callback: Callable[[List[Transaction]], None]):
        def fetch():
            return accounting.project_transactions(
                self.db.get_transactions_by_customer(customer_id), self._today())
        # loans are watched too: deleting a loan removes its transactions from the join
        return self.db.observe([TRANSACTIONS, LOANS], fetch, callback)
