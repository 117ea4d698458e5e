"""Tests for the Result type and the exception to domain error mapping."""
import unittest
from datetime import date, datetime

from trackloan.database import DatabaseManager
from trackloan.engine import TrackLoanEngine
from trackloan.errors import (
    CustomerHasActiveLoans,
    DatabaseError,
    DuplicateTransaction,
    ErrorType,
    InvalidAmount,
    LoanAlreadyClosed,
    NetworkError,
    NotFound,
    ValidationError,
    from_exception,
)
from trackloan.exceptions import (
    CustomerNotFoundError,
    DuplicateReferenceError,
    LoanInactiveError,
    LoanNotFoundError,
    StoreError,
    TransactionNotFoundError,
)
from trackloan.models import LoanStatus
from trackloan.result import Result


class TestResult(unittest.TestCase):

    def test_ok(self):
        result = Result.ok(42)
        self.assertTrue(result)
        self.assertEqual(result.unwrap(), 42)
        self.assertEqual(result.warnings, [])

    def test_fail(self):
        result = Result.fail(InvalidAmount(-5, "Payment amount must be positive"))

        self.assertFalse(result)
        self.assertEqual(result.error, "Payment amount must be positive")
        self.assertEqual(result.error_type, ErrorType.INVALID_AMOUNT)
        self.assertEqual(result.unwrap_or(0), 0)
        with self.assertRaises(ValueError):
            result.unwrap()

    def test_warnings_are_copied(self):
        warnings = [DatabaseError("close_loan", "locked")]
        result = Result.ok("x", warnings=warnings)
        warnings.clear()
        self.assertEqual(len(result.warnings), 1)


class TestFromException(unittest.TestCase):

    def test_mapping(self):
        cases = [
            (DuplicateReferenceError("PAY1"), DuplicateTransaction("PAY1")),
            (CustomerNotFoundError(3), NotFound.customer(3)),
            (LoanNotFoundError(4), NotFound.loan(4)),
            (TransactionNotFoundError(5), NotFound.transaction(5)),
            (LoanInactiveError(6, "CLOSED"), LoanAlreadyClosed(6)),
            (StoreError("add_loan", "disk full"), DatabaseError("disburse_loan", "disk full")),
        ]
        for exc, expected in cases:
            with self.subTest(exc=type(exc).__name__):
                self.assertEqual(from_exception(exc, "disburse_loan"), expected)

    def test_database_message_hides_cause(self):
        error = DatabaseError("process_payment", "database disk image is malformed")
        self.assertEqual(error.message, "Could not process payment. Please try again.")
        self.assertEqual(str(error), error.message)

    def test_error_values_are_immutable(self):
        error = ValidationError("name", "Customer name cannot be empty")
        with self.assertRaises(AttributeError):
            error.field = "other"


class TestDeclaredButUnproducedVariants(unittest.TestCase):
    """DEFAULTED, CustomerHasActiveLoans and NetworkError are modeled only.

    No workflow assigns or returns them; customers are deleted with their
    loans regardless of status and there is no network layer.
    """

    def test_values_are_well_formed(self):
        self.assertEqual(LoanStatus("DEFAULTED"), LoanStatus.DEFAULTED)

        active = CustomerHasActiveLoans(customer_id=3, count=2)
        self.assertEqual(active.error_type, ErrorType.HAS_ACTIVE_LOANS)
        self.assertEqual(active.message, "Customer 3 has 2 active loan(s)")

        network = NetworkError("sync")
        self.assertEqual(network.error_type, ErrorType.NETWORK)
        self.assertEqual(network.message, "Network unavailable")

    def test_no_workflow_produces_them(self):
        now = datetime(2026, 10, 19, 10, 0)
        unproduced = (ErrorType.HAS_ACTIVE_LOANS, ErrorType.NETWORK)

        with DatabaseManager(":memory:") as db:
            engine = TrackLoanEngine(db, clock=lambda: now)
            customer_id = engine.add_customer("Farah Khan").value
            results = [
                engine.disburse_loan(customer_id, 250, 50, 5, date(2026, 11, 1)),
                engine.disburse_loan(customer_id, 200, 100, 2, date(2026, 11, 1)),
            ]
            loan_id = results[-1].value
            results += [
                engine.process_payment(loan_id, -1, now.date()),
                engine.process_payment(loan_id, 100, now.date()),
                engine.process_payment(loan_id, 100, now.date()),
                engine.process_payment(loan_id, 100, now.date()),
                engine.record_due_payment(loan_id, 100),
                engine.delete_customer(customer_id),
                engine.delete_customer(customer_id),
            ]
            statuses = {loan.status for loan in db.get_loans()}

        for result in results:
            self.assertNotIn(result.error_type, unproduced)
            self.assertNotIsInstance(result.detail, (CustomerHasActiveLoans, NetworkError))
        self.assertNotIn(LoanStatus.DEFAULTED, statuses)
        self.assertTrue(results[-2].success)


if __name__ == "__main__":
    unittest.main(verbosity=2)
