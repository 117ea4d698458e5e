"""Tests for portfolio totals and customer statements."""
import unittest
from datetime import date, datetime, timedelta

from trackloan.database import DatabaseManager
from trackloan.errors import NotFound
from trackloan.models import LoanStatus
from trackloan.reports import ReportGenerator
from trackloan.services import CustomerService, LoanService, PaymentService

NOW = datetime(2026, 10, 19, 10, 0)
TODAY = NOW.date()


class TestReports(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        clock = lambda: NOW
        self.loans = LoanService(self.db, clock=clock)
        self.payments = PaymentService(self.db, clock=clock)
        self.reports = ReportGenerator(self.db, self.loans, clock=clock)

        self.customer_id = CustomerService(self.db).add_customer("Kavya").value
        self.loan_id = self.loans.disburse_loan(self.customer_id, 1000, 250, 4, date(2026, 10, 26)).value
        self.payments.process_payment(self.loan_id, 250, TODAY)
        self.payments.process_payment(self.loan_id, 250, date(2026, 9, 30))
        self.payments.record_due_payment(self.loan_id, 250, NOW - timedelta(days=1))

    def tearDown(self):
        self.db.close()

    def test_default_period_is_current_month(self):
        self.assertEqual(self.reports.get_default_period(), (date(2026, 10, 1), date(2026, 10, 31)))
        self.assertEqual(self.reports.get_default_period(date(2028, 2, 10)),
                         (date(2028, 2, 1), date(2028, 2, 29)))

    def test_totals_for_current_month(self):
        totals = self.reports.get_report_totals().value

        self.assertEqual(totals.total_loans, 1)
        self.assertEqual(totals.total_loan_amount, 1000)
        self.assertEqual(totals.total_paid_amount, 250)
        self.assertEqual(totals.total_pending_amount, 500)
        self.assertEqual(totals.total_customers, 1)
        self.assertEqual(totals.total_transactions, 2)

    def test_totals_for_explicit_period(self):
        totals = self.reports.get_report_totals(date(2026, 9, 1), date(2026, 9, 30)).value

        self.assertEqual(totals.total_loans, 0)
        self.assertEqual(totals.total_paid_amount, 250)
        self.assertEqual(totals.total_pending_amount, 0)
        self.assertEqual(totals.total_transactions, 1)

    def test_empty_store(self):
        with DatabaseManager(":memory:") as db:
            totals = ReportGenerator(db, clock=lambda: NOW).get_report_totals().value

        self.assertEqual(totals.total_loans, 0)
        self.assertEqual(totals.total_paid_amount, 0)
        self.assertEqual(totals.total_customers, 0)

    def test_customer_statement(self):
        closed_id = self.loans.disburse_loan(self.customer_id, 500, 250, 2, date(2026, 11, 1)).value
        self.payments.process_payment(closed_id, 250, TODAY)
        self.payments.process_payment(closed_id, 250, TODAY)

        statement = self.reports.get_customer_statement(self.customer_id).value

        self.assertEqual(statement.customer_name, "Kavya")
        self.assertEqual(len(statement.loans), 2)
        self.assertEqual({s.status for s in statement.loans}, {LoanStatus.ACTIVE, LoanStatus.CLOSED})
        self.assertEqual(statement.total_outstanding, 500)
        self.assertEqual(statement.last_payment_date, NOW)

    def test_statement_for_customer_without_payments(self):
        other = CustomerService(self.db).add_customer("Nikhil").value

        statement = self.reports.get_customer_statement(other).value

        self.assertEqual(statement.loans, [])
        self.assertEqual(statement.total_outstanding, 0)
        self.assertIsNone(statement.last_payment_date)

    def test_statement_for_missing_customer(self):
        self.assertEqual(self.reports.get_customer_statement(77).detail, NotFound.customer(77))

    def test_dashboard_counts(self):
        closed_id = self.loans.disburse_loan(self.customer_id, 100, 100, 1, date(2026, 11, 1)).value
        self.payments.process_payment(closed_id, 100, TODAY)

        counts = self.reports.get_dashboard_counts().value

        self.assertEqual(counts.total_customers, 1)
        self.assertEqual(counts.active_loans, 1)
        self.assertEqual(counts.closed_loans, 1)
        self.assertEqual(counts.defaulted_loans, 0)
        self.assertEqual(counts.paid_transactions, 3)
        # the overdue record still counts as pending
        self.assertEqual(counts.pending_payments, 1)

    def test_observe_dashboard_counts(self):
        active = []
        self.reports.observe_dashboard_counts(lambda r: active.append(r.value.active_loans))

        self.loans.disburse_loan(self.customer_id, 500, 100, 5, date(2026, 11, 1))

        self.assertEqual(active, [1, 2])


if __name__ == "__main__":
    unittest.main(verbosity=2)
