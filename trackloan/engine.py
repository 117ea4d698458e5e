"""Business logic engine for TrackLoan.

This module provides the TrackLoanEngine class which acts as a facade over
the focused service classes in trackloan/services/.

Service Classes:
    - CustomerService: Customer add/update/search/delete
    - LoanService: Loan disbursement and lookups
    - PaymentService: Payment collection and transaction corrections
"""
from datetime import date, datetime

from trackloan.references import ReferenceGenerator
from trackloan.reports import ReportGenerator
from trackloan.services import CustomerService, LoanService, PaymentService


class TrackLoanEngine:
    """Single entry point for a presentation layer.

    Attributes:
        db: DatabaseManager instance for data persistence.
        customer_service: CustomerService instance (lazy-loaded).
        loan_service: LoanService instance (lazy-loaded).
        payment_service: PaymentService instance (lazy-loaded).
        reports: ReportGenerator instance (lazy-loaded).
    """

    def __init__(self, db_manager, clock=None, reference_generator=None, error_reporter=None):
        self.db = db_manager
        self.clock = clock or datetime.now
        self._reference_generator = reference_generator
        self._error_reporter = error_reporter
        self._customer_service = None
        self._loan_service = None
        self._payment_service = None
        self._reports = None

    @property
    def customer_service(self):
        """Lazy-load CustomerService instance."""
        if self._customer_service is None:
            self._customer_service = CustomerService(self.db)
        return self._customer_service

    @property
    def loan_service(self):
        """Lazy-load LoanService instance."""
        if self._loan_service is None:
            self._loan_service = LoanService(self.db, clock=self.clock)
        return self._loan_service

    @property
    def payment_service(self):
        """Lazy-load PaymentService instance."""
        if self._payment_service is None:
            generator = self._reference_generator or ReferenceGenerator(clock=self.clock)
            self._payment_service = PaymentService(
                self.db, clock=self.clock,
                reference_generator=generator,
                error_reporter=self._error_reporter)
        return self._payment_service

    @property
    def reports(self):
        """Lazy-load ReportGenerator instance."""
        if self._reports is None:
            self._reports = ReportGenerator(self.db, self.loan_service, clock=self.clock)
        return self._reports

    # Customers

    def add_customer(self, name, mobile_number=None, address=None):
        return self.customer_service.add_customer(name, mobile_number, address)

    def update_customer(self, customer_id, name, mobile_number=None, address=None):
        return self.customer_service.update_customer(customer_id, name, mobile_number, address)

    def search_customers(self, query):
        return self.customer_service.search_customers(query)

    def delete_customer(self, customer_id):
        return self.customer_service.delete_customer(customer_id)

    # Loans

    def disburse_loan(self, customer_id, loan_amount, emi_amount, emi_tenure, emi_start_date: date):
        return self.loan_service.disburse_loan(customer_id, loan_amount, emi_amount,
                                               emi_tenure, emi_start_date)

    def get_loan_summary(self, loan_id):
        return self.loan_service.get_loan_summary(loan_id)

    def get_loan_progress(self, loan_id):
        return self.loan_service.get_loan_progress(loan_id)

    def get_loans(self, status=None):
        return self.loan_service.get_loans(status)

    # Payments

    def process_payment(self, loan_id, amount, payment_date: date):
        return self.payment_service.process_payment(loan_id, amount, payment_date)

    def record_due_payment(self, loan_id, amount, payment_date=None):
        return self.payment_service.record_due_payment(loan_id, amount, payment_date)

    def get_next_due_installment(self, loan_id):
        return self.payment_service.get_next_due_installment(loan_id)

    def update_transaction_amount(self, transaction_id, new_amount):
        return self.payment_service.update_transaction_amount(transaction_id, new_amount)

    def get_transactions(self, loan_id):
        return self.payment_service.get_transactions(loan_id)

    def get_customer_transactions(self, customer_id):
        return self.payment_service.get_customer_transactions(customer_id)

    def get_recent_transactions(self, limit=10):
        return self.payment_service.get_recent_transactions(limit)

    # Reports

    def get_report_totals(self, period_start=None, period_end=None):
        return self.reports.get_report_totals(period_start, period_end)

    def get_customer_statement(self, customer_id):
        return self.reports.get_customer_statement(customer_id)

    def get_dashboard_counts(self):
        return self.reports.get_dashboard_counts()
