"""
Report generation module for TrackLoan.
Handles portfolio totals over a period, per-customer statements and
dashboard counts.
"""
import pandas as pd
from datetime import datetime
from dateutil.relativedelta import relativedelta

from trackloan.config import DATE_FORMAT_STORAGE
from trackloan.database import CUSTOMERS, LOANS, TRANSACTIONS
from trackloan.errors import NotFound
from trackloan.exceptions import TrackLoanError
from trackloan.models import CustomerStatement, DashboardCounts, LoanStatus, ReportTotals, TransactionStatus
from trackloan.result import Result
from trackloan.services import accounting
from trackloan.services.loan_service import LoanService


class ReportGenerator:
    def __init__(self, db_manager, loan_service=None, clock=None):
        self.db = db_manager
        self.clock = clock or datetime.now
        self.loan_service = loan_service or LoanService(db_manager, clock=self.clock)

    def get_default_period(self, ref_date=None):
        """Current calendar month: first day to last day."""
        if ref_date is None:
            ref_date = self.clock().date()
        start = ref_date.replace(day=1)
        end = start + relativedelta(months=1, days=-1)
        return start, end

    def _paid_only(self, tx_df):
        if tx_df.empty:
            return tx_df
        return tx_df[tx_df['status'] == 'PAID']

    def _calculate_totals(self, loans_df, tx_df, period_start, period_end):
        """Aggregate loans created and payments made within the period.

        Loans are counted by creation date. Pending is what those loans are
        still expected to collect, from all their PAID transactions to date.
        """
        start_str = period_start.strftime(DATE_FORMAT_STORAGE)
        end_str = period_end.strftime(DATE_FORMAT_STORAGE)

        if loans_df.empty:
            period_loans = loans_df
        else:
            created = loans_df['created_at'].fillna('').str[:10]
            period_loans = loans_df[(created >= start_str) & (created <= end_str)]

        paid_df = self._paid_only(tx_df)
        if paid_df.empty:
            period_paid = paid_df
            paid_by_loan = pd.Series(dtype=float)
        else:
            pay_dates = paid_df['payment_date'].str[:10]
            period_paid = paid_df[(pay_dates >= start_str) & (pay_dates <= end_str)]
            paid_by_loan = paid_df.groupby('loan_id')['amount'].sum()

        if period_loans.empty:
            total_pending = 0.0
        else:
            expected = period_loans['emi_amount'] * period_loans['emi_tenure']
            collected = period_loans['id'].map(paid_by_loan).fillna(0.0)
            total_pending = float((expected - collected).sum())

        return {
            'total_loans': int(len(period_loans)),
            'total_loan_amount': float(period_loans['loan_amount'].sum()) if not period_loans.empty else 0.0,
            'total_paid_amount': float(period_paid['amount'].sum()) if not period_paid.empty else 0.0,
            'total_pending_amount': total_pending,
        }

    def get_report_totals(self, period_start=None, period_end=None):
        """Portfolio totals for the given period (defaults to this month).

        Returns:
            Result carrying a ReportTotals.
        """
        if period_start is None or period_end is None:
            period_start, period_end = self.get_default_period()

        try:
            loans_df = self.db.get_loans_df()
            tx_df = self.db.get_transactions_df()
            period_tx = self.db.get_transactions_df(
                start_date=period_start.strftime(DATE_FORMAT_STORAGE),
                end_date=period_end.strftime(DATE_FORMAT_STORAGE))
            total_customers = self.db.count_customers()
        except TrackLoanError as e:
            return Result.from_exception(e, "build_report")

        totals = self._calculate_totals(loans_df, tx_df, period_start, period_end)
        return Result.ok(ReportTotals(
            total_loans=totals['total_loans'],
            total_loan_amount=totals['total_loan_amount'],
            total_paid_amount=totals['total_paid_amount'],
            total_pending_amount=totals['total_pending_amount'],
            total_customers=total_customers,
            total_transactions=int(len(period_tx)),
            period_start=period_start,
            period_end=period_end,
        ))

    def get_customer_statement(self, customer_id):
        """All loans of a customer with their outstanding balances.

        Returns:
            Result carrying a CustomerStatement.
        """
        try:
            customer = self.db.get_customer(customer_id)
            if customer is None:
                return Result.fail(NotFound.customer(customer_id))
            loans = self.db.get_loans_by_customer(customer_id)
            tx_df = self.db.get_transactions_df(customer_id=customer_id)
            transactions = {loan.id: self.db.get_transactions_by_loan(loan.id) for loan in loans}
        except TrackLoanError as e:
            return Result.from_exception(e, "build_statement")

        summaries = [
            self.loan_service.build_summary(loan, customer.name, transactions[loan.id])
            for loan in loans
        ]
        total_outstanding = sum(
            accounting.compute_progress(loan, transactions[loan.id]).remaining
            for loan in loans if loan.status == LoanStatus.ACTIVE
        )

        last_payment = None
        paid_df = self._paid_only(tx_df)
        if not paid_df.empty:
            last_payment = pd.to_datetime(paid_df['payment_date']).max().to_pydatetime()

        return Result.ok(CustomerStatement(
            customer_id=customer.id,
            customer_name=customer.name,
            loans=summaries,
            total_outstanding=total_outstanding,
            last_payment_date=last_payment,
        ))

    def get_dashboard_counts(self):
        """Headline counts: customers, loans per status, PAID and pending DUE records.

        Returns:
            Result carrying a DashboardCounts.
        """
        try:
            loans = self.db.count_loans_by_status()
            transactions = self.db.count_transactions_by_status()
            total_customers = self.db.count_customers()
        except TrackLoanError as e:
            return Result.from_exception(e, "load_dashboard")

        return Result.ok(DashboardCounts(
            total_customers=total_customers,
            active_loans=loans.get(LoanStatus.ACTIVE, 0),
            closed_loans=loans.get(LoanStatus.CLOSED, 0),
            defaulted_loans=loans.get(LoanStatus.DEFAULTED, 0),
            paid_transactions=transactions.get(TransactionStatus.PAID, 0),
            pending_payments=transactions.get(TransactionStatus.DUE, 0),
        ))

    def observe_dashboard_counts(self, callback):
        """Push fresh dashboard counts to ``callback`` after every change."""
        return self.db.observe([CUSTOMERS, LOANS, TRANSACTIONS], self.get_dashboard_counts, callback)
