"""Loan accounting rules for TrackLoan.

Stateless functions deriving payment progress from a loan and its
transactions. Nothing here touches the store; the workflows fetch the data
and pass it in. ``today`` is always an explicit, optional argument.
"""
from dataclasses import replace
from datetime import date
from typing import Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from trackloan.models import (
    EmiType,
    Loan,
    LoanProgress,
    NextInstallment,
    Transaction,
    TransactionStatus,
)


def _paid(transactions: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in transactions if t.status == TransactionStatus.PAID]


def paid_amount(transactions: Iterable[Transaction]) -> float:
    return sum(t.amount for t in _paid(transactions))


def installment_due_date(loan: Loan, number: int) -> date:
    """Nominal due date of installment ``number`` (1-based)."""
    offset = number - 1
    if loan.emi_type == EmiType.DAILY:
        step = relativedelta(days=offset)
    elif loan.emi_type == EmiType.MONTHLY:
        step = relativedelta(months=offset)
    else:
        step = relativedelta(weeks=offset)
    return loan.emi_start_date + step


def next_due_installment(loan: Loan, transactions: Iterable[Transaction],
                         today: date = None) -> Optional[NextInstallment]:
    """Next installment to collect, or None once every installment is paid.

    The loan is assumed ACTIVE. A nominal due date already in the past is
    reported as today; the installment number is unaffected.
    """
    today = today or date.today()
    paid_count = len(_paid(transactions))
    if paid_count >= loan.emi_tenure:
        return None

    number = paid_count + 1
    due_date = installment_due_date(loan, number)
    if due_date < today:
        due_date = today

    return NextInstallment(number=number, amount=loan.emi_amount, due_date=due_date)


def will_settle_loan(loan: Loan, transactions: Iterable[Transaction], candidate_amount: float) -> bool:
    """Whether paying ``candidate_amount`` brings the PAID total to the expected total."""
    return paid_amount(transactions) + candidate_amount >= loan.total_expected


def compute_progress(loan: Loan, transactions: Iterable[Transaction]) -> LoanProgress:
    paid = _paid(transactions)
    total_expected = loan.total_expected
    paid_total = sum(t.amount for t in paid)
    completed = len(paid)
    total_count = loan.emi_tenure
    percent = (completed * 100) // total_count if total_count > 0 else 0

    # remaining goes negative on overpayment
    return LoanProgress(
        total_expected=total_expected,
        paid_amount=paid_total,
        remaining=total_expected - paid_total,
        completed_count=completed,
        total_count=total_count,
        percent_complete=percent,
    )


def project_status(transaction: Transaction, today: date = None) -> TransactionStatus:
    """Status as presented: a DUE record dated before today reads as OVERDUE."""
    today = today or date.today()
    if transaction.status == TransactionStatus.DUE and transaction.payment_date.date() < today:
        return TransactionStatus.OVERDUE
    return transaction.status


def project_transactions(transactions: Iterable[Transaction], today: date = None) -> List[Transaction]:
    """``transactions`` with the OVERDUE projection applied.

    Records whose status changes are replaced by copies; inputs are never mutated.
    """
    today = today or date.today()
    projected = []
    for t in transactions:
        status = project_status(t, today)
        projected.append(t if status == t.status else replace(t, status=status))
    return projected
