"""Services package for TrackLoan business logic.

This package contains the workflow services and the pure accounting rules
they share.
"""

from .customer_service import CustomerService
from .loan_service import LoanService
from .payment_service import PaymentService

__all__ = ['CustomerService', 'LoanService', 'PaymentService']
