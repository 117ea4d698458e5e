"""Custom exceptions for TrackLoan."""


class TrackLoanError(Exception):
    """Base exception for all TrackLoan errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class StoreError(TrackLoanError):
    """Raised when an entity store operation fails."""

    def __init__(self, operation: str, cause: str):
        super().__init__(f"Store operation '{operation}' failed: {cause}",
                         {'operation': operation, 'cause': cause})
        self.operation = operation
        self.cause = cause


class TransactionError(StoreError):
    """Raised when an atomic block of store writes fails to complete."""
    pass


class DuplicateReferenceError(StoreError):
    """Raised when a transaction reference already exists in the store."""

    def __init__(self, transaction_ref: str):
        super().__init__("add_transaction", f"duplicate reference {transaction_ref}")
        self.transaction_ref = transaction_ref


class CustomerNotFoundError(TrackLoanError):
    """Raised when a customer cannot be found."""

    def __init__(self, customer_id: int):
        super().__init__(f"Customer with ID {customer_id} not found",
                         {'customer_id': customer_id})
        self.customer_id = customer_id


class LoanNotFoundError(TrackLoanError):
    """Raised when a loan cannot be found."""

    def __init__(self, loan_id: int):
        super().__init__(f"Loan with ID {loan_id} not found", {'loan_id': loan_id})
        self.loan_id = loan_id


class TransactionNotFoundError(TrackLoanError):
    """Raised when a transaction cannot be found."""

    def __init__(self, transaction_id: int):
        super().__init__(f"Transaction with ID {transaction_id} not found",
                         {'transaction_id': transaction_id})
        self.transaction_id = transaction_id


class LoanInactiveError(TrackLoanError):
    """Raised when an operation requires an active loan but the loan is not active."""

    def __init__(self, loan_id: int, status: str):
        details = {
            'loan_id': loan_id,
            'status': status
        }
        message = f"Loan {loan_id} is not active (status: {status})"
        super().__init__(message, details)
        self.loan_id = loan_id
        self.status = status
