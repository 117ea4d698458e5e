"""Result pattern for consistent return types in TrackLoan.

Every workflow entry point returns a Result instead of raising, so the
presentation layer only ever sees a value or a short human-readable error.
"""
from dataclasses import dataclass, field
from typing import Generic, List, Optional, TypeVar

from trackloan.errors import DomainError, from_exception

T = TypeVar('T')


@dataclass
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success, None on failure.
        error: Error message on failure, None on success.
        error_type: Type/category of error (e.g., "NOT_FOUND", "VALIDATION").
        detail: The domain error value behind a failure.
        warnings: Secondary failures that did not fail the operation.

    Usage:
        result = payments.process_payment(loan_id, 1000, date.today())
        if result.success:
            print(f"Recorded: {result.value.transaction_ref}")
        else:
            print(f"Error: {result.error}")
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    detail: Optional[DomainError] = None
    warnings: List[DomainError] = field(default_factory=list)

    @classmethod
    def ok(cls, value: T = None, warnings: List[DomainError] = None) -> 'Result[T]':
        """Create a successful result.

        Args:
            value: The return value.
            warnings: Optional secondary failures to surface to the caller.

        Returns:
            A Result with success=True and the given value.
        """
        return cls(success=True, value=value, warnings=list(warnings or []))

    @classmethod
    def fail(cls, detail: DomainError) -> 'Result[T]':
        """Create a failure result from a domain error.

        Args:
            detail: The domain error describing what went wrong.

        Returns:
            A Result with success=False and error details.
        """
        return cls(success=False, error=detail.message,
                   error_type=detail.error_type, detail=detail)

    @classmethod
    def from_exception(cls, exc: Exception, operation: str) -> 'Result[T]':
        """Create a failure result for an exception caught at a workflow boundary."""
        return cls.fail(from_exception(exc, operation))

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """Get the value, raising an exception if the operation failed.

        Raises:
            ValueError: If the operation failed.
        """
        if not self.success:
            raise ValueError(f"Result unwrap failed: {self.error}")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get the value or a default if the operation failed."""
        return self.value if self.success else default
