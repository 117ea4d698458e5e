"""Customer service for TrackLoan.

Creates, updates, searches and deletes customers. Validation rules differ
slightly between adding and updating: the address length limit is only
applied on update.
"""
import logging
import re
from typing import Callable, List, Optional

from trackloan.config import (
    MAX_ADDRESS_LENGTH,
    MAX_NAME_LENGTH,
    MIN_NAME_LENGTH,
    MOBILE_NUMBER_PATTERN,
)
from trackloan.database import CUSTOMERS
from trackloan.errors import NotFound, ValidationError
from trackloan.exceptions import CustomerNotFoundError, TrackLoanError
from trackloan.models import Customer
from trackloan.result import Result

logger = logging.getLogger(__name__)

_MOBILE_RE = re.compile(MOBILE_NUMBER_PATTERN)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CustomerService:
    """Handles customer operations."""

    def __init__(self, db_manager):
        """Initialize CustomerService.

        Args:
            db_manager: DatabaseManager instance for data persistence.
        """
        self.db = db_manager

    def _validate_name(self, name: str) -> Optional[ValidationError]:
        name = (name or "").strip()
        if not name:
            return ValidationError("name", "Customer name cannot be empty")
        if len(name) < MIN_NAME_LENGTH:
            return ValidationError("name", f"Customer name must be at least {MIN_NAME_LENGTH} characters")
        if len(name) > MAX_NAME_LENGTH:
            return ValidationError("name", f"Customer name cannot exceed {MAX_NAME_LENGTH} characters")
        return None

    def _validate_mobile(self, mobile_number: Optional[str]) -> Optional[ValidationError]:
        mobile = _blank_to_none(mobile_number)
        if mobile is not None and not _MOBILE_RE.match(mobile):
            return ValidationError("mobile_number", "Invalid mobile number format")
        return None

    def add_customer(self, name: str, mobile_number: str = None, address: str = None) -> Result[int]:
        """Create a customer.

        Returns:
            Result carrying the new customer id.
        """
        error = self._validate_name(name) or self._validate_mobile(mobile_number)
        if error:
            logger.debug("Rejected new customer: %s", error.message)
            return Result.fail(error)

        customer = Customer(
            name=name.strip(),
            mobile_number=_blank_to_none(mobile_number),
            address=_blank_to_none(address),
        )
        try:
            customer_id = self.db.add_customer(customer)
        except TrackLoanError as e:
            logger.error("Failed to add customer %r: %s", customer.name, e)
            return Result.from_exception(e, "add_customer")

        logger.info("Added customer %s (%s)", customer_id, customer.name)
        return Result.ok(customer_id)

    def update_customer(self, customer_id: int, name: str, mobile_number: Optional[str],
                        address: Optional[str]) -> Result[None]:
        """Update an existing customer's details.

        Blank optional fields are cleared.
        """
        if customer_id is None or customer_id <= 0:
            return Result.fail(ValidationError("customer_id", "Invalid customer ID"))

        error = self._validate_name(name) or self._validate_mobile(mobile_number)
        if error is None and address and len(address.strip()) > MAX_ADDRESS_LENGTH:
            error = ValidationError("address", f"Address cannot exceed {MAX_ADDRESS_LENGTH} characters")
        if error:
            logger.debug("Rejected update of customer %s: %s", customer_id, error.message)
            return Result.fail(error)

        try:
            existing = self.db.get_customer(customer_id)
            if existing is None:
                raise CustomerNotFoundError(customer_id)

            existing.name = name.strip()
            existing.mobile_number = _blank_to_none(mobile_number)
            existing.address = _blank_to_none(address)
            self.db.update_customer(existing)
        except TrackLoanError as e:
            return Result.from_exception(e, "update_customer")

        logger.info("Updated customer %s", customer_id)
        return Result.ok()

    def get_customer(self, customer_id: int) -> Result[Customer]:
        try:
            customer = self.db.get_customer(customer_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "get_customer")
        if customer is None:
            return Result.fail(NotFound.customer(customer_id))
        return Result.ok(customer)

    def get_all_customers(self) -> Result[List[Customer]]:
        try:
            return Result.ok(self.db.get_customers())
        except TrackLoanError as e:
            return Result.from_exception(e, "get_customers")

    def search_customers(self, query: str) -> Result[List[Customer]]:
        """Customers whose name or mobile number contains ``query``."""
        query = (query or "").strip()
        try:
            if not query:
                return Result.ok(self.db.get_customers())
            return Result.ok(self.db.search_customers(query))
        except TrackLoanError as e:
            return Result.from_exception(e, "search_customers")

    def delete_customer(self, customer_id: int) -> Result[None]:
        """Delete a customer along with all of their loans and transactions."""
        try:
            if self.db.get_customer(customer_id) is None:
                raise CustomerNotFoundError(customer_id)
            self.db.delete_customer(customer_id)
        except TrackLoanError as e:
            return Result.from_exception(e, "delete_customer")

        logger.info("Deleted customer %s", customer_id)
        return Result.ok()

    def observe_customers(self, callback: Callable[[List[Customer]], None], query: str = None):
        """Push the (optionally filtered) customer list to ``callback`` on every change."""
        query = (query or "").strip()
        if query:
            fetch = lambda: self.db.search_customers(query)
        else:
            fetch = self.db.get_customers
        return self.db.observe([CUSTOMERS], fetch, callback)
