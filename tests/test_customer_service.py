"""Tests for customer add, update, search and delete."""
import unittest
from datetime import date

from trackloan.database import DatabaseManager
from trackloan.errors import ErrorType, NotFound
from trackloan.models import Loan
from trackloan.services import CustomerService


class TestCustomerService(unittest.TestCase):

    def setUp(self):
        self.db = DatabaseManager(":memory:")
        self.service = CustomerService(self.db)

    def tearDown(self):
        self.db.close()

    def test_add_customer(self):
        result = self.service.add_customer("  Priya Nair  ", "+919876543210", "12 MG Road")

        self.assertTrue(result.success)
        customer = self.db.get_customer(result.value)
        self.assertEqual(customer.name, "Priya Nair")
        self.assertEqual(customer.mobile_number, "+919876543210")
        self.assertIsNotNone(customer.created_at)

    def test_optional_fields_stored_as_none(self):
        customer_id = self.service.add_customer("Priya", "  ", "").value
        customer = self.db.get_customer(customer_id)

        self.assertIsNone(customer.mobile_number)
        self.assertIsNone(customer.address)

    def test_name_rules(self):
        for name in ["", "   ", "A", "x" * 31]:
            with self.subTest(name=name):
                result = self.service.add_customer(name)
                self.assertEqual(result.error_type, ErrorType.VALIDATION)
                self.assertEqual(result.detail.field, "name")
        self.assertTrue(self.service.add_customer("x" * 30).success)

    def test_mobile_rules(self):
        for mobile in ["12345", "98765abcde", "+1234567890123456"]:
            with self.subTest(mobile=mobile):
                self.assertEqual(self.service.add_customer("Priya", mobile).detail.field,
                                 "mobile_number")

    def test_long_address_allowed_on_add(self):
        self.assertTrue(self.service.add_customer("Priya", address="a" * 80).success)

    def test_update_customer(self):
        customer_id = self.service.add_customer("Priya", "9876543210", "Old street").value

        result = self.service.update_customer(customer_id, "Priya N", "", "New street")

        self.assertTrue(result.success)
        customer = self.db.get_customer(customer_id)
        self.assertEqual(customer.name, "Priya N")
        self.assertIsNone(customer.mobile_number)
        self.assertEqual(customer.address, "New street")

    def test_update_rejects_long_address(self):
        customer_id = self.service.add_customer("Priya").value

        result = self.service.update_customer(customer_id, "Priya", None, "a" * 51)

        self.assertEqual(result.detail.field, "address")
        self.assertTrue(self.service.update_customer(customer_id, "Priya", None, "a" * 50).success)

    def test_update_validation_order(self):
        self.assertEqual(self.service.update_customer(0, "", "1", "a" * 60).detail.field, "customer_id")
        self.assertEqual(self.service.update_customer(1, "", "1", "a" * 60).detail.field, "name")
        self.assertEqual(self.service.update_customer(1, "Priya", "1", "a" * 60).detail.field,
                         "mobile_number")

    def test_update_missing_customer(self):
        result = self.service.update_customer(99, "Priya", None, None)
        self.assertEqual(result.detail, NotFound.customer(99))

    def test_search(self):
        self.service.add_customer("Priya Nair", "9876543210")
        self.service.add_customer("Arjun Mehta", "9123400000")

        self.assertEqual([c.name for c in self.service.search_customers("arj").value], ["Arjun Mehta"])
        self.assertEqual([c.name for c in self.service.search_customers("98765").value], ["Priya Nair"])
        self.assertEqual(len(self.service.search_customers("  ").value), 2)
        self.assertEqual(self.service.search_customers("zzz").value, [])

    def test_get_customer(self):
        customer_id = self.service.add_customer("Priya").value
        self.assertEqual(self.service.get_customer(customer_id).value.name, "Priya")
        self.assertEqual(self.service.get_customer(5).detail, NotFound.customer(5))

    def test_delete_cascades(self):
        customer_id = self.service.add_customer("Priya").value
        loan_id = self.db.add_loan(Loan(customer_id=customer_id, loan_amount=500, emi_amount=100,
                                        emi_tenure=5, emi_start_date=date(2026, 11, 1)))

        self.assertTrue(self.service.delete_customer(customer_id).success)

        self.assertIsNone(self.db.get_loan(loan_id))
        self.assertEqual(self.service.delete_customer(customer_id).detail,
                         NotFound.customer(customer_id))

    def test_observe_customers_with_filter(self):
        snapshots = []
        self.service.observe_customers(lambda cs: snapshots.append([c.name for c in cs]), query="pri")

        self.service.add_customer("Priya")
        self.service.add_customer("Arjun")

        self.assertEqual(snapshots, [[], ["Priya"], ["Priya"]])


if __name__ == "__main__":
    unittest.main(verbosity=2)
