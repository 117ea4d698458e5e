"""Tests for logging configuration."""
import json
import logging
import unittest

from trackloan.logging import JsonFormatter, setup_logging


class TestSetupLogging(unittest.TestCase):

    def tearDown(self):
        logger = logging.getLogger("trackloan")
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)

    def test_level_and_single_handler(self):
        setup_logging("debug")
        setup_logging("warning")

        logger = logging.getLogger("trackloan")
        self.assertEqual(logger.level, logging.WARNING)
        self.assertEqual(len(logger.handlers), 1)

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty")
        self.assertEqual(logging.getLogger("trackloan").level, logging.INFO)

    def test_json_format(self):
        setup_logging(format_type="json")
        self.assertIsInstance(logging.getLogger("trackloan").handlers[0].formatter, JsonFormatter)

    def test_json_record(self):
        record = logging.LogRecord("trackloan.services.payment_service", logging.ERROR, __file__, 1,
                                   "Loan %s could not be closed", (7,), None)

        data = json.loads(JsonFormatter().format(record))

        self.assertEqual(data["level"], "ERROR")
        self.assertEqual(data["logger"], "trackloan.services.payment_service")
        self.assertEqual(data["message"], "Loan 7 could not be closed")


if __name__ == "__main__":
    unittest.main(verbosity=2)
