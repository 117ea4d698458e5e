"""Tests for transaction reference generation."""
import random
import unittest
from datetime import datetime, timezone

from trackloan.references import ReferenceGenerator

FIXED = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


class TestReferenceGenerator(unittest.TestCase):

    def test_shape(self):
        ref = ReferenceGenerator(clock=lambda: FIXED, rng=random.Random(1)).generate("PAY")

        self.assertTrue(ref.startswith("PAY1792404000000"))
        self.assertEqual(len(ref), len("PAY") + 13 + 4)
        self.assertTrue(ReferenceGenerator.is_valid(ref, "PAY"))

    def test_same_seed_same_sequence(self):
        first = ReferenceGenerator(clock=lambda: FIXED, rng=random.Random(9))
        second = ReferenceGenerator(clock=lambda: FIXED, rng=random.Random(9))

        self.assertEqual([first.generate() for _ in range(5)],
                         [second.generate() for _ in range(5)])

    def test_suffix_varies_within_same_millisecond(self):
        generator = ReferenceGenerator(clock=lambda: FIXED, rng=random.Random(3))
        refs = {generator.generate("TXN") for _ in range(50)}
        self.assertGreater(len(refs), 45)

    def test_is_valid_rejects_malformed(self):
        for ref in ["", "PAY", "PAYABCD", "TXN1792404000000ABCD", "PAY17924x4000000ABCD",
                    "PAY1792404000000abcd"]:
            with self.subTest(ref=ref):
                self.assertFalse(ReferenceGenerator.is_valid(ref, "PAY"))


if __name__ == "__main__":
    unittest.main(verbosity=2)
