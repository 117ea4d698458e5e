"""Transaction reference generation.

References look like ``PAY1760870400000K3ZQ``: a prefix, the clock's epoch
milliseconds and a short random uppercase alphanumeric suffix. Collisions
are not checked here; the store's unique index rejects them.
"""
import random
from datetime import datetime
from typing import Callable, Optional

from trackloan.config import (
    PAYMENT_REF_PREFIX,
    REF_SUFFIX_ALPHABET,
    REF_SUFFIX_LENGTH,
)


class ReferenceGenerator:
    """Builds human-readable transaction references from a clock and an RNG."""

    def __init__(self, clock: Callable[[], datetime] = None, rng: Optional[random.Random] = None):
        self.clock = clock or datetime.now
        self.rng = rng or random.Random()

    def generate(self, prefix: str = PAYMENT_REF_PREFIX) -> str:
        millis = int(self.clock().timestamp() * 1000)
        suffix = "".join(self.rng.choice(REF_SUFFIX_ALPHABET) for _ in range(REF_SUFFIX_LENGTH))
        return f"{prefix}{millis}{suffix}"

    @staticmethod
    def is_valid(transaction_ref: str, prefix: str = PAYMENT_REF_PREFIX) -> bool:
        """Check that a reference has the prefix/millis/suffix shape."""
        if not transaction_ref or not transaction_ref.startswith(prefix):
            return False
        body = transaction_ref[len(prefix):]
        if len(body) <= REF_SUFFIX_LENGTH:
            return False
        millis, suffix = body[:-REF_SUFFIX_LENGTH], body[-REF_SUFFIX_LENGTH:]
        return millis.isdigit() and all(c in REF_SUFFIX_ALPHABET for c in suffix)
