"""Centralized configuration for TrackLoan.

This module contains all magic numbers, default values, and business rule
constants used by the workflows and the entity store.
"""

# =============================================================================
# STORAGE
# =============================================================================

# Default database file
DEFAULT_DB_NAME = "trackloan.db"

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Timestamp format for storage
DATETIME_FORMAT_STORAGE = "%Y-%m-%d %H:%M:%S"

# Human-facing loan number: prefix + zero-padded store id
LOAN_NUMBER_PREFIX = "LN"
LOAN_NUMBER_WIDTH = 6

# =============================================================================
# CUSTOMER RULES
# =============================================================================

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 30

# Only enforced when updating an existing customer
MAX_ADDRESS_LENGTH = 50

MOBILE_NUMBER_PATTERN = r"^[+]?[0-9]{10,15}$"

# =============================================================================
# LOAN RULES
# =============================================================================

# Loan amounts must be a multiple of this
LOAN_AMOUNT_MULTIPLE = 100

MIN_EMI_TENURE = 1
MAX_EMI_TENURE = 52

# =============================================================================
# PAYMENT RULES
# =============================================================================

# Upper sanity bound on a single payment (overridable via the
# "max_payment_amount" setting)
MAX_PAYMENT_AMOUNT = 1_000_000

# Window for processed payments, relative to today
PAYMENT_MAX_DAYS_PAST = 365
PAYMENT_MAX_DAYS_AHEAD = 30

# Due ("pay later") records may not be dated more than this past now
DUE_PAYMENT_MAX_DAYS_AHEAD = 1

# Reference prefixes
PAYMENT_REF_PREFIX = "PAY"
DUE_REF_PREFIX = "TXN"

# Random suffix appended to every reference
REF_SUFFIX_LENGTH = 4
REF_SUFFIX_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# =============================================================================
# LOGGING
# =============================================================================

DEFAULT_LOG_LEVEL = "INFO"
