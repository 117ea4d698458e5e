"""TrackLoan: customers, loan disbursement and EMI collection for micro-loans."""

__version__ = "1.0.0"
