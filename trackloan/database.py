"""Database management module for TrackLoan."""
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterable, List, Optional

import pandas as pd

from trackloan.config import (
    DATE_FORMAT_STORAGE,
    DATETIME_FORMAT_STORAGE,
    DEFAULT_DB_NAME,
    LOAN_NUMBER_PREFIX,
    LOAN_NUMBER_WIDTH,
)
from trackloan.exceptions import DuplicateReferenceError, StoreError, TransactionError
from trackloan.models import Customer, Loan, LoanStatus, Transaction, TransactionStatus

logger = logging.getLogger(__name__)

CUSTOMERS = "customers"
LOANS = "loans"
TRANSACTIONS = "transactions"
SETTINGS = "settings"


def _to_storage(value):
    if isinstance(value, datetime):
        return value.strftime(DATETIME_FORMAT_STORAGE)
    if hasattr(value, "strftime"):
        return value.strftime(DATE_FORMAT_STORAGE)
    if hasattr(value, "value"):
        return value.value
    return value


class LiveQuery:
    """A query that pushes a fresh snapshot to its callback on every change.

    The callback receives the current result once on registration and again
    after every committed write to any of the watched tables.
    """

    def __init__(self, db, tables: Iterable[str], fetch: Callable, callback: Callable):
        self.db = db
        self.tables = frozenset(tables)
        self.fetch = fetch
        self.callback = callback
        self.closed = False

    def refresh(self):
        if not self.closed:
            self.callback(self.fetch())

    def close(self):
        """Stop receiving snapshots."""
        if not self.closed:
            self.closed = True
            self.db._observers.remove(self)


class DatabaseManager:
    """Handles all SQLite database operations."""

    def __init__(self, db_name=DEFAULT_DB_NAME):
        self.db_name = db_name
        self.conn = sqlite3.connect(db_name)
        self._closed = False
        self._observers: List[LiveQuery] = []
        self._tx_depth = 0
        self._pending_tables = set()
        self.create_tables()

    def close(self):
        """Close the database connection."""
        if getattr(self, "conn", None) and not self._closed:
            self.conn.close()
            self._closed = True

    def __del__(self):
        """Ensure connection is closed on garbage collection."""
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @contextmanager
    def transaction(self):
        """Context manager for atomic writes with automatic rollback on failure.

        Usage:
            with db.transaction():
                db.add_customer(customer)
                db.add_loan(loan)

        Live queries are refreshed once, after the commit.
        """
        self._tx_depth += 1
        try:
            yield
        except Exception:
            self._tx_depth -= 1
            if self._tx_depth == 0:
                self.conn.rollback()
                self._pending_tables.clear()
            raise
        self._tx_depth -= 1
        if self._tx_depth == 0:
            try:
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                self._pending_tables.clear()
                raise TransactionError("commit", str(e)) from e
            self._flush_notifications()

    def create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS customers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                mobile_number TEXT,
                address TEXT,
                created_at TEXT
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS loans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                loan_number TEXT UNIQUE,
                customer_id INTEGER NOT NULL,
                loan_amount REAL NOT NULL,
                emi_amount REAL NOT NULL,
                emi_tenure INTEGER NOT NULL,
                emi_type TEXT NOT NULL DEFAULT 'WEEKLY',
                emi_start_date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'ACTIVE',
                created_at TEXT,
                FOREIGN KEY(customer_id) REFERENCES customers(id)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                transaction_ref TEXT NOT NULL UNIQUE,
                loan_id INTEGER NOT NULL,
                amount REAL NOT NULL,
                payment_date TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'PAID',
                FOREIGN KEY(loan_id) REFERENCES loans(id)
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_loans_customer ON loans(customer_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_transactions_loan ON transactions(loan_id)")

        # Settings Table
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)
        self.conn.commit()

    # ========== LOW-LEVEL HELPERS ==========

    def _execute(self, operation, query, params=(), tables=()):
        """Run a write statement, committing unless inside ``transaction()``."""
        try:
            cursor = self.conn.cursor()
            cursor.execute(query, tuple(_to_storage(p) for p in params))
        except sqlite3.IntegrityError as e:
            if "transaction_ref" in str(e):
                raise DuplicateReferenceError(params[0]) from e
            raise StoreError(operation, str(e)) from e
        except sqlite3.Error as e:
            logger.error("Store operation %s failed: %s", operation, e)
            raise StoreError(operation, str(e)) from e

        self._pending_tables.update(tables)
        if self._tx_depth == 0:
            try:
                self.conn.commit()
            except sqlite3.Error as e:
                raise StoreError(operation, str(e)) from e
            self._flush_notifications()
        return cursor

    def _query(self, operation, query, params=()):
        try:
            cursor = self.conn.cursor()
            cursor.execute(query, tuple(_to_storage(p) for p in params))
            cols = [description[0] for description in cursor.description]
            return [dict(zip(cols, row)) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            logger.error("Store query %s failed: %s", operation, e)
            raise StoreError(operation, str(e)) from e

    def _query_one(self, operation, query, params=()):
        rows = self._query(operation, query, params)
        return rows[0] if rows else None

    def _read_df(self, operation, query, params=()):
        try:
            return pd.read_sql_query(query, self.conn, params=tuple(_to_storage(p) for p in params))
        except (sqlite3.Error, pd.errors.DatabaseError) as e:
            raise StoreError(operation, str(e)) from e

    # ========== CHANGE NOTIFICATION ==========

    def observe(self, tables, fetch, callback) -> LiveQuery:
        """Register a live query.

        Args:
            tables: Names of the tables whose changes re-run the query.
            fetch: Zero-argument callable producing the current snapshot.
            callback: Called with every snapshot, starting immediately.

        Returns:
            The LiveQuery handle; call ``close()`` to unsubscribe.
        """
        live = LiveQuery(self, tables, fetch, callback)
        self._observers.append(live)
        live.refresh()
        return live

    def _flush_notifications(self):
        changed = set(self._pending_tables)
        self._pending_tables.clear()
        if not changed:
            return
        # A failing observer must not change the outcome of the committed write
        for live in list(self._observers):
            if live.tables & changed:
                try:
                    live.refresh()
                except Exception:
                    logger.exception("Live query on %s failed to refresh", sorted(live.tables))

    # ========== CUSTOMER OPERATIONS ==========

    def add_customer(self, customer: Customer) -> int:
        created_at = customer.created_at or datetime.now()
        cursor = self._execute(
            "add_customer",
            "INSERT INTO customers (name, mobile_number, address, created_at) VALUES (?, ?, ?, ?)",
            (customer.name, customer.mobile_number, customer.address, created_at),
            tables=(CUSTOMERS,))
        return cursor.lastrowid

    def update_customer(self, customer: Customer):
        self._execute(
            "update_customer",
            "UPDATE customers SET name=?, mobile_number=?, address=? WHERE id=?",
            (customer.name, customer.mobile_number, customer.address, customer.id),
            tables=(CUSTOMERS,))

    def get_customer(self, customer_id) -> Optional[Customer]:
        row = self._query_one("get_customer", "SELECT * FROM customers WHERE id=?", (customer_id,))
        return Customer.from_row(row) if row else None

    def get_customers(self) -> List[Customer]:
        rows = self._query("get_customers", "SELECT * FROM customers ORDER BY name ASC")
        return [Customer.from_row(r) for r in rows]

    def search_customers(self, query: str) -> List[Customer]:
        pattern = f"%{query}%"
        rows = self._query(
            "search_customers",
            "SELECT * FROM customers WHERE name LIKE ? OR mobile_number LIKE ? ORDER BY name ASC",
            (pattern, pattern))
        return [Customer.from_row(r) for r in rows]

    def count_customers(self) -> int:
        row = self._query_one("count_customers", "SELECT COUNT(*) AS n FROM customers")
        return row['n']

    def delete_customer(self, customer_id):
        """Delete a customer together with its loans and their transactions."""
        with self.transaction():
            self._execute(
                "delete_customer",
                "DELETE FROM transactions WHERE loan_id IN (SELECT id FROM loans WHERE customer_id=?)",
                (customer_id,), tables=(TRANSACTIONS,))
            self._execute("delete_customer", "DELETE FROM loans WHERE customer_id=?",
                          (customer_id,), tables=(LOANS,))
            self._execute("delete_customer", "DELETE FROM customers WHERE id=?",
                          (customer_id,), tables=(CUSTOMERS,))

    # ========== LOAN OPERATIONS ==========

    def add_loan(self, loan: Loan) -> int:
        """Insert a loan and assign its loan number from the row sequence."""
        created_at = loan.created_at or datetime.now()
        with self.transaction():
            cursor = self._execute(
                "add_loan",
                """
                INSERT INTO loans (
                    customer_id, loan_amount, emi_amount, emi_tenure,
                    emi_type, emi_start_date, status, created_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (loan.customer_id, loan.loan_amount, loan.emi_amount, loan.emi_tenure,
                 loan.emi_type, loan.emi_start_date, loan.status, created_at),
                tables=(LOANS,))
            loan_id = cursor.lastrowid
            self._execute(
                "add_loan",
                "UPDATE loans SET loan_number=? WHERE id=?",
                (f"{LOAN_NUMBER_PREFIX}{loan_id:0{LOAN_NUMBER_WIDTH}d}", loan_id),
                tables=(LOANS,))
        return loan_id

    def get_loan(self, loan_id) -> Optional[Loan]:
        row = self._query_one("get_loan", "SELECT * FROM loans WHERE id=?", (loan_id,))
        return Loan.from_row(row) if row else None

    def get_loans(self, status: LoanStatus = None) -> List[Loan]:
        if status is None:
            rows = self._query("get_loans", "SELECT * FROM loans ORDER BY created_at DESC, id DESC")
        else:
            rows = self._query("get_loans",
                               "SELECT * FROM loans WHERE status=? ORDER BY created_at DESC, id DESC",
                               (status,))
        return [Loan.from_row(r) for r in rows]

    def get_loans_by_customer(self, customer_id) -> List[Loan]:
        rows = self._query(
            "get_loans_by_customer",
            "SELECT * FROM loans WHERE customer_id=? ORDER BY created_at DESC, id DESC",
            (customer_id,))
        return [Loan.from_row(r) for r in rows]

    def update_loan_status(self, loan_id, status: LoanStatus) -> int:
        """Set a loan's status. Returns the number of rows changed."""
        cursor = self._execute("update_loan_status", "UPDATE loans SET status=? WHERE id=?",
                               (status, loan_id), tables=(LOANS,))
        return cursor.rowcount

    def delete_loan(self, loan_id):
        """Delete a loan together with its transactions."""
        with self.transaction():
            self._execute("delete_loan", "DELETE FROM transactions WHERE loan_id=?",
                          (loan_id,), tables=(TRANSACTIONS,))
            self._execute("delete_loan", "DELETE FROM loans WHERE id=?",
                          (loan_id,), tables=(LOANS,))

    # ========== TRANSACTION OPERATIONS ==========

    def add_transaction(self, transaction: Transaction) -> int:
        cursor = self._execute(
            "add_transaction",
            """
            INSERT INTO transactions (transaction_ref, loan_id, amount, payment_date, status)
            VALUES (?, ?, ?, ?, ?)
            """,
            (transaction.transaction_ref, transaction.loan_id, transaction.amount,
             transaction.payment_date, transaction.status),
            tables=(TRANSACTIONS,))
        return cursor.lastrowid

    def get_transaction(self, transaction_id) -> Optional[Transaction]:
        row = self._query_one("get_transaction", "SELECT * FROM transactions WHERE id=?",
                              (transaction_id,))
        return Transaction.from_row(row) if row else None

    def get_transaction_by_ref(self, transaction_ref) -> Optional[Transaction]:
        row = self._query_one("get_transaction_by_ref",
                              "SELECT * FROM transactions WHERE transaction_ref=?",
                              (transaction_ref,))
        return Transaction.from_row(row) if row else None

    def get_transactions_by_loan(self, loan_id) -> List[Transaction]:
        rows = self._query(
            "get_transactions_by_loan",
            "SELECT * FROM transactions WHERE loan_id=? ORDER BY payment_date DESC, id DESC",
            (loan_id,))
        return [Transaction.from_row(r) for r in rows]

    def get_transactions_by_customer(self, customer_id) -> List[Transaction]:
        rows = self._query(
            "get_transactions_by_customer",
            """
            SELECT t.* FROM transactions t INNER JOIN loans l ON t.loan_id = l.id
            WHERE l.customer_id=?
            ORDER BY t.payment_date DESC, t.id DESC
            """,
            (customer_id,))
        return [Transaction.from_row(r) for r in rows]

    def get_recent_transactions(self, limit) -> List[Transaction]:
        rows = self._query(
            "get_recent_transactions",
            "SELECT * FROM transactions ORDER BY payment_date DESC, id DESC LIMIT ?",
            (limit,))
        return [Transaction.from_row(r) for r in rows]

    def count_loans_by_status(self) -> dict:
        rows = self._query("count_loans_by_status",
                           "SELECT status, COUNT(*) AS n FROM loans GROUP BY status")
        return {LoanStatus(r['status']): r['n'] for r in rows}

    def count_transactions_by_status(self) -> dict:
        """Counts by stored status; OVERDUE is never stored and never appears here."""
        rows = self._query("count_transactions_by_status",
                           "SELECT status, COUNT(*) AS n FROM transactions GROUP BY status")
        return {TransactionStatus(r['status']): r['n'] for r in rows}

    def update_transaction_amount(self, transaction_id, amount):
        self._execute("update_transaction_amount", "UPDATE transactions SET amount=? WHERE id=?",
                      (amount, transaction_id), tables=(TRANSACTIONS,))

    def delete_transaction(self, transaction_id):
        self._execute("delete_transaction", "DELETE FROM transactions WHERE id=?",
                      (transaction_id,), tables=(TRANSACTIONS,))

    # ========== TABULAR READS ==========

    def get_loans_df(self, customer_id=None) -> pd.DataFrame:
        query = "SELECT * FROM loans"
        params = []
        if customer_id is not None:
            query += " WHERE customer_id = ?"
            params.append(customer_id)
        query += " ORDER BY id"
        return self._read_df("get_loans_df", query, params)

    def get_transactions_df(self, customer_id=None, start_date=None, end_date=None) -> pd.DataFrame:
        """Transactions joined with their loan's customer id.

        Dates filter on the payment date, both ends inclusive.
        """
        query = """
            SELECT t.*, l.customer_id
            FROM transactions t INNER JOIN loans l ON t.loan_id = l.id
            WHERE 1 = 1
        """
        params = []
        if customer_id is not None:
            query += " AND l.customer_id = ?"
            params.append(customer_id)
        if start_date:
            query += " AND substr(t.payment_date, 1, 10) >= ?"
            params.append(start_date)
        if end_date:
            query += " AND substr(t.payment_date, 1, 10) <= ?"
            params.append(end_date)
        query += " ORDER BY t.payment_date, t.id"
        return self._read_df("get_transactions_df", query, params)

    # ========== SETTINGS ==========

    def get_setting(self, key, default=None):
        row = self._query_one("get_setting", "SELECT value FROM settings WHERE key=?", (key,))
        return row['value'] if row else default

    def set_setting(self, key, value):
        self._execute("set_setting", "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                      (key, str(value)), tables=(SETTINGS,))
