"""SQLite storage for customer records ingested from CSV uploads.

The database lives on a file system mounted into the Lambda (EFS), so the file
survives between invocations while each invocation opens its own connection.
"""

import logging
import os
import sqlite3
from dataclasses import astuple, dataclass
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger()

DB_PATH = os.environ.get("DB_PATH", "/mnt/efs/sqlite-data/customer_data.db")

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS customers (
    customer_id INTEGER PRIMARY KEY,
    first_name TEXT,
    last_name TEXT,
    company TEXT,
    city TEXT,
    country TEXT,
    phone_1 TEXT,
    phone_2 TEXT,
    email TEXT,
    subscription_date TEXT,
    website TEXT
)
"""

_UPSERT_SQL = """
INSERT INTO customers (
    customer_id, first_name, last_name, company, city, country,
    phone_1, phone_2, email, subscription_date, website
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(customer_id) DO UPDATE SET
    first_name = excluded.first_name,
    last_name = excluded.last_name,
    company = excluded.company,
    city = excluded.city,
    country = excluded.country,
    phone_1 = excluded.phone_1,
    phone_2 = excluded.phone_2,
    email = excluded.email,
    subscription_date = excluded.subscription_date,
    website = excluded.website
"""


@dataclass
class CustomerRecord:
    customer_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone_1: Optional[str] = None
    phone_2: Optional[str] = None
    email: Optional[str] = None
    subscription_date: Optional[str] = None
    website: Optional[str] = None


# CSV column order, positional after the identifier
CUSTOMER_COLUMNS = [
    "first_name",
    "last_name",
    "company",
    "city",
    "country",
    "phone_1",
    "phone_2",
    "email",
    "subscription_date",
    "website",
]


def initialize_database(db_path: Optional[str] = None) -> sqlite3.Connection:
    """Open the customer database and create the customers table if absent."""
    path = Path(db_path or DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"[initialize_database] Opening SQLite database at {path}")
    conn = sqlite3.connect(str(path))
    try:
        conn.execute(_SCHEMA_SQL)
        conn.commit()
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def upsert_customers(conn: sqlite3.Connection, customers: Iterable[CustomerRecord]) -> int:
    """Insert or update each record by customer_id in one transaction.

    Returns the number of rows written.
    """
    written = 0
    with conn:
        for customer in customers:
            conn.execute(_UPSERT_SQL, astuple(customer))
            written += 1
    logger.info(f"[upsert_customers] Upserted {written} customer rows")
    return written


def get_customer(conn: sqlite3.Connection, customer_id: int) -> Optional[CustomerRecord]:
    row = conn.execute(
        "SELECT customer_id, " + ", ".join(CUSTOMER_COLUMNS) + " FROM customers WHERE customer_id = ?",
        (customer_id,),
    ).fetchone()
    if row is None:
        return None
    return CustomerRecord(*row)


def count_customers(conn: sqlite3.Connection) -> int:
    return conn.execute("SELECT COUNT(*) FROM customers").fetchone()[0]
