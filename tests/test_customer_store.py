"""Tests for the SQLite customer store."""

import sqlite3

import pytest

from shared.customer_store import (
    CustomerRecord,
    count_customers,
    get_customer,
    initialize_database,
    upsert_customers,
)


@pytest.fixture
def conn(db_path):
    conn = initialize_database(db_path)
    yield conn
    conn.close()


def _record(customer_id: int, first_name: str, **fields) -> CustomerRecord:
    return CustomerRecord(customer_id=customer_id, first_name=first_name, **fields)


class TestInitializeDatabase:
    def test_creates_parent_directory_and_table(self, db_path):
        conn = initialize_database(db_path)
        try:
            tables = [r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")]
        finally:
            conn.close()

        assert "customers" in tables

    def test_schema_creation_is_idempotent(self, db_path):
        initialize_database(db_path).close()
        conn = initialize_database(db_path)
        try:
            assert count_customers(conn) == 0
        finally:
            conn.close()

    def test_table_has_expected_columns(self, conn):
        columns = [r[1] for r in conn.execute("PRAGMA table_info(customers)")]

        assert columns == [
            "customer_id",
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


class TestUpsertCustomers:
    def test_inserts_distinct_identifiers(self, conn):
        written = upsert_customers(conn, [_record(i, f"name-{i}") for i in range(1, 6)])

        assert written == 5
        assert count_customers(conn) == 5

    def test_existing_identifier_overwrites_all_fields(self, conn):
        upsert_customers(conn, [
            _record(1, "Ada", last_name="Lovelace", company="Analytical", email="ada@example.com"),
        ])
        upsert_customers(conn, [
            _record(1, "Grace", last_name="Hopper", city="Arlington"),
        ])

        stored = get_customer(conn, 1)
        assert count_customers(conn) == 1
        assert stored == CustomerRecord(
            customer_id=1, first_name="Grace", last_name="Hopper", city="Arlington",
        )

    def test_new_identifier_adds_row_next_to_existing(self, conn):
        upsert_customers(conn, [_record(1, "Ada")])
        upsert_customers(conn, [_record(2, "Alan")])

        assert count_customers(conn) == 2
        assert get_customer(conn, 1).first_name == "Ada"
        assert get_customer(conn, 2).first_name == "Alan"

    def test_changes_persist_across_connections(self, db_path):
        conn = initialize_database(db_path)
        upsert_customers(conn, [_record(7, "Ada")])
        conn.close()

        reopened = initialize_database(db_path)
        try:
            assert get_customer(reopened, 7).first_name == "Ada"
        finally:
            reopened.close()

    def test_failed_batch_is_rolled_back(self, conn):
        upsert_customers(conn, [_record(1, "Ada")])
        bad = CustomerRecord(customer_id="not-an-int", first_name="Broken")

        with pytest.raises(sqlite3.Error):
            upsert_customers(conn, [_record(2, "Alan"), bad])

        assert count_customers(conn) == 1
        assert get_customer(conn, 2) is None

    def test_get_missing_customer_returns_none(self, conn):
        assert get_customer(conn, 42) is None
