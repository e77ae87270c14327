import sqlite3
from datetime import date

import pytest

from msa_property_sync.errors import StoreError
from msa_property_sync.models import CompanyContact, PropertyRecord, SyncState
from msa_property_sync.storage import SQLiteStore


def _record(**overrides):
    base = dict(
        city_code="SD",
        address="123 MAIN STREET",
        normalized_address="123 Main St",
        county="San Diego",
        msa="San Diego-Chula Vista-Carlsbad, CA",
        zip="92101",
        owner_name="Jane Doe",
        property_type_raw="SFR",
        property_type="SFR",
        price=750000,
        sale_date="2026-01-05",
    )
    base.update(overrides)
    return PropertyRecord(**base)


def test_upsert_insert_unchanged_update(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        assert store.upsert_property(_record()) == "inserted"
        assert store.upsert_property(_record()) == "unchanged"
        assert store.upsert_property(_record(price=800000)) == "updated"
        row = store.get_property("SD", "123 Main St")
        assert row["price"] == 800000
        assert store.count_properties() == 1
    finally:
        store.close()


def test_identity_is_case_insensitive_and_per_city(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        store.upsert_property(_record())
        assert store.upsert_property(_record(normalized_address="123 MAIN ST")) == "unchanged"
        assert store.upsert_property(_record(city_code="LA")) == "inserted"
        assert store.count_properties() == 2
        assert store.count_properties("SD") == 1
    finally:
        store.close()


def test_company_contacts(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        assert store.insert_company_contact(CompanyContact(company_name="Acme LLC", counties=["Orange"]))
        assert not store.insert_company_contact(CompanyContact(company_name="Acme LLC", counties=["Denver"]))
        assert not store.add_company_county("Acme LLC", "orange")
        assert store.add_company_county("Acme LLC", "Los Angeles")
        assert not store.add_company_county("Nobody LLC", "Orange")

        contact = store.get_company_contact("Acme LLC")
        assert contact.counties == ["Orange", "Los Angeles"]
        assert store.get_company_contact("Acme Holdings LLC") is None
        assert store.get_company_contact("acme, llc.").company_name == "Acme LLC"
        assert not store.insert_company_contact(CompanyContact(company_name="ACME, LLC", counties=["Denver"]))
        assert len(store.list_company_contacts()) == 1

        store.insert_company_contact(CompanyContact(company_name="Zed Corp", counties=["Denver"]))
        assert [c.company_name for c in store.list_company_contacts()] == ["Acme LLC", "Zed Corp"]
        assert [c.company_name for c in store.list_company_contacts(county="los angeles")] == ["Acme LLC"]
    finally:
        store.close()


def test_recent_purchases_projection(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        store.upsert_property(_record(normalized_address="1 A St", sale_date="2026-01-01"))
        store.upsert_property(_record(normalized_address="2 B St", sale_date="2026-01-08"))
        store.upsert_property(_record(normalized_address="3 C St", sale_date=None))
        store.upsert_property(
            _record(normalized_address="4 D St", county="Orange", sale_date="2026-01-09")
        )

        rows = store.list_recent_purchases(county="san diego", today=date(2026, 1, 10))
        assert [r["normalized_address"] for r in rows] == ["2 B St", "1 A St", "3 C St"]
        assert rows[0]["sale_date_display"] == "01/08/2026"
        assert rows[0]["days_since_sale"] == 2
        assert rows[2]["sale_date_display"] is None
        assert rows[2]["days_since_sale"] is None

        page = store.list_recent_purchases(limit=1, offset=1, today=date(2026, 1, 10))
        assert [r["normalized_address"] for r in page] == ["2 B St"]
    finally:
        store.close()


def test_sync_state_roundtrip(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        assert store.get_sync_state("SD") is None
        state = SyncState(city_code="SD", msa="M", last_successful_date="2026-01-05", processed=3)
        store.save_sync_state(state)
        assert store.get_sync_state("SD") == state
        store.save_sync_state(SyncState(city_code="SD", msa="M", last_successful_date="2026-01-06"))
        assert store.get_sync_state("SD").last_successful_date == "2026-01-06"
        assert [s.city_code for s in store.list_sync_states()] == ["SD"]
    finally:
        store.close()


def test_old_database_gets_new_columns(tmp_path):
    db = tmp_path / "old.sqlite"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE properties (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            city_code TEXT NOT NULL,
            normalized_address TEXT NOT NULL COLLATE NOCASE,
            address TEXT NOT NULL,
            city TEXT, state TEXT, zip TEXT,
            owner_name TEXT, ownership_code TEXT,
            property_type TEXT,
            price REAL NOT NULL DEFAULT 0, purchase_price REAL, sale_date TEXT,
            county TEXT NOT NULL, msa TEXT NOT NULL,
            latitude REAL, longitude REAL,
            created_at TEXT NOT NULL, updated_at TEXT NOT NULL,
            UNIQUE(city_code, normalized_address)
        )
        """
    )
    conn.commit()
    conn.close()

    store = SQLiteStore(str(db))
    try:
        assert store.upsert_property(_record(owner_is_company=True)) == "inserted"
        assert store.get_property("SD", "123 Main St")["owner_is_company"] == 1
    finally:
        store.close()


def test_closed_store_raises_store_error(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    store.close()
    with pytest.raises(StoreError):
        store.upsert_property(_record())


def test_old_contacts_table_gets_name_keys(tmp_path):
    db = tmp_path / "old.sqlite"
    conn = sqlite3.connect(str(db))
    conn.execute(
        """
        CREATE TABLE company_contacts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            company_name TEXT NOT NULL UNIQUE,
            contact_name TEXT, contact_email TEXT, phone_number TEXT,
            counties TEXT NOT NULL DEFAULT '[]',
            created_at TEXT NOT NULL, updated_at TEXT NOT NULL
        )
        """
    )
    conn.executemany(
        "INSERT INTO company_contacts (company_name, counties, created_at, updated_at) "
        "VALUES (?, ?, 'x', 'x')",
        [("Acme LLC", '["Orange"]'), ("ACME, LLC.", '["Denver"]')],
    )
    conn.commit()
    conn.close()

    store = SQLiteStore(str(db))
    try:
        contact = store.get_company_contact("acme llc")
        assert contact.company_name == "Acme LLC"
        assert contact.counties == ["Orange"]
        assert store.insert_company_contact(CompanyContact(company_name="Zed Corp"))
        assert not store.insert_company_contact(CompanyContact(company_name="ZED CORP."))
    finally:
        store.close()
