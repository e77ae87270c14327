from __future__ import annotations

import json
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol

from .errors import StoreError
from .logs import get_logger
from .models import TRACKED_FIELDS, CompanyContact, PropertyRecord, SyncState
from .normalize import company_name_key, days_since, format_date


logger = get_logger("storage")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PropertyStore(Protocol):
    def upsert_property(self, record: PropertyRecord) -> str:
        """Insert or update by (city_code, normalized_address).

        Returns ``"inserted"``, ``"updated"`` or ``"unchanged"``.
        """
        raise NotImplementedError


class CompanyContactStore(Protocol):
    def get_company_contact(self, company_name: str) -> Optional[CompanyContact]:
        raise NotImplementedError

    def insert_company_contact(self, contact: CompanyContact) -> bool:
        raise NotImplementedError

    def add_company_county(self, company_name: str, county: str) -> bool:
        raise NotImplementedError


class SyncStateStore(Protocol):
    def get_sync_state(self, city_code: str) -> Optional[SyncState]:
        raise NotImplementedError

    def save_sync_state(self, state: SyncState) -> None:
        raise NotImplementedError


def _comparable(name: str, value: Any) -> Any:
    if name in ("owner_is_company", "seller_is_company"):
        return bool(value)
    if name in ("price", "purchase_price", "latitude", "longitude"):
        return None if value is None else float(value)
    return value


def _decode_counties(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


class SQLiteStore:
    """SQLite implementation of the property, company-contact and sync-state stores.

    One connection is shared across threads and serialized by a re-entrant
    lock. Every write runs inside a single transaction.
    """

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self.conn: Optional[sqlite3.Connection] = sqlite3.connect(
            str(path), check_same_thread=False
        )
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self.conn is None:
                raise StoreError(f"{action}: store is closed")
            try:
                with self.conn:
                    yield self.conn
            except sqlite3.Error as exc:
                raise StoreError(f"{action} failed: {exc}") from exc

    def _init_schema(self) -> None:
        with self._transaction("init schema") as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS properties (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    city_code TEXT NOT NULL,
                    normalized_address TEXT NOT NULL COLLATE NOCASE,
                    address TEXT NOT NULL,
                    city TEXT,
                    state TEXT,
                    zip TEXT,
                    owner_name TEXT,
                    ownership_code TEXT,
                    owner_is_company INTEGER NOT NULL DEFAULT 0,
                    seller_name TEXT,
                    seller_is_company INTEGER NOT NULL DEFAULT 0,
                    property_type_raw TEXT,
                    property_type TEXT,
                    price REAL NOT NULL DEFAULT 0,
                    purchase_price REAL,
                    sale_date TEXT,
                    county TEXT NOT NULL,
                    msa TEXT NOT NULL,
                    latitude REAL,
                    longitude REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(city_code, normalized_address)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS company_contacts (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    company_name TEXT NOT NULL UNIQUE,
                    name_key TEXT,
                    contact_name TEXT,
                    contact_email TEXT,
                    phone_number TEXT,
                    counties TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sync_state (
                    city_code TEXT PRIMARY KEY,
                    msa TEXT NOT NULL,
                    last_successful_date TEXT NOT NULL,
                    processed INTEGER NOT NULL DEFAULT 0,
                    inserted INTEGER NOT NULL DEFAULT 0,
                    updated INTEGER NOT NULL DEFAULT 0,
                    contacts_added INTEGER NOT NULL DEFAULT 0,
                    total_records_synced INTEGER NOT NULL DEFAULT 0,
                    last_sync_at TEXT
                )
                """
            )

            # Older databases predate the company flags, seller and raw type columns.
            cols = {
                row["name"]
                for row in conn.execute("PRAGMA table_info(properties)").fetchall()
            }
            to_add = [
                ("owner_is_company", "INTEGER NOT NULL DEFAULT 0"),
                ("seller_name", "TEXT"),
                ("seller_is_company", "INTEGER NOT NULL DEFAULT 0"),
                ("property_type_raw", "TEXT"),
            ]
            for name, ddl in to_add:
                if name in cols:
                    continue
                conn.execute(f"ALTER TABLE properties ADD COLUMN {name} {ddl}")

            self._migrate_company_name_keys(conn)

            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_properties_county ON properties(county)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_properties_sale_date ON properties(sale_date)"
            )

    @staticmethod
    def _migrate_company_name_keys(conn: sqlite3.Connection) -> None:
        cols = {
            row["name"]
            for row in conn.execute("PRAGMA table_info(company_contacts)").fetchall()
        }
        if "name_key" not in cols:
            conn.execute("ALTER TABLE company_contacts ADD COLUMN name_key TEXT")

        # Backfill; when legacy rows collide on the key only the oldest gets it.
        taken = {
            row["name_key"]
            for row in conn.execute(
                "SELECT name_key FROM company_contacts WHERE name_key IS NOT NULL"
            ).fetchall()
        }
        rows = conn.execute(
            "SELECT id, company_name FROM company_contacts WHERE name_key IS NULL ORDER BY id"
        ).fetchall()
        for row in rows:
            key = company_name_key(row["company_name"])
            if not key or key in taken:
                continue
            taken.add(key)
            conn.execute(
                "UPDATE company_contacts SET name_key = ? WHERE id = ?", (key, row["id"])
            )
        conn.execute(
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_company_contacts_name_key "
            "ON company_contacts(name_key)"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def get_property(
        self, city_code: str, normalized_address: str
    ) -> Optional[Dict[str, Any]]:
        with self._transaction("get property") as conn:
            row = conn.execute(
                "SELECT * FROM properties WHERE city_code = ? AND normalized_address = ?",
                (city_code, normalized_address),
            ).fetchone()
        return dict(row) if row else None

    def upsert_property(self, record: PropertyRecord) -> str:
        payload = record.to_dict()
        now = _utc_now_iso()
        with self._transaction("upsert property") as conn:
            existing = conn.execute(
                "SELECT * FROM properties WHERE city_code = ? AND normalized_address = ?",
                (record.city_code, record.normalized_address),
            ).fetchone()

            if existing is None:
                columns = ["city_code", "normalized_address", *TRACKED_FIELDS]
                values = [payload[c] for c in columns]
                conn.execute(
                    f"""
                    INSERT INTO properties ({", ".join(columns)}, created_at, updated_at)
                    VALUES ({", ".join("?" for _ in columns)}, ?, ?)
                    """,
                    (*values, now, now),
                )
                return "inserted"

            changed = [
                name
                for name in TRACKED_FIELDS
                if _comparable(name, existing[name]) != _comparable(name, payload[name])
            ]
            if not changed:
                return "unchanged"

            assignments = ", ".join(f"{name} = ?" for name in changed)
            conn.execute(
                f"UPDATE properties SET {assignments}, updated_at = ? WHERE id = ?",
                (*[payload[name] for name in changed], now, existing["id"]),
            )
            logger.debug(
                "[%s] updated %s: %s",
                record.city_code,
                record.normalized_address,
                ", ".join(changed),
            )
            return "updated"

    def count_properties(self, city_code: Optional[str] = None) -> int:
        sql = "SELECT COUNT(*) AS n FROM properties"
        params: List[Any] = []
        if city_code:
            sql += " WHERE city_code = ?"
            params.append(city_code)
        with self._transaction("count properties") as conn:
            return int(conn.execute(sql, params).fetchone()["n"])

    def list_recent_purchases(
        self,
        county: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        today: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        """Dashboard feed: newest sales first, undated records last."""

        sql = "SELECT * FROM properties"
        params: List[Any] = []
        if county:
            sql += " WHERE county = ? COLLATE NOCASE"
            params.append(county.strip())
        sql += " ORDER BY sale_date IS NULL, sale_date DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([max(0, int(limit)), max(0, int(offset))])

        with self._transaction("list recent purchases") as conn:
            rows = conn.execute(sql, params).fetchall()

        out = []
        for row in rows:
            item = dict(row)
            item["owner_is_company"] = bool(item["owner_is_company"])
            item["seller_is_company"] = bool(item["seller_is_company"])
            item["sale_date_display"] = format_date(item["sale_date"])
            item["days_since_sale"] = days_since(item["sale_date"], today=today)
            out.append(item)
        return out

    # ------------------------------------------------------------------
    # Company contacts
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_contact(row: sqlite3.Row) -> CompanyContact:
        return CompanyContact(
            company_name=row["company_name"],
            counties=_decode_counties(row["counties"]),
            contact_name=row["contact_name"],
            contact_email=row["contact_email"],
            phone_number=row["phone_number"],
        )

    def get_company_contact(self, company_name: str) -> Optional[CompanyContact]:
        with self._transaction("get company contact") as conn:
            row = conn.execute(
                "SELECT * FROM company_contacts WHERE name_key = ?",
                (company_name_key(company_name),),
            ).fetchone()
        return self._row_to_contact(row) if row else None

    def insert_company_contact(self, contact: CompanyContact) -> bool:
        """Returns False when a contact with the same comparison key already exists."""

        now = _utc_now_iso()
        with self._transaction("insert company contact") as conn:
            cur = conn.execute(
                """
                INSERT INTO company_contacts (
                    company_name, name_key, contact_name, contact_email, phone_number,
                    counties, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(name_key) DO NOTHING
                """,
                (
                    contact.company_name,
                    company_name_key(contact.company_name),
                    contact.contact_name,
                    contact.contact_email,
                    contact.phone_number,
                    json.dumps(list(contact.counties)),
                    now,
                    now,
                ),
            )
            return cur.rowcount == 1

    def add_company_county(self, company_name: str, county: str) -> bool:
        """Append ``county`` unless already listed (case-insensitive).

        Returns True when the list changed.
        """

        with self._transaction("add company county") as conn:
            row = conn.execute(
                "SELECT id, counties FROM company_contacts WHERE name_key = ?",
                (company_name_key(company_name),),
            ).fetchone()
            if row is None:
                return False
            counties = _decode_counties(row["counties"])
            if county.casefold() in {c.casefold() for c in counties}:
                return False
            counties.append(county)
            conn.execute(
                "UPDATE company_contacts SET counties = ?, updated_at = ? WHERE id = ?",
                (json.dumps(counties), _utc_now_iso(), row["id"]),
            )
            return True

    def list_company_contacts(self, county: Optional[str] = None) -> List[CompanyContact]:
        with self._transaction("list company contacts") as conn:
            rows = conn.execute(
                "SELECT * FROM company_contacts ORDER BY company_name"
            ).fetchall()
        contacts = [self._row_to_contact(row) for row in rows]
        if not county:
            return contacts
        wanted = county.strip().casefold()
        return [c for c in contacts if wanted in {x.casefold() for x in c.counties}]

    # ------------------------------------------------------------------
    # Sync state
    # ------------------------------------------------------------------

    def get_sync_state(self, city_code: str) -> Optional[SyncState]:
        with self._transaction("get sync state") as conn:
            row = conn.execute(
                "SELECT * FROM sync_state WHERE city_code = ?", (city_code,)
            ).fetchone()
        if row is None:
            return None
        return SyncState(**dict(row))

    def save_sync_state(self, state: SyncState) -> None:
        with self._transaction("save sync state") as conn:
            conn.execute(
                """
                INSERT INTO sync_state (
                    city_code, msa, last_successful_date, processed, inserted,
                    updated, contacts_added, total_records_synced, last_sync_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(city_code) DO UPDATE SET
                    msa=excluded.msa,
                    last_successful_date=excluded.last_successful_date,
                    processed=excluded.processed,
                    inserted=excluded.inserted,
                    updated=excluded.updated,
                    contacts_added=excluded.contacts_added,
                    total_records_synced=excluded.total_records_synced,
                    last_sync_at=excluded.last_sync_at
                """,
                (
                    state.city_code,
                    state.msa,
                    state.last_successful_date,
                    state.processed,
                    state.inserted,
                    state.updated,
                    state.contacts_added,
                    state.total_records_synced,
                    state.last_sync_at,
                ),
            )

    def list_sync_states(self) -> List[SyncState]:
        with self._transaction("list sync states") as conn:
            rows = conn.execute("SELECT * FROM sync_state ORDER BY city_code").fetchall()
        return [SyncState(**dict(row)) for row in rows]
