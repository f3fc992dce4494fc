# backend/roamplan/db/sqlite_store.py

import sqlite3
import json
import time
from functools import lru_cache
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from roamplan.core.config_loader import settings
from roamplan.core.logger import logger


# Retry configuration
MAX_RETRIES = 5
RETRY_DELAY = 0.1  # 100ms


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteStore:
    def __init__(self, db_path: Optional[str] = None):
        path = Path(db_path or settings.DB_PATH)
        path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(
            str(path),
            check_same_thread=False,
            timeout=30.0
        )
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA synchronous=NORMAL")
        self.conn.execute("PRAGMA busy_timeout=30000")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._init_tables()

    def _execute_with_retry(self, operation, *args, **kwargs):
        """Execute database operation with retry logic for handling locked database"""
        for attempt in range(MAX_RETRIES):
            try:
                return operation(*args, **kwargs)
            except sqlite3.OperationalError as e:
                if "locked" in str(e).lower() and attempt < MAX_RETRIES - 1:
                    logger.warning(f"Database locked, retry {attempt + 1}/{MAX_RETRIES}")
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise

    def close(self):
        self.conn.close()

    # ----------------------------------------------------------------------
    # CREATE TABLES
    # ----------------------------------------------------------------------
    def _init_tables(self):
        cur = self.conn.cursor()

        cur.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            hashed_password TEXT,
            auth_provider TEXT DEFAULT 'password',
            is_admin INTEGER DEFAULT 0,
            created_at TEXT
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS preferences (
            user_id INTEGER PRIMARY KEY,
            data_json TEXT,
            updated_at TEXT,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS itineraries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            title TEXT,
            destination TEXT,
            start_date TEXT,
            end_date TEXT,
            timezone TEXT,
            budget_tier TEXT,
            currency TEXT,
            travelers INTEGER,
            budget_limit TEXT,
            days_json TEXT,
            content_hash TEXT,
            created_at TEXT,
            updated_at TEXT,
            FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS photos (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            itinerary_id INTEGER NOT NULL,
            storage_key TEXT,
            content_type TEXT,
            size_bytes INTEGER,
            created_at TEXT,
            FOREIGN KEY (itinerary_id) REFERENCES itineraries(id) ON DELETE CASCADE
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS partners (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            kind TEXT,
            affiliate_url TEXT,
            api_base_url TEXT,
            commission_rate REAL,
            active INTEGER DEFAULT 1,
            created_at TEXT
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS sponsored_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            partner_id INTEGER NOT NULL,
            title TEXT,
            destination TEXT,
            categories_json TEXT,
            bid_cents INTEGER,
            rating REAL,
            disclosure TEXT NOT NULL,
            starts_at TEXT,
            ends_at TEXT,
            active INTEGER DEFAULT 1,
            created_at TEXT,
            FOREIGN KEY (partner_id) REFERENCES partners(id)
        );
        """)

        cur.execute("""
        CREATE TABLE IF NOT EXISTS partner_offers_cache (
            partner_id INTEGER PRIMARY KEY,
            data_json TEXT,
            fetched_at TEXT
        );
        """)

        cur.execute("CREATE INDEX IF NOT EXISTS idx_itin_user ON itineraries(user_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_photo_itin ON photos(itinerary_id);")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_sponsored_partner ON sponsored_items(partner_id);")

        self.conn.commit()

    # ----------------------------------------------------------------------
    # USERS
    # ----------------------------------------------------------------------
    def create_user(
        self, email: str, full_name: str, hashed_password: Optional[str],
        auth_provider: str = "password", is_admin: bool = False
    ) -> int:
        def _create_user():
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO users (email, full_name, hashed_password, auth_provider, is_admin, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """, (email, full_name, hashed_password, auth_provider, int(is_admin), _now()))
            self.conn.commit()
            return cur.lastrowid

        return self._execute_with_retry(_create_user)

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE email = ?", (email,))
        row = cur.fetchone()
        return self._user_row(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cur.fetchone()
        return self._user_row(row) if row else None

    @staticmethod
    def _user_row(row: sqlite3.Row) -> Dict[str, Any]:
        item = dict(row)
        item["is_admin"] = bool(item["is_admin"])
        return item

    # ----------------------------------------------------------------------
    # PREFERENCES
    # ----------------------------------------------------------------------
    def set_preferences(self, user_id: int, data: dict):
        def _set_preferences():
            cur = self.conn.cursor()
            cur.execute("""
            REPLACE INTO preferences (user_id, data_json, updated_at)
            VALUES (?, ?, ?)
            """, (user_id, json.dumps(data), _now()))
            self.conn.commit()

        self._execute_with_retry(_set_preferences)

    def get_preferences(self, user_id: int) -> Optional[dict]:
        cur = self.conn.cursor()
        cur.execute("SELECT data_json FROM preferences WHERE user_id = ?", (user_id,))
        row = cur.fetchone()
        return json.loads(row["data_json"]) if row else None

    # ----------------------------------------------------------------------
    # ITINERARIES
    # ----------------------------------------------------------------------
    def create_itinerary(self, user_id: int, data: Dict[str, Any], content_hash: str) -> int:
        def _create_itinerary():
            now = _now()
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO itineraries (user_id, title, destination, start_date, end_date, timezone,
                                     budget_tier, currency, travelers, budget_limit, days_json,
                                     content_hash, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                user_id, *self._itinerary_columns(data), content_hash, now, now
            ))
            self.conn.commit()
            return cur.lastrowid

        return self._execute_with_retry(_create_itinerary)

    def update_itinerary(self, user_id: int, itinerary_id: int, data: Dict[str, Any], content_hash: str) -> bool:
        def _update_itinerary():
            cur = self.conn.cursor()
            cur.execute("""
            UPDATE itineraries
            SET title=?, destination=?, start_date=?, end_date=?, timezone=?,
                budget_tier=?, currency=?, travelers=?, budget_limit=?, days_json=?,
                content_hash=?, updated_at=?
            WHERE id = ? AND user_id = ?
            """, (
                *self._itinerary_columns(data), content_hash, _now(), itinerary_id, user_id
            ))
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_update_itinerary)

    def get_itinerary(self, user_id: int, itinerary_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM itineraries WHERE id = ? AND user_id = ?",
            (itinerary_id, user_id),
        )
        row = cur.fetchone()
        if not row:
            return None
        item = self._itinerary_row(row)
        item["photos"] = self.list_photos(itinerary_id)
        return item

    def list_itineraries(self, user_id: int) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT * FROM itineraries
        WHERE user_id = ?
        ORDER BY created_at DESC, id DESC
        """, (user_id,))
        return [self._itinerary_row(r) for r in cur.fetchall()]

    def find_itinerary_by_hash(
        self, user_id: int, content_hash: str, exclude_id: Optional[int] = None
    ) -> Optional[int]:
        cur = self.conn.cursor()
        cur.execute("""
        SELECT id FROM itineraries
        WHERE user_id = ? AND content_hash = ? AND id != ?
        LIMIT 1
        """, (user_id, content_hash, exclude_id or -1))
        row = cur.fetchone()
        return row["id"] if row else None

    def delete_itinerary(self, user_id: int, itinerary_id: int) -> Optional[List[str]]:
        """
        Delete an itinerary and its photo rows.
        Returns the storage keys of removed photos, or None if not found.
        """
        def _delete_itinerary():
            cur = self.conn.cursor()
            cur.execute(
                "SELECT id FROM itineraries WHERE id = ? AND user_id = ?",
                (itinerary_id, user_id),
            )
            if not cur.fetchone():
                return None

            cur.execute("SELECT storage_key FROM photos WHERE itinerary_id = ?", (itinerary_id,))
            keys = [r["storage_key"] for r in cur.fetchall()]

            cur.execute("DELETE FROM photos WHERE itinerary_id = ?", (itinerary_id,))
            cur.execute("DELETE FROM itineraries WHERE id = ?", (itinerary_id,))
            self.conn.commit()
            return keys

        return self._execute_with_retry(_delete_itinerary)

    @staticmethod
    def _itinerary_columns(data: Dict[str, Any]) -> tuple:
        budget_limit = data.get("budget_limit")
        return (
            data["title"],
            data["destination"],
            str(data["start_date"]),
            str(data["end_date"]),
            data["timezone"],
            data["budget_tier"],
            data["currency"],
            data["travelers"],
            str(budget_limit) if budget_limit is not None else None,
            json.dumps(data.get("days", []), default=str),
        )

    @staticmethod
    def _itinerary_row(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "title": row["title"],
            "destination": row["destination"],
            "start_date": row["start_date"],
            "end_date": row["end_date"],
            "timezone": row["timezone"],
            "budget_tier": row["budget_tier"],
            "currency": row["currency"],
            "travelers": row["travelers"],
            "budget_limit": row["budget_limit"],
            "days": json.loads(row["days_json"] or "[]"),
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    # ----------------------------------------------------------------------
    # PHOTOS
    # ----------------------------------------------------------------------
    def add_photo(self, itinerary_id: int, storage_key: str, content_type: str, size_bytes: int) -> int:
        def _add_photo():
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO photos (itinerary_id, storage_key, content_type, size_bytes, created_at)
            VALUES (?, ?, ?, ?, ?)
            """, (itinerary_id, storage_key, content_type, size_bytes, _now()))
            self.conn.commit()
            return cur.lastrowid

        return self._execute_with_retry(_add_photo)

    def list_photos(self, itinerary_id: int) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM photos WHERE itinerary_id = ? ORDER BY id ASC",
            (itinerary_id,),
        )
        return [dict(r) for r in cur.fetchall()]

    # ----------------------------------------------------------------------
    # PARTNERS
    # ----------------------------------------------------------------------
    def create_partner(self, data: Dict[str, Any]) -> int:
        def _create_partner():
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO partners (name, kind, affiliate_url, api_base_url, commission_rate, active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                data["name"], data["kind"], data["affiliate_url"], data.get("api_base_url"),
                data.get("commission_rate", 0.0), int(data.get("active", True)), _now()
            ))
            self.conn.commit()
            return cur.lastrowid

        return self._execute_with_retry(_create_partner)

    def get_partner(self, partner_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM partners WHERE id = ?", (partner_id,))
        row = cur.fetchone()
        return self._partner_row(row) if row else None

    def get_partner_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM partners WHERE name = ?", (name,))
        row = cur.fetchone()
        return self._partner_row(row) if row else None

    def list_partners(self, active_only: bool = False) -> List[Dict[str, Any]]:
        cur = self.conn.cursor()
        if active_only:
            cur.execute("SELECT * FROM partners WHERE active = 1 ORDER BY name ASC")
        else:
            cur.execute("SELECT * FROM partners ORDER BY name ASC")
        return [self._partner_row(r) for r in cur.fetchall()]

    def count_sponsored_for_partner(self, partner_id: int) -> int:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT COUNT(*) AS count FROM sponsored_items WHERE partner_id = ?",
            (partner_id,),
        )
        return cur.fetchone()["count"]

    def delete_partner(self, partner_id: int) -> bool:
        def _delete_partner():
            cur = self.conn.cursor()
            cur.execute("DELETE FROM partner_offers_cache WHERE partner_id = ?", (partner_id,))
            cur.execute("DELETE FROM partners WHERE id = ?", (partner_id,))
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_delete_partner)

    @staticmethod
    def _partner_row(row: sqlite3.Row) -> Dict[str, Any]:
        item = dict(row)
        item["active"] = bool(item["active"])
        return item

    # ----------------------------------------------------------------------
    # SPONSORED ITEMS
    # ----------------------------------------------------------------------
    def create_sponsored_item(self, data: Dict[str, Any]) -> int:
        def _create_item():
            cur = self.conn.cursor()
            cur.execute("""
            INSERT INTO sponsored_items (partner_id, title, destination, categories_json, bid_cents,
                                         rating, disclosure, starts_at, ends_at, active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                data["partner_id"], data["title"], data["destination"],
                json.dumps(data.get("categories", [])), data.get("bid_cents", 0),
                data.get("rating", 0.0), data["disclosure"],
                self._opt_str(data.get("starts_at")), self._opt_str(data.get("ends_at")),
                int(data.get("active", True)), data.get("created_at") or _now()
            ))
            self.conn.commit()
            return cur.lastrowid

        return self._execute_with_retry(_create_item)

    def get_sponsored_item(self, item_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM sponsored_items WHERE id = ?", (item_id,))
        row = cur.fetchone()
        return self._sponsored_row(row) if row else None

    def list_sponsored_items(self) -> List[Dict[str, Any]]:
        """All sponsored items joined with their partner's active flag."""
        cur = self.conn.cursor()
        cur.execute("""
        SELECT s.*, p.active AS partner_active, p.name AS partner_name
        FROM sponsored_items s
        JOIN partners p ON p.id = s.partner_id
        ORDER BY s.id ASC
        """)
        items = []
        for r in cur.fetchall():
            item = self._sponsored_row(r)
            item["partner_active"] = bool(r["partner_active"])
            item["partner_name"] = r["partner_name"]
            items.append(item)
        return items

    def delete_sponsored_item(self, item_id: int) -> bool:
        def _delete_item():
            cur = self.conn.cursor()
            cur.execute("DELETE FROM sponsored_items WHERE id = ?", (item_id,))
            self.conn.commit()
            return cur.rowcount > 0

        return self._execute_with_retry(_delete_item)

    @staticmethod
    def _opt_str(value: Any) -> Optional[str]:
        return str(value) if value is not None else None

    @staticmethod
    def _sponsored_row(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "partner_id": row["partner_id"],
            "title": row["title"],
            "destination": row["destination"],
            "categories": json.loads(row["categories_json"] or "[]"),
            "bid_cents": row["bid_cents"],
            "rating": row["rating"],
            "disclosure": row["disclosure"],
            "starts_at": row["starts_at"],
            "ends_at": row["ends_at"],
            "active": bool(row["active"]),
            "created_at": row["created_at"],
        }

    # ----------------------------------------------------------------------
    # PARTNER OFFERS CACHE
    # ----------------------------------------------------------------------
    def set_partner_offers(self, partner_id: int, offers: List[Dict[str, Any]], fetched_at: str):
        def _set_offers():
            cur = self.conn.cursor()
            cur.execute("""
            REPLACE INTO partner_offers_cache (partner_id, data_json, fetched_at)
            VALUES (?, ?, ?)
            """, (partner_id, json.dumps(offers), fetched_at))
            self.conn.commit()

        self._execute_with_retry(_set_offers)

    def get_partner_offers(self, partner_id: int) -> Optional[Dict[str, Any]]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT data_json, fetched_at FROM partner_offers_cache WHERE partner_id = ?",
            (partner_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        return {"offers": json.loads(row["data_json"]), "fetched_at": row["fetched_at"]}


@lru_cache
def get_store() -> SQLiteStore:
    return SQLiteStore()
