import json
import logging
import secrets
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

log = logging.getLogger(__name__)

# Name of the browser cookie carrying the session token, and the prefix of stored keys
SESSION_KEY = "opspanel_admin"


class MalformedSessionRecordError(ValueError):
    """The stored session entry exists but cannot be turned into an identity."""


@dataclass(frozen=True)
class SessionRecord:
    identity: str


def new_session_token() -> str:
    return secrets.token_urlsafe(32)


class SQLiteSessionStore:
    """
    Durable key-value entries holding the identity signed in on each browser.

    Every browser gets its own random token at login; the entry lives under
    "<key>:<token>", so one browser can never read another browser's session.
    """

    def __init__(self, db_path: str, key: str = SESSION_KEY):
        self.db_path = db_path
        self.key = key

    def _conn(self):
        return sqlite3.connect(self.db_path)

    def _entry_key(self, token: str) -> str:
        return f"{self.key}:{token}"

    def _get_current_version(self, conn) -> int:
        row = conn.execute("SELECT version FROM schema_info").fetchone()
        if row:
            return row[0]
        return 0

    def _migrate_v1(self, conn):
        """Baseline schema (v1)."""
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)

    def _migrate_v2(self, conn):
        """v2: entries are per browser token; the old shared entry is dropped."""
        conn.execute("DELETE FROM kv_store WHERE key = ?", (self.key,))

    def init_db(self):
        MIGRATIONS = [self._migrate_v1, self._migrate_v2]

        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_info (
                    version INTEGER NOT NULL
                )
            """)
            current_version = self._get_current_version(conn)
            has_version_row = conn.execute("SELECT COUNT(*) FROM schema_info").fetchone()[0] > 0
            if not has_version_row:
                conn.execute("INSERT INTO schema_info (version) VALUES (?)", (current_version,))

            for i in range(current_version, len(MIGRATIONS)):
                target_version = i + 1
                try:
                    MIGRATIONS[i](conn)
                    conn.execute("UPDATE schema_info SET version = ?", (target_version,))
                except Exception as e:
                    raise RuntimeError(f"Session store migration to v{target_version} failed: {e}") from e

            conn.commit()

    def read_raw(self, token: str) -> Optional[str]:
        with self._conn() as conn:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (self._entry_key(token),)).fetchone()
            return row[0] if row else None

    def write_raw(self, token: str, value: str):
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (self._entry_key(token), value, datetime.utcnow().isoformat()),
            )
            conn.commit()

    def read_record(self, token: str) -> Optional[SessionRecord]:
        """
        Returns the record stored for this token, or None when nothing is stored.
        Raises MalformedSessionRecordError when the entry exists but is unusable.
        """
        raw = self.read_raw(token)
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedSessionRecordError(f"Stored session is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise MalformedSessionRecordError("Stored session is not an object")
        identity = payload.get("identity")
        if not isinstance(identity, str) or not identity.strip():
            raise MalformedSessionRecordError("Stored session has no identity")
        return SessionRecord(identity=identity)

    def write_record(self, token: str, record: SessionRecord):
        self.write_raw(token, json.dumps({"identity": record.identity}))

    def clear(self, token: str):
        with self._conn() as conn:
            conn.execute("DELETE FROM kv_store WHERE key = ?", (self._entry_key(token),))
            conn.commit()
