import sqlite3
import json
from typing import Optional, Dict, Any, List, Tuple
from datetime import datetime
import logging
from enum import Enum

log = logging.getLogger(__name__)

class AuditAction(str, Enum):
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAIL = "LOGIN_FAIL"
    LOGOUT = "LOGOUT"
    SESSION_RESTORE_FAIL = "SESSION_RESTORE_FAIL"
    RESET_CODE_SENT = "RESET_CODE_SENT"
    RESET_CODE_REJECTED = "RESET_CODE_REJECTED"
    PASSWORD_RESET = "PASSWORD_RESET"
    SYSTEM_ERROR = "SYSTEM_ERROR"

ALLOWED_METADATA_KEYS = {
    "reason", "step", "error_message", "role", "mobile_suffix"
}

class SQLiteAuditRepository:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def _conn(self):
        return sqlite3.connect(self.db_path)

    def init_db(self):
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    ts TEXT NOT NULL,
                    actor TEXT,
                    actor_role TEXT,
                    action TEXT NOT NULL,
                    target_type TEXT NOT NULL,
                    metadata_json TEXT,
                    result TEXT NOT NULL
                )
            """)
            conn.commit()

    def log_action(
        self,
        action: Any,
        target_type: str,
        actor: Optional[str] = None,
        actor_role: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        result: str = "success"
    ):
        """Logs an action to the audit repository. Metadata is JSON serialized and constrained."""
        try:
            meta_str = None
            if metadata is not None:
                safe_meta = {}
                for k, v in metadata.items():
                    if k in ALLOWED_METADATA_KEYS and "password" not in str(v).lower() and "token" not in str(v).lower():
                        safe_meta[k] = v
                try:
                    meta_str = json.dumps(safe_meta)
                    if len(meta_str) > 2000:
                        safe_meta["truncated"] = True
                        meta_str = json.dumps(safe_meta)[:2000]
                except (TypeError, ValueError):
                    meta_str = "{\"error\": \"unserializable\"}"

            ts = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")
            action_val = action.value if hasattr(action, "value") else str(action)[:50]
            if not action_val: action_val = "UNKNOWN"

            target_type = str(target_type)[:50] if target_type else "UNKNOWN"
            actor = str(actor)[:254] if actor is not None else None
            actor_role = str(actor_role)[:20] if actor_role is not None else None
            result = str(result)[:20] if result else "unknown"

            with self._conn() as conn:
                conn.execute("""
                    INSERT INTO audit_log
                    (ts, actor, actor_role, action, target_type, metadata_json, result)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (ts, actor, actor_role, action_val, target_type, meta_str, result))
                conn.commit()
        except Exception as e:
            # Audit failures must not break login or recovery
            log.error(f"Audit log failed for action {action}: {e}", exc_info=True)

    def get_logs(self, limit: int = 100, action_filter: Optional[str] = None) -> List[Tuple]:
        """Fetches the most recent audit entries for the settings page."""
        try:
            with self._conn() as conn:
                query = """
                    SELECT id, ts, COALESCE(actor, 'SYSTEM'), actor_role, action,
                           target_type, metadata_json, result
                    FROM audit_log
                    WHERE 1=1
                """
                params = []
                if action_filter and action_filter != "All":
                    query += " AND action = ?"
                    params.append(action_filter)

                query += " ORDER BY id DESC LIMIT ?"
                params.append(limit)

                return conn.execute(query, tuple(params)).fetchall()
        except Exception as e:
            log.error(f"Failed to fetch audit logs: {e}", exc_info=True)
            return []
