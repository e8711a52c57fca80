from infrastructure.repositories.sqlite_audit_repository import SQLiteAuditRepository
from infrastructure.repositories.sqlite_session_repository import SQLiteSessionStore
from infrastructure.verification.backend import VerificationBackend
from infrastructure.verification.http_backend import HttpVerificationBackend
from infrastructure.verification.static_backend import StaticVerificationBackend
import logging
import os
import streamlit as st

log = logging.getLogger(__name__)

DEFAULT_DB = "opspanel.db"
DEFAULT_API_TIMEOUT = 10.0

def get_secret(key):
    try:
        return st.secrets.get(key)
    except FileNotFoundError:
        return None

def get_setting(key, default=None):
    return get_secret(key) or os.getenv(key) or default

def get_db_path() -> str:
    return get_setting("OPSPANEL_DB", DEFAULT_DB)

_session_store = None
_audit_repo = None

def get_session_store() -> SQLiteSessionStore:
    global _session_store
    db_path = get_db_path()
    if _session_store is None or _session_store.db_path != db_path:
        _session_store = SQLiteSessionStore(db_path)
    return _session_store

def get_audit_repo() -> SQLiteAuditRepository:
    global _audit_repo
    db_path = get_db_path()
    if _audit_repo is None or _audit_repo.db_path != db_path:
        _audit_repo = SQLiteAuditRepository(db_path)
    return _audit_repo

def init_storage():
    get_session_store().init_db()
    get_audit_repo().init_db()

def build_verification_backend() -> VerificationBackend:
    """HTTP API when VERIFY_API_URL is configured, otherwise the single-operator static backend."""
    api_url = get_setting("VERIFY_API_URL")
    if api_url:
        try:
            timeout = float(get_setting("VERIFY_API_TIMEOUT", DEFAULT_API_TIMEOUT))
        except ValueError:
            log.warning("VERIFY_API_TIMEOUT is not a number, using the default")
            timeout = DEFAULT_API_TIMEOUT
        return HttpVerificationBackend(api_url, api_token=get_setting("VERIFY_API_TOKEN"), timeout=timeout)

    admin_login = get_setting("ADMIN_LOGIN")
    admin_password = get_setting("ADMIN_PASSWORD")
    if not admin_login or not admin_password:
        log.warning("Neither VERIFY_API_URL nor ADMIN_LOGIN/ADMIN_PASSWORD is set; nobody will be able to sign in")
    return StaticVerificationBackend(
        identity=admin_login or "",
        password=admin_password or "",
        mobile_number=get_setting("ADMIN_MOBILE", ""),
        log_codes=str(get_setting("ADMIN_LOG_CODES", "")).lower() in ("1", "true", "yes"),
    )
