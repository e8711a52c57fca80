"""Session controller: the single owner of who is signed in."""

import logging
import sqlite3
from typing import Optional

from infrastructure.repositories.sqlite_audit_repository import AuditAction, SQLiteAuditRepository
from infrastructure.repositories.sqlite_session_repository import (
    MalformedSessionRecordError,
    SessionRecord,
    SQLiteSessionStore,
    new_session_token,
)
from infrastructure.verification.backend import VerificationBackend
from use_cases.session_models import DEFAULT_ROLE, AuthState, AuthUser

log = logging.getLogger(__name__)


class AuthSession:
    """
    Wraps the persisted session record and the verification backend.

    Built once per UI session and handed to every consumer; nothing else
    writes the session record. `token` identifies this browser's record: it
    comes from the browser cookie on startup and is replaced on every login.
    The role is always the default operator role: the backend does not
    report one yet.
    """

    def __init__(
        self,
        store: SQLiteSessionStore,
        backend: VerificationBackend,
        audit_repo: Optional[SQLiteAuditRepository] = None,
        token: Optional[str] = None,
    ):
        self._store = store
        self._backend = backend
        self._audit_repo = audit_repo
        self._token = token
        self._user: Optional[AuthUser] = None
        self._is_loading = False
        # Bumped by logout; a login that started before it must not resurrect the session
        self._generation = 0

    @property
    def token(self) -> Optional[str]:
        return self._token

    def current(self) -> AuthState:
        return AuthState(user=self._user, is_loading=self._is_loading)

    def _audit(self, action: AuditAction, actor: Optional[str], result: str = "success", actor_role: Optional[str] = None, **metadata):
        if self._audit_repo is None:
            return
        self._audit_repo.log_action(
            action,
            target_type="session",
            actor=actor,
            actor_role=actor_role,
            metadata=metadata or None,
            result=result,
        )

    def _discard_record(self):
        if self._token is None:
            return
        try:
            self._store.clear(self._token)
        except sqlite3.Error as e:
            log.error(f"Could not discard stored session: {e}", exc_info=True)

    async def initialize(self) -> AuthState:
        """Restores the session saved by a previous run of this browser. Never raises."""
        self._is_loading = True
        try:
            record = None
            if self._token is not None:
                try:
                    record = self._store.read_record(self._token)
                except MalformedSessionRecordError as e:
                    log.warning(f"Discarding stored session: {e}")
                    self._discard_record()
                    self._audit(AuditAction.SESSION_RESTORE_FAIL, None, result="deny", reason="malformed_record")
                except sqlite3.Error as e:
                    log.error(f"Could not read stored session: {e}", exc_info=True)

            if record is not None:
                self._user = AuthUser(identity=record.identity, role=DEFAULT_ROLE)
                log.info("Session restored from storage")
            else:
                self._token = None
        finally:
            self._is_loading = False
        return self.current()

    async def login(self, identity: str, credential: str) -> bool:
        if self._is_loading:
            log.warning("Login ignored: another session operation is in progress")
            return False

        self._is_loading = True
        generation = self._generation
        try:
            try:
                accepted = await self._backend.authenticate(identity, credential)
            except Exception as e:
                log.error(f"Login error: {e}", exc_info=True)
                self._audit(AuditAction.LOGIN_FAIL, identity, result="error", reason="backend_error")
                return False

            if generation != self._generation:
                log.info("Login result dropped: logged out while it was in flight")
                return False

            if not accepted:
                log.info("Login rejected by verification backend")
                self._audit(AuditAction.LOGIN_FAIL, identity, result="deny", reason="invalid_credentials")
                return False

            self._discard_record()
            self._token = new_session_token()
            self._user = AuthUser(identity=identity, role=DEFAULT_ROLE)
            try:
                self._store.write_record(self._token, SessionRecord(identity=identity))
            except sqlite3.Error as e:
                log.error(f"Session could not be persisted, it will not survive a reload: {e}", exc_info=True)
            self._audit(AuditAction.LOGIN_SUCCESS, identity, actor_role=self._user.role)
            return True
        finally:
            self._is_loading = False

    def logout(self):
        self._generation += 1
        user = self._user
        self._user = None
        self._discard_record()
        self._token = None
        if user is not None:
            self._audit(AuditAction.LOGOUT, user.identity, actor_role=user.role)
