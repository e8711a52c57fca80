"""Startup orchestration: storage, backend wiring and session rehydration."""

from dataclasses import dataclass
from typing import Literal, Tuple

import logging

import auth
from use_cases.auth_session import AuthSession
from use_cases.reset_flow import ResetFlow
from utils import session_manager

log = logging.getLogger(__name__)

StartupStatus = Literal["CONTINUE", "STOP"]


@dataclass(frozen=True)
class StartupResult:
    """Result contract for startup/bootstrap orchestration."""

    status: StartupStatus
    planned_steps: Tuple[str, ...]


def run_startup() -> StartupResult:
    """Build the per-tab session objects once; later reruns reuse them."""
    executed_steps = []

    session_manager.init_session_state()
    executed_steps.append("init_session_state")

    state = session_manager.st.session_state
    if state.auth_session is not None and state.reset_flow is not None:
        return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps))

    try:
        auth.init_storage()
        executed_steps.append("init_storage")
    except Exception as e:
        log.error(f"Storage initialisation failed: {e}", exc_info=True)
        return StartupResult(status="STOP", planned_steps=tuple(executed_steps))

    backend = auth.build_verification_backend()
    executed_steps.append("build_verification_backend")
    audit_repo = auth.get_audit_repo()

    browser_token = session_manager.read_browser_token()
    auth_session = AuthSession(auth.get_session_store(), backend, audit_repo=audit_repo, token=browser_token)
    session_manager.run_async(auth_session.initialize())
    if browser_token and auth_session.token is None:
        # Cookie points at a session this server no longer knows
        session_manager.forget_browser_token()
    state.auth_session = auth_session
    executed_steps.append("initialize_auth_session")

    state.reset_flow = ResetFlow(backend, state.scheduler, audit_repo=audit_repo)
    executed_steps.append("create_reset_flow")

    return StartupResult(status="CONTINUE", planned_steps=tuple(executed_steps))
