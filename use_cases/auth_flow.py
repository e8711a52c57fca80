"""Authentication flow orchestration (application layer)."""

from dataclasses import dataclass
from typing import Literal, Optional

from use_cases import route_guard
from use_cases.auth_session import AuthSession
from utils import session_manager

AuthFlowStatus = Literal["CONTINUE", "LOADING", "STOP"]


@dataclass(frozen=True)
class AuthFlowResult:
    """Result contract for auth flow orchestration."""

    status: AuthFlowStatus
    reason: str
    page: str
    identity: Optional[str] = None


def ensure_authenticated_session(auth_session: AuthSession, requested_page: Optional[str]) -> AuthFlowResult:
    """Run the route guard for this navigation and return a control-flow status."""
    session_manager.init_session_state()
    state = auth_session.current()
    decision = route_guard.evaluate(state, requested_page)

    if decision.status == "LOADING":
        return AuthFlowResult(status="LOADING", reason="session_loading", page=decision.page)

    if decision.status == "REDIRECT":
        if decision.return_to is not None:
            session_manager.st.session_state.return_to = decision.return_to
        session_manager.st.session_state.page = decision.page
        if decision.page == route_guard.LOGIN_PAGE:
            return AuthFlowResult(status="STOP", reason="auth_required", page=decision.page)
        return AuthFlowResult(
            status="CONTINUE", reason="already_authenticated", page=decision.page, identity=state.user.identity
        )

    session_manager.st.session_state.page = decision.page
    if decision.page == route_guard.LOGIN_PAGE:
        return AuthFlowResult(status="STOP", reason="login_requested", page=decision.page)
    identity = state.user.identity if state.user is not None else None
    return AuthFlowResult(status="CONTINUE", reason="authenticated", page=decision.page, identity=identity)


def complete_login() -> str:
    """Consume the remembered page after a successful login and return where to go."""
    target = route_guard.post_login_target(session_manager.st.session_state.get("return_to"))
    session_manager.st.session_state.return_to = None
    return target
