"""Application layer contracts for orchestrating high-level flows."""

from .auth_flow import AuthFlowResult, AuthFlowStatus, complete_login, ensure_authenticated_session
from .auth_session import AuthSession
from .bootstrap import StartupResult, StartupStatus, run_startup
from .domain_models import Notification
from .reset_flow import LoginStep, MobileStep, OtpStep, ResetFlow, ResetStep, StepOutcome
from .route_guard import RouteDecision, evaluate, post_login_target
from .session_models import AuthState, AuthUser, Role, is_super_operator

__all__ = [
    "AuthFlowResult",
    "AuthFlowStatus",
    "AuthSession",
    "AuthState",
    "AuthUser",
    "LoginStep",
    "MobileStep",
    "Notification",
    "OtpStep",
    "ResetFlow",
    "ResetStep",
    "Role",
    "RouteDecision",
    "StartupResult",
    "StartupStatus",
    "StepOutcome",
    "complete_login",
    "ensure_authenticated_session",
    "evaluate",
    "is_super_operator",
    "post_login_target",
    "run_startup",
]
