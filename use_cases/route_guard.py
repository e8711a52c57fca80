"""Navigation gate for protected pages."""

from dataclasses import dataclass
from typing import Literal, Optional

from use_cases.session_models import AuthState

RouteStatus = Literal["RENDER", "LOADING", "REDIRECT"]

LOGIN_PAGE = "login"
NOT_FOUND_PAGE = "not_found"
DEFAULT_PAGE = "dashboard"

PROTECTED_PAGES = (
    "dashboard",
    "studios",
    "services",
    "drivers",
    "orders",
    "analytics",
    "revenue",
    "users",
    "settings",
)
PUBLIC_PAGES = (LOGIN_PAGE, NOT_FOUND_PAGE)


@dataclass(frozen=True)
class RouteDecision:
    status: RouteStatus
    page: str
    return_to: Optional[str] = None


def resolve_page(requested: Optional[str]) -> str:
    if not requested:
        return DEFAULT_PAGE
    if requested in PROTECTED_PAGES or requested in PUBLIC_PAGES:
        return requested
    return NOT_FOUND_PAGE


def evaluate(state: AuthState, requested: Optional[str]) -> RouteDecision:
    """
    Decides what to show for one navigation. Called on every navigation,
    since a logout can happen from any page.
    """
    page = resolve_page(requested)

    if page == NOT_FOUND_PAGE:
        return RouteDecision(status="RENDER", page=page)

    if page == LOGIN_PAGE:
        if state.is_authenticated and not state.is_loading:
            return RouteDecision(status="REDIRECT", page=DEFAULT_PAGE)
        return RouteDecision(status="RENDER", page=page)

    if state.is_loading:
        return RouteDecision(status="LOADING", page=page)
    if not state.is_authenticated:
        return RouteDecision(status="REDIRECT", page=LOGIN_PAGE, return_to=page)
    return RouteDecision(status="RENDER", page=page)


def post_login_target(return_to: Optional[str]) -> str:
    """Where to go after a successful login: the remembered page, if it is a protected one."""
    if return_to in PROTECTED_PAGES:
        return return_to
    return DEFAULT_PAGE
