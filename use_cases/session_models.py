"""Session DTOs shared across application layers."""

from dataclasses import dataclass
from typing import Literal, Optional

Role = Literal["operator", "super_operator"]

DEFAULT_ROLE: Role = "operator"


@dataclass(frozen=True)
class AuthUser:
    identity: str
    role: Role = DEFAULT_ROLE


@dataclass(frozen=True)
class AuthState:
    """Read-only snapshot of the session controller."""

    user: Optional[AuthUser] = None
    is_loading: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def is_super_operator(user: AuthUser) -> bool:
    return user.role == "super_operator"
