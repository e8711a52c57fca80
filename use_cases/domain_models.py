from dataclasses import dataclass
from typing import Literal

NotificationLevel = Literal["success", "warning", "error", "info"]

@dataclass(frozen=True)
class Notification:
    """DTO for a single user-facing message (toast or inline error)."""
    title: str
    description: str
    level: NotificationLevel = "info"