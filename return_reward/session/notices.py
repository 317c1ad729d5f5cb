"""
Notices and confirmations surfaced by the session controller.

The view layer decides how to show them; the controller only needs a
Notifier injected at construction.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Protocol

from return_reward.errors import ReturnRewardError


@dataclass
class Notice:
    """A dismissible message for the user."""
    title: str
    message: str
    code: str = "info"
    dismissible: bool = True

    @classmethod
    def from_error(cls, title: str, error: ReturnRewardError) -> "Notice":
        return cls(title=title, message=error.message, code=error.code)


@dataclass
class Confirmation:
    """A pending yes/no gate in front of an irreversible action."""
    title: str
    message: str
    item_id: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None:
        ...


class NoticeBoard:
    """Default notifier: keeps notices until the user dismisses them."""

    def __init__(self):
        self.notices: List[Notice] = []

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def current(self) -> Optional[Notice]:
        return self.notices[0] if self.notices else None

    def dismiss(self) -> Optional[Notice]:
        if not self.notices:
            return None
        return self.notices.pop(0)
