"""Interactive session core."""

from .controller import SessionController, View
from .notices import Confirmation, Notice, NoticeBoard, Notifier

__all__ = ["Confirmation", "Notice", "NoticeBoard", "Notifier", "SessionController", "View"]
