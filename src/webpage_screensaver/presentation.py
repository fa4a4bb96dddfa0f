"""
Presentation seam between a session and the user.

The session decides when the cursor shows, when the dismiss control
appears and when an error must be reported; a Presenter decides how.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .engine import DevToolsEngine
from .notifications import NotificationSender

logger = logging.getLogger(__name__)


class Presenter(ABC):
    """User-facing side effects of one session."""

    @abstractmethod
    def hide_cursor(self) -> None:
        pass

    @abstractmethod
    def show_cursor(self) -> None:
        pass

    @abstractmethod
    def show_dismiss(self) -> None:
        """Show a control the user can click to close the screensaver."""
        pass

    @abstractmethod
    def report_error(self, title: str, message: str) -> None:
        """Tell the user about an error that ends the session."""
        pass

    def session_ended(self, screen_number: int, reason: str) -> None:
        """Called once when the session closes."""
        pass


class EnginePresenter(Presenter):
    """
    Presents through the browser window and desktop notifications.

    Cursor and dismiss control live in the page; errors go to the log and,
    when enabled, to notify-send.
    """

    def __init__(
        self,
        engine: DevToolsEngine,
        notifier: Optional[NotificationSender] = None,
    ) -> None:
        self.engine = engine
        self.notifier = notifier or NotificationSender()

    def hide_cursor(self) -> None:
        self.engine.set_cursor_visible(False)

    def show_cursor(self) -> None:
        self.engine.set_cursor_visible(True)

    def show_dismiss(self) -> None:
        self.engine.show_dismiss_control()

    def report_error(self, title: str, message: str) -> None:
        logger.error(f"{title}: {message}")
        self.notifier.notify_error(title, message)

    def session_ended(self, screen_number: int, reason: str) -> None:
        self.notifier.notify_session_ended(screen_number, reason)
