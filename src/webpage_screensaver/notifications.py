"""
Desktop notifications for screensaver errors and session ends.

Uses notify-send (libnotify) for cross-desktop compatibility.
"""

import logging
import subprocess
import shutil
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

URGENCY_LEVELS = ("low", "normal", "critical")


@dataclass
class NotificationConfig:
    """Configuration for desktop notifications."""
    enabled: bool = False
    timeout_ms: int = 5000  # Notification timeout in milliseconds
    urgency: str = "normal"  # low, normal, critical
    notify_on_end: bool = False  # Also notify when a session ends normally

    def __post_init__(self) -> None:
        if self.urgency not in URGENCY_LEVELS:
            logger.warning(f"Unknown notification urgency '{self.urgency}', using 'normal'")
            self.urgency = "normal"


class NotificationSender:
    """Send desktop notifications for screensaver events."""

    def __init__(self, config: Optional[NotificationConfig] = None) -> None:
        self.config = config or NotificationConfig()
        self._notify_send_path: Optional[str] = None

        if self.config.enabled:
            self._notify_send_path = shutil.which("notify-send")
            if not self._notify_send_path:
                logger.warning("notify-send not found, notifications disabled")
                self.config.enabled = False

    def is_available(self) -> bool:
        """Check if notifications are available."""
        return self.config.enabled and self._notify_send_path is not None

    def notify_session_ended(self, screen_number: int, reason: str) -> bool:
        """
        Send notification when a session closes.

        Only sent when notify_on_end is set.

        Returns:
            True if notification was sent successfully
        """
        if not self.is_available() or not self.config.notify_on_end:
            return False

        return self._send_notification(
            title="Screensaver Closed",
            body=f"Screen {screen_number}: {reason}",
            urgency="low",
        )

    def notify_error(self, message: str, details: Optional[str] = None) -> bool:
        """
        Send notification for errors.

        Args:
            message: Error message
            details: Optional error details

        Returns:
            True if notification was sent successfully
        """
        if not self.is_available():
            return False

        body = message
        if details:
            body += f"\n{details[:200]}"

        return self._send_notification(
            title="Web Page Screensaver Error",
            body=body,
            urgency="critical",
        )

    def _send_notification(
        self,
        title: str,
        body: str,
        urgency: Optional[str] = None,
    ) -> bool:
        if not self._notify_send_path:
            return False

        cmd = [
            self._notify_send_path,
            "--app-name=Web Page Screensaver",
            f"--expire-time={self.config.timeout_ms}",
            f"--urgency={urgency or self.config.urgency}",
            title,
            body,
        ]

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=5,
            )

            if result.returncode != 0:
                logger.warning(f"notify-send failed: {result.stderr.decode()}")
                return False

            logger.debug(f"Notification sent: {title}")
            return True

        except subprocess.TimeoutExpired:
            logger.warning("notify-send timed out")
            return False
        except OSError as e:
            logger.warning(f"Failed to send notification: {e}")
            return False
