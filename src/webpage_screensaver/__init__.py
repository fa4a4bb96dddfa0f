"""
Web Page Screensaver - kiosk screensaver that rotates through web pages.

Shows a rotating list of web pages in a kiosk browser window on every
screen, validating each address before it is loaded, and closes all
screens on the first genuine user activity.
"""

__version__ = "1.0.0"

from .config import (
    Config,
    ScreenPreferences,
    ScreensaverConfig,
    BrowserConfig,
    LoggingConfig,
)
from .security import ValidationOutcome, validate, validate_list, mask_for_audit
from .activity import ActivityMonitor, InputStream
from .rotation import RotationScheduler, RotationTimer
from .session import SessionController, SessionState
from .orchestrator import SessionOrchestrator
from .engine import DevToolsEngine, RenderingEngine
from .notifications import NotificationConfig, NotificationSender
from .monitor_detection import MonitorDetector, ScreenDescriptor, detect_screens

__all__ = [
    "Config",
    "ScreenPreferences",
    "ScreensaverConfig",
    "BrowserConfig",
    "LoggingConfig",
    "ValidationOutcome",
    "validate",
    "validate_list",
    "mask_for_audit",
    "ActivityMonitor",
    "InputStream",
    "RotationScheduler",
    "RotationTimer",
    "SessionController",
    "SessionState",
    "SessionOrchestrator",
    "DevToolsEngine",
    "RenderingEngine",
    "NotificationConfig",
    "NotificationSender",
    "MonitorDetector",
    "ScreenDescriptor",
    "detect_screens",
]
