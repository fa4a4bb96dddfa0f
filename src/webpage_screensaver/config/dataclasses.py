"""
Configuration dataclasses for the web page screensaver.
"""

from pathlib import Path
from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field

from ..exceptions import ConfigValidationError


DEFAULT_URLS = ["https://github.com/cwc/web-page-screensaver/"]

MIN_ROTATION_INTERVAL = 1
MAX_ROTATION_INTERVAL = 86400  # 24 hours

MULTI_SCREEN_MODES = ("all", "primary")


@dataclass
class ScreenPreferences:
    """
    Preferences for a single screen.

    Read once when a session starts; there is no live reload.
    """
    urls: List[str] = field(default_factory=list)
    randomize: bool = False
    rotation_interval: int = 30  # Seconds between page changes
    close_on_activity: bool = True

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        close_on_activity: bool = True,
        section: str = "screens",
    ) -> 'ScreenPreferences':
        """
        Build preferences from a [screens.<n>] section.

        Args:
            data: Section dictionary from the TOML file
            close_on_activity: Global default when the section has no override
            section: Section name used in error messages

        Raises:
            ConfigValidationError: If a value has the wrong type or range
        """
        urls = data.get("urls", [])
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ConfigValidationError(
                f"'{section}.urls' must be a list of strings, got {urls!r}"
            )

        interval = data.get("rotation_interval", 30)
        if isinstance(interval, bool) or not isinstance(interval, int):
            raise ConfigValidationError(
                f"'{section}.rotation_interval' must be an integer, got {type(interval).__name__}"
            )
        if interval < MIN_ROTATION_INTERVAL or interval > MAX_ROTATION_INTERVAL:
            raise ConfigValidationError(
                f"Rotation interval ({interval}s) in '{section}' out of range.\n"
                f"Must be between {MIN_ROTATION_INTERVAL} and {MAX_ROTATION_INTERVAL} seconds."
            )

        randomize = data.get("randomize", False)
        if not isinstance(randomize, bool):
            raise ConfigValidationError(f"'{section}.randomize' must be true or false")

        close = data.get("close_on_activity", close_on_activity)
        if not isinstance(close, bool):
            raise ConfigValidationError(f"'{section}.close_on_activity' must be true or false")

        return cls(
            urls=list(urls),
            randomize=randomize,
            rotation_interval=interval,
            close_on_activity=close,
        )


@dataclass
class ScreensaverConfig:
    """Global screensaver behaviour."""
    close_on_activity: bool = True
    multi_screen: str = "all"  # "all" or "primary"
    grace_period_seconds: float = 1.0


@dataclass
class BrowserConfig:
    """
    Settings for the Chromium windows that render the pages.

    Each screen gets its own browser process listening on
    base_port + screen number.
    """
    executable: str = "chromium"
    host: str = "127.0.0.1"
    base_port: int = 9222
    user_data_dir: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)
    startup_timeout: int = 20
    launch: bool = True  # False = attach to already running browsers

    def port_for(self, screen_number: int) -> int:
        """DevTools port used for a screen."""
        return self.base_port + screen_number

    def endpoint_for(self, screen_number: int) -> str:
        """DevTools HTTP endpoint for a screen."""
        return f"http://{self.host}:{self.port_for(screen_number)}"

    def get_user_data_dir(self, screen_number: int) -> Path:
        """Per-screen profile directory, so sessions never share cookies or cache."""
        if self.user_data_dir:
            base = Path(self.user_data_dir).expanduser()
        else:
            base = Path("~/.cache/webpage-screensaver/profiles").expanduser()
        return base / f"screen-{screen_number}"


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    verbose: bool = False
    audit_file: Optional[str] = None

    def get_audit_file(self) -> Optional[Path]:
        """Get absolute audit log path, if configured."""
        if self.audit_file:
            return Path(self.audit_file).expanduser()
        return None
