"""
Main Config class for the web page screensaver.

Config doubles as the read-only preferences provider for sessions:
sessions call get_screen_preferences() once at start and read the
enumerated screens from it.
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List, TYPE_CHECKING
from dataclasses import dataclass, field

try:
    import tomli
except ImportError:
    raise ImportError("Required package 'tomli' not found. Install with: pip install tomli")

import tomli_w

from ..exceptions import ConfigError, ConfigValidationError, ScreenNotConfiguredError
from ..monitor_detection import DEFAULT_SCREEN, ScreenDescriptor

from .dataclasses import (
    DEFAULT_URLS,
    MULTI_SCREEN_MODES,
    ScreenPreferences,
    ScreensaverConfig,
    BrowserConfig,
    LoggingConfig,
)
from .validation import validate_toml_structure

if TYPE_CHECKING:
    from ..notifications import NotificationConfig


DEFAULT_CONFIG: Dict[str, Any] = {
    'screensaver': {
        'close_on_activity': True,
        'multi_screen': 'all',
    },
    'screens': {
        'default': {
            'urls': DEFAULT_URLS,
            'randomize': False,
            'rotation_interval': 30,
        },
    },
    'browser': {
        'executable': 'chromium',
        'base_port': 9222,
    },
    'logging': {
        'level': 'INFO',
    },
}


@dataclass
class Config:
    """
    Main configuration class for the web page screensaver.

    Configuration is loaded from a TOML file. Screen sections are kept raw
    and only validated when a session reads them, so a broken section ends
    that one session instead of the whole screensaver.
    """

    screensaver: ScreensaverConfig = field(default_factory=ScreensaverConfig)
    screen_sections: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    screens: List[ScreenDescriptor] = field(default_factory=lambda: [DEFAULT_SCREEN])
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    notifications: Optional['NotificationConfig'] = None
    config_file: Optional[Path] = None

    def __post_init__(self) -> None:
        """Validate global settings."""
        if self.screensaver.multi_screen not in MULTI_SCREEN_MODES:
            raise ConfigValidationError(
                f"Invalid multi_screen mode: {self.screensaver.multi_screen}\n"
                f"Must be one of: {list(MULTI_SCREEN_MODES)}"
            )

        if self.screensaver.grace_period_seconds < 0:
            raise ConfigValidationError(
                f"Grace period ({self.screensaver.grace_period_seconds}s) must not be negative."
            )

        if self.browser.base_port < 1024 or self.browser.base_port > 65000:
            raise ConfigValidationError(
                f"Browser base port ({self.browser.base_port}) out of range.\n"
                "Must be between 1024 and 65000."
            )

        if self.browser.startup_timeout <= 0:
            raise ConfigValidationError(
                f"Browser startup timeout ({self.browser.startup_timeout}s) must be positive."
            )

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.logging.level.upper() not in valid_levels:
            raise ConfigValidationError(
                f"Invalid log level: {self.logging.level}\n"
                f"Must be one of: {valid_levels}"
            )

        if not self.screens:
            self.screens = [DEFAULT_SCREEN]

    @property
    def close_on_activity(self) -> bool:
        """Global 'close on activity' flag."""
        return self.screensaver.close_on_activity

    @property
    def primary_screen(self) -> ScreenDescriptor:
        """The screen flagged primary (screen 0 if none is)."""
        if not self.screens:
            return DEFAULT_SCREEN
        for screen in self.screens:
            if screen.is_primary:
                return screen
        return self.screens[0]

    def get_screen(self, screen_number: Optional[int]) -> ScreenDescriptor:
        """
        Look up a screen by number.

        None anchors to the primary screen.

        Raises:
            ConfigError: If no such screen is connected
        """
        if screen_number is None:
            return self.primary_screen
        for screen in self.screens:
            if screen.screen_number == screen_number:
                return screen
        raise ConfigError(
            f"Screen {screen_number} is not connected. "
            f"Available screens: {[s.screen_number for s in self.screens]}"
        )

    def get_effective_screens(self) -> List[ScreenDescriptor]:
        """Screens that get a session, according to multi_screen."""
        if self.screensaver.multi_screen == "primary":
            return [self.primary_screen]
        return list(self.screens)

    def get_screen_preferences(self, screen_number: int) -> ScreenPreferences:
        """
        Read preferences for one screen.

        Falls back to [screens.default] when the screen has no section.

        Raises:
            ScreenNotConfiguredError: If neither section exists
            ConfigValidationError: If the section holds invalid values
        """
        key = str(screen_number)
        if key in self.screen_sections:
            return self.get_section_preferences(key)
        if "default" in self.screen_sections:
            return self.get_section_preferences("default")
        raise ScreenNotConfiguredError(
            f"No preferences for screen {screen_number}. "
            f"Add a [screens.{screen_number}] or [screens.default] section to the config."
        )

    def get_section_preferences(self, name: str) -> ScreenPreferences:
        """
        Read one [screens.<name>] section.

        Raises:
            ScreenNotConfiguredError: If the section does not exist
            ConfigValidationError: If the section holds invalid values
        """
        if name not in self.screen_sections:
            raise ScreenNotConfiguredError(f"No [screens.{name}] section in the config")
        return ScreenPreferences.from_dict(
            self.screen_sections[name],
            close_on_activity=self.close_on_activity,
            section=f"screens.{name}",
        )

    @classmethod
    def get_config_dir(cls) -> Path:
        """
        Get user configuration directory.

        Uses XDG_CONFIG_HOME if set, otherwise defaults to ~/.config.
        """
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "webpage-screensaver"
        return Path.home() / ".config" / "webpage-screensaver"

    @classmethod
    def get_config_file(cls) -> Path:
        """Get default config file path."""
        return cls.get_config_dir() / "config.toml"

    @classmethod
    def write_default(cls, config_file: Optional[Path] = None) -> bool:
        """
        Write the default configuration file.

        Existing files are never overwritten.

        Returns:
            True if a file was written, False if one already existed
        """
        logger = logging.getLogger(__name__)
        config_file = config_file or cls.get_config_file()

        if config_file.exists():
            logger.debug(f"Config already exists at {config_file}, not overwriting")
            return False

        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(config_file, 'wb') as f:
                tomli_w.dump(DEFAULT_CONFIG, f)
        except OSError as e:
            raise ConfigError(f"Failed to write default config to {config_file}: {e}") from e

        logger.info(f"Wrote default config to {config_file}")
        return True

    @classmethod
    def load(
        cls,
        config_file: Optional[Path] = None,
        detect_monitors: bool = True,
    ) -> 'Config':
        """
        Load configuration from TOML file with screen auto-detection.

        Args:
            config_file: Optional path to config TOML file
            detect_monitors: Whether to auto-detect screens from compositor

        Returns:
            Config instance with loaded settings

        Raises:
            ConfigError: If the file cannot be parsed or has an invalid structure
        """
        logger = logging.getLogger(__name__)

        if not config_file:
            config_file = cls.get_config_file()

        if config_file.exists():
            try:
                with open(config_file, 'rb') as f:
                    config_dict = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigError(f"Invalid TOML in {config_file}: {e}") from e
            except OSError as e:
                raise ConfigError(f"Failed to read config {config_file}: {e}") from e

            validate_toml_structure(config_dict, config_file)
            logger.info(f"Loaded config from {config_file}")
        else:
            logger.info(f"No config at {config_file}, using defaults")
            config_dict = DEFAULT_CONFIG

        screens: List[ScreenDescriptor] = []
        if detect_monitors:
            try:
                from ..monitor_detection import detect_screens
                screens = detect_screens()
                logger.info(f"Detected screens: {screens}")
            except Exception as e:
                logger.warning(f"Screen detection failed, using a single default screen: {e}")

        notifications_config = None
        if 'notifications' in config_dict:
            from ..notifications import NotificationConfig
            notifications_config = NotificationConfig(**config_dict['notifications'])

        screen_sections = {
            str(name): dict(section)
            for name, section in config_dict.get('screens', {}).items()
        }

        return cls(
            screensaver=ScreensaverConfig(**config_dict.get('screensaver', {})),
            screen_sections=screen_sections,
            screens=screens,
            browser=BrowserConfig(**config_dict.get('browser', {})),
            logging=LoggingConfig(**config_dict.get('logging', {})),
            notifications=notifications_config,
            config_file=config_file,
        )
