"""
Common exception classes for the web page screensaver.

Provides domain-specific exceptions for consistent error handling across modules.
All exceptions inherit from ScreensaverError for unified catching at CLI level.
"""


class ScreensaverError(Exception):
    """
    Base exception for all screensaver errors.

    All domain-specific exceptions inherit from this class, allowing
    callers to catch all screensaver errors with a single except clause.
    """
    pass


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigError(ScreensaverError):
    """
    Configuration-related errors.

    Raised when:
    - Config file is malformed or has unknown sections/keys
    - Config validation fails
    - A screen has no preferences section
    """
    pass


class ConfigValidationError(ConfigError):
    """
    Config value validation failed.

    Raised when a config value is present but invalid (e.g., out of range,
    wrong type after parsing, unknown multi-screen mode).
    """
    pass


class ScreenNotConfiguredError(ConfigError):
    """
    No preferences exist for a screen.

    Raised when neither [screens.<n>] nor [screens.default] is present.
    """
    pass


# ============================================================================
# Rendering Engine Errors
# ============================================================================

class RenderingError(ScreensaverError):
    """
    Rendering engine errors.

    Base class for errors raised by the browser that displays the pages.
    """
    pass


class EngineInitError(RenderingError):
    """
    The rendering engine could not be started.

    Raised when the browser fails to launch, never exposes its
    DevTools endpoint, or has no page target to attach to.
    Fatal to the session that owns the engine.
    """
    pass


class EngineConnectionError(RenderingError):
    """
    Communication with the rendering engine failed.

    Raised for DevTools HTTP errors, websocket failures, or
    a closed connection.
    """
    pass


class NavigationError(RenderingError):
    """A single navigation request could not be issued."""
    pass


# ============================================================================
# Session Errors
# ============================================================================

class SessionError(ScreensaverError):
    """
    Session lifecycle errors.

    Raised when an operation is requested in a state that does not allow it,
    such as starting a session twice.
    """
    pass


# ============================================================================
# Monitor Detection Errors
# ============================================================================

class MonitorDetectionError(ScreensaverError):
    """
    Monitor detection errors.

    Base class for errors during compositor monitor detection.
    """
    pass


class CompositorNotFoundError(MonitorDetectionError):
    """
    No supported compositor is running.

    Raised when neither niri, sway, nor hyprland is detected.
    """
    pass


class CompositorCommunicationError(MonitorDetectionError):
    """
    Failed to communicate with compositor.

    Raised when compositor IPC commands fail or time out.
    """
    pass


class NoMonitorsDetectedError(MonitorDetectionError):
    """
    No monitors detected from compositor.

    Raised when compositor reports no connected outputs.
    """
    pass

