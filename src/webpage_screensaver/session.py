"""
Per-screen screensaver session.

A SessionController drives one screen through its lifecycle:

    INITIALIZING -> PLAYING -> (AWAITING_USER_DISMISSAL) -> CLOSING

It reads the screen's preferences once, starts the rendering engine, feeds
the rotation through the URL validator into the engine, and watches the
screen's input for activity. Closing is terminal and reported exactly once.
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol

from .activity import ActivityMonitor, DismissRequested, InputEvent, InputStream, suspended
from .config import Config, ScreenPreferences
from .engine import NavigationEvent, RenderingEngine
from .exceptions import ConfigError, NavigationError, RenderingError
from .monitor_detection import ScreenDescriptor
from .presentation import Presenter
from .rotation import RandomSource, RotationScheduler, RotationTimer
from .security import log_audit, mask_for_audit, validate, validate_list

logger = logging.getLogger(__name__)

# Input right after launch must not end the session
GRACE_PERIOD_SECONDS = 1.0


class SessionState(Enum):
    INITIALIZING = "initializing"
    PLAYING = "playing"
    AWAITING_USER_DISMISSAL = "awaiting_user_dismissal"
    CLOSING = "closing"


class Timer(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]
ClosedCallback = Callable[["SessionController"], None]


class SessionController:
    """
    One screen's playback lifecycle.

    Collaborators are injected: the preferences provider (usually Config),
    the rendering engine for the screen, the presenter for cursor, dismiss
    control and error reporting, and the screen's input stream.
    """

    def __init__(
        self,
        screen: ScreenDescriptor,
        provider: Config,
        engine: RenderingEngine,
        presenter: Presenter,
        input_stream: Optional[InputStream] = None,
        *,
        rng: RandomSource = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = RotationTimer,
        on_closed: Optional[ClosedCallback] = None,
        grace_period: float = GRACE_PERIOD_SECONDS,
    ) -> None:
        self.screen = screen
        self.provider = provider
        self.engine = engine
        self.presenter = presenter
        self.input_stream = input_stream if input_stream is not None else engine.input_stream
        self.scheduler = RotationScheduler(rng)
        self.preferences: Optional[ScreenPreferences] = None
        self.close_reason: Optional[str] = None

        self._clock = clock
        self._timer_factory = timer_factory
        self._on_closed = on_closed
        self._grace_period = grace_period
        self._state = SessionState.INITIALIZING
        self._started_at: Optional[float] = None
        self._timer: Optional[Timer] = None

        self.monitor = ActivityMonitor()
        self.monitor.subscribe(self.on_activity)
        self.logger = logging.getLogger(f"{__name__}.screen{screen.screen_number}")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def screen_number(self) -> int:
        return self.screen.screen_number

    @property
    def is_closed(self) -> bool:
        return self._state is SessionState.CLOSING

    async def start(self) -> None:
        """
        Initialize the session.

        Configuration or engine failures close this session and are reported
        through the presenter; they never propagate.
        """
        if self._state is not SessionState.INITIALIZING:
            return

        try:
            self.preferences = self.provider.get_screen_preferences(self.screen_number)
        except ConfigError as e:
            self._fail("Configuration error", str(e))
            return

        self.presenter.hide_cursor()

        try:
            await self.engine.initialize()
        except RenderingError as e:
            self._fail("Could not start the browser", str(e))
            return

        # Closed from elsewhere while the engine was starting
        if self._state is not SessionState.INITIALIZING:
            return

        self.engine.add_listener(self._on_navigation)
        self._begin_playback()

    def _begin_playback(self) -> None:
        prefs = self.preferences
        valid_urls, removed = validate_list(prefs.urls)
        for url, reason in removed:
            log_audit(url, False, reason)

        self.input_stream.add_filter(self.monitor)
        self.input_stream.add_filter(self._dismiss_filter)
        self._started_at = self._clock()
        self._state = SessionState.PLAYING

        if not valid_urls:
            self.logger.warning("No valid URLs configured, screen left blank")
            self.engine.set_visible(False)
            return

        self.scheduler.initialize(valid_urls, shuffle=prefs.randomize)
        if len(valid_urls) > 1:
            self._timer = self._timer_factory(float(prefs.rotation_interval), self.rotate)
            self._timer.start()
            self.logger.info(f"Playing {len(valid_urls)} URLs, rotating every {prefs.rotation_interval}s")
        else:
            self.logger.info(f"Playing {mask_for_audit(valid_urls[0])}")

        self.rotate()

    def rotate(self) -> None:
        """
        Show the next URL.

        Candidates that fail validation are skipped, at most one full cycle;
        when every candidate fails, the surface is hidden and rotation stops.
        """
        if self._state not in (SessionState.PLAYING, SessionState.AWAITING_USER_DISMISSAL):
            return

        with suspended(self.input_stream, self.monitor,
                       restore_if=lambda: self._state is not SessionState.CLOSING):
            for _ in range(max(len(self.scheduler), 1)):
                url = self.scheduler.advance()
                if not url or not url.strip():
                    self.engine.set_visible(False)
                    return

                outcome = validate(url)
                log_audit(url, outcome.is_valid, outcome.reason)
                if not outcome:
                    continue

                self.engine.set_visible(True)
                try:
                    self.engine.navigate(outcome.url)
                except NavigationError as e:
                    self.logger.warning(f"Navigation to {mask_for_audit(url)} failed: {e}")
                return

            self.logger.warning("Every URL in the rotation was rejected, screen left blank")
            self.engine.set_visible(False)
            self._stop_timer()

    def on_activity(self) -> None:
        """Handle the activity monitor's signal."""
        if self._state is not SessionState.PLAYING:
            return
        if self._started_at is None or self._clock() - self._started_at < self._grace_period:
            self.logger.debug("Ignoring activity within grace period")
            return

        if self.preferences.close_on_activity:
            self.close("user activity")
        else:
            self._state = SessionState.AWAITING_USER_DISMISSAL
            self.presenter.show_dismiss()
            self.presenter.show_cursor()
            self.logger.info("Activity detected, waiting for dismissal")

    def dismiss(self) -> None:
        """Explicit dismissal from the user."""
        if self._state is SessionState.AWAITING_USER_DISMISSAL:
            self.close("dismissed")

    def _dismiss_filter(self, event: InputEvent) -> None:
        if isinstance(event, DismissRequested):
            self.dismiss()

    def _on_navigation(self, event: NavigationEvent) -> None:
        if event.success:
            self.logger.debug(f"Loaded {mask_for_audit(event.url)}")
        else:
            self.logger.warning(f"Failed to load {mask_for_audit(event.url)}: {event.error}")

    def _fail(self, title: str, message: str) -> None:
        self.presenter.report_error(f"Screen {self.screen_number}: {title}", message)
        self.close(title.lower())

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def close(self, reason: str = "closed") -> None:
        """
        Tear the session down. Safe to call more than once.

        Timers and listeners are removed before on_closed is notified.
        """
        if self._state is SessionState.CLOSING:
            return
        self._state = SessionState.CLOSING
        self.close_reason = reason

        self._stop_timer()
        self.monitor.unsubscribe(self.on_activity)
        self.input_stream.remove_filter(self.monitor)
        self.input_stream.remove_filter(self._dismiss_filter)
        self.engine.remove_listener(self._on_navigation)
        try:
            self.engine.close()
        except RenderingError as e:
            self.logger.warning(f"Error closing engine: {e}")

        self.logger.info(f"Session closed: {reason}")
        self.presenter.session_ended(self.screen_number, reason)
        if self._on_closed is not None:
            self._on_closed(self)
