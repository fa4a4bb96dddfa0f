"""Test configuration and fixtures."""

import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Optional

import pytest

from webpage_screensaver.activity import InputStream
from webpage_screensaver.config import Config
from webpage_screensaver.engine import NavigationEvent, RenderingEngine
from webpage_screensaver.exceptions import EngineInitError, NavigationError
from webpage_screensaver.monitor_detection import Rect, ScreenDescriptor
from webpage_screensaver.presentation import Presenter


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Create a temporary config directory with a two-screen config."""
    with tempfile.TemporaryDirectory() as temp_dir:
        config_dir = Path(temp_dir)

        config_file = config_dir / "config.toml"
        config_file.write_text("""
[screensaver]
close_on_activity = true
multi_screen = "all"

[screens.default]
urls = ["https://github.com/cwc/web-page-screensaver/"]
rotation_interval = 30

[screens.0]
urls = ["https://example.com", "https://example.org/news", "javascript:alert(1)"]
randomize = false
rotation_interval = 5

[screens.1]
urls = ["file:///srv/kiosk/index.html"]
close_on_activity = false

[browser]
executable = "chromium"
base_port = 9300

[logging]
level = "INFO"
""")

        yield config_dir


@pytest.fixture
def test_config(temp_config_dir: Path) -> Config:
    """Create a test Config instance with isolated state."""
    config_file = temp_config_dir / "config.toml"

    # Temporarily patch the config directory method
    original_get_config_dir = Config.get_config_dir
    Config.get_config_dir = classmethod(lambda cls: temp_config_dir)

    try:
        config = Config.load(config_file=config_file, detect_monitors=False)
        config.screens = [
            ScreenDescriptor(0, Rect(0, 0, 1920, 1080), is_primary=True, name="DP-1"),
            ScreenDescriptor(1, Rect(1920, 0, 2560, 1440), name="HDMI-A-1"),
        ]
        yield config
    finally:
        # Restore original method
        Config.get_config_dir = original_get_config_dir


@pytest.fixture
def config_dir(temp_config_dir: Path) -> Path:
    """Get the config directory path for tests."""
    return temp_config_dir


# ============================================================================
# Fakes for session tests
# ============================================================================

class FakeEngine(RenderingEngine):
    """Records every call instead of driving a browser."""

    def __init__(self, fail_init: bool = False, fail_navigation: bool = False) -> None:
        super().__init__()
        self.fail_init = fail_init
        self.fail_navigation = fail_navigation
        self.initialized = False
        self.closed = 0
        self.visible: Optional[bool] = None
        self.calls: List[tuple] = []
        # Filters registered on the stream when navigate() ran
        self.filters_during_navigation: List[int] = []

    async def initialize(self) -> None:
        self.calls.append(("initialize",))
        if self.fail_init:
            raise EngineInitError("browser did not start")
        self.initialized = True

    def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        self.filters_during_navigation.append(len(self.input_stream._filters))
        if self.fail_navigation:
            raise NavigationError("connection lost")

    def set_visible(self, visible: bool) -> None:
        self.calls.append(("set_visible", visible))
        self.visible = visible

    def close(self) -> None:
        self.calls.append(("close",))
        self.closed += 1

    @property
    def navigated(self) -> List[str]:
        return [call[1] for call in self.calls if call[0] == "navigate"]

    def complete(self, url: str, success: bool = True, error: Optional[str] = None) -> None:
        self._emit_navigation(NavigationEvent(url, success, error=error))


class FakePresenter(Presenter):
    def __init__(self) -> None:
        self.cursor_visible = True
        self.dismiss_shown = False
        self.errors: List[tuple] = []
        self.ended: List[tuple] = []

    def hide_cursor(self) -> None:
        self.cursor_visible = False

    def show_cursor(self) -> None:
        self.cursor_visible = True

    def show_dismiss(self) -> None:
        self.dismiss_shown = True

    def report_error(self, title: str, message: str) -> None:
        self.errors.append((title, message))

    def session_ended(self, screen_number: int, reason: str) -> None:
        self.ended.append((screen_number, reason))


class FakeTimer:
    """Timer that only fires when the test says so."""

    instances: List["FakeTimer"] = []

    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self.callback = callback
        self.running = False
        FakeTimer.instances.append(self)

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False

    def tick(self) -> None:
        self.callback()


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_timers() -> Generator[List[FakeTimer], None, None]:
    FakeTimer.instances = []
    yield FakeTimer.instances
    FakeTimer.instances = []


@pytest.fixture
def primary_screen() -> ScreenDescriptor:
    return ScreenDescriptor(0, Rect(0, 0, 1920, 1080), is_primary=True, name="DP-1")


@pytest.fixture
def input_stream(fake_engine: FakeEngine) -> InputStream:
    return fake_engine.input_stream


@pytest.fixture
def fake_engine_class():
    """FakeEngine itself, for tests that need one engine per screen."""
    return FakeEngine


@pytest.fixture
def make_session(test_config, fake_engine, fake_presenter, fake_clock, fake_timers, primary_screen):
    """Build a SessionController wired to the fakes."""
    from webpage_screensaver.session import SessionController

    def _make(screen=None, provider=None, engine=None, on_closed=None, **kwargs):
        engine = engine or fake_engine
        return SessionController(
            screen or primary_screen,
            provider or test_config,
            engine,
            fake_presenter,
            engine.input_stream,
            clock=fake_clock,
            timer_factory=FakeTimer,
            on_closed=on_closed,
            **kwargs,
        )

    return _make


@pytest.fixture
def fake_presenter_class():
    return FakePresenter
