"""
User activity detection.

Raw input from a screen's window flows through an InputStream, a chain of
pass-through filters. ActivityMonitor is one such filter: it turns raw events
into a single "user is active" signal for its listeners.

Pointer-moved events only count when the position actually changed. Hosts
send move events with unchanged coordinates when the cursor shape changes or
when mouse driver software polls, and those must not wake the screensaver.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointerMoved:
    x: int
    y: int

    @property
    def position(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass(frozen=True)
class PointerButton:
    button: int = 0
    pressed: bool = True


@dataclass(frozen=True)
class KeyDown:
    key: str = ""


@dataclass(frozen=True)
class KeyUp:
    key: str = ""


@dataclass(frozen=True)
class DismissRequested:
    """The user clicked the dismiss control. Not activity by itself."""
    pass


InputEvent = Union[PointerMoved, PointerButton, KeyDown, KeyUp, DismissRequested]
InputFilter = Callable[[InputEvent], None]
ActivityListener = Callable[[], None]


class InputStream:
    """
    Ordered chain of input filters for one window.

    Filters only observe: every event reaches every filter and is returned
    unchanged to the caller, which passes it on to the window system.
    """

    def __init__(self) -> None:
        self._filters: List[InputFilter] = []

    def add_filter(self, input_filter: InputFilter) -> None:
        """Register a filter. Registering twice has no effect."""
        if input_filter not in self._filters:
            self._filters.append(input_filter)

    def remove_filter(self, input_filter: InputFilter) -> None:
        """Unregister a filter. Unknown filters are ignored."""
        if input_filter in self._filters:
            self._filters.remove(input_filter)

    def has_filter(self, input_filter: InputFilter) -> bool:
        return input_filter in self._filters

    def dispatch(self, event: InputEvent) -> InputEvent:
        """Run every filter inline and return the event unmodified."""
        for input_filter in list(self._filters):
            try:
                input_filter(event)
            except Exception as e:
                logger.error(f"Input filter {input_filter!r} failed on {event!r}: {e}", exc_info=True)
        return event


class ActivityMonitor:
    """
    Input filter that raises a "user active" signal.

    Button and key events always qualify. Pointer moves qualify only when the
    position differs from the last one seen; the first move just records
    the position.
    """

    def __init__(self) -> None:
        self._last_position: Optional[Tuple[int, int]] = None
        self._listeners: List[ActivityListener] = []

    def subscribe(self, listener: ActivityListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ActivityListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def last_position(self) -> Optional[Tuple[int, int]]:
        return self._last_position

    def is_activity(self, event: InputEvent) -> bool:
        """Decide whether an event is genuine user activity."""
        if isinstance(event, PointerMoved):
            if self._last_position is None:
                self._last_position = event.position
                return False
            if event.position == self._last_position:
                return False
            self._last_position = event.position
            return True
        return isinstance(event, (PointerButton, KeyDown, KeyUp))

    def __call__(self, event: InputEvent) -> None:
        if self.is_activity(event):
            for listener in list(self._listeners):
                listener()


@contextmanager
def suspended(
    stream: InputStream,
    input_filter: InputFilter,
    restore_if: Optional[Callable[[], bool]] = None,
) -> Iterator[None]:
    """
    Take a filter off the stream for the duration of a block.

    The filter is always put back afterwards, also when the block raises,
    unless restore_if returns False at that point.
    """
    stream.remove_filter(input_filter)
    try:
        yield
    finally:
        if restore_if is None or restore_if():
            stream.add_filter(input_filter)
