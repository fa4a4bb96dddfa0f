"""
Rendering engine interface.

The session never looks at page content. It asks the engine to start,
to show or hide the page, and to navigate; navigation is fire-and-forget and
completion is reported later through listeners, for logging only.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..activity import InputStream

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationEvent:
    """Completion (or failure) of a navigation."""
    url: str
    success: bool
    status: Optional[int] = None
    error: Optional[str] = None


NavigationListener = Callable[[NavigationEvent], None]


class RenderingEngine(ABC):
    """
    Abstract base class for rendering engines.

    Each engine owns the window for one screen, and with it the stream of
    raw input events from that window.
    """

    def __init__(self) -> None:
        self.input_stream = InputStream()
        self._listeners: List[NavigationListener] = []
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def initialize(self) -> None:
        """
        Start the engine.

        Raises:
            EngineInitError: If the engine cannot be started
        """
        pass

    @abstractmethod
    def navigate(self, url: str) -> None:
        """
        Request navigation to an already validated URL.

        Returns immediately; the outcome arrives as a NavigationEvent.

        Raises:
            NavigationError: If the request could not be issued
        """
        pass

    @abstractmethod
    def set_visible(self, visible: bool) -> None:
        """Show or hide the rendered page."""
        pass

    def terminate(self) -> None:
        """Start shutting down without blocking; close() finishes the job."""
        pass

    def close(self) -> None:
        """Release the engine. Safe to call more than once."""
        pass

    def add_listener(self, listener: NavigationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: NavigationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit_navigation(self, event: NavigationEvent) -> None:
        """Deliver a navigation event; listener errors are logged and dropped."""
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.warning(f"Navigation listener raised: {e}")
