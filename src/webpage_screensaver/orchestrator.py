"""
Multi-screen session lifetime.

Runs one SessionController per screen on a single event loop. Sessions
share their fate: the first one to close ends all of them.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from .config import Config
from .engine import RenderingEngine
from .exceptions import SessionError
from .monitor_detection import ScreenDescriptor
from .presentation import Presenter
from .rotation import RandomSource
from .session import SessionController

logger = logging.getLogger(__name__)

EngineFactory = Callable[[ScreenDescriptor], RenderingEngine]
PresenterFactory = Callable[[RenderingEngine], Presenter]


class SessionOrchestrator:
    """
    Owns the per-screen sessions of one screensaver run.

    Args:
        provider: Preferences provider with the enumerated screens
        engine_factory: Builds the rendering engine for a screen
        presenter_factory: Builds the presenter for an engine
        screen_number: Run a single session on this screen only
        rng: Random source handed to every session's scheduler
    """

    def __init__(
        self,
        provider: Config,
        engine_factory: EngineFactory,
        presenter_factory: PresenterFactory,
        *,
        screen_number: Optional[int] = None,
        rng: RandomSource = None,
        **session_kwargs,
    ) -> None:
        self.provider = provider
        self.engine_factory = engine_factory
        self.presenter_factory = presenter_factory
        self.screen_number = screen_number
        self.rng = rng
        self.session_kwargs = session_kwargs
        self.sessions: List[SessionController] = []
        self.closed_by: Optional[SessionController] = None
        self._finished: Optional[asyncio.Event] = None

    def select_screens(self) -> List[ScreenDescriptor]:
        """
        Screens that get a session.

        Raises:
            ConfigError: If screen_number names a screen that is not connected
        """
        if self.screen_number is not None:
            return [self.provider.get_screen(self.screen_number)]
        screens = self.provider.get_effective_screens()
        if not screens:
            return [self.provider.get_screen(None)]
        return screens

    def _create_session(self, screen: ScreenDescriptor) -> SessionController:
        engine = self.engine_factory(screen)
        presenter = self.presenter_factory(engine)
        return SessionController(
            screen,
            self.provider,
            engine,
            presenter,
            engine.input_stream,
            rng=self.rng,
            on_closed=self._session_closed,
            **self.session_kwargs,
        )

    def _session_closed(self, session: SessionController) -> None:
        if self.closed_by is None:
            self.closed_by = session
            logger.info(f"Screen {session.screen_number} closed ({session.close_reason}), ending all sessions")
        if self._finished is not None:
            self._finished.set()

    async def run(self) -> int:
        """
        Run every session until the first one closes.

        Returns:
            Screen number of the session that ended the run
        """
        if self._finished is not None:
            raise SessionError("Orchestrator has already run")
        self._finished = asyncio.Event()
        self.sessions = [self._create_session(screen) for screen in self.select_screens()]
        logger.info(f"Starting {len(self.sessions)} session(s) on screens "
                    f"{[s.screen_number for s in self.sessions]}")

        starts = [asyncio.ensure_future(session.start()) for session in self.sessions]
        finished = asyncio.ensure_future(self._finished.wait())
        pending = set(starts) | {finished}
        try:
            # A session may close while others are still starting
            while not finished.done():
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task is not finished and not task.cancelled() and task.exception() is not None:
                        raise task.exception()
        finally:
            for task in starts + [finished]:
                if not task.done():
                    task.cancel()
            self.shutdown("screensaver ended")
            await asyncio.gather(*starts, finished, return_exceptions=True)

        return self.closed_by.screen_number if self.closed_by else self.sessions[0].screen_number

    def shutdown(self, reason: str = "screensaver ended") -> None:
        """
        Close every session that is still open.

        All engines are asked to stop first, so browsers exit in parallel
        while each close waits for its own.
        """
        open_sessions = [s for s in self.sessions if not s.is_closed]
        for session in open_sessions:
            session.engine.terminate()
        for session in open_sessions:
            session.close(reason)
