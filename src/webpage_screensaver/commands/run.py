"""Run command: show the screensaver until the user ends it."""

import asyncio
import logging
from typing import Optional

from ..config import Config
from ..engine import DevToolsEngine, RenderingEngine
from ..monitor_detection import ScreenDescriptor
from ..notifications import NotificationSender
from ..orchestrator import SessionOrchestrator
from ..presentation import EnginePresenter


def build_orchestrator(config: Config, screen_number: Optional[int] = None) -> SessionOrchestrator:
    """Wire Chromium engines and presenters into an orchestrator."""
    notifier = NotificationSender(config.notifications)

    def engine_factory(screen: ScreenDescriptor) -> RenderingEngine:
        return DevToolsEngine(screen, config.browser)

    def presenter_factory(engine: RenderingEngine) -> EnginePresenter:
        return EnginePresenter(engine, notifier)

    return SessionOrchestrator(
        config,
        engine_factory,
        presenter_factory,
        screen_number=screen_number,
        grace_period=config.screensaver.grace_period_seconds,
    )


def run_screensaver(config: Config, screen_number: Optional[int] = None) -> int:
    """
    Run sessions on every configured screen until one closes.

    Returns:
        Screen number of the session that ended the run
    """
    logger = logging.getLogger(__name__)

    orchestrator = build_orchestrator(config, screen_number)
    closed_screen = asyncio.run(orchestrator.run())

    logger.info(f"Screensaver ended by screen {closed_screen}")
    return closed_screen
