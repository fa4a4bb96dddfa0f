"""CLI commands module."""

from .run import run_screensaver, build_orchestrator
from .status import show_status, get_status_json
from .init import init_config, validate_config

__all__ = [
    "run_screensaver",
    "build_orchestrator",
    "show_status",
    "get_status_json",
    "init_config",
    "validate_config",
]
