"""Rendering engines."""

from .base import NavigationEvent, RenderingEngine
from .transport import DevToolsTransport
from .devtools import BrowserLauncher, DevToolsEngine, decode_input

__all__ = [
    "NavigationEvent",
    "RenderingEngine",
    "DevToolsTransport",
    "BrowserLauncher",
    "DevToolsEngine",
    "decode_input",
]
