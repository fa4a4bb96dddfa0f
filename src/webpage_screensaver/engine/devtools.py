"""
Chromium rendering engine driven over the DevTools protocol.

One kiosk-mode Chromium window per screen, each with its own profile and
debugging port. The engine:

- launches the browser on the screen's bounds (or attaches to a running one)
- hardens the page: JavaScript dialogs dismissed, downloads denied,
  permission grants cleared, document requests to URLs failing
  validation refused before they load
- relays mouse and keyboard input from the page back as input events
- hides the page, the cursor, or shows a dismiss button on request
"""

import asyncio
import json
import logging
import subprocess
from typing import Any, Dict, List, Optional, Tuple

from ..activity import (
    DismissRequested,
    InputEvent,
    KeyDown,
    KeyUp,
    PointerButton,
    PointerMoved,
)
from ..config import BrowserConfig
from ..exceptions import (
    EngineConnectionError,
    EngineInitError,
    NavigationError,
    RenderingError,
)
from ..monitor_detection import ScreenDescriptor
from ..security import log_audit, mask_for_audit, validate
from .base import NavigationEvent, RenderingEngine
from .transport import DevToolsTransport

logger = logging.getLogger(__name__)


INPUT_BINDING = "__screensaverInput"

INPUT_SCRIPT = """
(() => {
  if (window.__screensaverHooked) return;
  window.__screensaverHooked = true;
  const send = (payload) => {
    try { window.__BINDING__(JSON.stringify(payload)); } catch (e) {}
  };
  window.addEventListener('mousemove', (e) => send({type: 'move', x: e.screenX, y: e.screenY}), true);
  window.addEventListener('mousedown', (e) => send({type: 'button', button: e.button, pressed: true}), true);
  window.addEventListener('mouseup', (e) => send({type: 'button', button: e.button, pressed: false}), true);
  window.addEventListener('wheel', (e) => send({type: 'button', button: 3, pressed: true}), true);
  window.addEventListener('keydown', (e) => send({type: 'keydown', key: e.key}), true);
  window.addEventListener('keyup', (e) => send({type: 'keyup', key: e.key}), true);
})();
""".replace("__BINDING__", INPUT_BINDING)

# Pause every page and frame document request until it has been validated
DOCUMENT_REQUEST_PATTERNS = [
    {"urlPattern": "*", "resourceType": "Document", "requestStage": "Request"},
]

# Placeholder documents that frames get without a network request
INERT_FRAME_URLS = frozenset({"about:blank", "about:srcdoc"})

HIDE_PAGE_SCRIPT ="document.documentElement && (document.documentElement.style.visibility = 'hidden')"
SHOW_PAGE_SCRIPT = "document.documentElement && (document.documentElement.style.visibility = '')"

HIDE_CURSOR_SCRIPT = """
(() => {
  if (document.getElementById('__screensaver_cursor')) return;
  const style = document.createElement('style');
  style.id = '__screensaver_cursor';
  style.textContent = '* { cursor: none !important; }';
  (document.head || document.documentElement).appendChild(style);
})();
"""
SHOW_CURSOR_SCRIPT = """
(() => {
  const style = document.getElementById('__screensaver_cursor');
  if (style) style.remove();
})();
"""

DISMISS_SCRIPT = """
(() => {
  if (document.getElementById('__screensaver_dismiss')) return;
  const button = document.createElement('button');
  button.id = '__screensaver_dismiss';
  button.textContent = 'Close';
  button.style.cssText = 'position:fixed;top:16px;right:16px;z-index:2147483647;' +
    'padding:12px 20px;font:16px sans-serif;border:none;border-radius:6px;' +
    'background:rgba(0,0,0,.7);color:#fff;cursor:pointer;visibility:visible';
  button.addEventListener('click', (e) => {
    e.stopPropagation();
    window.__BINDING__(JSON.stringify({type: 'dismiss'}));
  }, true);
  document.documentElement.appendChild(button);
})();
""".replace("__BINDING__", INPUT_BINDING)


def decode_input(payload: Optional[str]) -> Optional[InputEvent]:
    """
    Turn a binding payload from the page into an input event.

    Returns None for malformed or unknown payloads.
    """
    try:
        data = json.loads(payload or "")
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    try:
        if kind == "move":
            return PointerMoved(int(data["x"]), int(data["y"]))
        if kind == "button":
            return PointerButton(int(data.get("button", 0)), bool(data.get("pressed", True)))
        if kind == "keydown":
            return KeyDown(str(data.get("key", "")))
        if kind == "keyup":
            return KeyUp(str(data.get("key", "")))
        if kind == "dismiss":
            return DismissRequested()
    except (KeyError, TypeError, ValueError):
        return None
    return None


class BrowserLauncher:
    """Starts and stops the Chromium process for one screen."""

    def __init__(self, config: BrowserConfig, screen: ScreenDescriptor) -> None:
        self.config = config
        self.screen = screen
        self._process: Optional[subprocess.Popen] = None
        self._terminated = False

    def build_command(self) -> List[str]:
        bounds = self.screen.bounds
        return [
            self.config.executable,
            f"--remote-debugging-port={self.config.port_for(self.screen.screen_number)}",
            f"--user-data-dir={self.config.get_user_data_dir(self.screen.screen_number)}",
            "--kiosk",
            f"--window-position={bounds.x},{bounds.y}",
            f"--window-size={bounds.width},{bounds.height}",
            "--no-first-run",
            "--no-default-browser-check",
            "--noerrdialogs",
            "--disable-infobars",
            "--disable-session-crashed-bubble",
            "--disable-translate",
            *self.config.extra_args,
        ]

    def start(self) -> None:
        """
        Launch the browser.

        Raises:
            EngineInitError: If the executable cannot be started
        """
        cmd = self.build_command()
        self.config.get_user_data_dir(self.screen.screen_number).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Launching browser: {' '.join(cmd)}")
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            raise EngineInitError(
                f"Browser not found: {cmd[0]} - ensure it is installed and in PATH, "
                "or set [browser] executable in the config"
            ) from e
        except PermissionError as e:
            raise EngineInitError(f"Permission denied launching {cmd[0]}: {e}") from e
        except OSError as e:
            raise EngineInitError(f"Failed to launch {cmd[0]}: {e}") from e

    def terminate(self) -> None:
        """Ask the browser to exit without waiting for it."""
        process = self._process
        if process is None or self._terminated or process.poll() is not None:
            return
        self._terminated = True
        try:
            process.terminate()
        except OSError as e:
            logger.warning(f"Failed to stop browser for screen {self.screen.screen_number}: {e}")

    def stop(self) -> None:
        """Terminate the browser, killing it if it does not exit."""
        self.terminate()
        process, self._process = self._process, None
        self._terminated = False
        if process is None or process.poll() is not None:
            return
        try:
            process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"Browser for screen {self.screen.screen_number} did not exit, killing it")
            process.kill()
        except OSError as e:
            logger.warning(f"Failed to stop browser for screen {self.screen.screen_number}: {e}")


class DevToolsEngine(RenderingEngine):
    """
    Rendering engine backed by a Chromium window.

    All DevTools messages are handled on the event loop that ran
    initialize(); the transport thread only posts them there.
    """

    def __init__(
        self,
        screen: ScreenDescriptor,
        config: BrowserConfig,
        transport: Optional[DevToolsTransport] = None,
        launcher: Optional[BrowserLauncher] = None,
    ) -> None:
        super().__init__()
        self.screen = screen
        self.config = config
        self._transport = transport or DevToolsTransport(config.endpoint_for(screen.screen_number))
        if launcher is None and config.launch:
            launcher = BrowserLauncher(config, screen)
        self._launcher = launcher
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Dict[int, Tuple[str, Optional[str]]] = {}
        self._current_url: Optional[str] = None
        self._main_frame_id: Optional[str] = None
        self._visible = True
        self._cursor_visible = True
        self._dismiss_shown = False
        self._closed = False

    async def initialize(self) -> None:
        self._loop = asyncio.get_running_loop()
        screen_number = self.screen.screen_number

        try:
            if self._launcher is not None:
                self._launcher.start()
            await self._loop.run_in_executor(
                None, self._transport.wait_until_ready, self.config.startup_timeout
            )
            ws_url = await self._loop.run_in_executor(None, self._transport.page_websocket_url)
            self._transport.connect(ws_url, self._post_message)
            self._apply_hardening()
        except RenderingError as e:
            self.close()
            raise EngineInitError(f"Failed to start browser for screen {screen_number}: {e}") from e

        self.logger.info(f"Browser ready on screen {screen_number}")

    def _apply_hardening(self) -> None:
        """Enable domains, hook input and lock the page down."""
        self._command("Page.enable")
        self._command("Fetch.enable", {"patterns": DOCUMENT_REQUEST_PATTERNS})
        self._command("Runtime.enable")
        self._command("Runtime.addBinding", {"name": INPUT_BINDING})
        self._command("Page.addScriptToEvaluateOnNewDocument", {"source": INPUT_SCRIPT})
        self._command("Runtime.evaluate", {"expression": INPUT_SCRIPT})
        self._command("Browser.setDownloadBehavior", {"behavior": "deny"})
        self._command("Browser.resetPermissions")
        self._reapply_state()

    def _command(
        self,
        method: str,
        params: Optional[Dict[str, Any]] = None,
        url: Optional[str] = None,
    ) -> int:
        message_id = self._transport.send(method, params)
        self._pending[message_id] = (method, url)
        return message_id

    def _post_message(self, message: Dict[str, Any]) -> None:
        """Called on the transport thread."""
        self._loop.call_soon_threadsafe(self._handle_message, message)

    def _handle_message(self, message: Dict[str, Any]) -> None:
        if self._closed:
            return

        if "id" in message:
            self._handle_response(message)
            return

        handlers = {
            "Runtime.bindingCalled": self._on_binding_called,
            "Page.loadEventFired": self._on_load,
            "Page.frameNavigated": self._on_frame_navigated,
            "Fetch.requestPaused": self._on_request_paused,
            "Page.javascriptDialogOpening": self._on_dialog,
            "Inspector.detached": self._on_detached,
        }
        handler = handlers.get(message.get("method"))
        if handler is not None:
            handler(message.get("params") or {})

    def _handle_response(self, message: Dict[str, Any]) -> None:
        method, url = self._pending.pop(message["id"], (None, None))
        # Frame resets go through Page.navigate too, without a tracked url
        is_page_navigation = method == "Page.navigate" and url is not None

        if "error" in message:
            error = message["error"].get("message", "unknown error")
            if is_page_navigation:
                self._emit_navigation(NavigationEvent(url, False, error=error))
            else:
                # Hardening commands may be unsupported on older browsers
                self.logger.warning(f"{method} failed on screen {self.screen.screen_number}: {error}")
            return

        if is_page_navigation:
            result = message.get("result") or {}
            error_text = result.get("errorText")
            if error_text:
                self._emit_navigation(NavigationEvent(url, False, error=error_text))
            else:
                self._current_url = url
                self._main_frame_id = result.get("frameId", self._main_frame_id)

    def _on_binding_called(self, params: Dict[str, Any]) -> None:
        if params.get("name") != INPUT_BINDING:
            return
        event = decode_input(params.get("payload"))
        if event is not None:
            self.input_stream.dispatch(event)

    def _on_load(self, params: Dict[str, Any]) -> None:
        self._reapply_state()
        if self._current_url:
            self._emit_navigation(NavigationEvent(self._current_url, True))

    def _is_main_frame(self, frame_id: Optional[str]) -> bool:
        return self._main_frame_id is None or frame_id == self._main_frame_id

    def _on_request_paused(self, params: Dict[str, Any]) -> None:
        """Let a paused document request through, or refuse it if it fails validation."""
        request_id = params.get("requestId")
        url = (params.get("request") or {}).get("url", "")
        outcome = validate(url)
        if outcome.is_valid:
            self._safe_command("Fetch.continueRequest", {"requestId": request_id})
            return

        is_main_frame = self._is_main_frame(params.get("frameId"))
        log_audit(url, False, outcome.reason)
        self.logger.warning(
            f"Refused {'page' if is_main_frame else 'frame'} request to "
            f"{mask_for_audit(url)}: {outcome.reason}"
        )
        self._safe_command("Fetch.failRequest", {"requestId": request_id, "errorReason": "BlockedByClient"})
        if is_main_frame:
            self.set_visible(False)

    def _on_frame_navigated(self, params: Dict[str, Any]) -> None:
        """
        Catch frame documents that never went through a request.

        data: and similar documents commit without a network request, so
        Fetch interception never sees them. A rejected subframe is sent to
        about:blank; a rejected page is stopped and hidden.
        """
        frame = params.get("frame") or {}
        url = frame.get("url", "")
        is_main_frame = not frame.get("parentId")
        if is_main_frame and frame.get("id"):
            self._main_frame_id = frame["id"]

        # Error pages for refused requests carry the original URL here
        if url in INERT_FRAME_URLS or frame.get("unreachableUrl"):
            return

        outcome = validate(url)
        if outcome.is_valid:
            return

        log_audit(url, False, outcome.reason)
        self.logger.warning(
            f"Stopped {'page' if is_main_frame else 'frame'} navigation to "
            f"{mask_for_audit(url)}: {outcome.reason}"
        )
        if is_main_frame:
            self._safe_command("Page.stopLoading")
            self.set_visible(False)
        else:
            self._safe_command("Page.navigate", {"url": "about:blank", "frameId": frame.get("id")})

    def _on_dialog(self, params: Dict[str, Any]) -> None:
        self.logger.info(f"JavaScript {params.get('type', 'dialog')} dismissed")
        self._safe_command("Page.handleJavaScriptDialog", {"accept": False})

    def _on_detached(self, params: Dict[str, Any]) -> None:
        self.logger.warning(
            f"DevTools detached from screen {self.screen.screen_number}: {params.get('reason', 'unknown')}"
        )

    def _safe_command(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a command whose failure is not worth more than a log line."""
        if not self._transport.connected:
            return
        try:
            self._command(method, params)
        except EngineConnectionError as e:
            self.logger.warning(f"{method} failed: {e}")

    def _reapply_state(self) -> None:
        """New documents start visible with a cursor and no dismiss button."""
        if not self._visible:
            self._safe_command("Runtime.evaluate", {"expression": HIDE_PAGE_SCRIPT})
        if not self._cursor_visible:
            self._safe_command("Runtime.evaluate", {"expression": HIDE_CURSOR_SCRIPT})
        if self._dismiss_shown:
            self._safe_command("Runtime.evaluate", {"expression": DISMISS_SCRIPT})

    def navigate(self, url: str) -> None:
        if not self._transport.connected:
            raise NavigationError(f"Browser for screen {self.screen.screen_number} is not connected")
        try:
            self._command("Page.navigate", {"url": url}, url=url)
        except EngineConnectionError as e:
            raise NavigationError(f"Navigation request failed: {e}") from e

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        self._safe_command(
            "Runtime.evaluate",
            {"expression": SHOW_PAGE_SCRIPT if visible else HIDE_PAGE_SCRIPT},
        )

    def set_cursor_visible(self, visible: bool) -> None:
        self._cursor_visible = visible
        self._safe_command(
            "Runtime.evaluate",
            {"expression": SHOW_CURSOR_SCRIPT if visible else HIDE_CURSOR_SCRIPT},
        )

    def show_dismiss_control(self) -> None:
        self._dismiss_shown = True
        self._safe_command("Runtime.evaluate", {"expression": DISMISS_SCRIPT})

    @property
    def is_visible(self) -> bool:
        return self._visible

    def terminate(self) -> None:
        if self._launcher is not None and not self._closed:
            self._launcher.terminate()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._transport.close()
        if self._launcher is not None:
            self._launcher.stop()
        self.logger.debug(f"Engine for screen {self.screen.screen_number} closed")
