"""
HTTP and WebSocket transport for the Chrome DevTools Protocol.

Handles low-level communication with one browser: discovery over HTTP,
then JSON commands and events over the page's websocket. Incoming messages
are read on a background thread and handed to a callback; the callback is
responsible for moving them onto the event loop.
"""

import itertools
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import websocket

from ..exceptions import EngineConnectionError

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Dict[str, Any]], None]


class DevToolsTransport:
    """
    Low-level DevTools transport for one browser instance.

    Handles:
    - HTTP session with retry logic for the discovery endpoints
    - Waiting for the browser to come up
    - Finding the page target to control
    - Sending commands and reading events over the websocket
    """

    def __init__(self, endpoint: str, recv_timeout: float = 1.0) -> None:
        self.endpoint = endpoint.rstrip('/')
        self.recv_timeout = recv_timeout
        self._ws: Optional[websocket.WebSocket] = None
        self._reader: Optional[threading.Thread] = None
        self._closing = threading.Event()
        self._send_lock = threading.Lock()
        self._ids = itertools.count(1)

        retry_strategy = Retry(
            total=3,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "PUT"],
            backoff_factor=0.5,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        self.session = requests.Session()
        self.session.mount("http://", adapter)
        self.session.headers.update({'User-Agent': 'webpage-screensaver/1.0.0'})

        logger.debug(f"DevTools transport for {self.endpoint} initialized")

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closing.is_set()

    def get_version(self) -> Dict[str, Any]:
        """
        Read /json/version.

        Raises:
            EngineConnectionError: If the endpoint is unreachable or answers badly
        """
        return self._get_json('/json/version')

    def list_targets(self) -> List[Dict[str, Any]]:
        """Read /json/list."""
        targets = self._get_json('/json/list')
        if not isinstance(targets, list):
            raise EngineConnectionError(f"Unexpected /json/list response from {self.endpoint}")
        return targets

    def _get_json(self, path: str) -> Any:
        url = urljoin(self.endpoint, path)
        try:
            response = self.session.get(url, timeout=5)
            response.raise_for_status()
            return response.json()
        except requests.ConnectionError as e:
            raise EngineConnectionError(f"Cannot connect to browser at {self.endpoint}: {e}") from e
        except requests.Timeout as e:
            raise EngineConnectionError(f"Browser at {self.endpoint} timed out: {e}") from e
        except requests.HTTPError as e:
            raise EngineConnectionError(f"HTTP error from browser at {url}: {e}") from e
        except requests.RequestException as e:
            raise EngineConnectionError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise EngineConnectionError(f"Invalid JSON from {url}: {e}") from e

    def wait_until_ready(self, timeout: float, poll_interval: float = 0.25) -> Dict[str, Any]:
        """
        Poll /json/version until the browser answers.

        Blocking; run it in an executor from async code. close() ends the
        wait early.

        Raises:
            EngineConnectionError: If the browser does not answer within timeout
        """
        deadline = time.monotonic() + timeout
        last_error: Optional[Exception] = None

        while time.monotonic() < deadline:
            try:
                version = self.get_version()
                logger.debug(f"Browser ready at {self.endpoint}: {version.get('Browser', 'unknown')}")
                return version
            except EngineConnectionError as e:
                last_error = e
            if self._closing.wait(poll_interval):
                raise EngineConnectionError(f"Closed while waiting for browser at {self.endpoint}")

        raise EngineConnectionError(
            f"Browser at {self.endpoint} not ready after {timeout}s: {last_error}"
        )

    def page_websocket_url(self) -> str:
        """
        Websocket URL of the first page target.

        Raises:
            EngineConnectionError: If the browser has no page target
        """
        for target in self.list_targets():
            if target.get("type") == "page" and target.get("webSocketDebuggerUrl"):
                return target["webSocketDebuggerUrl"]
        raise EngineConnectionError(f"No page target available at {self.endpoint}")

    def connect(self, ws_url: str, on_message: MessageCallback) -> None:
        """
        Open the websocket and start the reader thread.

        Raises:
            EngineConnectionError: If the websocket cannot be opened
        """
        try:
            self._ws = websocket.create_connection(
                ws_url,
                timeout=self.recv_timeout,
                suppress_origin=True,
            )
        except (websocket.WebSocketException, OSError) as e:
            raise EngineConnectionError(f"Failed to open DevTools websocket {ws_url}: {e}") from e

        self._closing.clear()
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(on_message,),
            name=f"devtools-reader-{self.endpoint}",
            daemon=True,
        )
        self._reader.start()
        logger.debug(f"Connected to {ws_url}")

    def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> int:
        """
        Send a command without waiting for its response.

        Returns:
            Message id; the response arrives through the message callback

        Raises:
            EngineConnectionError: If not connected or the send fails
        """
        if not self.connected:
            raise EngineConnectionError(f"Not connected to browser at {self.endpoint}")

        message_id = next(self._ids)
        payload = json.dumps({"id": message_id, "method": method, "params": params or {}})

        try:
            with self._send_lock:
                self._ws.send(payload)
        except (websocket.WebSocketException, OSError) as e:
            raise EngineConnectionError(f"Failed to send {method} to {self.endpoint}: {e}") from e

        return message_id

    def _read_loop(self, on_message: MessageCallback) -> None:
        ws = self._ws
        while not self._closing.is_set():
            try:
                message = ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except (websocket.WebSocketConnectionClosedException, OSError) as e:
                if not self._closing.is_set():
                    logger.warning(f"DevTools connection to {self.endpoint} closed: {e}")
                break

            if not message or isinstance(message, bytes):
                continue

            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                logger.debug(f"Non-JSON DevTools message: {message!r}")
                continue

            try:
                on_message(data)
            except RuntimeError as e:
                # Event loop already closed
                logger.debug(f"Dropping DevTools message, receiver gone: {e}")
                break

        self._closing.set()

    def close(self) -> None:
        """Close the websocket and HTTP session."""
        self._closing.set()
        if self._ws is not None:
            try:
                self._ws.close()
            except (websocket.WebSocketException, OSError) as e:
                logger.debug(f"Error closing DevTools websocket: {e}")
            self._ws = None
        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(timeout=self.recv_timeout * 2)
            self._reader = None
        self.session.close()
