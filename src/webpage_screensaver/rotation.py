"""
Page rotation for a single session.

RotationScheduler owns the order in which a session's URLs are shown;
RotationTimer ticks it on the event loop.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

RandomSource = Union[None, int, random.Random]


def _as_random(source: RandomSource) -> random.Random:
    """Accept a seed or a Random instance."""
    if isinstance(source, random.Random):
        return source
    return random.Random(source)


@dataclass(frozen=True)
class RotationState:
    """Snapshot of a scheduler."""
    ordered_urls: Tuple[str, ...]
    current_index: int  # -1 before the first advance
    shuffled: bool


class RotationScheduler:
    """
    Ordered, optionally shuffled list of URLs with a wrapping cursor.

    The order is fixed once by initialize(); advance() then walks it
    forever, wrapping to the start. With an empty list every call is a
    no-op returning None.
    """

    def __init__(self, rng: RandomSource = None) -> None:
        self._rng = _as_random(rng)
        self._urls: List[str] = []
        self._index = -1
        self._shuffled = False

    def initialize(
        self,
        urls: Sequence[str],
        shuffle: bool = False,
        rng: RandomSource = None,
    ) -> None:
        """
        Load URLs and reset the cursor.

        Args:
            urls: URLs in configured order
            shuffle: Permute the order once (Fisher-Yates)
            rng: Optional random source replacing the one given at construction
        """
        if rng is not None:
            self._rng = _as_random(rng)

        self._urls = list(urls)
        self._index = -1
        self._shuffled = shuffle

        if shuffle:
            self._shuffle()

        logger.debug(f"Rotation initialized with {len(self._urls)} URLs (shuffled={shuffle})")

    def _shuffle(self) -> None:
        """In-place uniform permutation, for i from n-1 down to 1."""
        urls = self._urls
        for i in range(len(urls) - 1, 0, -1):
            j = self._rng.randint(0, i)
            urls[i], urls[j] = urls[j], urls[i]

    def advance(self) -> Optional[str]:
        """Move to the next URL, wrapping at the end, and return it."""
        if not self._urls:
            return None
        self._index = (self._index + 1) % len(self._urls)
        return self._urls[self._index]

    def current(self) -> Optional[str]:
        """URL at the cursor, or None before the first advance."""
        if not self._urls or self._index < 0:
            return None
        return self._urls[self._index]

    @property
    def urls(self) -> Tuple[str, ...]:
        return tuple(self._urls)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def state(self) -> RotationState:
        return RotationState(tuple(self._urls), self._index, self._shuffled)

    def __len__(self) -> int:
        return len(self._urls)


class RotationTimer:
    """
    Repeating timer on an asyncio event loop.

    The first tick fires one interval after start(). The next tick is
    scheduled before the callback runs, so a slow or failing callback never
    shifts or stops the rotation.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self._callback = callback
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def is_running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        if self._handle is not None:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        self._schedule()

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self.interval, self._fire)

    def _fire(self) -> None:
        if self._handle is None:
            return
        self._schedule()
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Rotation tick failed: {e}", exc_info=True)
