import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class MonotonicMediaClock:
    """Playback position of a headless player, advanced by a monotonic clock."""

    def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._position = 0.0
        self._started_at: float | None = None

    @property
    def playing(self) -> bool:
        return self._started_at is not None

    @property
    def current_time(self) -> float:
        if self._started_at is None:
            return self._position
        return self._position + (self._now() - self._started_at)

    def play(self) -> None:
        if self._started_at is None:
            self._started_at = self._now()
            logger.debug("Playback started at %.2fs", self._position)

    def pause(self) -> None:
        if self._started_at is not None:
            self._position = self.current_time
            self._started_at = None
            logger.debug("Playback paused at %.2fs", self._position)

    def seek(self, position: float) -> None:
        self._position = max(0.0, position)
        if self._started_at is not None:
            self._started_at = self._now()
