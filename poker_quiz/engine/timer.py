"""Countdown timer for timed and speed quiz modes."""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class CountdownTimer:
    """Whole-second countdown that reports expiry exactly once.

    The timer never runs on its own thread. The owner either calls
    ``tick()`` once per second or calls ``poll()`` whenever convenient,
    which converts elapsed wall-clock time into ticks. The owner may also
    overwrite ``remaining``; the next tick or poll counts down from it and
    expires if it is already zero. After ``stop()``
    the timer is inert and a new instance is needed to count again.
    """

    def __init__(self, total_seconds: int, clock: Callable[[], float] = time.monotonic):
        if total_seconds <= 0:
            raise ValueError("Countdown must start above zero seconds")
        self.total_seconds = total_seconds
        self.remaining = total_seconds
        self._clock = clock
        self._last_sync = clock()
        self._active = True
        self._expired = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def expired(self) -> bool:
        return self._expired

    def tick(self, seconds: int = 1) -> bool:
        """
        Count down by a number of seconds.

        Args:
            seconds: Seconds to subtract

        Returns:
            True only on the tick that finds the countdown at zero
        """
        if not self._active:
            return False

        if seconds > 0:
            self.remaining = max(0, self.remaining - seconds)
        if self.remaining <= 0:
            self.remaining = 0
            self._active = False
            self._expired = True
            logger.debug("Countdown of %ss expired", self.total_seconds)
            return True
        return False

    def poll(self) -> bool:
        """Apply whole seconds elapsed since the last poll; True on expiry."""
        if not self._active:
            return False

        now = self._clock()
        elapsed = int(now - self._last_sync)
        if elapsed > 0:
            # Carry the fractional remainder into the next poll
            self._last_sync += elapsed
        return self.tick(max(0, elapsed))

    def stop(self) -> None:
        """Tear the timer down; further ticks and polls do nothing."""
        self._active = False
