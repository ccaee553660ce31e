"""
Error report throttling with an optional widening window.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ErrorThrottle:
    """
    Decides whether a failure should be reported to the consumer.

    Implements the strategy:
    - A signature different from the last reported one is always reported
    - The same signature is reported again only after the window elapsed
    - With backoff_factor > 1 the window widens after every repeat
      (10s → 20s → 40s → ... → max_window) until a new signature appears
    """

    def __init__(
        self,
        window: float = 10.0,
        backoff_factor: float = 1.0,
        max_window: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize error throttle.

        Args:
            window: Seconds during which a repeated signature is suppressed
            backoff_factor: Window multiplier per repeated report (1.0 = flat)
            max_window: Upper bound for the widened window in seconds
            clock: Monotonic time source in seconds
        """
        self._base_window = window
        self._backoff_factor = max(1.0, backoff_factor)
        self._max_window = max(window, max_window)
        self._clock = clock

        self._last_signature: Optional[str] = None
        self._last_reported_at: Optional[float] = None
        self._current_window = window
        self._suppressed = 0

    def should_report(self, signature: str) -> bool:
        """
        Record a failure and decide whether to surface it.

        Args:
            signature: Error kind plus message text

        Returns:
            True if status messages should be enqueued
        """
        now = self._clock()

        if signature != self._last_signature:
            self._last_signature = signature
            self._last_reported_at = now
            self._current_window = self._base_window
            self._suppressed = 0
            return True

        elapsed = now - (self._last_reported_at or 0.0)
        if elapsed > self._current_window:
            if self._suppressed:
                logger.info(f"Suppressed {self._suppressed} repeats of: {signature}")
            self._last_reported_at = now
            self._suppressed = 0
            self._current_window = min(
                self._current_window * self._backoff_factor,
                self._max_window,
            )
            return True

        self._suppressed += 1
        logger.debug(
            f"Suppressing repeated error ({elapsed:.1f}s < {self._current_window:.1f}s): {signature}"
        )
        return False

    def reset(self) -> None:
        """Forget the last reported error."""
        self._last_signature = None
        self._last_reported_at = None
        self._current_window = self._base_window
        self._suppressed = 0

    @property
    def last_signature(self) -> Optional[str]:
        return self._last_signature

    @property
    def current_window(self) -> float:
        return self._current_window

    @property
    def suppressed(self) -> int:
        return self._suppressed
