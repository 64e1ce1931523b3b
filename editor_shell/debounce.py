from __future__ import annotations

import time
from typing import Callable, Optional


# Slack for float clock arithmetic (1.9 - 0.9 < 1.0).
_EPSILON = 1e-9


class Debouncer:
    """Quiet-period gate: due() turns true once `quiet_period` passed since the last touch()."""

    def __init__(self, quiet_period: float = 1.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.quiet_period = quiet_period
        self._clock = clock
        self._last_touch: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._last_touch is not None

    def touch(self, now: Optional[float] = None) -> None:
        self._last_touch = self._clock() if now is None else now

    def due(self, now: Optional[float] = None) -> bool:
        if self._last_touch is None:
            return False
        now = self._clock() if now is None else now
        return (now - self._last_touch) >= self.quiet_period - _EPSILON

    def reset(self) -> None:
        self._last_touch = None
