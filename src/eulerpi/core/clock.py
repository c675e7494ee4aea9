"""Fixed inter-sample delay for the read loop."""

from __future__ import annotations

import time
from typing import Callable

# Time reserved per cycle for the driver read and sink dispatch
LOOP_OVERHEAD_MS = 2


def delay_ms(rate_hz: int) -> int:
    """Return the sleep between reads for ``rate_hz``: ``1000 // rate - 2``, never negative."""
    rate = int(rate_hz)
    if rate <= 0:
        raise ValueError(f"rate_hz must be positive, got {rate_hz!r}")
    return max(0, 1000 // rate - LOOP_OVERHEAD_MS)


class SamplingClock:
    """
    Sleep for the same fixed delay before every read.

    There is no drift correction: the achieved rate is approximately the
    requested one, lowered by however long each read and dispatch take
    beyond the reserved overhead.
    """

    def __init__(self, rate_hz: int, sleep: Callable[[float], None] = time.sleep) -> None:
        self.rate_hz = int(rate_hz)
        self.delay_ms = delay_ms(self.rate_hz)
        self._sleep = sleep

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    def wait(self) -> None:
        self._sleep(self.delay_s)
