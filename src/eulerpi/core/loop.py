"""Fixed-rate read loop: delay, read, dispatch, repeat until cancelled."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import DriverError
from .clock import SamplingClock
from .shutdown import ShutdownSignal
from .sinks import OutputSink

logger = logging.getLogger(__name__)


@dataclass
class LoopStats:
    """Counters reported in the run summary."""

    reads: int = 0
    samples: int = 0
    not_ready: int = 0
    driver_errors: int = 0
    stop_reason: str = "not started"


class SampleLoop:
    """
    Pull fused samples from ``driver`` and hand fresh ones to ``sink``.

    The cancellation flag is checked only at the top of each cycle, so a read
    that is already in flight always finishes (and is dispatched) before the
    loop exits. ``driver.shutdown()`` runs exactly once on every exit path.
    """

    def __init__(
        self,
        driver,
        sink: OutputSink,
        shutdown: ShutdownSignal,
        *,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
        max_samples: Optional[int] = None,
        duration_s: Optional[float] = None,
    ) -> None:
        self.driver = driver
        self.sink = sink
        self.shutdown = shutdown
        self._sleep = sleep
        self._monotonic = monotonic
        self.max_samples = max_samples if max_samples and max_samples > 0 else None
        self.duration_s = duration_s if duration_s and duration_s > 0 else None
        self.stats = LoopStats()

    def _should_stop(self, deadline: Optional[float]) -> bool:
        if self.shutdown.is_set():
            self.stats.stop_reason = "interrupted"
            return True
        if self.max_samples is not None and self.stats.samples >= self.max_samples:
            self.stats.stop_reason = "sample limit"
            return True
        if deadline is not None and self._monotonic() >= deadline:
            self.stats.stop_reason = "duration elapsed"
            return True
        return False

    def _cycle(self) -> None:
        self.stats.reads += 1
        try:
            sample = self.driver.read()
        except DriverError:
            # the driver reports its own failures; skip to the next cycle
            self.stats.driver_errors += 1
            return
        if sample is None:
            self.stats.not_ready += 1
            return
        self.sink.dispatch(sample)
        self.stats.samples += 1

    def run(self, rate_hz: int) -> LoopStats:
        """Sample at ``rate_hz`` until cancelled; a rate of 0 only shuts the driver down."""
        try:
            if rate_hz == 0:
                self.stats.stop_reason = "rate 0"
                return self.stats

            clock = SamplingClock(rate_hz, sleep=self._sleep)
            deadline = None
            if self.duration_s is not None:
                deadline = self._monotonic() + self.duration_s
            logger.debug("Read loop delay %d ms at %d Hz", clock.delay_ms, rate_hz)

            clock.wait()
            while not self._should_stop(deadline):
                self._cycle()
                clock.wait()
            return self.stats
        finally:
            self.driver.shutdown()


def run(
    driver,
    rate_hz: int,
    sink: OutputSink,
    shutdown: ShutdownSignal,
    **kwargs,
) -> LoopStats:
    """Convenience wrapper around :class:`SampleLoop`."""
    return SampleLoop(driver, sink, shutdown, **kwargs).run(rate_hz)
