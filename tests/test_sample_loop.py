from __future__ import annotations

import pytest

from eulerpi.core.loop import SampleLoop, run
from eulerpi.core.shutdown import ShutdownSignal
from eulerpi.errors import DriverError
from eulerpi.sensors.mpu9150 import FusedSample


class ScriptedDriver:
    """Returns scripted read outcomes; an exception instance is raised."""

    def __init__(self, script, shutdown: ShutdownSignal | None = None, stop_after: int | None = None):
        self.script = list(script)
        self.shutdown_signal = shutdown
        self.stop_after = stop_after
        self.reads = 0
        self.shutdown_calls = 0

    def read(self):
        self.reads += 1
        outcome = self.script.pop(0) if self.script else None
        if self.stop_after is not None and self.reads >= self.stop_after:
            # interrupt arrives while this read is in flight
            self.shutdown_signal.request()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def shutdown(self):
        self.shutdown_calls += 1


class ListSink:
    def __init__(self):
        self.samples = []

    def dispatch(self, sample):
        self.samples.append(sample)

    def close(self):
        pass


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def _sample(x: float = 0.1) -> FusedSample:
    return FusedSample(x, 0.2, 0.3)


def test_rate_zero_never_reads_and_shuts_down() -> None:
    driver = ScriptedDriver([_sample()])
    sink = ListSink()
    sleep = SleepRecorder()

    stats = run(driver, 0, sink, ShutdownSignal(), sleep=sleep)

    assert driver.reads == 0
    assert driver.shutdown_calls == 1
    assert sink.samples == []
    assert sleep.calls == []
    assert stats.stop_reason == "rate 0"


def test_not_ready_cycles_are_skipped() -> None:
    shutdown = ShutdownSignal()
    sample = _sample()
    driver = ScriptedDriver([None] * 5 + [sample], shutdown=shutdown, stop_after=6)
    sink = ListSink()

    stats = SampleLoop(driver, sink, shutdown, sleep=SleepRecorder()).run(10)

    assert driver.reads == 6
    assert sink.samples == [sample]
    assert stats.not_ready == 5
    assert stats.samples == 1
    assert driver.shutdown_calls == 1


def test_fixed_delay_before_every_read() -> None:
    shutdown = ShutdownSignal()
    driver = ScriptedDriver([_sample()] * 3, shutdown=shutdown, stop_after=3)
    sleep = SleepRecorder()

    SampleLoop(driver, ListSink(), shutdown, sleep=sleep).run(10)

    # one initial delay plus one after each of the three reads
    assert sleep.calls == [pytest.approx(0.098)] * 4


def test_driver_errors_skip_dispatch() -> None:
    shutdown = ShutdownSignal()
    driver = ScriptedDriver(
        [DriverError("i2c"), _sample(), DriverError("i2c")], shutdown=shutdown, stop_after=3
    )
    sink = ListSink()

    stats = SampleLoop(driver, sink, shutdown, sleep=SleepRecorder()).run(50)

    assert len(sink.samples) == 1
    assert stats.driver_errors == 2


def test_in_flight_cycle_completes_after_interrupt() -> None:
    shutdown = ShutdownSignal()
    sample = _sample()
    driver = ScriptedDriver([sample, _sample(0.5)], shutdown=shutdown, stop_after=1)
    sink = ListSink()

    stats = SampleLoop(driver, sink, shutdown, sleep=SleepRecorder()).run(20)

    assert driver.reads == 1
    assert sink.samples == [sample]
    assert stats.stop_reason == "interrupted"
    assert driver.shutdown_calls == 1


def test_interrupt_before_first_cycle_reads_nothing() -> None:
    shutdown = ShutdownSignal()
    shutdown.request()
    driver = ScriptedDriver([_sample()])

    SampleLoop(driver, ListSink(), shutdown, sleep=SleepRecorder()).run(20)

    assert driver.reads == 0
    assert driver.shutdown_calls == 1


def test_interrupt_during_sleep_stops_at_next_boundary() -> None:
    shutdown = ShutdownSignal()
    driver = ScriptedDriver([_sample()] * 10)
    sink = ListSink()
    naps = []

    def sleep(seconds):
        naps.append(seconds)
        if len(naps) == 3:
            shutdown.request()

    SampleLoop(driver, sink, shutdown, sleep=sleep).run(25)

    assert driver.reads == 2
    assert len(sink.samples) == 2


def test_shutdown_runs_when_sink_raises() -> None:
    class BrokenSink(ListSink):
        def dispatch(self, sample):
            raise RuntimeError("boom")

    driver = ScriptedDriver([_sample()])

    with pytest.raises(RuntimeError):
        SampleLoop(driver, BrokenSink(), ShutdownSignal(), sleep=SleepRecorder()).run(10)

    assert driver.shutdown_calls == 1


def test_sample_limit_stops_loop() -> None:
    driver = ScriptedDriver([_sample(), None, _sample(), _sample()])
    sink = ListSink()

    stats = SampleLoop(driver, sink, ShutdownSignal(), sleep=SleepRecorder(), max_samples=2).run(10)

    assert len(sink.samples) == 2
    assert driver.reads == 3
    assert stats.stop_reason == "sample limit"


def test_duration_limit_uses_monotonic_clock() -> None:
    ticks = iter([0.0, 0.0, 0.5, 1.5])
    driver = ScriptedDriver([_sample()] * 5)

    stats = SampleLoop(
        driver,
        ListSink(),
        ShutdownSignal(),
        sleep=SleepRecorder(),
        monotonic=lambda: next(ticks),
        duration_s=1.0,
    ).run(10)

    assert driver.reads == 2
    assert stats.stop_reason == "duration elapsed"
