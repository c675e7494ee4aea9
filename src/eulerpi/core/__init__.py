"""Sampling core: calibration, pacing, cancellation, loop and sinks.

The read loop sits between the driver and an output sink; calibration runs
once before it starts and the shutdown flag ends it.
"""

from .calibration import (
    CalibrationEntry,
    CalibrationKind,
    apply_calibration,
    load_calibration,
    parse_calibration,
)
from .clock import SamplingClock, delay_ms
from .loop import LoopStats, SampleLoop, run
from .shutdown import ShutdownSignal
from .sinks import ConsoleSink, OutputSink, PubSubSink, Publisher

__all__ = [
    "CalibrationEntry",
    "CalibrationKind",
    "apply_calibration",
    "load_calibration",
    "parse_calibration",
    "SamplingClock",
    "delay_ms",
    "LoopStats",
    "SampleLoop",
    "run",
    "ShutdownSignal",
    "OutputSink",
    "Publisher",
    "ConsoleSink",
    "PubSubSink",
]
