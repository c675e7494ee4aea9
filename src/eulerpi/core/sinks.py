"""Output sinks for fused samples: console line or publish/subscribe topic."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from ..sensors.mpu9150 import FusedSample

__all__ = [
    "OutputSink",
    "Publisher",
    "ConsoleSink",
    "PubSubSink",
    "DISPLAY_MODES",
    "format_console_line",
]

logger = logging.getLogger(__name__)

DISPLAY_MODES = ("euler", "quaternion", "accel", "mag")

# Trailing blanks wipe leftovers of a longer previous line
_LINE_PAD = "        "


class OutputSink(Protocol):
    """Common interface implemented by ConsoleSink/PubSubSink."""

    def dispatch(self, sample: FusedSample) -> None:  # pragma: no cover - protocol
        ...

    def close(self) -> None:  # pragma: no cover - protocol
        ...


class Publisher(Protocol):
    """Transport used by :class:`PubSubSink` (see :mod:`eulerpi.transport.mqtt`)."""

    def publish(self, topic: str, payload: str, *, retain: bool = False) -> None:  # pragma: no cover - protocol
        ...


def format_console_line(sample: FusedSample, display: str = "euler") -> str:
    """
    Render one sample as a carriage-return line for the terminal.

    ``quaternion``, ``accel`` and ``mag`` fall back to Euler angles when the
    driver did not provide those fields.
    """
    if display == "quaternion" and sample.quaternion is not None:
        w, x, y, z = sample.quaternion
        return f"\rW: {w:0.2f} X: {x:0.2f} Y: {y:0.2f} Z: {z:0.2f}{_LINE_PAD}"
    if display == "accel" and sample.calibrated_accel is not None:
        x, y, z = sample.calibrated_accel
        return f"\rX: {x:05d} Y: {y:05d} Z: {z:05d}{_LINE_PAD}"
    if display == "mag" and sample.calibrated_mag is not None:
        x, y, z = sample.calibrated_mag
        return f"\rX: {x:03d} Y: {y:03d} Z: {z:03d}{_LINE_PAD}"
    x, y, z = sample.euler_degrees()
    return f"\rX: {x:0.0f} Y: {y:0.0f} Z: {z:0.0f}{_LINE_PAD}"


@dataclass
class ConsoleSink(OutputSink):
    """Overwrites a single terminal line with the latest sample."""

    stream: TextIO = field(default_factory=lambda: sys.stdout)
    display: str = "euler"

    def __post_init__(self) -> None:
        if self.display not in DISPLAY_MODES:
            raise ValueError(f"display must be one of {DISPLAY_MODES}, got {self.display!r}")

    def dispatch(self, sample: FusedSample) -> None:
        self.stream.write(format_console_line(sample, self.display))
        self.stream.flush()

    def close(self) -> None:
        self.stream.write("\n\n")
        self.stream.flush()


@dataclass
class PubSubSink(OutputSink):
    """
    Publishes each sample as a JSON message on ``topic``.

    The payload carries the Euler angles in degrees plus a per-call sequence
    number. ``publish_rate_hz`` is the nominal rate announced to subscribers
    in a retained ``<topic>/meta`` header sent before the first sample; it is
    independent of the read loop's own pacing.
    """

    publisher: Publisher
    topic: str = "imu_euler"
    publish_rate_hz: float = 10.0

    _seq: int = field(init=False, default=0, repr=False)
    _announced: bool = field(init=False, default=False, repr=False)

    def __post_init__(self) -> None:
        if not self.topic:
            raise ValueError("topic must not be empty.")
        if self.publish_rate_hz <= 0.0:
            raise ValueError("publish_rate_hz must be positive.")

    @property
    def meta_topic(self) -> str:
        return f"{self.topic}/meta"

    @property
    def sequence(self) -> int:
        """Number of samples dispatched so far."""
        return self._seq

    def _announce(self) -> None:
        header = {
            "meta": "imu_euler_stream_config",
            "topic": self.topic,
            "publish_rate_hz": float(self.publish_rate_hz),
            "units": "deg",
        }
        self.publisher.publish(self.meta_topic, json.dumps(header), retain=True)
        self._announced = True

    def build_payload(self, sample: FusedSample) -> dict:
        x, y, z = sample.euler_degrees()
        payload = {"seq": self._seq, "x": x, "y": y, "z": z}
        if sample.timestamp_ns is not None:
            payload["timestamp_ns"] = sample.timestamp_ns
        return payload

    def dispatch(self, sample: FusedSample) -> None:
        if not self._announced:
            self._announce()
        message = json.dumps(self.build_payload(sample), separators=(",", ":"))
        self._seq += 1
        logger.debug("%s <- %s", self.topic, message)
        self.publisher.publish(self.topic, message)

    def close(self) -> None:
        return
