"""Replay driver: plays back a recorded run instead of talking to the bus.

Useful on machines without the sensor and for exercising the sink path.
Each :meth:`ReplayDriver.read` returns the next recorded row; rows that
were recorded as "not ready" (NaN or unparsable) return ``None``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..core.calibration import CalibrationEntry
from ..dataio.log_loader import load_samples
from ..errors import DriverError
from ..sensors.mpu9150 import FusedSample

logger = logging.getLogger(__name__)


class ReplayDriver:
    """Driver backed by a CSV or JSONL recording of fused samples."""

    def __init__(self, path: str | Path, loop: bool = False) -> None:
        self.path = Path(path)
        self.loop = bool(loop)
        self.accel_cal: Optional[CalibrationEntry] = None
        self.mag_cal: Optional[CalibrationEntry] = None
        self.bus: Optional[int] = None
        self.sample_rate_hz: Optional[int] = None
        self.yaw_mix_factor: Optional[int] = None
        self._samples: List[Optional[FusedSample]] = []
        self._index = 0
        self._open = False
        self._exhausted_logged = False

    def init(self, bus: int, sample_rate_hz: int, yaw_mix_factor: int) -> None:
        try:
            self._samples = load_samples(self.path)
        except (OSError, ValueError) as exc:
            raise DriverError(f"Cannot load replay file {self.path}: {exc}") from exc
        if not self._samples:
            raise DriverError(f"Replay file {self.path} holds no samples")
        self.bus = bus
        self.sample_rate_hz = sample_rate_hz
        self.yaw_mix_factor = yaw_mix_factor
        self._index = 0
        self._open = True
        logger.info(
            "Replaying %d rows from %s (bus=%d rate=%d Hz yaw_mix=%d)",
            len(self._samples), self.path, bus, sample_rate_hz, yaw_mix_factor,
        )

    def read(self) -> Optional[FusedSample]:
        if not self._open:
            raise DriverError("read() before init()")
        if self._index >= len(self._samples):
            if not self.loop:
                if not self._exhausted_logged:
                    logger.warning("Replay file %s exhausted", self.path)
                    self._exhausted_logged = True
                raise DriverError("replay exhausted")
            self._index = 0
        sample = self._samples[self._index]
        self._index += 1
        return sample

    def set_accel_calibration(self, entry: CalibrationEntry) -> None:
        self.accel_cal = entry
        logger.info("accel calibration offsets=%s ranges=%s", entry.offsets, entry.ranges)

    def set_mag_calibration(self, entry: CalibrationEntry) -> None:
        self.mag_cal = entry
        logger.info("mag calibration offsets=%s ranges=%s", entry.offsets, entry.ranges)

    def set_debug(self, enabled: bool) -> None:
        logging.getLogger("eulerpi.drivers").setLevel(logging.DEBUG if enabled else logging.NOTSET)

    def shutdown(self) -> None:
        self._open = False
        logger.debug("Replay driver closed after %d reads", self._index)
