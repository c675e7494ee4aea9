"""Interface expected from an MPU-9150 driver.

The driver owns the bus transport, the DMP and the fusion stage. The sampler
only configures it, pulls fused samples and shuts it down.
"""

from __future__ import annotations

from typing import Optional, Protocol

from ..core.calibration import CalibrationEntry
from ..errors import DriverError
from ..sensors.mpu9150 import FusedSample

__all__ = ["DriverError", "ImuDriver"]


class ImuDriver(Protocol):
    """Structural type implemented by every driver."""

    def init(self, bus: int, sample_rate_hz: int, yaw_mix_factor: int) -> None:  # pragma: no cover - protocol
        """Open the bus and start fusion. Raises :class:`DriverError` on failure."""
        ...

    def read(self) -> Optional[FusedSample]:  # pragma: no cover - protocol
        """
        Return a fresh fused sample, or ``None`` when no new sample is ready.

        Must not block waiting for data. Bus or decode failures raise
        :class:`DriverError`.
        """
        ...

    def set_accel_calibration(self, entry: CalibrationEntry) -> None:  # pragma: no cover - protocol
        ...

    def set_mag_calibration(self, entry: CalibrationEntry) -> None:  # pragma: no cover - protocol
        ...

    def set_debug(self, enabled: bool) -> None:  # pragma: no cover - protocol
        ...

    def shutdown(self) -> None:  # pragma: no cover - protocol
        ...
