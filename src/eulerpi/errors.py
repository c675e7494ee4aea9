"""Exception types shared across the sampler."""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid runtime configuration; the process must not start sampling."""


class CalibrationError(ValueError):
    """A calibration file exists but its content cannot be used."""


class CalibrationFileError(ConfigError):
    """An explicitly named calibration file could not be opened."""


class DriverError(RuntimeError):
    """Raised by an IMU driver when init or a read fails."""
