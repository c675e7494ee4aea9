"""
Fused MPU-9150 samples as produced by the sensor driver.

A driver read yields (at least):

  - euler_x, euler_y, euler_z : float  fused orientation in radians

and may also carry the extras exposed by the DMP driver struct:

  - quat_w, quat_x, quat_y, quat_z : float  fused quaternion
  - accel_x, accel_y, accel_z      : int    calibrated accelerometer counts
  - mag_x, mag_y, mag_z            : int    calibrated magnetometer counts
  - timestamp_ns                   : int    monotonic time in nanoseconds

``parse_line()`` accepts recorded JSON lines with those keys and also the
bare comma-separated form "euler_x,euler_y,euler_z" used by quick captures.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

RAD_TO_DEGREE = 180.0 / math.pi

Vec3 = Tuple[float, float, float]
Quat = Tuple[float, float, float, float]


@dataclass(frozen=True)
class FusedSample:
    euler_x: float
    euler_y: float
    euler_z: float
    quaternion: Optional[Quat] = None
    calibrated_accel: Optional[Tuple[int, int, int]] = None
    calibrated_mag: Optional[Tuple[int, int, int]] = None
    timestamp_ns: Optional[int] = None

    @property
    def euler(self) -> Vec3:
        return (self.euler_x, self.euler_y, self.euler_z)

    def euler_degrees(self) -> Vec3:
        """Return the Euler angles converted from radians to degrees."""
        return (
            self.euler_x * RAD_TO_DEGREE,
            self.euler_y * RAD_TO_DEGREE,
            self.euler_z * RAD_TO_DEGREE,
        )


def _optional_vector(obj: dict, keys: Sequence[str], cast) -> Optional[tuple]:
    if not all(k in obj for k in keys):
        return None
    return tuple(cast(obj[k]) for k in keys)


def _parse_json_line(text: str) -> FusedSample | None:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Bad JSON in fused sample line: %r (%s)", text, exc)
        return None
    if not isinstance(obj, dict):
        logger.warning("Expected a JSON object, got %r", text)
        return None

    try:
        euler = tuple(float(obj[k]) for k in ("euler_x", "euler_y", "euler_z"))
        quat = _optional_vector(obj, ("quat_w", "quat_x", "quat_y", "quat_z"), float)
        accel = _optional_vector(obj, ("accel_x", "accel_y", "accel_z"), int)
        mag = _optional_vector(obj, ("mag_x", "mag_y", "mag_z"), int)
    except KeyError as exc:
        logger.warning("Missing field %s in fused sample line: %r", exc, obj)
        return None
    except (TypeError, ValueError) as exc:
        logger.warning("Bad field value in fused sample line %r (%s)", obj, exc)
        return None

    ts_raw = obj.get("timestamp_ns")
    return FusedSample(
        *euler,
        quaternion=quat,
        calibrated_accel=accel,
        calibrated_mag=mag,
        timestamp_ns=int(ts_raw) if ts_raw is not None else None,
    )


def _parse_csv_line(text: str) -> FusedSample | None:
    parts = text.split(",")
    if len(parts) < 3:
        logger.warning("Expected 3 comma-separated Euler angles, got %d: %r", len(parts), text)
        return None
    try:
        ex, ey, ez = map(float, parts[:3])
    except ValueError as exc:
        logger.warning("Bad CSV field in fused sample line %r (%s)", text, exc)
        return None
    return FusedSample(ex, ey, ez)


def parse_line(line: str) -> FusedSample | None:
    """
    Parse one recorded line into a :class:`FusedSample`.

    Blank and invalid lines return ``None`` so replay can treat them as
    "not ready" reads instead of raising.
    """
    text = line.strip()
    if not text:
        return None
    if text[0] == "{":
        sample = _parse_json_line(text)
    else:
        sample = _parse_csv_line(text)
    if sample is not None and any(math.isnan(v) for v in sample.euler):
        return None
    return sample
