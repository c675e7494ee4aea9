"""Accelerometer / magnetometer calibration files.

A calibration file holds six integers, one per line, in the order
``min_x, max_x, min_y, max_y, min_z, max_z``. Each axis is turned into an
offset (midpoint) and a range (half-span) that the driver applies before
fusion. Zero is reserved as an invalid value, so a true zero reading cannot
be stored.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..errors import CalibrationError, CalibrationFileError

logger = logging.getLogger(__name__)

CAL_VALUE_COUNT = 6

# Only the first 19 characters of a line are significant
MAX_LINE_CHARS = 19

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class CalibrationKind(enum.Enum):
    ACCEL = "accel"
    MAG = "mag"

    @property
    def default_filename(self) -> str:
        return "accelcal.txt" if self is CalibrationKind.ACCEL else "magcal.txt"


def _to_int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _midpoint(lo: int, hi: int) -> int:
    # C integer division truncates toward zero
    total = lo + hi
    half = abs(total) // 2
    return half if total >= 0 else -half


@dataclass(frozen=True)
class CalibrationEntry:
    offset_x: int
    offset_y: int
    offset_z: int
    range_x: int
    range_y: int
    range_z: int

    @classmethod
    def from_min_max(cls, values: Sequence[int]) -> "CalibrationEntry":
        """Build an entry from ``(min_x, max_x, min_y, max_y, min_z, max_z)``."""
        if len(values) != CAL_VALUE_COUNT:
            raise CalibrationError(f"expected {CAL_VALUE_COUNT} values, got {len(values)}")
        offsets = [_to_int16(_midpoint(values[2 * i], values[2 * i + 1])) for i in range(3)]
        ranges = [_to_int16(values[2 * i + 1] - offsets[i]) for i in range(3)]
        return cls(*offsets, *ranges)

    @property
    def offsets(self) -> tuple[int, int, int]:
        return (self.offset_x, self.offset_y, self.offset_z)

    @property
    def ranges(self) -> tuple[int, int, int]:
        return (self.range_x, self.range_y, self.range_z)


def parse_cal_value(text: str) -> int:
    """Parse the leading integer of ``text`` the way ``atoi`` does (0 if none)."""
    match = _LEADING_INT.match(text[:MAX_LINE_CHARS])
    if match is None:
        return 0
    return int(match.group(1))


def parse_calibration(lines: Iterable[str]) -> CalibrationEntry:
    """
    Turn the first six lines of a calibration file into an entry.

    Raises :class:`CalibrationError` when fewer than six lines are present or
    a line does not hold a non-zero integer.
    """
    values: list[int] = []
    for line in lines:
        value = parse_cal_value(line)
        if value == 0:
            raise CalibrationError(f"Invalid cal value: {line.strip()!r}")
        values.append(value)
        if len(values) == CAL_VALUE_COUNT:
            break
    if len(values) < CAL_VALUE_COUNT:
        raise CalibrationError("Not enough lines in calibration file")
    return CalibrationEntry.from_min_max(values)


def load_calibration(
    path: str | Path | None,
    kind: CalibrationKind,
    *,
    search_dir: str | Path = ".",
) -> Optional[CalibrationEntry]:
    """
    Load a calibration entry for ``kind``.

    Returns ``None`` when the driver should keep its own defaults: either the
    default file is absent or the file content is invalid. An explicit
    ``path`` that cannot be opened raises :class:`CalibrationFileError`.
    """
    if path is None:
        cal_path = Path(search_dir) / kind.default_filename
        try:
            fh = cal_path.open("r", encoding="utf-8", errors="replace")
        except OSError:
            logger.info("Default %s not found", kind.default_filename)
            return None
    else:
        cal_path = Path(path)
        try:
            fh = cal_path.open("r", encoding="utf-8", errors="replace")
        except OSError as exc:
            raise CalibrationFileError(f"open({cal_path}): {exc.strerror or exc}") from exc

    with fh:
        try:
            entry = parse_calibration(fh)
        except CalibrationError as exc:
            logger.warning("%s calibration %s ignored: %s", kind.value, cal_path, exc)
            return None

    logger.debug(
        "%s calibration from %s: offsets=%s ranges=%s",
        kind.value, cal_path, entry.offsets, entry.ranges,
    )
    return entry


def apply_calibration(
    driver,
    path: str | Path | None,
    kind: CalibrationKind,
    *,
    search_dir: str | Path = ".",
) -> Optional[CalibrationEntry]:
    """Load a calibration file and hand the entry to the matching driver setter."""
    entry = load_calibration(path, kind, search_dir=search_dir)
    if entry is None:
        return None
    if kind is CalibrationKind.MAG:
        driver.set_mag_calibration(entry)
    else:
        driver.set_accel_calibration(entry)
    return entry
