"""Utilities for loading recorded fused-sample logs."""

from pathlib import Path
from typing import List, Optional, Tuple
import io

import numpy as np

from ..sensors.mpu9150 import FusedSample, parse_line

EULER_COLUMNS = ("euler_x", "euler_y", "euler_z")
QUAT_COLUMNS = ("quat_w", "quat_x", "quat_y", "quat_z")
ACCEL_COLUMNS = ("accel_x", "accel_y", "accel_z")
MAG_COLUMNS = ("mag_x", "mag_y", "mag_z")


def _looks_numeric_csv_line(line: str) -> bool:
    """Heuristically decide if a CSV line is numeric-only (no header)."""
    stripped = line.strip()
    if not stripped:
        return False
    tokens = [t for t in stripped.split(",") if t]
    if not tokens:
        return False
    try:
        for t in tokens:
            float(t)
        return True
    except ValueError:
        return False


def load_csv(path: Path) -> Tuple[np.ndarray, Optional[List[str]]]:
    """
    Load a CSV file containing numeric data.

    The file may optionally include a single header row; its column names are
    returned alongside the data (``None`` when there is no header).
    """
    with path.open("r", encoding="utf-8") as f:
        first_line = f.readline()
        rest = f.read()

    if _looks_numeric_csv_line(first_line):
        header = None
        buffer = io.StringIO(first_line + rest)
    else:
        header = [name.strip() for name in first_line.strip().split(",")]
        buffer = io.StringIO(rest)

    if not buffer.getvalue().strip():
        width = len(header) if header else len(EULER_COLUMNS)
        return np.empty((0, width)), header
    return np.loadtxt(buffer, delimiter=",", ndmin=2), header


def _columns(header: Optional[List[str]], names: Tuple[str, ...]) -> Optional[List[int]]:
    if header is None:
        return None
    if not all(name in header for name in names):
        return None
    return [header.index(name) for name in names]


def load_int_column(path: Path, header: Optional[List[str]], name: str) -> Optional[np.ndarray]:
    """
    Reload a single header column as int64.

    ``load_csv`` parses everything as float64, which cannot hold nanosecond
    timestamps exactly. Returns ``None`` when the column is absent.
    """
    if header is None or name not in header:
        return None
    return np.loadtxt(
        path,
        delimiter=",",
        skiprows=1,
        usecols=(header.index(name),),
        dtype=np.int64,
        ndmin=1,
    )


def rows_to_samples(
    data: np.ndarray,
    header: Optional[List[str]],
    timestamps: Optional[np.ndarray] = None,
) -> List[Optional[FusedSample]]:
    """
    Convert a loaded array into samples.

    Without a header the first three columns are the Euler angles. Rows whose
    Euler angles contain NaN become ``None`` (a "not ready" read).
    ``timestamps`` overrides the float ``timestamp_ns`` column when given.
    """
    euler_idx = _columns(header, EULER_COLUMNS) or [0, 1, 2]
    quat_idx = _columns(header, QUAT_COLUMNS)
    accel_idx = _columns(header, ACCEL_COLUMNS)
    mag_idx = _columns(header, MAG_COLUMNS)
    ts_idx = _columns(header, ("timestamp_ns",))

    samples: List[Optional[FusedSample]] = []
    for i, row in enumerate(data):
        if timestamps is not None:
            timestamp_ns: Optional[int] = int(timestamps[i])
        elif ts_idx:
            timestamp_ns = int(row[ts_idx[0]])
        else:
            timestamp_ns = None
        euler = row[euler_idx]
        if np.isnan(euler).any():
            samples.append(None)
            continue
        samples.append(
            FusedSample(
                *(float(v) for v in euler),
                quaternion=tuple(float(v) for v in row[quat_idx]) if quat_idx else None,
                calibrated_accel=tuple(int(v) for v in row[accel_idx]) if accel_idx else None,
                calibrated_mag=tuple(int(v) for v in row[mag_idx]) if mag_idx else None,
                timestamp_ns=timestamp_ns,
            )
        )
    return samples


def load_jsonl(path: Path) -> List[Optional[FusedSample]]:
    """Load a JSON-lines recording; unparsable lines become ``None``."""
    with path.open("r", encoding="utf-8") as f:
        return [parse_line(line) for line in f if line.strip()]


def load_samples(path: Path) -> List[Optional[FusedSample]]:
    """Load a recording by extension (``.jsonl``/``.json`` or CSV)."""
    path = Path(path)
    if path.suffix.lower() in {".jsonl", ".json"}:
        return load_jsonl(path)
    data, header = load_csv(path)
    if not len(data):
        return []
    timestamps = load_int_column(path, header, "timestamp_ns")
    return rows_to_samples(data, header, timestamps)
