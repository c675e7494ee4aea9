from __future__ import annotations

import json
import math
from pathlib import Path

import pytest

from eulerpi.core.calibration import CalibrationEntry
from eulerpi.core.sinks import PubSubSink
from eulerpi.dataio.log_loader import load_csv, load_samples
from eulerpi.drivers import create_driver, resolve_driver_class
from eulerpi.drivers.replay import ReplayDriver
from eulerpi.errors import ConfigError, DriverError
from eulerpi.sensors.mpu9150 import parse_line


class FakePublisher:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []

    def publish(self, topic: str, payload: str, *, retain: bool = False) -> None:
        self.messages.append((topic, payload))


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_csv_with_header_and_not_ready_rows(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "run.csv",
        "timestamp_ns,euler_x,euler_y,euler_z,mag_x,mag_y,mag_z\n"
        "10,0.1,0.2,0.3,1,2,3\n"
        "20,nan,nan,nan,0,0,0\n"
        "30,0.4,0.5,0.6,4,5,6\n",
    )
    samples = load_samples(path)

    assert len(samples) == 3
    assert samples[1] is None
    assert samples[0].euler == (0.1, 0.2, 0.3)
    assert samples[0].calibrated_mag == (1, 2, 3)
    assert samples[0].quaternion is None
    assert samples[2].timestamp_ns == 30


def test_csv_nanosecond_timestamps_keep_full_precision(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        "run.csv",
        "timestamp_ns,euler_x,euler_y,euler_z\n"
        "1760000000123456789,0.1,0.2,0.3\n"
        "1760000000223456789,nan,nan,nan\n"
        "1760000000323456789,0.4,0.5,0.6\n",
    )
    samples = load_samples(path)

    assert samples[0].timestamp_ns == 1760000000123456789
    assert samples[1] is None
    assert samples[2].timestamp_ns == 1760000000323456789

    publisher = FakePublisher()
    PubSubSink(publisher).dispatch(samples[0])
    assert json.loads(publisher.messages[-1][1])["timestamp_ns"] == 1760000000123456789


def test_csv_header_only_holds_no_samples(tmp_path: Path) -> None:
    path = _write(tmp_path, "run.csv", "timestamp_ns,euler_x,euler_y,euler_z\n")
    assert load_samples(path) == []


def test_csv_without_header_uses_first_three_columns(tmp_path: Path) -> None:
    path = _write(tmp_path, "bare.csv", "0.1,0.2,0.3\n0.4,0.5,0.6\n")
    data, header = load_csv(path)
    assert header is None
    assert data.shape == (2, 3)
    assert load_samples(path)[1].euler == (0.4, 0.5, 0.6)


def test_jsonl_recording(tmp_path: Path) -> None:
    lines = [
        json.dumps({"euler_x": 0.1, "euler_y": 0.2, "euler_z": 0.3, "quat_w": 1, "quat_x": 0, "quat_y": 0, "quat_z": 0}),
        "not-json",
        json.dumps({"euler_x": 0.1}),
    ]
    samples = load_samples(_write(tmp_path, "run.jsonl", "\n".join(lines) + "\n"))
    assert samples[0].quaternion == (1.0, 0.0, 0.0, 0.0)
    assert samples[1] is None
    assert samples[2] is None


def test_parse_line_rejects_nan_euler() -> None:
    assert parse_line("nan,0,0") is None
    assert parse_line("   ") is None
    assert math.isclose(parse_line("1.5,2,3").euler_x, 1.5)


def test_replay_reads_in_order_then_reports_exhaustion(tmp_path: Path) -> None:
    driver = ReplayDriver(_write(tmp_path, "run.csv", "0.1,0.2,0.3\nnan,nan,nan\n"))
    driver.init(1, 10, 4)

    assert driver.read().euler_x == 0.1
    assert driver.read() is None
    with pytest.raises(DriverError):
        driver.read()
    driver.shutdown()


def test_replay_loop_restarts(tmp_path: Path) -> None:
    driver = ReplayDriver(_write(tmp_path, "run.csv", "0.1,0.2,0.3\n0.4,0.5,0.6\n"), loop=True)
    driver.init(1, 10, 4)
    xs = [driver.read().euler_x for _ in range(3)]
    assert xs == [0.1, 0.4, 0.1]


def test_replay_init_failures(tmp_path: Path) -> None:
    with pytest.raises(DriverError):
        ReplayDriver(tmp_path / "missing.csv").init(1, 10, 4)
    with pytest.raises(DriverError):
        ReplayDriver(_write(tmp_path, "empty.jsonl", "")).init(1, 10, 4)
    with pytest.raises(DriverError):
        ReplayDriver(tmp_path / "missing.csv").read()


def test_replay_stores_calibration(tmp_path: Path) -> None:
    driver = ReplayDriver(_write(tmp_path, "run.csv", "0.1,0.2,0.3\n"))
    entry = CalibrationEntry.from_min_max([100, 300, -50, 50, 10, 20])
    driver.set_accel_calibration(entry)
    driver.set_mag_calibration(entry)
    assert driver.accel_cal == entry
    assert driver.mag_cal == entry


def test_driver_registry(tmp_path: Path) -> None:
    assert resolve_driver_class("replay") is ReplayDriver
    assert resolve_driver_class("eulerpi.drivers.replay:ReplayDriver") is ReplayDriver
    driver = create_driver("replay", {"path": str(tmp_path / "x.csv"), "loop": True})
    assert isinstance(driver, ReplayDriver)
    assert driver.loop is True

    with pytest.raises(ConfigError):
        resolve_driver_class("no_such_driver")
    with pytest.raises(ConfigError):
        resolve_driver_class("eulerpi.drivers.replay:Nope")
    with pytest.raises(ConfigError):
        create_driver("replay", {"bogus": 1})
