"""Runtime configuration for the sampler node."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

import yaml

from ..core.sinks import DISPLAY_MODES
from ..errors import ConfigError

DEFAULT_I2C_BUS = 1
MIN_I2C_BUS = 1
MAX_I2C_BUS = 7

DEFAULT_SAMPLE_RATE_HZ = 10
MIN_SAMPLE_RATE = 2
MAX_SAMPLE_RATE = 50

DEFAULT_YAW_MIX_FACTOR = 4
MIN_YAW_MIX_FACTOR = 0
MAX_YAW_MIX_FACTOR = 100

SINKS = ("console", "pubsub")

CONFIG_SECTION = "mpu9150"
DEFAULT_CONFIG_NAME = "eulerpi.yaml"


@dataclass
class MqttSettings:
    """Broker connection and topic used by the pub/sub sink."""

    host: str = "localhost"
    port: int = 1883
    topic: str = "imu_euler"
    publish_rate_hz: float = 10.0
    qos: int = 0
    client_id: str = "eulerpi"
    username: str = ""
    password: str = ""
    keepalive: int = 60

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "MqttSettings":
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def validate(self) -> "MqttSettings":
        if not isinstance(self.topic, str) or not self.topic:
            raise ConfigError(f"MQTT topic must be a non-empty string, got {self.topic!r}")
        if not isinstance(self.host, str) or not self.host:
            raise ConfigError(f"MQTT host must be a non-empty string, got {self.host!r}")
        _check_range("MQTT port", self.port, 1, 65535)
        _check_range("MQTT qos", self.qos, 0, 2)
        _check_range("MQTT keepalive", self.keepalive, 1, None)
        _check_number("publish rate", self.publish_rate_hz)
        if self.publish_rate_hz <= 0:
            raise ConfigError("publish rate must be positive")
        return self


@dataclass
class NodeConfig:
    """
    Everything the node needs before it starts sampling.

    Defaults are bus 1, 10 Hz and yaw mix 4, with calibration files looked
    up as ``./accelcal.txt`` and ``./magcal.txt``.
    """

    i2c_bus: int = DEFAULT_I2C_BUS
    sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ
    yaw_mix_factor: int = DEFAULT_YAW_MIX_FACTOR
    accel_cal: Optional[str] = None
    mag_cal: Optional[str] = None
    cal_dir: str = "."
    verbose: bool = False

    sink: str = "console"
    display: str = "euler"
    pubsub: MqttSettings = field(default_factory=MqttSettings)

    driver: str = "replay"
    driver_options: Dict[str, Any] = field(default_factory=dict)

    samples: Optional[int] = None
    duration_s: Optional[float] = None

    def validate(self) -> "NodeConfig":
        """Raise :class:`ConfigError` for the first out-of-range value."""
        _check_range("I2C bus", self.i2c_bus, MIN_I2C_BUS, MAX_I2C_BUS)
        _check_range("sample rate", self.sample_rate_hz, MIN_SAMPLE_RATE, MAX_SAMPLE_RATE)
        _check_range("yaw mix factor", self.yaw_mix_factor, MIN_YAW_MIX_FACTOR, MAX_YAW_MIX_FACTOR)
        if self.sink not in SINKS:
            raise ConfigError(f"sink must be one of {SINKS}, got {self.sink!r}")
        if self.display not in DISPLAY_MODES:
            raise ConfigError(f"display must be one of {DISPLAY_MODES}, got {self.display!r}")
        self.pubsub.validate()
        if self.samples is not None:
            _check_range("samples", self.samples, 0, None)
        if self.duration_s is not None:
            _check_number("duration", self.duration_s)
            if self.duration_s < 0:
                raise ConfigError("duration must not be negative")
        return self

    def with_overrides(self, **overrides: Any) -> "NodeConfig":
        """Return a copy where every non-``None`` override replaces the current value."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _check_range(label: str, value: Any, lo: int, hi: Optional[int]) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{label} must be an integer, got {value!r}")
    if value < lo or (hi is not None and value > hi):
        raise ConfigError(f"{label} {value} out of range [{lo}, {hi if hi is not None else 'inf'}]")


def _check_number(label: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{label} must be a number, got {value!r}")


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Accept either a bare mapping or one nested under the ``mpu9150`` key."""
    section = data.get(CONFIG_SECTION)
    if isinstance(section, Mapping):
        return dict(section)
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> NodeConfig:
    """Build :class:`NodeConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return NodeConfig()
    normalized = _normalize_mapping(data)
    known = {f.name for f in fields(NodeConfig)} - {"pubsub"}
    payload = {key: normalized[key] for key in normalized.keys() & known}
    pubsub = normalized.get("pubsub")
    if pubsub is not None and not isinstance(pubsub, Mapping):
        raise ConfigError(f"'pubsub' must be a mapping, got {type(pubsub).__name__}")
    try:
        return NodeConfig(pubsub=MqttSettings.from_mapping(pubsub), **payload)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def load_config(path: str | Path | None) -> NodeConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`NodeConfig`.
    """
    if path is None:
        return NodeConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return NodeConfig()
    try:
        with cfg_path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse {cfg_path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = [
    "MqttSettings",
    "NodeConfig",
    "config_from_mapping",
    "load_config",
]
