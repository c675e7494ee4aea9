"""Configuration objects and helpers for eulerpi.

Defaults can come from a small YAML file (``eulerpi.yaml``) whose
``mpu9150`` section mirrors the command-line flags; explicit flags win.
"""

from .runtime import MqttSettings, NodeConfig, config_from_mapping, load_config

__all__ = ["MqttSettings", "NodeConfig", "config_from_mapping", "load_config"]
