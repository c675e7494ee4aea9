"""Publish/subscribe transports for the pub/sub sink."""

from .mqtt import MqttPublisher

__all__ = ["MqttPublisher"]
