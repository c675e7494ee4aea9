"""eulerpi: fixed-rate MPU-9150 orientation sampler.

The package reads fused Euler angles from an inertial sensor driver at a
fixed cadence and forwards them either to the console or to an MQTT topic.
"""

__version__ = "0.3.0"
