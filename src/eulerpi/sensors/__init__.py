"""Sensor-specific data models and parsers.

:mod:`mpu9150` defines :class:`FusedSample`, the orientation estimate passed
from the driver to the output sinks, plus a line parser for recorded runs.
"""

from .mpu9150 import FusedSample, RAD_TO_DEGREE, parse_line

__all__ = ["FusedSample", "RAD_TO_DEGREE", "parse_line"]
