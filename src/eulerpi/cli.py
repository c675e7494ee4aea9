"""
eulerpi command line
====================

Samples fused Euler angles from an MPU-9150 driver at a fixed rate and
either prints them on one console line or publishes them over MQTT.

Examples
--------
# Console output at 20 Hz from bus 3, yaw mix 10, replaying a recorded run
eulerpi -b3 -s20 -y10 --replay run.csv

# Hardware driver provided by another package
eulerpi -b1 --driver mypkg.imu:Mpu9150Driver

# Replay a recorded run and publish it on the imu_euler topic
eulerpi --replay run.csv --sink pubsub --mqtt-host broker.local

Configuration via YAML
----------------------
Defaults can be read from the ``mpu9150`` section of a YAML file given with
``--config``; without it, ``eulerpi.yaml`` in the working directory is used
when present. Explicit command-line options override the file.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config.runtime import (
    DEFAULT_CONFIG_NAME,
    MAX_I2C_BUS,
    MAX_SAMPLE_RATE,
    MAX_YAW_MIX_FACTOR,
    MIN_I2C_BUS,
    MIN_SAMPLE_RATE,
    MIN_YAW_MIX_FACTOR,
    SINKS,
    NodeConfig,
    load_config,
)
from .core.calibration import CalibrationKind, apply_calibration
from .core.loop import LoopStats, SampleLoop
from .core.shutdown import ShutdownSignal
from .core.sinks import DISPLAY_MODES, ConsoleSink, OutputSink, PubSubSink
from .drivers import create_driver
from .errors import CalibrationFileError, ConfigError, DriverError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="eulerpi",
        description="Sample fused MPU-9150 orientation and print or publish it.",
        epilog="Example: eulerpi -b3 -s20 -y10 --replay run.csv",
    )
    ap.add_argument("-b", "--bus", type=int, default=None,
                    help=f"I2C bus number where the IMU is ({MIN_I2C_BUS}-{MAX_I2C_BUS}, default 1 = /dev/i2c-1)")
    ap.add_argument("-s", "--sample-rate", type=int, default=None,
                    help=f"IMU sample rate in Hz ({MIN_SAMPLE_RATE}-{MAX_SAMPLE_RATE}, default 10)")
    ap.add_argument(
        "-y", "--yaw-mix", type=int, default=None,
        help=(
            f"Effect of mag yaw on fused yaw ({MIN_YAW_MIX_FACTOR}-{MAX_YAW_MIX_FACTOR}): "
            "0 = gyro only, 1 = mag only, >1 scaled mag adjustment of gyro data (default 4)"
        ),
    )
    ap.add_argument("-a", "--accel-cal", type=str, default=None,
                    help="Accelerometer calibration file (default ./accelcal.txt)")
    ap.add_argument("-m", "--mag-cal", type=str, default=None,
                    help="Magnetometer calibration file (default ./magcal.txt)")
    ap.add_argument("-v", "--verbose", action="store_true", default=None, help="Verbose messages")
    ap.add_argument("--config", type=str, default=None,
                    help=f"YAML config file (falls back to ./{DEFAULT_CONFIG_NAME} if present)")
    ap.add_argument("--sink", choices=SINKS, default=None, help="Output sink (default console)")
    ap.add_argument("--display", choices=DISPLAY_MODES, default=None,
                    help="Console rendering: euler (default), quaternion, accel or mag")
    ap.add_argument("--topic", type=str, default=None, help="Pub/sub topic (default imu_euler)")
    ap.add_argument("--publish-rate", type=float, default=None,
                    help="Nominal publish rate in Hz announced to subscribers (default 10)")
    ap.add_argument("--mqtt-host", type=str, default=None, help="MQTT broker host (default localhost)")
    ap.add_argument("--mqtt-port", type=int, default=None, help="MQTT broker port (default 1883)")
    ap.add_argument("--driver", type=str, default=None,
                    help="Driver name ('replay') or 'package.module:Class' (default replay)")
    ap.add_argument("--replay", type=str, default=None, help="Recording played back by the replay driver")
    ap.add_argument("--replay-loop", action="store_true", help="Restart the recording when it ends")
    ap.add_argument("--samples", type=int, default=None, help="Stop after this many samples (optional)")
    ap.add_argument("--duration", type=float, default=None, help="Stop after this many seconds (optional)")
    return ap


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def resolve_config(args: argparse.Namespace) -> NodeConfig:
    """Merge the YAML defaults with explicit command-line options."""
    if args.config:
        cfg_path: Optional[Path] = Path(args.config)
        if not cfg_path.exists():
            raise ConfigError(f"config file {cfg_path} not found")
    else:
        default_path = Path.cwd() / DEFAULT_CONFIG_NAME
        cfg_path = default_path if default_path.exists() else None

    cfg = load_config(cfg_path).with_overrides(
        i2c_bus=args.bus,
        sample_rate_hz=args.sample_rate,
        yaw_mix_factor=args.yaw_mix,
        accel_cal=args.accel_cal,
        mag_cal=args.mag_cal,
        verbose=args.verbose,
        sink=args.sink,
        display=args.display,
        driver=args.driver,
        samples=args.samples,
        duration_s=args.duration,
    )
    mqtt_overrides = {
        "topic": args.topic,
        "publish_rate_hz": args.publish_rate,
        "host": args.mqtt_host,
        "port": args.mqtt_port,
    }
    cfg.pubsub = replace(cfg.pubsub, **{k: v for k, v in mqtt_overrides.items() if v is not None})
    options = dict(cfg.driver_options)
    if args.replay:
        options["path"] = args.replay
    if args.replay_loop:
        options["loop"] = True
    cfg.driver_options = options
    return cfg.validate()


def load_calibrations(driver, cfg: NodeConfig) -> list[CalibrationFileError]:
    """
    Hand both calibration files to the driver.

    Each slot is tried even if the other failed; explicitly named files that
    cannot be opened are returned so the caller can stop before sampling.
    """
    failures = []
    for kind, path in ((CalibrationKind.ACCEL, cfg.accel_cal), (CalibrationKind.MAG, cfg.mag_cal)):
        try:
            apply_calibration(driver, path, kind, search_dir=cfg.cal_dir)
        except CalibrationFileError as exc:
            logger.error("%s calibration: %s", kind.value, exc)
            failures.append(exc)
    return failures


def build_sink(cfg: NodeConfig):
    """Return ``(sink, publisher)``; ``publisher`` is ``None`` for the console sink."""
    if cfg.sink == "pubsub":
        from .transport.mqtt import MqttPublisher

        publisher = MqttPublisher(cfg.pubsub)
        sink: OutputSink = PubSubSink(
            publisher,
            topic=cfg.pubsub.topic,
            publish_rate_hz=cfg.pubsub.publish_rate_hz,
        )
        try:
            publisher.start()
        except OSError:
            publisher.stop()
            raise
        return sink, publisher
    return ConsoleSink(display=cfg.display), None


def print_summary(stats: LoopStats, cfg: NodeConfig, elapsed_s: float) -> None:
    print("=== Run summary ===")
    print(f" Driver: {cfg.driver} bus={cfg.i2c_bus} rate={cfg.sample_rate_hz} Hz yaw_mix={cfg.yaw_mix_factor}")
    print(f" Reads: {stats.reads}, samples={stats.samples}, not_ready={stats.not_ready}, "
          f"driver_errors={stats.driver_errors}")
    print(f" Stopped: {stats.stop_reason} after {elapsed_s:.1f} s")


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = resolve_config(args)
    except ConfigError as exc:
        parser.print_usage(sys.stderr)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    configure_logging(cfg.verbose)

    try:
        driver = create_driver(cfg.driver, cfg.driver_options)
    except ConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    shutdown = ShutdownSignal().install((signal.SIGINT, signal.SIGTERM))
    try:
        driver.set_debug(cfg.verbose)
        try:
            driver.init(cfg.i2c_bus, cfg.sample_rate_hz, cfg.yaw_mix_factor)
        except DriverError as exc:
            logger.error("Driver init failed: %s", exc)
            return 1

        try:
            if load_calibrations(driver, cfg):
                driver.shutdown()
                return 1
            sink, publisher = build_sink(cfg)
        except OSError as exc:
            logger.error("Cannot connect to MQTT broker %s:%d: %s", cfg.pubsub.host, cfg.pubsub.port, exc)
            driver.shutdown()
            return 1
        except BaseException:
            driver.shutdown()
            raise

        print("\nEntering read loop (ctrl-c to exit)\n", flush=True)
        started = time.monotonic()
        loop = SampleLoop(
            driver,
            sink,
            shutdown,
            max_samples=cfg.samples,
            duration_s=cfg.duration_s,
        )
        try:
            stats = loop.run(cfg.sample_rate_hz)
        finally:
            sink.close()
            if publisher is not None:
                publisher.stop()
        print_summary(stats, cfg, time.monotonic() - started)
        return 0
    finally:
        shutdown.restore()


if __name__ == "__main__":
    sys.exit(main())
