"""
Lab configuration: which port each instrument lives on, shooter
defaults, and logging options, loaded from a YAML file::

    from femtolab.config import load_config

    config = load_config("config/lab_config.yaml")
    with LaserShooter(config.shooter.port, config.shooter.baudrate) as shooter:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_BATCH_COUNT,
    DEFAULT_BAUD,
    DEFAULT_LOG_DIR,
    DEFAULT_PERIOD_US,
    MAX_PERIOD_US,
    MIN_PERIOD_US,
)
from .exceptions import ValidationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeviceConfig:
    """Serial settings for one instrument."""

    port: str
    baudrate: int = DEFAULT_BAUD


@dataclass(frozen=True)
class ShooterConfig(DeviceConfig):
    """Serial settings plus firing defaults for the laser shooter."""

    period_us: int = DEFAULT_PERIOD_US
    batch_count: int = DEFAULT_BATCH_COUNT


@dataclass(frozen=True)
class LabConfig:
    """Top-level configuration loaded from a YAML file."""

    log_dir: str = DEFAULT_LOG_DIR
    console: bool = False
    shooter: ShooterConfig | None = None
    stepper: DeviceConfig | None = None
    oscilloscope: DeviceConfig | None = None


# ---------------------------------------------------------------------------
# Config loading & validation
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> LabConfig:
    """Load and validate a lab configuration from a YAML file.

    Args:
        path: Path to the YAML config file.

    Returns:
        A validated :class:`LabConfig`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValidationError: If the config is malformed or contains invalid values.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    log_dir = raw.get("log_dir", DEFAULT_LOG_DIR)
    if not isinstance(log_dir, str) or not log_dir:
        raise ValidationError("'log_dir' must be a non-empty string")

    console = raw.get("console", False)
    if not isinstance(console, bool):
        raise ValidationError(f"'console' must be a boolean, got {type(console).__name__}")

    shooter = None
    if raw.get("shooter") is not None:
        shooter = _parse_shooter(raw["shooter"])

    config = LabConfig(
        log_dir=log_dir,
        console=console,
        shooter=shooter,
        stepper=_parse_device("stepper", raw.get("stepper")),
        oscilloscope=_parse_device("oscilloscope", raw.get("oscilloscope")),
    )
    logger.debug("Loaded config from %s: %s", path, config)
    return config


def _parse_device(section: str, data: object) -> DeviceConfig | None:
    """Parse an optional ``{port, baudrate}`` section."""
    if data is None:
        return None
    port, baudrate = _parse_serial(section, data)
    return DeviceConfig(port=port, baudrate=baudrate)


def _parse_shooter(data: object) -> ShooterConfig:
    port, baudrate = _parse_serial("shooter", data)
    assert isinstance(data, dict)

    period_us = data.get("period_us", DEFAULT_PERIOD_US)
    if (
        not isinstance(period_us, int)
        or isinstance(period_us, bool)
        or not (MIN_PERIOD_US <= period_us <= MAX_PERIOD_US)
    ):
        raise ValidationError(
            f"shooter: 'period_us' must be an integer {MIN_PERIOD_US}-{MAX_PERIOD_US}, "
            f"got {period_us!r}"
        )

    batch_count = data.get("batch_count", DEFAULT_BATCH_COUNT)
    if not isinstance(batch_count, int) or isinstance(batch_count, bool) or batch_count < 1:
        raise ValidationError(
            f"shooter: 'batch_count' must be a positive integer, got {batch_count!r}"
        )

    return ShooterConfig(
        port=port, baudrate=baudrate, period_us=period_us, batch_count=batch_count
    )


def _parse_serial(section: str, data: object) -> tuple[str, int]:
    if not isinstance(data, dict):
        raise ValidationError(f"'{section}' config must be a mapping")

    port = data.get("port")
    if not isinstance(port, str) or not port:
        raise ValidationError(f"{section}: 'port' must be a non-empty string")

    baudrate = data.get("baudrate", DEFAULT_BAUD)
    if not isinstance(baudrate, int) or isinstance(baudrate, bool) or baudrate <= 0:
        raise ValidationError(f"{section}: 'baudrate' must be a positive integer, got {baudrate!r}")

    return port, baudrate
