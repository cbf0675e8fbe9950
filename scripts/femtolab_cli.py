#!/usr/bin/env python3
"""
femtolab CLI — drive the bench instruments listed in a YAML lab config.

Usage:
    python scripts/femtolab_cli.py delay-line                  # stage demo move
    python scripts/femtolab_cli.py delay-line --steps -500
    python scripts/femtolab_cli.py shoot --batch 3 --period 2000
    python scripts/femtolab_cli.py count
    python scripts/femtolab_cli.py --config path/to/lab.yaml --console count
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from femtolab import FemtolabError, LaserShooter, StepperMotor
from femtolab.config import LabConfig, load_config
from femtolab.log import init_logging

# ---------------------------------------------------------------------------
# Default config location (relative to this script)
# ---------------------------------------------------------------------------

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "lab_config.yaml"

# ---------------------------------------------------------------------------
# Terminal helpers
# ---------------------------------------------------------------------------


class C:
    """ANSI color codes (no-op on non-TTY)."""

    if sys.stdout.isatty():
        BOLD = "\033[1m"
        DIM = "\033[2m"
        GREEN = "\033[32m"
        RED = "\033[31m"
        RESET = "\033[0m"
    else:
        BOLD = DIM = GREEN = RED = RESET = ""


def ok(text: str) -> None:
    print(f"  {C.GREEN}✓{C.RESET} {text}")


def fail(text: str) -> None:
    print(f"  {C.RED}✗{C.RESET} {text}")


def info(text: str) -> None:
    print(f"  {C.DIM}{text}{C.RESET}")


def banner(text: str) -> None:
    print(f"\n{C.BOLD}{'═' * 60}")
    print(f"  {text}")
    print(f"{'═' * 60}{C.RESET}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_delay_line(config: LabConfig, args: argparse.Namespace) -> int:
    """Enable the stage, tune it, move it, report the position, disable it."""
    if config.stepper is None:
        fail("Config has no 'stepper' section")
        return 1

    banner("Delay Line")
    try:
        with StepperMotor(config.stepper.port, config.stepper.baudrate) as stage:
            ok(f"Connected to {config.stepper.port} ({stage.firmware_info})")
            stage.enable()
            try:
                stage.set_acceleration(args.acceleration)
                stage.set_max_speed(args.speed)
                stage.move(args.steps)
                ok(f"Current position: {stage.ask_position()}")
            finally:
                stage.disable()
    except FemtolabError as exc:
        fail(f"Delay line error: {exc}")
        return 1
    return 0


def run_shoot(config: LabConfig, args: argparse.Namespace) -> int:
    """Fire one batch in single-shot mode and report the counter."""
    if config.shooter is None:
        fail("Config has no 'shooter' section")
        return 1

    period = args.period if args.period is not None else config.shooter.period_us
    batch = args.batch if args.batch is not None else config.shooter.batch_count

    banner("Laser Shooter")
    info("Waiting for the device to report a reset counter...")
    try:
        with LaserShooter(config.shooter.port, config.shooter.baudrate) as shooter:
            ok(f"Connected to {config.shooter.port}")
            shooter.set_mode_single()
            shooter.set_period(period)
            shooter.set_batch_count(batch)
            shooter.set_is_enable(True)
            try:
                shooter.shoot()
                ok(f"Fired {batch} shot(s), {period} µs apart")
            finally:
                shooter.set_is_enable(False)
            ok(f"Shot count: {shooter.get_shots_count()}")
    except FemtolabError as exc:
        fail(f"Shooter error: {exc}")
        return 1
    return 0


def run_count(config: LabConfig, args: argparse.Namespace) -> int:
    """Print the shooter's shot counter."""
    if config.shooter is None:
        fail("Config has no 'shooter' section")
        return 1

    try:
        with LaserShooter(config.shooter.port, config.shooter.baudrate) as shooter:
            ok(f"Shot count: {shooter.get_shots_count()}")
    except FemtolabError as exc:
        fail(f"Shooter error: {exc}")
        return 1
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Drive the femtolab bench instruments.")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Path to YAML config file (default: {DEFAULT_CONFIG.name})",
    )
    parser.add_argument(
        "--console",
        action="store_true",
        help="Echo log records to the console as well as the log file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    delay = sub.add_parser("delay-line", help="Move the stepper-motor delay line")
    delay.add_argument("--steps", type=int, default=1000, help="Relative move (default: 1000)")
    delay.add_argument("--acceleration", type=int, default=6400)
    delay.add_argument("--speed", type=int, default=3200, help="Max speed")
    delay.set_defaults(func=run_delay_line)

    shoot = sub.add_parser("shoot", help="Fire one batch in single-shot mode")
    shoot.add_argument("--batch", type=int, help="Shots per batch (default: from config)")
    shoot.add_argument("--period", type=int, help="Shot period in µs (default: from config)")
    shoot.set_defaults(func=run_shoot)

    count = sub.add_parser("count", help="Read the shot counter")
    count.set_defaults(func=run_count)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except (FileNotFoundError, FemtolabError) as exc:
        print(f"{C.RED}✗{C.RESET} Config error: {exc}", file=sys.stderr)
        return 1

    log_file = init_logging(config.log_dir, enable_console=args.console or config.console)
    info(f"Logging to {log_file}")

    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
