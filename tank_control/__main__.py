"""
Main entry point when running the tank_control module with python -m.
"""

import argparse
import asyncio
import logging
import sys

from .client import main, setup_logging
from .component_modes import parse_component_flags
from .config import PATH_DT, PATH_DURATION, PATH_SCALE
from .data_collector import DataCollector
from .path import TrajectoryError, lemniscate_trajectory, load_trajectory


def run_offline(trajectory, component_mode) -> None:
    """Follow the trajectory against the built-in simulator and log the run."""
    from .commands import FollowPath
    from .drivetrain import Drivetrain
    from .simulation import SimulatedDrive, run_simulation

    sim = SimulatedDrive()
    drivetrain = Drivetrain(sim)
    command = FollowPath(drivetrain, trajectory, component_mode=component_mode)

    with DataCollector() as collector:
        run_simulation([command], sim, max_time=trajectory.duration + 5.0, collector=collector)


if __name__ == "__main__":
    component_mode, remaining = parse_component_flags()

    parser = argparse.ArgumentParser(
        description="Ramsete path following for a differential-drive robot"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    parser.add_argument(
        "--sim", action="store_true", help="Run against the built-in simulator instead of the server"
    )
    parser.add_argument(
        "--trajectory", type=str, default=None,
        help="PathWeaver JSON trajectory file (default: lemniscate)",
    )
    parser.add_argument("--uri", type=str, default=None, help="WebSocket server URI")
    args = parser.parse_args(remaining)

    setup_logging(args.verbose)

    try:
        if args.trajectory:
            trajectory = load_trajectory(args.trajectory)
        else:
            trajectory = lemniscate_trajectory(PATH_DURATION, PATH_DT, PATH_SCALE)
    except (FileNotFoundError, TrajectoryError) as e:
        logging.error(f"Error loading trajectory: {e}")
        sys.exit(1)

    try:
        if args.sim:
            run_offline(trajectory, component_mode)
        elif args.uri:
            asyncio.run(main(trajectory, component_mode=component_mode, uri=args.uri))
        else:
            asyncio.run(main(trajectory, component_mode=component_mode))
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
