"""Data collection and CSV logging for drivetrain path following runs.

This module provides CSV data logging for:
- State estimates (odometry pose)
- Reference trajectory (sampled desired pose and velocities)
- Wheel loop data (setpoints, measurements, feedforward, feedback, outputs)
- Tracking metrics (position errors and cumulative L2 error)
"""

import csv
import logging
import math
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from .config import TERM_BLUE, TERM_RESET

STATE_HEADER = ["timestamp", "x", "y", "theta"]
REFERENCE_HEADER = ["timestamp", "elapsed_time", "x_ref", "y_ref", "theta_ref", "v_ref", "omega_ref"]
WHEEL_HEADER = [
    "timestamp",
    "v_cmd",
    "omega_cmd",
    "left_setpoint",
    "right_setpoint",
    "left_measured",
    "right_measured",
    "left_ff",
    "right_ff",
    "left_fb",
    "right_fb",
    "left_output",
    "right_output",
]
TRACKING_HEADER = ["timestamp", "error_x", "error_y", "error_l2", "cumulative_l2_error", "sample_count"]


class DataCollector:
    """Manages CSV file creation and logging for path following data.

    This class handles all data logging responsibilities:
    - Creates timestamped output directories
    - Initializes CSV files with headers
    - Writes state, reference, wheel loop and tracking data
    - Ensures proper cleanup on shutdown

    Attributes:
        run_dir: Directory path for this run's output files.
        cumulative_l2_error: Running sum of position errors (meters).
        sample_count: Number of tracking samples logged.
    """

    def __init__(self, output_dir: str = ".", run_dir: Optional[str] = None) -> None:
        """Initialize the data collector.

        Args:
            output_dir: Base directory for output files (default: current directory).
            run_dir: Optional specific run directory. If None, creates timestamped
                directory. Can also be set via RUN_DIR environment variable.

        Raises:
            ValueError: If output_dir is not a valid directory.
        """
        output_path = Path(output_dir)
        if output_path.exists() and not output_path.is_dir():
            raise ValueError(f"Output path exists but is not a directory: {output_dir}")

        self._files: Dict[str, TextIO] = {}
        self._writers: Dict[str, Any] = {}

        if run_dir:
            self.run_dir: Path = Path(run_dir)
        elif env_run_dir := os.environ.get("RUN_DIR"):
            self.run_dir = Path(env_run_dir)
        else:
            # Create timestamped directory: results/run_YYYYMMDD_HHMMSS/
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self.run_dir = output_path / "results" / f"run_{timestamp}"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.state_output_path: Path = self.run_dir / "state_data.csv"
        self.reference_output_path: Path = self.run_dir / "reference_data.csv"
        self.wheel_output_path: Path = self.run_dir / "wheel_data.csv"
        self.tracking_output_path: Path = self.run_dir / "tracking_metrics.csv"

        self.cumulative_l2_error: float = 0.0
        self.sample_count: int = 0

    def setup(self) -> None:
        """Initialize CSV files with headers.

        Must be called before writing data.
        """
        for name, path, header in (
            ("state", self.state_output_path, STATE_HEADER),
            ("reference", self.reference_output_path, REFERENCE_HEADER),
            ("wheel", self.wheel_output_path, WHEEL_HEADER),
            ("tracking", self.tracking_output_path, TRACKING_HEADER),
        ):
            f = open(path, "w", newline="")
            self._files[name] = f
            self._writers[name] = csv.writer(f)
            self._writers[name].writerow(header)
            f.flush()

        logging.info(f"{TERM_BLUE}✓ Initialized data collection to {self.run_dir}{TERM_RESET}")

    def _write(self, name: str, row: list) -> None:
        if name not in self._writers:
            raise RuntimeError("DataCollector.setup() must be called before logging")
        self._writers[name].writerow(row)
        self._files[name].flush()

    def log_state(self, timestamp: float, x: float, y: float, theta: float) -> None:
        """Log the odometry pose estimate to CSV."""
        self._write("state", [timestamp, x, y, theta])

    def log_reference(
        self,
        timestamp: float,
        elapsed_time: float,
        x_ref: float,
        y_ref: float,
        theta_ref: float,
        v_ref: float,
        omega_ref: float,
    ) -> None:
        """Log the sampled reference state to CSV."""
        self._write("reference", [timestamp, elapsed_time, x_ref, y_ref, theta_ref, v_ref, omega_ref])

    def log_wheels(self, timestamp: float, diagnostics: Dict[str, float]) -> None:
        """Log wheel loop data to CSV.

        Args:
            timestamp: Current time (seconds).
            diagnostics: Dictionary with every key in WHEEL_HEADER except
                'timestamp'.
        """
        self._write("wheel", [timestamp] + [diagnostics[key] for key in WHEEL_HEADER[1:]])

    def log_tracking(self, timestamp: float, error_x: float, error_y: float) -> float:
        """Log position tracking error and update the cumulative metrics.

        Returns:
            L2 norm of the position error (meters)
        """
        error_l2 = math.hypot(error_x, error_y)
        self.cumulative_l2_error += error_l2
        self.sample_count += 1
        self._write(
            "tracking",
            [timestamp, error_x, error_y, error_l2, self.cumulative_l2_error, self.sample_count],
        )
        return error_l2

    def log_follow_path(self, timestamp: float, diagnostics: Dict[str, float]) -> None:
        """Log one FollowPath tick to every CSV file.

        Args:
            timestamp: Current time (seconds).
            diagnostics: Output of FollowPath.get_diagnostics().
        """
        self.log_state(timestamp, diagnostics["x"], diagnostics["y"], diagnostics["theta"])
        self.log_reference(
            timestamp,
            diagnostics["elapsed"],
            diagnostics["x_ref"],
            diagnostics["y_ref"],
            diagnostics["theta_ref"],
            diagnostics["v_ref"],
            diagnostics["omega_ref"],
        )
        self.log_wheels(timestamp, diagnostics)
        self.log_tracking(
            timestamp,
            diagnostics["x_ref"] - diagnostics["x"],
            diagnostics["y_ref"] - diagnostics["y"],
        )

    def cleanup(self) -> None:
        """Close all CSV files and log final output location."""
        for f in self._files.values():
            f.close()
        self._files.clear()
        self._writers.clear()

        if self.sample_count > 0:
            avg_mm = self.cumulative_l2_error / self.sample_count * 1000.0
            logging.info(
                f"{TERM_BLUE}→ Tracking: {self.sample_count} samples, "
                f"avg error {avg_mm:.1f}mm{TERM_RESET}"
            )
        logging.info(f"{TERM_BLUE}✓ Saved run data to {self.run_dir}{TERM_RESET}")

    def __enter__(self) -> "DataCollector":
        self.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.cleanup()
