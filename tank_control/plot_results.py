#!/usr/bin/env python3
"""
Diagnostic plots for recorded path following runs.

This script loads the CSV files written by DataCollector from a run
directory and generates:
- XY trajectory: reference vs odometry estimate
- Tracking error over time
- Wheel loop: setpoints vs measured wheel speeds and duty outputs
"""

import argparse
import csv
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes

from .config import PLOT_ACTUAL_COLOR, PLOT_REFERENCE_COLOR, TERM_BLUE, TERM_RESET


def load_csv_to_dict(csv_path: Path) -> Dict[str, np.ndarray]:
    """Load CSV file into dictionary of numpy arrays.

    Non-numeric or empty values become NaN.

    Args:
        csv_path: Path to CSV file.

    Returns:
        Dictionary mapping column names to numpy arrays.

    Raises:
        FileNotFoundError: If the CSV file does not exist.
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        data: Dict[str, List[float]] = {name: [] for name in reader.fieldnames or []}
        for row in reader:
            for key, value in row.items():
                try:
                    data[key].append(float(value))
                except (ValueError, TypeError):
                    data[key].append(np.nan)

    return {key: np.array(values) for key, values in data.items()}


def load_run_data(run_dir: Path) -> Dict[str, Dict[str, np.ndarray]]:
    """Load all CSV data from a run directory.

    Args:
        run_dir: Path to the run directory containing CSV files

    Returns:
        Dictionary containing data dicts for 'state', 'reference', 'wheel'
        and 'tracking' (missing files are skipped with a warning)
    """
    data = {}
    for name, filename in (
        ("state", "state_data.csv"),
        ("reference", "reference_data.csv"),
        ("wheel", "wheel_data.csv"),
        ("tracking", "tracking_metrics.csv"),
    ):
        path = run_dir / filename
        if path.exists():
            data[name] = load_csv_to_dict(path)
        else:
            logging.warning(f"{path} not found. Related plots will be missing.")
    return data


def style_axis(ax: Axes, title: str = "", xlabel: str = "", ylabel: str = "") -> None:
    """Apply consistent styling to a matplotlib axis."""
    if title:
        ax.set_title(title, fontweight="bold")
    if xlabel:
        ax.set_xlabel(xlabel)
    if ylabel:
        ax.set_ylabel(ylabel)
    ax.grid(True, alpha=0.3, linestyle="--", linewidth=0.5)


def plot_xy_trajectory(data: Dict[str, Dict[str, np.ndarray]], ax: Axes) -> None:
    """Plot XY trajectory comparison: reference vs odometry."""
    if "reference" in data:
        ref = data["reference"]
        ax.plot(ref["x_ref"], ref["y_ref"], color=PLOT_REFERENCE_COLOR, linewidth=2,
                label="Reference", alpha=0.7)
        ax.plot(ref["x_ref"][0], ref["y_ref"][0], "go", markersize=8, label="Start")

    if "state" in data:
        state = data["state"]
        ax.plot(state["x"], state["y"], color=PLOT_ACTUAL_COLOR, linewidth=1.5, label="Odometry")

    style_axis(ax, "Trajectory: Reference vs Odometry", "X Position (m)", "Y Position (m)")
    ax.axis("equal")
    ax.legend(loc="best")


def plot_tracking_error(data: Dict[str, Dict[str, np.ndarray]], ax: Axes) -> None:
    """Plot position tracking error over time."""
    if "tracking" not in data:
        return
    tracking = data["tracking"]
    t = tracking["timestamp"] - tracking["timestamp"][0]
    ax.plot(t, tracking["error_x"], label="Error X", alpha=0.7)
    ax.plot(t, tracking["error_y"], label="Error Y", alpha=0.7)
    ax.plot(t, tracking["error_l2"], color="k", label="L2 Error")
    style_axis(ax, "Position Tracking Error", "Time (s)", "Error (m)")
    ax.legend(loc="best")


def plot_wheel_loop(data: Dict[str, Dict[str, np.ndarray]], ax_speed: Axes, ax_output: Axes) -> None:
    """Plot wheel speed setpoints vs measurements, and duty outputs."""
    if "wheel" not in data:
        return
    wheel = data["wheel"]
    t = wheel["timestamp"] - wheel["timestamp"][0]

    ax_speed.plot(t, wheel["left_setpoint"], "--", color=PLOT_REFERENCE_COLOR, label="Left setpoint")
    ax_speed.plot(t, wheel["left_measured"], color=PLOT_REFERENCE_COLOR, label="Left measured")
    ax_speed.plot(t, wheel["right_setpoint"], "--", color=PLOT_ACTUAL_COLOR, label="Right setpoint")
    ax_speed.plot(t, wheel["right_measured"], color=PLOT_ACTUAL_COLOR, label="Right measured")
    style_axis(ax_speed, "Wheel Speeds", "Time (s)", "Speed (m/s)")
    ax_speed.legend(loc="best")

    ax_output.plot(t, wheel["left_output"], color=PLOT_REFERENCE_COLOR, label="Left")
    ax_output.plot(t, wheel["right_output"], color=PLOT_ACTUAL_COLOR, label="Right")
    ax_output.set_ylim(-1.05, 1.05)
    style_axis(ax_output, "Duty Output", "Time (s)", "Duty")
    ax_output.legend(loc="best")


def plot_run_summary(run_dir: Path, save_plots: bool = False, show_plots: bool = True) -> plt.Figure:
    """Generate the diagnostic figure for a run.

    Args:
        run_dir: Directory containing the run CSV files
        save_plots: If True, save the figure as run_summary.png in run_dir
        show_plots: If True, display the figure interactively

    Returns:
        The generated figure

    Raises:
        FileNotFoundError: If the run directory holds no CSV data.
    """
    data = load_run_data(run_dir)
    if not data:
        raise FileNotFoundError(f"No run data found in {run_dir}")

    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    fig.suptitle(f"Path Following Run: {run_dir.name}", fontsize=14, fontweight="bold")

    plot_xy_trajectory(data, axes[0, 0])
    plot_tracking_error(data, axes[0, 1])
    plot_wheel_loop(data, axes[1, 0], axes[1, 1])
    fig.tight_layout()

    if save_plots:
        save_path = run_dir / "run_summary.png"
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        logging.info(f"Saved plot: {save_path}")

    if show_plots:
        plt.show()

    return fig


def find_latest_run(results_dir: Path) -> Path:
    """Find the most recent run directory.

    Raises:
        FileNotFoundError: If no run directories are found.
    """
    if not results_dir.exists():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")

    run_dirs = sorted(
        [d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_")]
    )

    if not run_dirs:
        raise FileNotFoundError(f"No run directories found in {results_dir}")

    return run_dirs[-1]


def list_available_runs(results_dir: Path) -> None:
    """List all available run directories."""
    if not results_dir.exists():
        logging.error(f"Results directory not found: {results_dir}")
        return

    run_dirs = sorted(
        [d for d in results_dir.iterdir() if d.is_dir() and d.name.startswith("run_")]
    )

    if not run_dirs:
        logging.info(f"No run directories found in {results_dir}")
        return

    logging.info("Available runs:")
    for i, run_dir in enumerate(run_dirs, 1):
        logging.info(f"  {i}. {run_dir.name}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the plotting script."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    parser = argparse.ArgumentParser(
        description="Plot diagnostics from recorded path following runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Plot the most recent run
  python -m tank_control.plot_results

  # Plot a specific run and save the figure without displaying it
  python -m tank_control.plot_results --run run_20250114_184704 --save --no-show
        """,
    )
    parser.add_argument("--run", type=str, default=None,
                        help="Name of the run directory to plot. Default: most recent run.")
    parser.add_argument("--results-dir", type=str, default="results",
                        help="Path to the results directory (default: results)")
    parser.add_argument("--save", action="store_true", help="Save the figure in the run directory")
    parser.add_argument("--no-show", action="store_true", help="Do not display plots interactively")
    parser.add_argument("--list", action="store_true", help="List all available runs and exit")
    args = parser.parse_args(argv)

    results_dir = Path(args.results_dir)

    if args.list:
        list_available_runs(results_dir)
        return

    if args.run:
        run_dir = results_dir / args.run
        if not run_dir.exists():
            logging.error(f"Error: Run directory not found: {run_dir}")
            list_available_runs(results_dir)
            sys.exit(1)
    else:
        try:
            run_dir = find_latest_run(results_dir)
            logging.info(f"{TERM_BLUE}Plotting most recent run: {run_dir.name}{TERM_RESET}")
        except FileNotFoundError as e:
            logging.error(f"Error: {e}")
            sys.exit(1)

    try:
        plot_run_summary(run_dir=run_dir, save_plots=args.save, show_plots=not args.no_show)
    except FileNotFoundError as e:
        logging.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
