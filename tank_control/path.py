"""Reference trajectories for drivetrain path following.

This module defines the time-parameterized trajectory that the follower
samples every control tick, loaders for trajectories exported by PathWeaver,
and the Lemniscate of Gerono demonstration path used by the simulator.
"""

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import numpy.typing as npt

from .geometry import Pose2D, normalize_angle


class TrajectoryError(ValueError):
    """Raised when a trajectory cannot be constructed from the given states."""


@dataclass(frozen=True)
class TrajectoryState:
    """Target state of the drivetrain at time ``t`` along a trajectory.

    Attributes:
        t: Time since the start of the trajectory (seconds)
        pose: Desired pose
        v: Desired linear velocity (m/s)
        omega: Desired angular velocity (rad/s)
        acceleration: Desired linear acceleration (m/s²), if known
    """

    t: float
    pose: Pose2D
    v: float = 0.0
    omega: float = 0.0
    acceleration: Optional[float] = None

    @property
    def curvature(self) -> float:
        """Path curvature (rad/m). Zero when the state is not moving."""
        if self.v == 0.0:
            return 0.0
        return self.omega / self.v


def _lerp(start: float, end: float, fraction: float) -> float:
    return start + (end - start) * fraction


def interpolate_states(start: TrajectoryState, end: TrajectoryState, t: float) -> TrajectoryState:
    """Linearly interpolate between two bracketing states.

    Position, velocities and acceleration are interpolated component-wise.
    Heading follows the shortest angular distance from ``start`` to ``end``.

    Args:
        start: State at or before t
        end: State at or after t
        t: Query time (seconds)

    Returns:
        Interpolated state at time t
    """
    fraction = (t - start.t) / (end.t - start.t)

    dtheta = normalize_angle(end.pose.theta - start.pose.theta)
    pose = Pose2D(
        _lerp(start.pose.x, end.pose.x, fraction),
        _lerp(start.pose.y, end.pose.y, fraction),
        start.pose.theta + dtheta * fraction,
    )

    if start.acceleration is not None and end.acceleration is not None:
        acceleration: Optional[float] = _lerp(start.acceleration, end.acceleration, fraction)
    else:
        acceleration = None

    return TrajectoryState(
        t=t,
        pose=pose,
        v=_lerp(start.v, end.v, fraction),
        omega=_lerp(start.omega, end.omega, fraction),
        acceleration=acceleration,
    )


class Trajectory:
    """Immutable, time-ordered sequence of trajectory states.

    A trajectory holds at least two states with strictly increasing time
    stamps. Its duration is the time stamp of the last state.
    """

    def __init__(self, states: Iterable[TrajectoryState]):
        """Build a trajectory from pre-computed states.

        Args:
            states: States ordered by time

        Raises:
            TrajectoryError: If fewer than two states are given or the time
                stamps are not strictly increasing.
        """
        self._states = tuple(states)

        if len(self._states) < 2:
            raise TrajectoryError(
                f"A trajectory needs at least 2 states, got {len(self._states)}"
            )

        for i, (prev, curr) in enumerate(zip(self._states, self._states[1:]), start=1):
            if not curr.t > prev.t:
                raise TrajectoryError(
                    f"Trajectory time must be strictly increasing: state {i} has "
                    f"t={curr.t} after t={prev.t}"
                )

        self._times = np.array([state.t for state in self._states], dtype=float)

    @property
    def states(self) -> Sequence[TrajectoryState]:
        return self._states

    @property
    def duration(self) -> float:
        """Total time of the trajectory (seconds), the last state's time stamp."""
        return self._states[-1].t

    @property
    def initial_pose(self) -> Pose2D:
        return self._states[0].pose

    def __len__(self) -> int:
        return len(self._states)

    def sample(self, t: float) -> TrajectoryState:
        """Sample the trajectory at time t.

        Args:
            t: Time since trajectory start (seconds)

        Returns:
            The first state for t at or before the start, the last state for
            t at or after the duration, otherwise the state interpolated
            between the two bracketing states.
        """
        if t <= self._states[0].t:
            return self._states[0]
        if t >= self.duration:
            return self._states[-1]

        # Index of the first state strictly after t
        end_idx = int(np.searchsorted(self._times, t, side="right"))
        start = self._states[end_idx - 1]
        end = self._states[end_idx]

        if t == start.t:
            return start
        return interpolate_states(start, end, t)

    @classmethod
    def from_arrays(
        cls,
        t: npt.ArrayLike,
        x: npt.ArrayLike,
        y: npt.ArrayLike,
        theta: npt.ArrayLike,
        v: npt.ArrayLike,
        omega: npt.ArrayLike,
        acceleration: Optional[npt.ArrayLike] = None,
    ) -> "Trajectory":
        """Build a trajectory from equal-length arrays of state components.

        Raises:
            TrajectoryError: If the arrays differ in length, or the resulting
                states do not form a valid trajectory.
        """
        columns = [np.asarray(column, dtype=float) for column in (t, x, y, theta, v, omega)]
        if acceleration is not None:
            columns.append(np.asarray(acceleration, dtype=float))

        lengths = {len(column) for column in columns}
        if len(lengths) != 1:
            raise TrajectoryError(f"Trajectory arrays differ in length: {sorted(lengths)}")

        states = []
        for i in range(len(columns[0])):
            states.append(
                TrajectoryState(
                    t=float(columns[0][i]),
                    pose=Pose2D(float(columns[1][i]), float(columns[2][i]), float(columns[3][i])),
                    v=float(columns[4][i]),
                    omega=float(columns[5][i]),
                    acceleration=float(columns[6][i]) if acceleration is not None else None,
                )
            )
        return cls(states)

    @classmethod
    def from_pathweaver(cls, records: List[Dict[str, Any]]) -> "Trajectory":
        """Build a trajectory from PathWeaver / WPILib JSON records.

        Each record holds ``time``, ``velocity``, ``acceleration``,
        ``curvature`` and ``pose`` with ``translation.x``, ``translation.y``
        and ``rotation.radians``. Angular velocity is velocity * curvature.

        Raises:
            TrajectoryError: If a record is missing a field.
        """
        states = []
        for i, record in enumerate(records):
            try:
                translation = record["pose"]["translation"]
                velocity = float(record["velocity"])
                states.append(
                    TrajectoryState(
                        t=float(record["time"]),
                        pose=Pose2D(
                            float(translation["x"]),
                            float(translation["y"]),
                            float(record["pose"]["rotation"]["radians"]),
                        ),
                        v=velocity,
                        omega=velocity * float(record.get("curvature", 0.0)),
                        acceleration=float(record.get("acceleration", 0.0)),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise TrajectoryError(f"Malformed trajectory record {i}: {e}") from e
        return cls(states)


def load_trajectory(filepath: Union[str, Path]) -> Trajectory:
    """Load a PathWeaver JSON trajectory file.

    Args:
        filepath: Path to the ``.wpilib.json`` file

    Returns:
        The loaded trajectory

    Raises:
        FileNotFoundError: If the file does not exist.
        TrajectoryError: If the file content is not a valid trajectory.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Trajectory file not found: {filepath}")

    with open(filepath) as f:
        try:
            records = json.load(f)
        except json.JSONDecodeError as e:
            raise TrajectoryError(f"Invalid trajectory JSON in {filepath}: {e}") from e

    if not isinstance(records, list):
        raise TrajectoryError(f"Expected a list of states in {filepath}")
    return Trajectory.from_pathweaver(records)


def lemniscate_trajectory(
    duration: float = 20.0, dt: float = 0.02, scale: float = 1.0
) -> Trajectory:
    """Sample the Lemniscate of Gerono figure-eight into a trajectory.

    The curve is defined by the path parameter k:
        x = -scale * sin(2k)
        y = 2 * scale * (sin(k) + 1)

    with k running linearly from -pi/2 to 3pi/2 over ``duration``. The path
    starts at the origin facing +x, which matches a freshly reset pose.

    Args:
        duration: Time to traverse the full figure-eight (seconds)
        dt: Time step between states (seconds)
        scale: Size scale (meters)

    Returns:
        Trajectory with pose, velocity, angular velocity and acceleration
    """
    t = np.arange(0.0, duration + dt / 2.0, dt)
    dk_dt = 2.0 * np.pi / duration
    k = dk_dt * t - np.pi / 2.0

    x = -scale * np.sin(2.0 * k)
    y = 2.0 * scale * (np.sin(k) + 1.0)

    # Derivatives with respect to the path parameter
    dx_dk = -2.0 * scale * np.cos(2.0 * k)
    dy_dk = 2.0 * scale * np.cos(k)
    d2x_dk2 = 4.0 * scale * np.sin(2.0 * k)
    d2y_dk2 = -2.0 * scale * np.sin(k)

    speed_k = np.sqrt(dx_dk**2 + dy_dk**2)

    theta = np.arctan2(dy_dk, dx_dk)
    v = speed_k * dk_dt
    # Signed curvature times speed gives the heading rate
    omega = (dx_dk * d2y_dk2 - dy_dk * d2x_dk2) / speed_k**2 * dk_dt
    acceleration = (dx_dk * d2x_dk2 + dy_dk * d2y_dk2) / speed_k * dk_dt**2

    return Trajectory.from_arrays(t, x, y, theta, v, omega, acceleration)


def straight_trajectory(distance: float, speed: float, dt: float = 0.02) -> Trajectory:
    """Constant-speed straight line along +x from the origin.

    Args:
        distance: Length of the line (meters, positive)
        speed: Travel speed (m/s, positive)
        dt: Time step between states (seconds)
    """
    duration = distance / speed
    steps = max(int(math.ceil(duration / dt)), 1)
    t = np.linspace(0.0, duration, steps + 1)
    zeros = np.zeros_like(t)
    return Trajectory.from_arrays(t, speed * t, zeros, zeros, np.full_like(t, speed), zeros, zeros)
