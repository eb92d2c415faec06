"""Ramsete path follower for drivetrain control.

This module implements the Ramsete nonlinear tracking law, which converts the
error between the estimated pose and a desired trajectory state into a
corrected chassis velocity command:
- Transforms the global pose error into the robot's own frame
- Scales the correction gain with the reference velocities
- Guards the sin(x)/x term against its removable singularity at zero
"""

import math
from typing import Dict, Optional

from .geometry import ChassisVelocity, Pose2D
from .path import TrajectoryState


def sinc(x: float) -> float:
    """Return sin(x)/x, with the removable singularity at 0 evaluated to 1."""
    if x == 0.0:
        return 1.0
    return math.sin(x) / x


class RamseteController:
    """Ramsete nonlinear pose-tracking controller.

    Control law (errors in the robot frame):
        k = 2 * zeta * sqrt(omega_d^2 + b * v_d^2)
        v = v_d * cos(e_theta) + k * e_x
        omega = omega_d + k * e_theta + b * v_d * sinc(e_theta) * e_y

    When the pose error is zero the output is exactly the reference
    velocity pair (pure feedforward).

    Attributes:
        b: Convergence gain, analogous to a proportional term (> 0)
        zeta: Damping ratio in (0, 1)
        enabled: If False, reference velocities are passed through unchanged
    """

    def __init__(
        self,
        b: float = 2.0,
        zeta: float = 0.7,
        tolerance: Optional[Pose2D] = None,
    ):
        """Initialize the Ramsete controller.

        Args:
            b: Convergence gain (rad²/m²). Default: 2.0
            zeta: Damping ratio. Default: 0.7
            tolerance: Robot-frame error considered on-target. Default: 5 cm
                along and across track, 5 degrees heading.

        Raises:
            ValueError: If b is not positive or zeta is outside (0, 1).
        """
        if not b > 0.0:
            raise ValueError(f"Ramsete b must be positive, got {b}")
        if not 0.0 < zeta < 1.0:
            raise ValueError(f"Ramsete zeta must be in (0, 1), got {zeta}")

        self.b = b
        self.zeta = zeta
        self.tolerance = tolerance if tolerance is not None else Pose2D(0.05, 0.05, math.radians(5.0))
        self.enabled = True

        # Last robot-frame error, kept for telemetry and at_reference()
        self.last_error = Pose2D()

    def gain(self, v_d: float, omega_d: float) -> float:
        """Time-varying correction gain k for the given reference velocities."""
        return 2.0 * self.zeta * math.sqrt(omega_d**2 + self.b * v_d**2)

    def correct(self, current: Pose2D, desired: TrajectoryState) -> ChassisVelocity:
        """Compute the corrected chassis velocity for one control tick.

        Args:
            current: Estimated pose of the robot
            desired: Trajectory state sampled at the current elapsed time

        Returns:
            Corrected chassis velocity (v, omega)
        """
        v_d = desired.v
        omega_d = desired.omega

        # Desired pose expressed in the robot frame
        self.last_error = desired.pose.relative_to(current)

        if not self.enabled:
            return ChassisVelocity(v_d, omega_d)

        e_x = self.last_error.x
        e_y = self.last_error.y
        e_theta = self.last_error.theta

        k = self.gain(v_d, omega_d)

        v = v_d * math.cos(e_theta) + k * e_x
        omega = omega_d + k * e_theta + self.b * v_d * sinc(e_theta) * e_y
        return ChassisVelocity(v, omega)

    def at_reference(self) -> bool:
        """Return True if the last computed error is within tolerance."""
        return (
            abs(self.last_error.x) < self.tolerance.x
            and abs(self.last_error.y) < self.tolerance.y
            and abs(self.last_error.theta) < self.tolerance.theta
        )

    def get_diagnostics(self) -> Dict[str, float]:
        return {
            "error_x": self.last_error.x,
            "error_y": self.last_error.y,
            "error_theta": self.last_error.theta,
        }
