"""Plane geometry value types for the drivetrain.

Poses and velocities are plain frozen dataclasses; transforms are free
functions so nothing is mutated behind the caller's back.
"""

import math
from dataclasses import dataclass


def normalize_angle(angle: float) -> float:
    """Wrap an angle to the interval (-pi, pi].

    Args:
        angle: Angle in radians

    Returns:
        Equivalent angle in (-pi, pi]
    """
    wrapped = math.atan2(math.sin(angle), math.cos(angle))
    # atan2 returns -pi for angles on the negative x-axis
    if wrapped <= -math.pi:
        return math.pi
    return wrapped


def all_finite(*values: float) -> bool:
    """Return True if every value is a finite number (no NaN or infinity)."""
    return all(math.isfinite(value) for value in values)


@dataclass(frozen=True)
class Pose2D:
    """Position (meters) and heading (radians, CCW positive) in the world frame."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "theta", normalize_angle(self.theta))

    @property
    def heading_degrees(self) -> float:
        return math.degrees(self.theta)

    def relative_to(self, other: "Pose2D") -> "Pose2D":
        """Express this pose in the frame of ``other``.

        Args:
            other: Reference pose whose frame is used

        Returns:
            Pose of self as seen from ``other`` (x forward, y left)
        """
        dx = self.x - other.x
        dy = self.y - other.y
        cos_theta = math.cos(other.theta)
        sin_theta = math.sin(other.theta)
        return Pose2D(
            cos_theta * dx + sin_theta * dy,
            -sin_theta * dx + cos_theta * dy,
            self.theta - other.theta,
        )

    def distance_to(self, other: "Pose2D") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass(frozen=True)
class ChassisVelocity:
    """Forward speed (m/s) and yaw rate (rad/s, CCW positive) of the chassis."""

    v: float = 0.0
    omega: float = 0.0


@dataclass(frozen=True)
class WheelSpeeds:
    """Linear speed of each side of the drivetrain (m/s)."""

    left: float = 0.0
    right: float = 0.0
