"""Localization module for drivetrain pose estimation.

This module provides dead-reckoning odometry by fusing an absolute heading
measurement with the cumulative distance travelled by each side of the
drivetrain:
- Heading from the gyro is used directly (no integration of angular rate)
- Forward travel is the average of the left and right distance increments
- Position is integrated with simple Euler steps along the current heading
"""

import logging
import math
from typing import Dict

from .geometry import Pose2D, all_finite, normalize_angle


class PoseEstimator:
    """Dead-reckoning pose estimator for a differential drive.

    The estimator owns the pose. Consumers read it through ``pose`` or the
    value returned from ``update``; it only changes on ``update`` and
    ``reset``.

    Invalid (NaN or infinite) readings are never integrated: the pose and
    distance baseline keep their previous values and ``last_update_valid``
    is cleared so the caller can abort whatever depends on the estimate.
    """

    def __init__(self) -> None:
        self._pose = Pose2D()

        # Distance baseline for computing per-tick increments
        self.prev_left_distance: float = 0.0
        self.prev_right_distance: float = 0.0

        # Diagnostics
        self.last_update_valid: bool = True
        self.rejected_updates: int = 0

    @property
    def pose(self) -> Pose2D:
        return self._pose

    @staticmethod
    def readings_valid(heading: float, left_distance: float, right_distance: float) -> bool:
        """Check that a set of sensor readings can be integrated."""
        return all_finite(heading, left_distance, right_distance)

    def reset(self, left_distance: float = 0.0, right_distance: float = 0.0) -> None:
        """Reset the pose to the origin and re-baseline the distance cache.

        Args:
            left_distance: Current cumulative left distance (meters). Use 0.0
                when the encoders are zeroed at the same time.
            right_distance: Current cumulative right distance (meters).
        """
        self._pose = Pose2D()
        self.prev_left_distance = left_distance
        self.prev_right_distance = right_distance
        self.last_update_valid = True
        self.rejected_updates = 0

    def update(self, heading: float, left_distance: float, right_distance: float) -> Pose2D:
        """Integrate one set of heading and wheel distance readings.

        Args:
            heading: Absolute heading (radians, counter-clockwise positive)
            left_distance: Cumulative left side distance (meters)
            right_distance: Cumulative right side distance (meters)

        Returns:
            The updated pose, or the previous pose if the readings were invalid
        """
        if not self.readings_valid(heading, left_distance, right_distance):
            self.last_update_valid = False
            self.rejected_updates += 1
            logging.debug(
                f"Rejected invalid odometry reading: heading={heading}, "
                f"left={left_distance}, right={right_distance}"
            )
            return self._pose

        delta_left = left_distance - self.prev_left_distance
        delta_right = right_distance - self.prev_right_distance
        self.prev_left_distance = left_distance
        self.prev_right_distance = right_distance

        delta_distance = (delta_left + delta_right) / 2.0

        # Euler step along the measured heading
        self._pose = Pose2D(
            self._pose.x + delta_distance * math.cos(heading),
            self._pose.y + delta_distance * math.sin(heading),
            normalize_angle(heading),
        )
        self.last_update_valid = True
        return self._pose

    def get_diagnostics(self) -> Dict[str, float]:
        """Get estimator state for logging and telemetry.

        Returns:
            Dictionary containing x, y, heading in degrees and the number of
            rejected updates since the last reset
        """
        return {
            "x": self._pose.x,
            "y": self._pose.y,
            "heading_deg": self._pose.heading_degrees,
            "rejected_updates": self.rejected_updates,
        }
