"""
Differential drive kinematic model.

This module provides the forward and inverse kinematics for a tank-drive
chassis, converting between chassis velocity (linear and angular) and the
individual wheel velocities of the left and right sides.
"""

from .geometry import ChassisVelocity, WheelSpeeds


class DifferentialDriveKinematics:
    """Bidirectional chassis/wheel velocity mapping for a fixed track width.

    For a differential drive robot, the relationship between the robot's
    linear velocity (v), angular velocity (omega), and the individual
    wheel velocities is:
        v_left = v - (W/2) * omega
        v_right = v + (W/2) * omega

    where W is the track width (distance between the wheels).
    """

    def __init__(self, track_width: float):
        """Initialize the kinematics model.

        Args:
            track_width: Distance between left and right wheels (meters)

        Raises:
            ValueError: If track_width is not positive.
        """
        if not track_width > 0.0:
            raise ValueError(f"Track width must be positive, got {track_width}")
        self.track_width = track_width

    def to_wheel_speeds(self, chassis: ChassisVelocity) -> WheelSpeeds:
        """Compute wheel velocities from desired linear and angular velocities.

        Args:
            chassis: Desired chassis velocity. Positive omega results in
                counter-clockwise rotation.

        Returns:
            WheelSpeeds with left and right velocities in m/s (unclamped)

        Example:
            >>> kinematics = DifferentialDriveKinematics(0.5)
            >>> kinematics.to_wheel_speeds(ChassisVelocity(1.0, 0.5))
            WheelSpeeds(left=0.875, right=1.125)
        """
        half_width = self.track_width / 2.0
        return WheelSpeeds(
            left=chassis.v - half_width * chassis.omega,
            right=chassis.v + half_width * chassis.omega,
        )

    def to_chassis_velocity(self, wheels: WheelSpeeds) -> ChassisVelocity:
        """Compute chassis velocity from measured wheel velocities.

        Args:
            wheels: Left and right wheel velocities (m/s)

        Returns:
            ChassisVelocity with v = mean wheel speed and
            omega = (right - left) / track width
        """
        return ChassisVelocity(
            v=(wheels.left + wheels.right) / 2.0,
            omega=(wheels.right - wheels.left) / self.track_width,
        )
