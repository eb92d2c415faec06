"""Drivetrain subsystem: the boundary between control code and hardware.

This module converts raw hardware readings into physical units, owns the
pose estimator, and writes clamped duty commands to the motors. It also
implements the ownership protocol that keeps at most one drive command in
control of the motors at a time.
"""

import logging
import math
from typing import Any, Dict, Optional, Protocol

from .geometry import Pose2D, WheelSpeeds
from .localizer import PoseEstimator
from .model import DifferentialDriveKinematics
from .motor_controller import SimpleMotorFeedforward


class ResourceConflictError(RuntimeError):
    """Raised when a command tries to take a subsystem owned by another command."""


class DriveHardware(Protocol):
    """Motor, encoder and gyro channels of a tank drivetrain.

    Implementations report raw sensor units: gyro angle in degrees
    (clockwise positive), encoder positions in motor rotations and encoder
    velocities in motor rotations per second.
    """

    def get_gyro_angle(self) -> float: ...

    def get_left_position(self) -> float: ...

    def get_right_position(self) -> float: ...

    def get_left_velocity(self) -> float: ...

    def get_right_velocity(self) -> float: ...

    def set_outputs(self, left: float, right: float) -> None: ...

    def reset_sensors(self) -> None: ...


class Drivetrain:
    """Tank drive subsystem.

    Attributes:
        hardware: Motor and sensor channels
        kinematics: Chassis/wheel velocity mapping for the track width
        feedforward: Characterized motor feedforward model
        estimator: Dead-reckoning pose estimator
        owner: Command currently holding exclusive use of the motors
    """

    def __init__(self, hardware: DriveHardware, config: Optional[Any] = None):
        """Initialize the drivetrain.

        Args:
            hardware: Motor and sensor channels.
            config: Configuration object or module with drivetrain parameters.
                    If None, uses default values from tank_control.config.
        """
        # Import config if not provided
        if config is None:
            from tank_control import config as cfg
        else:
            cfg = config
        self.config = cfg

        self.hardware = hardware
        self.kinematics = DifferentialDriveKinematics(cfg.TRACK_WIDTH)
        self.feedforward = SimpleMotorFeedforward(cfg.KS, cfg.KV, cfg.KA)
        self.estimator = PoseEstimator()

        self.distance_per_rotation: float = cfg.DISTANCE_PER_ROTATION
        self.max_output: float = cfg.MAX_OUTPUT
        self.telemetry_enabled: bool = cfg.DRIVETRAIN_TELEMETRY_ENABLED

        self.owner: Optional[Any] = None

        # Last commanded duty per wheel (telemetry)
        self.left_output: float = 0.0
        self.right_output: float = 0.0

        self.reset_odometry()

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------

    def acquire(self, owner: Any) -> None:
        """Take exclusive use of the drivetrain.

        Raises:
            ResourceConflictError: If a different owner already holds it.
        """
        if self.owner is not None and self.owner is not owner:
            raise ResourceConflictError(
                f"Drivetrain is owned by {self.owner!r}, cannot be acquired by {owner!r}"
            )
        self.owner = owner

    def release(self, owner: Any) -> None:
        """Give up exclusive use of the drivetrain if ``owner`` holds it."""
        if self.owner is owner:
            self.owner = None

    # ------------------------------------------------------------------
    # Sensors
    # ------------------------------------------------------------------

    def get_heading(self) -> float:
        """Heading in radians, counter-clockwise positive.

        The gyro reports degrees clockwise positive, so the sign is flipped.
        """
        return -math.radians(self.hardware.get_gyro_angle())

    def get_left_distance(self) -> float:
        return self.hardware.get_left_position() * self.distance_per_rotation

    def get_right_distance(self) -> float:
        return self.hardware.get_right_position() * self.distance_per_rotation

    def get_average_distance(self) -> float:
        return (self.get_left_distance() + self.get_right_distance()) / 2.0

    def get_wheel_speeds(self) -> WheelSpeeds:
        """Measured wheel speeds (m/s) from the encoder velocities."""
        return WheelSpeeds(
            left=self.hardware.get_left_velocity() * self.distance_per_rotation,
            right=self.hardware.get_right_velocity() * self.distance_per_rotation,
        )

    def get_pose(self) -> Pose2D:
        return self.estimator.pose

    @property
    def odometry_valid(self) -> bool:
        """False if the most recent odometry update was rejected."""
        return self.estimator.last_update_valid

    # ------------------------------------------------------------------
    # Periodic update
    # ------------------------------------------------------------------

    def periodic(self) -> Pose2D:
        """Update the odometry pose with the heading and distance measurements.

        Must run once per tick, before any controller reads the pose.

        Returns:
            The updated pose (unchanged if the readings were rejected)
        """
        pose = self.estimator.update(
            self.get_heading(), self.get_left_distance(), self.get_right_distance()
        )

        if self.telemetry_enabled:
            logging.debug(
                f"Drivetrain pose: x={pose.x:.3f} y={pose.y:.3f} "
                f"heading={pose.heading_degrees:.1f}deg "
                f"outputs=({self.left_output:.3f}, {self.right_output:.3f})"
            )
        return pose

    def reset_odometry(self) -> None:
        """Zero the sensors and move the pose estimate back to the origin."""
        self.hardware.reset_sensors()
        self.estimator.reset(self.get_left_distance(), self.get_right_distance())

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------

    def set_outputs(self, left: float, right: float) -> None:
        """Write duty commands, clamping each wheel independently.

        Args:
            left: Left duty command (range [-1, 1])
            right: Right duty command (range [-1, 1])
        """
        left = max(-self.max_output, min(self.max_output, left))
        right = max(-self.max_output, min(self.max_output, right))

        self.left_output = left
        self.right_output = right
        self.hardware.set_outputs(left, right)

    def tank_drive(self, left: float, right: float) -> None:
        """Drives the robot with given duty for left and right wheels."""
        self.set_outputs(left, right)

    def tank_drive_volts(self, left: float, right: float, max_voltage: Optional[float] = None) -> None:
        """Drives the robot with given voltages for left and right wheels.

        Args:
            left: Voltage for left wheels
            right: Voltage for right wheels
            max_voltage: Voltage that maps to full duty. Default: MAX_VOLTAGE
        """
        if max_voltage is None:
            max_voltage = self.config.MAX_VOLTAGE
        self.set_outputs(left / max_voltage, right / max_voltage)

    def arcade_drive(self, forward: float, turn: float) -> None:
        """Drives the robot with given directional and rotational duty.

        Args:
            forward: Duty in the robot's current direction
            turn: Turn duty (clockwise is positive)
        """
        self.set_outputs(forward + turn, forward - turn)

    def stop(self) -> None:
        self.set_outputs(0.0, 0.0)

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    def telemetry(self) -> Dict[str, float]:
        """Current pose and last commanded outputs.

        Returns:
            Dictionary with x, y (m), heading (degrees), left_output and
            right_output (duty)
        """
        pose = self.estimator.pose
        return {
            "x": pose.x,
            "y": pose.y,
            "heading": pose.heading_degrees,
            "left_output": self.left_output,
            "right_output": self.right_output,
        }
