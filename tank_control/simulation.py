"""Offline differential-drive simulator.

This module provides a plant model that implements the drivetrain hardware
interface, so the full control loop can run without a robot:
- Each side is a characterized DC motor: V = kS*sign(v) + kV*v + kA*a
- Coulomb friction holds a stopped wheel until |V| exceeds kS
- Zero duty brakes the wheel (brake idle mode)
- Optional Gaussian noise on the encoder and gyro readings
"""

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np

from .commands import CommandScheduler, DriveCommand, FollowPath
from .config import TERM_BLUE, TERM_RESET
from .data_collector import DataCollector
from .geometry import Pose2D, normalize_angle


class SimulatedDrive:
    """Simulated tank drive plant with encoder and gyro readings.

    Ground-truth state is kept in physical units; the reading methods
    convert to raw sensor units (motor rotations, clockwise-positive gyro
    degrees) the same way real hardware reports them.

    Attributes:
        x, y, theta: Ground-truth pose (meters, radians CCW)
        left_velocity, right_velocity: Wheel speeds (m/s)
        left_position, right_position: Wheel travel since last reset (meters)
        left_duty, right_duty: Last duty commands received
    """

    def __init__(
        self,
        config: Optional[Any] = None,
        brake: bool = True,
        position_noise_std: Optional[float] = None,
        gyro_noise_std: Optional[float] = None,
        seed: Optional[int] = None,
    ):
        """Initialize the simulated drivetrain.

        Args:
            config: Configuration object or module with drivetrain parameters.
                    If None, uses default values from tank_control.config.
            brake: If True, a zero duty command stops the wheel immediately.
            position_noise_std: Encoder noise (rotations). Default: from config
            gyro_noise_std: Gyro noise (degrees). Default: from config
            seed: Noise generator seed. Default: from config
        """
        if config is None:
            from tank_control import config as cfg
        else:
            cfg = config

        self.ks: float = cfg.KS
        self.kv: float = cfg.KV
        self.ka: float = cfg.KA
        self.track_width: float = cfg.TRACK_WIDTH
        self.max_voltage: float = cfg.MAX_VOLTAGE
        self.distance_per_rotation: float = cfg.DISTANCE_PER_ROTATION
        self.brake = brake

        self.position_noise_std = (
            cfg.SIM_POSITION_NOISE_STD if position_noise_std is None else position_noise_std
        )
        self.gyro_noise_std = cfg.SIM_GYRO_NOISE_STD if gyro_noise_std is None else gyro_noise_std
        self.rng = np.random.default_rng(cfg.SIM_SEED if seed is None else seed)

        # Ground truth
        self.x: float = 0.0
        self.y: float = 0.0
        self.theta: float = 0.0
        self.left_velocity: float = 0.0
        self.right_velocity: float = 0.0
        self.left_position: float = 0.0
        self.right_position: float = 0.0

        # Gyro accumulates continuously like a real IMU (not wrapped)
        self.gyro_angle: float = 0.0
        self.gyro_offset: float = 0.0

        self.left_duty: float = 0.0
        self.right_duty: float = 0.0

        # Readings can be forced to a value (e.g. NaN) to simulate sensor faults
        self.fault_readings: Dict[str, float] = {}

    # ------------------------------------------------------------------
    # DriveHardware interface
    # ------------------------------------------------------------------

    def _noisy(self, value: float, std: float) -> float:
        if std > 0.0:
            return value + float(self.rng.normal(0.0, std))
        return value

    def get_gyro_angle(self) -> float:
        if "gyro_angle" in self.fault_readings:
            return self.fault_readings["gyro_angle"]
        return self._noisy(self.gyro_angle - self.gyro_offset, self.gyro_noise_std)

    def get_left_position(self) -> float:
        if "left_position" in self.fault_readings:
            return self.fault_readings["left_position"]
        return self._noisy(self.left_position / self.distance_per_rotation, self.position_noise_std)

    def get_right_position(self) -> float:
        if "right_position" in self.fault_readings:
            return self.fault_readings["right_position"]
        return self._noisy(self.right_position / self.distance_per_rotation, self.position_noise_std)

    def get_left_velocity(self) -> float:
        if "left_velocity" in self.fault_readings:
            return self.fault_readings["left_velocity"]
        return self.left_velocity / self.distance_per_rotation

    def get_right_velocity(self) -> float:
        if "right_velocity" in self.fault_readings:
            return self.fault_readings["right_velocity"]
        return self.right_velocity / self.distance_per_rotation

    def set_outputs(self, left: float, right: float) -> None:
        self.left_duty = left
        self.right_duty = right

    def reset_sensors(self) -> None:
        """Zero the encoders and the gyro. The ground-truth pose is untouched."""
        self.left_position = 0.0
        self.right_position = 0.0
        self.gyro_offset = self.gyro_angle

    # ------------------------------------------------------------------
    # Plant
    # ------------------------------------------------------------------

    @property
    def pose(self) -> Pose2D:
        return Pose2D(self.x, self.y, self.theta)

    def _step_wheel(self, velocity: float, duty: float, dt: float) -> float:
        if duty == 0.0 and self.brake:
            return 0.0

        volts = max(-1.0, min(1.0, duty)) * self.max_voltage

        # Static friction holds a stopped wheel
        if velocity == 0.0 and abs(volts) <= self.ks:
            return 0.0

        direction = math.copysign(1.0, velocity if velocity != 0.0 else volts)
        accel = (volts - self.ks * direction - self.kv * velocity) / self.ka
        new_velocity = velocity + accel * dt

        # Friction brings the wheel to rest, it never reverses it
        if velocity != 0.0 and new_velocity * velocity < 0.0 and abs(volts) <= self.ks:
            return 0.0
        return new_velocity

    def step(self, dt: float) -> None:
        """Advance the plant by dt seconds using the last duty commands."""
        self.left_velocity = self._step_wheel(self.left_velocity, self.left_duty, dt)
        self.right_velocity = self._step_wheel(self.right_velocity, self.right_duty, dt)

        v = (self.left_velocity + self.right_velocity) / 2.0
        omega = (self.right_velocity - self.left_velocity) / self.track_width

        # Midpoint heading for the position update
        theta_mid = self.theta + omega * dt / 2.0
        self.x += v * math.cos(theta_mid) * dt
        self.y += v * math.sin(theta_mid) * dt
        self.theta = normalize_angle(self.theta + omega * dt)

        self.left_position += self.left_velocity * dt
        self.right_position += self.right_velocity * dt
        self.gyro_angle -= math.degrees(omega * dt)


def run_simulation(
    commands: List[DriveCommand],
    sim: SimulatedDrive,
    dt: float = 0.02,
    max_time: float = 60.0,
    collector: Optional[DataCollector] = None,
) -> float:
    """Run drive commands one after another against the simulated plant.

    Each command is scheduled when the previous one has ended, the scheduler
    is ticked, then the plant advances by dt.

    Args:
        commands: Commands to run in sequence
        sim: Simulated drivetrain (the commands' drivetrain must wrap it)
        dt: Control period (seconds)
        max_time: Simulation time limit (seconds); running commands are
            cancelled when it is reached
        collector: Optional run logger for FollowPath diagnostics

    Returns:
        Simulated time elapsed (seconds)
    """
    scheduler = CommandScheduler()
    pending = list(commands)
    sim_time = 0.0

    while sim_time < max_time and (pending or scheduler.scheduled):
        if not scheduler.scheduled:
            scheduler.schedule(pending.pop(0))

        active = list(scheduler.scheduled)
        scheduler.run(dt)
        sim.step(dt)
        sim_time += dt

        if collector is not None:
            for command in active:
                if isinstance(command, FollowPath) and command.failure is None:
                    diagnostics = command.get_diagnostics()
                    if diagnostics:
                        collector.log_follow_path(sim_time, diagnostics)

    if scheduler.scheduled:
        logging.warning(f"Simulation time limit reached after {sim_time:.2f}s")
        scheduler.cancel_all()

    truth = sim.pose
    logging.info(
        f"{TERM_BLUE}✓ Simulation finished at t={sim_time:.2f}s: "
        f"x={truth.x:.3f} y={truth.y:.3f} heading={truth.heading_degrees:.1f}deg{TERM_RESET}"
    )
    return sim_time
