"""Drive commands and a cooperative command scheduler.

Every command follows the same small lifecycle, driven from outside:

    start() -> tick(dt) ... tick(dt) -> is_done() -> end(interrupted)

Commands never sleep, spawn threads or block; the caller owns the loop and
its timing. A command holds exclusive use of the drivetrain from ``start``
until ``end``, and ``end`` always writes zero output before releasing it,
whether the command finished, timed out, was cancelled or aborted on bad
sensor data.

Commands:
- FollowPath: Ramsete trajectory tracking with per-wheel feedforward + PID
- DriveDistance: straight-line distance hold with a single PID
- TurnDegrees: in-place rotation with a heading PID
"""

import logging
import math
from enum import Enum
from typing import Any, Dict, List, Optional

from .component_modes import ComponentMode
from .config import TERM_BLUE, TERM_ORANGE, TERM_RESET
from .drivetrain import Drivetrain
from .follower import RamseteController
from .geometry import ChassisVelocity, Pose2D, WheelSpeeds, all_finite, normalize_angle
from .motor_controller import PIDController, compose_output
from .path import Trajectory


class CommandState(Enum):
    """Lifecycle state of a drive command."""

    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class DriveCommand:
    """Lifecycle and drivetrain ownership shared by the drive commands.

    Subclasses must implement ``initialize``, ``execute`` and ``finished``;
    the base versions raise NotImplementedError.

    Attributes:
        drivetrain: Subsystem this command requires
        requirements: Subsystems held exclusively while the command runs
        timeout: Optional time limit enforced by the scheduler (seconds)
        state: Current lifecycle state
        failure: Reason the command aborted, or None
    """

    def __init__(self, drivetrain: Drivetrain, timeout: Optional[float] = None):
        self.drivetrain = drivetrain
        self.requirements = (drivetrain,)
        self.timeout = timeout
        self.state = CommandState.IDLE
        self.failure: Optional[str] = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.state.value})"

    def start(self) -> None:
        """Take the drivetrain and begin running.

        Raises:
            ResourceConflictError: If another command owns the drivetrain.
        """
        self.drivetrain.acquire(self)
        self.failure = None
        self.state = CommandState.RUNNING
        self.initialize()
        logging.debug(f"Started {self!r}")

    def tick(self, dt: float) -> None:
        """Run one control tick. Does nothing unless the command is running."""
        if self.state is not CommandState.RUNNING:
            return
        self.execute(dt)
        if self.state is CommandState.RUNNING and self.finished():
            self.state = CommandState.DONE

    def is_done(self) -> bool:
        return self.state is CommandState.DONE

    def end(self, interrupted: bool = False) -> None:
        """Stop the motors and release the drivetrain.

        Args:
            interrupted: True if the command was cancelled or timed out
        """
        try:
            if self.drivetrain.owner is None or self.drivetrain.owner is self:
                self.drivetrain.stop()
        finally:
            self.drivetrain.release(self)
            self.state = CommandState.DONE

        if interrupted:
            logging.info(f"{TERM_ORANGE}Interrupted {type(self).__name__}{TERM_RESET}")

    def abort(self, reason: str) -> None:
        """Stop immediately and finish with a recorded failure reason."""
        logging.error(f"Aborting {type(self).__name__}: {reason}")
        self.failure = reason
        self.drivetrain.stop()
        self.state = CommandState.DONE

    def initialize(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement initialize()")

    def execute(self, dt: float) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement execute()")

    def finished(self) -> bool:
        raise NotImplementedError(f"{type(self).__name__} must implement finished()")


class FollowPath(DriveCommand):
    """Follow a pre-computed trajectory with Ramsete and per-wheel velocity loops.

    Each tick:
        1. Update odometry (before anything reads the pose)
        2. Sample the trajectory at the elapsed time
        3. Correct the reference velocity with the Ramsete law
        4. Convert to left/right wheel setpoints
        5. Per wheel: feedforward(setpoint, setpoint acceleration)
           + PID(measured wheel speed -> setpoint), clamped to MAX_VOLTAGE
        6. Write normalized duty to the drivetrain

    The command is done once the elapsed time reaches the trajectory
    duration. Trajectory poses are relative to the pose at start, which is
    the origin after the odometry reset.
    """

    def __init__(
        self,
        drivetrain: Drivetrain,
        trajectory: Trajectory,
        config: Optional[Any] = None,
        component_mode: Optional[ComponentMode] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the path following command.

        Args:
            drivetrain: Drivetrain to control.
            trajectory: Trajectory to follow (validated at construction).
            config: Configuration object or module with controller gains.
                    If None, uses default values from tank_control.config.
            component_mode: ComponentMode for component isolation testing.
            timeout: Optional time limit (seconds) enforced by the scheduler.
        """
        super().__init__(drivetrain, timeout=timeout)

        if config is None:
            from tank_control import config as cfg
        else:
            cfg = config

        if component_mode is None:
            component_mode = ComponentMode()
        self.component_mode = component_mode

        self.trajectory = trajectory
        self.max_voltage: float = cfg.MAX_VOLTAGE

        # Outer loop: pose tracking
        self.controller = RamseteController(
            cfg.RAMSETE_B,
            cfg.RAMSETE_ZETA,
            tolerance=Pose2D(
                cfg.RAMSETE_TOLERANCE_X, cfg.RAMSETE_TOLERANCE_Y, cfg.RAMSETE_TOLERANCE_THETA
            ),
        )
        self.controller.enabled = component_mode.use_ramsete

        # Inner loop: one velocity controller per wheel, independent of Ramsete gains
        self.left_pid = PIDController(
            cfg.PATH_KP, cfg.PATH_KI, cfg.PATH_KD, integral_limit=cfg.MAX_VOLTAGE
        )
        self.right_pid = PIDController(
            cfg.PATH_KP, cfg.PATH_KI, cfg.PATH_KD, integral_limit=cfg.MAX_VOLTAGE
        )

        self.elapsed: float = 0.0
        self.prev_speeds = WheelSpeeds()
        self._diagnostics: Dict[str, float] = {}

    def initialize(self) -> None:
        self.drivetrain.reset_odometry()
        self.left_pid.reset()
        self.right_pid.reset()
        self.elapsed = 0.0

        initial = self.trajectory.sample(0.0)
        self.prev_speeds = self.drivetrain.kinematics.to_wheel_speeds(
            ChassisVelocity(initial.v, initial.omega)
        )
        self._diagnostics = {}

        logging.info(
            f"{TERM_BLUE}✓ Following trajectory: {len(self.trajectory)} states, "
            f"{self.trajectory.duration:.2f}s ({self.component_mode}){TERM_RESET}"
        )

    def execute(self, dt: float) -> None:
        pose = self.drivetrain.periodic()
        if not self.drivetrain.odometry_valid:
            self.abort("invalid heading or wheel distance reading")
            return

        measured = self.drivetrain.get_wheel_speeds()
        if not all_finite(measured.left, measured.right):
            self.abort("invalid wheel velocity reading")
            return

        self.elapsed += dt
        desired = self.trajectory.sample(self.elapsed)

        chassis = self.controller.correct(pose, desired)
        target = self.drivetrain.kinematics.to_wheel_speeds(chassis)

        # Setpoint acceleration from the change in wheel setpoints
        if dt > 0:
            left_accel = (target.left - self.prev_speeds.left) / dt
            right_accel = (target.right - self.prev_speeds.right) / dt
        else:
            left_accel = 0.0
            right_accel = 0.0

        if self.component_mode.use_feedforward:
            left_ff = self.drivetrain.feedforward.calculate(target.left, left_accel)
            right_ff = self.drivetrain.feedforward.calculate(target.right, right_accel)
        else:
            left_ff = 0.0
            right_ff = 0.0

        if self.component_mode.use_pid:
            left_fb = self.left_pid.calculate(measured.left, target.left, dt)
            right_fb = self.right_pid.calculate(measured.right, target.right, dt)
        else:
            left_fb = 0.0
            right_fb = 0.0

        left_output = compose_output(left_ff, left_fb, self.max_voltage)
        right_output = compose_output(right_ff, right_fb, self.max_voltage)
        self.drivetrain.set_outputs(left_output, right_output)

        self.prev_speeds = target

        self._diagnostics = {
            "elapsed": self.elapsed,
            "x": pose.x,
            "y": pose.y,
            "theta": pose.theta,
            "x_ref": desired.pose.x,
            "y_ref": desired.pose.y,
            "theta_ref": desired.pose.theta,
            "v_ref": desired.v,
            "omega_ref": desired.omega,
            "v_cmd": chassis.v,
            "omega_cmd": chassis.omega,
            "left_setpoint": target.left,
            "right_setpoint": target.right,
            "left_measured": measured.left,
            "right_measured": measured.right,
            "left_ff": left_ff,
            "right_ff": right_ff,
            "left_fb": left_fb,
            "right_fb": right_fb,
            "left_output": self.drivetrain.left_output,
            "right_output": self.drivetrain.right_output,
        }

    def finished(self) -> bool:
        return self.elapsed >= self.trajectory.duration

    def get_diagnostics(self) -> Dict[str, float]:
        """Values computed on the most recent tick, empty before the first tick."""
        return dict(self._diagnostics)


class DriveDistance(DriveCommand):
    """Drive straight for a distance using PID on the averaged wheel distance."""

    def __init__(
        self,
        drivetrain: Drivetrain,
        distance: float,
        config: Optional[Any] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the command.

        Args:
            drivetrain: Drivetrain to control.
            distance: Distance to travel (meters, negative drives backwards).
            config: Configuration object or module. If None, uses
                    tank_control.config.
            timeout: Optional time limit (seconds) enforced by the scheduler.
        """
        super().__init__(drivetrain, timeout=timeout)

        if config is None:
            from tank_control import config as cfg
        else:
            cfg = config

        self.distance = distance
        self.max_speed: float = cfg.DRIVE_SPEED
        self.pid = PIDController(
            cfg.DRIVE_DISTANCE_KP,
            cfg.DRIVE_DISTANCE_KI,
            cfg.DRIVE_DISTANCE_KD,
            integral_limit=cfg.DRIVE_SPEED,
            tolerance=cfg.DRIVE_DISTANCE_TOLERANCE,
        )
        self.target: float = 0.0

    def initialize(self) -> None:
        self.pid.reset()
        self.target = self.drivetrain.get_average_distance() + self.distance

    def execute(self, dt: float) -> None:
        self.drivetrain.periodic()
        if not self.drivetrain.odometry_valid:
            self.abort("invalid heading or wheel distance reading")
            return

        output = self.pid.calculate(self.drivetrain.get_average_distance(), self.target, dt)
        output = max(-self.max_speed, min(self.max_speed, output))
        self.drivetrain.arcade_drive(output, 0.0)

    def finished(self) -> bool:
        return self.pid.at_setpoint()


class TurnDegrees(DriveCommand):
    """Turn in place by an angle using PID on the heading in degrees."""

    def __init__(
        self,
        drivetrain: Drivetrain,
        degrees: float,
        config: Optional[Any] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the command.

        Args:
            drivetrain: Drivetrain to control.
            degrees: Angle to turn (degrees, counter-clockwise positive).
            config: Configuration object or module. If None, uses
                    tank_control.config.
            timeout: Optional time limit (seconds) enforced by the scheduler.
        """
        super().__init__(drivetrain, timeout=timeout)

        if config is None:
            from tank_control import config as cfg
        else:
            cfg = config

        self.degrees = degrees
        self.max_speed: float = cfg.TURN_SPEED
        self.pid = PIDController(
            cfg.TURN_KP,
            cfg.TURN_KI,
            cfg.TURN_KD,
            integral_limit=cfg.TURN_SPEED,
            tolerance=cfg.TURN_TOLERANCE_DEGREES,
        )
        # Rotation since start (degrees), unwrapped so turns past 180 count fully
        self.turned: float = 0.0
        self.last_heading: float = 0.0

    def initialize(self) -> None:
        self.pid.reset()
        self.turned = 0.0
        self.last_heading = self.drivetrain.get_pose().theta

    def execute(self, dt: float) -> None:
        pose = self.drivetrain.periodic()
        if not self.drivetrain.odometry_valid:
            self.abort("invalid heading or wheel distance reading")
            return

        # Per-tick heading change is far below 180 degrees
        self.turned += math.degrees(normalize_angle(pose.theta - self.last_heading))
        self.last_heading = pose.theta

        output = self.pid.calculate(self.turned, self.degrees, dt)
        output = max(-self.max_speed, min(self.max_speed, output))

        # Positive output turns counter-clockwise; arcade turn is clockwise positive
        self.drivetrain.arcade_drive(0.0, -output)

    def finished(self) -> bool:
        return self.pid.at_setpoint()


class CommandScheduler:
    """Cooperative stand-in for the robot's command scheduler.

    Enforces the requirement protocol (scheduling a command interrupts any
    running command that needs the same subsystem), per-command timeouts,
    and cancellation. ``run`` must be called once per control tick.
    """

    def __init__(self) -> None:
        self.scheduled: List[DriveCommand] = []
        self._elapsed: Dict[int, float] = {}

    def schedule(self, command: DriveCommand) -> None:
        """Start a command, interrupting running commands that share a requirement."""
        if command in self.scheduled:
            return

        for other in list(self.scheduled):
            if any(req in other.requirements for req in command.requirements):
                self.cancel(other)

        command.start()
        self.scheduled.append(command)
        self._elapsed[id(command)] = 0.0

    def cancel(self, command: DriveCommand) -> None:
        """Interrupt a running command. Its end() runs before this returns."""
        if command not in self.scheduled:
            return
        self.scheduled.remove(command)
        self._elapsed.pop(id(command), None)
        command.end(interrupted=True)

    def cancel_all(self) -> None:
        for command in list(self.scheduled):
            self.cancel(command)

    def is_scheduled(self, command: DriveCommand) -> bool:
        return command in self.scheduled

    def run(self, dt: float) -> None:
        """Tick every scheduled command once and retire finished ones."""
        for command in list(self.scheduled):
            command.tick(dt)
            self._elapsed[id(command)] += dt

            if command.is_done():
                self.scheduled.remove(command)
                self._elapsed.pop(id(command), None)
                command.end(interrupted=False)
            elif command.timeout is not None and self._elapsed[id(command)] >= command.timeout:
                logging.warning(f"{type(command).__name__} timed out after {command.timeout:.2f}s")
                self.cancel(command)
