"""Tank Control - Trajectory Following for Differential-Drive Robots

Ramsete trajectory tracking with per-wheel feedforward and PID velocity
loops, driven by encoder and gyro odometry.

## Architecture Overview

Each control tick runs a fixed pipeline, owned by the FollowPath command:

### Layer 1: Odometry (localizer.py)
Dead-reckons the robot pose from the gyro heading and wheel distances.
- Euler integration of the averaged wheel travel along the measured heading
- Non-finite readings are rejected and leave the pose unchanged
- Output: Estimated pose (x, y, theta)

### Layer 2: Trajectory Tracking (follower.py)
Corrects the trajectory's reference velocity with the Ramsete law.
- Gain k = 2*zeta*sqrt(omega_d^2 + b*v_d^2)
- Robot-frame pose error with a guarded sinc(e_theta)
- Output: Commanded chassis velocity (v, omega)

### Layer 3: Kinematics (model.py)
Converts chassis velocity to left/right wheel speeds for the track width.

### Layer 4: Wheel Velocity Loops (motor_controller.py)
Per wheel: characterized feedforward (kS, kV, kA) plus PID feedback on the
measured wheel speed, summed in volts, clamped and normalized to duty.

## Modules

### Core Control Modules
- `config.py` - Centralized configuration parameters with documentation
- `geometry.py` - Pose and velocity value types, angle wrapping
- `localizer.py` - Encoder/gyro odometry
- `follower.py` - Ramsete tracking controller
- `motor_controller.py` - Feedforward, PID and output composition
- `model.py` - Differential drive kinematics
- `path.py` - Timed trajectories (lemniscate, straight line, PathWeaver JSON)

### Robot Layer
- `drivetrain.py` - Drivetrain subsystem over a hardware interface
- `commands.py` - FollowPath, DriveDistance, TurnDegrees and the scheduler
- `simulation.py` - Offline plant model and simulation runner

### Communication & Data
- `client.py` - WebSocket client and main control loop
- `data_collector.py` - CSV data logging for all control signals
- `plot_results.py` - Diagnostic plots for recorded runs

## Quick Start

```bash
# Follow the lemniscate against the built-in simulator
python -m tank_control --sim

# Connect to a drivetrain server
python -m tank_control --uri ws://localhost:8765
```
"""

__version__ = "0.1.0"

from .commands import CommandScheduler, CommandState, DriveDistance, FollowPath, TurnDegrees
from .component_modes import ComponentMode
from .drivetrain import Drivetrain, ResourceConflictError
from .follower import RamseteController
from .geometry import ChassisVelocity, Pose2D, WheelSpeeds
from .localizer import PoseEstimator
from .model import DifferentialDriveKinematics
from .motor_controller import PIDController, SimpleMotorFeedforward, compose_output
from .path import Trajectory, TrajectoryError, TrajectoryState, load_trajectory

__all__ = [
    "ChassisVelocity",
    "CommandScheduler",
    "CommandState",
    "ComponentMode",
    "DifferentialDriveKinematics",
    "DriveDistance",
    "Drivetrain",
    "FollowPath",
    "PIDController",
    "Pose2D",
    "PoseEstimator",
    "RamseteController",
    "ResourceConflictError",
    "SimpleMotorFeedforward",
    "Trajectory",
    "TrajectoryError",
    "TrajectoryState",
    "TurnDegrees",
    "WheelSpeeds",
    "compose_output",
    "load_trajectory",
]
