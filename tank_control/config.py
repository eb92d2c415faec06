"""Configuration parameters for the tank-drive control system.

This module centralizes all configuration parameters including:
- Physical drivetrain parameters
- Drivetrain characterization (feedforward) constants
- Ramsete tracking gains and inner velocity loop gains
- Simple drive command gains
- Simulator and WebSocket connection parameters

Components that take a ``config`` argument read these names as attributes, so
any object exposing the same attribute names can stand in for this module.
"""

import math

# ============================================================================
# Physical Drivetrain Parameters
# ============================================================================

INCHES_TO_METERS = 0.0254

GEAR_RATIO = 1 / 7.5833
"""Wheel rotations per motor rotation.

The motor turns 7.5833 times for every wheel rotation."""

WHEEL_DIAMETER = 4 * INCHES_TO_METERS
"""Wheel diameter (meters). 4 inch wheels."""

DISTANCE_PER_ROTATION = math.pi * WHEEL_DIAMETER * GEAR_RATIO
"""Distance travelled per motor encoder rotation (meters).

Applied to both position (rotations) and velocity (rotations/s) readings."""

TRACK_WIDTH = 28 * INCHES_TO_METERS
"""Distance between left and right wheels (meters).
Fixed by chassis design."""


# ============================================================================
# Drivetrain Characterization (Feedforward)
# ============================================================================

KS = 0.17247
"""Static friction voltage (volts). Found using SysId, do not change."""

KV = 2.8886
"""Velocity gain (volts per m/s). Found using SysId, do not change."""

KA = 2.1367
"""Acceleration gain (volts per m/s²). Found using SysId, do not change."""


# ============================================================================
# Ramsete Tracking Law
# ============================================================================

RAMSETE_B = 2.0
"""Ramsete convergence gain b (rad²/m², must be > 0).

Larger values make convergence more aggressive, like a proportional term.
Default value from the controller documentation."""

RAMSETE_ZETA = 0.7
"""Ramsete damping ratio zeta (dimensionless, range (0, 1)).

Larger values add damping to the response.
Default value from the controller documentation."""

RAMSETE_TOLERANCE_X = 0.05
"""Along-track position tolerance for at-reference checks (meters)."""

RAMSETE_TOLERANCE_Y = 0.05
"""Cross-track position tolerance for at-reference checks (meters)."""

RAMSETE_TOLERANCE_THETA = math.radians(5.0)
"""Heading tolerance for at-reference checks (radians)."""


# ============================================================================
# Inner Wheel Velocity Loop (PID, volts per m/s of error)
# ============================================================================

PATH_KP = 4.3789
"""Proportional gain for wheel velocity feedback (volts per m/s).

Tuning rationale:
- Value found using SysId for this drivetrain
- Independent of RAMSETE_B / RAMSETE_ZETA, which act on pose error
"""

PATH_KI = 0.0
"""Integral gain for wheel velocity feedback (volts per m·s⁻¹·s)."""

PATH_KD = 0.0
"""Derivative gain for wheel velocity feedback (volts per m/s²)."""


# ============================================================================
# Simple Drive Commands
# ============================================================================

DRIVE_DISTANCE_KP = 0.3
"""Drive distance proportional gain (duty per meter of error)."""

DRIVE_DISTANCE_KI = 0.0
DRIVE_DISTANCE_KD = 0.0

DRIVE_DISTANCE_TOLERANCE = 0.02
"""Distance considered on-target for DriveDistance (meters)."""

TURN_KP = 0.006
"""Turn proportional gain (duty per degree of heading error)."""

TURN_KI = 0.0
TURN_KD = 0.0001

TURN_TOLERANCE_DEGREES = 2.0
"""Heading error considered on-target for TurnDegrees (degrees)."""

DRIVE_SPEED = 0.3
"""Maximum duty for straight driving and DriveDistance."""

TURN_SPEED = 0.2
"""Maximum duty for turning and TurnDegrees."""

SLOW_MULTIPLIER = 0.25
"""Multiplied by drive speed when in slow mode (manual driving only)."""

AXIS_THRESHOLD = 0.1
"""Joystick deadband for manual driving. Not used by the control core."""


# ============================================================================
# Output Limits and Timing
# ============================================================================

MAX_VOLTAGE = 12.0
"""Nominal battery voltage (volts).

Voltage commands are clamped to ±MAX_VOLTAGE and divided by it to give duty."""

MAX_OUTPUT = 1.0
"""Final duty clamp applied per wheel by the drivetrain (range (0, 1])."""

CONTROL_PERIOD = 0.02
"""Control tick period (seconds). 50 Hz scheduler loop."""

DRIVETRAIN_TELEMETRY_ENABLED = True
"""If True, the drivetrain logs pose and outputs at DEBUG level every tick."""


# ============================================================================
# Simulator Parameters
# ============================================================================

SIM_POSITION_NOISE_STD = 0.0
"""Standard deviation of encoder position noise (rotations)."""

SIM_GYRO_NOISE_STD = 0.0
"""Standard deviation of gyro angle noise (degrees)."""

SIM_SEED = 42
"""Seed for the simulator noise generator."""


# ============================================================================
# Demonstration Path
# ============================================================================

PATH_DURATION = 20.0
"""Total duration of the demonstration Lemniscate trajectory (seconds)."""

PATH_DT = 0.02
"""Time step for demonstration path discretization (seconds)."""

PATH_SCALE = 1.0
"""Size scale of the demonstration Lemniscate (meters per unit)."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for warnings and highlights."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status lines."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""

PLOT_ACTUAL_COLOR = "#f74823"
"""Plot color for measured / estimated data."""

PLOT_REFERENCE_COLOR = "#2374f7"
"""Plot color for reference data."""


# ============================================================================
# WebSocket Configuration
# ============================================================================

WS_URI = "ws://localhost:8765"
"""WebSocket server URI for the drivetrain simulator."""

WS_RETRY_DELAY_SECONDS = 1
"""Initial retry delay for failed WebSocket connections (seconds)."""

WS_MAX_RETRY_DELAY_SECONDS = 60
"""Maximum retry delay with exponential backoff (seconds)."""

WS_TIMEOUT_SECONDS = 5.0
"""Timeout for WebSocket message reception (seconds)."""
