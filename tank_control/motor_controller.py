"""Motor controllers for per-wheel velocity tracking.

This module provides the inner control loop that sits between the
kinematics model and the motor outputs:
- SimpleMotorFeedforward: open-loop voltage from a static friction,
  back-EMF and inertia model of the drivetrain
- PIDController: feedback on the error between desired and measured
  wheel velocity (also used on distance and heading by the simple commands)
- compose_output: sums feedforward and feedback voltage for one wheel and
  clamps it to the safe output envelope
"""

import math
from typing import Dict, Optional


class SimpleMotorFeedforward:
    """Permanent-magnet DC motor feedforward model.

    Control law:
        V = kS * sign(v) + kV * v + kA * a

    sign(0) is treated as 0, so a zero velocity command produces no static
    friction term and the output does not chatter around standstill.

    Attributes:
        ks: Static friction voltage (V)
        kv: Velocity gain (V per m/s)
        ka: Acceleration gain (V per m/s²)
    """

    def __init__(self, ks: float, kv: float, ka: float = 0.0):
        self.ks = ks
        self.kv = kv
        self.ka = ka

    def calculate(self, velocity: float, acceleration: float = 0.0) -> float:
        """Compute the open-loop voltage for a desired velocity.

        Args:
            velocity: Desired wheel velocity (m/s)
            acceleration: Desired wheel acceleration (m/s²). Default: 0.0

        Returns:
            Feedforward voltage (V)
        """
        if velocity > 0.0:
            static = self.ks
        elif velocity < 0.0:
            static = -self.ks
        else:
            static = 0.0
        return static + self.kv * velocity + self.ka * acceleration

    def max_achievable_velocity(self, max_voltage: float, acceleration: float = 0.0) -> float:
        """Highest steady velocity reachable at the given voltage."""
        return (max_voltage - self.ks - self.ka * acceleration) / self.kv


class PIDController:
    """PID feedback controller with integral anti-windup.

    Control law:
        u = kP * e + kI * integral(e) + kD * d(e)/dt

    Anti-windup: the integral accumulator is clamped so that the integral
    contribution |kI * integral| never exceeds ``integral_limit``. With
    kI = 0 the accumulator itself is clamped to ±integral_limit.

    The derivative term is zero on the first call after construction or
    ``reset()``, so a fresh controller has no derivative kick.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        integral_limit: Bound on the integral contribution to the output
        tolerance: Error considered on-target by ``at_setpoint()``
    """

    def __init__(
        self,
        kp: float,
        ki: float = 0.0,
        kd: float = 0.0,
        integral_limit: Optional[float] = None,
        tolerance: float = 0.05,
    ):
        """Initialize the PID controller.

        Args:
            kp: Proportional gain
            ki: Integral gain. Default: 0.0
            kd: Derivative gain. Default: 0.0
            integral_limit: Maximum magnitude of the integral contribution.
                Default: None (unbounded). Pass the output clamp, e.g.
                MAX_VOLTAGE, to keep the integral bounded.
            tolerance: Absolute error for ``at_setpoint()``. Default: 0.05
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.integral_limit = integral_limit if integral_limit is not None else math.inf
        self.tolerance = tolerance

        # Integral state (accumulated error)
        self.integral: float = 0.0

        # Previous error for derivative computation
        self.prev_error: float = 0.0
        self.has_previous: bool = False

        self.last_error: float = 0.0

    def _integral_bound(self) -> float:
        if self.ki != 0.0:
            return self.integral_limit / abs(self.ki)
        return self.integral_limit

    def calculate(self, measurement: float, setpoint: float, dt: float) -> float:
        """Compute the feedback output for one control tick.

        Args:
            measurement: Measured process value
            setpoint: Desired process value
            dt: Time since the previous call (seconds)

        Returns:
            Controller output
        """
        error = setpoint - measurement

        # Compute derivative of error (rate of change)
        if self.has_previous and dt > 0:
            error_derivative = (error - self.prev_error) / dt
        else:
            error_derivative = 0.0

        # Accumulate integral of error with anti-windup
        if dt > 0:
            bound = self._integral_bound()
            self.integral = max(-bound, min(bound, self.integral + error * dt))

        # Store current error for next iteration
        self.prev_error = error
        self.has_previous = True
        self.last_error = error

        return self.kp * error + self.ki * self.integral + self.kd * error_derivative

    def at_setpoint(self) -> bool:
        """Return True once a sample has been taken and it is within tolerance."""
        return self.has_previous and abs(self.last_error) <= self.tolerance

    def reset(self) -> None:
        """Reset integral and derivative states to zero.

        Call this when starting a new command so no bias from a previous
        invocation carries over.
        """
        self.integral = 0.0
        self.prev_error = 0.0
        self.has_previous = False
        self.last_error = 0.0

    def get_diagnostics(self) -> Dict[str, float]:
        return {
            "error": self.last_error,
            "integral": self.integral,
        }


def compose_output(feedforward_volts: float, feedback_volts: float, max_voltage: float) -> float:
    """Combine feedforward and feedback voltage for one wheel into a duty command.

    The sum is clamped to [-max_voltage, max_voltage] and divided by
    max_voltage. Each wheel is composed separately, so one wheel's value
    never influences the other's clamp.

    Args:
        feedforward_volts: Open-loop voltage (V)
        feedback_volts: PID correction voltage (V)
        max_voltage: Output envelope (V, > 0)

    Returns:
        Unitless duty command in [-1, 1]

    Raises:
        ValueError: If max_voltage is not positive.
    """
    if not max_voltage > 0.0:
        raise ValueError(f"max_voltage must be positive, got {max_voltage}")

    total = feedforward_volts + feedback_volts
    if math.isnan(total):
        return 0.0
    clamped = max(-max_voltage, min(max_voltage, total))
    return clamped / max_voltage
