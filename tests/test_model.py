import pytest

from tank_control.geometry import ChassisVelocity, WheelSpeeds
from tank_control.model import DifferentialDriveKinematics


def test_wheel_speeds_from_chassis_velocity():
    kinematics = DifferentialDriveKinematics(0.5)
    wheels = kinematics.to_wheel_speeds(ChassisVelocity(1.0, 0.5))
    assert wheels.left == pytest.approx(0.875)
    assert wheels.right == pytest.approx(1.125)


def test_pure_rotation_spins_wheels_in_opposite_directions():
    kinematics = DifferentialDriveKinematics(0.6)
    wheels = kinematics.to_wheel_speeds(ChassisVelocity(0.0, 2.0))
    assert wheels.left == pytest.approx(-0.6)
    assert wheels.right == pytest.approx(0.6)


def test_forward_kinematics_inverts_inverse_kinematics():
    kinematics = DifferentialDriveKinematics(0.7112)
    chassis = kinematics.to_chassis_velocity(
        kinematics.to_wheel_speeds(ChassisVelocity(0.8, -1.3))
    )
    assert chassis.v == pytest.approx(0.8)
    assert chassis.omega == pytest.approx(-1.3)


def test_chassis_velocity_from_wheels():
    chassis = DifferentialDriveKinematics(1.0).to_chassis_velocity(WheelSpeeds(1.0, 2.0))
    assert chassis.v == pytest.approx(1.5)
    assert chassis.omega == pytest.approx(1.0)


@pytest.mark.parametrize("width", [0.0, -0.5])
def test_non_positive_track_width_rejected(width):
    with pytest.raises(ValueError):
        DifferentialDriveKinematics(width)
