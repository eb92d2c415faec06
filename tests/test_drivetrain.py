import math

import pytest

from tank_control import config
from tank_control.drivetrain import Drivetrain, ResourceConflictError


def test_construction_resets_sensors_and_odometry(hardware):
    drivetrain = Drivetrain(hardware)
    assert hardware.resets == 1
    assert drivetrain.get_pose().x == 0.0


def test_gyro_is_converted_to_counter_clockwise_radians(hardware):
    drivetrain = Drivetrain(hardware)
    hardware.gyro_angle = 90.0  # clockwise
    assert drivetrain.get_heading() == pytest.approx(-math.pi / 2)


def test_encoder_rotations_are_converted_to_meters(hardware):
    drivetrain = Drivetrain(hardware)
    hardware.left_position = 10.0
    hardware.right_position = 20.0
    hardware.left_velocity = 2.0
    hardware.right_velocity = -2.0

    assert drivetrain.get_left_distance() == pytest.approx(10.0 * config.DISTANCE_PER_ROTATION)
    assert drivetrain.get_average_distance() == pytest.approx(15.0 * config.DISTANCE_PER_ROTATION)
    speeds = drivetrain.get_wheel_speeds()
    assert speeds.left == pytest.approx(2.0 * config.DISTANCE_PER_ROTATION)
    assert speeds.right == pytest.approx(-2.0 * config.DISTANCE_PER_ROTATION)


def test_periodic_updates_odometry(hardware):
    drivetrain = Drivetrain(hardware)
    rotations = 1.0 / config.DISTANCE_PER_ROTATION
    hardware.left_position = rotations
    hardware.right_position = rotations

    pose = drivetrain.periodic()

    assert pose.x == pytest.approx(1.0)
    assert drivetrain.odometry_valid


def test_periodic_flags_invalid_readings(hardware):
    drivetrain = Drivetrain(hardware)
    hardware.gyro_angle = math.nan
    drivetrain.periodic()
    assert not drivetrain.odometry_valid
    assert drivetrain.estimator.rejected_updates == 1


def test_set_outputs_clamps_each_wheel_independently(hardware):
    drivetrain = Drivetrain(hardware)
    drivetrain.set_outputs(1.7, 0.4)
    assert hardware.outputs[-1] == (1.0, 0.4)
    drivetrain.set_outputs(-0.2, -3.0)
    assert hardware.outputs[-1] == (-0.2, -1.0)


def test_arcade_drive_mixing(hardware):
    drivetrain = Drivetrain(hardware)
    drivetrain.arcade_drive(0.5, 0.25)
    assert hardware.outputs[-1] == (0.75, 0.25)
    drivetrain.arcade_drive(0.0, -0.2)
    assert hardware.outputs[-1] == (-0.2, 0.2)


def test_tank_drive_volts_normalizes_by_max_voltage(hardware):
    drivetrain = Drivetrain(hardware)
    drivetrain.tank_drive_volts(6.0, -3.0)
    left, right = hardware.outputs[-1]
    assert left == pytest.approx(0.5)
    assert right == pytest.approx(-0.25)


def test_stop_writes_zero(hardware):
    drivetrain = Drivetrain(hardware)
    drivetrain.tank_drive(0.3, 0.3)
    drivetrain.stop()
    assert hardware.outputs[-1] == (0.0, 0.0)
    assert (drivetrain.left_output, drivetrain.right_output) == (0.0, 0.0)


def test_ownership_conflict(hardware):
    drivetrain = Drivetrain(hardware)
    first, second = object(), object()

    drivetrain.acquire(first)
    drivetrain.acquire(first)
    with pytest.raises(ResourceConflictError):
        drivetrain.acquire(second)

    drivetrain.release(second)
    assert drivetrain.owner is first
    drivetrain.release(first)
    assert drivetrain.owner is None
    drivetrain.acquire(second)
    assert drivetrain.owner is second


def test_telemetry(hardware):
    drivetrain = Drivetrain(hardware)
    hardware.gyro_angle = -90.0
    drivetrain.periodic()
    drivetrain.set_outputs(0.1, -0.1)

    telemetry = drivetrain.telemetry()

    assert telemetry["heading"] == pytest.approx(90.0)
    assert telemetry["left_output"] == 0.1
    assert telemetry["right_output"] == -0.1
