"""Shared pytest fixtures for the drivetrain tests."""

import pytest

from tank_control.data_collector import DataCollector
from tank_control.drivetrain import Drivetrain
from tank_control.simulation import SimulatedDrive


class RecordingHardware:
    """Drive hardware with settable raw readings that records every output write."""

    def __init__(self):
        self.gyro_angle = 0.0
        self.left_position = 0.0
        self.right_position = 0.0
        self.left_velocity = 0.0
        self.right_velocity = 0.0
        self.outputs = []
        self.resets = 0

    def get_gyro_angle(self):
        return self.gyro_angle

    def get_left_position(self):
        return self.left_position

    def get_right_position(self):
        return self.right_position

    def get_left_velocity(self):
        return self.left_velocity

    def get_right_velocity(self):
        return self.right_velocity

    def set_outputs(self, left, right):
        self.outputs.append((left, right))

    def reset_sensors(self):
        self.resets += 1
        self.gyro_angle = 0.0
        self.left_position = 0.0
        self.right_position = 0.0


@pytest.fixture
def hardware():
    return RecordingHardware()


@pytest.fixture
def sim():
    return SimulatedDrive()


@pytest.fixture
def drivetrain(sim):
    """Drivetrain wired to a noise-free simulated plant."""
    return Drivetrain(sim)


@pytest.fixture
def collector(tmp_path):
    data_collector = DataCollector(run_dir=str(tmp_path / "run"))
    data_collector.setup()
    yield data_collector
    data_collector.cleanup()
