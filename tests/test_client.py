import asyncio
import json
import logging
import math

import pytest

from tank_control import client as client_module
from tank_control.client import CustomFormatter, DrivetrainClient, WebSocketDrive
from tank_control.path import lemniscate_trajectory, straight_trajectory


def sensor_message(timestamp, gyro=0.0, left=0.0, right=0.0, left_vel=0.0, right_vel=0.0):
    return json.dumps({
        "message_type": "sensors",
        "timestamp": timestamp,
        "gyro_angle": gyro,
        "left_position": left,
        "right_position": right,
        "left_velocity": left_vel,
        "right_velocity": right_vel,
    })


@pytest.fixture
def client(collector):
    return DrivetrainClient("ws://localhost:8765", lemniscate_trajectory(), collector=collector)


class FakeWebSocket:
    def __init__(self, messages):
        self.messages = list(messages)
        self.sent = []

    async def recv(self):
        return self.messages.pop(0)

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def test_invalid_uri_rejected(collector):
    with pytest.raises(ValueError):
        DrivetrainClient("http://localhost:8765", lemniscate_trajectory(), collector=collector)


def test_sensor_message_returns_duty_command(client):
    reply = client.handle_message(sensor_message(0.0))

    assert set(reply) == {"left", "right"}
    assert reply["left"] > 0.0
    assert reply["right"] > 0.0
    assert client.scheduler.is_scheduled(client.command)
    assert not client.should_stop


def test_timestamps_drive_elapsed_time(client):
    client.handle_message(sensor_message(10.0))
    client.handle_message(sensor_message(10.05))
    assert client.command.elapsed == pytest.approx(0.02 + 0.05)


def test_sensor_offsets_applied_at_start(collector):
    client = DrivetrainClient("ws://localhost:8765", lemniscate_trajectory(), collector=collector)
    client.handle_message(sensor_message(0.0, gyro=45.0, left=100.0, right=100.0))

    pose = client.drivetrain.get_pose()
    assert pose.x == pytest.approx(0.0)
    assert pose.theta == pytest.approx(0.0)
    assert client.drivetrain.get_left_distance() == pytest.approx(0.0)


def test_malformed_json_is_ignored(client, caplog):
    with caplog.at_level(logging.ERROR):
        assert client.handle_message("{not json") is None
    assert "Error parsing JSON" in caplog.text
    assert not client.should_stop


def test_unknown_message_type_is_ignored(client):
    assert client.handle_message(json.dumps({"message_type": "status"})) is None


def test_stop_message_zeroes_outputs(client):
    client.handle_message(sensor_message(0.0))

    reply = client.handle_message(json.dumps({"message_type": "stop"}))

    assert reply == {"left": 0.0, "right": 0.0}
    assert client.should_stop
    assert not client.scheduler.is_scheduled(client.command)


def test_missing_sensor_field_aborts_path(client):
    client.handle_message(sensor_message(0.0))
    message = json.loads(sensor_message(0.02))
    del message["gyro_angle"]

    reply = client.handle_message(json.dumps(message))

    assert reply == {"left": 0.0, "right": 0.0}
    assert client.command.failure is not None
    assert client.should_stop


def test_trajectory_completion_stops_client(collector):
    client = DrivetrainClient("ws://localhost:8765", straight_trajectory(0.1, 1.0), collector=collector)
    reply = None
    for i in range(10):
        reply = client.handle_message(sensor_message(i * 0.02))
        if client.should_stop:
            break

    assert client.should_stop
    assert client.command.failure is None
    assert reply == {"left": 0.0, "right": 0.0}


def test_control_loop_over_websocket(client, monkeypatch):
    messages = [sensor_message(i * 0.02) for i in range(3)] + [json.dumps({"message_type": "stop"})]
    websocket = FakeWebSocket(messages)
    monkeypatch.setattr(client_module.websockets, "connect", lambda uri: websocket)

    asyncio.run(client.run_control_loop())

    assert len(websocket.sent) == 4
    assert websocket.sent[0]["left"] > 0.0
    assert websocket.sent[-1] == {"left": 0.0, "right": 0.0}
    assert client.data_collector.sample_count == 3


def test_websocket_drive_reset_uses_current_readings():
    drive = WebSocketDrive()
    drive.apply_sensor_message({"gyro_angle": 10.0, "left_position": 2.0, "right_position": 3.0,
                                "left_velocity": 1.0, "right_velocity": 1.0})
    drive.reset_sensors()
    drive.apply_sensor_message({"gyro_angle": 15.0, "left_position": 2.5, "right_position": 3.0,
                                "left_velocity": 1.0, "right_velocity": "bad"})

    assert drive.get_gyro_angle() == pytest.approx(5.0)
    assert drive.get_left_position() == pytest.approx(0.5)
    assert drive.get_right_position() == pytest.approx(0.0)
    assert math.isnan(drive.get_right_velocity())


def test_custom_formatter_omits_timestamp_for_info():
    formatter = CustomFormatter()
    info = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
    warning = logging.LogRecord("test", logging.WARNING, __file__, 1, "careful", None, None)

    assert formatter.format(info) == "hello"
    assert formatter.format(warning).endswith("WARNING - careful")
