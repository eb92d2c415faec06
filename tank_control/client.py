#!/usr/bin/env python3
"""
WebSocket Client for Drivetrain Path Following

This module connects the path following controller to a remote drivetrain
simulator over a WebSocket. Every sensor message from the server is one
control tick: the readings are applied to a message-backed hardware
interface, the scheduler runs the FollowPath command once, and the
resulting duty commands are sent back. The run ends when the trajectory is
complete or the server sends a stop message.
"""

import asyncio
import json
import logging
import math
import signal
from typing import Any, Dict, Optional, Union

import websockets

from .commands import CommandScheduler, FollowPath
from .component_modes import ComponentMode
from .config import (
    CONTROL_PERIOD,
    TERM_BLUE,
    TERM_RESET,
    WS_MAX_RETRY_DELAY_SECONDS,
    WS_RETRY_DELAY_SECONDS,
    WS_TIMEOUT_SECONDS,
    WS_URI,
)
from .data_collector import DataCollector
from .drivetrain import Drivetrain
from .path import Trajectory

SENSOR_FIELDS = (
    "gyro_angle",
    "left_position",
    "right_position",
    "left_velocity",
    "right_velocity",
)


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    This formatter provides clean console output by showing INFO messages without
    timestamps while preserving full context for WARNING, ERROR, and DEBUG messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        else:
            return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        formatter = CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def _reading(data: Dict[str, Any], key: str) -> float:
    """Numeric sensor field from a message; missing or malformed becomes NaN."""
    try:
        return float(data[key])
    except (KeyError, TypeError, ValueError):
        return math.nan


class WebSocketDrive:
    """Drive hardware interface backed by the latest sensor message.

    Readings are raw sensor units (see DriveHardware). Resetting the sensors
    records the current readings as offsets, since the remote encoders and
    gyro cannot be zeroed from here.
    """

    def __init__(self) -> None:
        self.readings: Dict[str, float] = {field: 0.0 for field in SENSOR_FIELDS}
        self.offsets: Dict[str, float] = {"gyro_angle": 0.0, "left_position": 0.0, "right_position": 0.0}
        self.left_duty: float = 0.0
        self.right_duty: float = 0.0

    def apply_sensor_message(self, data: Dict[str, Any]) -> None:
        for field in SENSOR_FIELDS:
            self.readings[field] = _reading(data, field)

    def get_gyro_angle(self) -> float:
        return self.readings["gyro_angle"] - self.offsets["gyro_angle"]

    def get_left_position(self) -> float:
        return self.readings["left_position"] - self.offsets["left_position"]

    def get_right_position(self) -> float:
        return self.readings["right_position"] - self.offsets["right_position"]

    def get_left_velocity(self) -> float:
        return self.readings["left_velocity"]

    def get_right_velocity(self) -> float:
        return self.readings["right_velocity"]

    def set_outputs(self, left: float, right: float) -> None:
        self.left_duty = left
        self.right_duty = right

    def reset_sensors(self) -> None:
        for field in self.offsets:
            self.offsets[field] = self.readings[field]

    def command_message(self) -> Dict[str, float]:
        return {"left": self.left_duty, "right": self.right_duty}


class DrivetrainClient:
    """Path following over a WebSocket connection with data logging.

    This class manages the complete pipeline:
    - WebSocket connection to the simulation server
    - Sensor message parsing into the hardware interface
    - FollowPath command execution through the scheduler
    - Data logging to CSV files

    Attributes:
        uri: WebSocket URI to connect to.
        hardware: Message-backed drive hardware.
        drivetrain: Drivetrain subsystem wrapping the hardware.
        command: Trajectory following command.
        should_stop: Flag indicating whether to stop the control loop.
    """

    def __init__(
        self,
        uri: str,
        trajectory: Trajectory,
        output_dir: str = ".",
        component_mode: Optional[ComponentMode] = None,
        config: Optional[Any] = None,
        collector: Optional[DataCollector] = None,
    ) -> None:
        """Initialize the client.

        Args:
            uri: WebSocket URI to connect to (must start with ws:// or wss://).
            trajectory: Trajectory to follow.
            output_dir: Base directory for output files (default: current directory).
            component_mode: ComponentMode configuration for component isolation testing.
            config: Configuration object or module. If None, uses tank_control.config.
            collector: Data collector to use instead of creating one in output_dir.

        Raises:
            ValueError: If URI format is invalid.
        """
        if not uri or not uri.startswith(("ws://", "wss://")):
            raise ValueError(f"Invalid WebSocket URI: {uri}. Must start with 'ws://' or 'wss://'")

        self.uri: str = uri
        self.should_stop: bool = False

        if component_mode is None:
            component_mode = ComponentMode()
        logging.info(f"{TERM_BLUE}Component Configuration: {component_mode}{TERM_RESET}")

        self.data_collector = collector if collector is not None else DataCollector(output_dir=output_dir)

        self.hardware = WebSocketDrive()
        self.drivetrain = Drivetrain(self.hardware, config=config)
        self.command = FollowPath(
            self.drivetrain, trajectory, config=config, component_mode=component_mode
        )
        self.scheduler = CommandScheduler()

        self.started: bool = False
        self.last_timestamp: Optional[float] = None

    def process_sensor_message(self, data: Dict[str, Any]) -> Dict[str, float]:
        """Run one control tick from a sensor message.

        Args:
            data: Parsed sensor message.

        Returns:
            Duty command message to send back to the server.
        """
        self.hardware.apply_sensor_message(data)

        timestamp = _reading(data, "timestamp")
        if self.last_timestamp is None or not math.isfinite(timestamp):
            dt = CONTROL_PERIOD
        else:
            dt = max(timestamp - self.last_timestamp, 0.0)
        if math.isfinite(timestamp):
            self.last_timestamp = timestamp

        if not self.started:
            self.scheduler.schedule(self.command)
            self.started = True

        if not self.scheduler.is_scheduled(self.command):
            return self.hardware.command_message()

        self.scheduler.run(dt)

        diagnostics = self.command.get_diagnostics()
        if diagnostics and self.command.failure is None:
            self.data_collector.log_follow_path(self.last_timestamp or 0.0, diagnostics)

        if not self.scheduler.is_scheduled(self.command):
            if self.command.failure is not None:
                logging.error(f"Path following aborted: {self.command.failure}")
            else:
                logging.info(f"{TERM_BLUE}✓ Trajectory complete{TERM_RESET}")
            self.should_stop = True

        return self.hardware.command_message()

    def handle_message(self, message: Union[str, bytes]) -> Optional[Dict[str, float]]:
        """Parse incoming message and route to appropriate handler.

        Args:
            message: Raw JSON message string or bytes from WebSocket.

        Returns:
            Command message to send, or None if nothing should be sent.
        """
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            data = json.loads(message)
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")

            message_type = data.get("message_type")
            if message_type == "sensors":
                return self.process_sensor_message(data)
            if message_type == "stop":
                logging.info("Stop requested by server")
                self.stop()
                return self.hardware.command_message()

            logging.debug(f"Ignoring message: {json.dumps(data)}")
        except json.JSONDecodeError as e:
            logging.error(f"Error parsing JSON: {e}")
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            logging.error(f"Error processing message data: {e}")
        return None

    async def run_control_loop(self) -> None:
        """Connect to WebSocket and run the control loop.

        Maintains a connection to the WebSocket server with automatic retry logic
        and exponential backoff. Continues running until should_stop is set.
        """
        retry_delay = WS_RETRY_DELAY_SECONDS

        while not self.should_stop:
            try:
                async with websockets.connect(self.uri) as websocket:
                    logging.info(f"{TERM_BLUE}✓ Connected to server{TERM_RESET}")
                    retry_delay = WS_RETRY_DELAY_SECONDS

                    while not self.should_stop:
                        try:
                            message = await asyncio.wait_for(websocket.recv(), timeout=WS_TIMEOUT_SECONDS)
                        except asyncio.TimeoutError:
                            continue

                        reply = self.handle_message(message)
                        if reply is not None:
                            await websocket.send(json.dumps(reply))

            except websockets.exceptions.ConnectionClosed:
                logging.warning("Connection closed by server")
            except OSError as e:
                logging.error(f"Connection error: {e}")

            if self.should_stop:
                break
            logging.info(f"Retrying in {retry_delay} seconds...")
            await asyncio.sleep(retry_delay)
            retry_delay = min(retry_delay * 2, WS_MAX_RETRY_DELAY_SECONDS)

    def stop(self) -> None:
        """Signal the client to stop. Cancels the command so outputs go to zero."""
        self.scheduler.cancel_all()
        self.should_stop = True

    def __enter__(self) -> "DrivetrainClient":
        self.data_collector.setup()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.scheduler.cancel_all()
        self.data_collector.cleanup()


async def main(
    trajectory: Trajectory,
    component_mode: Optional[ComponentMode] = None,
    uri: str = WS_URI,
) -> None:
    """Main entry point for the WebSocket client.

    Creates a DrivetrainClient, sets up signal handlers for graceful
    shutdown, and starts the control loop.
    """
    with DrivetrainClient(uri, trajectory, component_mode=component_mode) as client:
        loop = asyncio.get_running_loop()

        def signal_handler() -> None:
            logging.info("\nShutdown signal received...")
            client.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        await client.run_control_loop()
