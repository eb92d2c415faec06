import json
import math

import pytest

from tank_control.geometry import Pose2D
from tank_control.path import (
    Trajectory,
    TrajectoryError,
    TrajectoryState,
    lemniscate_trajectory,
    load_trajectory,
    straight_trajectory,
)


def make_state(t, x=0.0, y=0.0, theta=0.0, v=0.0, omega=0.0):
    return TrajectoryState(t=t, pose=Pose2D(x, y, theta), v=v, omega=omega)


def pathweaver_record(t, x, y, radians, velocity, curvature=0.0, acceleration=0.0):
    return {
        "time": t,
        "velocity": velocity,
        "acceleration": acceleration,
        "curvature": curvature,
        "pose": {"translation": {"x": x, "y": y}, "rotation": {"radians": radians}},
    }


def test_requires_two_states():
    with pytest.raises(TrajectoryError):
        Trajectory([make_state(0.0)])
    with pytest.raises(TrajectoryError):
        Trajectory([])


def test_requires_strictly_increasing_time():
    with pytest.raises(TrajectoryError):
        Trajectory([make_state(0.0), make_state(1.0), make_state(1.0)])
    with pytest.raises(TrajectoryError):
        Trajectory([make_state(0.0), make_state(-1.0)])


def test_trajectory_error_is_value_error():
    assert issubclass(TrajectoryError, ValueError)


def test_sampling_clamps_to_end_states():
    first = make_state(0.0, x=0.0, v=1.0)
    last = make_state(2.0, x=2.0, v=1.0)
    trajectory = Trajectory([first, make_state(1.0, x=1.0, v=1.0), last])

    assert trajectory.sample(-1.0) == first
    assert trajectory.sample(0.0) == first
    assert trajectory.sample(2.0) == last
    assert trajectory.sample(1000.0) == last
    assert trajectory.duration == 2.0


def test_sampling_interpolates_between_bracketing_states():
    trajectory = Trajectory([
        make_state(0.0, x=0.0, y=0.0, v=0.0, omega=0.0),
        make_state(1.0, x=1.0, y=2.0, v=2.0, omega=1.0),
    ])

    state = trajectory.sample(0.25)

    assert state.t == pytest.approx(0.25)
    assert state.pose.x == pytest.approx(0.25)
    assert state.pose.y == pytest.approx(0.5)
    assert state.v == pytest.approx(0.5)
    assert state.omega == pytest.approx(0.25)


def test_sampling_exactly_on_a_state_returns_it():
    middle = make_state(1.0, x=5.0)
    trajectory = Trajectory([make_state(0.0), middle, make_state(2.0)])
    assert trajectory.sample(1.0) == middle


def test_heading_interpolates_the_short_way_around():
    trajectory = Trajectory([
        make_state(0.0, theta=math.radians(170.0)),
        make_state(1.0, theta=math.radians(-170.0)),
    ])

    heading = trajectory.sample(0.5).pose.heading_degrees

    assert abs(heading) == pytest.approx(180.0)


def test_from_arrays_length_mismatch():
    with pytest.raises(TrajectoryError):
        Trajectory.from_arrays([0.0, 1.0], [0.0, 1.0], [0.0], [0.0, 0.0], [1.0, 1.0], [0.0, 0.0])


def test_from_pathweaver_computes_angular_velocity_from_curvature():
    trajectory = Trajectory.from_pathweaver([
        pathweaver_record(0.0, 0.0, 0.0, 0.0, 0.0),
        pathweaver_record(0.5, 0.2, 0.0, 0.1, 2.0, curvature=0.5, acceleration=1.0),
    ])

    end = trajectory.states[-1]
    assert end.omega == pytest.approx(1.0)
    assert end.acceleration == pytest.approx(1.0)
    assert end.curvature == pytest.approx(0.5)


def test_from_pathweaver_rejects_missing_fields():
    record = pathweaver_record(0.0, 0.0, 0.0, 0.0, 0.0)
    del record["pose"]
    with pytest.raises(TrajectoryError):
        Trajectory.from_pathweaver([record, pathweaver_record(1.0, 1.0, 0.0, 0.0, 1.0)])


def test_load_trajectory(tmp_path):
    path = tmp_path / "Straight.wpilib.json"
    path.write_text(json.dumps([
        pathweaver_record(0.0, 0.0, 0.0, 0.0, 0.0),
        pathweaver_record(1.0, 0.5, 0.0, 0.0, 1.0),
        pathweaver_record(2.0, 1.5, 0.0, 0.0, 1.0),
    ]))

    trajectory = load_trajectory(path)

    assert len(trajectory) == 3
    assert trajectory.duration == pytest.approx(2.0)
    assert trajectory.sample(1.5).pose.x == pytest.approx(1.0)


def test_load_trajectory_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_trajectory(tmp_path / "missing.json")


def test_load_trajectory_invalid_content(tmp_path):
    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{not json")
    with pytest.raises(TrajectoryError):
        load_trajectory(bad_json)

    not_a_list = tmp_path / "object.json"
    not_a_list.write_text(json.dumps({"time": 0.0}))
    with pytest.raises(TrajectoryError):
        load_trajectory(not_a_list)


def test_lemniscate_starts_and_ends_at_origin_facing_forward():
    trajectory = lemniscate_trajectory(duration=20.0, dt=0.02)

    start = trajectory.states[0]
    end = trajectory.states[-1]
    assert trajectory.duration == pytest.approx(20.0)
    assert start.pose.x == pytest.approx(0.0, abs=1e-9)
    assert start.pose.y == pytest.approx(0.0, abs=1e-9)
    assert start.pose.theta == pytest.approx(0.0, abs=1e-9)
    assert end.pose.x == pytest.approx(0.0, abs=1e-9)
    assert end.pose.y == pytest.approx(0.0, abs=1e-9)
    assert start.v > 0.0


def test_lemniscate_heading_rate_matches_heading_change():
    trajectory = lemniscate_trajectory(duration=20.0, dt=0.01)
    a = trajectory.sample(3.0)
    b = trajectory.sample(3.01)
    rate = (b.pose.theta - a.pose.theta) / 0.01
    assert rate == pytest.approx(a.omega, rel=0.05)


def test_straight_trajectory():
    trajectory = straight_trajectory(2.0, 1.0)
    assert trajectory.duration == pytest.approx(2.0)
    assert trajectory.sample(1.0).pose.x == pytest.approx(1.0)
    assert trajectory.sample(1.0).v == pytest.approx(1.0)
