import csv

import pytest

from tank_control.data_collector import TRACKING_HEADER, WHEEL_HEADER, DataCollector


def read_rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


def sample_diagnostics():
    diagnostics = {key: 0.0 for key in WHEEL_HEADER[1:]}
    diagnostics.update(
        elapsed=0.5, x=1.0, y=2.0, theta=0.1,
        x_ref=4.0, y_ref=6.0, theta_ref=0.2, v_ref=1.0, omega_ref=0.3,
    )
    return diagnostics


def test_setup_writes_headers(tmp_path):
    with DataCollector(run_dir=str(tmp_path / "run")) as collector:
        pass

    assert read_rows(collector.tracking_output_path) == [TRACKING_HEADER]
    assert read_rows(collector.wheel_output_path) == [WHEEL_HEADER]


def test_logging_before_setup_raises(tmp_path):
    collector = DataCollector(run_dir=str(tmp_path / "run"))
    with pytest.raises(RuntimeError):
        collector.log_state(0.0, 0.0, 0.0, 0.0)


def test_log_tracking_accumulates_error(collector):
    assert collector.log_tracking(0.0, 3.0, 4.0) == pytest.approx(5.0)
    collector.log_tracking(0.02, 0.0, 1.0)

    assert collector.cumulative_l2_error == pytest.approx(6.0)
    assert collector.sample_count == 2
    last = read_rows(collector.tracking_output_path)[-1]
    assert float(last[4]) == pytest.approx(6.0)
    assert last[5] == "2"


def test_log_follow_path_writes_every_file(collector):
    collector.log_follow_path(1.25, sample_diagnostics())

    state = read_rows(collector.state_output_path)
    reference = read_rows(collector.reference_output_path)
    tracking = read_rows(collector.tracking_output_path)

    assert [float(v) for v in state[1]] == [1.25, 1.0, 2.0, 0.1]
    assert float(reference[1][1]) == pytest.approx(0.5)
    assert float(tracking[1][3]) == pytest.approx(5.0)
    assert len(read_rows(collector.wheel_output_path)) == 2


def test_run_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("RUN_DIR", str(tmp_path / "from_env"))
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir == tmp_path / "from_env"
    assert collector.run_dir.is_dir()


def test_timestamped_run_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("RUN_DIR", raising=False)
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")


def test_output_dir_must_be_directory(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(output_dir=str(not_a_dir))
