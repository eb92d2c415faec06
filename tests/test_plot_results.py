import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pytest

from tank_control.commands import FollowPath
from tank_control.path import straight_trajectory
from tank_control.plot_results import (
    find_latest_run,
    load_csv_to_dict,
    load_run_data,
    main,
    plot_run_summary,
)
from tank_control.simulation import run_simulation


@pytest.fixture
def recorded_run(drivetrain, sim, collector):
    command = FollowPath(drivetrain, straight_trajectory(0.5, 0.5))
    run_simulation([command], sim, max_time=5.0, collector=collector)
    return collector.run_dir


def test_load_csv_to_dict_converts_bad_values_to_nan(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("timestamp,x\n0.0,1.5\n0.1,\n")

    data = load_csv_to_dict(path)

    assert list(data) == ["timestamp", "x"]
    assert data["x"][0] == 1.5
    assert np.isnan(data["x"][1])


def test_load_csv_to_dict_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_csv_to_dict(tmp_path / "missing.csv")


def test_load_run_data(recorded_run):
    data = load_run_data(recorded_run)
    assert set(data) == {"state", "reference", "wheel", "tracking"}
    assert len(data["state"]["x"]) == len(data["reference"]["x_ref"])


def test_plot_run_summary_saves_figure(recorded_run):
    fig = plot_run_summary(recorded_run, save_plots=True, show_plots=False)

    assert (recorded_run / "run_summary.png").exists()
    assert len(fig.axes) == 4
    plt.close(fig)


def test_plot_run_summary_without_data(tmp_path):
    with pytest.raises(FileNotFoundError):
        plot_run_summary(tmp_path, show_plots=False)


def test_find_latest_run(tmp_path):
    (tmp_path / "run_20250101_000000").mkdir()
    (tmp_path / "run_20250102_000000").mkdir()
    (tmp_path / "notes").mkdir()

    assert find_latest_run(tmp_path).name == "run_20250102_000000"

    with pytest.raises(FileNotFoundError):
        find_latest_run(tmp_path / "missing")


def test_main_unknown_run_exits(tmp_path):
    with pytest.raises(SystemExit):
        main(["--results-dir", str(tmp_path), "--run", "run_missing", "--no-show"])
