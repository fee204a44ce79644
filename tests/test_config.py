from pathlib import Path

import pytest

from ctabc.config import dump_config, load_config, load_dataset
from ctabc.errors import ConfigurationError
from ctabc.model.factory import build_simulator

CONFIG_DIR = Path(__file__).parent.parent / "configs"


def test_example_config_builds_simulator():
    cfg = load_config(CONFIG_DIR / "example.yaml")
    dataset = load_dataset(cfg, root=CONFIG_DIR)
    assert dataset.k == 8
    simulator = build_simulator(cfg.model, dataset)
    assert simulator.param_names == ("mu", "b")
    assert simulator.n_stats == 16
    assert cfg.abc.n_sim == 1000 and cfg.abc.tol == 0.01


def test_base_inheritance():
    cfg = load_config(CONFIG_DIR / "neutral_uncertain.yaml")
    assert cfg.model.transmission == "neutral"
    assert cfg.model.free_params == ["mu", "r"]
    assert cfg.model.s_mean == 0.2
    assert set(cfg.priors) == {"mu", "b", "r"}
    assert cfg.data.timestamps == [1, 30, 60]


def test_dump_and_reload(tmp_path):
    cfg = load_config(CONFIG_DIR / "example.yaml")
    dump_config(cfg, tmp_path / "resolved.yaml")
    again = load_config(tmp_path / "resolved.yaml")
    assert again == cfg


def test_counts_from_csv(tmp_path):
    (tmp_path / "counts.csv").write_text("x,y\n5,5\n4,6\n")
    (tmp_path / "run.yaml").write_text(
        "data:\n  counts_csv: counts.csv\n  timestamps: [1, 5]\n  durations: [2]\n"
    )
    cfg = load_config(tmp_path / "run.yaml")
    dataset = load_dataset(cfg, root=tmp_path)
    assert dataset.variants == ("x", "y")
    assert dataset.n_phases == 2


@pytest.mark.parametrize(
    "text",
    [
        "data:\n  timestamps: [1, 5]\n  durations: [2]\n",
        "data:\n  counts: [[1, 2], [2, 1]]\n  timestamps: [1, 5]\n  durations: [2]\n"
        "model:\n  free_params: [mu]\npriors:\n  b:\n    params: [0, 1]\n",
        "abc:\n  n_sim: -3\n",
        "data: [unclosed\n",
    ],
)
def test_invalid_config_rejected(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text)
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigurationError):
        load_config(tmp_path / "nope.yaml")
