import json
from pathlib import Path

import pytest

from mnistnet.core.network import NeuralNet
from mnistnet.training import pipelines


def _config(run_dir: Path, seed: int = 11) -> dict:
    return {
        "data": {
            "name": "blobs",
            "options": {"n_per_class": 12, "num_classes": 3, "input_size": 3, "seed": 0},
        },
        "model": {"hidden": [5], "activation": "sigmoid", "average_gradient": True},
        "train": {
            "epochs": 3,
            "batch_size": 4,
            "seed": seed,
            "lr": 0.3,
            "run_dir": str(run_dir),
            "enable_plots": False,
        },
    }


def test_pipeline_produces_artifacts(tmp_path):
    config = _config(tmp_path / "run")
    result = pipelines.run_pipeline(config)

    run_dir = tmp_path / "run"
    # 29 training examples commit as 7 full batches plus one remainder per epoch.
    assert result.steps == 3 * 8
    assert Path(result.metrics_path) == run_dir / "metrics.jsonl"
    metrics = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert [entry["epoch"] for entry in metrics] == [1, 2, 3]
    assert all(entry["split"] == "train" and entry["seed"] == 11 for entry in metrics)
    assert all({"loss", "accuracy", "error_norm"} <= set(entry) for entry in metrics)
    assert (run_dir / "metrics.csv").exists()
    assert (run_dir / "metrics_test.json").exists()
    assert not (run_dir / "loss.png").exists()

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 11
    assert manifest["dataset"]["type"] == "synthetic"
    assert manifest["model"]["layer_sizes"] == [5, 3]
    assert json.loads((run_dir / "config.json").read_text()) == config

    net = NeuralNet.load(result.model_path)
    assert net.input_size == 3
    assert net.layer_sizes == [5, 3]
    assert net.average_gradient is True


def test_pipeline_determinism(tmp_path):
    first = pipelines.run_pipeline(_config(tmp_path / "run1", seed=99))
    second = pipelines.run_pipeline(_config(tmp_path / "run2", seed=99))
    assert Path(first.metrics_path).read_text() == Path(second.metrics_path).read_text()


def test_pipeline_honours_stop_request(tmp_path):
    result = pipelines.run_pipeline(_config(tmp_path / "run"), should_stop=lambda: True)
    assert result.steps == 1
    metrics = Path(result.metrics_path).read_text().splitlines()
    assert len(metrics) == 1
    assert Path(result.model_path).exists()


def test_pipeline_writes_plot_when_enabled(tmp_path):
    config = _config(tmp_path / "run")
    config["train"]["enable_plots"] = True
    pipelines.run_pipeline(config)
    assert (tmp_path / "run" / "loss.png").exists()


def test_pipeline_rejects_incomplete_config(tmp_path):
    with pytest.raises(KeyError, match="model"):
        pipelines.run_pipeline({"data": {"name": "blobs"}, "train": {}})


def test_presets_are_copies():
    presets = pipelines.presets()
    assert {"blobs-sigmoid", "blobs-tanh-batch", "mnist-sigmoid"} <= set(presets)
    loaded = pipelines.load_preset("blobs-sigmoid")
    loaded["train"]["epochs"] = 1
    assert pipelines.load_preset("blobs-sigmoid")["train"]["epochs"] == 20
    with pytest.raises(KeyError, match="Available presets"):
        pipelines.load_preset("resnet")
