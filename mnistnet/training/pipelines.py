"""Pipeline assembly: config presets, dataset, network, trainer and artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, List, Mapping

from ..core.network import NeuralNet
from ..core.types import RunResult
from ..data import registry
from ..data.utils import seeded_rng
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "blobs-sigmoid": {
        "data": {
            "name": "blobs",
            "options": {"n_per_class": 40, "num_classes": 2, "input_size": 2, "seed": 0},
        },
        "model": {"hidden": [4], "activation": "sigmoid", "average_gradient": False},
        "train": {
            "epochs": 20,
            "batch_size": 1,
            "lr": 0.2,
            "loss": "sse",
            "seed": 7,
            "shuffle": True,
            "run_dir": "runs/blobs-sigmoid",
            "enable_plots": False,
        },
    },
    "blobs-tanh-batch": {
        "data": {
            "name": "blobs",
            "options": {"n_per_class": 60, "num_classes": 3, "input_size": 4, "seed": 1},
        },
        "model": {"hidden": [8], "activation": "tanh", "average_gradient": True},
        "train": {
            "epochs": 30,
            "batch_size": 8,
            "lr": 0.1,
            "loss": "sse",
            "seed": 11,
            "shuffle": True,
            "run_dir": "runs/blobs-tanh-batch",
            "enable_plots": False,
        },
    },
    "mnist-sigmoid": {
        "data": {
            "name": "mnist",
            "options": {"data_dir": "data", "train_limit": None, "test_limit": None},
        },
        "model": {"hidden": [30], "activation": "sigmoid", "average_gradient": True},
        "train": {
            "epochs": 3,
            "batch_size": 10,
            "lr": 0.5,
            "loss": "sse",
            "seed": 0,
            "shuffle": True,
            "run_dir": "runs/mnist-sigmoid",
            "enable_plots": False,
        },
    },
}


def presets() -> Mapping[str, Mapping[str, object]]:
    return {name: deepcopy(cfg) for name, cfg in _PRESETS.items()}


def load_preset(name: str) -> Dict[str, object]:
    try:
        return deepcopy(_PRESETS[name])  # type: ignore[return-value]
    except KeyError as exc:
        available = ", ".join(sorted(_PRESETS))
        raise KeyError(f"Unknown preset {name!r}. Available presets: {available}") from exc


def run_pipeline(
    config: Mapping[str, object],
    *,
    should_stop: Callable[[], bool] | None = None,
) -> RunResult:
    """Train a network as described by ``config`` and write its run artifacts."""

    missing = {"data", "model", "train"} - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    data_cfg = dict(config["data"])  # type: ignore[arg-type]
    model_cfg = dict(config["model"])  # type: ignore[arg-type]
    train_cfg = dict(config["train"])  # type: ignore[arg-type]

    seed = int(train_cfg.get("seed", 0))
    rng = seeded_rng(seed)
    dataset = registry.get_dataset(str(data_cfg["name"]), **dict(data_cfg.get("options") or {}))

    hidden = [int(h) for h in model_cfg.get("hidden", [])]
    layer_sizes = hidden + [dataset.num_classes]
    net = NeuralNet(
        dataset.input_size,
        layer_sizes,
        str(model_cfg.get("activation", "sigmoid")),
        bool(model_cfg.get("average_gradient", False)),
        rng=rng,
    )

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    _log_startup_summary(dataset, net, train_cfg)

    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    trainer = Trainer(
        net,
        float(train_cfg.get("lr", 0.1)),
        batch_size=int(train_cfg.get("batch_size", 1)),
        loss=str(train_cfg.get("loss", "sse")),
        shuffle=bool(train_cfg.get("shuffle", True)),
        rng=rng,
        callbacks=[
            JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed),
            CsvSink(run_dir / "metrics.csv", split="train"),
            plots,
        ],
    )

    started = time.perf_counter()
    result = trainer.fit(dataset.train, int(train_cfg.get("epochs", 1)), should_stop=should_stop)
    logger.info(
        "Trained %d epoch(s), %d updates in %.2fs%s",
        result.epochs,
        result.updates,
        time.perf_counter() - started,
        " (stopped early)" if result.stopped else "",
    )
    plots.close()

    if dataset.test:
        test_metrics = dict(trainer.evaluate(dataset.test))
        logger.info("Test metrics: %s", test_metrics)
    else:
        test_metrics = {}
    (run_dir / "metrics_test.json").write_text(json.dumps(test_metrics, indent=2))

    model_path = net.save(run_dir / "model.npz")
    safe_config = json.loads(json.dumps(config))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        model=asdict(net.describe()),
    )
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))

    return RunResult(
        steps=result.updates,
        metrics_path=str(run_dir / "metrics.jsonl"),
        manifest_path=manifest,
        model_path=str(model_path),
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _log_startup_summary(
    dataset: registry.DatasetSpec, net: NeuralNet, train_cfg: Mapping[str, object]
) -> None:
    lines: List[str] = [
        "=== mnistnet run ===",
        f"Dataset       : {dataset.name} ({dataset.splits['train']} train / {dataset.splits['test']} test)",
        f"Layers        : {[net.input_size, *net.layer_sizes]}",
        f"Activation    : {net.activation.name}",
        f"Averaging     : {net.average_gradient}",
        f"Batch size    : {train_cfg.get('batch_size', 1)}",
        f"Learning rate : {train_cfg.get('lr', 0.1)}",
        f"Parameters    : {net.parameter_count()}",
    ]
    for line in lines:
        logger.info(line)


__all__ = ["run_pipeline", "load_preset", "presets"]
