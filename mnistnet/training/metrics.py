"""Metric helpers for the training loop."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: str) -> List[str]:
    if task_type == "classification":
        return ["accuracy", "error_norm"]
    if task_type == "regression":
        return ["mae", "rmse", "error_norm"]
    raise ValueError(f"Unknown task type: {task_type}")


def compute_metric(name: str, outputs: Array, targets: Array) -> MetricResult:
    """Compute ``name`` over stacked ``(n_examples, n_outputs)`` arrays."""

    key = name.lower()
    if outputs.shape != targets.shape:
        raise ValueError(f"outputs {outputs.shape} and targets {targets.shape} differ in shape")
    if outputs.shape[0] == 0:
        return MetricResult(name=key, value=0.0)
    if key == "accuracy":
        value = float(np.mean(np.argmax(outputs, axis=1) == np.argmax(targets, axis=1)))
    elif key == "error_norm":
        # Sum over examples of the L2 norm of each example's error.
        value = float(np.sum(np.linalg.norm(targets - outputs, axis=1)))
    elif key == "mae":
        value = float(np.mean(np.abs(outputs - targets)))
    elif key == "rmse":
        value = float(np.sqrt(np.mean((outputs - targets) ** 2)))
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=value)


def compute_metrics(names: Iterable[str], outputs: Array, targets: Array) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, outputs, targets)
        results[metric.name] = metric.value
    return results


__all__ = ["MetricResult", "default_metrics", "compute_metric", "compute_metrics"]
