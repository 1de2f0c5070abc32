"""Deterministic Gaussian clusters for offline runs and tests."""

from __future__ import annotations

import numpy as np

from .registry import DatasetSpec, register_dataset
from .utils import deterministic_split


def make_blobs(
    n_per_class: int, num_classes: int, input_size: int, spread: float, seed: int
) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    centers = rng.uniform(0.15, 0.85, size=(num_classes, input_size))
    inputs = []
    labels = []
    for label, center in enumerate(centers):
        noise = spread * rng.standard_normal((n_per_class, input_size))
        inputs.append(np.clip(center + noise, 0.0, 1.0))
        labels.append(np.full(n_per_class, label, dtype=np.int64))
    return np.vstack(inputs), np.concatenate(labels)


@register_dataset("blobs")
def build_blobs(
    n_per_class: int = 50,
    num_classes: int = 2,
    input_size: int = 2,
    spread: float = 0.05,
    seed: int = 0,
    test_split: float = 0.2,
    **_: object,
) -> DatasetSpec:
    inputs, labels = make_blobs(n_per_class, num_classes, input_size, spread, seed)
    split = deterministic_split(len(labels), test_split=test_split, seed=seed)
    return DatasetSpec(
        name="blobs",
        input_size=input_size,
        num_classes=num_classes,
        train=[(inputs[i], int(labels[i])) for i in split.train],
        test=[(inputs[i], int(labels[i])) for i in split.test],
        provenance={
            "type": "synthetic",
            "n_per_class": n_per_class,
            "num_classes": num_classes,
            "input_size": input_size,
            "spread": spread,
            "seed": seed,
            "test_split": test_split,
        },
    )


__all__ = ["build_blobs", "make_blobs"]
