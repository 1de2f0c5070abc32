"""Seeding and splitting helpers shared by the dataset factories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import numpy as np


def seeded_rng(seed: int) -> np.random.Generator:
    """Return the generator every seeded draw of a run is taken from."""

    return np.random.default_rng(seed)


@dataclass(frozen=True)
class SplitIndices:
    train: np.ndarray
    test: np.ndarray

    @property
    def sizes(self) -> Dict[str, int]:
        return {"train": len(self.train), "test": len(self.test)}


def deterministic_split(n_samples: int, *, test_split: float = 0.2, seed: int = 0) -> SplitIndices:
    """Shuffle ``range(n_samples)`` with ``seed`` and hold out ``test_split`` of it.

    A non-zero ratio always holds out at least one example; the training part
    must keep at least one.
    """

    if not 0.0 <= test_split < 1.0:
        raise ValueError(f"test_split must lie in [0, 1), got {test_split}")
    order = np.random.default_rng(seed).permutation(n_samples)
    n_test = int(round(n_samples * test_split))
    if test_split > 0:
        n_test = max(n_test, 1)
    if n_test >= n_samples:
        raise ValueError(f"{n_samples} samples cannot be split with test_split={test_split}")
    return SplitIndices(train=order[n_test:], test=order[:n_test])


__all__ = ["SplitIndices", "deterministic_split", "seeded_rng"]
