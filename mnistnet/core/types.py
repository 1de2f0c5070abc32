"""Core typing contracts for mnistnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np

Array = np.ndarray

# A label is either a class index (one-hot encoded against the output width)
# or an explicit target vector.
Label = Union[int, Sequence[float], Array]
Example = Tuple[Union[Sequence[float], Array], Label]


@dataclass(frozen=True)
class ModelDescription:
    """Description of the feed-forward network architecture."""

    input_size: int
    layer_sizes: List[int]
    activation: str
    average_gradient: bool

    @property
    def output_size(self) -> int:
        return self.layer_sizes[-1] if self.layer_sizes else self.input_size


@dataclass(frozen=True)
class TrainResult:
    """Summary returned by :meth:`mnistnet.training.trainer.Trainer.fit`."""

    epochs: int
    examples_seen: int
    updates: int
    stopped: bool = False
    history: List[Dict[str, float]] = field(default_factory=list)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`mnistnet.training.pipelines.run_pipeline`."""

    steps: int
    metrics_path: str
    manifest_path: str
    model_path: str = ""
