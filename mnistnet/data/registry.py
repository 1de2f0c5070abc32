"""Named dataset factories producing labelled pixel vectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from ..core.types import Array

LabelledExample = Tuple[Array, int]
DatasetFactory = Callable[..., "DatasetSpec"]


@dataclass(frozen=True)
class DatasetSpec:
    """A loaded dataset: normalised input vectors paired with integer labels.

    Attributes
    ----------
    input_size:
        Length of every input vector; the network's first layer fan-in.
    num_classes:
        Labels lie in ``range(num_classes)``; the network's output width.
    train, test:
        ``(input, label)`` pairs ready for :class:`mnistnet.training.trainer.Trainer`.
    provenance:
        Free-form metadata copied into the run manifest.
    """

    name: str
    input_size: int
    num_classes: int
    train: List[LabelledExample]
    test: List[LabelledExample]
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def splits(self) -> Dict[str, int]:
        return {"train": len(self.train), "test": len(self.test)}


_FACTORIES: Dict[str, DatasetFactory] = {}


def register_dataset(name: str, factory: Optional[DatasetFactory] = None):
    """Register ``factory`` under ``name``; without ``factory`` act as a decorator."""

    def _register(func: DatasetFactory) -> DatasetFactory:
        _FACTORIES[name] = func
        return func

    return _register if factory is None else _register(factory)


def available_datasets() -> List[str]:
    return sorted(_FACTORIES)


def get_dataset(name: str, /, **options: Any) -> DatasetSpec:
    """Build dataset ``name`` with ``options`` and check it is usable for training."""

    try:
        factory = _FACTORIES[name]
    except KeyError:
        raise KeyError(
            f"Unknown dataset {name!r}. Available datasets: {', '.join(available_datasets())}"
        ) from None
    dataset = factory(**options)
    _check(dataset)
    return dataset


def _check(dataset: DatasetSpec) -> None:
    if dataset.num_classes < 1:
        raise ValueError(f"{dataset.name}: num_classes must be positive, got {dataset.num_classes}")
    if not dataset.train:
        raise ValueError(f"{dataset.name}: the train split is empty")
    for split in ("train", "test"):
        for inputs, label in getattr(dataset, split):
            if np.shape(inputs) != (dataset.input_size,):
                raise ValueError(
                    f"{dataset.name}/{split}: input of shape {np.shape(inputs)}, "
                    f"expected ({dataset.input_size},)"
                )
            if not 0 <= int(label) < dataset.num_classes:
                raise ValueError(f"{dataset.name}/{split}: label {label} out of range")


__all__ = [
    "DatasetSpec",
    "LabelledExample",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
