"""Loss registry used by the training loop.

Every loss is called per example as ``loss(outputs, targets)`` and returns the
scalar loss together with the error vector handed to
:meth:`mnistnet.core.network.NeuralNet.backward`. Neurons fold the factor two
of the squared error into their delta, so the error is ``-0.5 * dL/dy``; with
the default ``sse`` loss this is plainly ``target - output``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from ..core.types import Array

LossFn = Callable[[Array, Array], tuple[float, Array]]


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and the backprop error."""

    name: str
    fn: LossFn

    def __call__(self, outputs: Array, targets: Array) -> tuple[float, Array]:
        return self.fn(outputs, targets)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str | Loss) -> Loss:
        if isinstance(name, Loss):
            return name
        if name not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[name]


REGISTRY = LossRegistry()


def _sse(outputs: Array, targets: Array) -> tuple[float, Array]:
    diff = targets - outputs
    return float(np.sum(np.square(diff))), diff


def _mse(outputs: Array, targets: Array) -> tuple[float, Array]:
    diff = targets - outputs
    return float(np.mean(np.square(diff))), diff / diff.size


def _mae(outputs: Array, targets: Array) -> tuple[float, Array]:
    diff = targets - outputs
    return float(np.mean(np.abs(diff))), 0.5 * np.sign(diff) / diff.size


def _huber(outputs: Array, targets: Array, delta: float = 1.0) -> tuple[float, Array]:
    diff = targets - outputs
    abs_diff = np.abs(diff)
    quadratic = np.minimum(abs_diff, delta)
    linear = abs_diff - quadratic
    loss = float(np.mean(0.5 * quadratic**2 + delta * linear))
    error = 0.5 * np.clip(diff, -delta, delta) / diff.size
    return loss, error


REGISTRY.register("sse", _sse)
REGISTRY.register("mse", _mse)
REGISTRY.register("mae", _mae)
REGISTRY.register("huber", _huber)

__all__ = ["Loss", "LossRegistry", "REGISTRY"]
