"""Activation functions for mnistnet neurons."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable

# math.exp overflows past this magnitude.
EXP_LIMIT = 709.0

_KINDS = ("relu", "sigmoid", "tanh")


@dataclass(frozen=True)
class ActivationFunction:
    """Stateless nonlinearity applied to a neuron's pre-activation.

    ``kind`` selects the variant. The ``relu`` kind is piecewise linear: slope
    ``alpha`` up to ``t1``, ``beta`` up to ``t2`` and ``gamma`` beyond, which
    covers plain, leaky and banded rectifiers. The slope parameters are
    ignored by the other kinds.

    ``derivative`` is evaluated at the pre-activation, not at the output.
    """

    kind: str
    alpha: float = 0.0
    beta: float = 0.0
    gamma: float = 1.0
    t1: float = 0.0
    t2: float = 0.0

    def __post_init__(self) -> None:
        if self.kind not in _KINDS:
            raise ValueError(f"Unknown activation kind {self.kind!r}; expected one of {_KINDS}")
        if self.kind == "relu" and self.t1 > self.t2:
            raise ValueError(f"ReLU thresholds must satisfy t1 <= t2, got {self.t1} > {self.t2}")

    def value(self, x: float) -> float:
        if self.kind == "relu":
            return self._slope(x) * x
        if self.kind == "sigmoid":
            if x >= 0:
                return 1.0 / (1.0 + math.exp(-x))
            e_x = math.exp(x)
            return e_x / (1.0 + e_x)
        return math.tanh(x)

    def derivative(self, x: float) -> float:
        if self.kind == "relu":
            return self._slope(x)
        if self.kind == "sigmoid":
            if x < -EXP_LIMIT or x > EXP_LIMIT:
                return 0.0
            e_x = math.exp(-x)
            # Expanded square: (1 + e_x) ** 2 raises OverflowError near the limit.
            return e_x / (1.0 + 2.0 * e_x + e_x * e_x)
        th = math.tanh(x)
        return 1.0 - th * th

    @property
    def name(self) -> str:
        if self.kind == "sigmoid":
            return "Sigmoid"
        if self.kind == "tanh":
            return "TanH"
        return f"ReLU({self.alpha} <{self.t1}, {self.beta} <{self.t2}, {self.gamma})"

    def _slope(self, x: float) -> float:
        if x > self.t2:
            return self.gamma
        if x > self.t1:
            return self.beta
        return self.alpha


RELU = ActivationFunction("relu")
LEAKY_RELU = ActivationFunction("relu", alpha=0.01, beta=0.0, gamma=1.0)
SIGMOID = ActivationFunction("sigmoid")
TANH = ActivationFunction("tanh")


class ActivationRegistry:
    """Name lookup for the built-in activation functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, ActivationFunction] = {}

    def register(self, name: str, activation: ActivationFunction) -> None:
        self._registry[name] = activation

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str | ActivationFunction) -> ActivationFunction:
        if isinstance(name, ActivationFunction):
            return name
        key = name.lower()
        if key not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown activation {name!r}. Available activations: {available}")
        return self._registry[key]


ACTIVATIONS = ActivationRegistry()
ACTIVATIONS.register("relu", RELU)
ACTIVATIONS.register("leaky_relu", LEAKY_RELU)
ACTIVATIONS.register("sigmoid", SIGMOID)
ACTIVATIONS.register("tanh", TANH)

__all__ = [
    "ACTIVATIONS",
    "ActivationFunction",
    "ActivationRegistry",
    "LEAKY_RELU",
    "RELU",
    "SIGMOID",
    "TANH",
]
