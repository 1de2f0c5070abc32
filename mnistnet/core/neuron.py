"""Single neuron with per-round gradient accumulation."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .activations import ActivationFunction
from .errors import BackpropStateError, ShapeError
from .types import Array


class Neuron:
    """Weighted sum, bias and activation, plus backpropagation accumulators.

    A training round looks like::

        neuron.prepare_backprop()
        for inputs, error in batch:
            neuron.forward(inputs, for_training=True)
            neuron.per_eval_backprop(error, learning_rate)
        neuron.per_round_backprop()

    ``forward`` only refreshes the per-example cache, so any number of examples
    can be folded into the accumulators before ``per_round_backprop`` applies
    them. Weights and bias are never touched anywhere else.
    """

    def __init__(
        self,
        nb_inputs: int,
        activation: ActivationFunction,
        average_gradient: bool = False,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if nb_inputs < 0:
            raise ValueError(f"nb_inputs must be non-negative, got {nb_inputs}")
        rng = rng if rng is not None else np.random.default_rng()
        self.weights: Array = rng.uniform(-1.0, 1.0, size=nb_inputs)
        self.bias = float(rng.uniform(-1.0, 1.0))
        self.activation = activation
        self.average_gradient = average_gradient

        self.last_preactivation = 0.0
        self.last_input: Array | None = None

        self.dw: Array = np.zeros(nb_inputs)
        self.da: Array = np.zeros(nb_inputs)
        self.db = 0.0
        self.nb_evals = 0

    @property
    def nb_inputs(self) -> int:
        return int(self.weights.shape[0])

    def set_parameters(self, weights: Sequence[float] | Array, bias: float) -> None:
        """Overwrite weights and bias; the weight count must not change."""

        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (self.nb_inputs,):
            raise ShapeError("neuron weights", self.nb_inputs, int(weights.size))
        self.weights = weights.copy()
        self.bias = float(bias)

    def describe(self) -> str:
        return (
            f"inputs={self.nb_inputs} bias={self.bias} "
            f"weights={self.weights.tolist()} act={self.activation.name}"
        )

    def forward(self, inputs: Sequence[float] | Array, for_training: bool = False) -> float:
        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.shape != (self.nb_inputs,):
            raise ShapeError("neuron input", self.nb_inputs, int(inputs.size))
        z = self.bias + float(np.dot(self.weights, inputs))
        if for_training:
            self.last_preactivation = z
            self.last_input = inputs.copy()
        return self.activation.value(z)

    def prepare_backprop(self) -> None:
        self.dw = np.zeros(self.nb_inputs)
        self.da = np.zeros(self.nb_inputs)
        self.db = 0.0
        self.nb_evals = 0

    def per_eval_backprop(self, error: float, learning_rate: float) -> Array:
        """Fold one example into the accumulators.

        ``error`` is this neuron's share of the output error for the example
        most recently passed to ``forward(..., for_training=True)``. Returns a
        copy of ``da``, the error owed to each input accumulated over the
        round so far. It is not scaled by the learning rate.
        """

        if self.last_input is None:
            raise BackpropStateError(
                "per_eval_backprop() called before forward(..., for_training=True)"
            )
        # Squared-error convention: d(e^2)/de = 2e.
        delta = 2.0 * float(error) * self.activation.derivative(self.last_preactivation)
        self.db += delta * learning_rate
        self.dw += delta * self.last_input * learning_rate
        self.da += delta * self.weights
        self.nb_evals += 1
        return self.da.copy()

    def per_round_backprop(self) -> None:
        if self.nb_evals == 0:
            # Nothing accumulated, nothing owed.
            self.prepare_backprop()
            return
        denominator = float(self.nb_evals) if self.average_gradient else 1.0
        self.bias += self.db / denominator
        self.weights = self.weights + self.dw / denominator
        self.prepare_backprop()


__all__ = ["Neuron"]
