"""Layered composition of neurons into a trainable classifier."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Sequence

import numpy as np

from .activations import ACTIVATIONS, ActivationFunction
from .errors import ShapeError
from .neuron import Neuron
from .types import Array, ModelDescription

logger = logging.getLogger(__name__)

_ACTIVATION_PARAMS = ("alpha", "beta", "gamma", "t1", "t2")


class Layer:
    """Fixed-size group of neurons fed the same input vector."""

    def __init__(self, neurons: Sequence[Neuron]) -> None:
        if not neurons:
            raise ValueError("a layer needs at least one neuron")
        widths = {n.nb_inputs for n in neurons}
        if len(widths) != 1:
            raise ValueError(f"neurons of a layer must share one input width, got {sorted(widths)}")
        self.neurons: List[Neuron] = list(neurons)

    def __len__(self) -> int:
        return len(self.neurons)

    def __iter__(self) -> Iterator[Neuron]:
        return iter(self.neurons)

    def __getitem__(self, index: int) -> Neuron:
        return self.neurons[index]

    @property
    def input_size(self) -> int:
        return self.neurons[0].nb_inputs

    def forward(self, inputs: Array, for_training: bool) -> Array:
        return np.array([n.forward(inputs, for_training) for n in self.neurons])

    def backward(self, errors: Array, learning_rate: float) -> Array:
        """Backpropagate ``errors`` and return the index-wise sum of the neurons' ``da``."""

        if errors.shape != (len(self.neurons),):
            raise ShapeError("layer errors", len(self.neurons), int(errors.size))
        previous = np.zeros(self.input_size)
        for neuron, error in zip(self.neurons, errors):
            previous += neuron.per_eval_backprop(error, learning_rate)
        return previous


class NeuralNet:
    """Ordered stack of fully connected layers.

    ``forward(x, for_training=True)`` followed by ``backward(errors, lr)``
    accumulates gradients for one example; ``apply_gradients()`` commits every
    example accumulated since the previous commit. Callers choose the cadence.
    """

    def __init__(
        self,
        input_size: int,
        layer_sizes: Sequence[int],
        activation: ActivationFunction | str,
        average_gradient: bool = False,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if input_size <= 0:
            raise ValueError(f"input_size must be positive, got {input_size}")
        if not layer_sizes:
            raise ValueError("layer_sizes must name at least one layer")
        if any(int(size) <= 0 for size in layer_sizes):
            raise ValueError(f"layer sizes must be positive, got {list(layer_sizes)}")
        rng = rng if rng is not None else np.random.default_rng()
        self.input_size = int(input_size)
        self.activation = ACTIVATIONS.resolve(activation)
        self.average_gradient = average_gradient

        self.layers: List[Layer] = []
        previous = self.input_size
        for size in layer_sizes:
            neurons = [
                Neuron(previous, self.activation, average_gradient, rng=rng)
                for _ in range(int(size))
            ]
            self.layers.append(Layer(neurons))
            previous = int(size)

    @property
    def layer_sizes(self) -> List[int]:
        return [len(layer) for layer in self.layers]

    @property
    def output_size(self) -> int:
        return len(self.layers[-1])

    def describe(self) -> ModelDescription:
        return ModelDescription(
            input_size=self.input_size,
            layer_sizes=self.layer_sizes,
            activation=self.activation.name,
            average_gradient=self.average_gradient,
        )

    def __str__(self) -> str:
        lines = [f"Network ({len(self.layers)} layers):"]
        for i, layer in enumerate(self.layers):
            lines.append(f" - layer {i}: {len(layer)} neurons")
            for j, neuron in enumerate(layer):
                lines.append(f"    - neuron {j}: {neuron.describe()}")
        return "\n".join(lines)

    def parameter_count(self) -> int:
        return sum(n.nb_inputs + 1 for layer in self.layers for n in layer)

    # ------------------------------------------------------------------
    # Propagation

    def forward(self, inputs: Sequence[float] | Array, for_training: bool = False) -> Array:
        values = np.asarray(inputs, dtype=np.float64)
        if values.shape != (self.input_size,):
            raise ShapeError("network input", self.input_size, int(values.size))
        for layer in self.layers:
            values = layer.forward(values, for_training)
        return values

    def backward(self, output_errors: Sequence[float] | Array, learning_rate: float) -> None:
        errors = np.asarray(output_errors, dtype=np.float64)
        if errors.shape != (self.output_size,):
            raise ShapeError("output errors", self.output_size, int(errors.size))
        for index in range(len(self.layers) - 1, -1, -1):
            propagated = self.layers[index].backward(errors, learning_rate)
            if index > 0:
                errors = propagated

    def prepare_backprop(self) -> None:
        for layer in self.layers:
            for neuron in layer:
                neuron.prepare_backprop()

    def apply_gradients(self) -> None:
        for layer in self.layers:
            for neuron in layer:
                neuron.per_round_backprop()

    def predict(self, inputs: Sequence[float] | Array) -> int:
        scores = self.forward(inputs, for_training=False)
        if np.isnan(scores).any():
            raise ValueError("prediction produced NaN scores")
        return int(np.argmax(scores))

    # ------------------------------------------------------------------
    # Checkpoints

    def state_dict(self) -> Dict[str, Array]:
        state: Dict[str, Array] = {}
        for idx, layer in enumerate(self.layers):
            state[f"W{idx}"] = np.stack([n.weights for n in layer])
            state[f"b{idx}"] = np.array([n.bias for n in layer])
        return state

    def load_state_dict(self, state: Mapping[str, Array]) -> None:
        for idx, layer in enumerate(self.layers):
            for key in (f"W{idx}", f"b{idx}"):
                if key not in state:
                    raise KeyError(f"Missing parameter {key} in state dict")
            weights = np.asarray(state[f"W{idx}"], dtype=np.float64)
            biases = np.asarray(state[f"b{idx}"], dtype=np.float64)
            expected = (len(layer), layer.input_size)
            if weights.shape != expected:
                raise ValueError(f"W{idx} has shape {weights.shape}, expected {expected}")
            if biases.shape != (len(layer),):
                raise ValueError(f"b{idx} has shape {biases.shape}, expected {(len(layer),)}")
            for neuron, row, bias in zip(layer, weights, biases):
                neuron.set_parameters(row, bias)

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = dict(self.state_dict())
        payload["layer_sizes"] = np.array([self.input_size, *self.layer_sizes])
        payload["average_gradient"] = np.array(self.average_gradient)
        payload["activation_kind"] = np.array(self.activation.kind)
        payload["activation_params"] = np.array(
            [getattr(self.activation, name) for name in _ACTIVATION_PARAMS]
        )
        with path.open("wb") as handle:
            np.savez_compressed(handle, **payload)
        logger.debug("Saved %d-layer network to %s", len(self.layers), path)
        return path

    @classmethod
    def load(cls, path: str | Path) -> "NeuralNet":
        with np.load(Path(path)) as data:
            sizes = [int(s) for s in data["layer_sizes"]]
            params = {
                name: float(value)
                for name, value in zip(_ACTIVATION_PARAMS, data["activation_params"])
            }
            activation = ActivationFunction(str(data["activation_kind"]), **params)
            net = cls(
                sizes[0],
                sizes[1:],
                activation,
                bool(data["average_gradient"]),
                rng=np.random.default_rng(0),
            )
            net.load_state_dict({key: data[key] for key in data.files})
        return net


__all__ = ["Layer", "NeuralNet"]
