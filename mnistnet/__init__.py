"""mnistnet public API."""

from .core import activations  # noqa: F401
from .core import types  # noqa: F401
from .core.activations import ACTIVATIONS, ActivationFunction
from .core.errors import BackpropStateError, ShapeError
from .core.network import Layer, NeuralNet
from .core.neuron import Neuron
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__all__ = [
    "ACTIVATIONS",
    "ActivationFunction",
    "BackpropStateError",
    "Layer",
    "NeuralNet",
    "Neuron",
    "ShapeError",
    "Trainer",
    "activations",
    "load_preset",
    "presets",
    "run_pipeline",
    "types",
]
