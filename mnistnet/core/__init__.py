"""Core numerical primitives for mnistnet."""

from . import activations, errors, network, neuron, types

__all__ = ["activations", "errors", "network", "neuron", "types"]
