"""Exceptions raised by the network core."""

from __future__ import annotations


class ShapeError(ValueError):
    """A vector does not have the length its consumer was built for."""

    def __init__(self, what: str, expected: int, actual: int) -> None:
        super().__init__(f"{what}: expected length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class BackpropStateError(RuntimeError):
    """Backpropagation was requested without a cached training forward pass."""
