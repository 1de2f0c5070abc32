"""Example-by-example training loop with configurable gradient batching."""

from __future__ import annotations

import logging
import numbers
from typing import Callable, Dict, List, Mapping, Sequence

import numpy as np

from ..core.errors import ShapeError
from ..core.network import NeuralNet
from ..core.types import Array, Example, Label, TrainResult
from .losses import REGISTRY as LOSS_REGISTRY
from .losses import Loss
from .metrics import compute_metrics, default_metrics

logger = logging.getLogger(__name__)


def _is_class_label(label: Label) -> bool:
    return isinstance(label, numbers.Integral) and not isinstance(label, bool)


class Trainer:
    """Feed labelled examples through a :class:`NeuralNet` and commit gradients.

    Gradients are committed every ``batch_size`` examples (``1`` is online
    SGD) and any remainder is flushed at the end of each epoch. Integer labels
    are one-hot encoded against the output width; any other label is taken as
    the target vector itself.
    """

    def __init__(
        self,
        net: NeuralNet,
        learning_rate: float,
        *,
        batch_size: int = 1,
        loss: str | Loss = "sse",
        shuffle: bool = True,
        rng: np.random.Generator | None = None,
        metric_names: Sequence[str] | None = None,
        callbacks: Sequence[object] | None = None,
    ) -> None:
        if learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {learning_rate}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.net = net
        self.learning_rate = float(learning_rate)
        self.batch_size = int(batch_size)
        self.loss = LOSS_REGISTRY.resolve(loss)
        self.shuffle = shuffle
        self.rng = rng if rng is not None else np.random.default_rng()
        self.metric_names = list(metric_names) if metric_names else None
        self.callbacks = list(callbacks or [])

    def fit(
        self,
        examples: Sequence[Example],
        epochs: int,
        *,
        should_stop: Callable[[], bool] | None = None,
    ) -> TrainResult:
        """Train for ``epochs`` passes over ``examples``.

        ``should_stop`` is polled after every gradient commit; once it returns
        true the loop ends with the network in a committed state.
        """

        if epochs < 1:
            raise ValueError(f"epochs must be at least 1, got {epochs}")
        prepared, task_type = self._prepare(examples)
        metric_names = self.metric_names or default_metrics(task_type)

        history: List[Dict[str, float]] = []
        seen = 0
        updates = 0
        stopped = False
        epoch = 0
        self.net.prepare_backprop()
        for epoch in range(1, epochs + 1):
            pending = 0
            losses: List[float] = []
            outputs: List[Array] = []
            targets: List[Array] = []
            for index in self._order(len(prepared)):
                inputs, target = prepared[index]
                output = self.net.forward(inputs, for_training=True)
                loss_value, error = self.loss(output, target)
                self.net.backward(error, self.learning_rate)
                losses.append(loss_value)
                outputs.append(output)
                targets.append(target)
                pending += 1
                seen += 1
                if pending == self.batch_size:
                    self.net.apply_gradients()
                    updates += 1
                    pending = 0
                    if should_stop is not None and should_stop():
                        stopped = True
                        break
            if pending:
                self.net.apply_gradients()
                updates += 1
                if should_stop is not None and should_stop():
                    stopped = True

            metrics = {"loss": float(np.mean(losses))}
            metrics.update(compute_metrics(metric_names, np.stack(outputs), np.stack(targets)))
            history.append(metrics)
            self._emit_epoch(epoch, metrics)
            if stopped:
                logger.info("Stop requested after epoch %d (%d examples seen)", epoch, seen)
                break

        return TrainResult(
            epochs=epoch,
            examples_seen=seen,
            updates=updates,
            stopped=stopped,
            history=history,
        )

    def evaluate(self, examples: Sequence[Example]) -> Mapping[str, float]:
        """Return loss and metrics over ``examples`` without touching the weights."""

        prepared, task_type = self._prepare(examples)
        metric_names = self.metric_names or default_metrics(task_type)
        outputs = np.stack([self.net.forward(inputs) for inputs, _ in prepared])
        targets = np.stack([target for _, target in prepared])
        losses = [self.loss(out, target)[0] for out, target in zip(outputs, targets)]
        metrics = {"loss": float(np.mean(losses))}
        metrics.update(compute_metrics(metric_names, outputs, targets))
        return metrics

    # ------------------------------------------------------------------
    # Internal helpers

    def _prepare(self, examples: Sequence[Example]) -> tuple[List[tuple[Array, Array]], str]:
        if len(examples) == 0:
            raise ValueError("no examples supplied")
        width = self.net.output_size
        prepared: List[tuple[Array, Array]] = []
        kinds = set()
        for inputs, label in examples:
            inputs = np.asarray(inputs, dtype=np.float64)
            if inputs.shape != (self.net.input_size,):
                raise ShapeError("example input", self.net.input_size, int(inputs.size))
            if _is_class_label(label):
                if not 0 <= int(label) < width:
                    raise ValueError(f"label {label} outside the {width} output classes")
                target = np.zeros(width)
                target[int(label)] = 1.0
                kinds.add("classification")
            else:
                target = np.asarray(label, dtype=np.float64)
                if target.shape != (width,):
                    raise ShapeError("example target", width, int(target.size))
                kinds.add("regression")
            prepared.append((inputs, target))
        if len(kinds) > 1:
            raise ValueError("examples mix class labels and target vectors")
        return prepared, kinds.pop()

    def _order(self, count: int) -> Array:
        if self.shuffle:
            return self.rng.permutation(count)
        return np.arange(count)

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        logger.info(
            "Epoch %d: %s",
            epoch,
            ", ".join(f"{name}={value:.6g}" for name, value in metrics.items()),
        )
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["Trainer"]
