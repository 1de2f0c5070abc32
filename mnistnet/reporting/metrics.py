"""Per-epoch metric sinks for :class:`mnistnet.training.trainer.Trainer` callbacks.

Each sink truncates its file when created, so a run directory only ever holds
the latest run's records.
"""

from __future__ import annotations

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping


def _numeric(metrics: Mapping[str, float]) -> Dict[str, float]:
    return {name: float(value) for name, value in metrics.items() if isinstance(value, (int, float))}


class _EpochFile(ABC):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    @abstractmethod
    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        """Append the record for ``epoch``."""

    def __call__(self, epoch: int, metrics: Mapping[str, float]) -> None:
        self.on_epoch(epoch, metrics)


class JsonlSink(_EpochFile):
    """One JSON object per epoch: ``epoch``, ``split``, ``seed`` and the metrics."""

    def __init__(self, path: str | Path, *, split: str = "train", seed: int | None = None) -> None:
        super().__init__(path)
        self.split = split
        self.seed = seed

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        record: Dict[str, object] = {"epoch": int(epoch), "split": self.split, "seed": self.seed}
        record.update(_numeric(metrics))
        with self.path.open("a", encoding="utf-8") as handle:
            print(json.dumps(record), file=handle)


class CsvSink(_EpochFile):
    """CSV table whose columns are fixed by the first epoch written."""

    def __init__(self, path: str | Path, *, split: str = "train") -> None:
        super().__init__(path)
        self.split = split
        self.columns: List[str] = []

    def on_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        values = _numeric(metrics)
        if not self.columns:
            self.columns = ["epoch", "split", *sorted(values)]
            rows: List[List[object]] = [self.columns]
        else:
            rows = []
        rows.append([epoch, self.split, *(values.get(name, "") for name in self.columns[2:])])
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            csv.writer(handle).writerows(rows)


__all__ = ["CsvSink", "JsonlSink"]
