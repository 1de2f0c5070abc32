"""Run manifest recording what produced a trained network."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Dict, Mapping

import numpy as np


def _revision() -> str:
    try:
        sha = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        ).stdout
    except (OSError, subprocess.CalledProcessError):  # pragma: no cover - outside a checkout
        return "unknown"
    return sha.strip() or "unknown"


def _environment() -> Dict[str, str]:
    return {
        "python": platform.python_version(),
        "numpy": np.__version__,
        "platform": platform.platform(),
    }


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    dataset_provenance: Mapping[str, object],
    model: Mapping[str, object],
) -> str:
    """Write ``manifest.json`` for a run and return its path.

    The manifest pairs the resolved config with the dataset provenance and the
    trained network's architecture so a checkpoint can be traced back to the
    inputs that produced it.
    """

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "revision": _revision(),
        "written_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "model": dict(model),
        "dataset": dict(dataset_provenance),
        "config": dict(config),
        "environment": _environment(),
    }
    with target.open("w", encoding="utf-8") as handle:
        json.dump(manifest, handle, indent=2)
    return str(target)


__all__ = ["write_manifest"]
