"""Readers for the IDX image and label files MNIST is distributed in."""

from __future__ import annotations

import gzip
from pathlib import Path

import numpy as np

LABELS_MAGIC = 2049
IMAGES_MAGIC = 2051


class IdxFormatError(ValueError):
    """The file is not a well-formed IDX file of the expected kind."""


def _read_bytes(path: str | Path) -> bytes:
    path = Path(path)
    if path.suffix == ".gz":
        with gzip.open(path, "rb") as handle:
            return handle.read()
    return path.read_bytes()


def _header(raw: bytes, words: int, path: str | Path) -> list[int]:
    size = 4 * words
    if len(raw) < size:
        raise IdxFormatError(f"{path}: truncated header ({len(raw)} bytes)")
    return [int(v) for v in np.frombuffer(raw[:size], dtype=">u4")]


def _clip(count: int, limit: int | None) -> int:
    return count if limit is None else min(count, max(0, int(limit)))


def read_labels(path: str | Path, limit: int | None = None) -> np.ndarray:
    """Return up to ``limit`` labels as an ``int64`` vector."""

    raw = _read_bytes(path)
    magic = _header(raw, 1, path)[0]
    if magic != LABELS_MAGIC:
        raise IdxFormatError(
            f"Invalid file type for labels: {magic}, expected {LABELS_MAGIC} ({path})"
        )
    count = _clip(_header(raw, 2, path)[1], limit)
    body = raw[8 : 8 + count]
    if len(body) != count:
        raise IdxFormatError(f"Read {len(body)} labels from {path}, expected {count}")
    return np.frombuffer(body, dtype=np.uint8).astype(np.int64)


def read_images(path: str | Path, limit: int | None = None) -> np.ndarray:
    """Return up to ``limit`` images shaped ``(n, rows, cols)`` with pixels in [0, 1]."""

    raw = _read_bytes(path)
    magic = _header(raw, 1, path)[0]
    if magic != IMAGES_MAGIC:
        raise IdxFormatError(
            f"Invalid file type for images: {magic}, expected {IMAGES_MAGIC} ({path})"
        )
    _, count, rows, cols = _header(raw, 4, path)
    count = _clip(count, limit)
    expected = count * rows * cols
    body = raw[16 : 16 + expected]
    if len(body) != expected:
        raise IdxFormatError(
            f"Read {len(body)} bytes for images from {path}, expected {expected}"
        )
    pixels = np.frombuffer(body, dtype=np.uint8).astype(np.float64) / 255.0
    return pixels.reshape(count, rows, cols)


def render_ascii(image: np.ndarray) -> str:
    """Draw a 2-D image with ``' '`` for blank, ``'.'`` for faint and ``'#'`` for ink."""

    image = np.asarray(image, dtype=np.float64)
    if image.ndim != 2:
        raise ValueError(f"expected a 2-D image, got shape {image.shape}")
    rows = []
    for row in image:
        rows.append("".join(" " if p < 0.01 else "." if p < 0.5 else "#" for p in row))
    return "\n".join(rows)


__all__ = ["IdxFormatError", "read_images", "read_labels", "render_ascii"]
