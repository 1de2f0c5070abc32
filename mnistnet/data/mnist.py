"""MNIST digits read from the distributed IDX files."""

from __future__ import annotations

import logging
from pathlib import Path

from .idx import read_images, read_labels, render_ascii
from .registry import DatasetSpec, register_dataset

logger = logging.getLogger(__name__)

TRAIN_IMAGES = "train-images-idx3-ubyte"
TRAIN_LABELS = "train-labels-idx1-ubyte"
TEST_IMAGES = "t10k-images-idx3-ubyte"
TEST_LABELS = "t10k-labels-idx1-ubyte"


def _locate(data_dir: Path, filename: str) -> Path:
    for candidate in (data_dir / filename, data_dir / f"{filename}.gz"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"{filename}[.gz] not found in {data_dir}")


def _load_split(data_dir: Path, images: str, labels: str, limit: int | None):
    pixels = read_images(_locate(data_dir, images), limit)
    targets = read_labels(_locate(data_dir, labels), limit)
    if len(pixels) != len(targets):
        raise ValueError(f"{images} holds {len(pixels)} images but {labels} {len(targets)} labels")
    count, rows, cols = pixels.shape
    flat = pixels.reshape(count, rows * cols)
    if len(pixels) and logger.isEnabledFor(logging.DEBUG):
        logger.debug("%s[0] (label %d):\n%s", images, int(targets[0]), render_ascii(pixels[0]))
    return [(row, int(label)) for row, label in zip(flat, targets)], pixels.shape[1:]


@register_dataset("mnist")
def build_mnist(
    data_dir: str | Path = "data",
    *,
    train_limit: int | None = None,
    test_limit: int | None = None,
    **_: object,
) -> DatasetSpec:
    """Create a :class:`DatasetSpec` from the four MNIST IDX files in ``data_dir``."""

    root = Path(data_dir)
    train, shape = _load_split(root, TRAIN_IMAGES, TRAIN_LABELS, train_limit)
    test, _ = _load_split(root, TEST_IMAGES, TEST_LABELS, test_limit)
    logger.info("Loaded MNIST from %s: %d train / %d test images", root, len(train), len(test))
    return DatasetSpec(
        name="mnist",
        input_size=int(shape[0] * shape[1]),
        num_classes=10,
        train=train,
        test=test,
        provenance={
            "source": str(root),
            "image_shape": [int(s) for s in shape],
            "train_limit": train_limit,
            "test_limit": test_limit,
        },
    )


__all__ = ["build_mnist"]
