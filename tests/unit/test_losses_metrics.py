import numpy as np
import pytest

from mnistnet.training.losses import REGISTRY as LOSS_REGISTRY
from mnistnet.training.metrics import compute_metric, compute_metrics, default_metrics

OUTPUTS = np.array([0.38, 0.56])
TARGETS = np.array([0.0, 1.0])


def test_sse_error_is_target_minus_output():
    loss, error = LOSS_REGISTRY.resolve("sse")(OUTPUTS, TARGETS)
    assert loss == pytest.approx(0.338)
    np.testing.assert_allclose(error, [-0.38, 0.44])


def test_mse_scales_error_by_width():
    loss, error = LOSS_REGISTRY.resolve("mse")(OUTPUTS, TARGETS)
    assert loss == pytest.approx(0.169)
    np.testing.assert_allclose(error, [-0.19, 0.22])


def test_mae_error_is_half_sign():
    loss, error = LOSS_REGISTRY.resolve("mae")(OUTPUTS, TARGETS)
    assert loss == pytest.approx(0.41)
    np.testing.assert_allclose(error, [-0.25, 0.25])


def test_huber_clips_large_errors():
    outputs = np.array([0.0, 0.0])
    targets = np.array([3.0, 0.5])
    loss, error = LOSS_REGISTRY.resolve("huber")(outputs, targets)
    assert loss == pytest.approx((2.5 + 0.125) / 2)
    np.testing.assert_allclose(error, [0.25, 0.125])


@pytest.mark.parametrize("name", ["sse", "mse", "mae", "huber"])
def test_error_points_downhill(name):
    # A small step along the error must lower the loss.
    loss_fn = LOSS_REGISTRY.resolve(name)
    before, error = loss_fn(OUTPUTS, TARGETS)
    after, _ = loss_fn(OUTPUTS + 1e-3 * error, TARGETS)
    assert after < before


def test_loss_registry():
    assert list(LOSS_REGISTRY.names()) == ["huber", "mae", "mse", "sse"]
    loss = LOSS_REGISTRY.resolve("sse")
    assert LOSS_REGISTRY.resolve(loss) is loss
    with pytest.raises(KeyError, match="Available losses"):
        LOSS_REGISTRY.resolve("ce")


def test_default_metrics():
    assert default_metrics("classification") == ["accuracy", "error_norm"]
    assert default_metrics("regression") == ["mae", "rmse", "error_norm"]
    with pytest.raises(ValueError):
        default_metrics("ranking")


def test_classification_metrics():
    outputs = np.array([[0.9, 0.1], [0.2, 0.7], [0.6, 0.4]])
    targets = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 1.0]])
    metrics = compute_metrics(["accuracy", "error_norm"], outputs, targets)
    assert metrics["accuracy"] == pytest.approx(2 / 3)
    expected_norm = sum(np.linalg.norm(t - o) for o, t in zip(outputs, targets))
    assert metrics["error_norm"] == pytest.approx(expected_norm)


def test_regression_metrics():
    outputs = np.array([[1.0], [2.0]])
    targets = np.array([[1.5], [1.0]])
    assert compute_metric("mae", outputs, targets).value == pytest.approx(0.75)
    assert compute_metric("rmse", outputs, targets).value == pytest.approx(np.sqrt(0.625))


def test_metric_errors():
    with pytest.raises(KeyError):
        compute_metric("f1", np.zeros((1, 2)), np.zeros((1, 2)))
    with pytest.raises(ValueError):
        compute_metric("mae", np.zeros((1, 2)), np.zeros((1, 3)))
    assert compute_metric("accuracy", np.zeros((0, 2)), np.zeros((0, 2))).value == 0.0
