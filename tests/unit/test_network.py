import numpy as np
import pytest

from mnistnet.core.activations import RELU, SIGMOID
from mnistnet.core.errors import BackpropStateError, ShapeError
from mnistnet.core.network import Layer, NeuralNet
from mnistnet.core.neuron import Neuron


def _two_by_two() -> NeuralNet:
    net = NeuralNet(2, [2, 2], RELU, rng=np.random.default_rng(0))
    net.load_state_dict(
        {
            "W0": np.array([[0.5, 0.2], [0.7, 0.6]]),
            "b0": np.array([-0.1, -0.1]),
            "W1": np.array([[0.7, 0.5], [0.8, 0.9]]),
            "b1": np.array([-0.2, -0.3]),
        }
    )
    return net


def _sse(net: NeuralNet, inputs, target) -> float:
    return float(np.sum((np.asarray(target) - net.forward(inputs)) ** 2))


def test_forward_fixture():
    np.testing.assert_allclose(_two_by_two().forward([1.0, 0.0]), [0.38, 0.56])


def test_backward_output_layer_gradients():
    net = _two_by_two()
    net.prepare_backprop()
    output = net.forward([1.0, 0.0], for_training=True)
    errors = np.array([0.0, 1.0]) - output
    np.testing.assert_allclose(errors, [-0.38, 0.44])
    net.backward(errors, 1.0)

    out0, out1 = net.layers[1]
    assert out0.db == pytest.approx(-0.76)
    assert out1.db == pytest.approx(0.88)
    np.testing.assert_allclose(out0.dw, [-0.304, -0.456])
    np.testing.assert_allclose(out1.dw, [0.352, 0.528])
    np.testing.assert_allclose(out0.da, [-0.532, -0.38])
    np.testing.assert_allclose(out1.da, [0.704, 0.792])


def test_backward_hidden_layer_sums_fan_in():
    net = _two_by_two()
    net.prepare_backprop()
    net.forward([1.0, 0.0], for_training=True)
    net.backward([-0.38, 0.44], 1.0)

    hidden0, hidden1 = net.layers[0]
    # Hidden errors are the column sums of the output layer's da: [0.172, 0.412].
    assert hidden0.db == pytest.approx(0.344)
    assert hidden1.db == pytest.approx(0.824)
    np.testing.assert_allclose(hidden0.dw, [0.344, 0.0])
    np.testing.assert_allclose(hidden1.dw, [0.824, 0.0])


def test_second_example_fans_in_accumulated_da():
    net = _two_by_two()
    net.prepare_backprop()
    for _ in range(2):
        net.forward([1.0, 0.0], for_training=True)
        net.backward([-0.38, 0.44], 1.0)

    out0, out1 = net.layers[1]
    np.testing.assert_allclose(out0.dw, [-0.608, -0.912])
    np.testing.assert_allclose(out0.da, [-1.064, -0.76])
    np.testing.assert_allclose(out1.da, [1.408, 1.584])

    hidden0, hidden1 = net.layers[0]
    # Hidden errors are [0.172, 0.412] on the first pass and the summed
    # accumulated da, [0.344, 0.824], on the second.
    np.testing.assert_allclose(hidden0.dw, [1.032, 0.0])
    np.testing.assert_allclose(hidden1.dw, [2.472, 0.0])
    assert hidden0.db == pytest.approx(1.032)
    assert hidden1.db == pytest.approx(2.472)
    assert hidden0.nb_evals == 2


def test_apply_gradients_updates_every_layer():
    net = _two_by_two()
    net.prepare_backprop()
    net.forward([1.0, 0.0], for_training=True)
    net.backward([-0.38, 0.44], 1.0)
    net.apply_gradients()

    state = net.state_dict()
    np.testing.assert_allclose(state["W1"][0], [0.396, 0.044])
    np.testing.assert_allclose(state["b1"], [-0.96, 0.58])
    np.testing.assert_allclose(state["W0"][0], [0.844, 0.2])
    assert state["b0"][0] == pytest.approx(0.244)
    assert all(n.nb_evals == 0 for layer in net.layers for n in layer)


def test_gradients_match_finite_differences():
    rng = np.random.default_rng(42)
    net = NeuralNet(3, [4, 2], SIGMOID, rng=rng)
    inputs = np.array([0.2, -0.4, 0.9])
    target = np.array([1.0, 0.0])

    net.prepare_backprop()
    output = net.forward(inputs, for_training=True)
    net.backward(target - output, 1.0)

    h = 1e-6
    # Propagated errors are already -dL/da; each layer below the output
    # doubles them again, so the step scales by 2 per hidden level.
    depth_scale = {0: 2.0, 1: 1.0}
    for index, layer in enumerate(net.layers):
        for neuron in layer:
            for k in range(neuron.nb_inputs):
                original = neuron.weights.copy()
                bumped = original.copy()
                bumped[k] += h
                neuron.weights = bumped
                plus = _sse(net, inputs, target)
                bumped[k] -= 2 * h
                minus = _sse(net, inputs, target)
                neuron.weights = original
                numeric = (plus - minus) / (2 * h)
                expected = -depth_scale[index] * numeric
                assert neuron.dw[k] == pytest.approx(expected, rel=1e-4, abs=1e-7)


def test_forward_does_not_change_parameters():
    net = _two_by_two()
    before = net.state_dict()
    net.forward([0.3, 0.7], for_training=True)
    after = net.state_dict()
    for key in before:
        np.testing.assert_array_equal(before[key], after[key])


def test_shape_checks_at_every_boundary():
    net = _two_by_two()
    with pytest.raises(ShapeError, match="network input"):
        net.forward([1.0, 0.0, 3.0])
    net.forward([1.0, 0.0], for_training=True)
    with pytest.raises(ShapeError, match="output errors"):
        net.backward([0.1, 0.2, 0.3], 1.0)
    with pytest.raises(ShapeError, match="layer errors"):
        net.layers[0].backward(np.zeros(3), 1.0)


def test_backward_before_training_forward_fails():
    net = NeuralNet(2, [3, 2], SIGMOID, rng=np.random.default_rng(0))
    net.forward([0.1, 0.2])
    with pytest.raises(BackpropStateError):
        net.backward([0.1, 0.2], 0.5)


def test_layer_widths_follow_fan_in():
    net = NeuralNet(784, [30, 10], "sigmoid", rng=np.random.default_rng(0))
    assert net.layer_sizes == [30, 10]
    assert [layer.input_size for layer in net.layers] == [784, 30]
    assert net.output_size == 10
    assert net.parameter_count() == 30 * 785 + 10 * 31


def test_constructor_validation():
    with pytest.raises(ValueError):
        NeuralNet(0, [2], SIGMOID)
    with pytest.raises(ValueError):
        NeuralNet(2, [], SIGMOID)
    with pytest.raises(ValueError):
        NeuralNet(2, [3, 0], SIGMOID)
    with pytest.raises(KeyError):
        NeuralNet(2, [2], "swish")


def test_layer_requires_uniform_width():
    rng = np.random.default_rng(0)
    with pytest.raises(ValueError):
        Layer([Neuron(2, SIGMOID, rng=rng), Neuron(3, SIGMOID, rng=rng)])
    with pytest.raises(ValueError):
        Layer([])


def test_predict_is_argmax():
    net = _two_by_two()
    assert net.predict([1.0, 0.0]) == 1


def test_predict_rejects_nan():
    net = NeuralNet(1, [2], SIGMOID, rng=np.random.default_rng(0))
    with pytest.raises(ValueError, match="NaN"):
        net.predict([float("nan")])


def test_describe_and_str():
    net = _two_by_two()
    description = net.describe()
    assert description.input_size == 2
    assert description.layer_sizes == [2, 2]
    assert description.output_size == 2
    assert description.activation.startswith("ReLU(")
    dump = str(net)
    assert dump.startswith("Network (2 layers):")
    assert "layer 1: 2 neurons" in dump
    assert net.layers[0][0].describe() in dump


def test_save_and_load_round_trip(tmp_path):
    net = NeuralNet(3, [4, 2], "leaky_relu", True, rng=np.random.default_rng(9))
    path = net.save(tmp_path / "ckpt" / "model.npz")
    assert path.exists()

    restored = NeuralNet.load(path)
    assert restored.describe() == net.describe()
    assert restored.activation == net.activation
    inputs = [0.1, -0.5, 0.8]
    np.testing.assert_allclose(restored.forward(inputs), net.forward(inputs))


def test_load_state_dict_validates_shapes():
    net = _two_by_two()
    state = net.state_dict()
    state["W1"] = np.zeros((2, 3))
    with pytest.raises(ValueError):
        net.load_state_dict(state)
    del state["b0"]
    with pytest.raises(KeyError):
        net.load_state_dict(state)
