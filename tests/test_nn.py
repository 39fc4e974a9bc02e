"""
Tests for the module hierarchy: Neuron, Layer, MLP forward passes,
parameter enumeration, initialization, width checks and state dicts.
"""

import json
import math

import pytest

import scalargrad
from scalargrad.config import ScalargradConfig


# ============================================================================
# FIXTURES
# ============================================================================

class ConstantSampler:
    """Always returns the same draw; counts calls."""
    def __init__(self, value=0.5):
        self.value = value
        self.call_count = 0

    def __call__(self) -> float:
        self.call_count += 1
        return self.value


@pytest.fixture(autouse=True)
def fresh_config():
    scalargrad.init(ScalargradConfig(seed=0))
    yield
    scalargrad.reset()


@pytest.fixture
def neuron_2():
    """The 2-input linear neuron with weights [0.5, -0.5] and zero bias."""
    from scalargrad.core.nn import Neuron
    n = Neuron(2, nonlin=False)
    n.load_state_dict({"weights": [0.5, -0.5], "bias": 0.0})
    return n


# ============================================================================
# NEURON TESTS
# ============================================================================

class TestNeuron:
    def test_forward_and_backward(self, neuron_2):
        from scalargrad.core.autograd import Value
        out = neuron_2([Value(2.0), Value(4.0)])
        assert out.data == -1.0
        out.backward()
        w0, w1 = neuron_2.weights
        assert w0.grad == 2.0
        assert w1.grad == 4.0
        assert neuron_2.bias.grad == 1.0

    def test_bias_added_once(self):
        from scalargrad.core.nn import Neuron
        n = Neuron(3, nonlin=False)
        n.load_state_dict({"weights": [0.0, 0.0, 0.0], "bias": 1.5})
        assert n([1.0, 2.0, 3.0]).data == 1.5

    def test_tanh_nonlinearity(self):
        from scalargrad.core.nn import Neuron
        n = Neuron(2, nonlin=True)
        n.load_state_dict({"weights": [0.5, -0.5], "bias": 0.25})
        out = n([2.0, 4.0])
        assert out.data == pytest.approx(math.tanh(-0.75))
        out.backward()
        assert n.bias.grad == pytest.approx(1 - math.tanh(-0.75) ** 2)

    def test_output_is_graph_node(self, neuron_2):
        out = neuron_2([1.0, 1.0])
        assert out.origin is not None

    def test_parameters_order(self, neuron_2):
        params = neuron_2.parameters()
        assert len(params) == 3
        assert params[0] is neuron_2.weights[0]
        assert params[1] is neuron_2.weights[1]
        assert params[2] is neuron_2.bias

    def test_parameters_are_leaves(self):
        from scalargrad.core.nn import Neuron
        n = Neuron(4)
        assert all(p.is_leaf for p in n.parameters())

    def test_width_mismatch(self, neuron_2):
        with pytest.raises(ValueError):
            neuron_2([1.0])
        with pytest.raises(ValueError):
            neuron_2([1.0, 2.0, 3.0])

    def test_invalid_width(self):
        from scalargrad.core.nn import Neuron
        with pytest.raises(ValueError):
            Neuron(0)
        with pytest.raises(ValueError):
            Neuron(-2)

    def test_init_scaled_by_fan_in(self):
        from scalargrad.core.nn import Neuron
        sampler = ConstantSampler(0.5)
        n = Neuron(4, sampler=sampler)
        assert sampler.call_count == 4
        assert all(w.data == 0.25 for w in n.weights)  # 0.5 / sqrt(4)
        assert n.bias.data == 0.0

    def test_init_gain(self):
        from scalargrad.core.nn import Neuron
        scalargrad.init(ScalargradConfig(init_gain=2.0))
        n = Neuron(4, sampler=ConstantSampler(0.5))
        assert all(w.data == 0.5 for w in n.weights)

    def test_default_sampler_is_bounded(self):
        from scalargrad.core.nn import Neuron
        n = Neuron(16)
        bound = 1.0 / math.sqrt(16)
        assert all(-bound <= w.data < bound for w in n.weights)

    def test_injected_sampler_via_init(self):
        from scalargrad.core.nn import Neuron
        sampler = ConstantSampler(-1.0)
        scalargrad.init(ScalargradConfig(), sampler=sampler)
        n = Neuron(1)
        assert n.weights[0].data == -1.0
        assert sampler.call_count == 1


# ============================================================================
# LAYER TESTS
# ============================================================================

class TestLayer:
    def test_forward_width(self):
        from scalargrad.core.nn import Layer
        layer = Layer(3, 5)
        out = layer([0.1, 0.2, 0.3])
        assert isinstance(out, list)
        assert len(out) == 5

    def test_single_neuron_still_returns_list(self):
        from scalargrad.core.nn import Layer
        out = Layer(2, 1)([1.0, 2.0])
        assert isinstance(out, list)
        assert len(out) == 1

    def test_owns_exactly_nout_neurons(self):
        from scalargrad.core.nn import Layer
        layer = Layer(7, 2)
        assert len(layer.neurons) == 2
        assert layer.nin == 7
        assert layer.nout == 2

    def test_outputs_match_neurons(self):
        from scalargrad.core.autograd import Value
        from scalargrad.core.nn import Layer
        layer = Layer(2, 3)
        x = [Value(0.4), Value(-0.6)]
        out = layer(x)
        for o, n in zip(out, layer.neurons):
            assert o.data == n(x).data

    def test_parameters_concatenated_in_neuron_order(self):
        from scalargrad.core.nn import Layer
        layer = Layer(2, 3)
        expected = [p for n in layer.neurons for p in n.parameters()]
        params = layer.parameters()
        assert len(params) == 9
        assert all(a is b for a, b in zip(params, expected))

    def test_width_mismatch(self):
        from scalargrad.core.nn import Layer
        with pytest.raises(ValueError):
            Layer(3, 2)([1.0, 2.0])


# ============================================================================
# MLP TESTS
# ============================================================================

class TestMLP:
    def test_parameter_count(self):
        from scalargrad.core.nn import MLP
        for nin, nouts in [(3, [4, 4, 1]), (1, [1]), (5, [2, 7, 3])]:
            net = MLP(nin, nouts)
            sizes = [nin] + nouts
            expected = sum((sizes[i - 1] + 1) * sizes[i] for i in range(1, len(sizes)))
            assert len(net.parameters()) == expected

    def test_forward_returns_final_layer(self):
        from scalargrad.core.nn import MLP
        net = MLP(3, [4, 2])
        out = net([1.0, -1.0, 0.5])
        assert len(out) == 2

    def test_hidden_layers_nonlinear_output_linear(self):
        from scalargrad.core.nn import MLP
        net = MLP(2, [3, 3, 1])
        assert all(n.nonlin for n in net.layers[0].neurons)
        assert all(n.nonlin for n in net.layers[1].neurons)
        assert not any(n.nonlin for n in net.layers[2].neurons)

    def test_nonlin_false_makes_every_layer_linear(self):
        from scalargrad.core.nn import MLP
        net = MLP(2, [3, 1], nonlin=False)
        assert not any(n.nonlin for layer in net.layers for n in layer.neurons)

    def test_layers_chained(self):
        from scalargrad.core.nn import MLP
        net = MLP(3, [4, 5, 2])
        assert net.nin == 3
        assert net.nouts == [4, 5, 2]
        for prev, nxt in zip(net.layers, net.layers[1:]):
            assert nxt.nin == prev.nout

    def test_forward_idempotent(self):
        from scalargrad.core.autograd import Value
        from scalargrad.core.nn import MLP
        net = MLP(3, [4, 4, 1])
        x = [Value(2.0), Value(3.0), Value(-1.0)]
        out1 = net(x)
        out2 = net(x)
        assert [o.data for o in out1] == [o.data for o in out2]
        assert out1[0] is not out2[0]

    def test_backward_reaches_every_parameter(self):
        from scalargrad.core.nn import MLP
        net = MLP(2, [3, 1], sampler=ConstantSampler(0.3))
        out = net([0.5, -0.25])[0]
        out.backward()
        assert all(p.grad != 0.0 for p in net.parameters())

    def test_width_mismatch(self):
        from scalargrad.core.nn import MLP
        net = MLP(3, [2])
        with pytest.raises(ValueError):
            net([1.0, 2.0])

    def test_invalid_construction(self):
        from scalargrad.core.nn import MLP
        with pytest.raises(ValueError):
            MLP(3, [])
        with pytest.raises(ValueError):
            MLP(3, [4, 0])

    def test_from_layers(self):
        from scalargrad.core.nn import MLP, Layer
        net = MLP.from_layers([Layer(2, 3), Layer(3, 1, nonlin=False)])
        assert net.nouts == [3, 1]
        assert len(net([1.0, 2.0])) == 1

    def test_from_layers_rejects_mismatch(self):
        from scalargrad.core.nn import MLP, Layer
        with pytest.raises(ValueError):
            MLP.from_layers([Layer(2, 3), Layer(4, 1)])
        with pytest.raises(ValueError):
            MLP.from_layers([])

    def test_zero_grad(self):
        from scalargrad.core.nn import MLP
        net = MLP(2, [2, 1])
        net([1.0, 1.0])[0].backward()
        net.zero_grad()
        assert all(p.grad == 0.0 for p in net.parameters())

    def test_gradient_descent_reduces_loss(self):
        """Manual SGD loop: the engine supplies everything an optimizer needs."""
        from scalargrad.core.autograd import Value
        from scalargrad.core.nn import MLP
        from scalargrad.sampling import RandomSampler

        net = MLP(1, [8, 1], sampler=RandomSampler(42))
        xs = [-1.0, -0.5, 0.0, 0.5, 1.0]
        ys = [0.5 * x for x in xs]

        def loss_fn():
            total = Value(0.0)
            for x, y in zip(xs, ys):
                diff = net([x])[0] - y
                total = total + diff * diff
            return total

        initial = loss_fn().data
        for _ in range(40):
            loss = loss_fn()
            net.zero_grad()
            loss.backward()
            for p in net.parameters():
                p.data -= 0.02 * p.grad

        assert loss_fn().data < initial


# ============================================================================
# STATE DICT TESTS
# ============================================================================

class TestStateDict:
    def test_neuron_state_dict(self, neuron_2):
        assert neuron_2.state_dict() == {"weights": [0.5, -0.5], "bias": 0.0}

    def test_roundtrip_through_json(self):
        from scalargrad.core.nn import MLP
        from scalargrad.sampling import RandomSampler
        src = MLP(3, [4, 2], sampler=RandomSampler(1))
        dst = MLP(3, [4, 2], sampler=RandomSampler(2))
        dst.load_state_dict(json.loads(json.dumps(src.state_dict())))

        x = [0.3, -0.1, 0.8]
        assert [o.data for o in src(x)] == [o.data for o in dst(x)]

    def test_load_keeps_parameter_identity(self):
        from scalargrad.core.nn import MLP
        net = MLP(2, [2, 1])
        before = net.parameters()
        net.load_state_dict(net.state_dict())
        after = net.parameters()
        assert all(a is b for a, b in zip(before, after))

    def test_load_rejects_wrong_shape(self):
        from scalargrad.core.nn import MLP
        small = MLP(2, [2, 1])
        big = MLP(2, [3, 1])
        with pytest.raises(ValueError):
            small.load_state_dict(big.state_dict())

    def test_load_rejects_broken_chain(self):
        from scalargrad.core.nn import MLP
        net = MLP(1, [1, 1])
        bad = {"layers": [
            {"neurons": [{"weights": [1.0], "bias": 0.0}]},
            {"neurons": [{"weights": [1.0, 2.0], "bias": 0.0}]},
        ]}
        with pytest.raises(ValueError):
            net.load_state_dict(bad)

    def test_load_rejects_non_finite(self, neuron_2):
        with pytest.raises(ValueError):
            neuron_2.load_state_dict({"weights": [float("nan"), 0.0], "bias": 0.0})

    def test_neuron_width_mismatch(self, neuron_2):
        with pytest.raises(ValueError):
            neuron_2.load_state_dict({"weights": [1.0, 2.0, 3.0], "bias": 0.0})

    def test_failed_load_leaves_parameters_untouched(self):
        """A width mismatch in a later layer must not half-load earlier ones."""
        from scalargrad.core.nn import MLP
        from scalargrad.sampling import RandomSampler
        net = MLP(2, [3, 1], sampler=RandomSampler(1))
        before = [p.data for p in net.parameters()]
        other = MLP(2, [3, 2], sampler=RandomSampler(2))
        with pytest.raises(ValueError):
            net.load_state_dict(other.state_dict())
        assert [p.data for p in net.parameters()] == before

    def test_failed_layer_load_leaves_parameters_untouched(self):
        from scalargrad.core.nn import Layer
        layer = Layer(2, 2, sampler=ConstantSampler(0.5))
        before = [p.data for p in layer.parameters()]
        bad = {"neurons": [
            {"weights": [9.0, 9.0], "bias": 9.0},
            {"weights": [9.0, 9.0, 9.0], "bias": 9.0},
        ]}
        with pytest.raises(ValueError):
            layer.load_state_dict(bad)
        assert [p.data for p in layer.parameters()] == before
