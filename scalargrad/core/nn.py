"""
Neuron -> Layer -> MLP built on the scalar autograd engine.

Modules are plain containers: they own leaf Values as parameters and
compose graph-building operations in forward(). parameters() order is
stable (weights then bias, neuron by neuron, layer by layer) so an
optimizer can index parameters by position.
"""

import logging
import math
from typing import Optional, Sequence

from scalargrad.core.autograd import Value, add, mul, tanh
from scalargrad.core.state import LayerState, MLPState, NeuronState
from scalargrad.protocols import UniformSampler

logger = logging.getLogger(__name__)


def _as_inputs(inputs) -> list[Value]:
    return [x if isinstance(x, Value) else Value(x) for x in inputs]


def _check_width(name: str, expected: int, inputs: Sequence) -> None:
    if len(inputs) != expected:
        raise ValueError(f"{name} expects {expected} inputs, got {len(inputs)}")


def _check_positive(name: str, n: int) -> None:
    if not isinstance(n, int) or isinstance(n, bool) or n < 1:
        raise ValueError(f"{name} must be a positive integer, got {n!r}")


# ============================================================================
# BASE
# ============================================================================

class Module:
    """Base class: a differentiable function with trainable leaf Values."""

    def forward(self, inputs):
        raise NotImplementedError

    def parameters(self) -> list[Value]:
        return []

    def __call__(self, inputs):
        return self.forward(inputs)

    def zero_grad(self):
        """Reset every parameter's grad before the next backward pass."""
        for p in self.parameters():
            p.grad = 0.0

    def state_dict(self) -> dict:
        raise NotImplementedError

    def load_state_dict(self, d: dict):
        raise NotImplementedError


# ============================================================================
# NEURON
# ============================================================================

class Neuron(Module):
    """sum(w_i * x_i) + b, optionally through tanh."""

    def __init__(self, nin: int, nonlin: bool = True, sampler: Optional[UniformSampler] = None):
        _check_positive("nin", nin)

        import scalargrad
        config = scalargrad.get_config()
        if sampler is None:
            sampler = scalargrad.get_sampler()

        scale = config.init_gain / math.sqrt(nin)
        self.weights = [Value(sampler() * scale) for _ in range(nin)]
        self.bias = Value(0.0)
        self.nonlin = nonlin

    @property
    def nin(self) -> int:
        return len(self.weights)

    def forward(self, inputs) -> Value:
        _check_width("Neuron", self.nin, inputs)
        x = _as_inputs(inputs)

        act = mul(self.weights[0], x[0])
        for w, xi in zip(self.weights[1:], x[1:]):
            act = add(act, mul(w, xi))
        act = add(act, self.bias)

        return tanh(act) if self.nonlin else act

    def parameters(self) -> list[Value]:
        return self.weights + [self.bias]

    def state_dict(self) -> dict:
        return NeuronState(
            weights=[w.data for w in self.weights],
            bias=self.bias.data,
        ).model_dump()

    def load_state_dict(self, d: dict):
        """Load weights from dict. Writes data in place; parameter identity is kept."""
        self._write_state(self._check_state(d))

    def _check_state(self, d) -> NeuronState:
        state = d if isinstance(d, NeuronState) else NeuronState.model_validate(d)
        _check_width("Neuron state", self.nin, state.weights)
        return state

    def _write_state(self, state: NeuronState):
        for w, val in zip(self.weights, state.weights):
            w.data = val
        self.bias.data = state.bias

    def __repr__(self):
        kind = "Tanh" if self.nonlin else "Linear"
        return f"{kind}Neuron({self.nin})"


# ============================================================================
# LAYER
# ============================================================================

class Layer(Module):
    """nout neurons applied to the same inputs."""

    def __init__(self, nin: int, nout: int, nonlin: bool = True, sampler: Optional[UniformSampler] = None):
        _check_positive("nin", nin)
        _check_positive("nout", nout)
        self.neurons = [Neuron(nin, nonlin=nonlin, sampler=sampler) for _ in range(nout)]

    @property
    def nin(self) -> int:
        return self.neurons[0].nin

    @property
    def nout(self) -> int:
        return len(self.neurons)

    def forward(self, inputs) -> list[Value]:
        _check_width("Layer", self.nin, inputs)
        x = _as_inputs(inputs)
        return [n(x) for n in self.neurons]

    def parameters(self) -> list[Value]:
        return [p for n in self.neurons for p in n.parameters()]

    def state_dict(self) -> dict:
        return {"neurons": [n.state_dict() for n in self.neurons]}

    def load_state_dict(self, d: dict):
        self._write_state(self._check_state(d))

    def _check_state(self, d) -> LayerState:
        state = d if isinstance(d, LayerState) else LayerState.model_validate(d)
        if len(state.neurons) != self.nout:
            raise ValueError(f"Layer has {self.nout} neurons, state has {len(state.neurons)}")
        for n, ns in zip(self.neurons, state.neurons):
            n._check_state(ns)
        return state

    def _write_state(self, state: LayerState):
        for n, ns in zip(self.neurons, state.neurons):
            n._write_state(ns)

    def __repr__(self):
        return f"Layer([{', '.join(str(n) for n in self.neurons)}])"


# ============================================================================
# MLP
# ============================================================================

class MLP(Module):
    """
    Chain of layers: sizes [nin] + nouts, tanh on hidden layers, linear output.

    Adjacent widths always agree; that is checked once at construction,
    not on every forward call.
    """

    def __init__(
        self,
        nin: int,
        nouts: Sequence[int],
        nonlin: bool = True,
        sampler: Optional[UniformSampler] = None,
    ):
        _check_positive("nin", nin)
        if not nouts:
            raise ValueError("MLP needs at least one layer")
        for n in nouts:
            _check_positive("layer width", n)

        sizes = [nin] + list(nouts)
        self.layers = [
            Layer(sizes[i], sizes[i + 1], nonlin=nonlin and i != len(nouts) - 1, sampler=sampler)
            for i in range(len(nouts))
        ]
        logger.debug(f"[NN] Built MLP {sizes} ({len(self.parameters())} parameters)")

    @classmethod
    def from_layers(cls, layers: Sequence[Layer]) -> "MLP":
        """Assemble pre-built layers, rejecting any width mismatch between neighbours."""
        if not layers:
            raise ValueError("MLP needs at least one layer")
        for i in range(1, len(layers)):
            if layers[i].nin != layers[i - 1].nout:
                raise ValueError(
                    f"layer {i} expects {layers[i].nin} inputs but layer {i - 1} "
                    f"produces {layers[i - 1].nout}"
                )
        mlp = cls.__new__(cls)
        mlp.layers = list(layers)
        return mlp

    @property
    def nin(self) -> int:
        return self.layers[0].nin

    @property
    def nouts(self) -> list[int]:
        return [layer.nout for layer in self.layers]

    def forward(self, inputs) -> list[Value]:
        x = inputs
        for layer in self.layers:
            x = layer(x)
        return x

    def parameters(self) -> list[Value]:
        return [p for layer in self.layers for p in layer.parameters()]

    def state_dict(self) -> dict:
        return {"layers": [layer.state_dict() for layer in self.layers]}

    def load_state_dict(self, d: dict):
        """Load weights from dict, e.g. one produced by state_dict() and round-tripped through JSON."""
        state = MLPState.model_validate(d)
        if len(state.layers) != len(self.layers):
            raise ValueError(f"MLP has {len(self.layers)} layers, state has {len(state.layers)}")
        # every width is checked before any parameter is written
        for layer, ls in zip(self.layers, state.layers):
            layer._check_state(ls)
        for layer, ls in zip(self.layers, state.layers):
            layer._write_state(ls)

    def __repr__(self):
        return f"MLP([{', '.join(str(layer) for layer in self.layers)}])"
