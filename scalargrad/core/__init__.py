from scalargrad.core.autograd import (
    Value,
    Context,
    DomainError,
    add,
    sub,
    mul,
    div,
    pow,
    relu,
    tanh,
    exp,
    log,
)
from scalargrad.core.engine import (
    backward,
    topological_order,
)
from scalargrad.core.nn import (
    Module,
    Neuron,
    Layer,
    MLP,
)
