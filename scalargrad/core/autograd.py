"""
Scalar autograd: Value nodes and the operations that build the graph.

Every operation returns a new Value whose origin is an operation record
(a Context subclass) holding the operands and the local gradient rule.
The rule is evaluated at the forward values captured when the record was
created, so an optimizer rewriting a parameter's data later does not
change what backward computes for an already-built graph.
"""

import logging
import math
from numbers import Real

from scalargrad.core import numerics

logger = logging.getLogger(__name__)


class DomainError(ValueError):
    """Operation undefined for its operands (raised under domain_errors="raise")."""


# ============================================================================
# OPERATION RECORDS
# ============================================================================

class Context:
    """Operands that produced a Value, plus how to push a gradient back to them."""

    __slots__ = ('saved_values',)
    op = ""

    def __init__(self, *saved_values):
        self.saved_values = saved_values

    def backward(self, grad: float) -> None:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}(op={self.op!r}, arity={len(self.saved_values)})"


class AddBackward(Context):
    __slots__ = ()
    op = "+"

    def backward(self, grad):
        a, b = self.saved_values
        a.grad += grad
        b.grad += grad


class SubBackward(Context):
    __slots__ = ()
    op = "-"

    def backward(self, grad):
        a, b = self.saved_values
        a.grad += grad
        b.grad -= grad


class MulBackward(Context):
    __slots__ = ('a_data', 'b_data')
    op = "*"

    def __init__(self, a, b):
        super().__init__(a, b)
        self.a_data = a.data
        self.b_data = b.data

    def backward(self, grad):
        a, b = self.saved_values
        a.grad += self.b_data * grad
        b.grad += self.a_data * grad


class DivBackward(Context):
    __slots__ = ('a_data', 'b_data')
    op = "/"

    def __init__(self, a, b):
        super().__init__(a, b)
        self.a_data = a.data
        self.b_data = b.data

    def backward(self, grad):
        a, b = self.saved_values
        a.grad += numerics.div(grad, self.b_data)
        # b*b rather than b**2: float ** raises OverflowError, * gives inf
        b.grad += numerics.div(-grad * self.a_data, self.b_data * self.b_data)


class PowBackward(Context):
    """Exponent is saved but treated as a constant: no gradient flows to it."""

    __slots__ = ('base_data', 'exp_data')
    op = "**"

    def __init__(self, base, exponent):
        super().__init__(base, exponent)
        self.base_data = base.data
        self.exp_data = exponent.data

    def backward(self, grad):
        base = self.saved_values[0]
        if self.exp_data == 0.0:
            # a ** 0 is constant; avoids 0 * inf at a == 0
            return
        local = self.exp_data * numerics.pow(self.base_data, self.exp_data - 1.0)
        base.grad += local * grad


class ReluBackward(Context):
    __slots__ = ('out_data',)
    op = "relu"

    def __init__(self, a, out_data):
        super().__init__(a)
        self.out_data = out_data

    def backward(self, grad):
        (a,) = self.saved_values
        a.grad += grad if self.out_data > 0 else 0.0


class TanhBackward(Context):
    __slots__ = ('out_data',)
    op = "tanh"

    def __init__(self, a, out_data):
        super().__init__(a)
        self.out_data = out_data

    def backward(self, grad):
        (a,) = self.saved_values
        a.grad += (1.0 - self.out_data * self.out_data) * grad


class ExpBackward(Context):
    __slots__ = ('out_data',)
    op = "exp"

    def __init__(self, a, out_data):
        super().__init__(a)
        self.out_data = out_data

    def backward(self, grad):
        (a,) = self.saved_values
        a.grad += self.out_data * grad


class LogBackward(Context):
    __slots__ = ('a_data',)
    op = "log"

    def __init__(self, a):
        super().__init__(a)
        self.a_data = a.data

    def backward(self, grad):
        (a,) = self.saved_values
        a.grad += numerics.div(grad, self.a_data)


# ============================================================================
# VALUE
# ============================================================================

class Value:
    """Scalar value with automatic gradient computation."""

    __slots__ = ('data', 'grad', '_origin')

    def __init__(self, data, _origin=None):
        if isinstance(data, Value) or not isinstance(data, Real):
            raise TypeError(f"Value data must be a real number, got {type(data).__name__}")
        self.data = float(data)
        self.grad = 0.0
        self._origin = _origin

    @property
    def origin(self):
        """The operation record that produced this value, or None for a leaf."""
        return self._origin

    @property
    def is_leaf(self) -> bool:
        return self._origin is None

    def __repr__(self):
        return f"Value(data={self.data:.4f}, grad={self.grad:.4f})"

    def __add__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return add(self, other)

    def __radd__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return add(other, self)

    def __sub__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return sub(self, other)

    def __rsub__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return sub(other, self)

    def __mul__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return mul(self, other)

    def __rmul__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return mul(other, self)

    def __truediv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return div(self, other)

    def __rtruediv__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return div(other, self)

    def __pow__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return pow(self, other)

    def __rpow__(self, other):
        if not _is_operand(other):
            return NotImplemented
        return pow(other, self)

    def __neg__(self):
        return mul(self, -1.0)

    def relu(self):
        return relu(self)

    def tanh(self):
        return tanh(self)

    def exp(self):
        return exp(self)

    def log(self):
        return log(self)

    def backward(self):
        """Compute gradients via reverse-mode autodiff (backpropagation)."""
        from scalargrad.core.engine import backward
        backward(self)


def _is_operand(x) -> bool:
    return isinstance(x, (Value, Real))


def _as_value(x) -> Value:
    if isinstance(x, Value):
        return x
    if isinstance(x, Real):
        return Value(x)
    raise TypeError(f"Expected a Value or real number, got {type(x).__name__}")


def _check_domain(op: str, a: float, b: float = 0.0) -> None:
    if not numerics.is_domain_violation(op, a, b):
        return

    import scalargrad
    detail = f"{op} undefined for ({a!r}, {b!r})" if op in ("/", "**") else f"{op} undefined for {a!r}"
    if scalargrad.get_config().domain_errors == "raise":
        raise DomainError(detail)
    logger.warning(f"[Autograd] {detail}, propagating non-finite result")


# ============================================================================
# GRAPH BUILDER
# ============================================================================

def add(a, b) -> Value:
    a, b = _as_value(a), _as_value(b)
    return Value(a.data + b.data, AddBackward(a, b))


def sub(a, b) -> Value:
    a, b = _as_value(a), _as_value(b)
    return Value(a.data - b.data, SubBackward(a, b))


def mul(a, b) -> Value:
    a, b = _as_value(a), _as_value(b)
    return Value(a.data * b.data, MulBackward(a, b))


def div(a, b) -> Value:
    """a / b. b == 0 is a domain violation (inf/nan, or DomainError)."""
    a, b = _as_value(a), _as_value(b)
    _check_domain("/", a.data, b.data)
    return Value(numerics.div(a.data, b.data), DivBackward(a, b))


def pow(a, p) -> Value:
    """
    a ** p with p held constant for differentiation.

    Negative base with fractional exponent, or zero base with negative
    exponent, is a domain violation. p == 0 passes no gradient to a,
    including at a == 0.
    """
    a, p = _as_value(a), _as_value(p)
    _check_domain("**", a.data, p.data)
    return Value(numerics.pow(a.data, p.data), PowBackward(a, p))


def relu(a) -> Value:
    """max(0, a); nan passes through unchanged."""
    a = _as_value(a)
    out_data = a.data if a.data > 0.0 or math.isnan(a.data) else 0.0
    return Value(out_data, ReluBackward(a, out_data))


def tanh(a) -> Value:
    a = _as_value(a)
    out_data = math.tanh(a.data)
    return Value(out_data, TanhBackward(a, out_data))


def exp(a) -> Value:
    a = _as_value(a)
    out_data = numerics.exp(a.data)
    return Value(out_data, ExpBackward(a, out_data))


def log(a) -> Value:
    """Natural log. a <= 0 is a domain violation (-inf/nan, or DomainError)."""
    a = _as_value(a)
    _check_domain("log", a.data)
    return Value(numerics.log(a.data), LogBackward(a))
