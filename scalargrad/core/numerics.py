"""
Float helpers with IEEE-754 results instead of Python exceptions.

Python raises on 1.0 / 0.0, math.log(0.0), math.pow(-8.0, 0.5) and
math.exp(1000.0); these return inf or nan instead.
"""

import math


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x == math.floor(x) and math.fmod(x, 2.0) != 0.0


def div(a: float, b: float) -> float:
    if b == 0.0:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def log(x: float) -> float:
    if x == 0.0:
        return -math.inf
    if x < 0.0 or math.isnan(x):
        return math.nan
    return math.log(x)


def exp(x: float) -> float:
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def pow(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except ValueError:
        # 0 ** negative
        if base == 0.0:
            if _is_odd_integer(exponent):
                return math.copysign(math.inf, base)
            return math.inf
        # negative base, non-integer exponent
        return math.nan
    except OverflowError:
        if base < 0.0 and _is_odd_integer(exponent):
            return -math.inf
        return math.inf


def is_domain_violation(op: str, a: float, b: float = 0.0) -> bool:
    """True when the forward op is undefined for these operands."""
    if op == "/":
        return b == 0.0
    if op == "log":
        return a <= 0.0
    if op == "**":
        if a == 0.0 and b < 0.0:
            return True
        return a < 0.0 and math.isfinite(b) and b != math.floor(b)
    return False
