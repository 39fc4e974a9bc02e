"""
Sampler protocol for dependency injection.

Consumers may pass any callable matching UniformSampler to the module
constructors (or to scalargrad.init()) to control weight initialization.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class UniformSampler(Protocol):
    """Source of uniform noise used to initialize weights."""

    def __call__(self) -> float:
        """
        Draw one sample.

        Returns:
            A float in the half-open interval [-1, 1).
        """
        ...
