"""
scalargrad: reverse-mode autodiff over scalar values.

Builds a computation graph as a side effect of ordinary arithmetic, then
backpropagates gradients from one output to every value that produced it.
A small Neuron/Layer/MLP hierarchy sits on top.

Usage:
    import scalargrad
    from scalargrad import Value, MLP, ScalargradConfig

    a = Value(2.0)
    b = Value(3.0)
    out = (a * b).tanh()
    out.backward()
    a.grad, b.grad

    scalargrad.init(ScalargradConfig(domain_errors="raise", seed=0))
    net = MLP(3, [4, 4, 1])
"""

import logging
import threading
from typing import Optional

from scalargrad.config import ScalargradConfig
from scalargrad.protocols import UniformSampler

__version__ = "0.1.0"

_log = logging.getLogger(__name__)

_config: ScalargradConfig | None = None
_sampler: UniformSampler | None = None
_init_lock = threading.Lock()


def init(
    config: Optional[ScalargradConfig] = None,
    sampler: Optional[UniformSampler] = None,
) -> None:
    """
    Install the active configuration and weight sampler.

    Calling init() is optional; without it, configuration is read from
    SCALARGRAD_* environment variables on first use.

    Args:
        config: Numeric policy and init parameters (default: from settings)
        sampler: Uniform [-1, 1) source for weight init (default: seeded
            RandomSampler built from config.seed)
    """
    global _config, _sampler

    from scalargrad.settings import settings

    if config is None:
        config = ScalargradConfig.from_settings(settings)

    if sampler is not None and not isinstance(sampler, UniformSampler):
        raise TypeError(f"sampler must be callable, got {type(sampler).__name__}")

    with _init_lock:
        _config = config
        _sampler = sampler

    _log.setLevel(settings.log_level.upper())
    _log.debug(
        "[scalargrad] initialized: domain_errors=%s, seed=%s, init_gain=%s",
        config.domain_errors, config.seed, config.init_gain,
    )


def get_config() -> ScalargradConfig:
    """Get the current config, building it from settings on first use."""
    global _config
    if _config is None:
        with _init_lock:
            if _config is None:
                _config = ScalargradConfig.from_settings()
    return _config


def get_sampler() -> UniformSampler:
    """Get the weight sampler, creating a seeded default on first use."""
    global _sampler
    if _sampler is None:
        config = get_config()
        with _init_lock:
            if _sampler is None:
                from scalargrad.sampling import RandomSampler
                _sampler = RandomSampler(config.seed)
    return _sampler


def reset() -> None:
    """Forget the installed config and sampler (mainly for tests)."""
    global _config, _sampler
    with _init_lock:
        _config = None
        _sampler = None


from scalargrad.core.autograd import Value, DomainError  # noqa: E402
from scalargrad.core.engine import backward, topological_order  # noqa: E402
from scalargrad.core.nn import Module, Neuron, Layer, MLP  # noqa: E402

__all__ = [
    "init",
    "get_config",
    "get_sampler",
    "reset",
    "ScalargradConfig",
    "UniformSampler",
    "Value",
    "DomainError",
    "backward",
    "topological_order",
    "Module",
    "Neuron",
    "Layer",
    "MLP",
]
