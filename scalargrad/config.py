"""
scalargrad configuration.

Numeric policy and initialization parameters are set here.
No hardcoded values in the rest of the package.
"""

from dataclasses import dataclass
from typing import Optional

DOMAIN_POLICIES = ("ieee", "raise")


@dataclass
class ScalargradConfig:
    """Configuration for the scalargrad engine and module hierarchy."""

    # Domain errors (division by zero, log of non-positive, bad pow):
    # "ieee" propagates inf/nan, "raise" fails fast with DomainError
    domain_errors: str = "ieee"

    # Seed for the default weight sampler (None = nondeterministic)
    seed: Optional[int] = None

    # Multiplier applied on top of the 1/sqrt(fan_in) init scale
    init_gain: float = 1.0

    def __post_init__(self):
        if self.domain_errors not in DOMAIN_POLICIES:
            raise ValueError(
                f"Unknown domain_errors policy {self.domain_errors!r}. "
                f"Available: {', '.join(DOMAIN_POLICIES)}"
            )
        if self.init_gain <= 0:
            raise ValueError(f"init_gain must be positive, got {self.init_gain}")

    @classmethod
    def from_settings(cls, settings=None) -> "ScalargradConfig":
        """Build a config from environment-backed settings."""
        if settings is None:
            from scalargrad.settings import settings
        return cls(
            domain_errors=settings.domain_errors,
            seed=settings.seed,
            init_gain=settings.init_gain,
        )
