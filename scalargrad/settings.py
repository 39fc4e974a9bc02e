"""Engine settings via environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """scalargrad settings. All values from env vars or .env file."""

    # Numerics
    domain_errors: str = "ieee"  # "ieee" or "raise"

    # Initialization
    seed: Optional[int] = None
    init_gain: float = 1.0

    # Logging
    log_level: str = "warning"

    model_config = {"env_prefix": "SCALARGRAD_", "env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton: import this instead of creating new Settings()
settings = Settings()
