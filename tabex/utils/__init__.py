from .config import DEFAULT_CONFIG, EngineConfig
from .logging import configure_logging, disable_logging
from .random import RandomSource, resolve_rng


__all__ = [
    "DEFAULT_CONFIG",
    "EngineConfig",
    "RandomSource",
    "configure_logging",
    "disable_logging",
    "resolve_rng",
]
