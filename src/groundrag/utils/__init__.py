"""Configuration and logging helpers."""

from .config import (
    EMBEDDING_DIMENSION,
    BoostTier,
    DocumentAliasRule,
    GroundragConfig,
    IntentRule,
    RetrievalProfile,
    get_profile,
    load_config,
)
from .logging import configure_logging, set_log_level

__all__ = [
    "EMBEDDING_DIMENSION",
    "BoostTier",
    "DocumentAliasRule",
    "GroundragConfig",
    "IntentRule",
    "RetrievalProfile",
    "get_profile",
    "load_config",
    "configure_logging",
    "set_log_level",
]
