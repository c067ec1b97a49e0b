"""Application configuration helpers."""

from __future__ import annotations

from .conference import ConferenceConfig, SubspaceConfig, SupportRooms, get_conference_config
from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .identity import IdentityServerConfig, get_identity_server_config
from .logging import configure_logging
from .matrix import MatrixConfig, get_matrix_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CacheConfig",
    "ConferenceConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "IdentityServerConfig",
    "MatrixConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "SubspaceConfig",
    "SupportRooms",
    "configure_logging",
    "get_conference_config",
    "get_database_config",
    "get_identity_server_config",
    "get_matrix_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
