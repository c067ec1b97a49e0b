"""Homeserver connection configuration."""

from __future__ import annotations

from dataclasses import dataclass, replace

from .env import optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_REQUESTS_PER_SECOND = 10


@dataclass(frozen=True, slots=True)
class MatrixConfig:
    """Connection details for the room substrate (a Matrix homeserver).

    ``resilience`` drives every mutable read and write. ``creation_resilience``
    is the same connection with a response cache switched on; it is only used
    for ``m.room.create`` reads, which never change once a room exists.
    """

    homeserver_url: str
    access_token: str
    resilience: ResilienceConfig
    creation_resilience: ResilienceConfig


def is_cacheable_creation_payload(payload: object) -> bool:
    """Only cache real creation content; error bodies carry an ``errcode``."""

    return isinstance(payload, dict) and "errcode" not in payload


def get_matrix_config() -> MatrixConfig:
    values = require_env_vars(("MATRIX_HOMESERVER_URL", "MATRIX_ACCESS_TOKEN"))
    homeserver_url = values["MATRIX_HOMESERVER_URL"].rstrip("/")
    access_token = values["MATRIX_ACCESS_TOKEN"]

    rate = optional_env_var("MATRIX_REQUESTS_PER_SECOND")
    max_calls = int(rate) if rate is not None else DEFAULT_REQUESTS_PER_SECOND

    resilience = ResilienceConfig(
        name="matrix",
        base_url=homeserver_url,
        ratelimit=RateLimit(max_calls=max_calls, per_seconds=1.0),
        retry=RetryPolicy(total=4),
        default_headers={"Authorization": f"Bearer {access_token}"},
    )
    creation_resilience = replace(
        resilience,
        name="matrix-creation",
        cache=CacheConfig(should_cache=is_cacheable_creation_payload),
    )
    return MatrixConfig(
        homeserver_url=homeserver_url,
        access_token=access_token,
        resilience=resilience,
        creation_resilience=creation_resilience,
    )
