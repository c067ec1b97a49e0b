"""Identity server configuration used for e-mail (third-party) invites."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy


@dataclass(frozen=True, slots=True)
class IdentityServerConfig:
    server_name: str
    access_token: str
    resilience: ResilienceConfig


def get_identity_server_config() -> IdentityServerConfig | None:
    """Return the identity server settings, or ``None`` when e-mail invites are disabled."""

    url = optional_env_var("IDENTITY_SERVER_URL")
    token = optional_env_var("IDENTITY_SERVER_ACCESS_TOKEN")
    if url is None or token is None:
        return None

    url = url.rstrip("/")
    resilience = ResilienceConfig(
        name="identity",
        base_url=url,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        retry=RetryPolicy(total=3),
        default_headers={"Authorization": f"Bearer {token}"},
    )
    server_name = url.split("://", 1)[-1]
    return IdentityServerConfig(server_name=server_name, access_token=token, resilience=resilience)
