"""Identity server client issuing e-mail invites on behalf of the bot."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from confsync.adapters.http_resilience import ResilientClient
from confsync.domain.model.room_state import EV_THIRD_PARTY_INVITE
from confsync.domain.ports.substrate import SubstrateError
from confsync.domain.records import ThirdPartyInviteContent

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from confsync.config.http_resilience import ResilienceConfig
    from confsync.config.identity import IdentityServerConfig
    from confsync.domain.ports.substrate import RoomSubstrate, ThirdPartyInviter

log = getLogger(__name__)

STORE_INVITE_PATH = "/_matrix/identity/v2/store-invite"


class IdentityServerError(SubstrateError):
    """Raised when the identity server refuses to store an invite."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PublicKey(BaseModel):
    model_config = ConfigDict(extra="ignore")

    public_key: str
    key_validity_url: str


class StoreInviteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    token: str
    display_name: str
    public_keys: list[PublicKey] = Field(min_length=1)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class IdentityServerInviter:
    """Stores an invite with the identity server, then publishes it to the room.

    The published ``m.room.third_party_invite`` record carries the person ID so a
    later redemption can be traced back to the person it was meant for.
    """

    def __init__(
        self,
        *,
        config: IdentityServerConfig,
        substrate: RoomSubstrate,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._substrate = substrate
        self._client = (client_factory or _default_client_factory)(config.resilience)

    async def __aenter__(self) -> IdentityServerInviter:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def invite_by_email(self, room_id: str, *, email: str, person_id: str) -> None:
        stored = await self._store_invite(room_id, email=email)
        key = stored.public_keys[0]
        content = ThirdPartyInviteContent(
            display_name=stored.display_name,
            key_validity_url=key.key_validity_url,
            public_key=key.public_key,
            public_keys=[k.model_dump() for k in stored.public_keys],
            person_id=person_id,
        )
        await self._substrate.send_state_event(
            room_id, EV_THIRD_PARTY_INVITE, stored.token, content.to_content()
        )
        log.info("Sent e-mail invite for %s to %s", person_id, room_id)

    async def _store_invite(self, room_id: str, *, email: str) -> StoreInviteResponse:
        body = {
            "medium": "email",
            "address": email,
            "room_id": room_id,
            "sender": await self._substrate.get_user_id(),
        }
        try:
            response = await self._client.post(STORE_INVITE_PATH, json=body)
        except httpx.HTTPError as exc:
            raise IdentityServerError(f"store-invite failed: {exc}") from exc
        if response.is_error:
            raise IdentityServerError(
                f"store-invite returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return StoreInviteResponse.model_validate(response.json())
        except (json.JSONDecodeError, ValidationError) as exc:
            raise IdentityServerError("Unexpected store-invite payload") from exc


if TYPE_CHECKING:

    def _inviter_check(inviter: IdentityServerInviter) -> ThirdPartyInviter:
        return inviter
