"""Matrix client-server API client implementing the room substrate port."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING, Final
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from confsync.adapters.http_resilience import ResilientClient
from confsync.domain.model.room_state import EV_CREATE
from confsync.domain.ports.substrate import StateEvent, SubstrateError

from .schema import (
    ErrorPayload,
    JoinedRoomsResponse,
    MatrixBaseModel,
    RoomAliasResponse,
    StateEventPayload,
    SyncResponse,
    WhoAmIResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from confsync.config.http_resilience import ResilienceConfig
    from confsync.config.matrix import MatrixConfig
    from confsync.domain.ports.substrate import RoomSubstrate

log = getLogger(__name__)

CLIENT_API: Final[str] = "/_matrix/client/v3"


class MatrixAPIError(SubstrateError):
    """Raised when the homeserver rejects a request or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errcode: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.errcode = errcode


def _segment(value: str) -> str:
    return quote(value, safe="")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class MatrixClient:
    """Low-level client for the parts of the client-server API the directory uses.

    One client is kept open for the lifetime of the object so the rate limit
    applies across all concurrent room reads. Creation content goes through a
    second, caching client because it never changes.
    """

    def __init__(
        self,
        *,
        config: MatrixConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        factory = client_factory or _default_client_factory
        self._client = factory(config.resilience)
        self._creation_client = factory(config.creation_resilience)
        self._user_id: str | None = None

    async def __aenter__(self) -> MatrixClient:
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
        await self._creation_client.aclose()

    async def get_user_id(self) -> str:
        if self._user_id is None:
            payload = await self._request("GET", "/account/whoami")
            self._user_id = self._parse(WhoAmIResponse, payload).user_id
        return self._user_id

    async def get_joined_rooms(self) -> list[str]:
        payload = await self._request("GET", "/joined_rooms")
        return self._parse(JoinedRoomsResponse, payload).joined_rooms

    async def get_room_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str = "",
    ) -> dict[str, object] | None:
        path = f"/rooms/{_segment(room_id)}/state/{_segment(event_type)}/{_segment(state_key)}"
        client = self._creation_client if event_type == EV_CREATE else self._client
        payload = await self._request("GET", path, client=client, missing_ok=True)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise MatrixAPIError(f"Unexpected state content for {event_type} in {room_id}")
        return payload

    async def get_room_state(self, room_id: str) -> list[StateEvent]:
        payload = await self._request("GET", f"/rooms/{_segment(room_id)}/state")
        if not isinstance(payload, list):
            raise MatrixAPIError(f"Unexpected room state payload for {room_id}")
        events: list[StateEvent] = []
        for raw in payload:
            try:
                event = StateEventPayload.model_validate(raw)
            except ValidationError:
                log.debug("Skipping malformed state event in %s", room_id)
                continue
            events.append(
                StateEvent(
                    type=event.type,
                    state_key=event.state_key,
                    sender=event.sender,
                    content=event.content,
                )
            )
        return events

    async def send_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: Mapping[str, object],
    ) -> None:
        path = f"/rooms/{_segment(room_id)}/state/{_segment(event_type)}/{_segment(state_key)}"
        await self._request("PUT", path, json_body=dict(content))

    async def resolve_room(self, room_id_or_alias: str) -> str | None:
        if room_id_or_alias.startswith("!"):
            return room_id_or_alias
        payload = await self._request(
            "GET", f"/directory/room/{_segment(room_id_or_alias)}", missing_ok=True
        )
        if payload is None:
            return None
        return self._parse(RoomAliasResponse, payload).room_id

    async def invite_user(self, room_id: str, user_id: str) -> None:
        await self._request(
            "POST", f"/rooms/{_segment(room_id)}/invite", json_body={"user_id": user_id}
        )

    async def sync(
        self,
        *,
        since: str | None,
        timeout_ms: int,
        sync_filter: Mapping[str, object] | None = None,
    ) -> SyncResponse:
        params: dict[str, str] = {"timeout": str(timeout_ms)}
        if since is not None:
            params["since"] = since
        if sync_filter is not None:
            params["filter"] = json.dumps(sync_filter, separators=(",", ":"))
        payload = await self._request("GET", "/sync", params=params)
        return self._parse(SyncResponse, payload)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        client: ResilientClient | None = None,
        params: dict[str, str] | None = None,
        json_body: object = None,
        missing_ok: bool = False,
    ) -> object:
        active = client or self._client
        try:
            if json_body is None:
                response = await active.request(method, f"{CLIENT_API}{path}", params=params)
            else:
                response = await active.request(
                    method, f"{CLIENT_API}{path}", params=params, json=json_body
                )
        except httpx.HTTPError as exc:
            raise MatrixAPIError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND and missing_ok:
            return None
        if response.is_error:
            error = _error_payload(response)
            raise MatrixAPIError(
                f"{method} {path} returned {response.status_code}: "
                f"{error.errcode or 'unknown'} {error.error or ''}".rstrip(),
                status_code=response.status_code,
                errcode=error.errcode,
            )
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise MatrixAPIError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _parse[TModel: MatrixBaseModel](model: type[TModel], payload: object) -> TModel:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise MatrixAPIError(f"Unexpected {model.__name__} payload") from exc


def _error_payload(response: httpx.Response) -> ErrorPayload:
    try:
        return ErrorPayload.model_validate(response.json())
    except (json.JSONDecodeError, ValidationError):
        return ErrorPayload()


if TYPE_CHECKING:

    def _substrate_check(client: MatrixClient) -> RoomSubstrate:
        return client
