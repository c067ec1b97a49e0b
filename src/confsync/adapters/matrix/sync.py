"""Long-poll ``/sync`` and hand membership events to a handler."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Final

from confsync.domain.model.room_state import EV_MEMBER
from confsync.domain.ports.substrate import MemberEvent, SubstrateError

if TYPE_CHECKING:
    from confsync.domain.ports.substrate import MemberEventHandler

    from .client import MatrixClient
    from .schema import SyncResponse

log = getLogger(__name__)

DEFAULT_POLL_TIMEOUT_MS: Final[int] = 30_000
DEFAULT_ERROR_BACKOFF_SECONDS: Final[float] = 5.0

MEMBERSHIP_FILTER: Final[dict[str, object]] = {
    "presence": {"types": []},
    "account_data": {"types": []},
    "room": {
        "timeline": {"types": [EV_MEMBER]},
        "state": {"types": []},
        "ephemeral": {"types": []},
        "account_data": {"types": []},
    },
}


def member_events(response: SyncResponse) -> list[MemberEvent]:
    """Extract ``m.room.member`` timeline events from one sync batch."""

    events: list[MemberEvent] = []
    for room_id, room in response.rooms.join.items():
        for event in room.timeline.events:
            if event.type != EV_MEMBER or event.state_key is None:
                continue
            membership = event.content.get("membership")
            if not isinstance(membership, str):
                continue
            events.append(
                MemberEvent(
                    room_id=room_id,
                    user_id=event.state_key,
                    sender=event.sender,
                    membership=membership,
                    content=event.content,
                )
            )
    return events


class SyncListener:
    """Subscription to membership changes in every joined room.

    The first sync only establishes a position in the stream; the backlog it
    returns is not dispatched. A failing handler is logged and does not stop
    the listener or affect other events of the same batch.
    """

    def __init__(
        self,
        *,
        client: MatrixClient,
        handler: MemberEventHandler,
        timeout_ms: int = DEFAULT_POLL_TIMEOUT_MS,
        error_backoff_seconds: float = DEFAULT_ERROR_BACKOFF_SECONDS,
    ) -> None:
        self._client = client
        self._handler = handler
        self._timeout_ms = timeout_ms
        self._error_backoff_seconds = error_backoff_seconds
        self.since: str | None = None

    async def start(self) -> None:
        response = await self._client.sync(
            since=None, timeout_ms=0, sync_filter=MEMBERSHIP_FILTER
        )
        self.since = response.next_batch
        log.info("Listening for membership events from %s", self.since)

    async def poll_once(self) -> int:
        if self.since is None:
            await self.start()
        response = await self._client.sync(
            since=self.since, timeout_ms=self._timeout_ms, sync_filter=MEMBERSHIP_FILTER
        )
        self.since = response.next_batch
        events = member_events(response)
        if events:
            await self.dispatch(events)
        return len(events)

    async def dispatch(self, events: list[MemberEvent]) -> None:
        results = await asyncio.gather(
            *(self._handler(event) for event in events), return_exceptions=True
        )
        for event, result in zip(events, results, strict=True):
            if isinstance(result, BaseException):
                log.error(
                    "Handling membership of %s in %s failed",
                    event.user_id,
                    event.room_id,
                    exc_info=result,
                )

    async def run(self, *, stop: asyncio.Event | None = None) -> None:
        stop_event = stop or asyncio.Event()
        while not stop_event.is_set():
            try:
                await self.poll_once()
            except SubstrateError:
                log.exception("Sync request failed; retrying in %.0fs", self._error_backoff_seconds)
                try:
                    await asyncio.wait_for(stop_event.wait(), self._error_backoff_seconds)
                except TimeoutError:
                    continue
