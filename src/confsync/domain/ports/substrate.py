"""Port for the room substrate: a capability-based client of a federated room service."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol, cast, runtime_checkable


class SubstrateError(RuntimeError):
    """Raised by substrate adapters when a request fails.

    Reads of state that simply does not exist are not failures; they return ``None``.
    """


@dataclass(frozen=True, slots=True, kw_only=True)
class StateEvent:
    """One current-state record of a room."""

    type: str
    state_key: str
    sender: str
    content: Mapping[str, object] = field(default_factory=dict[str, object])


@dataclass(frozen=True, slots=True, kw_only=True)
class MemberEvent:
    """A membership change delivered by the event subscription."""

    room_id: str
    user_id: str
    sender: str
    membership: str
    content: Mapping[str, object] = field(default_factory=dict[str, object])

    @property
    def third_party_token(self) -> str | None:
        """Token of the third-party invite this join redeems, if any."""

        invite = self.content.get("third_party_invite")
        if not isinstance(invite, Mapping):
            return None
        signed = cast(Mapping[str, object], invite).get("signed")
        if not isinstance(signed, Mapping):
            return None
        token = cast(Mapping[str, object], signed).get("token")
        return token if isinstance(token, str) and token else None


type MemberEventHandler = Callable[[MemberEvent], Awaitable[None]]


@runtime_checkable
class RoomSubstrate(Protocol):
    """Operations the directory needs from the room service."""

    async def get_user_id(self) -> str: ...

    async def get_joined_rooms(self) -> list[str]: ...

    async def get_room_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str = "",
    ) -> dict[str, object] | None:
        """Return the content of one state record, or ``None`` if the room has none."""
        ...

    async def get_room_state(self, room_id: str) -> list[StateEvent]: ...

    async def send_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: Mapping[str, object],
    ) -> None: ...

    async def resolve_room(self, room_id_or_alias: str) -> str | None:
        """Return the room ID for an alias (IDs pass through); ``None`` if unknown."""
        ...

    async def invite_user(self, room_id: str, user_id: str) -> None: ...


@runtime_checkable
class ThirdPartyInviter(Protocol):
    """Issues invites addressed to an e-mail address instead of a platform identity.

    The resulting ``m.room.third_party_invite`` record must carry the person ID so
    redemptions can be correlated back to the person.
    """

    async def invite_by_email(self, room_id: str, *, email: str, person_id: str) -> None: ...
