from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from confsync.domain.model.room_state import (
    EV_CREATE,
    EV_MEMBER,
    EV_POWER_LEVELS,
    EV_THIRD_PARTY_INVITE,
    RS_3PID_PERSON_ID,
    RSC_AUDITORIUM_ID,
    RSC_CONFERENCE_ID,
    RSC_ROOM_KIND_FLAG,
    RSC_SPECIAL_INTEREST_ID,
    RSC_TALK_ID,
)
from confsync.domain.ports.substrate import StateEvent, SubstrateError

BOT_USER_ID = "@confbot:example.org"
CONFERENCE_ID = "fosdem-2026"


def creation(conference_id: str | None, kind: str | None, **extra: str) -> dict[str, object]:
    content: dict[str, object] = {"creator": BOT_USER_ID}
    if conference_id is not None:
        content[RSC_CONFERENCE_ID] = conference_id
    if kind is not None:
        content[RSC_ROOM_KIND_FLAG] = kind
    keys = {
        "auditorium": RSC_AUDITORIUM_ID,
        "talk": RSC_TALK_ID,
        "interest": RSC_SPECIAL_INTEREST_ID,
    }
    for name, value in extra.items():
        content[keys[name]] = value
    return content


@dataclass
class FakeSubstrate:
    """In-memory room service keyed by (room, event type, state key)."""

    user_id: str = BOT_USER_ID
    state: dict[str, dict[tuple[str, str], StateEvent]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    unreadable_rooms: set[str] = field(default_factory=set)
    unreadable_state: set[str] = field(default_factory=set)
    failing_invites: set[str] = field(default_factory=set)
    fail_joined_rooms: bool = False
    joined: list[str] = field(default_factory=list)
    invites: list[tuple[str, str]] = field(default_factory=list)
    writes: list[tuple[str, str, str, dict[str, object]]] = field(default_factory=list)
    creation_reads: int = 0

    def add_room(
        self,
        room_id: str,
        content: Mapping[str, object] | None,
        *,
        creator: str = BOT_USER_ID,
        join: bool = True,
    ) -> None:
        room = self.state.setdefault(room_id, {})
        if content is not None:
            room[(EV_CREATE, "")] = StateEvent(
                type=EV_CREATE, state_key="", sender=creator, content=dict(content)
            )
        if join:
            self.joined.append(room_id)

    def put_state(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: Mapping[str, object],
        *,
        sender: str = BOT_USER_ID,
    ) -> None:
        self.state.setdefault(room_id, {})[(event_type, state_key)] = StateEvent(
            type=event_type, state_key=state_key, sender=sender, content=dict(content)
        )

    def set_membership(self, room_id: str, user_id: str, membership: str) -> None:
        self.put_state(room_id, EV_MEMBER, user_id, {"membership": membership}, sender=user_id)

    def add_pending_email_invite(
        self,
        room_id: str,
        token: str,
        person_id: str | None,
        *,
        sender: str = BOT_USER_ID,
    ) -> None:
        content: dict[str, object] = {"display_name": "a...@example.org"}
        if person_id is not None:
            content[RS_3PID_PERSON_ID] = person_id
        self.put_state(room_id, EV_THIRD_PARTY_INVITE, token, content, sender=sender)

    def set_power_levels(self, room_id: str, users: Mapping[str, int]) -> None:
        self.put_state(
            room_id, EV_POWER_LEVELS, "", {"users": dict(users), "state_default": 50}
        )

    def content(self, room_id: str, event_type: str, state_key: str = "") -> dict[str, object]:
        return dict(self.state[room_id][(event_type, state_key)].content)

    async def get_user_id(self) -> str:
        return self.user_id

    async def get_joined_rooms(self) -> list[str]:
        if self.fail_joined_rooms:
            raise SubstrateError("joined_rooms unavailable")
        return list(self.joined)

    async def get_room_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str = "",
    ) -> dict[str, object] | None:
        if event_type == EV_CREATE:
            self.creation_reads += 1
        if room_id in self.unreadable_rooms:
            raise SubstrateError(f"cannot read {room_id}")
        event = self.state.get(room_id, {}).get((event_type, state_key))
        return dict(event.content) if event is not None else None

    async def get_room_state(self, room_id: str) -> list[StateEvent]:
        if room_id in self.unreadable_rooms or room_id in self.unreadable_state:
            raise SubstrateError(f"cannot read state of {room_id}")
        return list(self.state.get(room_id, {}).values())

    async def send_state_event(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: Mapping[str, object],
    ) -> None:
        self.writes.append((room_id, event_type, state_key, dict(content)))
        self.put_state(room_id, event_type, state_key, content)

    async def resolve_room(self, room_id_or_alias: str) -> str | None:
        if room_id_or_alias.startswith("!"):
            return room_id_or_alias
        return self.aliases.get(room_id_or_alias)

    async def invite_user(self, room_id: str, user_id: str) -> None:
        if user_id in self.failing_invites:
            raise SubstrateError(f"cannot invite {user_id}")
        self.invites.append((room_id, user_id))
        self.put_state(room_id, EV_MEMBER, user_id, {"membership": "invite"})


@dataclass
class FakeThirdPartyInviter:
    substrate: FakeSubstrate
    sent: list[tuple[str, str, str]] = field(default_factory=list)

    async def invite_by_email(self, room_id: str, *, email: str, person_id: str) -> None:
        self.sent.append((room_id, email, person_id))
        token = f"token-{len(self.sent)}"
        self.substrate.add_pending_email_invite(room_id, token, person_id)
