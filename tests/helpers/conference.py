from __future__ import annotations

from dataclasses import dataclass, field

from confsync.config import ConferenceConfig
from confsync.domain.conference import Conference

from tests.helpers.fake_backend import FakeBackend
from tests.helpers.fake_substrate import (
    CONFERENCE_ID,
    FakeSubstrate,
    FakeThirdPartyInviter,
    creation,
)

MODERATOR = "@moderator:example.org"


@dataclass
class ConferenceHarness:
    substrate: FakeSubstrate = field(default_factory=FakeSubstrate)
    backend: FakeBackend = field(default_factory=FakeBackend)
    config: ConferenceConfig = field(
        default_factory=lambda: ConferenceConfig(
            conference_id=CONFERENCE_ID, moderator_user_id=MODERATOR, batch_size=2
        )
    )
    with_email_invites: bool = True

    def build(self) -> Conference:
        third_party = FakeThirdPartyInviter(self.substrate) if self.with_email_invites else None
        return Conference(
            config=self.config,
            substrate=self.substrate,
            backend=self.backend,
            third_party=third_party,
        )

    def add_root(self, room_id: str = "!root:example.org") -> str:
        self.substrate.add_room(room_id, creation(CONFERENCE_ID, "conference"))
        return room_id

    def add_auditorium(self, auditorium_id: str, room_id: str | None = None) -> str:
        room_id = room_id or f"!aud-{auditorium_id}:example.org"
        self.substrate.add_room(
            room_id, creation(CONFERENCE_ID, "auditorium", auditorium=auditorium_id)
        )
        return room_id

    def add_backstage(self, auditorium_id: str, room_id: str | None = None) -> str:
        room_id = room_id or f"!back-{auditorium_id}:example.org"
        self.substrate.add_room(
            room_id, creation(CONFERENCE_ID, "auditorium_backstage", auditorium=auditorium_id)
        )
        return room_id

    def add_talk(self, talk_id: str, auditorium_id: str, room_id: str | None = None) -> str:
        room_id = room_id or f"!talk-{talk_id}:example.org"
        self.substrate.add_room(
            room_id, creation(CONFERENCE_ID, "talk", talk=talk_id, auditorium=auditorium_id)
        )
        return room_id

    def add_interest(self, interest_id: str, room_id: str | None = None) -> str:
        room_id = room_id or f"!si-{interest_id}:example.org"
        self.substrate.add_room(
            room_id, creation(CONFERENCE_ID, "special_interest", interest=interest_id)
        )
        return room_id
