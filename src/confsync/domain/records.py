"""Pydantic models for the room-state record contents the directory reads and writes.

Field aliases are the on-the-wire keys; rooms created by earlier deployments use
exactly these shapes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from confsync.domain.model import Role, StoredPerson
from confsync.domain.model.room_state import RS_3PID_PERSON_ID

if TYPE_CHECKING:
    from collections.abc import Mapping

__all__ = [
    "PowerLevelsContent",
    "RoomPointerContent",
    "StoredPersonContent",
    "ThirdPartyInviteContent",
    "ValidationError",
    "parse_stored_person",
]


class RecordModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StoredPersonContent(RecordModel):
    conference_id: str = Field(alias="conferenceId")
    person_id: str = Field(alias="pentaId")
    name: str = ""
    role: Role
    email: str | None = None
    user_id: str | None = Field(default=None, alias="userId")

    @classmethod
    def from_stored(cls, person: StoredPerson) -> StoredPersonContent:
        return cls(
            conference_id=person.conference_id,
            person_id=person.person_id,
            name=person.name,
            role=person.role,
            email=person.email,
            user_id=person.matrix_id,
        )

    def to_stored(self) -> StoredPerson:
        return StoredPerson(
            conference_id=self.conference_id,
            person_id=self.person_id,
            name=self.name,
            role=self.role,
            email=self.email,
            matrix_id=self.user_id,
        )

    def to_content(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RoomPointerContent(RecordModel):
    """Content of records pointing at another room (stored spaces and subspaces)."""

    room_id: str = Field(alias="roomId")


class ThirdPartyInviteContent(RecordModel):
    display_name: str | None = None
    key_validity_url: str | None = None
    public_key: str | None = None
    public_keys: list[dict[str, str]] | None = None
    person_id: str | None = Field(default=None, alias=RS_3PID_PERSON_ID)

    def to_content(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PowerLevelsContent(BaseModel):
    """``m.room.power_levels``; keys other than ``users`` are carried through untouched."""

    model_config = ConfigDict(extra="allow")

    users: dict[str, int] = Field(default_factory=dict[str, int])

    def to_content(self) -> dict[str, object]:
        return self.model_dump(mode="json")


def parse_stored_person(content: Mapping[str, object]) -> StoredPerson | None:
    try:
        return StoredPersonContent.model_validate(content).to_stored()
    except ValidationError:
        return None
