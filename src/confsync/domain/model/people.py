"""People: backend person records, their cached copies and resolved invite targets."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from confsync.domain.model.enums import Role


@dataclass(frozen=True, slots=True, kw_only=True)
class PersonRecord:
    """A role assignment from the backend event database.

    The same ``person_id`` appears once per talk/auditorium the person is attached
    to, so lookups by ID return several records.
    """

    person_id: str
    name: str
    role: Role
    email: str | None = None
    matrix_id: str | None = None
    talk_id: str | None = None
    auditorium_id: str | None = None

    def with_matrix_id(self, matrix_id: str) -> PersonRecord:
        return replace(self, matrix_id=matrix_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class StoredPerson:
    """Root-room copy of a person, kept to remember identity correlation across restarts.

    Role data here is only a snapshot from the last write; the backend stays
    authoritative for roles. ``matrix_id`` is what this cache is trusted for.
    """

    conference_id: str
    person_id: str
    name: str
    role: Role
    email: str | None = None
    matrix_id: str | None = None

    @classmethod
    def from_record(cls, conference_id: str, person: PersonRecord) -> StoredPerson:
        return cls(
            conference_id=conference_id,
            person_id=person.person_id,
            name=person.name,
            role=person.role,
            email=person.email,
            matrix_id=person.matrix_id,
        )


@dataclass(frozen=True, slots=True)
class InviteTarget:
    """A person paired with the platform identity to act on, if one is known."""

    person: PersonRecord
    mxid: str | None = None

    @property
    def person_id(self) -> str:
        return self.person.person_id


@dataclass(frozen=True, slots=True, kw_only=True)
class TalkRecord:
    talk_id: str
    auditorium_id: str
    title: str
    slug: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    prerecorded: bool = False
