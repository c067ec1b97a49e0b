"""Conference entities: logical objects each backed by exactly one room."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from confsync.domain.model.enums import EntityKind


@dataclass(frozen=True, slots=True, kw_only=True)
class Entity:
    """Base for every directory entity.

    ``entity_id`` is the logical ID, unique within ``KIND``; ``room_id`` is the
    physical room and never changes once assigned.
    """

    KIND: ClassVar[EntityKind]

    room_id: str
    entity_id: str

    @property
    def key(self) -> tuple[EntityKind, str]:
        return (self.KIND, self.entity_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class RootRecord(Entity):
    """The conference's data-store room; ``entity_id`` is the conference ID."""

    KIND: ClassVar[EntityKind] = EntityKind.ROOT


@dataclass(frozen=True, slots=True, kw_only=True)
class Auditorium(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.AUDITORIUM


@dataclass(frozen=True, slots=True, kw_only=True)
class AuditoriumBackstage(Entity):
    """Backstage of an auditorium; shares the auditorium's logical ID."""

    KIND: ClassVar[EntityKind] = EntityKind.AUDITORIUM_BACKSTAGE


@dataclass(frozen=True, slots=True, kw_only=True)
class Talk(Entity):
    """A talk room.

    ``auditorium_id`` is a weak reference: the auditorium may never have been
    cataloged, so resolve it through the catalog and expect ``None``.
    """

    KIND: ClassVar[EntityKind] = EntityKind.TALK

    auditorium_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class InterestRoom(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.INTEREST_ROOM


@dataclass(frozen=True, slots=True, kw_only=True)
class Subspace(Entity):
    KIND: ClassVar[EntityKind] = EntityKind.SUBSPACE


type RoomEntity = RootRecord | Auditorium | AuditoriumBackstage | Talk | InterestRoom
type DirectoryEntity = RoomEntity | Subspace
