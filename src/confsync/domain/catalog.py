"""The directory catalog: every known conference entity, indexed by logical ID and by room.

Readers work on a :class:`CatalogSnapshot`, an immutable value. The
:class:`DirectoryCatalog` owns the current snapshot and replaces it wholesale,
so a reader holding a snapshot never sees a half-built directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING

from confsync.domain.model import (
    Auditorium,
    AuditoriumBackstage,
    EntityKind,
    InterestRoom,
    RootRecord,
    Subspace,
    Talk,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from confsync.domain.model import DirectoryEntity, StoredPerson

log = getLogger(__name__)

type EntityMap = Mapping[str, DirectoryEntity]

# Room → entity resolution for permission updates; first match wins.
MODERATED_KINDS: tuple[EntityKind, ...] = (
    EntityKind.AUDITORIUM,
    EntityKind.AUDITORIUM_BACKSTAGE,
    EntityKind.TALK,
)


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    conference_id: str
    entities: Mapping[EntityKind, EntityMap] = field(default_factory=lambda: MappingProxyType({}))
    people: Mapping[str, StoredPerson] = field(default_factory=lambda: MappingProxyType({}))
    rooms: Mapping[EntityKind, Mapping[str, DirectoryEntity]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def build(
        cls,
        conference_id: str,
        entities: Iterable[DirectoryEntity],
        people: Iterable[StoredPerson] = (),
    ) -> CatalogSnapshot:
        by_kind: dict[EntityKind, dict[str, DirectoryEntity]] = {}
        by_room: dict[EntityKind, dict[str, DirectoryEntity]] = {}
        for entity in entities:
            by_kind.setdefault(entity.KIND, {})[entity.entity_id] = entity
        # the room index is derived from the surviving entries so overwritten rooms drop out
        for kind, entries in by_kind.items():
            by_room[kind] = {entity.room_id: entity for entity in entries.values()}
        return cls(
            conference_id=conference_id,
            entities=_freeze(by_kind),
            people=MappingProxyType({person.person_id: person for person in people}),
            rooms=_freeze(by_room),
        )

    def all_entities(self) -> list[DirectoryEntity]:
        return [entity for entries in self.entities.values() for entity in entries.values()]

    def keys(self) -> set[tuple[EntityKind, str]]:
        return {entity.key for entity in self.all_entities()}

    def of_kind(self, kind: EntityKind) -> list[DirectoryEntity]:
        return list(self.entities.get(kind, {}).values())

    def get(self, kind: EntityKind, entity_id: str) -> DirectoryEntity | None:
        return self.entities.get(kind, {}).get(entity_id)

    def auditoriums(self) -> list[Auditorium]:
        return [e for e in self.of_kind(EntityKind.AUDITORIUM) if isinstance(e, Auditorium)]

    def backstages(self) -> list[AuditoriumBackstage]:
        return [
            e
            for e in self.of_kind(EntityKind.AUDITORIUM_BACKSTAGE)
            if isinstance(e, AuditoriumBackstage)
        ]

    def talks(self) -> list[Talk]:
        return [e for e in self.of_kind(EntityKind.TALK) if isinstance(e, Talk)]

    def interest_rooms(self) -> list[InterestRoom]:
        return [e for e in self.of_kind(EntityKind.INTEREST_ROOM) if isinstance(e, InterestRoom)]

    @property
    def root(self) -> RootRecord | None:
        entity = self.get(EntityKind.ROOT, self.conference_id)
        return entity if isinstance(entity, RootRecord) else None

    def auditorium(self, auditorium_id: str) -> Auditorium | None:
        entity = self.get(EntityKind.AUDITORIUM, auditorium_id)
        return entity if isinstance(entity, Auditorium) else None

    def backstage(self, auditorium_id: str) -> AuditoriumBackstage | None:
        entity = self.get(EntityKind.AUDITORIUM_BACKSTAGE, auditorium_id)
        return entity if isinstance(entity, AuditoriumBackstage) else None

    def talk(self, talk_id: str) -> Talk | None:
        entity = self.get(EntityKind.TALK, talk_id)
        return entity if isinstance(entity, Talk) else None

    def interest_room(self, interest_id: str) -> InterestRoom | None:
        entity = self.get(EntityKind.INTEREST_ROOM, interest_id)
        return entity if isinstance(entity, InterestRoom) else None

    def subspace(self, subspace_id: str) -> Subspace | None:
        entity = self.get(EntityKind.SUBSPACE, subspace_id)
        return entity if isinstance(entity, Subspace) else None

    def auditorium_for_talk(self, talk: Talk) -> Auditorium | None:
        if talk.auditorium_id is None:
            return None
        return self.auditorium(talk.auditorium_id)

    def person(self, person_id: str) -> StoredPerson | None:
        return self.people.get(person_id)

    def entity_for_room(
        self,
        room_id: str,
        kinds: Iterable[EntityKind] = MODERATED_KINDS,
    ) -> DirectoryEntity | None:
        for kind in kinds:
            entity = self.rooms.get(kind, {}).get(room_id)
            if entity is not None:
                return entity
        return None

    def with_entity(self, entity: DirectoryEntity) -> CatalogSnapshot:
        entities = [e for e in self.all_entities() if e.key != entity.key]
        entities.append(entity)
        return CatalogSnapshot.build(self.conference_id, entities, self.people.values())

    def with_person(self, person: StoredPerson) -> CatalogSnapshot:
        people = dict(self.people)
        people[person.person_id] = person
        return CatalogSnapshot(
            conference_id=self.conference_id,
            entities=self.entities,
            people=MappingProxyType(people),
            rooms=self.rooms,
        )


class CatalogDraft:
    """Mutable accumulator used while a rebuild is in progress; never visible to readers."""

    def __init__(self, conference_id: str) -> None:
        self.conference_id = conference_id
        self._entities: dict[tuple[EntityKind, str], DirectoryEntity] = {}
        self._people: dict[str, StoredPerson] = {}

    def __contains__(self, key: tuple[EntityKind, str]) -> bool:
        return key in self._entities

    @property
    def root(self) -> RootRecord | None:
        entity = self._entities.get((EntityKind.ROOT, self.conference_id))
        return entity if isinstance(entity, RootRecord) else None

    def add(self, entity: DirectoryEntity) -> None:
        existing = self._entities.get(entity.key)
        if existing is not None and existing.room_id != entity.room_id:
            log.warning(
                "Rooms %s and %s both claim %s %r; keeping %s",
                existing.room_id,
                entity.room_id,
                entity.KIND,
                entity.entity_id,
                entity.room_id,
            )
        self._entities[entity.key] = entity

    def add_person(self, person: StoredPerson) -> None:
        self._people[person.person_id] = person

    def freeze(self) -> CatalogSnapshot:
        return CatalogSnapshot.build(
            self.conference_id,
            self._entities.values(),
            self._people.values(),
        )


class DirectoryCatalog:
    """Owner of the current snapshot.

    The builder publishes complete snapshots. Everyone else only reads, apart from
    the narrow cache updates in :meth:`register`, :meth:`record_person` and
    :meth:`record_subspace`, which also swap in a new snapshot.
    """

    def __init__(self, conference_id: str) -> None:
        self.conference_id = conference_id
        self._snapshot = CatalogSnapshot(conference_id=conference_id)

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    @property
    def is_created(self) -> bool:
        return self._snapshot.root is not None

    def publish(self, snapshot: CatalogSnapshot) -> None:
        if snapshot.conference_id != self.conference_id:
            raise ValueError(
                f"Snapshot for {snapshot.conference_id!r} cannot replace "
                f"catalog of {self.conference_id!r}"
            )
        self._snapshot = snapshot

    def reset(self) -> None:
        self._snapshot = CatalogSnapshot(conference_id=self.conference_id)

    def register(self, entity: DirectoryEntity) -> None:
        self._snapshot = self._snapshot.with_entity(entity)

    def record_person(self, person: StoredPerson) -> None:
        self._snapshot = self._snapshot.with_person(person)

    def record_subspace(self, subspace: Subspace) -> None:
        self.register(subspace)


def _freeze(
    nested: dict[EntityKind, dict[str, DirectoryEntity]],
) -> Mapping[EntityKind, EntityMap]:
    return MappingProxyType({kind: MappingProxyType(inner) for kind, inner in nested.items()})
