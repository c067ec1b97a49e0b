"""Role-filtered people queries for conference entities.

Roles always come from the backend event database. The catalog's person cache
only contributes identity correlation: a backend record without a
``matrix_id`` borrows the one recorded when that person redeemed an invite.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from confsync.domain.model import InviteTarget, Role

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from confsync.domain.catalog import DirectoryCatalog
    from confsync.domain.model import (
        Auditorium,
        AuditoriumBackstage,
        InterestRoom,
        PersonRecord,
        Talk,
    )
    from confsync.domain.ports.backend import BackendEventDatabase

INVITE_ROLES: Final = frozenset({Role.COORDINATOR, Role.HOST, Role.SPEAKER})
AUDITORIUM_MODERATOR_ROLES: Final = frozenset({Role.COORDINATOR})
TALK_MODERATOR_ROLES: Final = frozenset({Role.COORDINATOR, Role.SPEAKER, Role.HOST})
INTEREST_MODERATOR_ROLES: Final = frozenset({Role.HOST, Role.COORDINATOR})


class ConferencePeople:
    def __init__(self, *, backend: BackendEventDatabase, catalog: DirectoryCatalog) -> None:
        self._backend = backend
        self._catalog = catalog

    async def for_auditorium(
        self, auditorium: Auditorium | AuditoriumBackstage
    ) -> list[PersonRecord]:
        return self._correlate(
            await self._backend.find_all_people_for_auditorium(auditorium.entity_id)
        )

    async def for_talk(self, talk: Talk) -> list[PersonRecord]:
        return self._correlate(await self._backend.find_all_people_for_talk(talk.entity_id))

    async def for_interest(self, interest_room: InterestRoom) -> list[PersonRecord]:
        # the backend models interest rooms as auditoriums
        return self._correlate(
            await self._backend.find_all_people_for_auditorium(interest_room.entity_id)
        )

    async def invite_targets_for_auditorium(
        self, auditorium: Auditorium | AuditoriumBackstage
    ) -> list[PersonRecord]:
        return with_roles(await self.for_auditorium(auditorium), INVITE_ROLES)

    async def invite_targets_for_talk(self, talk: Talk) -> list[PersonRecord]:
        return with_roles(await self.for_talk(talk), INVITE_ROLES)

    async def invite_targets_for_interest(self, interest_room: InterestRoom) -> list[PersonRecord]:
        return with_roles(await self.for_interest(interest_room), INVITE_ROLES)

    async def moderators_for_auditorium(
        self, auditorium: Auditorium | AuditoriumBackstage
    ) -> list[PersonRecord]:
        return with_roles(await self.for_auditorium(auditorium), AUDITORIUM_MODERATOR_ROLES)

    async def moderators_for_talk(self, talk: Talk) -> list[PersonRecord]:
        return with_roles(await self.for_talk(talk), TALK_MODERATOR_ROLES)

    async def moderators_for_interest(self, interest_room: InterestRoom) -> list[PersonRecord]:
        return with_roles(await self.for_interest(interest_room), INTEREST_MODERATOR_ROLES)

    def _correlate(self, people: Iterable[PersonRecord]) -> list[PersonRecord]:
        snapshot = self._catalog.snapshot
        correlated: list[PersonRecord] = []
        for person in people:
            if person.matrix_id is None:
                stored = snapshot.person(person.person_id)
                if stored is not None and stored.matrix_id:
                    person = person.with_matrix_id(stored.matrix_id)  # noqa: PLW2901
            correlated.append(person)
        return correlated


def with_roles(people: Iterable[PersonRecord], roles: Collection[Role]) -> list[PersonRecord]:
    return [person for person in people if person.role in roles]


def unique_people(people: Iterable[PersonRecord]) -> list[PersonRecord]:
    """Drop repeated person IDs, keeping the first record seen."""

    seen: set[str] = set()
    unique: list[PersonRecord] = []
    for person in people:
        if person.person_id in seen:
            continue
        seen.add(person.person_id)
        unique.append(person)
    return unique


def resolve_invite_targets(people: Iterable[PersonRecord]) -> list[InviteTarget]:
    return [InviteTarget(person, person.matrix_id) for person in unique_people(people)]
