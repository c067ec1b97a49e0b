"""Persistence of stored people in the conference's root room."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from confsync.domain.errors import RootRoomMissingError
from confsync.domain.model import StoredPerson
from confsync.domain.model.room_state import RS_STORED_PERSON
from confsync.domain.records import StoredPersonContent

if TYPE_CHECKING:
    from confsync.domain.catalog import DirectoryCatalog
    from confsync.domain.model import PersonRecord
    from confsync.domain.ports.substrate import RoomSubstrate


class PersonStore:
    def __init__(self, *, substrate: RoomSubstrate, catalog: DirectoryCatalog) -> None:
        self._substrate = substrate
        self._catalog = catalog

    async def create_update_person(self, person: PersonRecord) -> StoredPerson:
        """Write ``person`` to the root room (one record per person ID) and cache it.

        A correlation already on record is kept when ``person`` carries none.
        """

        snapshot = self._catalog.snapshot
        root = snapshot.root
        if root is None:
            raise RootRoomMissingError(self._catalog.conference_id)

        stored = StoredPerson.from_record(self._catalog.conference_id, person)
        previous = snapshot.person(person.person_id)
        if stored.matrix_id is None and previous is not None and previous.matrix_id:
            stored = replace(stored, matrix_id=previous.matrix_id)

        await self._substrate.send_state_event(
            root.room_id,
            RS_STORED_PERSON,
            stored.person_id,
            StoredPersonContent.from_stored(stored).to_content(),
        )
        self._catalog.record_person(stored)
        return stored
