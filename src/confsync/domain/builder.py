"""Catalog rebuild: rediscover every conference entity from the rooms the agent has joined.

Rooms are only discoverable by enumeration, so a rebuild lists joined rooms,
reads each room's creation content in bounded concurrent batches, classifies
it, and then hydrates people and subspaces from the root room. The result is
published as one snapshot; if the rebuild dies before that, readers keep the
previous catalog.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING

from confsync.domain.catalog import CatalogDraft
from confsync.domain.classify import classify_room
from confsync.domain.errors import CatalogHydrationError
from confsync.domain.model import EntityKind, InterestRoom, Subspace
from confsync.domain.model.room_state import EV_CREATE, RS_STORED_PERSON, RS_STORED_SUBSPACE
from confsync.domain.ports.substrate import SubstrateError
from confsync.domain.records import RoomPointerContent, ValidationError, parse_stored_person

if TYPE_CHECKING:
    from confsync.config.conference import ConferenceConfig
    from confsync.domain.catalog import DirectoryCatalog
    from confsync.domain.ports.substrate import RoomSubstrate

log = getLogger(__name__)


@dataclass(slots=True)
class RebuildResult:
    """Outcome of one rebuild."""

    rooms_scanned: int = 0
    entities: int = 0
    people: int = 0
    unreadable_rooms: list[str] = field(default_factory=list[str])
    hydrated: bool = False


class CatalogBuilder:
    def __init__(
        self,
        *,
        substrate: RoomSubstrate,
        catalog: DirectoryCatalog,
        config: ConferenceConfig,
    ) -> None:
        self._substrate = substrate
        self._catalog = catalog
        self._config = config

    @property
    def conference_id(self) -> str:
        return self._config.conference_id

    async def rebuild(self) -> RebuildResult:
        """Rebuild the catalog from scratch and publish it.

        Callers must not run two rebuilds at once. Failure to enumerate joined
        rooms leaves the previous catalog in place. Failure to read the root
        room publishes the discovered rooms without people or subspaces and
        raises :class:`CatalogHydrationError`.
        """

        draft = CatalogDraft(self.conference_id)
        result = RebuildResult()

        room_ids = await self._substrate.get_joined_rooms()
        result.rooms_scanned = len(room_ids)
        log.info(
            "Rebuilding catalog for %s from %s joined rooms", self.conference_id, len(room_ids)
        )

        for batch in batched(room_ids, self._config.batch_size):
            contents = await asyncio.gather(
                *(self._read_creation(room_id) for room_id in batch),
                return_exceptions=True,
            )
            for room_id, content in zip(batch, contents, strict=True):
                if isinstance(content, SubstrateError):
                    log.debug("Skipping room %s: creation unreadable (%s)", room_id, content)
                    result.unreadable_rooms.append(room_id)
                    continue
                if isinstance(content, BaseException):
                    raise content
                entity = classify_room(room_id, content, self.conference_id)
                if entity is not None:
                    draft.add(entity)

        await self._resolve_existing_interest_rooms(draft)

        root = draft.root
        if root is None:
            log.info("No root room found for %s; skipping hydration", self.conference_id)
            return self._publish(draft, result)

        try:
            state = await self._substrate.get_room_state(root.room_id)
        except SubstrateError as exc:
            self._publish(draft, result)
            raise CatalogHydrationError(
                f"Could not read root room {root.room_id} of {self.conference_id}"
            ) from exc

        for event in state:
            if not event.content:
                continue
            if event.type == RS_STORED_PERSON:
                person = parse_stored_person(event.content)
                if person is None:
                    log.warning("Ignoring malformed stored person %r", event.state_key)
                    continue
                draft.add_person(person)
            elif event.type == RS_STORED_SUBSPACE:
                try:
                    subspace = RoomPointerContent.model_validate(event.content)
                except ValidationError:
                    log.warning("Ignoring malformed stored subspace %r", event.state_key)
                    continue
                draft.add(Subspace(room_id=subspace.room_id, entity_id=event.state_key))

        result.hydrated = True
        return self._publish(draft, result)

    async def _read_creation(self, room_id: str) -> dict[str, object] | None:
        return await self._substrate.get_room_state_event(room_id, EV_CREATE, "")

    async def _resolve_existing_interest_rooms(self, draft: CatalogDraft) -> None:
        for interest_id, room_id_or_alias in self._config.existing_interest_rooms.items():
            if (EntityKind.INTEREST_ROOM, interest_id) in draft:
                continue
            try:
                room_id = await self._substrate.resolve_room(room_id_or_alias)
            except SubstrateError as exc:
                log.debug(
                    "Could not resolve %s for interest room %s: %s",
                    room_id_or_alias,
                    interest_id,
                    exc,
                )
                continue
            if room_id is None:
                # the room probably doesn't exist yet
                continue
            draft.add(InterestRoom(room_id=room_id, entity_id=interest_id))

    def _publish(self, draft: CatalogDraft, result: RebuildResult) -> RebuildResult:
        snapshot = draft.freeze()
        self._catalog.publish(snapshot)
        result.entities = len(snapshot.all_entities())
        result.people = len(snapshot.people)
        log.info(
            "Catalog for %s rebuilt: %s entities, %s people, %s unreadable rooms",
            self.conference_id,
            result.entities,
            result.people,
            len(result.unreadable_rooms),
        )
        return result

