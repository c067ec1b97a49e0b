"""Entity classification from a room's creation content.

Pure functions only: the builder reads ``m.room.create`` and hands the content
here. A room that is not part of the conference, or whose kind tag is unknown,
classifies to ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

from confsync.domain.model import (
    Auditorium,
    AuditoriumBackstage,
    EntityKind,
    InterestRoom,
    RootRecord,
    Talk,
)
from confsync.domain.model.room_state import (
    RSC_AUDITORIUM_ID,
    RSC_CONFERENCE_ID,
    RSC_ROOM_KIND_FLAG,
    RSC_SPECIAL_INTEREST_ID,
    RSC_TALK_ID,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from confsync.domain.model import RoomEntity


@dataclass(frozen=True, slots=True)
class Classification:
    kind: EntityKind
    entity_id: str
    auditorium_id: str | None = None


def classify_creation(
    content: Mapping[str, object] | None,
    conference_id: str,
) -> Classification | None:
    """Decide which entity a room's creation content describes, if any."""

    if not content or content.get(RSC_CONFERENCE_ID) != conference_id:
        return None

    tag = content.get(RSC_ROOM_KIND_FLAG)
    if not isinstance(tag, str):
        return None
    try:
        kind = EntityKind(tag)
    except ValueError:
        return None

    match kind:
        case EntityKind.ROOT:
            return Classification(kind, conference_id)
        case EntityKind.AUDITORIUM | EntityKind.AUDITORIUM_BACKSTAGE:
            auditorium_id = _text(content, RSC_AUDITORIUM_ID)
            return Classification(kind, auditorium_id) if auditorium_id else None
        case EntityKind.TALK:
            talk_id = _text(content, RSC_TALK_ID)
            if not talk_id:
                return None
            return Classification(kind, talk_id, _text(content, RSC_AUDITORIUM_ID))
        case EntityKind.INTEREST_ROOM:
            interest_id = _text(content, RSC_SPECIAL_INTEREST_ID)
            return Classification(kind, interest_id) if interest_id else None
        case EntityKind.SUBSPACE:
            # subspaces are recorded in the root room, never tagged at creation
            return None
        case _:
            assert_never(kind)


def build_entity(room_id: str, classification: Classification) -> RoomEntity:
    entity_id = classification.entity_id
    match classification.kind:
        case EntityKind.ROOT:
            return RootRecord(room_id=room_id, entity_id=entity_id)
        case EntityKind.AUDITORIUM:
            return Auditorium(room_id=room_id, entity_id=entity_id)
        case EntityKind.AUDITORIUM_BACKSTAGE:
            return AuditoriumBackstage(room_id=room_id, entity_id=entity_id)
        case EntityKind.TALK:
            return Talk(
                room_id=room_id,
                entity_id=entity_id,
                auditorium_id=classification.auditorium_id,
            )
        case EntityKind.INTEREST_ROOM:
            return InterestRoom(room_id=room_id, entity_id=entity_id)
        case EntityKind.SUBSPACE:
            raise ValueError("Subspaces are not backed by tagged rooms")
        case _:
            assert_never(classification.kind)


def classify_room(
    room_id: str,
    content: Mapping[str, object] | None,
    conference_id: str,
) -> RoomEntity | None:
    classification = classify_creation(content, conference_id)
    if classification is None:
        return None
    return build_entity(room_id, classification)


def _text(content: Mapping[str, object], key: str) -> str | None:
    value = content.get(key)
    if isinstance(value, str) and value:
        return value
    return None
