"""Domain model for the conference directory."""

from __future__ import annotations

from .entities import (
    Auditorium,
    AuditoriumBackstage,
    DirectoryEntity,
    Entity,
    InterestRoom,
    RoomEntity,
    RootRecord,
    Subspace,
    Talk,
)
from .enums import EffectiveMembership, EntityKind, Role
from .people import InviteTarget, PersonRecord, StoredPerson, TalkRecord

__all__ = [
    "Auditorium",
    "AuditoriumBackstage",
    "DirectoryEntity",
    "EffectiveMembership",
    "Entity",
    "EntityKind",
    "InterestRoom",
    "InviteTarget",
    "PersonRecord",
    "Role",
    "RoomEntity",
    "RootRecord",
    "StoredPerson",
    "Subspace",
    "Talk",
    "TalkRecord",
]
