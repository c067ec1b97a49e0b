"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityKind(StrEnum):
    """Kind tag of a conference entity.

    The values of the room-backed kinds are the tags written into room creation
    content and must stay stable for rooms that already exist.
    """

    ROOT = "conference"
    AUDITORIUM = "auditorium"
    AUDITORIUM_BACKSTAGE = "auditorium_backstage"
    TALK = "talk"
    INTEREST_ROOM = "special_interest"

    # Not tagged on rooms; discovered from the root room's state instead.
    SUBSPACE = "subspace"


class Role(StrEnum):
    SPEAKER = "speaker"
    HOST = "host"
    COORDINATOR = "coordinator"


class EffectiveMembership(StrEnum):
    """Collapsed membership: bans and knocks count as ``leave``."""

    JOIN = "join"
    INVITE = "invite"
    LEAVE = "leave"

    @classmethod
    def from_membership(cls, membership: str | None) -> EffectiveMembership:
        if membership == "join":
            return cls.JOIN
        if membership == "invite":
            return cls.INVITE
        return cls.LEAVE
