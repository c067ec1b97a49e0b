"""Conference-level configuration: which conference this agent manages and how."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import cast

from .env import json_object_env_var, optional_env_var, require_env_vars
from .errors import ConfigurationError

DEFAULT_ROOM_BATCH_SIZE = 20


@dataclass(frozen=True, slots=True)
class SubspaceConfig:
    """A configured grouping space; entities whose ID starts with a prefix live in it."""

    name: str
    alias_localpart: str
    prefixes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SupportRooms:
    speakers: str | None = None
    coordinators: str | None = None
    special_interest: str | None = None


@dataclass(frozen=True, slots=True)
class ConferenceConfig:
    conference_id: str
    moderator_user_id: str
    batch_size: int = DEFAULT_ROOM_BATCH_SIZE
    existing_interest_rooms: dict[str, str] = field(default_factory=dict[str, str])
    subspaces: dict[str, SubspaceConfig] = field(default_factory=dict[str, SubspaceConfig])
    support_rooms: SupportRooms = field(default_factory=SupportRooms)

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ConfigurationError("Room batch size must be at least 1")


def get_conference_config() -> ConferenceConfig:
    values = require_env_vars(("CONFERENCE_ID", "CONFERENCE_MODERATOR_USER_ID"))
    batch = optional_env_var("CONFERENCE_ROOM_BATCH_SIZE")

    return ConferenceConfig(
        conference_id=values["CONFERENCE_ID"],
        moderator_user_id=values["CONFERENCE_MODERATOR_USER_ID"],
        batch_size=_parse_batch_size(batch),
        existing_interest_rooms=_parse_existing_interest_rooms(
            json_object_env_var("CONFERENCE_EXISTING_INTEREST_ROOMS")
        ),
        subspaces=_parse_subspaces(json_object_env_var("CONFERENCE_SUBSPACES")),
        support_rooms=SupportRooms(
            speakers=optional_env_var("CONFERENCE_SUPPORT_SPEAKERS"),
            coordinators=optional_env_var("CONFERENCE_SUPPORT_COORDINATORS"),
            special_interest=optional_env_var("CONFERENCE_SUPPORT_SPECIAL_INTEREST"),
        ),
    )


def _parse_batch_size(raw: str | None) -> int:
    if raw is None:
        return DEFAULT_ROOM_BATCH_SIZE
    try:
        return int(raw)
    except ValueError as exc:
        msg = f"CONFERENCE_ROOM_BATCH_SIZE must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from exc


def _parse_existing_interest_rooms(raw: dict[str, object]) -> dict[str, str]:
    rooms: dict[str, str] = {}
    for interest_id, room in raw.items():
        if not isinstance(room, str) or not room.strip():
            raise ConfigurationError(
                f"Existing interest room {interest_id!r} must map to a room ID or alias"
            )
        rooms[interest_id] = room.strip()
    return rooms


def _parse_subspaces(raw: dict[str, object]) -> dict[str, SubspaceConfig]:
    subspaces: dict[str, SubspaceConfig] = {}
    for subspace_id, entry in raw.items():
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Subspace {subspace_id!r} must be a JSON object")
        data = cast(dict[str, object], entry)
        prefixes = data.get("prefixes", [])
        if not isinstance(prefixes, list):
            raise ConfigurationError(f"Subspace {subspace_id!r} prefixes must be a list")
        subspaces[subspace_id] = SubspaceConfig(
            name=str(data.get("name", subspace_id)),
            alias_localpart=str(data.get("alias", subspace_id)),
            prefixes=tuple(str(prefix) for prefix in cast(list[object], prefixes)),
        )
    return subspaces
