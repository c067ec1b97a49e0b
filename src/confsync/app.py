"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from confsync.adapters.identity import IdentityServerInviter
from confsync.adapters.matrix import MatrixClient, SyncListener
from confsync.adapters.sqlalchemy import SqlAlchemyBackendDatabase, create_backend_engine
from confsync.config import get_conference_config, get_identity_server_config, get_matrix_config
from confsync.domain.conference import Conference
from confsync.domain.errors import DirectoryError
from confsync.domain.targets import resolve_invite_targets

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from confsync.config import ConferenceConfig, MatrixConfig
    from confsync.domain.builder import RebuildResult
    from confsync.domain.membership import InviteResult
    from confsync.domain.model import PersonRecord
    from confsync.domain.permissions import PermissionResult
    from confsync.domain.ports.backend import BackendEventDatabase
    from confsync.domain.ports.substrate import RoomSubstrate, ThirdPartyInviter

log = getLogger(__name__)


class InviteScope(StrEnum):
    AUDITORIUM = "auditorium"
    TALK = "talk"
    INTEREST = "interest"
    SPEAKERS_SUPPORT = "speakers-support"
    COORDINATORS_SUPPORT = "coordinators-support"
    INTEREST_SUPPORT = "interest-support"


class ModerationScope(StrEnum):
    AUDITORIUM = "auditorium"
    TALK = "talk"
    INTEREST = "interest"


ENTITY_SCOPES = frozenset({InviteScope.AUDITORIUM, InviteScope.TALK, InviteScope.INTEREST})


@asynccontextmanager
async def open_conference(
    *,
    config: ConferenceConfig | None = None,
    matrix: MatrixConfig | None = None,
    substrate: RoomSubstrate | None = None,
    backend: BackendEventDatabase | None = None,
    third_party: ThirdPartyInviter | None = None,
    database_uri: str | None = None,
) -> AsyncIterator[Conference]:
    """Wire configured adapters into a ``Conference`` and close them afterwards.

    Any adapter passed in is used as-is and left open.
    """

    conference_config = config or get_conference_config()
    async with AsyncExitStack() as stack:
        if substrate is None:
            client = MatrixClient(config=matrix or get_matrix_config())
            stack.push_async_callback(client.aclose)
            substrate = client
        if backend is None:
            engine = create_backend_engine(database_uri)
            stack.callback(engine.dispose)
            backend = SqlAlchemyBackendDatabase(engine)
        if third_party is None:
            identity_config = get_identity_server_config()
            if identity_config is None:
                log.info("No identity server configured; e-mail invites are disabled")
            else:
                inviter = IdentityServerInviter(config=identity_config, substrate=substrate)
                stack.push_async_callback(inviter.aclose)
                third_party = inviter

        yield Conference(
            config=conference_config,
            substrate=substrate,
            backend=backend,
            third_party=third_party,
        )


async def rebuild_directory(conference: Conference) -> RebuildResult:
    result = await conference.rebuild()
    log.info(
        "Directory rebuilt: rooms=%s, entities=%s, people=%s, unreadable=%s",
        result.rooms_scanned,
        result.entities,
        result.people,
        len(result.unreadable_rooms),
    )
    return result


async def invite_people(
    conference: Conference,
    scope: InviteScope,
    entity_id: str | None = None,
) -> dict[str, InviteResult]:
    """Make sure everyone the backend attaches to ``scope`` is invited; return results by room."""

    if scope in ENTITY_SCOPES and entity_id is None:
        raise ValueError(f"An ID is required to invite people to a {scope}")

    snapshot = conference.snapshot
    rooms: list[str] = []
    people: list[PersonRecord]
    match scope:
        case InviteScope.AUDITORIUM:
            auditorium = _required(snapshot.auditorium(entity_id or ""), scope, entity_id)
            people = await conference.people.invite_targets_for_auditorium(auditorium)
            rooms.append(auditorium.room_id)
            backstage = snapshot.backstage(auditorium.entity_id)
            if backstage is not None:
                rooms.append(backstage.room_id)
        case InviteScope.TALK:
            talk = _required(snapshot.talk(entity_id or ""), scope, entity_id)
            people = await conference.people.invite_targets_for_talk(talk)
            rooms.append(talk.room_id)
        case InviteScope.INTEREST:
            interest = _required(snapshot.interest_room(entity_id or ""), scope, entity_id)
            people = await conference.people.invite_targets_for_interest(interest)
            rooms.append(interest.room_id)
        case InviteScope.SPEAKERS_SUPPORT:
            people = await conference.speaker_support_targets()
            rooms.append(await _support_room(conference, conference.config.support_rooms.speakers))
        case InviteScope.COORDINATORS_SUPPORT:
            people = await conference.coordinator_support_targets()
            rooms.append(
                await _support_room(conference, conference.config.support_rooms.coordinators)
            )
        case InviteScope.INTEREST_SUPPORT:
            people = await conference.interest_support_targets()
            rooms.append(
                await _support_room(conference, conference.config.support_rooms.special_interest)
            )

    targets = resolve_invite_targets(people)
    return {room_id: await conference.ensure_invited(room_id, targets) for room_id in rooms}


async def grant_moderation(
    conference: Conference,
    scope: ModerationScope,
    entity_id: str,
) -> dict[str, PermissionResult]:
    """Grant the backend's moderators of an entity moderation in its rooms."""

    snapshot = conference.snapshot
    rooms: list[str] = []
    people: list[PersonRecord]
    match scope:
        case ModerationScope.AUDITORIUM:
            auditorium = _required(snapshot.auditorium(entity_id), scope, entity_id)
            people = await conference.people.moderators_for_auditorium(auditorium)
            rooms.append(auditorium.room_id)
            backstage = snapshot.backstage(entity_id)
            if backstage is not None:
                rooms.append(backstage.room_id)
        case ModerationScope.TALK:
            talk = _required(snapshot.talk(entity_id), scope, entity_id)
            people = await conference.people.moderators_for_talk(talk)
            rooms.append(talk.room_id)
        case ModerationScope.INTEREST:
            interest = _required(snapshot.interest_room(entity_id), scope, entity_id)
            people = await conference.people.moderators_for_interest(interest)
            rooms.append(interest.room_id)

    targets = resolve_invite_targets(people)
    return {room_id: await conference.ensure_permissions(room_id, targets) for room_id in rooms}


async def listen(
    conference: Conference,
    client: MatrixClient,
    *,
    stop: asyncio.Event | None = None,
) -> None:
    """Rebuild the directory, then verify invite redemptions until ``stop`` is set."""

    await rebuild_directory(conference)
    listener = SyncListener(client=client, handler=conference.verifier)
    await listener.run(stop=stop)


def run_rebuild() -> RebuildResult:
    async def _run() -> RebuildResult:
        async with open_conference() as conference:
            return await rebuild_directory(conference)

    return asyncio.run(_run())


def run_invites(scope: InviteScope, entity_id: str | None = None) -> dict[str, InviteResult]:
    async def _run() -> dict[str, InviteResult]:
        async with open_conference() as conference:
            await rebuild_directory(conference)
            return await invite_people(conference, scope, entity_id)

    return asyncio.run(_run())


def run_permissions(scope: ModerationScope, entity_id: str) -> dict[str, PermissionResult]:
    async def _run() -> dict[str, PermissionResult]:
        async with open_conference() as conference:
            await rebuild_directory(conference)
            return await grant_moderation(conference, scope, entity_id)

    return asyncio.run(_run())


def run_listener() -> None:
    async def _run() -> None:
        async with (
            MatrixClient(config=get_matrix_config()) as client,
            open_conference(substrate=client) as conference,
        ):
            await listen(conference, client)

    asyncio.run(_run())


def _required[TEntity](entity: TEntity | None, scope: str, entity_id: str | None) -> TEntity:
    if entity is None:
        raise DirectoryError(f"No {scope} room is known for {entity_id!r}")
    return entity


async def _support_room(conference: Conference, alias: str | None) -> str:
    if alias is None:
        raise DirectoryError("This support room is not configured")
    room_id = await conference.substrate.resolve_room(alias)
    if room_id is None:
        raise DirectoryError(f"Support room {alias} could not be resolved")
    return room_id
