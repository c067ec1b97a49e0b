"""The conference service: one catalog plus the reconcilers operating on it."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from confsync.domain.builder import CatalogBuilder
from confsync.domain.catalog import DirectoryCatalog
from confsync.domain.errors import DirectoryError, RootRoomMissingError, SubspaceMissingError
from confsync.domain.membership import MembershipReconciler
from confsync.domain.model import Role, Subspace
from confsync.domain.model.room_state import RS_STORED_SPACE, RS_STORED_SUBSPACE
from confsync.domain.permissions import PermissionReconciler
from confsync.domain.person_store import PersonStore
from confsync.domain.records import RoomPointerContent, ValidationError
from confsync.domain.targets import ConferencePeople, unique_people
from confsync.domain.verification import InviteRedemptionVerifier

if TYPE_CHECKING:
    from collections.abc import Iterable

    from confsync.config.conference import ConferenceConfig
    from confsync.domain.builder import RebuildResult
    from confsync.domain.catalog import CatalogSnapshot
    from confsync.domain.membership import InviteResult
    from confsync.domain.model import (
        DirectoryEntity,
        InviteTarget,
        PersonRecord,
        RootRecord,
        TalkRecord,
    )
    from confsync.domain.permissions import PermissionResult
    from confsync.domain.ports.backend import BackendEventDatabase
    from confsync.domain.ports.substrate import RoomSubstrate, ThirdPartyInviter

log = getLogger(__name__)


class Conference:
    """Entry point for the command layer and the event subscription.

    ``rebuild`` must be serialised by the caller; every other operation may run
    concurrently with event handling.
    """

    def __init__(
        self,
        *,
        config: ConferenceConfig,
        substrate: RoomSubstrate,
        backend: BackendEventDatabase,
        third_party: ThirdPartyInviter | None = None,
    ) -> None:
        self.config = config
        self.substrate = substrate
        self.backend = backend
        self.catalog = DirectoryCatalog(config.conference_id)
        self.people = ConferencePeople(backend=backend, catalog=self.catalog)
        self.person_store = PersonStore(substrate=substrate, catalog=self.catalog)
        self.builder = CatalogBuilder(substrate=substrate, catalog=self.catalog, config=config)
        self.membership = MembershipReconciler(substrate=substrate, third_party=third_party)
        self.permissions = PermissionReconciler(
            substrate=substrate, moderator_user_id=config.moderator_user_id
        )
        self.verifier = InviteRedemptionVerifier(
            substrate=substrate,
            backend=backend,
            catalog=self.catalog,
            people=self.people,
            person_store=self.person_store,
            permissions=self.permissions,
        )

    @property
    def id(self) -> str:
        return self.config.conference_id

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self.catalog.snapshot

    @property
    def is_created(self) -> bool:
        return self.catalog.is_created

    async def rebuild(self) -> RebuildResult:
        return await self.builder.rebuild()

    async def ensure_invited(self, room_id: str, targets: Iterable[InviteTarget]) -> InviteResult:
        return await self.membership.ensure_invited(room_id, targets)

    async def ensure_permissions(
        self, room_id: str, targets: Iterable[InviteTarget]
    ) -> PermissionResult:
        return await self.permissions.ensure_permissions(room_id, targets)

    async def get_db_talk(self, talk_id: str) -> TalkRecord | None:
        return await self.backend.get_talk(talk_id)

    def register(self, entity: DirectoryEntity) -> None:
        """Insert an entity whose room was just created outside of a rebuild."""

        self.catalog.register(entity)

    async def create_update_person(self, person: PersonRecord) -> None:
        await self.person_store.create_update_person(person)

    async def record_subspace(self, subspace_id: str, room_id: str) -> Subspace:
        root = self._require_root()
        await self.substrate.send_state_event(
            root.room_id,
            RS_STORED_SUBSPACE,
            subspace_id,
            RoomPointerContent(room_id=room_id).model_dump(by_alias=True),
        )
        subspace = Subspace(room_id=room_id, entity_id=subspace_id)
        self.catalog.record_subspace(subspace)
        return subspace

    async def get_space_room_id(self) -> str:
        """Room ID of the conference's top-level space, as recorded in the root room."""

        root = self._require_root()
        content = await self.substrate.get_room_state_event(root.room_id, RS_STORED_SPACE, "")
        if content is None:
            raise DirectoryError(f"Root room {root.room_id} does not record a conference space")
        try:
            return RoomPointerContent.model_validate(content).room_id
        except ValidationError as exc:
            raise DirectoryError(f"Root room {root.room_id} has a malformed space record") from exc

    async def desired_parent_space(self, entity_id: str) -> str:
        """Room ID of the space an auditorium or interest room with ``entity_id`` belongs in."""

        for subspace_id, subspace_config in self.config.subspaces.items():
            if not any(entity_id.startswith(prefix) for prefix in subspace_config.prefixes):
                continue
            subspace = self.snapshot.subspace(subspace_id)
            if subspace is None:
                raise SubspaceMissingError(subspace_id)
            return subspace.room_id
        return await self.get_space_room_id()

    async def speaker_support_targets(self) -> list[PersonRecord]:
        people: list[PersonRecord] = []
        for backstage in self.snapshot.backstages():
            people.extend(await self.people.invite_targets_for_auditorium(backstage))
        return unique_people(p for p in people if p.role is Role.SPEAKER)

    async def coordinator_support_targets(self) -> list[PersonRecord]:
        people: list[PersonRecord] = []
        for auditorium in self.snapshot.auditoriums():
            people.extend(await self.people.invite_targets_for_auditorium(auditorium))
        return unique_people(p for p in people if p.role is Role.COORDINATOR)

    async def interest_support_targets(self) -> list[PersonRecord]:
        people: list[PersonRecord] = []
        for interest_room in self.snapshot.interest_rooms():
            people.extend(await self.people.invite_targets_for_interest(interest_room))
        return unique_people(people)

    def _require_root(self) -> RootRecord:
        root = self.snapshot.root
        if root is None:
            raise RootRoomMissingError(self.id)
        return root
