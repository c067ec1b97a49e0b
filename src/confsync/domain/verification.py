"""Verification of third-party invite redemptions.

When someone redeems an e-mail invite, their membership event references the
invite's token. Anyone can craft such an event, so the payload is trusted only
after confirming that this agent created the room *and* wrote the referenced
invite record. Only then is the person ID inside it correlated with the
redeeming platform identity.

Each step is a guard that either proceeds with an enriched
:class:`Redemption` or rejects with a reason. Guards run strictly in order:

``unchecked → has_token → token_resolved → payload_present → authenticated →
correlated → applied``
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from confsync.domain.model import Auditorium, AuditoriumBackstage, Talk
from confsync.domain.model.room_state import EV_CREATE, EV_THIRD_PARTY_INVITE, RS_STORED_PERSON
from confsync.domain.ports.substrate import SubstrateError
from confsync.domain.records import ThirdPartyInviteContent, ValidationError, parse_stored_person
from confsync.domain.targets import resolve_invite_targets, unique_people

if TYPE_CHECKING:
    from confsync.domain.catalog import DirectoryCatalog
    from confsync.domain.model import PersonRecord
    from confsync.domain.permissions import PermissionReconciler, PermissionResult
    from confsync.domain.person_store import PersonStore
    from confsync.domain.ports.backend import BackendEventDatabase
    from confsync.domain.ports.substrate import MemberEvent, RoomSubstrate
    from confsync.domain.targets import ConferencePeople

log = getLogger(__name__)


class RedemptionStage(StrEnum):
    UNCHECKED = "unchecked"
    HAS_TOKEN = "has_token"
    TOKEN_RESOLVED = "token_resolved"
    PAYLOAD_PRESENT = "payload_present"
    AUTHENTICATED = "authenticated"
    CORRELATED = "correlated"
    APPLIED = "applied"
    REJECTED = "rejected"


class RejectReason(StrEnum):
    NO_TOKEN = "no_token"
    INVITE_NOT_FOUND = "invite_not_found"
    NO_PAYLOAD = "no_payload"
    CREATOR_MISMATCH = "creator_mismatch"
    INVITER_MISMATCH = "inviter_mismatch"
    NO_BACKEND_MATCH = "no_backend_match"
    SUBSTRATE_FAILURE = "substrate_failure"


@dataclass(frozen=True, slots=True, kw_only=True)
class Redemption:
    """What is known about one membership event so far."""

    event: MemberEvent
    stage: RedemptionStage = RedemptionStage.UNCHECKED
    token: str | None = None
    person_id: str | None = None
    people: tuple[PersonRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class Proceed:
    redemption: Redemption


@dataclass(frozen=True, slots=True)
class Reject:
    stage: RedemptionStage
    reason: RejectReason


type GuardResult = Proceed | Reject
type Guard = Callable[[Redemption], Awaitable[GuardResult]]


@dataclass(frozen=True, slots=True, kw_only=True)
class RedemptionOutcome:
    stage: RedemptionStage
    reached: RedemptionStage
    reason: RejectReason | None = None
    correlated: tuple[str, ...] = ()
    permissions: PermissionResult | None = None

    @property
    def applied(self) -> bool:
        return self.stage is RedemptionStage.APPLIED


class InviteRedemptionVerifier:
    def __init__(
        self,
        *,
        substrate: RoomSubstrate,
        backend: BackendEventDatabase,
        catalog: DirectoryCatalog,
        people: ConferencePeople,
        person_store: PersonStore,
        permissions: PermissionReconciler,
    ) -> None:
        self._substrate = substrate
        self._backend = backend
        self._catalog = catalog
        self._people = people
        self._person_store = person_store
        self._permissions = permissions
        self._guards: tuple[Guard, ...] = (
            self._require_token,
            self._resolve_token,
            self._require_payload,
            self._authenticate,
            self._correlate,
        )

    async def __call__(self, event: MemberEvent) -> None:
        await self.handle(event)

    async def verify(self, event: MemberEvent) -> GuardResult:
        """Run the guards; the result is either a correlated redemption or a rejection."""

        redemption = Redemption(event=event)
        for guard in self._guards:
            try:
                result = await guard(redemption)
            except SubstrateError as exc:
                log.warning(
                    "Could not verify redemption in %s at %s: %s",
                    event.room_id,
                    redemption.stage,
                    exc,
                )
                return Reject(redemption.stage, RejectReason.SUBSTRATE_FAILURE)
            if isinstance(result, Reject):
                return result
            redemption = result.redemption
        return Proceed(redemption)

    async def handle(self, event: MemberEvent) -> RedemptionOutcome:
        verdict = await self.verify(event)
        if isinstance(verdict, Reject):
            log.debug(
                "Ignoring membership of %s in %s: %s", event.user_id, event.room_id, verdict.reason
            )
            return RedemptionOutcome(
                stage=RedemptionStage.REJECTED,
                reached=verdict.stage,
                reason=verdict.reason,
            )
        return await self._apply(verdict.redemption)

    async def _require_token(self, redemption: Redemption) -> GuardResult:
        token = redemption.event.third_party_token
        if token is None:
            return Reject(redemption.stage, RejectReason.NO_TOKEN)
        return Proceed(replace(redemption, stage=RedemptionStage.HAS_TOKEN, token=token))

    async def _resolve_token(self, redemption: Redemption) -> GuardResult:
        content = await self._substrate.get_room_state_event(
            redemption.event.room_id, EV_THIRD_PARTY_INVITE, redemption.token or ""
        )
        if content is None:
            return Reject(redemption.stage, RejectReason.INVITE_NOT_FOUND)
        try:
            invite = ThirdPartyInviteContent.model_validate(content)
        except ValidationError:
            return Reject(redemption.stage, RejectReason.INVITE_NOT_FOUND)
        return Proceed(
            replace(
                redemption,
                stage=RedemptionStage.TOKEN_RESOLVED,
                person_id=invite.person_id,
            )
        )

    async def _require_payload(self, redemption: Redemption) -> GuardResult:
        if not redemption.person_id:
            return Reject(redemption.stage, RejectReason.NO_PAYLOAD)
        return Proceed(replace(redemption, stage=RedemptionStage.PAYLOAD_PRESENT))

    async def _authenticate(self, redemption: Redemption) -> GuardResult:
        # Re-read the full state rather than trusting anything the event says.
        state = await self._substrate.get_room_state(redemption.event.room_id)
        senders = {(event.type, event.state_key): event.sender for event in state}
        own_user_id = await self._substrate.get_user_id()

        if senders.get((EV_CREATE, "")) != own_user_id:
            return Reject(redemption.stage, RejectReason.CREATOR_MISMATCH)
        if senders.get((EV_THIRD_PARTY_INVITE, redemption.token or "")) != own_user_id:
            return Reject(redemption.stage, RejectReason.INVITER_MISMATCH)
        return Proceed(replace(redemption, stage=RedemptionStage.AUTHENTICATED))

    async def _correlate(self, redemption: Redemption) -> GuardResult:
        people = await self._backend.find_people_with_id(redemption.person_id or "")
        if not people:
            return Reject(redemption.stage, RejectReason.NO_BACKEND_MATCH)
        return Proceed(
            replace(redemption, stage=RedemptionStage.CORRELATED, people=tuple(people))
        )

    async def _apply(self, redemption: Redemption) -> RedemptionOutcome:
        event = redemption.event
        mxid = event.user_id
        correlated: list[str] = []

        for person in unique_people(redemption.people):
            try:
                known = await self._known_identity(person)
            except SubstrateError as exc:
                log.warning(
                    "Not associating %s with %s: stored identity unreadable: %s",
                    person.person_id,
                    mxid,
                    exc,
                )
                continue
            if known is not None and known != mxid:
                log.warning(
                    "Not associating %s with %s: already associated with %s",
                    person.person_id,
                    mxid,
                    known,
                )
                continue
            stored = await self._person_store.create_update_person(person.with_matrix_id(mxid))
            correlated.append(stored.person_id)
            log.info("Updated %s to be associated with %s", stored.person_id, mxid)

        permissions = await self._update_permissions(event.room_id)
        return RedemptionOutcome(
            stage=RedemptionStage.APPLIED,
            reached=RedemptionStage.APPLIED,
            correlated=tuple(correlated),
            permissions=permissions,
        )

    async def _known_identity(self, person: PersonRecord) -> str | None:
        if person.matrix_id:
            return person.matrix_id
        snapshot = self._catalog.snapshot
        stored = snapshot.person(person.person_id)
        if stored is not None:
            return stored.matrix_id
        # the cache can be empty after a failed hydration; the root room is authoritative
        root = snapshot.root
        if root is None:
            return None
        content = await self._substrate.get_room_state_event(
            root.room_id, RS_STORED_PERSON, person.person_id
        )
        record = parse_stored_person(content) if content else None
        return record.matrix_id if record is not None else None

    async def _update_permissions(self, room_id: str) -> PermissionResult | None:
        entity = self._catalog.snapshot.entity_for_room(room_id)
        match entity:
            case Auditorium() | AuditoriumBackstage():
                moderators = await self._people.moderators_for_auditorium(entity)
            case Talk():
                moderators = await self._people.moderators_for_talk(entity)
            case _:
                return None
        return await self._permissions.ensure_permissions(
            room_id, resolve_invite_targets(moderators)
        )
