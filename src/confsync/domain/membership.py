"""Membership reconciliation: make sure target people are at least invited to a room.

This only ever adds. Nobody is kicked or uninvited; the directory tracks who
should at least be present, not an exact member list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from confsync.domain.model import EffectiveMembership
from confsync.domain.model.room_state import EV_MEMBER, EV_THIRD_PARTY_INVITE, RS_3PID_PERSON_ID
from confsync.domain.ports.substrate import SubstrateError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from confsync.domain.model import InviteTarget
    from confsync.domain.ports.substrate import RoomSubstrate, StateEvent, ThirdPartyInviter

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoomMembership:
    """Membership index of one room, built once from its current state."""

    joined: frozenset[str] = frozenset()
    invited: frozenset[str] = frozenset()
    pending_person_ids: frozenset[str] = frozenset()

    @classmethod
    def from_state(cls, state: Iterable[StateEvent]) -> RoomMembership:
        joined: set[str] = set()
        invited: set[str] = set()
        pending: set[str] = set()
        for event in state:
            if event.type == EV_MEMBER:
                membership = event.content.get("membership")
                effective = EffectiveMembership.from_membership(
                    membership if isinstance(membership, str) else None
                )
                if effective is EffectiveMembership.JOIN:
                    joined.add(event.state_key)
                elif effective is EffectiveMembership.INVITE:
                    invited.add(event.state_key)
            elif event.type == EV_THIRD_PARTY_INVITE:
                person_id = event.content.get(RS_3PID_PERSON_ID)
                if isinstance(person_id, str) and person_id:
                    pending.add(person_id)
        return cls(
            joined=frozenset(joined),
            invited=frozenset(invited),
            pending_person_ids=frozenset(pending),
        )


@dataclass(slots=True)
class InviteResult:
    """Per-person outcome of :meth:`MembershipReconciler.ensure_invited`."""

    invited: list[str] = field(default_factory=list[str])
    already_joined: list[str] = field(default_factory=list[str])
    pending: list[str] = field(default_factory=list[str])
    unreachable: list[str] = field(default_factory=list[str])
    failed: list[str] = field(default_factory=list[str])

    @property
    def complete(self) -> bool:
        return not self.failed and not self.unreachable


class MembershipReconciler:
    def __init__(
        self,
        *,
        substrate: RoomSubstrate,
        third_party: ThirdPartyInviter | None = None,
    ) -> None:
        self._substrate = substrate
        self._third_party = third_party

    async def ensure_invited(self, room_id: str, targets: Iterable[InviteTarget]) -> InviteResult:
        """Invite every target that has neither joined nor a pending e-mail invite."""

        membership = RoomMembership.from_state(await self._substrate.get_room_state(room_id))
        result = InviteResult()

        for target in targets:
            if target.mxid and target.mxid in membership.joined:
                result.already_joined.append(target.person_id)
                continue
            if target.person_id in membership.pending_person_ids:
                result.pending.append(target.person_id)
                continue
            try:
                delivered = await self._deliver(room_id, target)
            except SubstrateError:
                log.exception(
                    "Error inviting %s / %s to %s - ignoring",
                    target.mxid,
                    target.person_id,
                    room_id,
                )
                result.failed.append(target.person_id)
                continue
            if delivered:
                result.invited.append(target.person_id)
            else:
                result.unreachable.append(target.person_id)

        log.info(
            "Invites for %s: invited=%s, joined=%s, pending=%s, unreachable=%s, failed=%s",
            room_id,
            len(result.invited),
            len(result.already_joined),
            len(result.pending),
            len(result.unreachable),
            len(result.failed),
        )
        return result

    async def _deliver(self, room_id: str, target: InviteTarget) -> bool:
        if target.mxid:
            await self._substrate.invite_user(room_id, target.mxid)
            return True
        email = target.person.email
        if email and self._third_party is not None:
            await self._third_party.invite_by_email(
                room_id, email=email, person_id=target.person_id
            )
            return True
        log.warning(
            "No way to invite %s (%s) to %s: no platform identity%s",
            target.person.name,
            target.person_id,
            room_id,
            "" if email else " and no e-mail address",
        )
        return False
