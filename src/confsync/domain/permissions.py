"""Permission reconciliation: merge moderators into a room's power levels.

Existing entries are never lowered or rewritten; only missing identities are
granted the moderator level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from confsync.domain.model.room_state import EV_POWER_LEVELS
from confsync.domain.records import PowerLevelsContent, ValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from confsync.domain.model import InviteTarget
    from confsync.domain.ports.substrate import RoomSubstrate

log = getLogger(__name__)

ADMIN_LEVEL: Final[int] = 100
MODERATOR_LEVEL: Final[int] = 50


@dataclass(slots=True)
class PermissionResult:
    granted: list[str] = field(default_factory=list[str])
    pinned: list[str] = field(default_factory=list[str])
    written: bool = False


class PermissionReconciler:
    def __init__(
        self,
        *,
        substrate: RoomSubstrate,
        moderator_user_id: str,
        moderator_level: int = MODERATOR_LEVEL,
    ) -> None:
        self._substrate = substrate
        self._moderator_user_id = moderator_user_id
        self._moderator_level = moderator_level

    async def ensure_permissions(
        self,
        room_id: str,
        targets: Iterable[InviteTarget],
    ) -> PermissionResult:
        """Pin the agent and configured moderator to admin and grant targets moderator."""

        result = PermissionResult()
        content = await self._substrate.get_room_state_event(room_id, EV_POWER_LEVELS, "")
        if content is None:
            log.warning("Room %s has no power levels; not touching permissions", room_id)
            return result

        try:
            power_levels = PowerLevelsContent.model_validate(content)
        except ValidationError as exc:
            log.warning("Room %s has unreadable power levels; not touching them: %s", room_id, exc)
            return result
        users = power_levels.users

        own_user_id = await self._substrate.get_user_id()
        for admin in (own_user_id, self._moderator_user_id):
            if users.get(admin) != ADMIN_LEVEL:
                users[admin] = ADMIN_LEVEL
                result.pinned.append(admin)

        for target in targets:
            if not target.mxid or target.mxid in users:
                continue
            users[target.mxid] = self._moderator_level
            result.granted.append(target.mxid)

        if not result.granted and not result.pinned:
            log.debug("Power levels of %s need no changes", room_id)
            return result

        await self._substrate.send_state_event(
            room_id, EV_POWER_LEVELS, "", power_levels.to_content()
        )
        result.written = True
        log.info(
            "Updated power levels of %s: granted=%s, pinned=%s",
            room_id,
            result.granted,
            result.pinned,
        )
        return result
