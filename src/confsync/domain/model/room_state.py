"""Event types and content keys of the room-state records the directory relies on.

These names are part of rooms that already exist; renaming any of them orphans
previously materialised conferences.
"""

from __future__ import annotations

from typing import Final

# m.room.create content keys
RSC_CONFERENCE_ID: Final[str] = "org.matrix.confbot.conference"
RSC_ROOM_KIND_FLAG: Final[str] = "org.matrix.confbot.kind"
RSC_AUDITORIUM_ID: Final[str] = "org.matrix.confbot.auditorium"
RSC_TALK_ID: Final[str] = "org.matrix.confbot.talk"
RSC_SPECIAL_INTEREST_ID: Final[str] = "org.matrix.confbot.interest_room"

# Root room state
RS_STORED_PERSON: Final[str] = "org.matrix.confbot.person"
RS_STORED_SUBSPACE: Final[str] = "org.matrix.confbot.subspace"
RS_STORED_SPACE: Final[str] = "org.matrix.confbot.space"

# m.room.third_party_invite content key naming the invited person
RS_3PID_PERSON_ID: Final[str] = "org.matrix.confbot.person_id"

# Standard Matrix event types
EV_CREATE: Final[str] = "m.room.create"
EV_MEMBER: Final[str] = "m.room.member"
EV_POWER_LEVELS: Final[str] = "m.room.power_levels"
EV_THIRD_PARTY_INVITE: Final[str] = "m.room.third_party_invite"
