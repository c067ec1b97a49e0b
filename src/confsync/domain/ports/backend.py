"""Port for the backend event database (the source of truth for roles)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from confsync.domain.model import PersonRecord, TalkRecord


@runtime_checkable
class BackendEventDatabase(Protocol):
    async def find_people_with_id(self, person_id: str) -> list[PersonRecord]: ...

    async def find_all_people_for_auditorium(self, auditorium_id: str) -> list[PersonRecord]: ...

    async def find_all_people_for_talk(self, talk_id: str) -> list[PersonRecord]: ...

    async def get_talk(self, talk_id: str) -> TalkRecord | None: ...
