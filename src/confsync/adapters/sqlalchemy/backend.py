"""Backend event database over SQLAlchemy Core."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, insert, make_url, or_, select
from sqlalchemy.pool import StaticPool

from confsync.config.storage import get_database_config
from confsync.domain.model import PersonRecord, Role, TalkRecord

from .tables import create_all_tables, people_table, talks_table

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy import Select
    from sqlalchemy.engine import Engine, RowMapping

    from confsync.domain.ports.backend import BackendEventDatabase


def create_backend_engine(database_uri: str | None = None) -> Engine:
    """Create the engine for the backend database and make sure its tables exist."""

    url = make_url(database_uri or get_database_config().uri)
    if url.get_backend_name() == "sqlite" and url.database in {None, "", ":memory:"}:
        # in-memory databases must share one connection across worker threads
        engine = create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
    else:
        engine = create_engine(url)
    create_all_tables(engine)
    return engine


def _person(row: RowMapping) -> PersonRecord:
    return PersonRecord(
        person_id=row["person_id"],
        name=row["name"],
        role=Role(row["role"]),
        email=row["email"],
        matrix_id=row["matrix_id"],
        talk_id=row["talk_id"],
        auditorium_id=row["auditorium_id"],
    )


def _talk(row: RowMapping) -> TalkRecord:
    return TalkRecord(
        talk_id=row["talk_id"],
        auditorium_id=row["auditorium_id"],
        title=row["title"],
        slug=row["slug"],
        start=row["start"],
        end=row["end"],
        prerecorded=bool(row["prerecorded"]),
    )


class SqlAlchemyBackendDatabase:
    """Role assignments and talks read from a relational database.

    Queries are blocking, so the async port methods run them in a worker thread.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def find_people_with_id(self, person_id: str) -> list[PersonRecord]:
        statement = select(people_table).where(people_table.c.person_id == person_id)
        return await asyncio.to_thread(self._people, statement)

    async def find_all_people_for_auditorium(self, auditorium_id: str) -> list[PersonRecord]:
        talk_ids = select(talks_table.c.talk_id).where(
            talks_table.c.auditorium_id == auditorium_id
        )
        statement = select(people_table).where(
            or_(
                people_table.c.auditorium_id == auditorium_id,
                people_table.c.talk_id.in_(talk_ids),
            )
        )
        return await asyncio.to_thread(self._people, statement)

    async def find_all_people_for_talk(self, talk_id: str) -> list[PersonRecord]:
        statement = select(people_table).where(people_table.c.talk_id == talk_id)
        return await asyncio.to_thread(self._people, statement)

    async def get_talk(self, talk_id: str) -> TalkRecord | None:
        return await asyncio.to_thread(self._talk, talk_id)

    def add_talks(self, talks: Iterable[TalkRecord]) -> None:
        rows = [
            {
                "talk_id": talk.talk_id,
                "auditorium_id": talk.auditorium_id,
                "title": talk.title,
                "slug": talk.slug,
                "start": talk.start,
                "end": talk.end,
                "prerecorded": talk.prerecorded,
            }
            for talk in talks
        ]
        if rows:
            with self.engine.begin() as connection:
                connection.execute(insert(talks_table), rows)

    def add_people(self, people: Iterable[PersonRecord]) -> None:
        rows = [
            {
                "person_id": person.person_id,
                "name": person.name,
                "role": person.role,
                "email": person.email,
                "matrix_id": person.matrix_id,
                "talk_id": person.talk_id,
                "auditorium_id": person.auditorium_id,
            }
            for person in people
        ]
        if rows:
            with self.engine.begin() as connection:
                connection.execute(insert(people_table), rows)

    def _people(self, statement: Select[tuple[object, ...]]) -> list[PersonRecord]:
        with self.engine.connect() as connection:
            rows = connection.execute(statement.order_by(people_table.c.id)).mappings()
            return [_person(row) for row in rows]

    def _talk(self, talk_id: str) -> TalkRecord | None:
        statement = select(talks_table).where(talks_table.c.talk_id == talk_id)
        with self.engine.connect() as connection:
            row = connection.execute(statement).mappings().first()
        return _talk(row) if row is not None else None


if TYPE_CHECKING:

    def _backend_check(database: SqlAlchemyBackendDatabase) -> BackendEventDatabase:
        return database
