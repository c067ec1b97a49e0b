from __future__ import annotations

import asyncio
from collections.abc import Iterator  # noqa: TC003
from datetime import UTC, datetime

import pytest

from confsync.adapters.sqlalchemy import SqlAlchemyBackendDatabase, create_backend_engine
from confsync.domain.model import PersonRecord, Role, TalkRecord
from confsync.domain.ports.backend import BackendEventDatabase


@pytest.fixture
def database() -> Iterator[SqlAlchemyBackendDatabase]:
    engine = create_backend_engine("sqlite+pysqlite:///:memory:")
    database = SqlAlchemyBackendDatabase(engine)
    database.add_talks(
        [
            TalkRecord(
                talk_id="T1",
                auditorium_id="A1",
                title="Opening",
                slug="opening",
                start=datetime(2026, 2, 1, 9, 30, tzinfo=UTC),
                prerecorded=True,
            ),
            TalkRecord(talk_id="T2", auditorium_id="A2", title="Closing"),
        ]
    )
    database.add_people(
        [
            PersonRecord(person_id="p1", name="Ada", role=Role.SPEAKER, talk_id="T1"),
            PersonRecord(
                person_id="p1",
                name="Ada",
                role=Role.SPEAKER,
                talk_id="T2",
                email="ada@example.org",
            ),
            PersonRecord(person_id="p2", name="Grace", role=Role.HOST, auditorium_id="A1"),
            PersonRecord(
                person_id="p3",
                name="Linus",
                role=Role.COORDINATOR,
                auditorium_id="A2",
                matrix_id="@linus:example.org",
            ),
        ]
    )
    try:
        yield database
    finally:
        engine.dispose()


def test_satisfies_backend_port(database: SqlAlchemyBackendDatabase) -> None:
    assert isinstance(database, BackendEventDatabase)


def test_find_people_with_id_returns_every_assignment(
    database: SqlAlchemyBackendDatabase,
) -> None:
    people = asyncio.run(database.find_people_with_id("p1"))

    assert [p.talk_id for p in people] == ["T1", "T2"]
    assert people[1].email == "ada@example.org"
    assert asyncio.run(database.find_people_with_id("nobody")) == []


def test_auditorium_people_include_speakers_of_its_talks(
    database: SqlAlchemyBackendDatabase,
) -> None:
    people = asyncio.run(database.find_all_people_for_auditorium("A1"))

    assert {(p.person_id, p.role) for p in people} == {("p1", Role.SPEAKER), ("p2", Role.HOST)}


def test_talk_people(database: SqlAlchemyBackendDatabase) -> None:
    people = asyncio.run(database.find_all_people_for_talk("T2"))

    assert [p.person_id for p in people] == ["p1"]


def test_get_talk(database: SqlAlchemyBackendDatabase) -> None:
    talk = asyncio.run(database.get_talk("T1"))

    assert talk is not None
    assert talk.title == "Opening"
    assert talk.prerecorded
    assert talk.start is not None
    assert asyncio.run(database.get_talk("T9")) is None
