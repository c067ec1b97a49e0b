"""SQLAlchemy table metadata for the backend event database."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
)

from confsync.domain.model import Role

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

metadata = MetaData()

talks_table = Table(
    "talks",
    metadata,
    Column("talk_id", String(255), primary_key=True),
    Column("auditorium_id", String(255), nullable=False),
    Column("title", String(1024), nullable=False),
    Column("slug", String(255), nullable=True),
    Column("start", DateTime(timezone=True), nullable=True),
    Column("end", DateTime(timezone=True), nullable=True),
    Column("prerecorded", Boolean, nullable=False, default=False),
    Index("ix_talks_auditorium_id", "auditorium_id"),
)

people_table = Table(
    "people",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("person_id", String(255), nullable=False),
    Column("name", String(512), nullable=False, default=""),
    Column(
        "role",
        Enum(Role, values_callable=lambda roles: [role.value for role in roles], name="role"),
        nullable=False,
    ),
    Column("email", String(512), nullable=True),
    Column("matrix_id", String(512), nullable=True),
    Column("talk_id", String(255), ForeignKey("talks.talk_id"), nullable=True),
    Column("auditorium_id", String(255), nullable=True),
    Index("ix_people_person_id", "person_id"),
    Index("ix_people_auditorium_id", "auditorium_id"),
    Index("ix_people_talk_id", "talk_id"),
)


def create_all_tables(engine: Engine) -> None:
    log.debug("Creating backend tables on %s", engine.url)
    metadata.create_all(engine)
