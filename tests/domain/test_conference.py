from __future__ import annotations

import asyncio

import pytest

from confsync.config import ConferenceConfig, SubspaceConfig
from confsync.domain.errors import DirectoryError, RootRoomMissingError, SubspaceMissingError
from confsync.domain.model import Auditorium, Role
from confsync.domain.model.room_state import RS_STORED_SPACE, RS_STORED_SUBSPACE

from tests.helpers.conference import MODERATOR, ConferenceHarness
from tests.helpers.fake_backend import person
from tests.helpers.fake_substrate import CONFERENCE_ID

ROOT = "!root:example.org"


def _harness_with_subspaces() -> ConferenceHarness:
    return ConferenceHarness(
        config=ConferenceConfig(
            conference_id=CONFERENCE_ID,
            moderator_user_id=MODERATOR,
            subspaces={
                "devrooms": SubspaceConfig(
                    name="Devrooms", alias_localpart="devrooms", prefixes=("D.",)
                ),
                "stands": SubspaceConfig(name="Stands", alias_localpart="stands", prefixes=("S.",)),
            },
        )
    )


def test_operations_needing_root_fail_before_creation() -> None:
    harness = ConferenceHarness()
    conference = harness.build()
    asyncio.run(conference.rebuild())

    assert not conference.is_created
    with pytest.raises(RootRoomMissingError):
        asyncio.run(conference.create_update_person(person("p1", Role.HOST)))
    with pytest.raises(RootRoomMissingError):
        asyncio.run(conference.get_space_room_id())


def test_parent_space_follows_subspace_prefixes() -> None:
    harness = _harness_with_subspaces()
    harness.add_root()
    harness.substrate.put_state(ROOT, RS_STORED_SPACE, "", {"roomId": "!space:example.org"})
    harness.substrate.put_state(ROOT, RS_STORED_SUBSPACE, "devrooms", {"roomId": "!dev"})
    conference = harness.build()
    asyncio.run(conference.rebuild())

    assert asyncio.run(conference.desired_parent_space("D.python")) == "!dev"
    assert asyncio.run(conference.desired_parent_space("K.1.105")) == "!space:example.org"
    with pytest.raises(SubspaceMissingError, match="The stands subspace has not been created yet"):
        asyncio.run(conference.desired_parent_space("S.gnome"))


def test_recorded_subspace_is_persisted_and_cached() -> None:
    harness = _harness_with_subspaces()
    harness.add_root()
    conference = harness.build()
    asyncio.run(conference.rebuild())

    asyncio.run(conference.record_subspace("stands", "!stands"))

    assert harness.substrate.content(ROOT, RS_STORED_SUBSPACE, "stands") == {"roomId": "!stands"}
    assert asyncio.run(conference.desired_parent_space("S.gnome")) == "!stands"


def test_missing_space_record_is_a_directory_error() -> None:
    harness = ConferenceHarness()
    harness.add_root()
    conference = harness.build()
    asyncio.run(conference.rebuild())

    with pytest.raises(DirectoryError, match="does not record a conference space"):
        asyncio.run(conference.get_space_room_id())


def test_registered_entities_are_visible_until_next_rebuild() -> None:
    harness = ConferenceHarness()
    harness.add_root()
    conference = harness.build()
    asyncio.run(conference.rebuild())

    conference.register(Auditorium(room_id="!new", entity_id="A9"))
    assert conference.snapshot.auditorium("A9") is not None

    asyncio.run(conference.rebuild())
    assert conference.snapshot.auditorium("A9") is None


def test_stored_person_keeps_known_identity() -> None:
    harness = ConferenceHarness()
    harness.add_root()
    conference = harness.build()
    asyncio.run(conference.rebuild())

    asyncio.run(
        conference.create_update_person(
            person("p1", Role.HOST, matrix_id="@host:example.org")
        )
    )
    asyncio.run(conference.create_update_person(person("p1", Role.COORDINATOR)))

    stored = conference.snapshot.person("p1")
    assert stored is not None
    assert stored.role is Role.COORDINATOR
    assert stored.matrix_id == "@host:example.org"


def test_support_room_targets() -> None:
    harness = ConferenceHarness()
    harness.add_root()
    harness.add_auditorium("A1")
    harness.add_backstage("A1")
    harness.add_auditorium("A2")
    harness.add_interest("rust")
    harness.backend.add_talk("T1", "A1")
    harness.backend.add_talk("T2", "A1")
    harness.backend.people = [
        person("speaker", Role.SPEAKER, talk_id="T1"),
        person("speaker", Role.SPEAKER, talk_id="T2"),
        person("coord", Role.COORDINATOR, auditorium_id="A1"),
        person("coord", Role.COORDINATOR, auditorium_id="A2"),
        person("host", Role.HOST, auditorium_id="A2"),
        person("si-host", Role.HOST, auditorium_id="rust"),
    ]
    conference = harness.build()
    asyncio.run(conference.rebuild())

    speakers = asyncio.run(conference.speaker_support_targets())
    coordinators = asyncio.run(conference.coordinator_support_targets())
    interest = asyncio.run(conference.interest_support_targets())

    assert [p.person_id for p in speakers] == ["speaker"]
    assert [p.person_id for p in coordinators] == ["coord"]
    assert [p.person_id for p in interest] == ["si-host"]


def test_talk_lookup_goes_to_backend() -> None:
    harness = ConferenceHarness()
    harness.backend.add_talk("T1", "A1", title="Opening")
    conference = harness.build()

    talk = asyncio.run(conference.get_db_talk("T1"))

    assert talk is not None
    assert talk.title == "Opening"
    assert asyncio.run(conference.get_db_talk("nope")) is None
