from __future__ import annotations

import json
from pathlib import Path

import pytest

from confsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    get_conference_config,
    get_database_config,
    get_identity_server_config,
    get_matrix_config,
    get_storage_config,
)
from confsync.config.matrix import is_cacheable_creation_payload


def _set_conference(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONFERENCE_ID", "fosdem-2026")
    monkeypatch.setenv("CONFERENCE_MODERATOR_USER_ID", "@moderator:example.org")


def test_conference_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_conference(monkeypatch)

    config = get_conference_config()

    assert config.conference_id == "fosdem-2026"
    assert config.batch_size == 20
    assert config.existing_interest_rooms == {}
    assert config.subspaces == {}
    assert config.support_rooms.speakers is None


def test_conference_config_reads_json_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_conference(monkeypatch)
    monkeypatch.setenv("CONFERENCE_ROOM_BATCH_SIZE", "5")
    monkeypatch.setenv(
        "CONFERENCE_EXISTING_INTEREST_ROOMS", json.dumps({"rust": " #rust:example.org "})
    )
    monkeypatch.setenv(
        "CONFERENCE_SUBSPACES",
        json.dumps({"devrooms": {"name": "Devrooms", "alias": "dev", "prefixes": ["D."]}}),
    )
    monkeypatch.setenv("CONFERENCE_SUPPORT_SPEAKERS", "#speakers:example.org")

    config = get_conference_config()

    assert config.batch_size == 5
    assert config.existing_interest_rooms == {"rust": "#rust:example.org"}
    devrooms = config.subspaces["devrooms"]
    assert devrooms.alias_localpart == "dev"
    assert devrooms.prefixes == ("D.",)
    assert config.support_rooms.speakers == "#speakers:example.org"


def test_missing_conference_settings_are_named(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONFERENCE_ID", "fosdem-2026")

    with pytest.raises(MissingConfigurationError, match="CONFERENCE_MODERATOR_USER_ID"):
        get_conference_config()


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("CONFERENCE_ROOM_BATCH_SIZE", "0"),
        ("CONFERENCE_ROOM_BATCH_SIZE", "many"),
        ("CONFERENCE_SUBSPACES", "{not json"),
        ("CONFERENCE_SUBSPACES", "[]"),
        ("CONFERENCE_SUBSPACES", json.dumps({"devrooms": {"prefixes": "D."}})),
        ("CONFERENCE_EXISTING_INTEREST_ROOMS", json.dumps({"rust": 3})),
    ],
)
def test_invalid_conference_settings(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    _set_conference(monkeypatch)
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_conference_config()


def test_matrix_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MATRIX_HOMESERVER_URL", "https://matrix.example.org/")
    monkeypatch.setenv("MATRIX_ACCESS_TOKEN", "secret")

    config = get_matrix_config()

    assert config.homeserver_url == "https://matrix.example.org"
    assert config.resilience.default_headers == {"Authorization": "Bearer secret"}
    assert config.resilience.cache is None
    assert config.creation_resilience.cache is not None
    assert config.creation_resilience.cache.should_cache is is_cacheable_creation_payload


def test_only_real_creation_content_is_cached() -> None:
    assert is_cacheable_creation_payload({"creator": "@a:example.org"})
    assert not is_cacheable_creation_payload({"errcode": "M_FORBIDDEN"})
    assert not is_cacheable_creation_payload([])


def test_identity_server_is_optional(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_identity_server_config() is None

    monkeypatch.setenv("IDENTITY_SERVER_URL", "https://vector.im/")
    monkeypatch.setenv("IDENTITY_SERVER_ACCESS_TOKEN", "token")
    config = get_identity_server_config()

    assert config is not None
    assert config.server_name == "vector.im"
    assert config.resilience.base_url == "https://vector.im"


def test_storage_paths_follow_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CONFSYNC_DATA_DIR", str(tmp_path))

    storage = get_storage_config()

    assert storage.database_path() == tmp_path.resolve() / "backend.db"
    assert get_database_config().uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'backend.db'}"

    monkeypatch.setenv("DATABASE_URI", "postgresql://db/conference")
    assert get_database_config().uri == "postgresql://db/conference"
