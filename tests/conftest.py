from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

CONFIG_ENV_VARS = (
    "CONFERENCE_ID",
    "CONFERENCE_MODERATOR_USER_ID",
    "CONFERENCE_ROOM_BATCH_SIZE",
    "CONFERENCE_EXISTING_INTEREST_ROOMS",
    "CONFERENCE_SUBSPACES",
    "CONFERENCE_SUPPORT_SPEAKERS",
    "CONFERENCE_SUPPORT_COORDINATORS",
    "CONFERENCE_SUPPORT_SPECIAL_INTEREST",
    "MATRIX_HOMESERVER_URL",
    "MATRIX_ACCESS_TOKEN",
    "MATRIX_REQUESTS_PER_SECOND",
    "IDENTITY_SERVER_URL",
    "IDENTITY_SERVER_ACCESS_TOKEN",
    "DATABASE_URI",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFSYNC_DATA_DIR", str(tmp_path / "data"))
