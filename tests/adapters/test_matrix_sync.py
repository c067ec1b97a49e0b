from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from confsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from confsync.adapters.matrix import MEMBERSHIP_FILTER, MatrixClient, SyncListener, member_events
from confsync.adapters.matrix.schema import SyncResponse
from confsync.config import MatrixConfig
from confsync.domain.ports.substrate import MemberEvent

HOMESERVER = "https://matrix.example.org"


def _member(user_id: str, membership: str, **content: object) -> dict[str, object]:
    return {
        "type": "m.room.member",
        "state_key": user_id,
        "sender": user_id,
        "event_id": f"${user_id}",
        "content": {"membership": membership, **content},
    }


def _batch(next_batch: str, events: dict[str, list[dict[str, object]]]) -> dict[str, object]:
    return {
        "next_batch": next_batch,
        "rooms": {"join": {room: {"timeline": {"events": e}} for room, e in events.items()}},
    }


def _client(responses: list[dict[str, object]], seen: list[httpx.Request]) -> MatrixClient:
    pending = list(responses)

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=pending.pop(0))

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=HOMESERVER, transport=httpx.MockTransport(handler)
        )
        return client

    resilience = ResilienceConfig(name="matrix", base_url=HOMESERVER, cache=None)
    config = MatrixConfig(
        homeserver_url=HOMESERVER,
        access_token="secret",
        resilience=resilience,
        creation_resilience=resilience,
    )
    return MatrixClient(config=config, client_factory=factory)


def test_member_events_are_extracted_per_room() -> None:
    response = SyncResponse.model_validate(
        _batch(
            "s2",
            {
                "!a": [
                    _member("@ada:example.org", "join"),
                    {"type": "m.room.message", "sender": "@ada:example.org", "content": {}},
                ],
                "!b": [_member("@eve:example.org", "leave")],
            },
        )
    )

    events = member_events(response)

    assert [(e.room_id, e.user_id, e.membership) for e in events] == [
        ("!a", "@ada:example.org", "join"),
        ("!b", "@eve:example.org", "leave"),
    ]


def test_backlog_is_skipped_and_new_events_dispatched() -> None:
    seen: list[httpx.Request] = []
    token = {"third_party_invite": {"signed": {"token": "tok"}}}
    client = _client(
        [
            _batch("s1", {"!a": [_member("@old:example.org", "join")]}),
            _batch("s2", {"!a": [_member("@ada:example.org", "join", **token)]}),
        ],
        seen,
    )
    handled: list[MemberEvent] = []

    async def handler(event: MemberEvent) -> None:
        handled.append(event)

    listener = SyncListener(client=client, handler=handler, timeout_ms=10)
    count = asyncio.run(listener.poll_once())

    assert count == 1
    assert [e.user_id for e in handled] == ["@ada:example.org"]
    assert handled[0].third_party_token == "tok"
    assert listener.since == "s2"
    assert "since" not in seen[0].url.params
    assert seen[0].url.params["timeout"] == "0"
    assert seen[1].url.params["since"] == "s1"
    assert json.loads(seen[1].url.params["filter"]) == MEMBERSHIP_FILTER


def test_failing_handler_does_not_stop_the_batch(caplog: pytest.LogCaptureFixture) -> None:
    client = _client(
        [
            _batch("s1", {}),
            _batch(
                "s2",
                {"!a": [_member("@bad:example.org", "join"), _member("@ok:example.org", "join")]},
            ),
        ],
        [],
    )
    handled: list[str] = []

    async def handler(event: MemberEvent) -> None:
        if event.user_id == "@bad:example.org":
            raise RuntimeError("boom")
        handled.append(event.user_id)

    listener = SyncListener(client=client, handler=handler)
    asyncio.run(listener.poll_once())

    assert handled == ["@ok:example.org"]
    assert "Handling membership of @bad:example.org in !a failed" in caplog.text
