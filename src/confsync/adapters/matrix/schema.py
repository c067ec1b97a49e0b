"""Pydantic models describing Matrix client-server API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MatrixBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ErrorPayload(MatrixBaseModel):
    errcode: str | None = None
    error: str | None = None


class WhoAmIResponse(MatrixBaseModel):
    user_id: str


class JoinedRoomsResponse(MatrixBaseModel):
    joined_rooms: list[str] = Field(default_factory=list[str])


class RoomAliasResponse(MatrixBaseModel):
    room_id: str


class ClientEvent(MatrixBaseModel):
    type: str
    sender: str
    content: dict[str, object] = Field(default_factory=dict[str, object])
    state_key: str | None = None
    event_id: str | None = None


class StateEventPayload(ClientEvent):
    state_key: str = ""


class Timeline(MatrixBaseModel):
    events: list[ClientEvent] = Field(default_factory=list[ClientEvent])


class JoinedRoomSync(MatrixBaseModel):
    timeline: Timeline = Field(default_factory=Timeline)


class SyncRooms(MatrixBaseModel):
    join: dict[str, JoinedRoomSync] = Field(default_factory=dict[str, JoinedRoomSync])


class SyncResponse(MatrixBaseModel):
    next_batch: str
    rooms: SyncRooms = Field(default_factory=SyncRooms)
