"""Public interface for the Matrix homeserver adapter."""

from __future__ import annotations

from .client import MatrixAPIError, MatrixClient
from .schema import ClientEvent, SyncResponse
from .sync import MEMBERSHIP_FILTER, SyncListener, member_events

__all__ = [
    "MEMBERSHIP_FILTER",
    "ClientEvent",
    "MatrixAPIError",
    "MatrixClient",
    "SyncListener",
    "SyncResponse",
    "member_events",
]
