"""Domain port definitions for adapters."""

from __future__ import annotations

from .backend import BackendEventDatabase
from .substrate import (
    MemberEvent,
    MemberEventHandler,
    RoomSubstrate,
    StateEvent,
    SubstrateError,
    ThirdPartyInviter,
)

__all__ = [
    "BackendEventDatabase",
    "MemberEvent",
    "MemberEventHandler",
    "RoomSubstrate",
    "StateEvent",
    "SubstrateError",
    "ThirdPartyInviter",
]
