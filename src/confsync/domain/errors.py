"""Errors the directory raises to its callers.

Absence is never an error here; lookups return ``None``. These exceptions cover
the structural and configuration failures a command has no fallback for.
"""

from __future__ import annotations


class DirectoryError(RuntimeError):
    """Base class for directory failures surfaced to the command layer."""


class RootRoomMissingError(DirectoryError):
    """Raised when an operation needs the conference's root room but none was found."""

    def __init__(self, conference_id: str) -> None:
        super().__init__(f"The root room for conference {conference_id!r} has not been created")
        self.conference_id = conference_id


class SubspaceMissingError(DirectoryError):
    """Raised when a configured parent subspace was never created."""

    def __init__(self, subspace_id: str) -> None:
        super().__init__(f"The {subspace_id} subspace has not been created yet")
        self.subspace_id = subspace_id


class CatalogHydrationError(DirectoryError):
    """Raised when rooms were discovered but the root room's state could not be read."""
