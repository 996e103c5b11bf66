"""Typed failures raised by the reservation engine.

Every error carries a machine-readable ``code`` and an optional ``details``
dict; the HTTP layer maps the class hierarchy onto status codes.
"""

from __future__ import annotations

from typing import Any


class ReservationError(Exception):
    """Base class for all domain errors."""

    code = "reservation_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


# ── Validation ────────────────────────────────────────────────────────


class ValidationError(ReservationError):
    code = "validation_error"


class InvalidIntervalError(ValidationError):
    code = "invalid_interval"


class InvalidOccurrenceCountError(ValidationError):
    code = "invalid_occurrence_count"


class NotAWorkerError(ValidationError):
    code = "not_a_worker"


class RoomIdMismatchError(ValidationError):
    code = "room_id_mismatch"


# ── Conflicts ─────────────────────────────────────────────────────────


class ConflictError(ReservationError):
    code = "conflict"


class RoomUnavailableError(ConflictError):
    code = "room_unavailable"


# ── Authorization / state ─────────────────────────────────────────────


class AuthorizationError(ReservationError):
    code = "forbidden"


class NotOwnerOrAdminError(AuthorizationError):
    code = "not_owner_or_admin"


class InvalidStateError(ReservationError):
    code = "invalid_state"


class AlreadyTerminalError(InvalidStateError):
    code = "already_terminal"


class StaleReservationError(InvalidStateError):
    """A reservation chosen for preemption left ACTIVE before the commit."""

    code = "stale_reservation"


class NotFoundError(ReservationError):
    code = "not_found"

    @classmethod
    def create(cls, resource: str, identifier: str) -> NotFoundError:
        return cls(f"{resource} {identifier} not found", resource=resource, id=identifier)
