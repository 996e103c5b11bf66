"""Domain events emitted during the reservation lifecycle."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReservationCreated(BaseModel):
    """Fired when a new reservation is persisted as active."""

    reservation_id: str
    preempted_ids: list[str] = Field(default_factory=list)


class ReservationPreempted(BaseModel):
    """Fired for each reservation cancelled to admit a priority booking."""

    reservation_id: str
    preempted_by: str


class ReservationCancelled(BaseModel):
    """Fired when an owner or admin cancels a reservation."""

    reservation_id: str
    cancelled_by: str


class ReservationsFinished(BaseModel):
    """Fired by the expiry sweep with every reservation it finished."""

    reservation_ids: list[str]
    finished_at: datetime
