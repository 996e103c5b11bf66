"""Domain models for the meeting-room reservation system."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.errors import InvalidIntervalError


class ReservationStatus(StrEnum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    FINISHED = "finished"


class CustomerRole(StrEnum):
    WORKER = "worker"
    ADMIN = "admin"


class HistoryEntryType(StrEnum):
    CREATED = "created"
    PREEMPTED = "preempted"
    CANCELLED = "cancelled"
    FINISHED = "finished"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so every instant is comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class TimeInterval(BaseModel):
    """Half-open ``[start, end)`` range; touching endpoints do not overlap."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def is_valid(self) -> bool:
        return self.start < self.end

    def ensure_valid(self) -> TimeInterval:
        if not self.is_valid():
            raise InvalidIntervalError(
                "interval start must be strictly before its end",
                start=self.start.isoformat(),
                end=self.end.isoformat(),
            )
        return self

    def overlaps(self, other: TimeInterval) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def shifted(self, delta: timedelta) -> TimeInterval:
        return TimeInterval(start=self.start + delta, end=self.end + delta)


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Room(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    capacity: int = Field(default=1, gt=0)
    equipment: list[str] = Field(default_factory=list)
    is_priority: bool = False


class _CustomerBase(BaseModel):
    id: str = Field(default_factory=_new_id)
    username: str
    first_name: str | None = None
    last_name: str | None = None

    @property
    def is_admin(self) -> bool:
        return False

    @property
    def has_priority(self) -> bool:
        return False


class Worker(_CustomerBase):
    role: Literal["worker"] = "worker"
    is_priority: bool = False

    @property
    def has_priority(self) -> bool:
        return self.is_priority


class Admin(_CustomerBase):
    role: Literal["admin"] = "admin"

    @property
    def is_admin(self) -> bool:
        return True


Customer = Annotated[Union[Worker, Admin], Field(discriminator="role")]


class Reservation(BaseModel):
    id: str = Field(default_factory=_new_id)
    customer_id: str
    room_id: str
    interval: TimeInterval
    status: ReservationStatus = ReservationStatus.ACTIVE
    recurrence_group_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    cancelled_by: str | None = None
    preempted_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == ReservationStatus.ACTIVE


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    reservation_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: HistoryEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class BookingResult(BaseModel):
    """A created reservation together with the reservations it preempted."""

    reservation: Reservation
    preempted: list[Reservation] = Field(default_factory=list)


class OccurrenceStatus(StrEnum):
    CREATED = "created"
    SKIPPED = "skipped"


class OccurrenceOutcome(BaseModel):
    week: int
    interval: TimeInterval
    status: OccurrenceStatus
    reservation: Reservation | None = None
    preempted: list[Reservation] = Field(default_factory=list)
    skip_reason: str | None = None
    blocking_reservation_ids: list[str] = Field(default_factory=list)


class WeeklySchedule(BaseModel):
    recurrence_group_id: str
    occurrences: list[OccurrenceOutcome] = Field(default_factory=list)

    @property
    def created(self) -> list[Reservation]:
        return [o.reservation for o in self.occurrences if o.reservation is not None]

    @property
    def skipped(self) -> list[OccurrenceOutcome]:
        return [o for o in self.occurrences if o.status == OccurrenceStatus.SKIPPED]


class RoomAvailability(BaseModel):
    """A room's reservations intersecting a window, partitioned by status."""

    room_id: str
    window: TimeInterval
    active: list[Reservation] = Field(default_factory=list)
    cancelled: list[Reservation] = Field(default_factory=list)
    finished: list[Reservation] = Field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return not self.active


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class RoomCreateRequest(BaseModel):
    name: str
    capacity: int = Field(default=1, gt=0)
    equipment: list[str] = Field(default_factory=list)
    is_priority: bool = False


class RoomUpdateRequest(RoomCreateRequest):
    id: str


class WorkerCreateRequest(BaseModel):
    username: str
    first_name: str | None = None
    last_name: str | None = None
    is_priority: bool = False


class AdminCreateRequest(BaseModel):
    username: str
    first_name: str | None = None
    last_name: str | None = None


class ReservationRequest(BaseModel):
    start_time: datetime
    end_time: datetime

    def to_interval(self) -> TimeInterval:
        return TimeInterval(start=self.start_time, end=self.end_time)


class WeeklyReservationRequest(ReservationRequest):
    occurrences: int | None = None


class PriorityUpdateRequest(BaseModel):
    is_priority: bool


class SweepResponse(BaseModel):
    time: datetime
    finished: int
