"""Service for deciding whether a booking may proceed on a room."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from app.domain.models import Admin, Reservation, Room, TimeInterval, Worker
from app.services.availability import RoomAvailabilityView
from app.services.priority import PriorityEngine
from app.utils.logger import get_logger


logger = get_logger(__name__)


class Decision(StrEnum):
    ACCEPTED = "accepted"
    ACCEPTED_WITH_PREEMPTION = "accepted_with_preemption"
    REJECTED = "rejected"


class Resolution(BaseModel):
    decision: Decision
    to_cancel: list[Reservation] = Field(default_factory=list)
    blocking: list[Reservation] = Field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return self.decision != Decision.REJECTED


class ConflictResolver:
    """Pure decision over the active reservations overlapping a candidate.

    Preemption is all-or-nothing: if any overlapping reservation may not be
    bumped, the whole request is rejected and nothing is marked for cancelling.
    """

    def __init__(
        self,
        availability: RoomAvailabilityView,
        priority: PriorityEngine | None = None,
    ) -> None:
        self.availability = availability
        self.priority = priority or PriorityEngine()

    def resolve(
        self,
        interval: TimeInterval,
        room: Room,
        requester: Worker | Admin,
        *,
        honour_room_priority: bool = True,
    ) -> Resolution:
        overlapping = self.availability.overlapping_active(room.id, interval)
        if not overlapping:
            return Resolution(decision=Decision.ACCEPTED)

        room_is_priority = honour_room_priority and room.is_priority
        to_cancel: list[Reservation] = []
        blocking: list[Reservation] = []
        for item in overlapping:
            if self.priority.may_preempt(
                requester_is_priority=requester.has_priority,
                holder_is_priority=item.holder_is_priority,
                room_is_priority=room_is_priority,
            ):
                to_cancel.append(item.reservation)
            else:
                blocking.append(item.reservation)

        if blocking:
            logger.debug(
                "Rejected %s on room %s: blocked by %s",
                interval,
                room.id,
                [r.id for r in blocking],
            )
            return Resolution(decision=Decision.REJECTED, blocking=blocking)

        logger.debug(
            "Accepted %s on room %s preempting %s",
            interval,
            room.id,
            [r.id for r in to_cancel],
        )
        return Resolution(decision=Decision.ACCEPTED_WITH_PREEMPTION, to_cancel=to_cancel)
