"""Service for materializing weekly reservation series occurrence by occurrence."""

from __future__ import annotations

import uuid

from dateutil.rrule import WEEKLY, rrule

from app.domain.errors import ConflictError, InvalidOccurrenceCountError
from app.domain.models import (
    OccurrenceOutcome,
    OccurrenceStatus,
    TimeInterval,
    WeeklySchedule,
)
from app.services.lifecycle import ReservationLifecycleManager
from app.utils.config import Settings, get_settings
from app.utils.logger import get_logger


logger = get_logger(__name__)


def weekly_intervals(first: TimeInterval, occurrences: int) -> list[TimeInterval]:
    """Expand *first* into *occurrences* weekly slots of the same duration.

    The first slot is *first* itself; each later slot starts exactly one week
    after the previous one.
    """
    starts = list(rrule(WEEKLY, dtstart=first.start, count=occurrences))
    # rrule drops sub-second precision; shift the first slot by whole weeks.
    return [first.shifted(dt - starts[0]) for dt in starts]


class RecurringReservationScheduler:
    """Books a weekly series through the priority path.

    A conflict on one week is recorded as a skip and the series moves on; the
    series always stops after the requested number of attempts. Any other
    failure aborts the whole call.
    """

    def __init__(
        self,
        lifecycle: ReservationLifecycleManager,
        settings: Settings | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.settings = settings or get_settings()

    def schedule_weekly(
        self,
        room_id: str,
        customer_id: str,
        first_interval: TimeInterval,
        occurrences: int | None = None,
    ) -> WeeklySchedule:
        if occurrences is None:
            occurrences = self.settings.default_weekly_occurrences
        if not 1 <= occurrences <= self.settings.max_weekly_occurrences:
            raise InvalidOccurrenceCountError(
                f"occurrences must be between 1 and {self.settings.max_weekly_occurrences}",
                occurrences=occurrences,
            )
        first_interval.ensure_valid()
        # Unknown room or customer aborts before any week is attempted.
        self.lifecycle.get_room(room_id)
        self.lifecycle.get_customer(customer_id)

        schedule = WeeklySchedule(recurrence_group_id=str(uuid.uuid4()))
        for week, interval in enumerate(weekly_intervals(first_interval, occurrences), start=1):
            try:
                result = self.lifecycle.create(
                    room_id,
                    customer_id,
                    interval,
                    honour_room_priority=True,
                    recurrence_group_id=schedule.recurrence_group_id,
                )
            except ConflictError as exc:
                logger.warning(
                    "Weekly series %s: week %d (%s) skipped: %s",
                    schedule.recurrence_group_id,
                    week,
                    interval.start.isoformat(),
                    exc.message,
                )
                schedule.occurrences.append(
                    OccurrenceOutcome(
                        week=week,
                        interval=interval,
                        status=OccurrenceStatus.SKIPPED,
                        skip_reason=exc.code,
                        blocking_reservation_ids=exc.details.get(
                            "blocking_reservation_ids", []
                        ),
                    )
                )
                continue

            schedule.occurrences.append(
                OccurrenceOutcome(
                    week=week,
                    interval=interval,
                    status=OccurrenceStatus.CREATED,
                    reservation=result.reservation,
                    preempted=result.preempted,
                )
            )

        logger.info(
            "Weekly series %s on room %s: %d created, %d skipped",
            schedule.recurrence_group_id,
            room_id,
            len(schedule.created),
            len(schedule.skipped),
        )
        return schedule
