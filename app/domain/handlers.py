"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

from app.domain.bus import EventBus
from app.domain.events import (
    ReservationCancelled,
    ReservationCreated,
    ReservationPreempted,
    ReservationsFinished,
)
from app.domain.models import HistoryEntry, HistoryEntryType
from app.repos.memory import HistoryRepository, ReservationRepository


class HandlerRegistry:
    """Wires domain-event handlers to the bus so every transition is recorded."""

    def __init__(
        self,
        bus: EventBus,
        reservation_repo: ReservationRepository,
        history_repo: HistoryRepository,
    ) -> None:
        self.bus = bus
        self.reservation_repo = reservation_repo
        self.history_repo = history_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ReservationCreated, self.on_reservation_created)
        self.bus.subscribe(ReservationPreempted, self.on_reservation_preempted)
        self.bus.subscribe(ReservationCancelled, self.on_reservation_cancelled)
        self.bus.subscribe(ReservationsFinished, self.on_reservations_finished)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_reservation_created(self, event: ReservationCreated) -> None:
        stored = self.reservation_repo.get(event.reservation_id)
        if stored is None:
            return

        payload: dict = {
            "room_id": stored.room_id,
            "customer_id": stored.customer_id,
            "start": stored.interval.start.isoformat(),
            "end": stored.interval.end.isoformat(),
        }
        if stored.recurrence_group_id:
            payload["recurrence_group_id"] = stored.recurrence_group_id
        if event.preempted_ids:
            payload["preempted_ids"] = event.preempted_ids

        self.history_repo.add(
            HistoryEntry(
                reservation_id=event.reservation_id,
                type=HistoryEntryType.CREATED,
                payload=payload,
            )
        )

    def on_reservation_preempted(self, event: ReservationPreempted) -> None:
        self.history_repo.add(
            HistoryEntry(
                reservation_id=event.reservation_id,
                type=HistoryEntryType.PREEMPTED,
                payload={"preempted_by": event.preempted_by},
            )
        )

    def on_reservation_cancelled(self, event: ReservationCancelled) -> None:
        self.history_repo.add(
            HistoryEntry(
                reservation_id=event.reservation_id,
                type=HistoryEntryType.CANCELLED,
                payload={"cancelled_by": event.cancelled_by},
            )
        )

    def on_reservations_finished(self, event: ReservationsFinished) -> None:
        for reservation_id in event.reservation_ids:
            self.history_repo.add(
                HistoryEntry(
                    reservation_id=reservation_id,
                    type=HistoryEntryType.FINISHED,
                    payload={"finished_at": event.finished_at.isoformat()},
                )
            )
