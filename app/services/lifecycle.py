"""Reservation state machine: creation, preemption, cancellation and expiry."""

from __future__ import annotations

from datetime import datetime

from app.domain.bus import EventBus
from app.domain.errors import (
    AlreadyTerminalError,
    NotAWorkerError,
    NotFoundError,
    NotOwnerOrAdminError,
    RoomIdMismatchError,
    RoomUnavailableError,
    StaleReservationError,
)
from app.domain.events import (
    ReservationCancelled,
    ReservationCreated,
    ReservationPreempted,
    ReservationsFinished,
)
from app.domain.models import (
    Admin,
    BookingResult,
    Reservation,
    ReservationStatus,
    Room,
    RoomUpdateRequest,
    TimeInterval,
    Worker,
    ensure_utc,
)
from app.repos.memory import (
    CustomerRepository,
    ReservationRepository,
    RoomLockRegistry,
    RoomRepository,
)
from app.services.conflicts import ConflictResolver
from app.utils.logger import get_logger


logger = get_logger(__name__)


class ReservationLifecycleManager:
    """Owns every reservation transition.

    ``ACTIVE`` is the only non-terminal state; reservations leave it by
    cancellation (owner, admin or preemption) or by the expiry sweep and never
    return. Booking on a room is serialized by that room's lock, and the new
    reservation is committed together with any preempted cancellations.
    """

    def __init__(
        self,
        room_repo: RoomRepository,
        customer_repo: CustomerRepository,
        reservation_repo: ReservationRepository,
        resolver: ConflictResolver,
        bus: EventBus,
        locks: RoomLockRegistry | None = None,
    ) -> None:
        self.room_repo = room_repo
        self.customer_repo = customer_repo
        self.reservation_repo = reservation_repo
        self.resolver = resolver
        self.bus = bus
        self.locks = locks or RoomLockRegistry()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_room(self, room_id: str) -> Room:
        room = self.room_repo.get(room_id)
        if room is None:
            raise NotFoundError.create("Room", room_id)
        return room

    def get_customer(self, customer_id: str) -> Worker | Admin:
        customer = self.customer_repo.get(customer_id)
        if customer is None:
            raise NotFoundError.create("Customer", customer_id)
        return customer

    def get_reservation(self, reservation_id: str) -> Reservation:
        reservation = self.reservation_repo.get(reservation_id)
        if reservation is None:
            raise NotFoundError.create("Reservation", reservation_id)
        return reservation

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_on_non_priority_room(
        self, room_id: str, customer_id: str, interval: TimeInterval
    ) -> BookingResult:
        """Book without preemption, whatever the room's priority flag says."""
        return self.create(room_id, customer_id, interval, honour_room_priority=False)

    def create_on_priority_room(
        self, room_id: str, customer_id: str, interval: TimeInterval
    ) -> BookingResult:
        """Book using the room's priority flag; may cancel existing bookings."""
        return self.create(room_id, customer_id, interval, honour_room_priority=True)

    def create(
        self,
        room_id: str,
        customer_id: str,
        interval: TimeInterval,
        *,
        honour_room_priority: bool,
        recurrence_group_id: str | None = None,
    ) -> BookingResult:
        interval.ensure_valid()
        room = self.get_room(room_id)
        customer = self.get_customer(customer_id)

        reservation = Reservation(
            customer_id=customer.id,
            room_id=room.id,
            interval=interval,
            recurrence_group_id=recurrence_group_id,
        )
        with self.locks.lock_for(room.id):
            # Statuses only ever leave ACTIVE, so each retry sees fewer
            # candidates and the loop ends.
            while True:
                resolution = self.resolver.resolve(
                    interval, room, customer, honour_room_priority=honour_room_priority
                )
                if not resolution.accepted:
                    blocking_ids = [r.id for r in resolution.blocking]
                    logger.warning(
                        "Room %s unavailable for %s (%s - %s), blocked by %s",
                        room.id,
                        customer.id,
                        interval.start.isoformat(),
                        interval.end.isoformat(),
                        blocking_ids,
                    )
                    raise RoomUnavailableError(
                        f"Room {room.name} is already reserved for the requested time",
                        room_id=room.id,
                        blocking_reservation_ids=blocking_ids,
                    )
                try:
                    preempted = self.reservation_repo.commit_booking(
                        reservation, resolution.to_cancel
                    )
                except StaleReservationError as exc:
                    logger.info(
                        "Booking on room %s re-resolved: %s", room.id, exc.message
                    )
                    continue
                break

        logger.info(
            "Reservation %s created on room %s for %s (%s - %s)",
            reservation.id,
            room.id,
            customer.id,
            interval.start.isoformat(),
            interval.end.isoformat(),
        )
        for victim in preempted:
            logger.info("Reservation %s preempted by %s", victim.id, reservation.id)
        self.bus.publish_all(
            [
                *(
                    ReservationPreempted(reservation_id=v.id, preempted_by=reservation.id)
                    for v in preempted
                ),
                ReservationCreated(
                    reservation_id=reservation.id,
                    preempted_ids=[v.id for v in preempted],
                ),
            ]
        )
        return BookingResult(reservation=reservation, preempted=preempted)

    # ------------------------------------------------------------------
    # Cancellation and expiry
    # ------------------------------------------------------------------

    def cancel(self, actor_id: str, reservation_id: str) -> Reservation:
        """Cancel a reservation on behalf of its owner or an admin."""
        actor = self.get_customer(actor_id)
        reservation = self.get_reservation(reservation_id)

        if not (actor.is_admin or actor.id == reservation.customer_id):
            raise NotOwnerOrAdminError(
                "Only the reservation owner or an admin may cancel it",
                reservation_id=reservation.id,
                actor_id=actor.id,
            )

        with self.locks.lock_for(reservation.room_id):
            cancelled = self.reservation_repo.transition(
                reservation.id,
                ReservationStatus.ACTIVE,
                ReservationStatus.CANCELLED,
                cancelled_by=actor.id,
            )
        if not cancelled:
            raise AlreadyTerminalError(
                f"Reservation {reservation.id} is already {reservation.status}",
                reservation_id=reservation.id,
                status=str(reservation.status),
            )

        logger.info("Reservation %s cancelled by %s", reservation.id, actor.id)
        self.bus.publish(
            ReservationCancelled(reservation_id=reservation.id, cancelled_by=actor.id)
        )
        return reservation

    def sweep_expired(self, now: datetime) -> int:
        """Finish every active reservation whose interval ended at or before *now*.

        Returns the number of reservations transitioned by this call.
        """
        now = ensure_utc(now)
        finished: list[str] = []
        for reservation in self.reservation_repo.list_active():
            if reservation.interval.end > now:
                continue
            if self.reservation_repo.transition(
                reservation.id, ReservationStatus.ACTIVE, ReservationStatus.FINISHED
            ):
                finished.append(reservation.id)

        if finished:
            logger.info("Sweep at %s finished %d reservation(s)", now.isoformat(), len(finished))
            self.bus.publish(ReservationsFinished(reservation_ids=finished, finished_at=now))
        return len(finished)

    # ------------------------------------------------------------------
    # Room details and priority flags
    # ------------------------------------------------------------------

    def update_room(self, room_id: str, update: RoomUpdateRequest) -> Room:
        """Replace a room's details; the body id must match *room_id*."""
        if update.id != room_id:
            raise RoomIdMismatchError(
                "Room id in the body does not match the path",
                room_id=room_id,
                body_id=update.id,
            )
        room = self.get_room(room_id)
        with self.locks.lock_for(room.id):
            room.name = update.name
            room.capacity = update.capacity
            room.equipment = list(update.equipment)
            room.is_priority = update.is_priority
        logger.info("Room %s updated (%s)", room.id, room.name)
        return room

    def set_room_priority(self, room_id: str, is_priority: bool) -> Room:
        room = self.get_room(room_id)
        room.is_priority = is_priority
        logger.info("Room %s priority set to %s", room.id, is_priority)
        return room

    def set_customer_priority(self, customer_id: str, is_priority: bool) -> Worker:
        customer = self.get_customer(customer_id)
        if not isinstance(customer, Worker):
            raise NotAWorkerError(
                "Only workers carry a priority flag", customer_id=customer.id
            )
        customer.is_priority = is_priority
        logger.info("Worker %s priority set to %s", customer.id, is_priority)
        return customer
