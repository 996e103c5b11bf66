"""In-memory repositories for rooms, customers, reservations and history."""

from __future__ import annotations

import threading
from collections import defaultdict

from app.domain.errors import StaleReservationError
from app.domain.models import (
    Admin,
    HistoryEntry,
    Reservation,
    ReservationStatus,
    Room,
    Worker,
)


class RoomRepository:
    """Dict-backed store for Room instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Room] = {}

    def add(self, room: Room) -> None:
        self._store[room.id] = room

    def get(self, room_id: str) -> Room | None:
        return self._store.get(room_id)

    def list_all(self) -> list[Room]:
        return list(self._store.values())


class CustomerRepository:
    """Dict-backed store for workers and admins, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Worker | Admin] = {}

    def add(self, customer: Worker | Admin) -> None:
        self._store[customer.id] = customer

    def get(self, customer_id: str) -> Worker | Admin | None:
        return self._store.get(customer_id)

    def list_all(self) -> list[Worker | Admin]:
        return list(self._store.values())


class ReservationRepository:
    """Dict-backed store for Reservation instances, keyed by id.

    Every read and write goes through a single mutex: a booking commit (new
    reservation plus any preempted cancellations) and each status transition
    are observed as one step, and listings iterate over a copy taken under it.
    """

    def __init__(self) -> None:
        self._store: dict[str, Reservation] = {}
        self._mutex = threading.Lock()

    def add(self, reservation: Reservation) -> None:
        with self._mutex:
            self._store[reservation.id] = reservation

    def get(self, reservation_id: str) -> Reservation | None:
        with self._mutex:
            return self._store.get(reservation_id)

    def list_all(self) -> list[Reservation]:
        with self._mutex:
            return list(self._store.values())

    def list_for_room(self, room_id: str) -> list[Reservation]:
        return [r for r in self.list_all() if r.room_id == room_id]

    def list_for_customer(self, customer_id: str) -> list[Reservation]:
        return sorted(
            (r for r in self.list_all() if r.customer_id == customer_id),
            key=lambda r: r.interval.start,
        )

    def list_for_group(self, recurrence_group_id: str) -> list[Reservation]:
        """Return all occurrences created by one weekly-scheduling request."""
        return sorted(
            (
                r
                for r in self.list_all()
                if r.recurrence_group_id == recurrence_group_id
            ),
            key=lambda r: r.interval.start,
        )

    def list_active(self) -> list[Reservation]:
        return [r for r in self.list_all() if r.is_active]

    def commit_booking(
        self, reservation: Reservation, to_cancel: list[Reservation]
    ) -> list[Reservation]:
        """Store *reservation* and cancel every reservation in *to_cancel*.

        Nothing is written unless every reservation to cancel is still active.
        Returns the cancelled reservations as stored.
        """
        with self._mutex:
            stored = []
            for victim in to_cancel:
                current = self._store.get(victim.id)
                if current is None or not current.is_active:
                    raise StaleReservationError(
                        f"Reservation {victim.id} is no longer active",
                        reservation_id=victim.id,
                    )
                stored.append(current)

            for current in stored:
                current.status = ReservationStatus.CANCELLED
                current.preempted_by = reservation.id
            self._store[reservation.id] = reservation
            return stored

    def transition(
        self,
        reservation_id: str,
        expected: ReservationStatus,
        new: ReservationStatus,
        cancelled_by: str | None = None,
    ) -> bool:
        """Compare-and-set a reservation's status.

        Returns False when the reservation is missing or not in *expected*.
        """
        with self._mutex:
            current = self._store.get(reservation_id)
            if current is None or current.status != expected:
                return False
            current.status = new
            if cancelled_by is not None:
                current.cancelled_by = cancelled_by
            return True


class HistoryRepository:
    """List-backed store for HistoryEntry instances."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def add(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def list_for_reservation(self, reservation_id: str) -> list[HistoryEntry]:
        return sorted(
            [e for e in self._entries if e.reservation_id == reservation_id],
            key=lambda e: e.timestamp,
        )


class RoomLockRegistry:
    """One lock per room; bookings on different rooms never contend."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._guard = threading.Lock()

    def lock_for(self, room_id: str) -> threading.Lock:
        with self._guard:
            return self._locks[room_id]
