"""Read-only view of a room's reservations over a time window."""

from __future__ import annotations

from pydantic import BaseModel

from app.domain.errors import NotFoundError
from app.domain.models import Reservation, ReservationStatus, RoomAvailability, TimeInterval
from app.repos.memory import CustomerRepository, ReservationRepository, RoomRepository


class OverlappingReservation(BaseModel):
    """An active reservation that intersects a candidate interval."""

    reservation: Reservation
    holder_is_priority: bool


def find_overlapping(
    interval: TimeInterval, reservations: list[Reservation]
) -> list[Reservation]:
    """Return the reservations whose interval overlaps *interval*.

    Overlap rule: ``start < other.end and other.start < end``.
    Exact boundary touches (end == start) are NOT considered overlaps.
    """
    return sorted(
        (r for r in reservations if r.interval.overlaps(interval)),
        key=lambda r: r.interval.start,
    )


class RoomAvailabilityView:
    def __init__(
        self,
        room_repo: RoomRepository,
        customer_repo: CustomerRepository,
        reservation_repo: ReservationRepository,
    ) -> None:
        self.room_repo = room_repo
        self.customer_repo = customer_repo
        self.reservation_repo = reservation_repo

    def _room_reservations(self, room_id: str) -> list[Reservation]:
        if self.room_repo.get(room_id) is None:
            raise NotFoundError.create("Room", room_id)
        return self.reservation_repo.list_for_room(room_id)

    def overlapping_active(
        self, room_id: str, interval: TimeInterval
    ) -> list[OverlappingReservation]:
        """Active reservations on the room overlapping *interval*, with holder priority."""
        active = [r for r in self._room_reservations(room_id) if r.is_active]
        result = []
        for reservation in find_overlapping(interval, active):
            holder = self.customer_repo.get(reservation.customer_id)
            result.append(
                OverlappingReservation(
                    reservation=reservation,
                    holder_is_priority=holder is not None and holder.has_priority,
                )
            )
        return result

    def snapshot(self, room_id: str, window: TimeInterval) -> RoomAvailability:
        """All reservations on the room intersecting *window*, partitioned by status."""
        window.ensure_valid()
        view = RoomAvailability(room_id=room_id, window=window)
        buckets = {
            ReservationStatus.ACTIVE: view.active,
            ReservationStatus.CANCELLED: view.cancelled,
            ReservationStatus.FINISHED: view.finished,
        }
        for reservation in find_overlapping(window, self._room_reservations(room_id)):
            buckets[reservation.status].append(reservation)
        return view
