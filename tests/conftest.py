"""Shared fixtures: a fresh bus, repositories and engine for each test."""

from __future__ import annotations

import pytest

from app.domain.bus import EventBus
from app.domain.handlers import HandlerRegistry
from app.domain.models import Admin, Room, Worker
from app.repos.memory import (
    CustomerRepository,
    HistoryRepository,
    ReservationRepository,
    RoomLockRegistry,
    RoomRepository,
)
from app.services.availability import RoomAvailabilityView
from app.services.conflicts import ConflictResolver
from app.services.lifecycle import ReservationLifecycleManager
from app.services.recurrence import RecurringReservationScheduler
from app.utils.config import Settings


@pytest.fixture()
def env():
    bus = EventBus()
    room_repo = RoomRepository()
    customer_repo = CustomerRepository()
    reservation_repo = ReservationRepository()
    history_repo = HistoryRepository()

    availability = RoomAvailabilityView(room_repo, customer_repo, reservation_repo)
    resolver = ConflictResolver(availability)
    lifecycle = ReservationLifecycleManager(
        room_repo=room_repo,
        customer_repo=customer_repo,
        reservation_repo=reservation_repo,
        resolver=resolver,
        bus=bus,
        locks=RoomLockRegistry(),
    )
    scheduler = RecurringReservationScheduler(
        lifecycle, Settings(default_weekly_occurrences=4, max_weekly_occurrences=52)
    )
    registry = HandlerRegistry(
        bus=bus, reservation_repo=reservation_repo, history_repo=history_repo
    )

    for room in (
        Room(id="R101", name="R101", is_priority=True),
        Room(id="R102", name="R102", is_priority=False),
        Room(id="R103", name="R103", is_priority=False),
    ):
        room_repo.add(room)
    for customer in (
        Worker(id="alice", username="alice", is_priority=False),
        Worker(id="bob", username="bob", is_priority=True),
        Worker(id="carol", username="carol", is_priority=False),
        Worker(id="dave", username="dave", is_priority=True),
        Admin(id="root", username="root"),
    ):
        customer_repo.add(customer)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.room_repo = room_repo
    e.customer_repo = customer_repo
    e.reservation_repo = reservation_repo
    e.history_repo = history_repo
    e.availability = availability
    e.resolver = resolver
    e.lifecycle = lifecycle
    e.scheduler = scheduler
    e.registry = registry
    return e
