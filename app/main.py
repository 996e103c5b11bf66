"""FastAPI application: entry point for the meeting-room reservation service."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse

from app.domain.bus import EventBus
from app.domain.errors import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReservationError,
    ValidationError,
)
from app.domain.handlers import HandlerRegistry
from app.domain.models import (
    Admin,
    AdminCreateRequest,
    BookingResult,
    CustomerRole,
    HistoryEntry,
    PriorityUpdateRequest,
    Reservation,
    ReservationRequest,
    Room,
    RoomAvailability,
    RoomCreateRequest,
    RoomUpdateRequest,
    SweepResponse,
    TimeInterval,
    WeeklyReservationRequest,
    WeeklySchedule,
    Worker,
    WorkerCreateRequest,
)
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
from app.utils.config import get_settings
from app.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

app = FastAPI(title=settings.app_name)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
room_repo = RoomRepository()
customer_repo = CustomerRepository()
reservation_repo = ReservationRepository()
history_repo = HistoryRepository()

availability_view = RoomAvailabilityView(room_repo, customer_repo, reservation_repo)
lifecycle = ReservationLifecycleManager(
    room_repo=room_repo,
    customer_repo=customer_repo,
    reservation_repo=reservation_repo,
    resolver=ConflictResolver(availability_view),
    bus=event_bus,
    locks=RoomLockRegistry(),
)
scheduler = RecurringReservationScheduler(lifecycle, settings)

handler_registry = HandlerRegistry(
    bus=event_bus,
    reservation_repo=reservation_repo,
    history_repo=history_repo,
)


def seed_demo_data() -> None:
    """Load an admin, two workers and three rooms for local experimentation."""
    customer_repo.add(Admin(id="admin", username="admin"))
    customer_repo.add(Worker(id="alice", username="alice"))
    customer_repo.add(Worker(id="bob", username="bob", is_priority=True))
    room_repo.add(Room(id="R101", name="R101", capacity=8, is_priority=True))
    room_repo.add(Room(id="R102", name="R102", capacity=6, equipment=["projector"]))
    room_repo.add(Room(id="R103", name="R103", capacity=12, equipment=["whiteboard"]))
    logger.info("Seeded demo rooms and customers")


if settings.seed_demo_data:
    seed_demo_data()


# ── Errors ────────────────────────────────────────────────────────────

_STATUS_CODES: list[tuple[type[ReservationError], int]] = [
    (ValidationError, 422),
    (ConflictError, 409),
    (InvalidStateError, 409),
    (AuthorizationError, 403),
    (NotFoundError, 404),
]


@app.exception_handler(ReservationError)
async def handle_reservation_error(request: Request, exc: ReservationError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 400
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code, **exc.details},
    )


# ── Actor resolution ──────────────────────────────────────────────────


def current_customer(x_customer_id: str | None = Header(default=None)) -> Worker | Admin:
    """Resolve the acting customer from the session header."""
    if x_customer_id is None:
        raise HTTPException(status_code=401, detail="Missing X-Customer-Id header")
    customer = customer_repo.get(x_customer_id)
    if customer is None:
        raise HTTPException(status_code=401, detail="Unknown customer")
    return customer


def require_admin(actor: Worker | Admin = Depends(current_customer)) -> Admin:
    if not actor.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")
    return actor


def require_worker(actor: Worker | Admin = Depends(current_customer)) -> Worker:
    if actor.role != CustomerRole.WORKER:
        raise HTTPException(status_code=403, detail="Worker role required")
    return actor


# ── Rooms ─────────────────────────────────────────────────────────────


@app.post("/rooms", response_model=Room, status_code=201)
def create_room(body: RoomCreateRequest, _: Admin = Depends(require_admin)) -> Room:
    room = Room(**body.model_dump())
    room_repo.add(room)
    logger.info("Added room %s (%s)", room.id, room.name)
    return room


@app.get("/rooms", response_model=list[Room])
def list_rooms() -> list[Room]:
    return room_repo.list_all()


@app.get("/rooms/{room_id}", response_model=Room)
def get_room(room_id: str) -> Room:
    return lifecycle.get_room(room_id)


@app.get("/rooms/{room_id}/availability", response_model=RoomAvailability)
def get_room_availability(room_id: str, start: datetime, end: datetime) -> RoomAvailability:
    """Return the room's reservations intersecting ``[start, end)`` by status."""
    return availability_view.snapshot(room_id, TimeInterval(start=start, end=end))


@app.post("/rooms/{room_id}/reservations", response_model=BookingResult, status_code=201)
def create_reservation(
    room_id: str, body: ReservationRequest, actor: Worker = Depends(require_worker)
) -> BookingResult:
    """Book a room without preempting anyone."""
    return lifecycle.create_on_non_priority_room(room_id, actor.id, body.to_interval())


@app.post(
    "/rooms/{room_id}/priority-reservations",
    response_model=BookingResult,
    status_code=201,
)
def create_priority_reservation(
    room_id: str, body: ReservationRequest, actor: Worker = Depends(require_worker)
) -> BookingResult:
    """Book a room, preempting non-priority holders where the room allows it."""
    return lifecycle.create_on_priority_room(room_id, actor.id, body.to_interval())


@app.post("/rooms/{room_id}/weekly", response_model=WeeklySchedule, status_code=201)
def create_weekly_reservation(
    room_id: str, body: WeeklyReservationRequest, actor: Worker = Depends(require_worker)
) -> WeeklySchedule:
    """Book the same slot on consecutive weeks, skipping weeks that conflict."""
    return scheduler.schedule_weekly(
        room_id, actor.id, body.to_interval(), body.occurrences
    )


@app.put("/rooms/{room_id}", response_model=Room)
def update_room(
    room_id: str, body: RoomUpdateRequest, _: Admin = Depends(require_admin)
) -> Room:
    return lifecycle.update_room(room_id, body)


@app.put("/rooms/{room_id}/priority", response_model=Room)
def set_room_priority(
    room_id: str, body: PriorityUpdateRequest, _: Admin = Depends(require_admin)
) -> Room:
    return lifecycle.set_room_priority(room_id, body.is_priority)


# ── Customers ─────────────────────────────────────────────────────────


@app.post("/customers/workers", response_model=Worker, status_code=201)
def create_worker(body: WorkerCreateRequest, _: Admin = Depends(require_admin)) -> Worker:
    worker = Worker(**body.model_dump())
    customer_repo.add(worker)
    logger.info("Added worker %s with id %s", worker.username, worker.id)
    return worker


@app.post("/customers/admins", response_model=Admin, status_code=201)
def create_admin(body: AdminCreateRequest, _: Admin = Depends(require_admin)) -> Admin:
    admin = Admin(**body.model_dump())
    customer_repo.add(admin)
    logger.info("Added admin %s with id %s", admin.username, admin.id)
    return admin


@app.get("/customers", response_model=list[Worker | Admin])
def list_customers() -> list[Worker | Admin]:
    return customer_repo.list_all()


@app.get("/customers/current", response_model=Worker | Admin)
def get_current_customer(actor: Worker | Admin = Depends(current_customer)) -> Worker | Admin:
    return actor


@app.get("/customers/{customer_id}", response_model=Worker | Admin)
def get_customer(customer_id: str) -> Worker | Admin:
    return lifecycle.get_customer(customer_id)


@app.get("/customers/{customer_id}/reservations", response_model=list[Reservation])
def list_customer_reservations(customer_id: str) -> list[Reservation]:
    """Return every reservation the customer holds, ordered by start time."""
    lifecycle.get_customer(customer_id)
    return reservation_repo.list_for_customer(customer_id)


@app.put("/customers/{customer_id}/priority", response_model=Worker)
def set_customer_priority(
    customer_id: str, body: PriorityUpdateRequest, _: Admin = Depends(require_admin)
) -> Worker:
    return lifecycle.set_customer_priority(customer_id, body.is_priority)


# ── Reservations ──────────────────────────────────────────────────────


@app.get("/reservations", response_model=list[Reservation])
def list_reservations() -> list[Reservation]:
    return reservation_repo.list_all()


@app.get("/reservations/{reservation_id}", response_model=Reservation)
def get_reservation(reservation_id: str) -> Reservation:
    return lifecycle.get_reservation(reservation_id)


@app.get("/reservations/{reservation_id}/history", response_model=list[HistoryEntry])
def get_reservation_history(reservation_id: str) -> list[HistoryEntry]:
    lifecycle.get_reservation(reservation_id)
    return history_repo.list_for_reservation(reservation_id)


@app.delete("/reservations/{reservation_id}", response_model=Reservation)
def cancel_reservation(
    reservation_id: str, actor: Worker | Admin = Depends(current_customer)
) -> Reservation:
    """Cancel a reservation; only its owner or an admin may do so."""
    return lifecycle.cancel(actor.id, reservation_id)


@app.post("/reservations/sweep", response_model=SweepResponse)
def sweep_expired(now: datetime | None = None, _: Admin = Depends(require_admin)) -> SweepResponse:
    """Finish every active reservation that has already ended.

    Pass *now* as a query param to control the simulated clock.
    Defaults to ``datetime.now(timezone.utc)`` when omitted.
    """
    current_time = now or datetime.now(timezone.utc)
    finished = lifecycle.sweep_expired(current_time)
    return SweepResponse(time=current_time, finished=finished)
