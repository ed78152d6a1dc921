import logging
from typing import List, Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Query
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Drafts
    SetDatesRequest, AddSelectionRequest, SetQuantityRequest, FinalizeRequest,
    SelectionResponse, DraftSummaryResponse, ReservationDraftResponse, ErrorResponse,
    # Bookings
    SubmitBookingRequest, StatusChangeRequest, StatusChangeResponse,
    TransitionResponse, BookingResponse, ActionsResponse,
    # Availability
    CalendarRequest, CalendarResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, fake_users_db, get_user
from config import settings
from infrastructure.security import verify_password, create_access_token
from domain.auth import User

from application.services import (
    AvailabilityService, BookingService, DraftService, DraftSummary, MonthCalendar, OperationResult
)
from infrastructure.repositories.in_memory_repositories import (
    InMemoryBookingRepository, InMemoryDraftRepository
)
from domain.enums import BookingStatus, ErrorKind
from domain.entities import Booking
from domain.pricing import DraftLine, PricingAggregator, ReservationDraft
from domain.status_machine import STATUS_LABELS, TRANSITION_TABLE, TransitionResult, available_actions

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    description="Reservation drafts, booking lifecycle and availability calendars",
    version=settings.app_version
)

# Initialize repositories
draft_repo = InMemoryDraftRepository(
    lambda: PricingAggregator(max_per_type=settings.max_rooms_per_type, currency=settings.currency)
)
booking_repo = InMemoryBookingRepository()
draft_service = DraftService(draft_repo)


# Dependency injection
def get_draft_service() -> DraftService:
    return draft_service


def get_booking_service() -> BookingService:
    return BookingService(booking_repo, draft_service)


def get_availability_service() -> AvailabilityService:
    return AvailabilityService(booking_repo, first_weekday=settings.calendar_first_weekday)


_NOT_FOUND_KINDS = {ErrorKind.UNKNOWN_SELECTION}
_CONFLICT_KINDS = {
    ErrorKind.ILLEGAL_TRANSITION, ErrorKind.NO_OP_TRANSITION, ErrorKind.FORBIDDEN_TRANSITION,
}

# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running", "version": settings.app_version}

@app.get("/api/enums/booking-status", tags=["Enum Reference"])
async def get_booking_statuses():
    """Get BookingStatus values with their direct successors"""
    return {
        "values": [item.value for item in BookingStatus],
        "transitions": {s.value: sorted(t.value for t in targets) for s, targets in TRANSITION_TABLE.items()},
        "labels": {s.value: label for s, label in STATUS_LABELS.items()},
    }

# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token = create_access_token({"sub": user.username, "role": user.role.value})
    return {"access_token": access_token, "token_type": "bearer"}

@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user

# ============================================================================
# DRAFT ENDPOINTS
# ============================================================================

@app.put("/api/drafts/{session_id}/dates", response_model=DraftSummaryResponse, tags=["Drafts"])
async def set_draft_dates(
    session_id: str,
    request: SetDatesRequest,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Set check-in and check-out for a session"""
    result = await service.set_dates(session_id, request.check_in, request.check_out)
    return _summary_to_response(_unwrap(result))

@app.post("/api/drafts/{session_id}/selections", response_model=DraftSummaryResponse, tags=["Drafts"])
async def add_draft_selection(
    session_id: str,
    request: AddSelectionRequest,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Add a room type, merging with an existing line for the same type"""
    result = await service.add_selection(
        session_id=session_id,
        room_type_id=request.room_type_id,
        unit_price=request.unit_price,
        quantity=request.quantity,
        adults=request.adults,
        children=request.children,
        infants=request.infants,
        available_units=request.available_units
    )
    return _summary_to_response(_unwrap(result))

@app.patch("/api/drafts/{session_id}/selections/{room_type_id}", response_model=DraftSummaryResponse, tags=["Drafts"])
async def set_draft_quantity(
    session_id: str,
    room_type_id: str,
    request: SetQuantityRequest,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Change how many rooms of a type are selected"""
    result = await service.set_quantity(session_id, room_type_id, request.quantity, request.available_units)
    if result is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _summary_to_response(_unwrap(result))

@app.delete("/api/drafts/{session_id}/selections/{room_type_id}", response_model=DraftSummaryResponse, tags=["Drafts"])
async def remove_draft_selection(
    session_id: str,
    room_type_id: str,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Remove a room type from the session"""
    summary = await service.remove_selection(session_id, room_type_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _summary_to_response(summary)

@app.get("/api/drafts/{session_id}", response_model=DraftSummaryResponse, tags=["Drafts"])
async def get_draft(
    session_id: str,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get a session's selections and totals"""
    summary = await service.get_summary(session_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _summary_to_response(summary)

@app.post("/api/drafts/{session_id}/finalize", response_model=ReservationDraftResponse, tags=["Drafts"])
async def finalize_draft(
    session_id: str,
    request: FinalizeRequest,
    service: DraftService = Depends(get_draft_service),
    current_user: User = Depends(get_current_active_user)
):
    """Snapshot the session into an immutable priced draft"""
    result = await service.finalize(session_id, request.hotel_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _draft_to_response(_unwrap(result))

# ============================================================================
# BOOKING ENDPOINTS
# ============================================================================

@app.post("/api/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
async def submit_booking(
    request: SubmitBookingRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Persist a session's draft as a pending booking"""
    result = await service.submit(
        session_id=request.session_id,
        hotel_id=request.hotel_id,
        guest_name=request.guest_name,
        created_by=current_user.username
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Draft not found")
    return _booking_to_response(_unwrap(result))

@app.get("/api/bookings", response_model=List[BookingResponse], tags=["Bookings"])
async def get_all_bookings(
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get all bookings"""
    bookings = await service.get_all_bookings()
    return [_booking_to_response(b) for b in bookings]

@app.get("/api/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get booking by ID"""
    booking = await service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return _booking_to_response(booking)

@app.get("/api/bookings/{booking_id}/actions", response_model=ActionsResponse, tags=["Bookings"])
async def get_booking_actions(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Statuses the current user may move this booking to"""
    booking = await service.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    actions = await service.available_actions(booking_id, current_user.role)
    return ActionsResponse(
        booking_id=booking.booking_id,
        status=booking.status.value,
        actions=_sorted_values(actions)
    )

@app.post("/api/bookings/{booking_id}/status", response_model=TransitionResponse, tags=["Bookings"])
async def change_booking_status(
    booking_id: UUID,
    request: StatusChangeRequest,
    service: BookingService = Depends(get_booking_service),
    current_user: User = Depends(get_current_active_user)
):
    """Move a booking to a new status"""
    result = await service.change_status(
        booking_id=booking_id,
        requested=request.requested_status,
        actor=current_user.role,
        changed_by=current_user.username
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Booking not found")
    response = _transition_to_response(result, current_user)
    if not result.ok:
        return JSONResponse(status_code=409, content=response.model_dump(mode="json"))
    return response

# ============================================================================
# AVAILABILITY ENDPOINTS
# ============================================================================

@app.get("/api/availability/calendar", response_model=CalendarResponse, tags=["Availability"])
async def get_hotel_calendar(
    hotel_id: str,
    year: int,
    month: int = Query(ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Occupancy calendar for a hotel's stored bookings"""
    calendar = await service.hotel_calendar(hotel_id, year, month)
    return _calendar_to_response(calendar)

@app.post("/api/availability/calendar", response_model=CalendarResponse, tags=["Availability"])
async def build_calendar(
    request: CalendarRequest,
    service: AvailabilityService = Depends(get_availability_service),
    current_user: User = Depends(get_current_active_user)
):
    """Occupancy calendar for a supplied booking list"""
    calendar = service.calendar_for_records(request.bookings, request.year, request.month)
    return _calendar_to_response(calendar)

# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _status_code_for(kind: Optional[ErrorKind]) -> int:
    if kind in _NOT_FOUND_KINDS:
        return 404
    if kind in _CONFLICT_KINDS:
        return 409
    return 400

def _unwrap(result: OperationResult):
    """Return the value of a successful result, raising HTTPException otherwise"""
    if result.ok:
        return result.value
    raise HTTPException(
        status_code=_status_code_for(result.error_kind),
        detail=ErrorResponse(error_kind=result.error_kind, message=result.message).model_dump(mode="json")
    )

def _sorted_values(statuses) -> List[str]:
    return sorted(s.value for s in statuses)

def _line_to_response(line: DraftLine) -> SelectionResponse:
    s = line.selection
    return SelectionResponse(
        room_type_id=s.room_type_id,
        unit_price=s.unit_price,
        quantity=s.quantity,
        adults=s.adults,
        children=s.children,
        infants=s.infants,
        line_total=line.line_total
    )

def _summary_to_response(summary: DraftSummary) -> DraftSummaryResponse:
    """Convert DraftSummary to DraftSummaryResponse"""
    return DraftSummaryResponse(
        session_id=summary.session_id,
        check_in=summary.check_in,
        check_out=summary.check_out,
        nights=summary.nights,
        selections=[_line_to_response(line) for line in summary.lines],
        grand_total=summary.grand_total,
        total_guests=summary.total_guests
    )

def _draft_to_response(draft: ReservationDraft) -> ReservationDraftResponse:
    """Convert ReservationDraft to ReservationDraftResponse"""
    return ReservationDraftResponse(
        hotel_id=draft.hotel_id,
        check_in=draft.date_range.check_in,
        check_out=draft.date_range.check_out,
        nights=draft.nights,
        selections=[_line_to_response(line) for line in draft.lines],
        grand_total=draft.grand_total,
        currency=draft.currency,
        total_guests=draft.total_guests,
        payload=draft.to_payload()
    )

def _booking_to_response(booking: Booking) -> BookingResponse:
    """Convert Booking entity to BookingResponse"""
    return BookingResponse(
        booking_id=booking.booking_id,
        booking_code=booking.booking_code,
        hotel_id=booking.hotel_id,
        guest_name=booking.guest_name,
        check_in=booking.date_range.check_in,
        check_out=booking.date_range.check_out,
        nights=booking.nights,
        selections=[_line_to_response(line) for line in booking.lines],
        total_amount=booking.total_amount,
        currency=booking.currency,
        total_guests=booking.total_guests(),
        status=booking.status.value,
        status_label=STATUS_LABELS[booking.status],
        history=[
            StatusChangeResponse(
                from_status=change.from_status.value,
                to_status=change.to_status.value,
                actor=change.actor.value if change.actor else None,
                changed_by=change.changed_by,
                changed_at=change.changed_at
            )
            for change in booking.history
        ],
        created_at=booking.created_at,
        modified_at=booking.modified_at,
        created_by=booking.created_by,
        version=booking.version
    )

def _transition_to_response(result: TransitionResult, user: User) -> TransitionResponse:
    """Convert TransitionResult to TransitionResponse, with the next actions for the user"""
    status = result.new_status if result.ok else result.current_status
    return TransitionResponse(
        ok=result.ok,
        current_status=result.current_status.value,
        new_status=result.new_status.value if result.new_status else None,
        error_kind=result.error_kind,
        message=result.message,
        available_actions=_sorted_values(available_actions(status, user.role))
    )

def _calendar_to_response(calendar: MonthCalendar) -> CalendarResponse:
    """Convert MonthCalendar to CalendarResponse"""
    return CalendarResponse.model_validate(calendar.model_dump())

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
