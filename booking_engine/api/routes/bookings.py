import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api.deps import get_session
from booking_engine.api.schemas.booking import BookingRequest, BookingStatusResponse
from booking_engine.core.errors import BookingNotFound, ServiceNotFound, SlotConflict, ValidationError
from booking_engine.models.booking import BookingCreate, BookingPublic
from booking_engine.services.booking_service import describe_progress, find_latest_booking
from booking_engine.services.lifecycle_service import created_event
from booking_engine.services.notification_service import send_lifecycle_event
from booking_engine.services.reservation_service import reserve_booking

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingPublic, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> BookingPublic:
    data = BookingCreate(**body.model_dump())
    try:
        booking = await reserve_booking(session, data)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": e.field, "message": e.message},
        )
    except ServiceNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    except SlotConflict as e:
        logger.info("Reservation rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This slot was just taken. Please check availability again and pick another time.",
        )
    background_tasks.add_task(send_lifecycle_event, created_event(booking))
    return BookingPublic.model_validate(booking, from_attributes=True)


@router.get("/status", response_model=BookingStatusResponse)
async def booking_status(
    phone: str = Query(..., min_length=1),
    email: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> BookingStatusResponse:
    """Latest booking made with this phone and email. Read-only."""
    try:
        booking = await find_latest_booking(session, phone, email)
    except BookingNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No booking found matching these details.",
        )
    progress = describe_progress(booking)
    return BookingStatusResponse(
        id=booking.id,
        service_id=booking.service_id,
        booking_date=booking.booking_date,
        time=booking.time,
        duration=booking.duration,
        status=booking.status,
        stage=progress.stage,
        starts_soon=progress.starts_soon,
    )
