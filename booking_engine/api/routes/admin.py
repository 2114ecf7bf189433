import logging
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api.deps import get_session
from booking_engine.api.schemas.booking import StatusTransitionRequest
from booking_engine.core.errors import BookingNotFound, InvalidTransition
from booking_engine.models.booking import Booking, BookingPublic, BookingStatus
from booking_engine.services.booking_service import list_bookings
from booking_engine.services.lifecycle_service import transition_booking
from booking_engine.services.notification_service import send_lifecycle_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/bookings", response_model=list[BookingPublic])
async def list_all_bookings(
    status_filter: BookingStatus | None = Query(None, alias="status"),
    booking_date: date | None = Query(None, alias="date"),
    session: AsyncSession = Depends(get_session),
) -> list[BookingPublic]:
    bookings = await list_bookings(session, status=status_filter, booking_date=booking_date)
    return [BookingPublic.model_validate(b, from_attributes=True) for b in bookings]


@router.post("/bookings/{booking_id}/status", response_model=BookingPublic)
async def change_booking_status(
    booking_id: int,
    body: StatusTransitionRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
) -> BookingPublic:
    try:
        event = await transition_booking(session, booking_id, body.status)
    except BookingNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    except InvalidTransition as e:
        logger.warning("Rejected status change for booking %s: %s", booking_id, e)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    # commit before the notifier sees the event
    await session.commit()
    background_tasks.add_task(send_lifecycle_event, event)
    booking = await session.get(Booking, booking_id)
    return BookingPublic.model_validate(booking, from_attributes=True)
