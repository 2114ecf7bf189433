from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api.deps import get_service_or_404, get_session
from booking_engine.api.schemas.booking import AvailableSlotsResponse, SlotInfo
from booking_engine.models.service import Service
from booking_engine.services.availability_service import get_availability
from booking_engine.services.pricing import previous_price_for, price_for

router = APIRouter(prefix="/slots", tags=["slots"])


@router.get("/available", response_model=AvailableSlotsResponse)
async def available_slots(
    date_param: date = Query(..., alias="date"),
    duration: int = Query(60, ge=30, le=60, multiple_of=30),
    service: Service = Depends(get_service_or_404),
    session: AsyncSession = Depends(get_session),
) -> AvailableSlotsResponse:
    """Slots for the service on the given date (business timezone).

    Advisory only: POST /bookings re-checks capacity before writing.
    """
    result = await get_availability(session, service, date_param)
    return AvailableSlotsResponse(
        service_id=service.id,
        date=date_param.isoformat(),
        duration=duration,
        price=price_for(service, duration),
        previous_price=previous_price_for(service, duration),
        reason=result.reason.value,
        available_slots=result.available,
        slots=[
            SlotInfo(
                time=s.label,
                start_minute=s.start_minute,
                occupied=s.occupied,
                capacity=s.capacity,
                available=s.bookable,
            )
            for s in result.slots
        ],
    )
