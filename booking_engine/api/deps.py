from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.db import get_session
from booking_engine.core.errors import ServiceNotFound
from booking_engine.models.service import Service
from booking_engine.services.booking_service import get_active_service

__all__ = ["get_session", "get_service_or_404"]


async def get_service_or_404(
    service_id: int,
    session: AsyncSession = Depends(get_session),
) -> Service:
    try:
        return await get_active_service(session, service_id)
    except ServiceNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Service not found",
        )
