from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.api.deps import get_session
from booking_engine.models.service import Service, ServicePublic
from booking_engine.services.booking_service import list_active_services

router = APIRouter(prefix="/services", tags=["services"])


def _to_public(s: Service) -> ServicePublic:
    return ServicePublic.model_validate(s, from_attributes=True)


@router.get("", response_model=list[ServicePublic])
async def list_services(session: AsyncSession = Depends(get_session)) -> list[ServicePublic]:
    services = await list_active_services(session)
    return [_to_public(s) for s in services]
