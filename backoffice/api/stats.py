from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.services.stats import StatsService
from backoffice.schemas.common import ApiResponse
from backoffice.schemas.stats import Analytics

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=ApiResponse[Analytics])
async def get_analytics(db: AsyncSession = Depends(get_db)) -> ApiResponse[Analytics]:
    return ApiResponse(data=await StatsService(db).get_analytics())
