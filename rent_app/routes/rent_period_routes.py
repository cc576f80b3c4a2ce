import uuid

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import LateFeeOverrideIn, RentPeriodOut
from services.late_fee_service import LateFeeService
from services.rent_period_service import RentPeriodService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Rent Periods"])


@cbv(router=router)
class RentPeriodRoutes:
    @router.get("/{period_id}", response_model=RentPeriodOut)
    @safe_handler
    async def get_period(
        self,
        period_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await RentPeriodService(db).get_period(period_id)

    @router.patch("/{period_id}/late-fee", response_model=RentPeriodOut)
    @safe_handler
    async def override_late_fee(
        self,
        period_id: uuid.UUID,
        payload: LateFeeOverrideIn,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LateFeeService(db).override_period_fee(period_id, payload)
