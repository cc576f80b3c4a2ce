from typing import Optional

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import AssessLateFeesIn, ResyncOut
from services.late_fee_service import LateFeeService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Admin"])


@cbv(router=router)
class AdminRoutes:
    @router.post("/rent/resync", response_model=ResyncOut)
    @safe_handler
    async def resync_rent(
        self,
        payload: Optional[AssessLateFeesIn] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        payload = payload or AssessLateFeesIn()
        return await LateFeeService(db).resync_all(
            as_of=payload.as_of, include_overrides=payload.include_overrides
        )
