import uuid
from datetime import date
from typing import Optional

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import CollectionsOut, LateTenantsOut
from services.report_service import ReportService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Reports"])


@cbv(router=router)
class ReportRoutes:
    @router.get("/collections", response_model=CollectionsOut)
    @safe_handler
    async def collections(
        self,
        start: date,
        end: date,
        tenant_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReportService(db).collected_total(
            start, end, tenant_id=tenant_id, property_id=property_id
        )

    @router.get("/late-tenants", response_model=LateTenantsOut)
    @safe_handler
    async def late_tenants(
        self,
        as_of: Optional[date] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await ReportService(db).late_tenants(as_of=as_of)
