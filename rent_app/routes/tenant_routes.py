import uuid
from datetime import date
from typing import List, Optional

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import (
    AssessLateFeesIn,
    LateFeeAssessmentOut,
    LeaseOut,
    PaymentOut,
    TenantCreate,
    TenantOut,
)
from services.late_fee_service import LateFeeService
from services.lease_service import LeaseService
from services.payment_service import PaymentService
from services.tenant_service import TenantService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Tenants Management"])


@cbv(router=router)
class TenantsRoutes:
    @router.post("/create", response_model=TenantOut, status_code=201)
    @safe_handler
    async def create(
        self,
        payload: TenantCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenantService(db).create_tenant(payload)

    @router.get("/", response_model=List[TenantOut])
    @safe_handler
    async def list_all(
        self,
        property_id: Optional[uuid.UUID] = None,
        active_only: bool = False,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenantService(db).list_tenants(
            property_id=property_id, active_only=active_only
        )

    @router.get("/{tenant_id}", response_model=TenantOut)
    @safe_handler
    async def get_tenant(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await TenantService(db).get_tenant(tenant_id)

    @router.get("/{tenant_id}/leases", response_model=List[LeaseOut])
    @safe_handler
    async def leases(
        self,
        tenant_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).list_leases(tenant_id=tenant_id)

    @router.get("/{tenant_id}/payments", response_model=List[PaymentOut])
    @safe_handler
    async def payments(
        self,
        tenant_id: uuid.UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).list_tenant_payments(
            tenant_id, start=start, end=end
        )

    @router.post(
        "/{tenant_id}/assess-late-fees", response_model=LateFeeAssessmentOut
    )
    @safe_handler
    async def assess_late_fees(
        self,
        tenant_id: uuid.UUID,
        payload: Optional[AssessLateFeesIn] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        payload = payload or AssessLateFeesIn()
        return await LateFeeService(db).assess_tenant(
            tenant_id,
            as_of=payload.as_of,
            include_overrides=payload.include_overrides,
        )
