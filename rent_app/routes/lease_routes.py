import uuid
from datetime import date
from typing import List, Optional

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from models.enums import LeaseStatus, PeriodStatus
from schemas.schema import (
    AssessLateFeesIn,
    GenerationOut,
    LateFeeAssessmentOut,
    LeaseCreate,
    LeaseCreatedOut,
    LeaseOut,
    LeaseTerminate,
    LeaseUpdate,
    LeaseUpdatedOut,
    RentLedgerOut,
    RentPeriodOut,
)
from services.late_fee_service import LateFeeService
from services.lease_service import LeaseService
from services.rent_period_service import RentPeriodService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Leases"])


@cbv(router=router)
class LeaseRoutes:
    @router.post("/create", response_model=LeaseCreatedOut, status_code=201)
    @safe_handler
    async def create(
        self,
        payload: LeaseCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).create_lease(payload)

    @router.get("/", response_model=List[LeaseOut])
    @safe_handler
    async def list_all(
        self,
        tenant_id: Optional[uuid.UUID] = None,
        property_id: Optional[uuid.UUID] = None,
        status: Optional[LeaseStatus] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).list_leases(
            tenant_id=tenant_id, property_id=property_id, status=status
        )

    @router.get("/{lease_id}", response_model=LeaseOut)
    @safe_handler
    async def get_lease(
        self,
        lease_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).get_lease(lease_id)

    @router.patch("/{lease_id}", response_model=LeaseUpdatedOut)
    @safe_handler
    async def update(
        self,
        lease_id: uuid.UUID,
        payload: LeaseUpdate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).update_lease(lease_id, payload)

    @router.post("/{lease_id}/terminate", response_model=LeaseUpdatedOut)
    @safe_handler
    async def terminate(
        self,
        lease_id: uuid.UUID,
        payload: Optional[LeaseTerminate] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).terminate_lease(lease_id, payload)

    @router.delete("/{lease_id}")
    @safe_handler
    async def delete(
        self,
        lease_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).delete_lease(lease_id)

    @router.post("/{lease_id}/generate-periods", response_model=GenerationOut)
    @safe_handler
    async def generate_periods(
        self,
        lease_id: uuid.UUID,
        as_of: Optional[date] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await RentPeriodService(db).generate_for_lease(lease_id, as_of=as_of)

    @router.post("/{lease_id}/regenerate-periods", response_model=GenerationOut)
    @safe_handler
    async def regenerate_periods(
        self,
        lease_id: uuid.UUID,
        effective_date: Optional[date] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await RentPeriodService(db).regenerate_future(
            lease_id, effective_date=effective_date
        )

    @router.get("/{lease_id}/periods", response_model=List[RentPeriodOut])
    @safe_handler
    async def periods(
        self,
        lease_id: uuid.UUID,
        status: Optional[PeriodStatus] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await RentPeriodService(db).list_for_lease(lease_id, status=status)

    @router.post("/{lease_id}/assess-late-fees", response_model=LateFeeAssessmentOut)
    @safe_handler
    async def assess_late_fees(
        self,
        lease_id: uuid.UUID,
        payload: Optional[AssessLateFeesIn] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        payload = payload or AssessLateFeesIn()
        return await LateFeeService(db).assess_lease(
            lease_id,
            as_of=payload.as_of,
            include_overrides=payload.include_overrides,
        )

    @router.get("/{lease_id}/ledger", response_model=List[RentLedgerOut])
    @safe_handler
    async def ledger(
        self,
        lease_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await LeaseService(db).get_ledger(lease_id)
