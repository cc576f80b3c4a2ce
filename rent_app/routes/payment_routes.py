import uuid
from typing import Optional

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import (
    PaymentCreate,
    PaymentUpdate,
    PaymentWithAllocationsOut,
    ReallocateIn,
)
from services.payment_service import PaymentService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Payments"])


@cbv(router=router)
class PaymentRoutes:
    @router.post("/create", response_model=PaymentWithAllocationsOut, status_code=201)
    @safe_handler
    async def create(
        self,
        payload: PaymentCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).record_payment(payload)

    @router.get("/{payment_id}", response_model=PaymentWithAllocationsOut)
    @safe_handler
    async def get_payment(
        self,
        payment_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).get_payment(payment_id)

    @router.patch("/{payment_id}", response_model=PaymentWithAllocationsOut)
    @safe_handler
    async def update(
        self,
        payment_id: uuid.UUID,
        payload: PaymentUpdate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).update_payment(payment_id, payload)

    @router.delete("/{payment_id}")
    @safe_handler
    async def delete(
        self,
        payment_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).delete_payment(payment_id)

    @router.post("/{payment_id}/reallocate", response_model=PaymentWithAllocationsOut)
    @safe_handler
    async def reallocate(
        self,
        payment_id: uuid.UUID,
        payload: Optional[ReallocateIn] = None,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PaymentService(db).reallocate(payment_id, payload)
