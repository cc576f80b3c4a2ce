import uuid
from typing import List

from core.get_db import get_db_async
from core.safe_handler import safe_handler
from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from schemas.schema import PropertyCreate, PropertyOut
from services.property_service import PropertyService
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["Properties"])


@cbv(router=router)
class PropertyRoutes:
    @router.post("/create", response_model=PropertyOut, status_code=201)
    @safe_handler
    async def create(
        self,
        payload: PropertyCreate,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PropertyService(db).create_property(payload)

    @router.get("/", response_model=List[PropertyOut])
    @safe_handler
    async def list_all(
        self,
        active_only: bool = False,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PropertyService(db).list_properties(active_only=active_only)

    @router.get("/{property_id}", response_model=PropertyOut)
    @safe_handler
    async def get_one(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
    ):
        return await PropertyService(db).get_property(property_id)
