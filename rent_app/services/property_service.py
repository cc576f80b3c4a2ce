import logging
from typing import List
from uuid import UUID

from fastapi import HTTPException

from models.models import Property
from repos.property_repo import PropertyRepo
from schemas.schema import PropertyCreate, PropertyOut

logger = logging.getLogger(__name__)


class PropertyService:
    def __init__(self, db):
        self.repo: PropertyRepo = PropertyRepo(db)

    async def create_property(self, payload: PropertyCreate) -> PropertyOut:
        if await self.repo.get_by_name(payload.name):
            raise HTTPException(
                status_code=409, detail="A property with this name already exists"
            )
        prop = await self.repo.create(Property(**payload.model_dump()))
        logger.info("Property %s created", prop.id)
        return PropertyOut.model_validate(prop)

    async def get_property(self, property_id: UUID) -> PropertyOut:
        prop = await self.repo.get_by_id(property_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")
        return PropertyOut.model_validate(prop)

    async def list_properties(self, active_only: bool = False) -> List[PropertyOut]:
        return [
            PropertyOut.model_validate(p)
            for p in await self.repo.get_all(active_only=active_only)
        ]
