import uuid
from typing import List, Optional

from models.models import Property
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError


class PropertyRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, property_id: uuid.UUID) -> Optional[Property]:
        result = await self.db.execute(
            select(Property).where(Property.id == property_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Property | None:
        result = await self.db.execute(select(Property).where(Property.name == name))
        return result.scalars().first()

    async def get_all(self, active_only: bool = False) -> List[Property]:
        stmt = select(Property).order_by(Property.name)
        if active_only:
            stmt = stmt.where(Property.is_active.is_(True))
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create(self, prop: Property) -> Property:
        try:
            self.db.add(prop)
            await self.db.commit()
            await self.db.refresh(prop)
            return prop
        except SQLAlchemyError:
            await self.db.rollback()
            raise
