import logging
from typing import List
from uuid import UUID

from fastapi import HTTPException

from models.models import Tenant
from repos.property_repo import PropertyRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import TenantCreate, TenantOut

logger = logging.getLogger(__name__)


class TenantService:
    def __init__(self, db):
        self.repo: TenantRepo = TenantRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)

    async def create_tenant(self, payload: TenantCreate) -> TenantOut:
        if payload.property_id is not None:
            prop = await self.property_repo.get_by_id(payload.property_id)
            if not prop:
                raise HTTPException(status_code=404, detail="Property not found")

        exists = await self.repo.tenant_exists(
            property_id=payload.property_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
        if exists:
            raise HTTPException(
                status_code=409,
                detail="Tenant already exists for this property",
            )

        tenant = await self.repo.create(Tenant(**payload.model_dump()))
        logger.info("Tenant %s created", tenant.id)
        return TenantOut.model_validate(tenant)

    async def get_tenant(self, tenant_id: UUID) -> TenantOut:
        tenant = await self.repo.get_by_id(tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        return TenantOut.model_validate(tenant)

    async def list_tenants(
        self, property_id: UUID | None = None, active_only: bool = False
    ) -> List[TenantOut]:
        tenants = await self.repo.get_all(
            property_id=property_id, active_only=active_only
        )
        return [TenantOut.model_validate(t) for t in tenants]
