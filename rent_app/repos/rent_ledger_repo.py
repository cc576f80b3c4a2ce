from decimal import Decimal
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from models.models import RentLedger
from sqlalchemy import select


def _snapshot(value: dict | None) -> dict | None:
    if value is None:
        return None
    return jsonable_encoder(value, custom_encoder={Decimal: str})


class RentLedgerRepository:
    """Audit trail writer. Entries join the caller's transaction."""

    def __init__(self, db):
        self.db = db

    def record(
        self,
        lease_id: UUID,
        event: str,
        old_value: dict | None = None,
        new_value: dict | None = None,
    ) -> RentLedger:
        ledger = RentLedger(
            lease_id=lease_id,
            event=getattr(event, "value", event),
            old_value=_snapshot(old_value),
            new_value=_snapshot(new_value),
        )
        self.db.add(ledger)
        return ledger

    async def get_for_lease(self, lease_id: UUID) -> list[RentLedger]:
        stmt = (
            select(RentLedger)
            .where(RentLedger.lease_id == lease_id)
            .order_by(RentLedger.created_at, RentLedger.id)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()
