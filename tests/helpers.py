import uuid
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta


def lease_payload(tenant_id, property_id, **overrides):
    payload = {
        "tenant_id": tenant_id,
        "property_id": property_id,
        "rent": "1000.00",
        "rent_cadence": "monthly",
        "rent_due_day": 1,
        "lease_start_date": "2024-01-01",
        "lease_end_date": "2024-06-30",
    }
    payload.update(overrides)
    return payload


def month_start(offset: int = 0) -> date:
    """First day of the month ``offset`` months away from the current one."""
    return date.today().replace(day=1) + relativedelta(months=offset)


def period_row(due, rent="1000.00", paid="0.00", status="unpaid", cadence="monthly"):
    """Plain mapping shaped like a stored rent period."""
    return {
        "id": uuid.uuid4(),
        "period_due_date": due if isinstance(due, date) else date.fromisoformat(due),
        "rent_amount": Decimal(rent),
        "amount_paid": Decimal(paid),
        "status": status,
        "rent_cadence": cadence,
    }
