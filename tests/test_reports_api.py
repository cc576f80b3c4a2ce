import uuid
from datetime import date
from decimal import Decimal

from models.enums import LeaseStatus, PeriodGenerationStatus
from models.models import Lease
from repos.rent_period_repo import RentPeriodRepo
from scripts.generate_initial_periods import backfill

from helpers import lease_payload


async def _second_tenant(client, property_id):
    resp = await client.post(
        "/v1/tenants/create",
        json={"first_name": "bo", "last_name": "reyes", "property_id": property_id},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


class TestCollections:
    async def test_totals_and_breakdowns(self, client, tenant_id, property_id):
        other = await _second_tenant(client, property_id)
        for tid, amount, day in [
            (tenant_id, "1000.00", "2024-01-03"),
            (tenant_id, "500.00", "2024-01-20"),
            (other, "300.00", "2024-01-15"),
            (other, "999.00", "2024-02-15"),
        ]:
            resp = await client.post(
                "/v1/payments/create",
                json={
                    "tenant_id": tid,
                    "property_id": property_id,
                    "payment_date": day,
                    "amount": amount,
                    "payment_type": "other",
                },
            )
            assert resp.status_code == 201, resp.text

        resp = await client.get(
            "/v1/reports/collections", params={"start": "2024-01-01", "end": "2024-01-31"}
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert Decimal(body["total_collected"]) == Decimal("1800.00")
        assert body["payment_count"] == 3
        assert [item["name"] for item in body["by_tenant"]] == ["Ada Okafor", "Bo Reyes"]
        assert len(body["by_property"]) == 1
        assert Decimal(body["by_property"][0]["total"]) == Decimal("1800.00")

        resp = await client.get(
            "/v1/reports/collections",
            params={"start": "2024-01-01", "end": "2024-01-31", "tenant_id": other},
        )
        body = resp.json()
        assert Decimal(body["total_collected"]) == Decimal("300.00")
        assert body["by_tenant"] == []

    async def test_end_before_start(self, client):
        resp = await client.get(
            "/v1/reports/collections", params={"start": "2024-02-01", "end": "2024-01-01"}
        )
        assert resp.status_code == 400


class TestLateTenants:
    async def test_ranked_by_total_due(self, client, tenant_id, property_id):
        other = await _second_tenant(client, property_id)
        for tid, rent in [(tenant_id, "1000.00"), (other, "2500.00")]:
            resp = await client.post(
                "/v1/leases/create", json=lease_payload(tid, property_id, rent=rent)
            )
            assert resp.status_code == 201, resp.text

        await client.post(
            f"/v1/tenants/{tenant_id}/assess-late-fees", json={"as_of": "2024-02-10"}
        )

        resp = await client.get(
            "/v1/reports/late-tenants", params={"as_of": "2024-02-10"}
        )
        assert resp.status_code == 200, resp.text
        tenants = resp.json()["tenants"]
        assert [t["tenant_id"] for t in tenants] == [other, tenant_id]

        bo, ada = tenants
        assert bo["overdue_periods"] == 2
        assert Decimal(bo["total_due"]) == Decimal("5000.00")
        assert bo["severity"] == "high"
        assert ada["max_days_late"] == 40
        assert Decimal(ada["outstanding_rent"]) == Decimal("2000.00")
        assert Decimal(ada["late_fees"]) == Decimal("135.00")
        assert ada["severity"] == "high"

    async def test_within_grace_not_listed(self, client, tenant_id, property_id):
        await client.post("/v1/leases/create", json=lease_payload(tenant_id, property_id))
        resp = await client.get(
            "/v1/reports/late-tenants", params={"as_of": "2024-01-04"}
        )
        assert resp.json()["tenants"] == []


def _imported_lease(tenant_id, property_id, **overrides):
    values = {
        "tenant_id": uuid.UUID(tenant_id),
        "property_id": uuid.UUID(property_id),
        "rent": Decimal("900.00"),
        "rent_cadence": "Bi_Weekly",
        "lease_start_date": date(2024, 1, 1),
        "lease_end_date": date(2024, 2, 29),
        "status": LeaseStatus.ACTIVE,
    }
    values.update(overrides)
    return Lease(**values)


class TestBackfill:
    async def test_generates_for_active_leases_without_periods(
        self, db, tenant_id, property_id
    ):
        active = _imported_lease(tenant_id, property_id)
        ended = _imported_lease(tenant_id, property_id, status=LeaseStatus.ENDED)
        db.add_all([active, ended])
        await db.commit()

        report = await backfill(db)

        assert report.success == 1
        assert report.errors == 0
        periods = await RentPeriodRepo(db).get_for_lease(active.id)
        assert [p.period_due_date for p in periods] == [
            date(2024, 1, 5),
            date(2024, 1, 19),
            date(2024, 2, 2),
            date(2024, 2, 16),
        ]
        assert active.period_generation_status == PeriodGenerationStatus.GENERATED
        assert await RentPeriodRepo(db).get_for_lease(ended.id) == []

    async def test_second_run_does_nothing(self, db, tenant_id, property_id):
        db.add(_imported_lease(tenant_id, property_id))
        await db.commit()

        await backfill(db)
        report = await backfill(db)
        assert report.success == 0
        assert report.errors == 0
