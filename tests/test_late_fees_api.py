import uuid
from decimal import Decimal

import pytest
from sqlalchemy import update

from models.models import RentPeriod

from helpers import lease_payload


@pytest.fixture
async def lease(client, tenant_id, property_id):
    resp = await client.post(
        "/v1/leases/create", json=lease_payload(tenant_id, property_id)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["lease"]


async def _assess(client, lease_id, **body):
    resp = await client.post(f"/v1/leases/{lease_id}/assess-late-fees", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestAssessLateFees:
    async def test_only_periods_past_grace_are_charged(self, client, lease):
        body = await _assess(client, lease["id"], as_of="2024-01-10")

        fees = {
            a["period_due_date"]: Decimal(a["late_fee_applied"])
            for a in body["assessed"]
        }
        assert fees["2024-01-01"] == Decimal("45.00")
        assert all(v == 0 for k, v in fees.items() if k != "2024-01-01")
        assert Decimal(body["total_late_fees"]) == Decimal("45.00")

    async def test_repeat_run_changes_nothing(self, client, lease):
        await _assess(client, lease["id"], as_of="2024-01-10")
        body = await _assess(client, lease["id"], as_of="2024-01-10")

        assert not any(a["changed"] for a in body["assessed"])
        assert Decimal(body["total_late_fees"]) == Decimal("45.00")

    async def test_lease_late_fee_amount_overrides_default(
        self, client, tenant_id, property_id
    ):
        resp = await client.post(
            "/v1/leases/create",
            json=lease_payload(tenant_id, property_id, late_fee_amount="75.00"),
        )
        lease_id = resp.json()["lease"]["id"]
        body = await _assess(client, lease_id, as_of="2024-01-10")
        assert Decimal(body["total_late_fees"]) == Decimal("75.00")

    async def test_paid_period_is_not_charged(self, client, tenant_id, lease):
        await client.post(
            "/v1/payments/create",
            json={
                "tenant_id": tenant_id,
                "payment_date": "2024-01-02",
                "amount": "1000.00",
            },
        )
        body = await _assess(client, lease["id"], as_of="2024-01-10")
        assert Decimal(body["total_late_fees"]) == 0

    async def test_tenant_wide_assessment(self, client, tenant_id, lease):
        resp = await client.post(
            f"/v1/tenants/{tenant_id}/assess-late-fees", json={"as_of": "2024-02-10"}
        )
        assert resp.status_code == 200, resp.text
        assert Decimal(resp.json()["total_late_fees"]) == Decimal("135.00")


class TestOverrideLateFee:
    async def _first_period(self, client, lease):
        resp = await client.get(f"/v1/leases/{lease['id']}/periods")
        return resp.json()[0]

    async def test_waive_and_keep_waived(self, client, lease):
        await _assess(client, lease["id"], as_of="2024-01-10")
        period = await self._first_period(client, lease)

        resp = await client.patch(
            f"/v1/rent-periods/{period['id']}/late-fee",
            json={"late_fee_applied": "0", "overridden_by": "manager"},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        assert body["late_fee_waived"] is True
        assert body["late_fee_source"] == "manual"
        assert body["late_fee_overridden_by"] == "manager"

        later = await _assess(client, lease["id"], as_of="2024-02-10")
        assert period["id"] in later["skipped_overrides"]
        restored = await client.get(f"/v1/rent-periods/{period['id']}")
        assert Decimal(restored.json()["late_fee_applied"]) == 0

    async def test_include_overrides_recomputes(self, client, lease):
        period = await self._first_period(client, lease)
        await client.patch(
            f"/v1/rent-periods/{period['id']}/late-fee",
            json={"late_fee_applied": "10.00"},
        )

        body = await _assess(
            client, lease["id"], as_of="2024-01-10", include_overrides=True
        )
        assert body["skipped_overrides"] == []
        restored = (await client.get(f"/v1/rent-periods/{period['id']}")).json()
        assert Decimal(restored["late_fee_applied"]) == Decimal("45.00")
        assert restored["late_fee_source"] == "automatic"

    async def test_negative_fee_rejected(self, client, lease):
        period = await self._first_period(client, lease)
        resp = await client.patch(
            f"/v1/rent-periods/{period['id']}/late-fee",
            json={"late_fee_applied": "-1"},
        )
        assert resp.status_code == 422

    async def test_fee_on_paid_period_rejected(self, client, tenant_id, lease):
        await client.post(
            "/v1/payments/create",
            json={
                "tenant_id": tenant_id,
                "payment_date": "2024-01-02",
                "amount": "1000.00",
            },
        )
        period = await self._first_period(client, lease)
        resp = await client.patch(
            f"/v1/rent-periods/{period['id']}/late-fee",
            json={"late_fee_applied": "20.00"},
        )
        assert resp.status_code == 400


class TestPortfolioResync:
    async def _resync(self, client, **body):
        resp = await client.post("/v1/admin/rent/resync", json=body)
        assert resp.status_code == 200, resp.text
        return resp.json()

    async def _pay_1500(self, client, tenant_id):
        resp = await client.post(
            "/v1/payments/create",
            json={
                "tenant_id": tenant_id,
                "payment_date": "2024-02-03",
                "amount": "1500.00",
            },
        )
        assert resp.status_code == 201, resp.text

    async def test_summary_and_remaining_due(self, client, tenant_id, lease):
        await self._pay_1500(client, tenant_id)

        body = await self._resync(client, as_of="2024-03-10")

        assert body["success"] is True
        summary = body["summary"]
        assert summary["as_of_date"] == "2024-03-10"
        assert summary["total_periods"] == 6
        assert summary["overpaid_count"] == 0
        assert summary["status_corrections"] == 0
        assert summary["late_fees_changed"] == 2
        assert Decimal(summary["total_late_fees"]) == Decimal("135.00")
        assert Decimal(summary["total_remaining_due"]) == Decimal("4635.00")

        remaining = {
            d["period_due_date"]: Decimal(d["remaining_due"]) for d in body["details"]
        }
        assert remaining["2024-01-01"] == 0
        assert remaining["2024-02-01"] == Decimal("590.00")
        assert remaining["2024-03-01"] == Decimal("1045.00")
        assert remaining["2024-04-01"] == Decimal("1000.00")

    async def test_corrects_drifted_status_and_flags_overpaid(
        self, client, db, tenant_id, lease
    ):
        await self._pay_1500(client, tenant_id)
        resp = await client.get(f"/v1/leases/{lease['id']}/periods")
        april = next(
            p for p in resp.json() if p["period_due_date"] == "2024-04-01"
        )
        await db.execute(
            update(RentPeriod)
            .where(RentPeriod.id == uuid.UUID(april["id"]))
            .values(amount_paid=Decimal("1100.00"))
        )
        await db.commit()

        body = await self._resync(client, as_of="2024-03-10")

        summary = body["summary"]
        assert summary["status_corrections"] == 1
        assert summary["overpaid_count"] == 1
        assert Decimal(summary["total_remaining_due"]) == Decimal("3635.00")
        line = next(d for d in body["details"] if d["period_id"] == april["id"])
        assert line["status"] == "paid"
        assert line["note"] == "overpaid"
        assert Decimal(line["remaining_due"]) == 0

        resp = await client.get(f"/v1/rent-periods/{april['id']}")
        assert resp.json()["status"] == "paid"

    async def test_second_run_changes_nothing(self, client, tenant_id, lease):
        await self._pay_1500(client, tenant_id)
        first = await self._resync(client, as_of="2024-03-10")
        second = await self._resync(client, as_of="2024-03-10")

        assert second["summary"]["late_fees_changed"] == 0
        assert second["summary"]["status_corrections"] == 0
        assert second["summary"]["total_remaining_due"] == first["summary"][
            "total_remaining_due"
        ]

    async def test_manual_override_kept_unless_requested(self, client, lease):
        resp = await client.get(f"/v1/leases/{lease['id']}/periods")
        january = resp.json()[0]
        resp = await client.patch(
            f"/v1/rent-periods/{january['id']}/late-fee",
            json={"late_fee_applied": "0.00"},
        )
        assert resp.status_code == 200, resp.text

        body = await self._resync(client, as_of="2024-01-10")
        line = next(d for d in body["details"] if d["period_id"] == january["id"])
        assert Decimal(line["late_fee_applied"]) == 0

        body = await self._resync(client, as_of="2024-01-10", include_overrides=True)
        line = next(d for d in body["details"] if d["period_id"] == january["id"])
        assert Decimal(line["late_fee_applied"]) == Decimal("45.00")

    async def test_empty_portfolio(self, client):
        body = await self._resync(client)
        assert body["summary"]["total_periods"] == 0
        assert body["details"] == []
