"""create rent engine schema

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-18 09:12:44.512087

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


lease_status = sa.Enum(
    "active", "ended", "terminated", name="leasestatus", native_enum=False
)
generation_status = sa.Enum(
    "pending", "generated", "failed", name="periodgenerationstatus", native_enum=False
)
rent_cadence = sa.Enum(
    "weekly", "biweekly", "monthly", name="rentcadence", native_enum=False
)
period_status = sa.Enum(
    "unpaid", "partial", "paid", name="periodstatus", native_enum=False
)
late_fee_source = sa.Enum(
    "none", "automatic", "manual", name="latefeesource", native_enum=False
)
payment_type = sa.Enum(
    "rent", "deposit", "late_fee", "utility", "other",
    name="paymenttype",
    native_enum=False,
)


def upgrade():
    op.create_table(
        "properties",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenants_property_id", "tenants", ["property_id"])
    op.create_index("ix_tenants_first_name", "tenants", ["first_name"])
    op.create_index("ix_tenants_last_name", "tenants", ["last_name"])
    op.create_index("ix_tenants_is_active", "tenants", ["is_active"])

    op.create_table(
        "leases",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("rent", sa.Numeric(12, 2), nullable=False),
        sa.Column("rent_cadence", sa.String(length=20), nullable=False),
        sa.Column("rent_due_day", sa.Integer(), nullable=True),
        sa.Column("lease_start_date", sa.Date(), nullable=False),
        sa.Column("lease_end_date", sa.Date(), nullable=False),
        sa.Column("status", lease_status, nullable=False),
        sa.Column("move_in_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("late_fee_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("period_generation_status", generation_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_leases_tenant_id", "leases", ["tenant_id"])
    op.create_index("ix_leases_property_id", "leases", ["property_id"])
    op.create_index("ix_leases_status", "leases", ["status"])
    op.create_index(
        "uq_active_lease_per_tenant_property",
        "leases",
        ["tenant_id", "property_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "rent_periods",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("lease_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("period_due_date", sa.Date(), nullable=False),
        sa.Column("rent_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("rent_cadence", rent_cadence, nullable=False),
        sa.Column("amount_paid", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", period_status, nullable=False),
        sa.Column("late_fee_applied", sa.Numeric(12, 2), nullable=False),
        sa.Column("late_fee_waived", sa.Boolean(), nullable=True),
        sa.Column("late_fee_source", late_fee_source, nullable=False),
        sa.Column("late_fee_assessed_as_of", sa.Date(), nullable=True),
        sa.Column("late_fee_overridden_by", sa.String(length=120), nullable=True),
        sa.Column("late_fee_overridden_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lease_id"], ["leases.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lease_id", "period_due_date", name="uq_period_per_due_date"),
    )
    op.create_index("ix_rent_periods_lease_id", "rent_periods", ["lease_id"])
    op.create_index("ix_rent_periods_tenant_id", "rent_periods", ["tenant_id"])
    op.create_index("ix_rent_periods_property_id", "rent_periods", ["property_id"])
    op.create_index(
        "ix_rent_periods_period_due_date", "rent_periods", ["period_due_date"]
    )
    op.create_index("ix_rent_periods_status", "rent_periods", ["status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_type", payment_type, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("unapplied_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_tenant_id", "payments", ["tenant_id"])
    op.create_index("ix_payments_property_id", "payments", ["property_id"])
    op.create_index("ix_payments_payment_date", "payments", ["payment_date"])

    op.create_table(
        "payment_allocations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("payment_id", sa.Uuid(), nullable=False),
        sa.Column("rent_period_id", sa.Uuid(), nullable=False),
        sa.Column("amount_applied", sa.Numeric(12, 2), nullable=False),
        sa.Column("applied_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["rent_period_id"], ["rent_periods.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "payment_id", "rent_period_id", name="uq_allocation_per_payment_period"
        ),
    )
    op.create_index(
        "ix_payment_allocations_payment_id", "payment_allocations", ["payment_id"]
    )
    op.create_index(
        "ix_payment_allocations_rent_period_id",
        "payment_allocations",
        ["rent_period_id"],
    )

    op.create_table(
        "rent_ledgers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lease_id", sa.Uuid(), nullable=False),
        sa.Column("event", sa.String(length=100), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["lease_id"], ["leases.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rent_ledgers_lease_id", "rent_ledgers", ["lease_id"])


def downgrade():
    op.drop_index("ix_rent_ledgers_lease_id", table_name="rent_ledgers")
    op.drop_table("rent_ledgers")
    op.drop_index(
        "ix_payment_allocations_rent_period_id", table_name="payment_allocations"
    )
    op.drop_index("ix_payment_allocations_payment_id", table_name="payment_allocations")
    op.drop_table("payment_allocations")
    op.drop_index("ix_payments_payment_date", table_name="payments")
    op.drop_index("ix_payments_property_id", table_name="payments")
    op.drop_index("ix_payments_tenant_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_rent_periods_status", table_name="rent_periods")
    op.drop_index("ix_rent_periods_period_due_date", table_name="rent_periods")
    op.drop_index("ix_rent_periods_property_id", table_name="rent_periods")
    op.drop_index("ix_rent_periods_tenant_id", table_name="rent_periods")
    op.drop_index("ix_rent_periods_lease_id", table_name="rent_periods")
    op.drop_table("rent_periods")
    op.drop_index("uq_active_lease_per_tenant_property", table_name="leases")
    op.drop_index("ix_leases_status", table_name="leases")
    op.drop_index("ix_leases_property_id", table_name="leases")
    op.drop_index("ix_leases_tenant_id", table_name="leases")
    op.drop_table("leases")
    op.drop_index("ix_tenants_is_active", table_name="tenants")
    op.drop_index("ix_tenants_last_name", table_name="tenants")
    op.drop_index("ix_tenants_first_name", table_name="tenants")
    op.drop_index("ix_tenants_property_id", table_name="tenants")
    op.drop_table("tenants")
    op.drop_table("properties")
