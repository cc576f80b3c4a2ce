import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from core.get_db import Base

from .enums import (
    LateFeeSource,
    LeaseStatus,
    PaymentType,
    PeriodGenerationStatus,
    PeriodStatus,
    RentCadence,
)
from .utils import enum_values, utcnow


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    leases: Mapped[List["Lease"]] = relationship(
        "Lease",
        back_populates="property",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tenants: Mapped[List["Tenant"]] = relationship(
        "Tenant", back_populates="property", passive_deletes=True
    )


class Tenant(Base):
    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    property: Mapped[Optional["Property"]] = relationship(
        "Property", back_populates="tenants"
    )

    first_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    leases: Mapped[List["Lease"]] = relationship(
        "Lease",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Lease(Base):
    __tablename__ = "leases"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="leases")
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property: Mapped["Property"] = relationship("Property", back_populates="leases")

    rent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # Stored as free text; legacy rows carry casing and spelling variants that
    # are normalised by policy.cadence before any computation.
    rent_cadence: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RentCadence.MONTHLY.value
    )
    rent_due_day: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lease_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    lease_end_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[LeaseStatus] = mapped_column(
        Enum(LeaseStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=LeaseStatus.ACTIVE,
        index=True,
    )
    move_in_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    late_fee_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    period_generation_status: Mapped[PeriodGenerationStatus] = mapped_column(
        Enum(PeriodGenerationStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=PeriodGenerationStatus.PENDING,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    periods: Mapped[List["RentPeriod"]] = relationship(
        "RentPeriod",
        back_populates="lease",
        cascade="all, delete-orphan",
        order_by="RentPeriod.period_due_date",
        passive_deletes=True,
    )
    ledger_entries: Mapped[List["RentLedger"]] = relationship(
        "RentLedger",
        back_populates="lease",
        cascade="all, delete-orphan",
        order_by="RentLedger.created_at",
        passive_deletes=True,
    )

    __table_args__ = (
        Index(
            "uq_active_lease_per_tenant_property",
            "tenant_id",
            "property_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    @validates("rent")
    def validate_rent(self, key, value):
        if value is not None and value <= 0:
            raise ValueError("Rent amount must be positive.")
        return value

    @validates("move_in_fee")
    def validate_move_in_fee(self, key, value):
        if value is not None and value < 0:
            raise ValueError("Move-in fee cannot be negative.")
        return value


class RentPeriod(Base):
    __tablename__ = "rent_periods"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    lease_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lease: Mapped["Lease"] = relationship("Lease", back_populates="periods")
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False, index=True
    )

    period_due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    rent_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    rent_cadence: Mapped[RentCadence] = mapped_column(
        Enum(RentCadence, native_enum=False, values_callable=enum_values),
        nullable=False,
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    status: Mapped[PeriodStatus] = mapped_column(
        Enum(PeriodStatus, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=PeriodStatus.UNPAID,
        index=True,
    )

    late_fee_applied: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    late_fee_waived: Mapped[bool] = mapped_column(Boolean, default=False)
    late_fee_source: Mapped[LateFeeSource] = mapped_column(
        Enum(LateFeeSource, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=LateFeeSource.NONE,
    )
    late_fee_assessed_as_of: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True
    )
    late_fee_overridden_by: Mapped[Optional[str]] = mapped_column(
        String(120), nullable=True
    )
    late_fee_overridden_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    allocations: Mapped[List["PaymentAllocation"]] = relationship(
        "PaymentAllocation", back_populates="rent_period", passive_deletes=True
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        UniqueConstraint("lease_id", "period_due_date", name="uq_period_per_due_date"),
    )

    @property
    def outstanding(self) -> Decimal:
        return self.rent_amount - self.amount_paid


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    property_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    payment_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(
        Enum(PaymentType, native_enum=False, values_callable=enum_values),
        nullable=False,
        default=PaymentType.RENT,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unapplied_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

    allocations: Mapped[List["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("amount")
    def validate_amount(self, key, value):
        if value is not None and value <= 0:
            raise ValueError("Payment amount must be positive.")
        return value


class PaymentAllocation(Base):
    __tablename__ = "payment_allocations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid4
    )
    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    payment: Mapped["Payment"] = relationship("Payment", back_populates="allocations")
    rent_period_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("rent_periods.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rent_period: Mapped["RentPeriod"] = relationship(
        "RentPeriod", back_populates="allocations"
    )
    amount_applied: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "payment_id", "rent_period_id", name="uq_allocation_per_payment_period"
        ),
    )


class RentLedger(Base):
    __tablename__ = "rent_ledgers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lease_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("leases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lease: Mapped["Lease"] = relationship("Lease", back_populates="ledger_entries")

    event: Mapped[str] = mapped_column(String(100), nullable=False)
    old_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    new_value: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
