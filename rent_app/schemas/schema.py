from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

import phonenumbers
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from models.enums import (
    AllocationMode,
    LateFeeSource,
    LeaseStatus,
    PaymentType,
    PeriodGenerationStatus,
    PeriodStatus,
    RentCadence,
    SeverityBand,
)
from policy.cadence import MONTHLY_DUE_DAYS, normalize_lease_status, parse_cadence


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    try:
        parsed = phonenumbers.parse(value, None)
    except phonenumbers.NumberParseException:
        raise ValueError("Invalid phone number format. Use e.g. +16502530000")
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError("Invalid phone number. Use full international format.")
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def _check_due_day(cadence: RentCadence, due_day: Optional[int]) -> Optional[int]:
    if cadence == RentCadence.MONTHLY:
        if due_day not in MONTHLY_DUE_DAYS:
            raise ValueError("rent_due_day must be 1 or 15 for monthly cadence")
        return due_day
    return None


class PropertyCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: str):
        return value.strip() if isinstance(value, str) else value


class PropertyOut(BaseModel):
    id: uuid.UUID
    name: str
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class TenantCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    property_id: Optional[uuid.UUID] = None
    phone_number: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def capitalize_names(cls, value: str):
        return value.strip().title() if isinstance(value, str) else value

    @field_validator("phone_number")
    @classmethod
    def validate_phone(cls, value):
        return _validate_phone(value)


class TenantOut(BaseModel):
    id: uuid.UUID
    property_id: Optional[uuid.UUID] = None
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class LeaseCreate(BaseModel):
    tenant_id: uuid.UUID
    property_id: uuid.UUID
    rent: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    rent_cadence: RentCadence
    rent_due_day: Optional[int] = None
    lease_start_date: date
    lease_end_date: date
    status: LeaseStatus = LeaseStatus.ACTIVE
    move_in_fee: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    late_fee_amount: Optional[Decimal] = Field(
        None, ge=0, max_digits=12, decimal_places=2
    )

    @field_validator("rent_cadence", mode="before")
    @classmethod
    def validate_cadence(cls, value):
        return parse_cadence(value)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        return normalize_lease_status(value)

    @model_validator(mode="after")
    def validate_terms(self):
        if self.lease_end_date < self.lease_start_date:
            raise ValueError("lease_end_date must be on or after lease_start_date")
        self.rent_due_day = _check_due_day(self.rent_cadence, self.rent_due_day)
        return self


class LeaseUpdate(BaseModel):
    rent: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    rent_cadence: Optional[RentCadence] = None
    rent_due_day: Optional[int] = None
    lease_start_date: Optional[date] = None
    lease_end_date: Optional[date] = None
    status: Optional[LeaseStatus] = None
    move_in_fee: Optional[Decimal] = Field(
        None, ge=0, max_digits=12, decimal_places=2
    )
    late_fee_amount: Optional[Decimal] = Field(
        None, ge=0, max_digits=12, decimal_places=2
    )
    effective_date: Optional[date] = Field(
        None, description="Periods due on or after this date are regenerated"
    )

    @field_validator("rent_cadence", mode="before")
    @classmethod
    def validate_cadence(cls, value):
        if value is None:
            return None
        return parse_cadence(value)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value):
        if value is None:
            return None
        return normalize_lease_status(value)

    @field_validator("rent_due_day")
    @classmethod
    def validate_due_day(cls, value):
        if value is not None and value not in MONTHLY_DUE_DAYS:
            raise ValueError("rent_due_day must be 1 or 15")
        return value

    @model_validator(mode="after")
    def validate_partial(self):
        if self.lease_start_date and self.lease_end_date:
            if self.lease_end_date < self.lease_start_date:
                raise ValueError(
                    "lease_end_date must be on or after lease_start_date"
                )
        return self


class LeaseTerminate(BaseModel):
    termination_date: Optional[date] = None
    notes: Optional[str] = None


class LeaseOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    property_id: uuid.UUID
    rent: Decimal
    rent_cadence: str
    rent_due_day: Optional[int] = None
    lease_start_date: date
    lease_end_date: date
    status: LeaseStatus
    move_in_fee: Decimal
    late_fee_amount: Optional[Decimal] = None
    period_generation_status: PeriodGenerationStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RentPeriodOut(BaseModel):
    id: uuid.UUID
    lease_id: uuid.UUID
    tenant_id: uuid.UUID
    property_id: uuid.UUID
    period_due_date: date
    rent_amount: Decimal
    rent_cadence: RentCadence
    amount_paid: Decimal
    outstanding: Decimal
    status: PeriodStatus
    late_fee_applied: Decimal
    late_fee_waived: bool
    late_fee_source: LateFeeSource
    late_fee_assessed_as_of: Optional[date] = None
    late_fee_overridden_by: Optional[str] = None
    late_fee_overridden_at: Optional[datetime] = None
    notes: Optional[str] = None
    version: int

    model_config = {"from_attributes": True}


class RentLedgerOut(BaseModel):
    id: int
    lease_id: uuid.UUID
    event: str
    old_value: Optional[dict] = None
    new_value: Optional[dict] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class GenerationOut(BaseModel):
    lease_id: uuid.UUID
    period_generation_status: PeriodGenerationStatus
    periods_created: int = 0
    periods_replaced: int = 0
    periods_kept: int = 0
    warnings: List[str] = []


class LeaseCreatedOut(BaseModel):
    message: str
    lease: LeaseOut
    periods_generated: int = 0
    warning: Optional[str] = None
    data_warnings: List[str] = []


class LeaseUpdatedOut(BaseModel):
    message: str
    lease: LeaseOut
    regeneration: Optional[GenerationOut] = None


class AssessLateFeesIn(BaseModel):
    as_of: Optional[date] = None
    include_overrides: bool = False


class PeriodLateFeeOut(BaseModel):
    period_id: uuid.UUID
    lease_id: uuid.UUID
    period_due_date: date
    days_late: int
    late_periods: int
    late_fee_applied: Decimal
    late_fee_waived: bool
    changed: bool


class LateFeeAssessmentOut(BaseModel):
    as_of: date
    include_overrides: bool
    assessed: List[PeriodLateFeeOut] = []
    skipped_overrides: List[uuid.UUID] = []
    total_late_fees: Decimal = Decimal("0.00")


class ResyncPeriodOut(BaseModel):
    period_id: uuid.UUID
    lease_id: uuid.UUID
    tenant_id: uuid.UUID
    period_due_date: date
    rent_amount: Decimal
    amount_paid: Decimal
    status: PeriodStatus
    late_fee_applied: Decimal
    remaining_due: Decimal
    note: Optional[str] = None


class ResyncSummaryOut(BaseModel):
    as_of_date: date
    total_periods: int = 0
    overpaid_count: int = 0
    status_corrections: int = 0
    late_fees_changed: int = 0
    total_late_fees: Decimal = Decimal("0.00")
    total_remaining_due: Decimal = Decimal("0.00")


class ResyncOut(BaseModel):
    success: bool = True
    summary: ResyncSummaryOut
    details: List[ResyncPeriodOut] = []


class LateFeeOverrideIn(BaseModel):
    late_fee_applied: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    overridden_by: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = None


class ManualAllocationIn(BaseModel):
    period_id: uuid.UUID
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


def _normalize_payment_type(value):
    if isinstance(value, str):
        return value.strip().lower().replace(" ", "_").replace("-", "_")
    return value


def _check_split(mode, allocations):
    if mode == AllocationMode.MANUAL:
        if not allocations:
            raise ValueError("allocations are required for manual allocation mode")
        ids = [line.period_id for line in allocations]
        if len(ids) != len(set(ids)):
            raise ValueError("each period may appear only once in allocations")
    elif allocations:
        raise ValueError("allocations are only accepted in manual allocation mode")


class PaymentCreate(BaseModel):
    tenant_id: uuid.UUID
    property_id: Optional[uuid.UUID] = None
    payment_date: date
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    payment_type: PaymentType = PaymentType.RENT
    notes: Optional[str] = None
    allocation_mode: AllocationMode = AllocationMode.AUTO
    allocations: Optional[List[ManualAllocationIn]] = None

    @field_validator("payment_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_payment_type(value)

    @model_validator(mode="after")
    def validate_allocations(self):
        _check_split(self.allocation_mode, self.allocations)
        if self.allocations and self.payment_type != PaymentType.RENT:
            raise ValueError("only rent payments can be allocated to periods")
        return self


class PaymentUpdate(BaseModel):
    payment_date: Optional[date] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    payment_type: Optional[PaymentType] = None
    notes: Optional[str] = None
    allocation_mode: AllocationMode = AllocationMode.AUTO
    allocations: Optional[List[ManualAllocationIn]] = None

    @field_validator("payment_type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return _normalize_payment_type(value)

    @model_validator(mode="after")
    def validate_allocations(self):
        _check_split(self.allocation_mode, self.allocations)
        if (
            self.allocations
            and self.payment_type is not None
            and self.payment_type != PaymentType.RENT
        ):
            raise ValueError("only rent payments can be allocated to periods")
        return self


class ReallocateIn(BaseModel):
    allocation_mode: AllocationMode = AllocationMode.AUTO
    allocations: Optional[List[ManualAllocationIn]] = None

    @model_validator(mode="after")
    def validate_allocations(self):
        _check_split(self.allocation_mode, self.allocations)
        return self


class AllocationLineOut(BaseModel):
    period_id: uuid.UUID
    period_due_date: date
    amount_applied: Decimal
    amount_paid: Decimal
    status: PeriodStatus


class PaymentOut(BaseModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    property_id: Optional[uuid.UUID] = None
    payment_date: date
    amount: Decimal
    payment_type: PaymentType
    notes: Optional[str] = None
    unapplied_amount: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaymentWithAllocationsOut(BaseModel):
    payment: PaymentOut
    allocations: List[AllocationLineOut] = []
    total_applied: Decimal = Decimal("0.00")
    unapplied_amount: Decimal = Decimal("0.00")


class CollectionBreakdownOut(BaseModel):
    id: Optional[uuid.UUID] = None
    name: str
    payment_count: int
    total: Decimal


class CollectionsOut(BaseModel):
    start: date
    end: date
    total_collected: Decimal
    payment_count: int
    by_tenant: List[CollectionBreakdownOut] = []
    by_property: List[CollectionBreakdownOut] = []


class LateTenantOut(BaseModel):
    tenant_id: uuid.UUID
    tenant_name: str
    overdue_periods: int
    max_days_late: int
    outstanding_rent: Decimal
    late_fees: Decimal
    total_due: Decimal
    severity: SeverityBand


class LateTenantsOut(BaseModel):
    as_of: date
    tenants: List[LateTenantOut] = []
