from enum import Enum


class RentCadence(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class LeaseStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"
    TERMINATED = "terminated"


class PeriodStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


class PaymentType(str, Enum):
    RENT = "rent"
    DEPOSIT = "deposit"
    LATE_FEE = "late_fee"
    UTILITY = "utility"
    OTHER = "other"


class AllocationMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class LateFeeSource(str, Enum):
    NONE = "none"
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class PeriodGenerationStatus(str, Enum):
    PENDING = "pending"
    GENERATED = "generated"
    FAILED = "failed"


class SeverityBand(str, Enum):
    NONE = "none"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class RentLedgerEvent(str, Enum):
    LEASE_CREATED = "LEASE_CREATED"
    LEASE_UPDATED = "LEASE_UPDATED"
    LEASE_TERMINATED = "LEASE_TERMINATED"
    PERIODS_GENERATED = "PERIODS_GENERATED"
    PERIODS_REGENERATED = "PERIODS_REGENERATED"
    PERIOD_GENERATION_FAILED = "PERIOD_GENERATION_FAILED"
    LATE_FEES_ASSESSED = "LATE_FEES_ASSESSED"
    LATE_FEE_OVERRIDDEN = "LATE_FEE_OVERRIDDEN"
    PAYMENT_ALLOCATED = "PAYMENT_ALLOCATED"
    PAYMENT_REVERSED = "PAYMENT_REVERSED"


BIWEEKLY_ALIASES = {
    "biweekly",
    "bi-weekly",
    "bi_weekly",
    "bi weekly",
}

ENDED_LEASE_ALIASES = {
    "ended",
    "expired",
    "retired",
}
