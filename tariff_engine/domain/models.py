"""Domain models for the tariff engine.

These dataclasses capture the canonical shapes passed between the policy,
calculator, recorder, importer and rate sheet compiler.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal


class Currency(str, enum.Enum):
    ZAR = "ZAR"
    USD = "USD"


def first_of_month(value: date) -> date:
    return value.replace(day=1)


@dataclass(frozen=True)
class GuardrailPolicy:
    """Validated calculation parameters for one recalculation batch."""

    base_price: Decimal
    impact_factor: Decimal
    trigger_threshold_pct: Decimal
    max_increase_pct: Decimal
    rounding_precision: int
    effective_day_of_month: int

    def effective_date(self, period_month: date) -> date:
        return period_month.replace(day=self.effective_day_of_month)


@dataclass(frozen=True)
class AdjustmentRequest:
    client_id: str
    route_id: str
    current_rate: Decimal
    currency: Currency
    previous_diesel_price: Decimal
    new_diesel_price: Decimal
    period_month: date

    def __post_init__(self) -> None:
        # frozen: bypass __setattr__ to normalize the period
        object.__setattr__(self, "period_month", first_of_month(self.period_month))

    def key(self) -> tuple[str, str, date]:
        return (self.client_id, self.route_id, self.period_month)


@dataclass(frozen=True)
class AdjustmentResult:
    triggered: bool
    new_rate: Decimal
    adjustment_pct: Decimal
    diesel_pct: Decimal
    clamped: bool
    reason: str


@dataclass(frozen=True)
class TariffHistoryEntry:
    """Immutable audit record of one rate change for one client/route/period."""

    id: str
    client_id: str
    route_id: str
    period_month: date
    previous_rate: Decimal
    new_rate: Decimal
    currency: Currency
    adjustment_pct: Decimal
    diesel_price_at_change: Decimal
    diesel_percentage_change: Decimal
    adjustment_reason: str
    created_at: datetime
    supersedes: str | None = None

    def key(self) -> tuple[str, str, date]:
        return (self.client_id, self.route_id, self.period_month)


@dataclass(frozen=True)
class RouteRecord:
    route_code: str
    origin: str
    destination: str
    distance_km: Decimal | None = None
    estimated_hours: Decimal | None = None
    description: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Client:
    id: str
    client_code: str
    company_name: str
    currency: Currency | None = None
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class RouteAssignment:
    """A client's contracted rate on a route."""

    id: str
    client_id: str
    route_id: str
    route: RouteRecord
    current_rate: Decimal
    base_rate: Decimal | None = None
    rate_type: str = "per_ton"
    minimum_charge: Decimal | None = None
    is_active: bool = True


@dataclass(frozen=True)
class BusinessProfile:
    """Legal entity a rate sheet is issued under."""

    id: str
    legal_name: str
    country: str
    vat_number: str
    registration_number: str
    address: str
    phone: str
    email: str
    currency: Currency | None = None


@dataclass(frozen=True)
class Branding:
    company_name: str | None = None
    tagline: str | None = None
    website: str | None = None
    logo: str | None = None
    primary_color: str | None = None
    accent_color: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    vat_number: str | None = None
    registration_number: str | None = None


@dataclass(frozen=True)
class RateSheetLineItem:
    route_code: str
    origin: str
    destination: str
    rate: Decimal
    rate_type: str
    display_rate: str
    distance_km: Decimal | None = None


@dataclass(frozen=True)
class RateSheetDocument:
    client: Client
    profile: BusinessProfile
    branding: Branding
    currency: Currency
    vat_inclusive: bool
    effective_date: date
    valid_until: date
    reference: str
    line_items: tuple[RateSheetLineItem, ...] = field(default_factory=tuple)
    rate_label: str = "Rate (Excl VAT)"
    notes: str | None = None
    terms: str | None = None
    prepared_by: str | None = None
