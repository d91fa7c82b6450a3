"""Rate sheet compilation.

Joins a client, its active route assignments, the selected business profile
and branding into an immutable ``RateSheetDocument``. No I/O happens here;
rendering belongs to the presentation layer.
"""
from __future__ import annotations

import calendar
import random
from dataclasses import fields, replace
from datetime import date
from decimal import Decimal
from typing import Callable, Sequence

from .calculator import round_half_away
from .errors import NoRoutesConfigured, ValidationError
from .models import (
    Branding,
    BusinessProfile,
    Client,
    Currency,
    RateSheetDocument,
    RateSheetLineItem,
    RouteAssignment,
)

CURRENCY_SYMBOLS = {Currency.ZAR: "R", Currency.USD: "$"}
RATE_LABEL_VAT_INCLUSIVE = "Rate (VAT Incl)"
RATE_LABEL_VAT_EXCLUSIVE = "Rate (Excl VAT)"


def format_amount(amount: Decimal, currency: Currency) -> str:
    return f"{CURRENCY_SYMBOLS[currency]} {round_half_away(amount, 2):,.2f}"


def resolve_currency(client: Client, profile: BusinessProfile, home_currency: Currency = Currency.ZAR) -> Currency:
    if profile.currency is not None:
        return profile.currency
    return client.currency or home_currency


def merge_branding(
    profile: BusinessProfile,
    override: Branding | None = None,
    persisted: Branding | None = None,
    default: Branding | None = None,
) -> Branding:
    """Override beats persisted beats default; legal identity always comes from the profile."""
    layers = [layer for layer in (override, persisted, default) if layer is not None]
    values = {}
    for item in fields(Branding):
        values[item.name] = next(
            (getattr(layer, item.name) for layer in layers if getattr(layer, item.name) is not None),
            None,
        )
    merged = Branding(**values)
    return replace(
        merged,
        company_name=profile.legal_name,
        vat_number=profile.vat_number,
        registration_number=profile.registration_number,
        address=profile.address,
        phone=profile.phone,
        email=profile.email,
    )


def add_one_month(value: date) -> date:
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def generate_reference(today: date, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return f"RS-{today:%Y%m}-{rng.randint(0, 999):03d}"


class RateSheetCompiler:
    def __init__(
        self,
        clock: Callable[[], date] = date.today,
        reference_factory: Callable[[date], str] = generate_reference,
        home_currency: Currency = Currency.ZAR,
        default_branding: Branding | None = None,
    ) -> None:
        self._clock = clock
        self._reference_factory = reference_factory
        self._home_currency = home_currency
        self._default_branding = default_branding

    def compile(
        self,
        client: Client,
        assignments: Sequence[RouteAssignment],
        profile: BusinessProfile,
        branding_override: Branding | None = None,
        persisted_branding: Branding | None = None,
        vat_inclusive: bool = False,
        effective_date: date | None = None,
        valid_until: date | None = None,
        reference: str | None = None,
        notes: str | None = None,
        terms: str | None = None,
        prepared_by: str | None = None,
    ) -> RateSheetDocument:
        active = [assignment for assignment in assignments if assignment.is_active]
        if not active:
            raise NoRoutesConfigured(client.id)

        today = self._clock()
        effective_date = effective_date or today
        valid_until = valid_until or add_one_month(effective_date)
        if valid_until < effective_date:
            raise ValidationError(f"Valid-until date {valid_until} is before effective date {effective_date}")

        currency = resolve_currency(client, profile, self._home_currency)
        line_items = tuple(
            RateSheetLineItem(
                route_code=assignment.route.route_code,
                origin=assignment.route.origin,
                destination=assignment.route.destination,
                rate=assignment.current_rate,
                rate_type=assignment.rate_type,
                display_rate=format_amount(assignment.current_rate, currency),
                distance_km=assignment.route.distance_km,
            )
            for assignment in active
        )

        return RateSheetDocument(
            client=client,
            profile=profile,
            branding=merge_branding(profile, branding_override, persisted_branding, self._default_branding),
            currency=currency,
            vat_inclusive=vat_inclusive,
            effective_date=effective_date,
            valid_until=valid_until,
            reference=reference or self._reference_factory(today),
            line_items=line_items,
            rate_label=RATE_LABEL_VAT_INCLUSIVE if vat_inclusive else RATE_LABEL_VAT_EXCLUSIVE,
            notes=notes or None,
            terms=terms or None,
            prepared_by=prepared_by or None,
        )
