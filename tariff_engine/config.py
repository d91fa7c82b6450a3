"""Central configuration for the tariff engine package."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Context
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from tariff_engine.domain.models import Branding, BusinessProfile, Currency

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"
SETTINGS_PATH = DATA_DIR / "guardrail_settings.json"
ARCHIVE_DIR = DATA_DIR / "rate_sheets"

# Built-in guardrail defaults; stored settings always take precedence.
DEFAULT_POLICY_SETTINGS: Mapping[str, str] = MappingProxyType(
    {
        "base_diesel_price": "21.50",
        "diesel_impact_percentage": "35",
        "auto_adjust_threshold": "2.5",
        "max_monthly_increase": "10",
        "rounding_precision": "2",
        "effective_day_of_month": "1",
    }
)

DEFAULT_TERMS = """1. Rates are subject to fuel price fluctuations and may be adjusted monthly based on the current diesel price.
2. All rates exclude VAT unless otherwise stated.
3. Payment terms are as per the client agreement. Late payments may incur interest charges.
4. Minimum charges apply regardless of load size or weight.
5. Rates are valid for the period specified above. Extensions require written confirmation.
6. Additional charges may apply for special handling, hazardous materials, or after-hours deliveries.
7. The company reserves the right to adjust rates with 30 days written notice.
8. These rates supersede all previous quotations for the same routes."""

DEFAULT_BRANDING = Branding(
    company_name="Matanuska Transport",
    tagline="Your Trusted Logistics Partner",
    website="www.matanuska.co.za",
    primary_color="#1e40af",
    accent_color="#3b82f6",
)

BUSINESS_PROFILES: tuple[BusinessProfile, ...] = (
    BusinessProfile(
        id="sa",
        legal_name="Matanuska (Pty) Ltd",
        country="South Africa",
        vat_number="4710136013",
        registration_number="2019/542290/07",
        address="PO BOX 25148, Boksburg, 1462, South Africa",
        phone="+27 66 273 1270",
        email="heinrich@matanuska.co.za",
    ),
    BusinessProfile(
        id="zim",
        legal_name="Matanuska (Pvt) Ltd",
        country="Zimbabwe",
        vat_number="2000321177",
        registration_number="",
        address="1 Abercorn Street, Harare, Zimbabwe",
        phone="+27 66 273 1270",
        email="heinrich@matanuska.co.za",
        currency=Currency.USD,
    ),
)


@dataclass(slots=True, frozen=True)
class Settings:
    decimal_context: Context
    home_currency: Currency
    default_policy_settings: Mapping[str, str]
    default_terms: str
    default_branding: Branding
    business_profiles: tuple[BusinessProfile, ...]
    settings_path: Path
    archive_dir: Path

    def profile(self, profile_id: str) -> BusinessProfile:
        for profile in self.business_profiles:
            if profile.id == profile_id:
                return profile
        raise KeyError(f"Unknown business profile: {profile_id}")


SETTINGS = Settings(
    decimal_context=Context(prec=28),
    home_currency=Currency.ZAR,
    default_policy_settings=DEFAULT_POLICY_SETTINGS,
    default_terms=DEFAULT_TERMS,
    default_branding=DEFAULT_BRANDING,
    business_profiles=BUSINESS_PROFILES,
    settings_path=SETTINGS_PATH,
    archive_dir=ARCHIVE_DIR,
)
