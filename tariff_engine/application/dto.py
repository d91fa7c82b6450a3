"""Application-level DTOs for the tariff engine use cases."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from tariff_engine.domain.archive.entities import ArchiveReceipt, RenderedArtifact
from tariff_engine.domain.models import Branding, Client, RateSheetDocument
from tariff_engine.domain.repositories import RenderMode


@dataclass(slots=True, frozen=True)
class RecalculationRequest:
    clients: Sequence[Client]
    period_month: date
    new_diesel_price: Decimal
    previous_diesel_price: Decimal | None = None
    dry_run: bool = False


@dataclass(slots=True, frozen=True)
class ImportRoutesRequest:
    source: Path | bytes
    filename: str | None = None


@dataclass(slots=True, frozen=True)
class RateSheetRequest:
    client: Client
    profile_id: str = "sa"
    mode: RenderMode | None = None
    vat_inclusive: bool = False
    effective_date: date | None = None
    valid_until: date | None = None
    reference: str | None = None
    notes: str | None = None
    terms: str | None = None
    prepared_by: str | None = None
    branding_override: Branding | None = None
    archive: bool = False


@dataclass(slots=True, frozen=True)
class RateSheetResponse:
    document: RateSheetDocument
    artifact: RenderedArtifact | None = None
    receipt: ArchiveReceipt | None = None
