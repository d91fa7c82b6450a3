"""Repository interfaces anchoring the domain layer.

The engine never issues raw queries; it only calls these typed operations.
Implementations signal failure by raising; the engine wraps those failures
in ``PersistenceError``.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Mapping, Protocol, Sequence

from .models import Branding, RateSheetDocument, RouteAssignment, RouteRecord, TariffHistoryEntry


class SettingsRepository(Protocol):
    """Provides the stored guardrail settings as a raw string map."""

    def fetch_active_policy(self) -> Mapping[str, str]:
        ...


class RouteRepository(Protocol):
    def insert_route(self, record: RouteRecord) -> RouteRecord:
        ...

    def list_route_codes(self) -> set[str]:
        ...


class TariffHistoryRepository(Protocol):
    """Append-only store of tariff history entries."""

    def append_history(self, entry: TariffHistoryEntry) -> None:
        ...

    def list_history(
        self,
        client_id: str | None = None,
        route_id: str | None = None,
        period_month: date | None = None,
    ) -> Sequence[TariffHistoryEntry]:
        ...


class ClientRouteRepository(Protocol):
    def fetch_active_routes_for_client(self, client_id: str) -> Sequence[RouteAssignment]:
        ...

    def update_current_rate(self, assignment_id: str, rate: Decimal) -> None:
        ...


class BrandingRepository(Protocol):
    def fetch_branding(self) -> Branding | None:
        ...


RenderMode = Literal["preview", "download"]


class RateSheetRenderer(Protocol):
    """Document-rendering collaborator for compiled rate sheets."""

    def render(self, document: RateSheetDocument, mode: RenderMode) -> object:
        ...
