"""In-memory persistence collaborator.

Backs the CLI and the test-suite. ``from_json`` seeds it from a fixture file
describing a client, its routes and the stored branding.
"""
from __future__ import annotations

import json
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping, Sequence

from tariff_engine.domain.importer import normalize_route_code
from tariff_engine.domain.models import (
    Branding,
    Client,
    Currency,
    RouteAssignment,
    RouteRecord,
    TariffHistoryEntry,
)


class InMemoryTariffStore:
    def __init__(
        self,
        settings: Mapping[str, str] | None = None,
        routes: Sequence[RouteRecord] = (),
        assignments: Sequence[RouteAssignment] = (),
        branding: Branding | None = None,
    ) -> None:
        self.settings: dict[str, str] = dict(settings or {})
        self.routes: dict[str, RouteRecord] = {}
        for route in routes:
            self.routes[normalize_route_code(route.route_code)] = route
        self.assignments: dict[str, RouteAssignment] = {a.id: a for a in assignments}
        self.history: list[TariffHistoryEntry] = []
        self.branding = branding
        self.clients: dict[str, Client] = {}

    # SettingsRepository
    def fetch_active_policy(self) -> Mapping[str, str]:
        return dict(self.settings)

    # RouteRepository
    def insert_route(self, record: RouteRecord) -> RouteRecord:
        key = normalize_route_code(record.route_code)
        if key in self.routes:
            raise ValueError(f'duplicate key value violates unique constraint "routes_route_code_key" ({key})')
        self.routes[key] = record
        return record

    def list_route_codes(self) -> set[str]:
        return {route.route_code for route in self.routes.values()}

    # TariffHistoryRepository
    def append_history(self, entry: TariffHistoryEntry) -> None:
        self.history.append(entry)

    def list_history(
        self,
        client_id: str | None = None,
        route_id: str | None = None,
        period_month: date | None = None,
    ) -> Sequence[TariffHistoryEntry]:
        return [
            entry
            for entry in self.history
            if (client_id is None or entry.client_id == client_id)
            and (route_id is None or entry.route_id == route_id)
            and (period_month is None or entry.period_month == period_month)
        ]

    # ClientRouteRepository
    def fetch_active_routes_for_client(self, client_id: str) -> Sequence[RouteAssignment]:
        return [a for a in self.assignments.values() if a.client_id == client_id and a.is_active]

    def update_current_rate(self, assignment_id: str, rate: Decimal) -> None:
        assignment = self.assignments[assignment_id]
        self.assignments[assignment_id] = replace(assignment, current_rate=rate)

    # BrandingRepository
    def fetch_branding(self) -> Branding | None:
        return self.branding

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryTariffStore":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        store = cls(settings=data.get("settings"), branding=_branding(data.get("branding")))
        for raw_client in data.get("clients", []):
            client = _client(raw_client)
            store.clients[client.id] = client
            for index, raw_route in enumerate(raw_client.get("routes", []), start=1):
                route = _route(raw_route)
                store.routes.setdefault(normalize_route_code(route.route_code), route)
                assignment = RouteAssignment(
                    id=str(raw_route.get("assignment_id") or f"{client.id}-{index}"),
                    client_id=client.id,
                    route_id=str(raw_route.get("route_id") or route.route_code),
                    route=route,
                    current_rate=Decimal(str(raw_route["current_rate"])),
                    base_rate=_decimal(raw_route.get("base_rate")),
                    rate_type=raw_route.get("rate_type", "per_ton"),
                    minimum_charge=_decimal(raw_route.get("minimum_charge")),
                    is_active=bool(raw_route.get("is_active", True)),
                )
                store.assignments[assignment.id] = assignment
        return store


def _decimal(value: Any) -> Decimal | None:
    return None if value in (None, "") else Decimal(str(value))


def _client(raw: Mapping[str, Any]) -> Client:
    currency = raw.get("currency")
    return Client(
        id=str(raw["id"]),
        client_code=raw.get("client_code", str(raw["id"])),
        company_name=raw["company_name"],
        currency=Currency(currency) if currency else None,
        contact_person=raw.get("contact_person"),
        email=raw.get("email"),
        phone=raw.get("phone"),
        address=raw.get("address"),
    )


def _route(raw: Mapping[str, Any]) -> RouteRecord:
    return RouteRecord(
        route_code=normalize_route_code(raw["route_code"]),
        origin=raw["origin"],
        destination=raw["destination"],
        distance_km=_decimal(raw.get("distance_km")),
        estimated_hours=_decimal(raw.get("estimated_hours")),
        description=raw.get("route_description"),
        is_active=bool(raw.get("route_active", True)),
    )


def _branding(raw: Mapping[str, Any] | None) -> Branding | None:
    if not raw:
        return None
    known = set(Branding.__dataclass_fields__)
    return Branding(**{key: value for key, value in raw.items() if key in known})
