from decimal import Decimal
from pathlib import Path
import json

import pytest

from tariff_engine.domain.models import Currency, RouteRecord
from tariff_engine.infrastructure.repositories.memory import InMemoryTariffStore

FIXTURE = {
    "settings": {"auto_adjust_threshold": "3"},
    "branding": {"tagline": "Moving Africa", "unknown": "dropped"},
    "clients": [
        {
            "id": "c1",
            "client_code": "CLI001",
            "company_name": "ABC Manufacturing",
            "currency": "USD",
            "routes": [
                {"route_code": "jhb-cpt", "origin": "Johannesburg", "destination": "Cape Town", "current_rate": "4950"},
                {
                    "route_code": "JHB-DBN",
                    "origin": "Johannesburg",
                    "destination": "Durban",
                    "current_rate": 2420,
                    "is_active": False,
                },
            ],
        }
    ],
}


def test_from_json_seeds_store(tmp_path: Path):
    path = tmp_path / "store.json"
    path.write_text(json.dumps(FIXTURE), encoding="utf-8")

    store = InMemoryTariffStore.from_json(path)

    assert store.clients["c1"].currency == Currency.USD
    assert store.fetch_active_policy() == {"auto_adjust_threshold": "3"}
    assert store.fetch_branding().tagline == "Moving Africa"
    assert store.list_route_codes() == {"JHB-CPT", "JHB-DBN"}
    active = store.fetch_active_routes_for_client("c1")
    assert [a.route.route_code for a in active] == ["JHB-CPT"]
    assert active[0].current_rate == Decimal("4950")


def test_insert_duplicate_route_raises():
    store = InMemoryTariffStore(routes=[RouteRecord("JHB-CPT", "Johannesburg", "Cape Town")])

    with pytest.raises(ValueError):
        store.insert_route(RouteRecord("jhb-cpt", "Johannesburg", "Cape Town"))
