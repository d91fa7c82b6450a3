import json
from pathlib import Path

import pandas as pd
import pytest

from tariff_engine.cli import main

STORE = {
    "clients": [
        {
            "id": "c1",
            "client_code": "CLI001",
            "company_name": "ABC Manufacturing",
            "routes": [
                {"route_code": "JHB-CPT", "origin": "Johannesburg", "destination": "Cape Town", "current_rate": "1000"}
            ],
        }
    ]
}


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    path = tmp_path / "store.json"
    path.write_text(json.dumps(STORE), encoding="utf-8")
    return path


def test_calculate_writes_history(tmp_path: Path, store_path: Path, capsys):
    history = tmp_path / "history.csv"

    code = main(
        [
            "--settings", str(tmp_path / "settings.json"),
            "calculate",
            "--store", str(store_path),
            "--period", "2025-03",
            "--previous-price", "20",
            "--new-price", "21",
            "--history-csv", str(history),
        ]
    )

    assert code == 0
    assert "1017.50 [applied]" in capsys.readouterr().out
    assert "1017.50" in history.read_text()


def test_calculate_from_price_series(tmp_path: Path, store_path: Path, capsys):
    prices = tmp_path / "prices.csv"
    prices.write_text("price_date,price_per_liter\n2025-02-03,20\n2025-03-04,30\n", encoding="utf-8")

    code = main(
        [
            "--settings", str(tmp_path / "settings.json"),
            "calculate",
            "--store", str(store_path),
            "--period", "2025-03",
            "--prices", str(prices),
            "--dry-run",
        ]
    )

    assert code == 0
    assert "1100.00 [proposed]" in capsys.readouterr().out


def test_calculate_with_invalid_policy_fails(tmp_path: Path, store_path: Path):
    settings = tmp_path / "settings.json"
    settings.write_text(json.dumps({"effective_day_of_month": "7"}), encoding="utf-8")

    code = main(
        ["--settings", str(settings), "calculate", "--store", str(store_path), "--period", "2025-03", "--new-price", "21"]
    )

    assert code == 1


def test_template_then_import(tmp_path: Path, capsys):
    template = tmp_path / "routes_template.xlsx"
    assert main(["route-template", str(template)]) == 0

    assert main(["import-routes", str(template)]) == 0
    assert "Imported: 2  Failed: 0" in capsys.readouterr().out


def test_import_reports_row_errors(tmp_path: Path, capsys):
    path = tmp_path / "routes.csv"
    pd.DataFrame([{"route_code": "", "origin": "A", "destination": "B"}]).to_csv(path, index=False)

    assert main(["import-routes", str(path)]) == 1
    assert "Row 2: Route code is required" in capsys.readouterr().out


def test_rate_sheet_download(tmp_path: Path, store_path: Path):
    out_dir = tmp_path / "out"

    code = main(
        [
            "rate-sheet",
            "--store", str(store_path),
            "--client", "c1",
            "--effective-date", "2025-03-01",
            "--output", str(out_dir),
        ]
    )

    assert code == 0
    assert (out_dir / "RateSheet_CLI001_2025-03-01.xlsx").is_file()


def test_show_policy(tmp_path: Path, capsys):
    assert main(["--settings", str(tmp_path / "none.json"), "show-policy"]) == 0
    out = capsys.readouterr().out
    assert "base_diesel_price: 21.50" in out
    assert "Impact factor: 0.35" in out
