from pathlib import Path
import json

from tariff_engine.infrastructure.storage.settings_store import (
    JsonSettingsRepository,
    load_settings,
    load_stored_settings,
    save_settings,
)


def test_save_and_load_settings(tmp_path: Path):
    path = tmp_path / "guardrail_settings.json"
    merged = save_settings({"Auto_Adjust_Threshold": " 3 ", "colour": "blue"}, path=path)
    assert merged["auto_adjust_threshold"] == "3"
    assert merged["base_diesel_price"] == "21.50"
    assert json.loads(path.read_text()) == {"auto_adjust_threshold": "3"}

    loaded = load_settings(path=path)
    assert loaded["auto_adjust_threshold"] == "3"


def test_save_keeps_earlier_values(tmp_path: Path):
    path = tmp_path / "guardrail_settings.json"
    save_settings({"max_monthly_increase": "8"}, path=path)
    save_settings({"rounding_precision": "0"}, path=path)

    assert load_stored_settings(path) == {"max_monthly_increase": "8", "rounding_precision": "0"}


def test_missing_or_corrupt_file_yields_nothing(tmp_path: Path):
    missing = tmp_path / "missing.json"
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")

    assert load_stored_settings(missing) == {}
    assert load_stored_settings(corrupt) == {}
    assert JsonSettingsRepository(missing).fetch_active_policy() == {}
