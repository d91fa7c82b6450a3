"""Storage helpers for guardrail settings."""
from __future__ import annotations

from pathlib import Path
import json
import logging
from typing import Any, Mapping

from tariff_engine.config import SETTINGS
from tariff_engine.domain.policy import RECOGNIZED_KEYS, merge_settings

logger = logging.getLogger(__name__)


def _normalize_settings(raw: dict[str, Any] | None) -> dict[str, str]:
    normalized: dict[str, str] = {}
    if not isinstance(raw, dict):
        return normalized
    for key, value in raw.items():
        if key is None or value is None:
            continue
        key_str = str(key).strip().lower()
        if key_str not in RECOGNIZED_KEYS:
            continue
        normalized[key_str] = str(value).strip()
    return normalized


def load_stored_settings(path: Path | None = None) -> dict[str, str]:
    """Only the explicitly stored values; missing or unreadable files yield ``{}``."""
    settings_path = path or SETTINGS.settings_path
    if not settings_path.exists():
        return {}
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable settings file %s", settings_path)
        return {}
    return _normalize_settings(data)


def load_settings(path: Path | None = None) -> dict[str, str]:
    return merge_settings(load_stored_settings(path), SETTINGS.default_policy_settings)


def save_settings(settings: Mapping[str, str], path: Path | None = None) -> dict[str, str]:
    settings_path = path or SETTINGS.settings_path
    stored = load_stored_settings(settings_path)
    stored.update(_normalize_settings(dict(settings)))
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(
        json.dumps(stored, ensure_ascii=False, indent=2, sort_keys=True),
        encoding="utf-8",
    )
    return merge_settings(stored, SETTINGS.default_policy_settings)


class JsonSettingsRepository:
    """``SettingsRepository`` over the JSON settings file."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    def fetch_active_policy(self) -> Mapping[str, str]:
        return load_stored_settings(self._path)
