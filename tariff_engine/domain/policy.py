"""Guardrail policy parsing and validation.

Raw settings arrive as a string key/value map from the settings store. Each
recognized key is parsed by its declared type and range-checked; the first
bad field raises ``InvalidPolicyField``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Mapping

from tariff_engine.domain.errors import InvalidPolicyField
from tariff_engine.domain.models import GuardrailPolicy

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PolicyField:
    key: str
    attribute: str
    kind: str
    check: Callable[[Decimal | int], str | None]


def _positive(value: Decimal | int) -> str | None:
    return None if value > 0 else "must be greater than zero"


def _non_negative(value: Decimal | int) -> str | None:
    return None if value >= 0 else "must not be negative"


def _percentage(value: Decimal | int) -> str | None:
    return None if 0 <= value <= 100 else "must be between 0 and 100"


def _precision(value: Decimal | int) -> str | None:
    return None if value in (0, 1, 2, 3) else "must be one of 0, 1, 2, 3"


def _effective_day(value: Decimal | int) -> str | None:
    return None if value in (1, 15) else "must be 1 or 15"


POLICY_FIELDS: tuple[PolicyField, ...] = (
    PolicyField("base_diesel_price", "base_price", "decimal", _positive),
    PolicyField("diesel_impact_percentage", "impact_factor", "decimal", _percentage),
    PolicyField("auto_adjust_threshold", "trigger_threshold_pct", "decimal", _non_negative),
    PolicyField("max_monthly_increase", "max_increase_pct", "decimal", _non_negative),
    PolicyField("rounding_precision", "rounding_precision", "integer", _precision),
    PolicyField("effective_day_of_month", "effective_day_of_month", "integer", _effective_day),
)

RECOGNIZED_KEYS = frozenset(f.key for f in POLICY_FIELDS)


def _parse_decimal(key: str, raw: str) -> Decimal:
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError):
        raise InvalidPolicyField(key, f"'{raw}' is not a decimal number") from None
    if not value.is_finite():
        raise InvalidPolicyField(key, f"'{raw}' is not a finite number")
    return value


def _parse_integer(key: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except (ValueError, AttributeError):
        raise InvalidPolicyField(key, f"'{raw}' is not an integer") from None


def validate_policy(raw: Mapping[str, str]) -> GuardrailPolicy:
    """Parse and validate a complete settings map into a ``GuardrailPolicy``.

    Every recognized key must be present. Unknown keys are ignored.
    ``diesel_impact_percentage`` is stored as a percentage (35 means 35%)
    and becomes a fraction on the policy.
    """
    values: dict[str, Decimal | int] = {}
    for policy_field in POLICY_FIELDS:
        raw_value = raw.get(policy_field.key)
        if raw_value is None or not str(raw_value).strip():
            raise InvalidPolicyField(policy_field.key, "is required")
        raw_value = str(raw_value)
        if policy_field.kind == "integer":
            value: Decimal | int = _parse_integer(policy_field.key, raw_value)
        else:
            value = _parse_decimal(policy_field.key, raw_value)
        problem = policy_field.check(value)
        if problem:
            raise InvalidPolicyField(policy_field.key, problem)
        values[policy_field.attribute] = value

    values["impact_factor"] = values["impact_factor"] / HUNDRED
    return GuardrailPolicy(**values)


def merge_settings(stored: Mapping[str, str], defaults: Mapping[str, str]) -> dict[str, str]:
    """Fill keys missing from ``stored`` with ``defaults``; stored values always win."""
    merged = {key: value for key, value in defaults.items() if key in RECOGNIZED_KEYS}
    for key, value in stored.items():
        if key in RECOGNIZED_KEYS and value is not None:
            merged[key] = str(value)
    return merged


def load_policy(stored: Mapping[str, str], defaults: Mapping[str, str]) -> GuardrailPolicy:
    return validate_policy(merge_settings(stored, defaults))


def policy_to_settings(policy: GuardrailPolicy) -> dict[str, str]:
    return {
        "base_diesel_price": str(policy.base_price),
        "diesel_impact_percentage": format((policy.impact_factor * HUNDRED).normalize(), "f"),
        "auto_adjust_threshold": str(policy.trigger_threshold_pct),
        "max_monthly_increase": str(policy.max_increase_pct),
        "rounding_precision": str(policy.rounding_precision),
        "effective_day_of_month": str(policy.effective_day_of_month),
    }
