"""Exception taxonomy for the tariff engine.

Per-row and per-calculation failures are normally captured as data by the
batch services; these exceptions escalate only for single calls and
whole-batch preconditions.
"""
from __future__ import annotations


class TariffEngineError(Exception):
    """Base class for all engine errors."""


class ValidationError(TariffEngineError):
    """A policy field or row field failed validation."""


class InvalidPolicyField(ValidationError):
    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid policy field '{key}': {reason}")


class DuplicateError(TariffEngineError):
    def __init__(self, route_code: str) -> None:
        self.route_code = route_code
        super().__init__(f'Route code "{route_code}" already exists')


class CalculationError(TariffEngineError):
    """Malformed input to a single rate calculation."""


class DivisionByZero(CalculationError):
    def __init__(self, message: str = "Previous diesel price is zero") -> None:
        super().__init__(message)


class InvalidRate(CalculationError):
    def __init__(self, rate: object) -> None:
        self.rate = rate
        super().__init__(f"Current rate must be greater than zero, got {rate}")


class PersistenceError(TariffEngineError):
    """A persistence collaborator call failed; the original error is the cause."""

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        self.message = message
        super().__init__(message)


class NoRoutesConfigured(TariffEngineError):
    def __init__(self, client_id: str) -> None:
        self.client_id = client_id
        super().__init__(f"Client {client_id} has no routes configured")
