"""Append-only tariff history recording."""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Mapping, Sequence

from .errors import PersistenceError, ValidationError
from .models import AdjustmentRequest, AdjustmentResult, TariffHistoryEntry
from .repositories import TariffHistoryRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class TariffHistoryRecorder:
    """Writes one immutable history entry per applied adjustment.

    The recorder never updates or deletes entries and performs no dedup:
    whether a call is a first compute or a recompute is decided by the
    caller, which passes ``supersedes`` when replacing an earlier entry.
    """

    def __init__(
        self,
        repository: TariffHistoryRepository,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._id_factory = id_factory

    def record(
        self,
        request: AdjustmentRequest,
        result: AdjustmentResult,
        supersedes: str | None = None,
    ) -> TariffHistoryEntry:
        if not result.triggered:
            raise ValidationError(
                f"Adjustment for client {request.client_id} route {request.route_id} was not triggered"
            )
        entry = TariffHistoryEntry(
            id=self._id_factory(),
            client_id=request.client_id,
            route_id=request.route_id,
            period_month=request.period_month,
            previous_rate=request.current_rate,
            new_rate=result.new_rate,
            currency=request.currency,
            adjustment_pct=result.adjustment_pct,
            diesel_price_at_change=request.new_diesel_price,
            diesel_percentage_change=result.diesel_pct,
            adjustment_reason=result.reason,
            created_at=self._clock(),
            supersedes=supersedes,
        )
        try:
            self._repository.append_history(entry)
        except Exception as exc:
            raise PersistenceError("append_history", str(exc)) from exc
        logger.info(
            "Recorded tariff change %s for client=%s route=%s period=%s: %s -> %s",
            entry.id,
            entry.client_id,
            entry.route_id,
            entry.period_month.isoformat(),
            entry.previous_rate,
            entry.new_rate,
        )
        return entry


def latest_entries(entries: Iterable[TariffHistoryEntry]) -> Mapping[tuple[str, str, date], TariffHistoryEntry]:
    """Resolve superseded entries: the newest entry per (client, route, period) wins."""
    latest: dict[tuple[str, str, date], TariffHistoryEntry] = {}
    for entry in sorted(entries, key=lambda e: e.created_at):
        latest[entry.key()] = entry
    return latest


def filter_history(
    entries: Sequence[TariffHistoryEntry],
    search: str | None = None,
    period_prefix: str | None = None,
) -> list[TariffHistoryEntry]:
    """Filter by client/route id substring and by ``YYYY-MM`` period prefix."""
    result = list(entries)
    if search:
        term = search.strip().lower()
        result = [e for e in result if term in e.client_id.lower() or term in e.route_id.lower()]
    if period_prefix:
        result = [e for e in result if e.period_month.isoformat().startswith(period_prefix)]
    return sorted(result, key=lambda e: (e.period_month, e.created_at), reverse=True)
