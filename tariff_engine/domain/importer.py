"""Bulk route import with per-row validation and duplicate detection.

Rows are processed strictly in input order: a code accepted by an earlier
row must be visible to later rows of the same batch. A failing row is
reported and the batch carries on.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Iterable, Iterator, Mapping

from .errors import DuplicateError, PersistenceError, ValidationError
from .models import RouteRecord
from .repositories import RouteRepository
from .results import STATUS_OK, STATUS_REJECTED, BatchOutcome, ImportRowOutcome

logger = logging.getLogger(__name__)

ROUTE_COLUMNS = (
    "route_code",
    "origin",
    "destination",
    "distance_km",
    "estimated_hours",
    "route_description",
    "is_active",
)

HEADER_OFFSET = 2  # first data row sits under the header on spreadsheet row 2
EMPTY_BATCH_MESSAGE = "The file contains no data rows"
FALSE_VALUES = frozenset({"no", "false", "0"})

RawRow = Mapping[str, object]


def normalize_route_code(value: object) -> str:
    text = "" if value is None else str(value)
    return re.sub(r"\s+", " ", text.strip()).upper()


def _cell(row: RawRow, key: str) -> str:
    value = row.get(key)
    return "" if value is None else str(value).strip()


def _parse_number(raw: str) -> Decimal | None:
    if not raw:
        return None
    try:
        value = Decimal(raw.replace(",", "").replace(" ", ""))
    except InvalidOperation:
        raise ValueError(raw) from None
    if not value.is_finite():
        raise ValueError(raw)
    return value


def parse_active_flag(raw: str) -> bool:
    return raw.strip().lower() not in FALSE_VALUES


def validate_row(row: RawRow, known_codes: set[str]) -> RouteRecord:
    """Build a ``RouteRecord`` from a raw row; the first failing check raises."""
    route_code = normalize_route_code(row.get("route_code"))
    origin = _cell(row, "origin")
    destination = _cell(row, "destination")

    if not route_code:
        raise ValidationError("Route code is required")
    if not origin:
        raise ValidationError("Origin is required")
    if not destination:
        raise ValidationError("Destination is required")
    if route_code in known_codes:
        raise DuplicateError(route_code)

    try:
        distance_km = _parse_number(_cell(row, "distance_km"))
    except ValueError:
        raise ValidationError("Invalid distance value") from None
    try:
        estimated_hours = _parse_number(_cell(row, "estimated_hours"))
    except ValueError:
        raise ValidationError("Invalid estimated hours value") from None

    return RouteRecord(
        route_code=route_code,
        origin=origin,
        destination=destination,
        distance_km=distance_km,
        estimated_hours=estimated_hours,
        description=_cell(row, "route_description") or None,
        is_active=parse_active_flag(_cell(row, "is_active")),
    )


class BulkRouteImporter:
    def __init__(self, repository: RouteRepository) -> None:
        self._repository = repository

    def iter_outcomes(self, rows: Iterable[RawRow], existing: Iterable[str]) -> Iterator[ImportRowOutcome]:
        """Yield one outcome per row, inserting each valid row before the next is read."""
        known_codes = {normalize_route_code(code) for code in existing}
        for index, row in enumerate(rows):
            row_number = index + HEADER_OFFSET
            try:
                record = validate_row(row, known_codes)
            except (ValidationError, DuplicateError) as exc:
                yield ImportRowOutcome(row_number=row_number, status=STATUS_REJECTED, errors=(str(exc),))
                continue

            try:
                stored = self._repository.insert_route(record)
            except Exception as exc:
                error = PersistenceError("insert_route", str(exc))
                logger.warning("Row %s: insert of %s failed: %s", row_number, record.route_code, error)
                yield ImportRowOutcome(
                    row_number=row_number,
                    status=STATUS_REJECTED,
                    record=record,
                    errors=(error.message,),
                )
                continue

            known_codes.add(record.route_code)
            yield ImportRowOutcome(row_number=row_number, status=STATUS_OK, record=stored or record)

    def import_rows(
        self,
        rows: Iterable[RawRow],
        existing: Iterable[str],
        should_stop: Callable[[], bool] | None = None,
    ) -> BatchOutcome:
        rows = list(rows)
        if not rows:
            return BatchOutcome(success_count=0, failed_count=0, errors=(EMPTY_BATCH_MESSAGE,))

        outcomes: list[ImportRowOutcome] = []
        completed = True
        iterator = self.iter_outcomes(rows, existing)
        while True:
            if should_stop is not None and should_stop():
                completed = False
                break
            try:
                outcomes.append(next(iterator))
            except StopIteration:
                break

        success = sum(1 for outcome in outcomes if outcome.status == STATUS_OK)
        outcome = BatchOutcome(
            success_count=success,
            failed_count=len(outcomes) - success,
            outcomes=tuple(outcomes),
            total_rows=len(rows),
            completed=completed,
        )
        logger.info(
            "Route import processed %s/%s rows: %s imported, %s failed%s",
            outcome.processed_rows,
            outcome.total_rows,
            outcome.success_count,
            outcome.failed_count,
            "" if completed else " (stopped early)",
        )
        return outcome


def register_route(repository: RouteRepository, record: RouteRecord) -> RouteRecord:
    """Create a single route, enforcing the same code uniqueness as bulk import."""
    route_code = normalize_route_code(record.route_code)
    if not route_code:
        raise ValidationError("Route code is required")
    if not record.origin.strip():
        raise ValidationError("Origin is required")
    if not record.destination.strip():
        raise ValidationError("Destination is required")
    if route_code in {normalize_route_code(code) for code in repository.list_route_codes()}:
        raise DuplicateError(route_code)
    try:
        return repository.insert_route(
            RouteRecord(
                route_code=route_code,
                origin=record.origin.strip(),
                destination=record.destination.strip(),
                distance_km=record.distance_km,
                estimated_hours=record.estimated_hours,
                description=record.description,
                is_active=record.is_active,
            )
        )
    except Exception as exc:
        raise PersistenceError("insert_route", str(exc)) from exc
