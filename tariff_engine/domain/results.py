"""Domain-level results for batch operations."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from .models import AdjustmentResult, RouteRecord, TariffHistoryEntry

STATUS_OK = "ok"
STATUS_REJECTED = "rejected"


@dataclass(frozen=True)
class ImportRowOutcome:
    row_number: int
    status: str
    record: RouteRecord | None = None
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class BatchOutcome:
    success_count: int
    failed_count: int
    outcomes: Sequence[ImportRowOutcome] = field(default_factory=tuple)
    errors: Sequence[str] = field(default_factory=tuple)
    total_rows: int = 0
    completed: bool = True

    @property
    def processed_rows(self) -> int:
        return len(self.outcomes)

    @property
    def last_row_number(self) -> int | None:
        return self.outcomes[-1].row_number if self.outcomes else None

    def has_failures(self) -> bool:
        return bool(self.failed_count or self.errors)

    def iter_messages(self) -> Iterable[str]:
        """Batch-level errors first, then row errors prefixed with their row number."""
        yield from self.errors
        for outcome in self.outcomes:
            for message in outcome.errors:
                yield f"Row {outcome.row_number}: {message}"


OUTCOME_APPLIED = "applied"
OUTCOME_PROPOSED = "proposed"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_SKIPPED = "skipped"
OUTCOME_FAILED = "failed"


@dataclass(frozen=True)
class RouteRecalculation:
    """What happened to one client route during a recalculation run."""

    assignment_id: str
    client_id: str
    route_id: str
    route_code: str
    current_rate: Decimal
    status: str
    result: AdjustmentResult | None = None
    entry: TariffHistoryEntry | None = None
    error: str | None = None


@dataclass(frozen=True)
class RecalculationReport:
    outcomes: Sequence[RouteRecalculation] = field(default_factory=tuple)
    dry_run: bool = False
    errors: Sequence[str] = field(default_factory=tuple)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def applied(self) -> int:
        return self.count(OUTCOME_APPLIED)

    @property
    def failed(self) -> int:
        return self.count(OUTCOME_FAILED)

    def has_failures(self) -> bool:
        return bool(self.failed or self.errors)
