"""Application services orchestrating recalculation, route import and rate sheets."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable

from tariff_engine.application.archive.use_cases import ArchiveRateSheetUseCase
from tariff_engine.application.dto import (
    ImportRoutesRequest,
    RateSheetRequest,
    RateSheetResponse,
    RecalculationRequest,
)
from tariff_engine.config import SETTINGS, Settings
from tariff_engine.domain.archive.entities import ArchiveRateSheetRequest, RenderedArtifact
from tariff_engine.domain.calculator import RateAdjustmentCalculator
from tariff_engine.domain.errors import (
    CalculationError,
    PersistenceError,
    TariffEngineError,
    ValidationError,
)
from tariff_engine.domain.history import TariffHistoryRecorder, latest_entries
from tariff_engine.domain.importer import BulkRouteImporter
from tariff_engine.domain.models import (
    AdjustmentRequest,
    Client,
    GuardrailPolicy,
    RouteAssignment,
    TariffHistoryEntry,
)
from tariff_engine.domain.policy import load_policy
from tariff_engine.domain.rate_sheet import RateSheetCompiler
from tariff_engine.domain.repositories import (
    BrandingRepository,
    ClientRouteRepository,
    RateSheetRenderer,
    RouteRepository,
    SettingsRepository,
    TariffHistoryRepository,
)
from tariff_engine.domain.results import (
    OUTCOME_APPLIED,
    OUTCOME_FAILED,
    OUTCOME_PROPOSED,
    OUTCOME_SKIPPED,
    OUTCOME_UNCHANGED,
    BatchOutcome,
    RecalculationReport,
    RouteRecalculation,
)
from tariff_engine.infrastructure.archive.file_repository import FileSystemRateSheetArchive
from tariff_engine.infrastructure.parsing.spreadsheet import SpreadsheetReadError, read_route_rows

logger = logging.getLogger(__name__)


def _call(operation: str, func: Callable, *args):
    try:
        return func(*args)
    except TariffEngineError:
        raise
    except Exception as exc:
        raise PersistenceError(operation, str(exc)) from exc


@dataclass(slots=True)
class RecalculationContext:
    settings_repository: SettingsRepository
    route_repository: ClientRouteRepository
    history_repository: TariffHistoryRepository
    calculator: RateAdjustmentCalculator
    recorder: TariffHistoryRecorder
    settings: Settings = SETTINGS


class RecalculateTariffsUseCase:
    """Applies one month's diesel movement to every active route of the given clients.

    The policy is loaded once per run; an invalid policy aborts the run before
    any route is touched. Failures on a single route are reported in the
    returned ``RecalculationReport`` and do not stop the remaining routes.

    Re-running a period rebases on the rate that applied before the period's
    latest recorded change, so identical inputs are a no-op and changed inputs
    append a superseding entry. Once a later period has been applied to a
    route, re-running an earlier period never pushes its rate over the
    current one.
    """

    def __init__(self, context: RecalculationContext) -> None:
        self._context = context

    def load_policy(self) -> GuardrailPolicy:
        stored = _call("fetch_active_policy", self._context.settings_repository.fetch_active_policy)
        return load_policy(stored, self._context.settings.default_policy_settings)

    def execute(self, request: RecalculationRequest) -> RecalculationReport:
        policy = self.load_policy()
        previous_price = request.previous_diesel_price
        if previous_price is None:
            previous_price = policy.base_price

        outcomes: list[RouteRecalculation] = []
        errors: list[str] = []
        for client in request.clients:
            try:
                assignments = _call(
                    "fetch_active_routes_for_client",
                    self._context.route_repository.fetch_active_routes_for_client,
                    client.id,
                )
            except PersistenceError as exc:
                logger.error("Could not load routes for client %s: %s", client.id, exc)
                errors.append(f"Client {client.id}: {exc}")
                continue
            for assignment in assignments:
                outcomes.append(
                    self._recalculate(client, assignment, request, previous_price, policy)
                )

        report = RecalculationReport(outcomes=tuple(outcomes), dry_run=request.dry_run, errors=tuple(errors))
        logger.info(
            "Recalculation for %s%s: %s applied, %s proposed, %s unchanged, %s skipped, %s failed",
            request.period_month.strftime("%Y-%m"),
            " (dry run)" if request.dry_run else "",
            report.applied,
            report.count(OUTCOME_PROPOSED),
            report.count(OUTCOME_UNCHANGED),
            report.count(OUTCOME_SKIPPED),
            report.failed,
        )
        return report

    def _route_history(
        self, assignment: RouteAssignment, request: AdjustmentRequest
    ) -> tuple[TariffHistoryEntry | None, bool]:
        """Latest entry for the request's period, and whether a later period has entries."""
        entries = _call(
            "list_history",
            self._context.history_repository.list_history,
            assignment.client_id,
            assignment.route_id,
        )
        same_period = [entry for entry in entries if entry.period_month == request.period_month]
        later_period = any(entry.period_month > request.period_month for entry in entries)
        return latest_entries(same_period).get(request.key()), later_period

    def _recalculate(
        self,
        client: Client,
        assignment: RouteAssignment,
        request: RecalculationRequest,
        previous_price: Decimal,
        policy: GuardrailPolicy,
    ) -> RouteRecalculation:
        outcome = RouteRecalculation(
            assignment_id=assignment.id,
            client_id=assignment.client_id,
            route_id=assignment.route_id,
            route_code=assignment.route.route_code,
            current_rate=assignment.current_rate,
            status=OUTCOME_FAILED,
        )
        adjustment = AdjustmentRequest(
            client_id=assignment.client_id,
            route_id=assignment.route_id,
            current_rate=assignment.current_rate,
            currency=client.currency or self._context.settings.home_currency,
            previous_diesel_price=previous_price,
            new_diesel_price=request.new_diesel_price,
            period_month=request.period_month,
        )
        try:
            existing, later_period = self._route_history(assignment, adjustment)
            if existing is None and later_period:
                # the current rate already belongs to a later period; no base rate to start from
                return replace(
                    outcome,
                    status=OUTCOME_SKIPPED,
                    error="A later period has already been applied to this route",
                )
            if existing is not None:
                adjustment = replace(adjustment, current_rate=existing.previous_rate)
            result = self._context.calculator.compute(adjustment, policy)
        except (CalculationError, ValidationError, PersistenceError) as exc:
            logger.warning("Route %s for client %s failed: %s", assignment.route.route_code, client.id, exc)
            return replace(outcome, error=str(exc))

        outcome = replace(outcome, result=result)
        if not result.triggered:
            if existing is not None:
                # an earlier change for this period stands; nothing to supersede it with
                return replace(outcome, status=OUTCOME_SKIPPED, entry=existing)
            return replace(outcome, status=OUTCOME_UNCHANGED)

        if existing is not None and existing.new_rate == result.new_rate:
            if not request.dry_run and not later_period and assignment.current_rate != existing.new_rate:
                try:
                    _call(
                        "update_current_rate",
                        self._context.route_repository.update_current_rate,
                        assignment.id,
                        existing.new_rate,
                    )
                except PersistenceError as exc:
                    return replace(outcome, entry=existing, error=str(exc))
            return replace(outcome, status=OUTCOME_UNCHANGED, entry=existing)

        if request.dry_run:
            return replace(outcome, status=OUTCOME_PROPOSED)

        try:
            entry = self._context.recorder.record(
                adjustment,
                result,
                supersedes=existing.id if existing is not None else None,
            )
        except PersistenceError as exc:
            logger.error("History append failed for route %s: %s", assignment.route.route_code, exc)
            return replace(outcome, error=str(exc))

        if later_period:
            logger.info(
                "Route %s keeps its %s rate; a later period has already been applied",
                assignment.route.route_code,
                assignment.current_rate,
            )
            return replace(outcome, status=OUTCOME_APPLIED, entry=entry)

        try:
            _call(
                "update_current_rate",
                self._context.route_repository.update_current_rate,
                assignment.id,
                result.new_rate,
            )
        except PersistenceError as exc:
            logger.error("Rate update failed for route %s: %s", assignment.route.route_code, exc)
            return replace(outcome, entry=entry, error=str(exc))
        return replace(outcome, status=OUTCOME_APPLIED, entry=entry)


@dataclass(slots=True)
class ImportRoutesContext:
    route_repository: RouteRepository
    importer: BulkRouteImporter


class ImportRoutesUseCase:
    def __init__(self, context: ImportRoutesContext) -> None:
        self._context = context

    def execute(
        self,
        request: ImportRoutesRequest,
        should_stop: Callable[[], bool] | None = None,
    ) -> BatchOutcome:
        try:
            rows = read_route_rows(request.source, request.filename)
        except SpreadsheetReadError as exc:
            logger.error("Could not read %s: %s", request.filename or "upload", exc.detail)
            return BatchOutcome(success_count=0, failed_count=0, errors=(str(exc),))
        existing = _call("list_route_codes", self._context.route_repository.list_route_codes)
        return self._context.importer.import_rows(rows, existing, should_stop=should_stop)


@dataclass(slots=True)
class RateSheetContext:
    route_repository: ClientRouteRepository
    branding_repository: BrandingRepository
    compiler: RateSheetCompiler
    renderer: RateSheetRenderer | None = None
    archive: FileSystemRateSheetArchive | None = None
    settings: Settings = SETTINGS


class CompileRateSheetUseCase:
    def __init__(self, context: RateSheetContext) -> None:
        self._context = context

    def execute(self, request: RateSheetRequest) -> RateSheetResponse:
        context = self._context
        try:
            profile = context.settings.profile(request.profile_id)
        except KeyError as exc:
            raise ValidationError(str(exc.args[0])) from exc

        assignments = _call(
            "fetch_active_routes_for_client",
            context.route_repository.fetch_active_routes_for_client,
            request.client.id,
        )
        persisted_branding = _call("fetch_branding", context.branding_repository.fetch_branding)

        document = context.compiler.compile(
            request.client,
            assignments,
            profile,
            branding_override=request.branding_override,
            persisted_branding=persisted_branding,
            vat_inclusive=request.vat_inclusive,
            effective_date=request.effective_date,
            valid_until=request.valid_until,
            reference=request.reference,
            notes=request.notes,
            terms=request.terms or context.settings.default_terms,
            prepared_by=request.prepared_by,
        )
        logger.info(
            "Compiled rate sheet %s for %s with %s routes",
            document.reference,
            request.client.client_code,
            len(document.line_items),
        )

        mode = request.mode
        if mode is None and request.archive:
            mode = "download"
        artifact: RenderedArtifact | None = None
        if mode is not None:
            if context.renderer is None:
                raise ValidationError("No rate sheet renderer configured")
            artifact = context.renderer.render(document, mode)

        receipt = None
        if request.archive and artifact is not None:
            if context.archive is None:
                raise ValidationError("No rate sheet archive configured")
            receipt = ArchiveRateSheetUseCase(repository=context.archive).execute(
                ArchiveRateSheetRequest(document=document, artifacts=(artifact,))
            )
            logger.info("Archived rate sheet %s to %s", receipt.reference, receipt.location)

        return RateSheetResponse(document=document, artifact=artifact, receipt=receipt)
