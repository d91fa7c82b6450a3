"""Command-line entrypoint for tariff recalculation, route import and rate sheets."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

import pandas as pd

from tariff_engine.application.dto import ImportRoutesRequest, RateSheetRequest, RecalculationRequest
from tariff_engine.application.use_cases import (
    CompileRateSheetUseCase,
    ImportRoutesContext,
    ImportRoutesUseCase,
    RateSheetContext,
    RecalculateTariffsUseCase,
    RecalculationContext,
)
from tariff_engine.config import SETTINGS
from tariff_engine.domain.calculator import RateAdjustmentCalculator
from tariff_engine.domain.diesel import DieselPrice, price_change_for
from tariff_engine.domain.errors import TariffEngineError
from tariff_engine.domain.history import TariffHistoryRecorder
from tariff_engine.domain.importer import BulkRouteImporter
from tariff_engine.domain.policy import load_policy
from tariff_engine.domain.rate_sheet import RateSheetCompiler
from tariff_engine.infrastructure.archive.file_repository import FileSystemRateSheetArchive
from tariff_engine.infrastructure.parsing.utils import parse_decimal
from tariff_engine.infrastructure.repositories.memory import InMemoryTariffStore
from tariff_engine.infrastructure.storage.settings_store import JsonSettingsRepository, load_settings
from tariff_engine.infrastructure.templates.route_template import TEMPLATE_FILENAME, build_route_template
from tariff_engine.presentation.history_report import render_history_csv
from tariff_engine.presentation.rate_sheet_report import RateSheetReportRenderer

logger = logging.getLogger("tariff_engine")


def _period(value: str) -> date:
    parts = value.strip().split("-")
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"Invalid period {value!r}, expected YYYY-MM")
    try:
        return date(int(parts[0]), int(parts[1]), 1)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid period {value!r}: {exc}") from None


def _amount(value: str) -> Decimal:
    try:
        return parse_decimal(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _load_store(path: str | None) -> InMemoryTariffStore:
    return InMemoryTariffStore.from_json(Path(path)) if path else InMemoryTariffStore()


def _load_prices(path: str) -> list[DieselPrice]:
    frame = pd.read_csv(path, dtype=str, keep_default_na=False)
    return [
        DieselPrice(date.fromisoformat(row["price_date"].strip()), parse_decimal(row["price_per_liter"]))
        for _, row in frame.iterrows()
        if row["price_date"].strip()
    ]


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Diesel-linked tariff adjustments and client rate sheets")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--settings", type=Path, default=None, help="Guardrail settings JSON file")
    sub = parser.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calculate", help="Recalculate client route rates for a period")
    calc.add_argument("--store", required=True, help="JSON file with clients and their routes")
    calc.add_argument("--period", type=_period, required=True, help="Period month (YYYY-MM)")
    calc.add_argument("--new-price", type=_amount, help="Diesel price for the period")
    calc.add_argument("--previous-price", type=_amount, help="Diesel price before the period")
    calc.add_argument("--prices", help="CSV of price_date,price_per_liter used instead of explicit prices")
    calc.add_argument("--client", action="append", dest="clients", help="Restrict to client id (repeatable)")
    calc.add_argument("--dry-run", action="store_true", help="Only show proposed rates")
    calc.add_argument("--history-csv", type=Path, help="Write the recorded history entries to this CSV")

    imp = sub.add_parser("import-routes", help="Bulk import routes from .xlsx, .xls or .csv")
    imp.add_argument("file", type=Path)
    imp.add_argument("--store", help="JSON file with existing clients and routes")

    tpl = sub.add_parser("route-template", help="Write the bulk upload template workbook")
    tpl.add_argument("output", type=Path, nargs="?", default=Path(TEMPLATE_FILENAME))

    sheet = sub.add_parser("rate-sheet", help="Compile a client rate sheet")
    sheet.add_argument("--store", required=True)
    sheet.add_argument("--client", required=True, help="Client id")
    sheet.add_argument("--profile", default="sa", choices=[p.id for p in SETTINGS.business_profiles])
    sheet.add_argument("--vat-inclusive", action="store_true")
    sheet.add_argument("--effective-date", type=date.fromisoformat)
    sheet.add_argument("--valid-until", type=date.fromisoformat)
    sheet.add_argument("--reference")
    sheet.add_argument("--notes")
    sheet.add_argument("--prepared-by")
    sheet.add_argument("--mode", choices=["preview", "download"], default="download")
    sheet.add_argument("--output", type=Path, default=Path("."), help="Directory for the rendered file")
    sheet.add_argument("--archive", action="store_true", help="Also store the sheet in the archive")
    sheet.add_argument("--archive-dir", type=Path, default=SETTINGS.archive_dir)

    sub.add_parser("show-policy", help="Print the effective guardrail settings")
    return parser.parse_args(argv)


def _calculate(args: argparse.Namespace) -> int:
    store = _load_store(args.store)
    settings_repo = JsonSettingsRepository(args.settings)

    new_price, previous_price = args.new_price, args.previous_price
    if args.prices:
        policy = load_policy(settings_repo.fetch_active_policy(), SETTINGS.default_policy_settings)
        change = price_change_for(_load_prices(args.prices), args.period, policy.base_price)
        new_price, previous_price = change.new_price, change.previous_price
    if new_price is None:
        logger.error("Either --new-price or --prices is required")
        return 2

    clients = [c for c in store.clients.values() if not args.clients or c.id in args.clients]
    context = RecalculationContext(
        settings_repository=settings_repo,
        route_repository=store,
        history_repository=store,
        calculator=RateAdjustmentCalculator(SETTINGS.decimal_context),
        recorder=TariffHistoryRecorder(store),
    )
    report = RecalculateTariffsUseCase(context).execute(
        RecalculationRequest(
            clients=clients,
            period_month=args.period,
            new_diesel_price=new_price,
            previous_diesel_price=previous_price,
            dry_run=args.dry_run,
        )
    )

    print(f"Recalculation {args.period:%Y-%m}{' (dry run)' if report.dry_run else ''}")
    print("==================")
    for outcome in report.outcomes:
        proposed = outcome.result.new_rate if outcome.result else "-"
        detail = outcome.error or (outcome.result.reason if outcome.result else "")
        print(
            f"- {outcome.client_id} {outcome.route_code}: {outcome.current_rate} -> {proposed} "
            f"[{outcome.status}] {detail}"
        )
    for message in report.errors:
        print(f"- {message}")
    print(f"\nApplied: {report.applied}  Failed: {report.failed}")

    if args.history_csv:
        args.history_csv.write_bytes(render_history_csv(store.list_history()))
        print(f"History written to {args.history_csv}")
    return 1 if report.has_failures() else 0


def _import_routes(args: argparse.Namespace) -> int:
    store = _load_store(args.store)
    context = ImportRoutesContext(route_repository=store, importer=BulkRouteImporter(store))
    outcome = ImportRoutesUseCase(context).execute(ImportRoutesRequest(source=args.file, filename=args.file.name))

    print(f"Imported: {outcome.success_count}  Failed: {outcome.failed_count}")
    for message in outcome.iter_messages():
        print(f"- {message}")
    return 1 if outcome.has_failures() else 0


def _route_template(args: argparse.Namespace) -> int:
    args.output.write_bytes(build_route_template())
    print(f"Template written to {args.output}")
    return 0


def _rate_sheet(args: argparse.Namespace) -> int:
    store = _load_store(args.store)
    client = store.clients.get(args.client)
    if client is None:
        logger.error("Unknown client %s", args.client)
        return 2

    context = RateSheetContext(
        route_repository=store,
        branding_repository=store,
        compiler=RateSheetCompiler(home_currency=SETTINGS.home_currency, default_branding=SETTINGS.default_branding),
        renderer=RateSheetReportRenderer(),
        archive=FileSystemRateSheetArchive(args.archive_dir) if args.archive else None,
    )
    response = CompileRateSheetUseCase(context).execute(
        RateSheetRequest(
            client=client,
            profile_id=args.profile,
            mode=args.mode,
            vat_inclusive=args.vat_inclusive,
            effective_date=args.effective_date,
            valid_until=args.valid_until,
            reference=args.reference,
            notes=args.notes,
            prepared_by=args.prepared_by,
            archive=args.archive,
        )
    )

    document = response.document
    print(f"Rate sheet {document.reference} for {client.company_name} ({document.currency.value})")
    for item in document.line_items:
        print(f"- {item.route_code}: {item.origin} -> {item.destination} {item.display_rate}")
    if response.artifact is not None:
        args.output.mkdir(parents=True, exist_ok=True)
        target = args.output / response.artifact.filename
        target.write_bytes(response.artifact.content)
        print(f"Written to {target}")
    if response.receipt is not None:
        print(f"Archived under {response.receipt.location}")
    return 0


def _show_policy(args: argparse.Namespace) -> int:
    settings = load_settings(args.settings)
    for key, value in sorted(settings.items()):
        print(f"{key}: {value}")
    policy = load_policy(settings, SETTINGS.default_policy_settings)
    print(f"\nImpact factor: {policy.impact_factor}")
    return 0


COMMANDS = {
    "calculate": _calculate,
    "import-routes": _import_routes,
    "route-template": _route_template,
    "rate-sheet": _rate_sheet,
    "show-policy": _show_policy,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return COMMANDS[args.command](args)
    except (TariffEngineError, LookupError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
