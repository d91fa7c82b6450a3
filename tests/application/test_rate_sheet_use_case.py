import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from tariff_engine.application.dto import RateSheetRequest
from tariff_engine.application.use_cases import CompileRateSheetUseCase, RateSheetContext
from tariff_engine.config import DEFAULT_TERMS
from tariff_engine.domain.errors import NoRoutesConfigured, PersistenceError, ValidationError
from tariff_engine.domain.models import Branding, Client, RouteAssignment, RouteRecord
from tariff_engine.domain.rate_sheet import RateSheetCompiler
from tariff_engine.infrastructure.archive.file_repository import FileSystemRateSheetArchive
from tariff_engine.infrastructure.repositories.memory import InMemoryTariffStore
from tariff_engine.presentation.rate_sheet_report import HTML_MEDIA_TYPE, RateSheetReportRenderer

CLIENT = Client(id="c1", client_code="CLI001", company_name="ABC Manufacturing")


def make_store(with_routes: bool = True) -> InMemoryTariffStore:
    assignments = []
    if with_routes:
        assignments.append(
            RouteAssignment(
                id="a1",
                client_id="c1",
                route_id="r1",
                route=RouteRecord("JHB-CPT", "Johannesburg", "Cape Town"),
                current_rate=Decimal("4950"),
            )
        )
    return InMemoryTariffStore(assignments=assignments, branding=Branding(tagline="Stored tagline"))


def make_context(store, archive_root: Path | None = None) -> RateSheetContext:
    return RateSheetContext(
        route_repository=store,
        branding_repository=store,
        compiler=RateSheetCompiler(clock=lambda: date(2025, 3, 1), reference_factory=lambda today: "RS-202503-007"),
        renderer=RateSheetReportRenderer(),
        archive=FileSystemRateSheetArchive(archive_root) if archive_root else None,
    )


def test_compile_uses_persisted_branding_and_default_terms():
    response = CompileRateSheetUseCase(make_context(make_store())).execute(RateSheetRequest(client=CLIENT))

    assert response.document.branding.tagline == "Stored tagline"
    assert response.document.terms == DEFAULT_TERMS
    assert response.artifact is None


def test_preview_renders_html():
    response = CompileRateSheetUseCase(make_context(make_store())).execute(
        RateSheetRequest(client=CLIENT, mode="preview")
    )

    assert response.artifact.media_type == HTML_MEDIA_TYPE
    assert b"JHB-CPT" in response.artifact.content


def test_archive_stores_download(tmp_path: Path):
    use_case = CompileRateSheetUseCase(make_context(make_store(), archive_root=tmp_path / "sheets"))

    response = use_case.execute(RateSheetRequest(client=CLIENT, archive=True))

    assert response.artifact.filename == "RateSheet_CLI001_2025-03-01.xlsx"
    sheet_dir = tmp_path / "sheets" / "RS-202503-007"
    assert response.receipt.location == sheet_dir
    assert (sheet_dir / response.artifact.filename).read_bytes() == response.artifact.content
    manifest = json.loads((sheet_dir / "manifest.json").read_text())
    assert manifest["client_code"] == "CLI001"


def test_client_without_routes_fails():
    with pytest.raises(NoRoutesConfigured):
        CompileRateSheetUseCase(make_context(make_store(with_routes=False))).execute(RateSheetRequest(client=CLIENT))


def test_unknown_profile_is_validation_error():
    with pytest.raises(ValidationError):
        CompileRateSheetUseCase(make_context(make_store())).execute(RateSheetRequest(client=CLIENT, profile_id="uk"))


def test_branding_failure_is_persistence_error():
    class BrokenBrandingStore(InMemoryTariffStore):
        def fetch_branding(self):
            raise RuntimeError("timeout")

    store = BrokenBrandingStore(assignments=make_store().assignments.values())

    with pytest.raises(PersistenceError) as excinfo:
        CompileRateSheetUseCase(make_context(store)).execute(RateSheetRequest(client=CLIENT))
    assert excinfo.value.operation == "fetch_branding"
