import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from tariff_engine.application.archive.use_cases import ArchiveRateSheetUseCase
from tariff_engine.config import SETTINGS
from tariff_engine.domain.archive.entities import ArchiveRateSheetRequest, RenderedArtifact
from tariff_engine.domain.models import Client, RouteAssignment, RouteRecord
from tariff_engine.domain.rate_sheet import RateSheetCompiler
from tariff_engine.infrastructure.archive.file_repository import FileSystemRateSheetArchive


@pytest.fixture
def repo(tmp_path: Path) -> FileSystemRateSheetArchive:
    root = tmp_path / "rate_sheets"
    return FileSystemRateSheetArchive(root)


def make_document(reference: str):
    client = Client(id="c1", client_code="CLI001", company_name="ABC Manufacturing")
    assignment = RouteAssignment(
        id="a1",
        client_id="c1",
        route_id="r1",
        route=RouteRecord("JHB-CPT", "Johannesburg", "Cape Town"),
        current_rate=Decimal("4950"),
    )
    compiler = RateSheetCompiler(clock=lambda: date(2025, 3, 1))
    return compiler.compile(client, [assignment], SETTINGS.profile("zim"), reference=reference)


def test_archive_use_case_creates_reference_directory(repo: FileSystemRateSheetArchive, tmp_path: Path) -> None:
    use_case = ArchiveRateSheetUseCase(repository=repo)
    request = ArchiveRateSheetRequest(
        document=make_document("RS-202503-123"),
        artifacts=[
            RenderedArtifact("RateSheet_CLI001_2025-03-01.xlsx", "application/xlsx", b"xlsx-bytes"),
            RenderedArtifact("RateSheet_CLI001_2025-03-01.html", "text/html", b"<p>"),
        ],
    )

    receipt = use_case.execute(request)

    sheet_dir = tmp_path / "rate_sheets" / "RS-202503-123"
    assert sheet_dir.is_dir()
    assert (sheet_dir / "RateSheet_CLI001_2025-03-01.xlsx").read_bytes() == b"xlsx-bytes"

    manifest = json.loads((sheet_dir / "manifest.json").read_text())
    assert manifest["reference"] == "RS-202503-123"
    assert manifest["currency"] == "USD"
    assert manifest["line_items"] == 1
    assert [entry["name"] for entry in manifest["files"]] == [
        "RateSheet_CLI001_2025-03-01.xlsx",
        "RateSheet_CLI001_2025-03-01.html",
    ]
    assert manifest["files"][1]["bytes"] == len(b"<p>")

    assert receipt.reference == "RS-202503-123"
    assert receipt.location == sheet_dir
    assert len(receipt.files) == 2


def test_archive_normalizes_reference(repo: FileSystemRateSheetArchive, tmp_path: Path) -> None:
    use_case = ArchiveRateSheetUseCase(repository=repo)
    request = ArchiveRateSheetRequest(
        document=make_document(" rs/2025 03 9 "),
        artifacts=[RenderedArtifact("sheet.xlsx", "application/xlsx", b"x")],
    )

    receipt = use_case.execute(request)

    expected_dir = tmp_path / "rate_sheets" / "RS2025039"
    assert receipt.location == expected_dir
    assert json.loads((expected_dir / "manifest.json").read_text())["reference"] == "RS2025039"
