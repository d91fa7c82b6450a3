from decimal import Decimal

import pytest

from tariff_engine.domain.errors import DuplicateError, PersistenceError
from tariff_engine.domain.importer import (
    EMPTY_BATCH_MESSAGE,
    BulkRouteImporter,
    normalize_route_code,
    register_route,
)
from tariff_engine.domain.models import RouteRecord


class RecordingRepository:
    def __init__(self, codes=(), fail_on=()):
        self.inserted: list[RouteRecord] = []
        self.codes = set(codes)
        self.fail_on = set(fail_on)

    def insert_route(self, record: RouteRecord) -> RouteRecord:
        if record.route_code in self.fail_on:
            raise RuntimeError("permission denied for table routes")
        self.inserted.append(record)
        self.codes.add(record.route_code)
        return record

    def list_route_codes(self) -> set[str]:
        return set(self.codes)


def make_row(code="JHB-CPT", origin="Johannesburg", destination="Cape Town", **extra):
    row = {"route_code": code, "origin": origin, "destination": destination}
    row.update(extra)
    return row


def test_missing_route_code_is_rejected():
    importer = BulkRouteImporter(RecordingRepository())

    outcome = importer.import_rows([make_row(code="", origin="A", destination="B")], existing=[])

    assert outcome.success_count == 0
    assert outcome.failed_count == 1
    assert outcome.outcomes[0].errors == ("Route code is required",)
    assert outcome.outcomes[0].row_number == 2


def test_checks_apply_in_order():
    importer = BulkRouteImporter(RecordingRepository())
    rows = [
        make_row(origin="", destination=""),
        make_row(code="A1", destination=""),
        make_row(code="A2", distance_km="far", estimated_hours="x"),
        make_row(code="A3", estimated_hours="soon"),
    ]

    outcome = importer.import_rows(rows, existing=[])

    assert list(outcome.iter_messages()) == [
        "Row 2: Origin is required",
        "Row 3: Destination is required",
        "Row 4: Invalid distance value",
        "Row 5: Invalid estimated hours value",
    ]


def test_duplicate_within_batch_and_existing():
    repository = RecordingRepository()
    importer = BulkRouteImporter(repository)
    rows = [make_row(code="jhb-cpt"), make_row(code=" JHB-CPT "), make_row(code="DBN-JHB")]

    outcome = importer.import_rows(rows, existing=["dbn-jhb"])

    assert outcome.success_count == 1
    assert outcome.failed_count == 2
    assert outcome.success_count + outcome.failed_count == len(rows)
    assert outcome.outcomes[1].errors == ('Route code "JHB-CPT" already exists',)
    assert outcome.outcomes[2].errors == ('Route code "DBN-JHB" already exists',)
    assert [r.route_code for r in repository.inserted] == ["JHB-CPT"]


def test_valid_row_fields_are_parsed():
    repository = RecordingRepository()
    row = make_row(distance_km="1,400", estimated_hours="6.5", route_description="Via N1", is_active="No")

    outcome = BulkRouteImporter(repository).import_rows([row], existing=[])

    record = outcome.outcomes[0].record
    assert record.distance_km == Decimal("1400")
    assert record.estimated_hours == Decimal("6.5")
    assert record.description == "Via N1"
    assert record.is_active is False


@pytest.mark.parametrize("flag, expected", [("", True), ("yes", True), ("FALSE", False), ("0", False)])
def test_active_flag(flag, expected):
    outcome = BulkRouteImporter(RecordingRepository()).import_rows([make_row(is_active=flag)], existing=[])

    assert outcome.outcomes[0].record.is_active is expected


def test_empty_batch_reports_single_error():
    outcome = BulkRouteImporter(RecordingRepository()).import_rows([], existing=[])

    assert outcome.success_count == 0
    assert outcome.failed_count == 0
    assert list(outcome.errors) == [EMPTY_BATCH_MESSAGE]


def test_insert_failure_is_row_error_and_code_stays_free():
    repository = RecordingRepository(fail_on={"JHB-CPT"})
    importer = BulkRouteImporter(repository)

    outcome = importer.import_rows([make_row(), make_row(code="JHB-CPT ")], existing=[])

    assert outcome.failed_count == 2
    assert outcome.outcomes[0].errors == ("permission denied for table routes",)
    assert outcome.outcomes[1].errors == ("permission denied for table routes",)


def test_should_stop_gives_partial_outcome():
    repository = RecordingRepository()
    importer = BulkRouteImporter(repository)
    rows = [make_row(code=f"R{i}") for i in range(5)]
    calls = {"n": 0}

    def should_stop():
        calls["n"] += 1
        return calls["n"] > 2

    outcome = importer.import_rows(rows, existing=[], should_stop=should_stop)

    assert not outcome.completed
    assert outcome.processed_rows == 2
    assert outcome.total_rows == 5
    assert outcome.last_row_number == 3
    assert len(repository.inserted) == 2


def test_normalize_route_code_collapses_whitespace():
    assert normalize_route_code("  jhb   cpt ") == "JHB CPT"


def test_register_route_rejects_duplicate():
    repository = RecordingRepository(codes={"JHB-CPT"})

    with pytest.raises(DuplicateError):
        register_route(repository, RouteRecord("jhb-cpt", "Johannesburg", "Cape Town"))


def test_register_route_wraps_insert_failure():
    repository = RecordingRepository(fail_on={"PE-CPT"})

    with pytest.raises(PersistenceError):
        register_route(repository, RouteRecord("pe-cpt", "Gqeberha", "Cape Town"))


def test_register_route_normalizes():
    repository = RecordingRepository()

    stored = register_route(repository, RouteRecord(" pe-cpt ", " Gqeberha ", "Cape Town"))

    assert stored.route_code == "PE-CPT"
    assert stored.origin == "Gqeberha"
