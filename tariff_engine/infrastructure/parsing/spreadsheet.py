"""Spreadsheet reader producing raw route rows for the bulk importer."""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path

import pandas as pd

from tariff_engine.domain.errors import ValidationError
from tariff_engine.domain.importer import ROUTE_COLUMNS
from tariff_engine.infrastructure.parsing.utils import ensure_bytes, is_blank_row, normalize_header

logger = logging.getLogger(__name__)

READ_FAILURE_MESSAGE = "Failed to process the spreadsheet. Please ensure it's a valid .xlsx, .xls or .csv file."


class SpreadsheetReadError(ValidationError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(READ_FAILURE_MESSAGE)


def _is_csv(filename: str | None) -> bool:
    return bool(filename) and Path(filename).suffix.lower() == ".csv"


def _read_excel(data: bytes) -> pd.DataFrame:
    # openpyxl handles .xlsx; xlrd is the fallback for legacy .xls
    last_error: Exception | None = None
    for engine in ("openpyxl", "xlrd"):
        try:
            return pd.read_excel(
                BytesIO(data),
                sheet_name=0,
                engine=engine,
                dtype=str,
                keep_default_na=False,
            )
        except Exception as exc:
            last_error = exc
    raise SpreadsheetReadError(str(last_error))


def _read_csv(data: bytes) -> pd.DataFrame:
    try:
        return pd.read_csv(
            BytesIO(data),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise SpreadsheetReadError(str(exc)) from exc


def read_route_rows(source: BytesIO | Path | bytes, filename: str | None = None) -> list[dict[str, str]]:
    """Read the first sheet into string rows keyed by the recognized route columns.

    Headers are matched case-insensitively; unrecognized columns are dropped
    and fully blank rows are skipped.
    """
    if filename is None and isinstance(source, Path):
        filename = source.name
    data = ensure_bytes(source)
    if not data:
        return []

    dataframe = _read_csv(data) if _is_csv(filename) else _read_excel(data)
    dataframe.columns = [normalize_header(column) for column in dataframe.columns]
    columns = [column for column in ROUTE_COLUMNS if column in dataframe.columns]

    rows: list[dict[str, str]] = []
    for _, raw in dataframe.iterrows():
        row = {column: str(raw[column]).strip() for column in columns}
        if is_blank_row(row):
            continue
        rows.append(row)
    logger.debug("Read %s route rows from %s", len(rows), filename or "upload")
    return rows
