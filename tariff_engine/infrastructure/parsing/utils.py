"""Shared parsing utilities for spreadsheet ingestion."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
import hashlib


def ensure_bytes(source: BytesIO | Path | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def parse_decimal(value: object) -> Decimal:
    """Parse a user-entered amount such as ``R 1,017.50``; raises ``ValueError``."""
    s = "" if value is None else str(value).strip()
    for ch in [",", "$", "R", " "]:
        s = s.replace(ch, "")
    if not s:
        raise ValueError("empty amount")
    try:
        result = Decimal(s)
    except InvalidOperation:
        raise ValueError(f"invalid amount: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return result


def normalize_header(value: object) -> str:
    return "" if value is None else str(value).strip().lower().replace(" ", "_")


def is_blank_row(row: dict[str, str]) -> bool:
    return not any(str(value).strip() for value in row.values())
