"""Tariff history export."""
from __future__ import annotations

import csv
import io
from typing import Sequence

from tariff_engine.domain.models import TariffHistoryEntry

HISTORY_COLUMNS = (
    "period",
    "client_id",
    "route_id",
    "previous_rate",
    "new_rate",
    "currency",
    "adjustment_pct",
    "diesel_price",
    "diesel_change_pct",
    "reason",
    "created_at",
    "supersedes",
)


def history_to_rows(entries: Sequence[TariffHistoryEntry]) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for entry in entries:
        rows.append(
            {
                "period": entry.period_month.strftime("%Y-%m"),
                "client_id": entry.client_id,
                "route_id": entry.route_id,
                "previous_rate": str(entry.previous_rate),
                "new_rate": str(entry.new_rate),
                "currency": entry.currency.value,
                "adjustment_pct": f"{entry.adjustment_pct:.2f}",
                "diesel_price": str(entry.diesel_price_at_change),
                "diesel_change_pct": f"{entry.diesel_percentage_change:.2f}",
                "reason": entry.adjustment_reason,
                "created_at": entry.created_at.isoformat(),
                "supersedes": entry.supersedes or "",
            }
        )
    return rows


def render_history_csv(entries: Sequence[TariffHistoryEntry]) -> bytes:
    rows = history_to_rows(entries)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(HISTORY_COLUMNS))
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")
