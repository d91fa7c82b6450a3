"""Downloadable workbook template for bulk route uploads."""
from __future__ import annotations

from io import BytesIO

import pandas as pd

from tariff_engine.domain.importer import ROUTE_COLUMNS

TEMPLATE_SHEET = "Routes Template"
INSTRUCTIONS_SHEET = "Instructions"
TEMPLATE_FILENAME = "routes_template.xlsx"

SAMPLE_ROWS = (
    {
        "route_code": "JHB-CPT",
        "origin": "Johannesburg",
        "destination": "Cape Town",
        "distance_km": 1400,
        "estimated_hours": 16,
        "route_description": "Via N1, night delivery window",
        "is_active": "Yes",
    },
    {
        "route_code": "DBN-JHB",
        "origin": "Durban",
        "destination": "Johannesburg",
        "distance_km": 580,
        "estimated_hours": 6.5,
        "route_description": "Coastal to inland, toll roads preferred",
        "is_active": "Yes",
    },
)

COLUMN_WIDTHS = {
    "route_code": 15,
    "origin": 20,
    "destination": 20,
    "distance_km": 12,
    "estimated_hours": 14,
    "route_description": 35,
    "is_active": 10,
}

INSTRUCTIONS = (
    "Routes Bulk Upload Template",
    "",
    "Column Descriptions:",
    "- route_code: Unique code for the route (required) - e.g., JHB-CPT",
    "- origin: Starting location (required)",
    "- destination: End location (required)",
    "- distance_km: Distance in kilometers (optional)",
    "- estimated_hours: Estimated travel time in hours (optional)",
    "- route_description: Unique comment to distinguish similar routes (optional)",
    "- is_active: Yes or No (defaults to Yes if empty)",
    "",
    "Notes:",
    "- Delete the sample rows before uploading your data",
    "- Route codes must be unique",
    "- Use the comment field to differentiate routes with the same origin/destination",
    "- Do not modify the column headers",
)


def build_route_template() -> bytes:
    template = pd.DataFrame(list(SAMPLE_ROWS), columns=list(ROUTE_COLUMNS))
    instructions = pd.DataFrame({"Instructions": list(INSTRUCTIONS)})

    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        template.to_excel(writer, sheet_name=TEMPLATE_SHEET, index=False)
        instructions.to_excel(writer, sheet_name=INSTRUCTIONS_SHEET, index=False)

        worksheet = writer.sheets[TEMPLATE_SHEET]
        for idx, column in enumerate(template.columns):
            worksheet.set_column(idx, idx, COLUMN_WIDTHS.get(column, 12))
        writer.sheets[INSTRUCTIONS_SHEET].set_column(0, 0, 80)
    buf.seek(0)
    return buf.getvalue()
