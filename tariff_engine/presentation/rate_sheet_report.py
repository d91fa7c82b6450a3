"""Rate sheet renderers: HTML for preview, xlsx workbook for download."""
from __future__ import annotations

import html
from io import BytesIO

import pandas as pd

from tariff_engine.domain.archive.entities import RenderedArtifact
from tariff_engine.domain.models import RateSheetDocument
from tariff_engine.domain.repositories import RenderMode

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
HTML_MEDIA_TYPE = "text/html"
SHEET_NAME = "Rate Sheet"
TERMS_SHEET = "Terms"


def rate_sheet_filename(document: RateSheetDocument, extension: str = "xlsx") -> str:
    return f"RateSheet_{document.client.client_code}_{document.effective_date.isoformat()}.{extension}"


def document_to_rows(document: RateSheetDocument) -> list[dict[str, str]]:
    rows: list[dict[str, str]] = []
    for item in document.line_items:
        distance = f"{item.distance_km:,.0f} km" if item.distance_km is not None else "-"
        rows.append(
            {
                "Route": item.route_code,
                "Origin": item.origin,
                "Destination": item.destination,
                "Distance": distance,
                document.rate_label: item.display_rate,
            }
        )
    return rows


def _header_lines(document: RateSheetDocument) -> list[tuple[str, str]]:
    client = document.client
    lines = [
        ("Reference", document.reference),
        ("Company", client.company_name),
        ("Client Code", client.client_code),
    ]
    if client.contact_person:
        lines.append(("Contact", client.contact_person))
    if client.email:
        lines.append(("Email", client.email))
    if client.address:
        lines.append(("Address", client.address))
    lines.extend(
        [
            ("Currency", document.currency.value),
            ("Effective Date", document.effective_date.isoformat()),
            ("Valid Until", document.valid_until.isoformat()),
        ]
    )
    if document.prepared_by:
        lines.append(("Prepared by", document.prepared_by))
    return lines


def _registration_line(document: RateSheetDocument) -> str:
    branding = document.branding
    parts = []
    if branding.vat_number:
        parts.append(f"VAT: {branding.vat_number}")
    if branding.registration_number:
        parts.append(f"Reg: {branding.registration_number}")
    return " | ".join(parts)


def render_html(document: RateSheetDocument) -> str:
    esc = html.escape
    branding = document.branding
    color = branding.primary_color or "#1e40af"

    parts = [f'<div class="rate-sheet" style="border-top: 4px solid {esc(color)}">']
    parts.append(f"<h1>{esc(branding.company_name or '')}</h1>")
    if branding.tagline:
        parts.append(f"<p class=\"tagline\">{esc(branding.tagline)}</p>")
    contact = [value for value in (branding.phone, branding.email, branding.website) if value]
    if contact:
        parts.append("<p class=\"contact\">" + " | ".join(esc(value) for value in contact) + "</p>")
    parts.append("<h2>CLIENT RATE SHEET</h2>")

    details = "".join(
        f"<tr><th>{esc(label)}</th><td>{esc(value)}</td></tr>" for label, value in _header_lines(document)
    )
    parts.append(f"<table class=\"details\">{details}</table>")

    rows = document_to_rows(document)
    header = "".join(f"<th>{esc(col)}</th>" for col in rows[0].keys())
    body = "".join("<tr>" + "".join(f"<td>{esc(value)}</td>" for value in row.values()) + "</tr>" for row in rows)
    parts.append(f"<table class=\"rates\"><thead><tr>{header}</tr></thead><tbody>{body}</tbody></table>")

    if document.notes:
        parts.append(f"<h3>NOTES</h3><p>{esc(document.notes)}</p>")
    if document.terms:
        terms = "".join(f"<li>{esc(line)}</li>" for line in document.terms.splitlines() if line.strip())
        parts.append(f"<h3>TERMS &amp; CONDITIONS</h3><ul class=\"terms\">{terms}</ul>")

    footer = [esc(branding.company_name or ""), esc(branding.address or "")]
    registration = _registration_line(document)
    if registration:
        footer.append(esc(registration))
    parts.append("<footer>" + "<br>".join(value for value in footer if value) + "</footer>")
    parts.append("</div>")
    return "".join(parts)


def render_xlsx(document: RateSheetDocument) -> bytes:
    branding = document.branding
    header = _header_lines(document)
    rates = pd.DataFrame(document_to_rows(document))
    start_row = len(header) + 4

    buf = BytesIO()
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        rates.to_excel(writer, sheet_name=SHEET_NAME, index=False, startrow=start_row)
        workbook = writer.book
        worksheet = writer.sheets[SHEET_NAME]
        title = workbook.add_format({"bold": True, "font_size": 16, "font_color": branding.primary_color or "#1e40af"})
        bold = workbook.add_format({"bold": True})

        worksheet.write(0, 0, branding.company_name or "", title)
        if branding.tagline:
            worksheet.write(1, 0, branding.tagline)
        worksheet.write(2, 0, "CLIENT RATE SHEET", bold)
        for offset, (label, value) in enumerate(header, start=3):
            worksheet.write(offset, 0, label, bold)
            worksheet.write(offset, 1, value)

        worksheet.set_column(0, 0, 16)
        worksheet.set_column(1, 2, 22)
        worksheet.set_column(3, 4, 16)

        footer_row = start_row + len(rates) + 2
        if document.notes:
            worksheet.write(footer_row, 0, "NOTES", bold)
            worksheet.write(footer_row + 1, 0, document.notes)
            footer_row += 3
        worksheet.write(footer_row, 0, branding.address or "")
        registration = _registration_line(document)
        if registration:
            worksheet.write(footer_row + 1, 0, registration)

        if document.terms:
            terms = pd.DataFrame({"TERMS & CONDITIONS": [line for line in document.terms.splitlines() if line.strip()]})
            terms.to_excel(writer, sheet_name=TERMS_SHEET, index=False)
            writer.sheets[TERMS_SHEET].set_column(0, 0, 120)
    buf.seek(0)
    return buf.getvalue()


class RateSheetReportRenderer:
    """``RateSheetRenderer`` producing HTML previews and xlsx downloads."""

    def render(self, document: RateSheetDocument, mode: RenderMode) -> RenderedArtifact:
        if mode == "preview":
            return RenderedArtifact(
                filename=rate_sheet_filename(document, "html"),
                media_type=HTML_MEDIA_TYPE,
                content=render_html(document).encode("utf-8"),
            )
        if mode == "download":
            return RenderedArtifact(
                filename=rate_sheet_filename(document, "xlsx"),
                media_type=XLSX_MEDIA_TYPE,
                content=render_xlsx(document),
            )
        raise ValueError(f"Unsupported render mode: {mode!r}")
