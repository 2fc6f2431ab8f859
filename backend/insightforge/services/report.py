"""
Report and export rendering for an analyzed dataset.

Reports read a finished profile and insights; nothing is recomputed.
Exports write the stored rows back out as CSV or XLSX.
"""
import io
import logging
from html import escape
from typing import List, Optional, Set

import pandas as pd
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from insightforge.core.schemas import ColumnProfile, DatasetProfile, Insights, ParsedWorkbook, Row

logger = logging.getLogger(__name__)

# Excel rejects longer sheet names
MAX_SHEET_TITLE = 31

PRIMARY_COLOR = HexColor('#111827')
SECONDARY_COLOR = HexColor('#6b7280')

REPORT_STYLE = (
    "body{font-family:Inter,ui-sans-serif,system-ui,Segoe UI,Roboto,Helvetica,Arial,sans-serif;"
    "color:#111827;padding:24px;max-width:960px;margin:0 auto}"
    "h1,h2{color:#111827} .muted{color:#6b7280}"
)


def _summary_line(profile: DatasetProfile) -> str:
    return (
        f"Rows: {profile.row_count:,} • Columns: {profile.column_count} • "
        f"Completeness: {round(profile.completeness * 100)}%"
    )


def _column_detail(column: ColumnProfile) -> str:
    detail = column.type.value
    if column.stats is not None:
        detail += f" (mean={column.stats.mean:.2f}, std={column.stats.std:.2f})"
    return detail


def render_report_html(profile: DatasetProfile, insights: Optional[Insights]) -> str:
    """
    Standalone HTML document summarizing columns and recommendations.

    Column names and other cell-derived text are HTML-escaped.
    """
    columns = "".join(
        f"<li><strong>{escape(c.name)}</strong>: {escape(_column_detail(c))}</li>"
        for c in profile.columns
    )
    if insights is not None:
        recommendations = "".join(f"<li>{escape(r)}</li>" for r in insights.recommendations)
    else:
        recommendations = "<li>No insights</li>"

    return (
        '<!DOCTYPE html><html><head><meta charset="utf-8"/><title>Analysis Report</title>'
        '<meta name="viewport" content="width=device-width, initial-scale=1"/>'
        f"<style>{REPORT_STYLE}</style></head><body>"
        "<h1>Analysis Report</h1>"
        f'<p class="muted">{escape(_summary_line(profile))}</p>'
        f"<h2>Columns</h2><ul>{columns}</ul>"
        f"<h2>Insights</h2><ul>{recommendations}</ul>"
        "</body></html>"
    )


def create_pdf_report(profile: DatasetProfile, insights: Insights, filename: str = "dataset") -> bytes:
    """
    One-document PDF version of the HTML report.

    Args:
        profile: Profile of the analyzed sheet
        insights: Insights derived from the same rows
        filename: Shown in the footer

    Returns:
        PDF file as bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter, topMargin=0.75 * inch, bottomMargin=0.75 * inch)
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'ReportTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=PRIMARY_COLOR,
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )
    heading_style = ParagraphStyle(
        'ReportHeading',
        parent=styles['Heading2'],
        fontSize=16,
        textColor=PRIMARY_COLOR,
        spaceBefore=14,
        spaceAfter=8,
        fontName='Helvetica-Bold'
    )
    body_style = ParagraphStyle(
        'ReportBody',
        parent=styles['BodyText'],
        fontSize=10,
        textColor=SECONDARY_COLOR,
        spaceAfter=6,
        leading=13
    )
    item_style = ParagraphStyle(
        'ReportItem',
        parent=body_style,
        textColor=PRIMARY_COLOR,
        leftIndent=16
    )

    # Paragraph parses a small markup language, so cell text is escaped
    content = [
        Paragraph("Analysis Report", title_style),
        Paragraph(escape(_summary_line(profile)), body_style),
        Spacer(1, 0.2 * inch),
        Paragraph("Columns", heading_style),
    ]
    for column in profile.columns:
        content.append(Paragraph(f"• {escape(column.name)}: {escape(_column_detail(column))}", item_style))

    content.append(Paragraph("Insights", heading_style))
    for correlation in insights.strong_correlations:
        content.append(Paragraph(
            escape(f"• Strong correlation between {correlation.a} and {correlation.b} (r={correlation.r:.2f})"),
            item_style
        ))
    for candidate in insights.seasonality_candidates:
        content.append(Paragraph(
            escape(f"• {candidate.column} repeats every {candidate.lag} days (acf={candidate.acf:.2f})"),
            item_style
        ))
    for recommendation in insights.recommendations or ["No insights"]:
        content.append(Paragraph(f"• {escape(recommendation)}", item_style))

    footer_style = ParagraphStyle(
        'ReportFooter',
        parent=styles['Normal'],
        fontSize=9,
        textColor=HexColor('#999999'),
        alignment=TA_CENTER
    )
    content.append(Spacer(1, 0.3 * inch))
    content.append(Paragraph(
        escape(f"Generated from {filename} • {profile.row_count:,} rows analyzed"),
        footer_style
    ))

    doc.build(content)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    logger.debug(f"Rendered PDF report for {filename}: {len(pdf_bytes)} bytes")
    return pdf_bytes


def rows_to_csv(rows: List[Row]) -> str:
    """CSV text with the first row's keys as the header; empty input gives ''."""
    if not rows:
        return ""
    df = pd.DataFrame(rows, columns=list(rows[0].keys()))
    return df.to_csv(index=False, lineterminator="\n")


def _sheet_title(name: str, used: Set[str]) -> str:
    title = name[:MAX_SHEET_TITLE] or "Sheet"
    suffix = 2
    while title.lower() in used:
        tag = f" ({suffix})"
        title = name[:MAX_SHEET_TITLE - len(tag)] + tag
        suffix += 1
    used.add(title.lower())
    return title


def workbook_to_xlsx(workbook: ParsedWorkbook) -> bytes:
    """
    Every sheet of a workbook as one .xlsx file, in workbook order.

    Sheet names are cut to 31 characters; names that collide after
    cutting get a numbered suffix.
    """
    buffer = io.BytesIO()
    used: Set[str] = set()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet in workbook.sheets:
            rows = list(sheet.rows)
            columns = list(rows[0].keys()) if rows else []
            pd.DataFrame(rows, columns=columns).to_excel(
                writer, sheet_name=_sheet_title(sheet.name, used), index=False
            )
    xlsx_bytes = buffer.getvalue()
    buffer.close()
    logger.debug(f"Exported {len(workbook.sheets)} sheets to xlsx: {len(xlsx_bytes)} bytes")
    return xlsx_bytes
