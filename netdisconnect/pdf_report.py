"""
Network Disconnect Analyzer - PDF Report Generator
Creates a disconnect diagnosis report using ReportLab: adapters, the
disconnect timeline with its correlated events, live monitor changes and
the recommendations.
"""

import logging
import os
from datetime import datetime
from typing import Sequence
from xml.sax.saxutils import escape

from netdisconnect import __version__
from netdisconnect.adapters import AdapterPartition
from netdisconnect.analyzer import AnalysisReport
from netdisconnect.correlation import CorrelationResult
from netdisconnect.monitor import StateChangeRecord
from netdisconnect.report_export import adapter_type_label

logger = logging.getLogger(__name__)

# ── Report Colors ────────────────────────────────────────────────────────────
BRAND_BLUE_HEX = "#0070BB"
HEADER_BG_HEX = "#0070BB"
ROW_ALT_HEX = "#F0F5FA"
BORDER_HEX = "#CCCCCC"
TEXT_DARK_HEX = "#1A1A2E"
TEXT_SECONDARY_HEX = "#4A5568"

HEALTH_HEX = {
    "Healthy": "#22C55E",
    "Degraded": "#F59E0B",
    "Unstable": "#F97316",
    "Critical": "#EF4444",
}

MAX_TIMELINE_ROWS = 200


def generate_disconnect_report(
    partition: AdapterPartition,
    results: Sequence[CorrelationResult],
    analysis: AnalysisReport,
    monitor_records: Sequence[StateChangeRecord] = (),
    show_virtual: bool = False,
    output_path: str = "",
    hostname: str = "",
) -> str:
    """
    Generate the PDF diagnosis report.

    Args:
        partition: Classified adapters
        results: Correlation results (one per disconnect event)
        analysis: Findings and health score
        monitor_records: State changes from the live monitor, if it ran
        show_virtual: Include non-physical disconnect events in the timeline
        output_path: Where to save the PDF (auto-generated if empty)
        hostname: Computer name shown in the header

    Returns:
        Path to the generated PDF file
    """
    from reportlab.lib.pagesizes import letter, landscape
    from reportlab.lib.units import inch
    from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
    from reportlab.lib.enums import TA_CENTER
    from reportlab.platypus import (
        SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle,
    )
    from reportlab.lib.colors import HexColor, white

    if not output_path:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        docs_dir = os.path.join(os.path.expanduser("~"), "Documents")
        os.makedirs(docs_dir, exist_ok=True)
        output_path = os.path.join(docs_dir, f"DisconnectReport_{timestamp}.pdf")
    else:
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

    brand_blue = HexColor(BRAND_BLUE_HEX)
    header_bg = HexColor(HEADER_BG_HEX)
    row_alt = HexColor(ROW_ALT_HEX)
    text_dark = HexColor(TEXT_DARK_HEX)
    text_secondary = HexColor(TEXT_SECONDARY_HEX)
    border_color = HexColor(BORDER_HEX)

    # ── Page setup ────────────────────────────────────────────────────────
    page_w, page_h = landscape(letter)
    doc = SimpleDocTemplate(
        output_path,
        pagesize=landscape(letter),
        leftMargin=0.5 * inch,
        rightMargin=0.5 * inch,
        topMargin=0.5 * inch,
        bottomMargin=0.6 * inch,
    )
    avail_w = page_w - 1.0 * inch

    # ── Styles ────────────────────────────────────────────────────────────
    styles = getSampleStyleSheet()
    style_title = ParagraphStyle(
        "NDTitle", parent=styles["Title"],
        fontName="Helvetica-Bold", fontSize=18,
        textColor=brand_blue, spaceAfter=4,
    )
    style_heading = ParagraphStyle(
        "NDHeading", parent=styles["Heading2"],
        fontName="Helvetica-Bold", fontSize=12,
        textColor=brand_blue, spaceBefore=12, spaceAfter=6,
    )
    style_body = ParagraphStyle(
        "NDBody", parent=styles["Normal"],
        fontName="Helvetica", fontSize=9,
        textColor=text_dark,
    )
    style_cell = ParagraphStyle(
        "NDCell", parent=styles["Normal"],
        fontName="Helvetica", fontSize=8,
        textColor=text_dark, leading=10,
    )
    style_header_cell = ParagraphStyle(
        "NDHeaderCell", parent=styles["Normal"],
        fontName="Helvetica-Bold", fontSize=8,
        textColor=white, leading=10,
    )
    style_footer = ParagraphStyle(
        "NDFooter", parent=styles["Normal"],
        fontName="Helvetica", fontSize=7,
        textColor=text_secondary, alignment=TA_CENTER,
    )

    def cell(text, style=style_cell) -> Paragraph:
        return Paragraph(escape(str(text)).replace("\n", "<br/>"), style)

    def data_table(headers, rows, widths) -> Table:
        table_data = [[Paragraph(h, style_header_cell) for h in headers]]
        table_data.extend([[cell(v) for v in row] for row in rows])
        table = Table(table_data, colWidths=widths, repeatRows=1)
        cmds = [
            ("BACKGROUND", (0, 0), (-1, 0), header_bg),
            ("BOX", (0, 0), (-1, -1), 0.5, border_color),
            ("INNERGRID", (0, 1), (-1, -1), 0.25, border_color),
            ("TOPPADDING", (0, 0), (-1, -1), 3),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ("LEFTPADDING", (0, 0), (-1, -1), 4),
            ("RIGHTPADDING", (0, 0), (-1, -1), 4),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]
        for i in range(1, len(table_data)):
            if i % 2 == 0:
                cmds.append(("BACKGROUND", (0, i), (-1, i), row_alt))
        table.setStyle(TableStyle(cmds))
        return table

    story = []
    now = datetime.now()

    # ── Title & run info ──────────────────────────────────────────────────
    story.append(Paragraph("Network Disconnect Report", style_title))
    info_lines = []
    if hostname:
        info_lines.append(f"<b>Computer:</b> {escape(hostname)}")
    info_lines.append(f"<b>Generated:</b> {now.strftime('%Y-%m-%d %H:%M:%S')}")
    info_lines.append(f"<b>Event Log Window:</b> last {analysis.lookback_hours:g} hours")
    info_lines.append(
        f"<b>Adapters:</b> {len(partition.physical)} physical, "
        f"{len(partition.virtual)} virtual"
    )
    for line in info_lines:
        story.append(Paragraph(line, style_body))
    story.append(Spacer(1, 8))

    # ── Health summary ────────────────────────────────────────────────────
    health_color = HEALTH_HEX.get(analysis.health_label, BRAND_BLUE_HEX)
    story.append(Paragraph(
        f'<font name="Helvetica-Bold" size="12" color="{health_color}">'
        f'{analysis.health_label} ({analysis.health_score}/100)</font>',
        style_body,
    ))
    story.append(Spacer(1, 4))
    story.append(Paragraph(escape(analysis.summary), style_body))

    # ── Findings ──────────────────────────────────────────────────────────
    story.append(Paragraph("Findings &amp; Recommendations", style_heading))
    finding_rows = []
    for f in analysis.findings:
        finding_rows.append([
            f.severity.upper(), f.title,
            f"{f.description}\n\n{f.likely_cause}", f.suggestion,
        ])
    story.append(data_table(
        ["Severity", "Finding", "Observation / Likely Cause", "Suggested Actions"],
        finding_rows,
        [0.8 * inch, 1.8 * inch, 3.7 * inch, avail_w - 6.3 * inch],
    ))

    # ── Adapters ──────────────────────────────────────────────────────────
    story.append(Paragraph("Network Adapters", style_heading))
    adapter_rows = [
        [a.name, a.description, a.media_type or "n/a", a.kind,
         a.link_speed or "", a.mac_address or ""]
        for a in partition.all
    ]
    story.append(data_table(
        ["Name", "Description", "Media", "Type", "Speed", "MAC"],
        adapter_rows,
        [1.5 * inch, 3.2 * inch, 1.1 * inch, 0.9 * inch, 1.2 * inch,
         avail_w - 7.9 * inch],
    ))

    # ── Disconnect timeline ───────────────────────────────────────────────
    story.append(Paragraph("Disconnect Timeline", style_heading))
    shown = [r for r in results if show_virtual or r.is_physical or not r.is_attributed]
    if not shown:
        story.append(Paragraph("No disconnect events in the analyzed window.", style_body))
    else:
        timeline_rows = []
        for r in shown[:MAX_TIMELINE_ROWS]:
            context = "\n".join(
                f"{c.timestamp.strftime('%H:%M:%S')}  {c.event_id}  {c.description}"
                for c in r.correlated
            ) or "-"
            timeline_rows.append([
                r.anchor.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                r.anchor.event_id, r.anchor.description,
                f"{r.adapter_label}\n({adapter_type_label(r)})", context,
            ])
        story.append(data_table(
            ["Time", "Id", "Event", "Adapter", "Correlated (+/- 30s)"],
            timeline_rows,
            [1.3 * inch, 0.5 * inch, 2.4 * inch, 2.0 * inch, avail_w - 6.2 * inch],
        ))
        if len(shown) > MAX_TIMELINE_ROWS:
            story.append(Paragraph(
                f"{len(shown) - MAX_TIMELINE_ROWS} older events omitted; see the CSV export.",
                style_body,
            ))

    # ── Live monitor ──────────────────────────────────────────────────────
    if monitor_records:
        story.append(Paragraph("Live Monitor State Changes", style_heading))
        monitor_rows = [
            [rec.timestamp.strftime("%Y-%m-%d %H:%M:%S"), rec.adapter_name,
             rec.severity, rec.description + (" (flapping)" if rec.recovered_on_recheck else ""),
             rec.changes_text]
            for rec in monitor_records
        ]
        story.append(data_table(
            ["Time", "Adapter", "Severity", "Description", "Changes"],
            monitor_rows,
            [1.3 * inch, 1.5 * inch, 0.8 * inch, 2.0 * inch, avail_w - 5.6 * inch],
        ))

    # ── Footer ────────────────────────────────────────────────────────────
    story.append(Spacer(1, 20))
    footer_rule = Table([[""]], colWidths=[avail_w])
    footer_rule.setStyle(TableStyle([
        ("LINEABOVE", (0, 0), (-1, 0), 0.5, border_color),
        ("TOPPADDING", (0, 0), (-1, -1), 0),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
    ]))
    story.append(footer_rule)
    story.append(Spacer(1, 4))
    story.append(Paragraph(
        f"Generated by Network Disconnect Analyzer v{__version__}  |  "
        f"{now.strftime('%Y-%m-%d %H:%M:%S')}",
        style_footer,
    ))

    def _add_page_numbers(canvas_obj, doc_obj):
        """Add page numbers to the footer of every page."""
        canvas_obj.saveState()
        canvas_obj.setFont("Helvetica", 7)
        canvas_obj.setFillColor(HexColor(TEXT_SECONDARY_HEX))
        canvas_obj.drawRightString(page_w - 0.5 * inch, 0.35 * inch, f"Page {doc_obj.page}")
        canvas_obj.restoreState()

    doc.build(story, onFirstPage=_add_page_numbers, onLaterPages=_add_page_numbers)

    logger.info(f"PDF report generated: {output_path} ({len(shown)} events)")
    return output_path
