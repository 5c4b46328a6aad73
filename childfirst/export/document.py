"""
Paginated-document (PDF) exporter.

Two variants:
    - Timeline report: every incident given (usually the filtered view)
    - Court report: case metadata + the first LEGAL_REPORT_LIMIT incidents
      in store order; summary figures cover the full store

Layout is built first as plain data (Block/Line) and then rendered with
fpdf2. Blocks marked keep_together (incident entries, notes, footer)
start a new page when they would overflow the current one.

Library Stack:
    - fpdf2: PDF generation with core (Latin-1) fonts
"""

from dataclasses import dataclass
from datetime import tzinfo
from typing import Sequence

from fpdf import FPDF

from childfirst.incident import Incident, has_coordinates
from childfirst.query import summarize
from childfirst.utils import format_timestamp, now_iso

LEGAL_REPORT_LIMIT = 10

ENTRY_DATE_FORMAT = "%b %d, %Y %I:%M:%S %p"
GENERATED_DATE_FORMAT = "%B %d, %Y"
FONT_FAMILY = "Helvetica"

# Typographic characters the core fonts cannot encode
_LATIN1_FALLBACKS = {
    "\u2018": "'", "\u2019": "'", "\u201c": '"', "\u201d": '"',
    "\u2013": "-", "\u2014": "-", "\u2026": "...",
}


@dataclass(frozen=True)
class CaseDetails:
    """Caregiver-supplied case metadata for the court report."""
    child_name: str = ""
    date_of_birth: str = ""
    diagnosis: str = ""
    purpose: str = ""
    notes: str = ""


@dataclass(frozen=True)
class Line:
    text: str
    size: int = 10
    indent: float = 0.0
    style: str = ""
    gap: float = 0.0


@dataclass(frozen=True)
class Block:
    kind: str
    lines: tuple[Line, ...]
    keep_together: bool = False


def to_latin1(text: str) -> str:
    """Replace characters outside Latin-1 so core fonts can render them."""
    for src, dst in _LATIN1_FALLBACKS.items():
        text = text.replace(src, dst)
    return text.encode("latin-1", "replace").decode("latin-1")


# =============================================================================
# Shared blocks
# =============================================================================


def _severity_breakdown(counts: dict[str, int]) -> str:
    return (
        f"Severity Breakdown: Low: {counts['Low']}, "
        f"Medium: {counts['Medium']}, High: {counts['High']}"
    )


def _most_common(summary: dict) -> str:
    leader = summary["most_common"]
    if leader is None:
        return "Most Common Category: N/A"
    return f"Most Common Category: {leader[0]} ({leader[1]} incidents)"


def _summary_lines(incidents: Sequence[Incident], indent: float) -> list[Line]:
    summary = summarize(incidents)
    if summary["total"] == 0:
        return [Line("No incidents have been recorded (0 incidents).", indent=indent)]
    return [
        Line(_severity_breakdown(summary["severity"]), indent=indent),
        Line(_most_common(summary), indent=indent),
    ]


# =============================================================================
# Timeline report
# =============================================================================


def timeline_blocks(
    incidents: Sequence[Incident],
    generated_at: str | None = None,
    tz: tzinfo | None = None,
) -> list[Block]:
    """Layout for the general timeline report."""
    generated = format_timestamp(generated_at or now_iso(), GENERATED_DATE_FORMAT, tz)
    blocks = [
        Block("title", (Line("ChildFirst - Incident Timeline Report", size=20, style="B", gap=5),)),
        Block("metadata", (
            Line(f"Generated: {generated}", size=12),
            Line(f"Total Incidents: {len(incidents)}", size=12, gap=3),
        )),
        Block("summary", (
            Line("SUMMARY", size=12, style="B"),
            *_summary_lines(incidents, indent=5),
            Line("", gap=4),
        )),
    ]
    for index, incident in enumerate(incidents, start=1):
        lines = [
            Line(f"{index}. {incident.category}", size=14, style="B"),
            Line(f"Date: {format_timestamp(incident.timestamp, ENTRY_DATE_FORMAT, tz)}", indent=5),
            Line(f"Severity: {incident.severity}/5", indent=5),
        ]
        if incident.location:
            lines.append(Line(f"Location: {incident.location}", indent=5))
        if incident.people_involved:
            lines.append(Line(f"People: {', '.join(incident.people_involved)}", indent=5))
        lines.append(Line(incident.transcript, size=9, indent=5, gap=6))
        blocks.append(Block("entry", tuple(lines), keep_together=True))
    return blocks


# =============================================================================
# Court report
# =============================================================================


def court_blocks(
    incidents: Sequence[Incident],
    case: CaseDetails,
    generated_at: str | None = None,
    tz: tzinfo | None = None,
) -> list[Block]:
    """
    Layout for the court documentation report.

    Args:
        incidents: Full store contents, in store order
        case: Case metadata; blank fields render as placeholders
        generated_at: Generation timestamp (default: now)
        tz: Display timezone (default: local zone)
    """
    generated = format_timestamp(generated_at or now_iso(), GENERATED_DATE_FORMAT, tz)
    included = list(incidents[:LEGAL_REPORT_LIMIT])

    blocks = [
        Block("title", (
            Line("COURT DOCUMENTATION REPORT", size=16, style="B"),
            Line("ChildFirst - Neurodivergent Child Support", size=16, gap=6),
        )),
        Block("metadata", (
            Line("CHILD INFORMATION", size=12, style="B"),
            Line(f"Name: {case.child_name or '[Child Name]'}", indent=5),
            Line(f"Date of Birth: {case.date_of_birth or '[Date of Birth]'}", indent=5),
            Line(f"Diagnosis: {case.diagnosis or '[Diagnosis]'}", indent=5),
            Line(f"Report Purpose: {case.purpose or '[Report Purpose]'}", indent=5),
            Line(f"Generated: {generated}", indent=5, gap=6),
        )),
        Block("summary", (
            Line("INCIDENT SUMMARY", size=12, style="B"),
            Line(f"Total Incidents Recorded: {len(incidents)}", indent=5),
            *_summary_lines(incidents, indent=5),
            Line("", gap=6),
        )),
    ]

    if included:
        heading = [Line("DETAILED INCIDENT REPORTS", size=12, style="B")]
        if len(incidents) > len(included):
            heading.append(Line(
                f"Showing the first {len(included)} of {len(incidents)} recorded incidents.",
                size=9, indent=5,
            ))
        heading.append(Line("", gap=4))
        blocks.append(Block("heading", tuple(heading)))

    for index, incident in enumerate(included, start=1):
        lines = [
            Line(f"{index}. {incident.category} - Severity: {incident.severity}/5", size=11, style="B"),
            Line(f"Date: {format_timestamp(incident.timestamp, ENTRY_DATE_FORMAT, tz)}", size=9, indent=5),
        ]
        if has_coordinates(incident.location):
            lines.append(Line("Location: GPS coordinates recorded", size=9, indent=5))
        elif incident.location:
            lines.append(Line(f"Location: {incident.location}", size=9, indent=5))
        if incident.people_involved:
            lines.append(Line(f"People Involved: {', '.join(incident.people_involved)}", size=9, indent=5))
        lines.append(Line("Description:", size=9, indent=5))
        lines.append(Line(incident.transcript, size=9, indent=5, gap=6))
        blocks.append(Block("entry", tuple(lines), keep_together=True))

    if case.notes.strip():
        blocks.append(Block("notes", (
            Line("ADDITIONAL NOTES", size=12, style="B", gap=2),
            Line(case.notes.strip(), indent=5, gap=6),
        ), keep_together=True))

    blocks.append(Block("footer", (
        Line("This report was generated by ChildFirst app for legal documentation purposes.", size=8),
        Line("All data is stored locally on the device for privacy protection.", size=8),
    ), keep_together=True))
    return blocks


# =============================================================================
# Rendering
# =============================================================================


class ReportPDF(FPDF):
    """
    FPDF document that lays out Blocks.

    Attributes:
        entry_pages: Page number on which each incident entry starts
    """

    def __init__(self) -> None:
        super().__init__(orientation="P", unit="mm", format="A4")
        self.set_margins(20, 20, 20)
        self.set_auto_page_break(auto=True, margin=20)
        self.entry_pages: list[int] = []

    @staticmethod
    def line_height(size: int) -> float:
        return size * 0.5

    def _use(self, line: Line) -> float:
        self.set_font(FONT_FAMILY, style=line.style, size=line.size)
        return self.epw - line.indent

    def measure(self, block: Block) -> float:
        """Height of a block in mm at the current page width."""
        height = 0.0
        for line in block.lines:
            if line.text:
                width = self._use(line)
                rows = self.multi_cell(
                    width, self.line_height(line.size), to_latin1(line.text),
                    dry_run=True, output="LINES",
                )
                height += len(rows) * self.line_height(line.size)
            height += line.gap
        return height

    def write_block(self, block: Block) -> None:
        if block.keep_together:
            at_top = self.get_y() <= self.t_margin + 0.01
            if not at_top and self.get_y() + self.measure(block) > self.page_break_trigger:
                self.add_page()
        if block.kind == "entry":
            self.entry_pages.append(self.page_no())
        for line in block.lines:
            width = self._use(line)
            self.set_x(self.l_margin + line.indent)
            if line.text:
                self.multi_cell(
                    width, self.line_height(line.size), to_latin1(line.text),
                    new_x="LMARGIN", new_y="NEXT",
                )
            if line.gap:
                self.ln(line.gap)


def render(blocks: Sequence[Block]) -> ReportPDF:
    pdf = ReportPDF()
    pdf.set_title("ChildFirst Report")
    pdf.set_creator("ChildFirst")
    pdf.add_page()
    for block in blocks:
        pdf.write_block(block)
    return pdf


def timeline_report(
    incidents: Sequence[Incident],
    generated_at: str | None = None,
    tz: tzinfo | None = None,
) -> ReportPDF:
    return render(timeline_blocks(incidents, generated_at, tz))


def court_report(
    incidents: Sequence[Incident],
    case: CaseDetails,
    generated_at: str | None = None,
    tz: tzinfo | None = None,
) -> ReportPDF:
    return render(court_blocks(incidents, case, generated_at, tz))


def to_bytes(pdf: FPDF) -> bytes:
    return bytes(pdf.output())
