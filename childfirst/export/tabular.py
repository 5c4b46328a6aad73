"""
Tabular (CSV) exporter.

Format:
    - UTF-8, comma delimiter, "\n" row terminator
    - Header: Date, Category, Severity, Location, People Involved, Transcript
    - Date as "YYYY-MM-DD HH:MM:SS"
    - People joined with "; "
    - Standard minimal quoting: a field is quoted only when it holds a
      comma, quote or line break; embedded quotes are doubled
"""

import csv
import io
from datetime import tzinfo
from pathlib import Path
from typing import Sequence

from childfirst.incident import Incident
from childfirst.utils import format_timestamp

HEADER = ["Date", "Category", "Severity", "Location", "People Involved", "Transcript"]
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def incident_row(incident: Incident, tz: tzinfo | None = None) -> list[str]:
    return [
        format_timestamp(incident.timestamp, DATE_FORMAT, tz),
        incident.category,
        str(incident.severity),
        incident.location or "",
        "; ".join(incident.people_involved),
        incident.transcript,
    ]


def export_csv(incidents: Sequence[Incident], tz: tzinfo | None = None) -> str:
    """
    Render incidents as CSV text.

    Args:
        incidents: Rows in the order given (usually a filtered view)
        tz: Timezone for the Date column (default: local zone)

    Returns:
        CSV text; header only for an empty sequence. No trailing newline
        after the last row.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n", quoting=csv.QUOTE_MINIMAL)
    writer.writerow(HEADER)
    for incident in incidents:
        writer.writerow(incident_row(incident, tz))
    return buffer.getvalue().removesuffix("\n")


def write_csv(path: Path, incidents: Sequence[Incident], tz: tzinfo | None = None) -> Path:
    """Write the CSV export to path, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_csv(incidents, tz), encoding="utf-8", newline="")
    return path
