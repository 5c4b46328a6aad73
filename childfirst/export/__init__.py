"""
ChildFirst Report Exporters

Stateless formatters over an incident sequence:
    tabular   - CSV timeline data
    document  - paginated PDF (timeline report, court report)
    backup    - full-store JSON backup and validated restore
"""

from childfirst import PRODUCT_NAME
from childfirst.utils import format_timestamp, now


def timeline_csv_filename() -> str:
    return f"{PRODUCT_NAME}-timeline-data.csv"


def timeline_pdf_filename() -> str:
    return f"{PRODUCT_NAME}-timeline-report.pdf"


def court_report_filename(generated_at: str | None = None) -> str:
    return f"{PRODUCT_NAME}-court-report-{format_timestamp(generated_at or now(), '%Y-%m-%d')}.pdf"


def backup_filename(generated_at: str | None = None) -> str:
    return f"{PRODUCT_NAME}-backup-{format_timestamp(generated_at or now(), '%Y-%m-%d')}.json"
