"""
ChildFirst - Incident Capture & Documentation Engine

Capture spoken incident reports for a neurodivergent child, store them on
the local device, and query/export them for review or legal use.

Data flow (fixed):
    A. Recording Session Controller + Transcript Assembler
    B. Incident Builder
    C. Persistent Incident Store
    D. Query / Filter / Sort
    E. Report Exporters (CSV, PDF, backup)

Invariants:
    - One active recording session per application instance
    - Incidents are immutable once saved (delete or full replace only)
    - Severity is an integer in [1, 5]
    - Nothing leaves the device; no server component
"""

__version__ = "1.0.0"

PRODUCT_NAME = "childfirst"
