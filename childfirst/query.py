"""
ChildFirst Query / Filter / Sort Engine.

Pure projections over an incident sequence. Nothing here touches the
store; callers pass store.list() in and get a new list back.

Filters (conjunctive):
    - search term: case-insensitive substring of transcript OR category
    - category: "all" or exact match
    - severity band: "all" or inclusive [low, high]

Sort: "newest" (descending timestamp) or "oldest" (ascending), stable
with respect to the input order.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Sequence

from childfirst.incident import MAX_SEVERITY, MIN_SEVERITY, Incident
from childfirst.utils import now, parse_timestamp

ALL = "all"
NEWEST = "newest"
OLDEST = "oldest"
SORT_ORDERS = (NEWEST, OLDEST)


# =============================================================================
# Severity Bands
# =============================================================================


@dataclass(frozen=True)
class SeverityBand:
    """Inclusive severity range."""
    low: int
    high: int

    def __post_init__(self) -> None:
        if not (MIN_SEVERITY <= self.low <= self.high <= MAX_SEVERITY):
            raise ValueError(f"Invalid severity band: {self.low}-{self.high}")

    def __contains__(self, severity: int) -> bool:
        return self.low <= severity <= self.high

    def __str__(self) -> str:
        return f"{self.low}-{self.high}"

    @classmethod
    def parse(cls, value: "str | SeverityBand | None") -> "SeverityBand | None":
        """
        Parse "all", "4-5" or "3" into a band (None means all).

        Raises:
            ValueError: If the value is not a valid band.
        """
        if value is None or isinstance(value, SeverityBand):
            return value
        text = value.strip().lower()
        if text == ALL:
            return None
        low, sep, high = text.partition("-")
        try:
            return cls(int(low), int(high) if sep else int(low))
        except ValueError as exc:
            raise ValueError(f"Invalid severity band: {value!r}") from exc


LOW = SeverityBand(1, 2)
MEDIUM = SeverityBand(3, 3)
HIGH = SeverityBand(4, 5)


def severity_label(severity: int) -> str:
    """Low (<=2), Medium (3) or High (>=4)."""
    if severity <= LOW.high:
        return "Low"
    if severity <= MEDIUM.high:
        return "Medium"
    return "High"


def impact_label(severity: int) -> str:
    """Long form used in listings, e.g. "High Impact"."""
    label = severity_label(severity)
    return "Moderate Impact" if label == "Medium" else f"{label} Impact"


# =============================================================================
# View
# =============================================================================


def _matches_search(incident: Incident, term: str) -> bool:
    return term in incident.transcript.lower() or term in incident.category.lower()


def view(
    incidents: Sequence[Incident],
    search_term: str = "",
    category_filter: str = ALL,
    severity_band: "str | SeverityBand | None" = ALL,
    sort_order: str = NEWEST,
) -> list[Incident]:
    """
    Filtered, ordered view over an incident sequence.

    Args:
        incidents: Base set, in store order
        search_term: Case-insensitive substring, matched as given (whitespace
            included); "" matches all
        category_filter: "all" or an exact category
        severity_band: "all", a "low-high" string, or a SeverityBand
        sort_order: "newest" or "oldest"

    Returns:
        New list; the input is never modified.

    Raises:
        ValueError: Unknown sort order or malformed severity band.
    """
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {sort_order!r}")
    band = SeverityBand.parse(severity_band)
    term = (search_term or "").lower()

    selected = [
        incident
        for incident in incidents
        if (not term or _matches_search(incident, term))
        and (category_filter == ALL or incident.category == category_filter)
        and (band is None or incident.severity in band)
    ]
    # sorted() stays stable with reverse=True
    return sorted(
        selected,
        key=lambda i: parse_timestamp(i.timestamp),
        reverse=sort_order == NEWEST,
    )


# =============================================================================
# Summaries
# =============================================================================


def most_common_category(incidents: Sequence[Incident]) -> tuple[str, int] | None:
    """Most frequent category and its count; ties go to the first encountered."""
    counts = Counter(i.category for i in incidents)
    if not counts:
        return None
    # Counter keeps first-insertion order and max() returns the first maximum
    return max(counts.items(), key=lambda item: item[1])


def summarize(incidents: Sequence[Incident]) -> dict[str, Any]:
    """
    Severity breakdown and category leader for report summaries.

    Returns:
        {"total", "severity": {"Low", "Medium", "High"}, "most_common"}
        where most_common is (category, count) or None.
    """
    severity = {"Low": 0, "Medium": 0, "High": 0}
    for incident in incidents:
        severity[severity_label(incident.severity)] += 1
    return {
        "total": len(incidents),
        "severity": severity,
        "most_common": most_common_category(incidents),
    }


def dashboard_stats(
    incidents: Sequence[Incident],
    current: datetime | None = None,
    recent_limit: int = 5,
) -> dict[str, Any]:
    """
    Headline numbers for the dashboard.

    Args:
        incidents: Full store contents
        current: Reference instant (default: now)
        recent_limit: Number of most recent incidents to include

    Returns:
        {"total", "this_week", "avg_severity", "most_common_category", "recent"}
    """
    current = current or now()
    week_ago = current - timedelta(days=7)
    this_week = sum(1 for i in incidents if parse_timestamp(i.timestamp) >= week_ago)
    avg = sum(i.severity for i in incidents) / len(incidents) if incidents else 0
    leader = most_common_category(incidents)
    return {
        "total": len(incidents),
        "this_week": this_week,
        "avg_severity": round(avg, 1),
        "most_common_category": leader[0] if leader else "",
        "recent": view(incidents, sort_order=NEWEST)[:recent_limit],
    }
