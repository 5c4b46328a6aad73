"""
ChildFirst Incident Record.

Responsibilities:
- The immutable Incident record and its wire shape
- Fixed vocabularies (categories, people) and severity bounds
- Location formatting and sentinels

Invariants:
- Frozen once created; replaced only by full overwrite or deletion
- severity in [MIN_SEVERITY, MAX_SEVERITY]
- peopleInvolved carries no duplicates
- Wire keys are camelCase (id, timestamp, category, severity, location,
  transcript, peopleInvolved) so stored files and backups share one shape
"""

from dataclasses import dataclass, field
from typing import Any, Iterable


# =============================================================================
# Vocabularies (FIXED)
# =============================================================================

CATEGORIES = (
    "Meltdown",
    "School Refusal",
    "Family Conflict",
    "Sensory Overload",
    "Anxiety Episode",
    "Positive Behavior",
    "Breakthrough Moment",
    "Therapy Session",
    "Medical Appointment",
    "Other",
)

COMMON_PEOPLE = (
    "Child",
    "Parent/Guardian",
    "Sibling",
    "Teacher",
    "Therapist",
    "Doctor",
    "Friend",
    "Extended Family",
    "Other Adult",
)

MIN_SEVERITY = 1
MAX_SEVERITY = 5
DEFAULT_SEVERITY = 3

# Location sentinels
LOCATION_NOT_AVAILABLE = "Location not available"
LOCATION_DENIED = "Location access denied"
LOCATION_SENTINELS = frozenset({LOCATION_NOT_AVAILABLE, LOCATION_DENIED})


def format_location(latitude: float, longitude: float) -> str:
    """Format coordinates as "lat, lon" with 6 decimal places."""
    return f"{latitude:.6f}, {longitude:.6f}"


def has_coordinates(location: str | None) -> bool:
    """True when the location holds a captured position, not a sentinel."""
    return bool(location) and location not in LOCATION_SENTINELS


def is_valid_severity(value: Any) -> bool:
    """Integer (not bool) within the severity bounds."""
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and MIN_SEVERITY <= value <= MAX_SEVERITY
    )


def unique_people(people: Iterable[str]) -> tuple[str, ...]:
    """
    Normalize a people selection.
    
    Strips whitespace, drops blanks and removes duplicates while keeping
    the first occurrence's position.
    """
    seen: list[str] = []
    for person in people:
        name = person.strip()
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


# =============================================================================
# Incident
# =============================================================================


@dataclass(frozen=True)
class Incident:
    """
    One persisted record of a documented event.
    
    Attributes:
        id: Opaque unique identifier, stable for the record's lifetime
        timestamp: Capture start instant, timezone-aware ISO-8601
        category: Vocabulary value or caregiver-entered custom label
        severity: Integer in [1, 5]
        transcript: Assembled (and possibly edited) narration
        people_involved: Ordered, duplicate-free selection
        location: "lat, lon", a sentinel, or None when capture was skipped
    """

    id: str
    timestamp: str
    category: str
    severity: int
    transcript: str
    people_involved: tuple[str, ...] = field(default_factory=tuple)
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored/exported wire shape."""
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "category": self.category,
            "severity": self.severity,
        }
        if self.location is not None:
            data["location"] = self.location
        data["transcript"] = self.transcript
        data["peopleInvolved"] = list(self.people_involved)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Incident":
        """
        Deserialize from the wire shape.
        
        Raises:
            KeyError: If a required field is missing.
        """
        return cls(
            id=str(data["id"]),
            timestamp=data["timestamp"],
            category=data["category"],
            severity=data["severity"],
            transcript=data["transcript"],
            people_involved=tuple(data.get("peopleInvolved") or ()),
            location=data.get("location") or None,
        )
