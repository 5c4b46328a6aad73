"""
ChildFirst Incident Builder.

Binds a finished session's transcript and the caregiver's metadata into
an Incident and persists it.

Rules:
    - Transcript (trimmed) must be non-empty
    - Category (trimmed) must be non-empty
    - Severity must be an integer in [1, 5]
    - A session still recording or paused cannot be saved
    - On any failure nothing is persisted and the session is untouched
"""

import logging
import uuid
from typing import Callable, Iterable

from childfirst.errors import ValidationError
from childfirst.incident import (
    DEFAULT_SEVERITY,
    MAX_SEVERITY,
    MIN_SEVERITY,
    Incident,
    is_valid_severity,
    unique_people,
)
from childfirst.session import RecordingSession, SessionController, SessionStatus
from childfirst.store import IncidentStore
from childfirst.utils import now_iso

logger = logging.getLogger(__name__)


def new_incident_id() -> str:
    return str(uuid.uuid4())


def build_incident(
    session: RecordingSession,
    category: str,
    severity: int = DEFAULT_SEVERITY,
    people_involved: Iterable[str] = (),
    incident_id: str | None = None,
    timestamp: str | None = None,
) -> Incident:
    """
    Construct an Incident from a session snapshot.

    Args:
        session: Snapshot from SessionController.session
        category: Vocabulary value or custom label
        severity: Integer in [1, 5]
        people_involved: Selection; duplicates are dropped
        incident_id: Explicit id (default: fresh UUID4)
        timestamp: Fallback timestamp when the session never captured
            (manual entry); default: now

    Returns:
        The new Incident (not yet persisted).

    Raises:
        ValidationError: Listing every offending field.
    """
    fields: list[str] = []
    problems: list[str] = []

    if session.status in (SessionStatus.RECORDING, SessionStatus.PAUSED):
        fields.append("status")
        problems.append("stop the recording before saving")
    transcript = session.pending_transcript.strip()
    if not transcript:
        fields.append("transcript")
        problems.append("add a transcript")
    label = (category or "").strip()
    if not label:
        fields.append("category")
        problems.append("select a category")
    if not is_valid_severity(severity):
        fields.append("severity")
        problems.append(f"severity must be an integer from {MIN_SEVERITY} to {MAX_SEVERITY}")

    if fields:
        raise ValidationError(fields, "Missing information: " + "; ".join(problems))

    return Incident(
        id=incident_id or new_incident_id(),
        timestamp=session.captured_timestamp or timestamp or now_iso(),
        category=label,
        severity=severity,
        transcript=transcript,
        people_involved=unique_people(people_involved),
        location=session.captured_location,
    )


class IncidentBuilder:
    """
    Save path from a stopped (or manual-entry) session to the store.

    Args:
        store: Destination store
        id_factory: Produces unique incident ids
        clock: Returns the current ISO-8601 timestamp
    """

    def __init__(
        self,
        store: IncidentStore,
        id_factory: Callable[[], str] = new_incident_id,
        clock: Callable[[], str] = now_iso,
    ):
        self.store = store
        self.id_factory = id_factory
        self.clock = clock

    def save(
        self,
        controller: SessionController,
        category: str,
        severity: int = DEFAULT_SEVERITY,
        people_involved: Iterable[str] = (),
    ) -> Incident:
        """
        Validate, persist, then clear the session back to Idle.

        Raises:
            ValidationError: Session stays as it was for correction.
            PersistenceError: Store unchanged, session kept for retry.
        """
        incident = build_incident(
            controller.session,
            category,
            severity,
            people_involved,
            incident_id=self.id_factory(),
            timestamp=self.clock(),
        )
        self.store.append(incident)
        controller.reset()
        logger.info("Saved incident %s (%s, severity %d)", incident.id, incident.category, incident.severity)
        return incident
