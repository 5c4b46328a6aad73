"""
ChildFirst Persistent Incident Store.

Responsibilities:
- Key-indexed durable storage of incident records on the local device
- All-or-nothing writes: a failed write leaves the prior state intact

Implementations:
    - JsonFileStore: one JSON array file, replaced atomically per write
    - MemoryStore: process-local list, for tests and previews

Invariants:
- list() returns storage order (insertion order), not sorted
- ids are unique across the whole store
- Every operation is synchronous and atomic per call
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from childfirst.errors import PersistenceError
from childfirst.incident import Incident
from childfirst.utils import serialize_json, write_text_atomic

logger = logging.getLogger(__name__)


def _check_unique(incidents: list[Incident]) -> None:
    seen: set[str] = set()
    for incident in incidents:
        if incident.id in seen:
            raise PersistenceError(f"Duplicate incident id: {incident.id}")
        seen.add(incident.id)


# =============================================================================
# IncidentStore - Abstract Base Class
# =============================================================================


class IncidentStore(ABC):
    """
    Storage contract for the incident collection.

    Subclasses implement _load() and _save(); the collection-level
    operations are shared so every medium enforces the same invariants.
    """

    @abstractmethod
    def _load(self) -> list[Incident]:
        ...

    @abstractmethod
    def _save(self, incidents: list[Incident]) -> None:
        """
        Persist the full collection atomically.

        Raises:
            PersistenceError: On failure; prior state must be retained.
        """
        ...

    def list(self) -> list[Incident]:
        """All incidents in storage order."""
        return self._load()

    def get(self, incident_id: str) -> Incident | None:
        for incident in self._load():
            if incident.id == incident_id:
                return incident
        return None

    def append(self, incident: Incident) -> None:
        incidents = self._load()
        incidents.append(incident)
        _check_unique(incidents)
        self._save(incidents)
        logger.info("Stored incident %s", incident.id)

    def remove(self, incident_id: str) -> bool:
        """
        Delete one incident.

        Returns:
            False if no incident has this id.
        """
        incidents = self._load()
        kept = [i for i in incidents if i.id != incident_id]
        if len(kept) == len(incidents):
            return False
        self._save(kept)
        logger.info("Deleted incident %s", incident_id)
        return True

    def replace_all(self, incidents: Iterable[Incident]) -> None:
        """Overwrite the whole collection (import/restore)."""
        replacement = list(incidents)
        _check_unique(replacement)
        self._save(replacement)
        logger.info("Replaced store contents with %d incidents", len(replacement))

    def clear(self) -> None:
        """Bulk-delete every incident."""
        self._save([])
        logger.info("Cleared all incidents")

    def size_bytes(self) -> int:
        """Size of the serialized collection in bytes."""
        payload = [i.to_dict() for i in self._load()]
        return len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))

    def __len__(self) -> int:
        return len(self._load())


# =============================================================================
# Implementations
# =============================================================================


class MemoryStore(IncidentStore):
    """In-memory store."""

    def __init__(self, incidents: Iterable[Incident] = ()):
        self._incidents = list(incidents)

    def _load(self) -> list[Incident]:
        return list(self._incidents)

    def _save(self, incidents: list[Incident]) -> None:
        self._incidents = list(incidents)


class JsonFileStore(IncidentStore):
    """
    Store backed by a single JSON array file.

    Writes go to a temporary file in the same directory which then
    replaces the target with os.replace(), so readers only ever see the
    old or the new collection.

    Args:
        path: Location of the incidents file (created on first write)
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> list[Incident]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("incident file must hold a JSON array")
            return [Incident.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to read %s: %s", self.path, exc)
            raise PersistenceError(f"Cannot read incidents: {exc}", str(self.path)) from exc

    def _save(self, incidents: list[Incident]) -> None:
        # Serialize fully before touching the disk
        try:
            payload = serialize_json([i.to_dict() for i in incidents])
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Cannot serialize incidents: {exc}", str(self.path)) from exc

        try:
            write_text_atomic(self.path, payload)
        except OSError as exc:
            logger.error("Failed to write %s: %s", self.path, exc)
            raise PersistenceError(f"Cannot write incidents: {exc}", str(self.path)) from exc
