"""
Backup / restore.

Document shape (version 1.0):
    {
      "version": "1.0",
      "exportDate": "<ISO-8601>",
      "incidents": [<incident>, ...],
      "settings": {...}            # opaque to the core
    }

Invariants:
- A document is validated in full (schema, timestamps, unique ids)
  before anything is written; a rejected import leaves store and
  settings untouched
- settings are optional on import and restored only when present
"""

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema

from childfirst.config import Settings, save_settings
from childfirst.errors import ImportFormatError, PersistenceError
from childfirst.incident import Incident
from childfirst.store import IncidentStore
from childfirst.utils import now_iso, parse_timestamp, serialize_json

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
SCHEMA_PATH = Path(__file__).parent.parent / "schemas" / "backup.schema.json"


def load_schema() -> dict:
    with open(SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


def validate_backup(document: Any) -> list[str]:
    """
    Validate a backup document.

    Args:
        document: Parsed JSON value.

    Returns:
        List of validation error messages (empty if valid).
    """
    validator = jsonschema.Draft7Validator(load_schema())
    errors = []
    for error in validator.iter_errors(document):
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        errors.append(f"{path}: {error.message}")
    if errors:
        return errors

    seen: set[str] = set()
    for index, item in enumerate(document["incidents"]):
        try:
            parse_timestamp(item["timestamp"])
        except ValueError:
            errors.append(f"incidents.{index}.timestamp: not an ISO-8601 timestamp")
        if item["id"] in seen:
            errors.append(f"incidents.{index}.id: duplicate id {item['id']!r}")
        seen.add(item["id"])
    return errors


def create_backup(
    store: IncidentStore,
    settings: Settings,
    exported_at: str | None = None,
) -> dict[str, Any]:
    """Snapshot the full store and settings as a backup document."""
    return {
        "version": BACKUP_VERSION,
        "exportDate": exported_at or now_iso(),
        "incidents": [i.to_dict() for i in store.list()],
        "settings": settings.to_dict(),
    }


def write_backup(path: Path, document: dict[str, Any]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_json(document), encoding="utf-8")
    return path


def parse_backup(text: str) -> tuple[list[Incident], dict[str, Any] | None]:
    """
    Parse and validate backup text.

    Returns:
        (incidents, settings or None)

    Raises:
        ImportFormatError: Unparseable JSON or any validation failure.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatError([f"(root): invalid JSON: {exc}"]) from exc

    errors = validate_backup(document)
    if errors:
        raise ImportFormatError(errors)

    incidents = [
        Incident.from_dict({**item, "severity": int(item["severity"])})
        for item in document["incidents"]
    ]
    return incidents, document.get("settings")


def restore_backup(
    text: str,
    store: IncidentStore,
    settings_path: Path | None = None,
) -> int:
    """
    Replace the store (and settings, when included) from a backup.

    Returns:
        Number of incidents imported.

    Raises:
        ImportFormatError: Document rejected; nothing written.
        PersistenceError: Store or settings write failed; prior incidents
            and settings retained.
    """
    incidents, settings = parse_backup(text)
    if settings is None or settings_path is None:
        store.replace_all(incidents)
    else:
        _replace_with_settings(store, incidents, settings_path, Settings.from_dict(settings))
    logger.info("Imported %d incidents from backup", len(incidents))
    return len(incidents)


def reset_all(store: IncidentStore, settings_path: Path) -> None:
    """
    Delete every incident and restore default settings.

    Raises:
        PersistenceError: Nothing is cleared if either write fails.
    """
    _replace_with_settings(store, [], settings_path, Settings())
    logger.info("All data cleared")


def _replace_with_settings(
    store: IncidentStore,
    incidents: list[Incident],
    settings_path: Path,
    settings: Settings,
) -> None:
    # Store first, then settings; a failed settings write puts the old incidents back.
    previous = store.list()
    store.replace_all(incidents)
    try:
        save_settings(settings_path, settings)
    except PersistenceError:
        logger.warning("Settings write failed; restoring %d previous incidents", len(previous))
        store.replace_all(previous)
        raise
