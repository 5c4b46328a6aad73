"""
ChildFirst Settings.

Responsibilities:
- Load/save settings.json (camelCase keys, shared with backups)
- Expose the capture flags and tuning values the core consumes

Invariants:
- Keys the core does not know are preserved verbatim
- A missing or unreadable settings file yields defaults, never an error
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from childfirst.errors import PersistenceError
from childfirst.utils import serialize_json, write_text_atomic

logger = logging.getLogger(__name__)

# camelCase key -> (attribute, default)
_FIELDS: dict[str, tuple[str, Any]] = {
    "autoBackup": ("auto_backup", True),
    "notifications": ("notifications", True),
    "darkMode": ("dark_mode", False),
    "voiceRecognition": ("voice_recognition", True),
    "gpsTracking": ("gps_tracking", True),
    "dataRetention": ("data_retention", "12"),
    "recognitionLanguage": ("recognition_language", "en-AU"),
    "geolocationTimeout": ("geolocation_timeout", 5.0),
    "homeLocation": ("home_location", None),
    "recognitionChunkSeconds": ("recognition_chunk_seconds", 6.0),
    "inputDevice": ("input_device", None),
}


@dataclass
class Settings:
    """
    Caregiver preferences.

    Only voice_recognition, gps_tracking and the capture tuning values
    affect the core; the rest are carried for the settings screen and
    for backups.
    """
    auto_backup: bool = True
    notifications: bool = True
    dark_mode: bool = False
    voice_recognition: bool = True
    gps_tracking: bool = True
    data_retention: str = "12"
    recognition_language: str = "en-AU"
    geolocation_timeout: float = 5.0
    home_location: list[float] | None = None
    recognition_chunk_seconds: float = 6.0
    input_device: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {key: getattr(self, attr) for key, (attr, _) in _FIELDS.items()}
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        known = {attr: data[key] for key, (attr, _) in _FIELDS.items() if key in data}
        extra = {k: v for k, v in data.items() if k not in _FIELDS}
        return cls(**known, extra=extra)


def load_settings(path: Path) -> Settings:
    """Read settings, falling back to defaults."""
    path = Path(path)
    if not path.exists():
        return Settings()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings file must hold a JSON object")
        return Settings.from_dict(data)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return Settings()


def save_settings(path: Path, settings: Settings) -> None:
    """
    Write settings.json atomically.

    Raises:
        PersistenceError: The file could not be written; the previous
            settings file is left as it was.
    """
    path = Path(path)
    try:
        write_text_atomic(path, serialize_json(settings.to_dict()))
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
        raise PersistenceError(f"Cannot write settings: {exc}", str(path)) from exc
