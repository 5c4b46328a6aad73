"""
ChildFirst Utilities - Shared helper functions.

Responsibilities:
- Timezone-aware ISO-8601 timestamps
- Display formatting (dates, elapsed time, byte sizes)
- JSON serialization and atomic file replacement

Invariants:
- Generated timestamps are always timezone-aware (UTC)
- Naive timestamps read back from storage are treated as UTC
"""

import json
import os
import tempfile
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any


def now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """
    Return current time as ISO-8601 with explicit UTC offset.
    
    Returns:
        ISO-8601 formatted string, e.g., "2025-12-23T17:02:10.123456+00:00"
    """
    return now().isoformat()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.
    
    Args:
        value: ISO-8601 string. A trailing "Z" is accepted.
    
    Returns:
        Timezone-aware datetime.
    
    Raises:
        ValueError: If the string is not ISO-8601.
    """
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(
    value: str | datetime,
    fmt: str = "%Y-%m-%d %H:%M:%S",
    tz: tzinfo | None = None,
) -> str:
    """
    Format a timestamp for display.
    
    Args:
        value: ISO-8601 string or aware datetime.
        fmt: strftime pattern.
        tz: Target timezone. None converts to the local system zone.
    
    Returns:
        Formatted string.
    """
    dt = parse_timestamp(value) if isinstance(value, str) else value
    return dt.astimezone(tz).strftime(fmt)


def format_elapsed(seconds: int) -> str:
    """Format a second counter as mm:ss."""
    mins, secs = divmod(max(0, int(seconds)), 60)
    return f"{mins:02d}:{secs:02d}"


def format_bytes(size: int) -> str:
    """
    Human-readable byte size, e.g. "1.5 KB".
    
    Matches the storage-info display: "0 Bytes" for zero, otherwise up to
    two decimals with trailing zeros dropped.
    """
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def serialize_json(data: Any) -> str:
    """
    Serialize data to JSON deterministically.
    
    Args:
        data: JSON-compatible value.
    
    Returns:
        JSON string with 2-space indent, UTF-8 text kept as-is, trailing newline.
    
    Note:
        Keys are NOT sorted: incident and backup documents keep their
        field order so exported files read naturally.
    """
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_text_atomic(path: Path, text: str) -> None:
    """
    Replace path with text in one step.

    The text goes to a temporary file in the same directory, is fsynced,
    and then renamed over the target, so readers see either the old or
    the new contents.

    Raises:
        OSError: On any write failure; the previous file is left as it was.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
