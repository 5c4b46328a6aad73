"""
ChildFirst AppContext - Local data directory layout.

Responsibilities:
- Hold every path the application reads or writes
- Create the directory structure on first use

Layout:
    <data_dir>/
      incidents.json
      settings.json
      exports/
"""

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = "./childfirst_data"
DATA_DIR_ENV = "CHILDFIRST_HOME"


def default_data_dir() -> Path:
    return Path(os.environ.get(DATA_DIR_ENV) or DEFAULT_DATA_DIR)


@dataclass(frozen=True)
class AppContext:
    """Paths for one data directory."""

    data_dir: Path
    incidents_path: Path
    settings_path: Path
    exports_dir: Path

    @classmethod
    def for_directory(cls, data_dir: Path | str | None = None) -> "AppContext":
        root = Path(data_dir) if data_dir is not None else default_data_dir()
        root = root.resolve()
        return cls(
            data_dir=root,
            incidents_path=root / "incidents.json",
            settings_path=root / "settings.json",
            exports_dir=root / "exports",
        )

    def ensure(self) -> "AppContext":
        """Create the data directory and exports/ if missing."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.exports_dir.mkdir(exist_ok=True)
        return self
