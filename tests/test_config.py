"""
ChildFirst Settings and Data Directory Tests
"""

import json

import pytest

from childfirst.config import Settings, load_settings, save_settings
from childfirst.context import DATA_DIR_ENV, AppContext
from childfirst.errors import PersistenceError


class TestSettings:

    def test_defaults_when_missing(self, tmp_path):
        settings = load_settings(tmp_path / "settings.json")
        assert settings == Settings()
        assert settings.voice_recognition is True
        assert settings.gps_tracking is True
        assert settings.recognition_language == "en-AU"
        assert settings.geolocation_timeout == 5.0

    def test_defaults_when_unreadable(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("not json", encoding="utf-8")
        assert load_settings(path) == Settings()

    def test_defaults_when_not_an_object(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_settings(path) == Settings()

    def test_camel_case_keys(self, tmp_path):
        path = tmp_path / "settings.json"
        save_settings(path, Settings(gps_tracking=False, home_location=[-37.8, 144.9]))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["gpsTracking"] is False
        assert data["homeLocation"] == [-37.8, 144.9]
        assert "gps_tracking" not in data

    def test_unknown_keys_preserved(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"voiceRecognition": False, "fontSize": "large"}), encoding="utf-8")
        settings = load_settings(path)
        assert settings.voice_recognition is False
        assert settings.extra == {"fontSize": "large"}

        save_settings(path, settings)
        assert json.loads(path.read_text(encoding="utf-8"))["fontSize"] == "large"

    def test_save_failure_raises_persistence_error(self, tmp_path):
        path = tmp_path / "settings.json"
        path.mkdir()
        with pytest.raises(PersistenceError) as exc_info:
            save_settings(path, Settings())
        assert exc_info.value.path == str(path)
        assert path.is_dir()
        assert list(tmp_path.glob("*.tmp")) == []


class TestAppContext:

    def test_layout(self, tmp_path):
        ctx = AppContext.for_directory(tmp_path / "data").ensure()
        assert ctx.incidents_path == ctx.data_dir / "incidents.json"
        assert ctx.settings_path == ctx.data_dir / "settings.json"
        assert ctx.exports_dir.is_dir()

    def test_environment_default(self, tmp_path, monkeypatch):
        monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path / "home"))
        ctx = AppContext.for_directory()
        assert ctx.data_dir == (tmp_path / "home").resolve()
