import os
import json

import pytest

from tdsgrid.core.settings import TdsGridSettings, DEFAULT_SETTINGS, settings


class TestSettingsFile(object):
    def test_defaults(self):
        s = TdsGridSettings()
        for key in ["HTTP_TIMEOUT", "N_THREADS", "MULTITHREADING", "END_TIME_MIDNIGHT_CORRECTION"]:
            assert key in s
        assert s.defaults is DEFAULT_SETTINGS

    def test_missing_key_is_none(self):
        s = TdsGridSettings()
        assert s["NOT_A_SETTING"] is None

    def test_save_and_load(self, tmp_path):
        s = TdsGridSettings()
        s["HTTP_TIMEOUT"] = 5
        s["key"] = "value"
        s.save(str(tmp_path / "settings.json"))

        with open(str(tmp_path / "settings.json")) as f:
            saved = json.load(f)
        assert saved["HTTP_TIMEOUT"] == 5

        new_settings = TdsGridSettings()
        new_settings.load(path=str(tmp_path))
        assert new_settings["HTTP_TIMEOUT"] == 5
        assert new_settings["key"] == "value"
        assert new_settings.settings_path == str(tmp_path / "settings.json")

    def test_load_invalid_path(self, tmp_path):
        s = TdsGridSettings()
        with pytest.raises(ValueError):
            s.load(path=str(tmp_path / "missing"))

    def test_load_none_values(self, tmp_path):
        with open(str(tmp_path / "settings.json"), "w") as f:
            json.dump({"HTTP_TIMEOUT": None, "ROOT_PATH": None}, f)

        s = TdsGridSettings()
        s.load(path=str(tmp_path))
        assert s["HTTP_TIMEOUT"] == DEFAULT_SETTINGS["HTTP_TIMEOUT"]
        assert s["ROOT_PATH"] == DEFAULT_SETTINGS["ROOT_PATH"]

    def test_reset(self):
        s = TdsGridSettings()
        s["N_THREADS"] = 1
        s["extra"] = True
        s.reset()
        assert s["N_THREADS"] == DEFAULT_SETTINGS["N_THREADS"]
        assert "extra" not in s

    def test_context_manager(self):
        original = settings["HTTP_TIMEOUT"]
        with settings:
            settings["HTTP_TIMEOUT"] = original + 1
            settings["temporary_key"] = 1
            assert settings["HTTP_TIMEOUT"] == original + 1
        assert settings["HTTP_TIMEOUT"] == original
        assert "temporary_key" not in settings
