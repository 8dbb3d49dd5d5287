import os
import sys
import unittest

import keyring
import pytest
import yaml

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import Database, SettingsRepository
from settings_schema import validate_settings


class DummyKeyring(keyring.backend.KeyringBackend):
    priority = 1

    def __init__(self):
        self.store = {}

    def get_password(self, service, username):
        return self.store.get((service, username))

    def set_password(self, service, username, password):
        self.store[(service, username)] = password

    def delete_password(self, service, username):
        self.store.pop((service, username), None)


class SettingsEncryptionTest(unittest.TestCase):
    def setUp(self) -> None:
        keyring.set_keyring(DummyKeyring())
        os.environ["ENCRYPT_SETTINGS"] = "1"
        self.path = "enc_settings.yaml"
        if os.path.exists(self.path):
            os.remove(self.path)

    def tearDown(self) -> None:
        if os.path.exists(self.path):
            os.remove(self.path)
        os.environ.pop("ENCRYPT_SETTINGS", None)

    def test_encrypt_and_load(self) -> None:
        cfg = YamlConfig(self.path)
        cfg.save({"remote_api_token": "secret", "unit_system": "metric"})
        with open(self.path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
        self.assertIs(raw["remote_api_token"], True)
        data = cfg.load()
        self.assertEqual(data["remote_api_token"], "secret")
        self.assertEqual(data["unit_system"], "metric")

    def test_missing_secret_is_dropped(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"remote_api_token": True, "unit_system": "metric"}, f)
        data = YamlConfig(self.path, service="other-service").load()
        self.assertNotIn("remote_api_token", data)


def test_plain_yaml_round_trip(tmp_path, monkeypatch):
    monkeypatch.delenv("ENCRYPT_SETTINGS", raising=False)
    cfg = YamlConfig(str(tmp_path / "plain.yaml"))
    assert not cfg.exists()
    assert cfg.load() == {}
    cfg.save({"remote_api_token": "visible", "weekly_workout_target": 4})
    assert cfg.load() == {"remote_api_token": "visible", "weekly_workout_target": 4}


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- metric\n- imperial\n", encoding="utf-8")
    with pytest.raises(ValueError):
        YamlConfig(str(path)).load()


class SettingsRepositoryTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_settings.db"
        self.yaml_path = "test_settings.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.db = Database(self.db_path)
        self.settings = SettingsRepository(self.db, self.yaml_path)

    def tearDown(self) -> None:
        self.db.close()
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_defaults(self) -> None:
        self.assertEqual(self.settings.get_text("unit_system", ""), "metric")
        self.assertEqual(self.settings.get_int("weekly_workout_target", 0), 3)
        self.assertFalse(self.settings.get_bool("has_launched_before", True))
        self.assertEqual(self.settings.get_text("missing", "fallback"), "fallback")

    def test_values_written_to_yaml(self) -> None:
        self.settings.set_text("unit_system", "imperial")
        self.settings.set_int("weekly_workout_target", 5)
        self.settings.set_bool("has_launched_before", True)
        with open(self.yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        self.assertEqual(data["unit_system"], "imperial")
        self.assertEqual(data["weekly_workout_target"], 5.0)
        self.assertIs(data["has_launched_before"], True)

    def test_yaml_edits_are_picked_up(self) -> None:
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"unit_system": "imperial", "weekly_workout_target": 4}, f)
        self.assertEqual(self.settings.get_text("unit_system", ""), "imperial")
        self.assertEqual(self.settings.get_int("weekly_workout_target", 0), 4)
        self.assertEqual(self.settings.all_settings()["weekly_workout_target"], 4.0)

    def test_reading_does_not_commit_pending_writes(self) -> None:
        self.settings.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?);", ("scratch", "1")
        )
        self.assertTrue(self.db.has_changes())
        self.assertEqual(self.settings.get_text("unit_system", ""), "metric")
        self.assertEqual(self.settings.get_int("weekly_workout_target", 0), 3)
        self.assertTrue(self.db.has_changes())
        self.db.rollback()
        self.assertEqual(self.settings.get_text("scratch", "missing"), "missing")

    def test_invalid_yaml_rejected(self) -> None:
        with open(self.yaml_path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"unit_system": "stone"}, f)
        with self.assertRaises(ValueError):
            SettingsRepository(self.db, self.yaml_path)


def test_validate_settings():
    validate_settings({"unit_system": "imperial", "weekly_workout_target": 4})
    with pytest.raises(ValueError):
        validate_settings({"weekly_workout_target": "often"})


if __name__ == "__main__":
    unittest.main()
