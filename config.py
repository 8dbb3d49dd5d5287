import logging
import os
from typing import Any

import keyring
import yaml

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
DEFAULT_DB_PATH = "workout.db"
DEFAULT_YAML_PATH = "settings.yaml"
KEYRING_SERVICE = "workout-tracker"


def default_db_path() -> str:
    """Database file, overridable through ``WORKOUT_DB``."""
    return os.environ.get("WORKOUT_DB", DEFAULT_DB_PATH)


def encryption_enabled() -> bool:
    return os.environ.get("ENCRYPT_SETTINGS") == "1"


class YamlConfig:
    """YAML mirror of the settings table.

    With ``ENCRYPT_SETTINGS=1`` the values of :attr:`SENSITIVE_KEYS` are kept
    in the OS keyring and the file only records that a secret is stored.
    """

    SENSITIVE_KEYS = frozenset({"remote_api_token"})
    STORED_MARKER = True

    def __init__(self, path: str = DEFAULT_YAML_PATH, service: str = KEYRING_SERVICE) -> None:
        self.path = path
        self.service = service
        self.encrypt = encryption_enabled()

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def _read(self) -> dict[str, Any]:
        if not self.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def _reveal(self, data: dict[str, Any]) -> dict[str, Any]:
        for key in data.keys() & self.SENSITIVE_KEYS:
            secret = keyring.get_password(self.service, key)
            if secret is None:
                logger.warning("No keyring entry for %s; dropping it", key)
                del data[key]
            else:
                data[key] = secret
        return data

    def _conceal(self, data: dict[str, Any]) -> dict[str, Any]:
        for key in data.keys() & self.SENSITIVE_KEYS:
            keyring.set_password(self.service, key, str(data[key]))
            data[key] = self.STORED_MARKER
        return data

    def load(self) -> dict[str, Any]:
        data = self._read()
        return self._reveal(data) if self.encrypt else data

    def save(self, data: dict[str, Any]) -> None:
        out = dict(data)
        if self.encrypt:
            out = self._conceal(out)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f, sort_keys=True)
