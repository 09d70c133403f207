"""
Persisted, non-secret wallet settings (config.json).

Older releases stored the private key inline in this file. The current format
never writes it; wallet.resolver migrates legacy files into the keystore.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path

from pydantic import BaseModel, ValidationError

from config import POLYGON, load_config

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE_TYPE = "proxy"

_CONFIG_FILE = "config.json"
_KEYSTORE_FILE = "keystore.json"


def config_dir() -> Path:
    return load_config().config_dir


def config_path() -> Path:
    return config_dir() / _CONFIG_FILE


def keystore_path() -> Path:
    return config_dir() / _KEYSTORE_FILE


def ensure_private_dir(path: Path) -> None:
    """Create `path` if missing and restrict it to the owner (0700)."""
    path.mkdir(parents=True, exist_ok=True)
    if os.name == "posix":
        os.chmod(path, 0o700)


class Settings(BaseModel):
    private_key: str = ""  # legacy only
    chain_id: int = POLYGON
    signature_type: str = DEFAULT_SIGNATURE_TYPE

    @property
    def has_legacy_key(self) -> bool:
        return bool(self.private_key)

    def to_json(self) -> str:
        data = self.model_dump()
        if not data["private_key"]:
            del data["private_key"]
        return json.dumps(data, indent=2)


class SettingsStore:
    """
    Reads and writes config.json.

    Paths are resolved lazily from Config.config_dir so tests (and users) can
    relocate the whole directory with POLYMARKET_CONFIG_DIR.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path if self._path is not None else config_path()

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Settings | None:
        """Return parsed settings, or None if the file is missing or unreadable."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        try:
            return Settings.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Ignoring unreadable settings file %s: %s", self.path, e.errors()[0]["msg"])
            return None

    def save(self, chain_id: int, signature_type: str) -> Settings:
        """Write non-sensitive settings only. The private key field is always empty."""
        settings = Settings(private_key="", chain_id=chain_id, signature_type=signature_type)
        path = self.path
        ensure_private_dir(path.parent)
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(settings.to_json())
        if os.name == "posix":
            os.chmod(path, 0o600)
        logger.debug("Wrote settings to %s", path)
        return settings

    def delete_all(self) -> None:
        """Remove the whole config directory (settings and keystore)."""
        directory = self.path.parent
        if directory.exists():
            shutil.rmtree(directory)
            logger.info("Removed %s", directory)
