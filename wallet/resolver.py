"""
Key source resolution.

Order, first match wins:
  0. Legacy plaintext key in config.json with no keystore -> migrate now
     (runs before the --private-key flag is even looked at)
  1. --private-key flag
  2. POLYMARKET_PRIVATE_KEY
  3. Legacy plaintext key in config.json (keystore already exists)
  4. Encrypted keystore (password prompt, 3 attempts)
  5. MissingWallet
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from config import load_config
from wallet import password as password_prompt
from wallet.errors import MigrationFailure, MissingWallet
from wallet.keystore import Keystore
from wallet.secret import ScopedSecret
from wallet.settings import SettingsStore
from wallet.signer import LocalSigner

logger = logging.getLogger(__name__)


class KeySource(Enum):
    FLAG = "flag"
    ENV_VAR = "env"
    CONFIG_FILE = "config"
    KEYSTORE = "keystore"
    MIGRATION = "migration"
    NONE = "none"

    @property
    def label(self) -> str:
        return _SOURCE_LABELS[self]


_SOURCE_LABELS = {
    KeySource.FLAG: "--private-key flag",
    KeySource.ENV_VAR: "POLYMARKET_PRIVATE_KEY env var",
    KeySource.CONFIG_FILE: "config file",
    KeySource.KEYSTORE: "encrypted keystore",
    KeySource.MIGRATION: "config file (migrated to encrypted keystore)",
    KeySource.NONE: "not configured",
}


@dataclass(frozen=True)
class Credential:
    secret: str
    source: KeySource

    def __repr__(self) -> str:
        return f"Credential(source={self.source.name})"


def needs_migration(
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> bool:
    """True if config.json still holds a plaintext key and no keystore exists."""
    settings = (settings_store or SettingsStore()).load()
    return settings is not None and settings.has_legacy_key and not (keystore or Keystore()).exists()


def migrate(
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
    password: str | None = None,
) -> str:
    """
    Move the plaintext key from config.json into the encrypted keystore.

    Prompts for a new password (with confirmation) unless one is given.
    Returns the migrated secret.
    """
    settings_store = settings_store or SettingsStore()
    keystore = keystore or Keystore()

    settings = settings_store.load()
    if settings is None:
        raise MigrationFailure("No config file found to migrate")
    if not settings.has_legacy_key:
        raise MigrationFailure("No private key found in config to migrate")

    logger.warning("Plaintext private key found in %s; migrating to encrypted keystore", settings_store.path)
    if password is None:
        password = password_prompt.obtain_new()

    address = keystore.save(settings.private_key, password)
    settings_store.save(settings.chain_id, settings.signature_type)
    logger.info("Migrated wallet %s to %s", address, keystore.path)
    return settings.private_key


def resolve_credential(
    explicit_override: str | None = None,
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> Credential:
    settings_store = settings_store or SettingsStore()
    keystore = keystore or Keystore()

    if needs_migration(settings_store, keystore):
        return Credential(migrate(settings_store, keystore), KeySource.MIGRATION)

    if explicit_override is not None:
        return Credential(explicit_override, KeySource.FLAG)

    env_key = load_config().private_key
    if env_key:
        return Credential(env_key, KeySource.ENV_VAR)

    settings = settings_store.load()
    if settings is not None and settings.has_legacy_key:
        logger.warning("Using plaintext private key from %s", settings_store.path)
        return Credential(settings.private_key, KeySource.CONFIG_FILE)

    if keystore.exists():
        secret = password_prompt.obtain_with_retries(keystore.load)
        return Credential(secret, KeySource.KEYSTORE)

    raise MissingWallet()


def resolve(
    explicit_override: str | None = None,
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> str:
    """Return the authoritative secret for this invocation."""
    return resolve_credential(explicit_override, settings_store, keystore).secret


def describe_source(
    explicit_override: str | None = None,
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> KeySource:
    """Which source resolve() would use, without prompting or migrating."""
    settings_store = settings_store or SettingsStore()
    keystore = keystore or Keystore()

    if needs_migration(settings_store, keystore):
        return KeySource.MIGRATION
    if explicit_override is not None:
        return KeySource.FLAG
    if load_config().private_key:
        return KeySource.ENV_VAR
    settings = settings_store.load()
    if settings is not None and settings.has_legacy_key:
        return KeySource.CONFIG_FILE
    if keystore.exists():
        return KeySource.KEYSTORE
    return KeySource.NONE


def resolve_signer(
    explicit_override: str | None = None,
    chain_id: int | None = None,
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> LocalSigner:
    """Resolve the secret and turn it into a signer. The secret buffer is wiped on exit."""
    if chain_id is None:
        chain_id = load_config().chain_id
    credential = resolve_credential(explicit_override, settings_store, keystore)
    with ScopedSecret(credential.secret) as secret:
        signer = LocalSigner.from_secret(secret.reveal(), chain_id)
    logger.debug("Signer %s loaded from %s", signer.address(), credential.source.label)
    return signer
