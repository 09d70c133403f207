"""
Encrypted keystore (Web3 Secret Storage / V3 JSON) at <config dir>/keystore.json.

Encryption and the MAC check are delegated to eth_account. This module owns
file placement, permissions, atomic writes and error classification.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from eth_account import Account
from eth_utils import to_checksum_address

from wallet.errors import InvalidSecret, KeystoreCorrupt, KeystoreWriteError, WrongPassword
from wallet.settings import ensure_private_dir, keystore_path
from wallet.signer import address_from_secret, normalize_secret

logger = logging.getLogger(__name__)

# eth_keyfile raises ValueError("MAC mismatch") when the password is wrong
_MAC_MISMATCH = "mac mismatch"


class Keystore:
    """Password-protected private key on disk. One per config directory."""

    def __init__(
        self,
        path: Path | None = None,
        kdf: str | None = None,
        iterations: int | None = None,
    ) -> None:
        self._path = path
        # None -> eth_account defaults (scrypt, n=2**18)
        self._kdf = kdf
        self._iterations = iterations

    @property
    def path(self) -> Path:
        return self._path if self._path is not None else keystore_path()

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, secret: str, password: str) -> str:
        """
        Encrypt `secret` under `password` and atomically replace the keystore.

        The JSON is written to a temp file next to the target, fsynced,
        chmod'ed 0600, then renamed into place, so keystore.json is either
        the old file or the complete new one.

        Returns:
            Checksum address of the stored key.
        """
        address = address_from_secret(secret)
        key = normalize_secret(secret)

        path = self.path
        try:
            ensure_private_dir(path.parent)
        except OSError as e:
            raise KeystoreWriteError(f"Failed to create config directory: {e}") from e

        try:
            keyfile = Account.encrypt(key, password, kdf=self._kdf, iterations=self._iterations)
        except (ValueError, TypeError) as e:
            raise InvalidSecret(f"Failed to encrypt keystore: {e}") from e

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".keystore-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(keyfile, f)
                f.flush()
                os.fsync(f.fileno())
            if os.name == "posix":
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise KeystoreWriteError(f"Failed to write keystore: {e}") from e

        logger.info("Keystore saved for %s", address)
        return address

    def load(self, password: str) -> str:
        """
        Decrypt the keystore and return the key as 0x-prefixed lowercase hex.

        Raises:
            WrongPassword: MAC check failed.
            KeystoreCorrupt: anything else (missing file, bad JSON, unsupported cipher).
        """
        try:
            keyfile = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise KeystoreCorrupt(f"Failed to read keystore: {e}") from e
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise KeystoreCorrupt(f"Failed to decrypt keystore: {e}") from e

        try:
            raw = Account.decrypt(keyfile, password)
        except ValueError as e:
            if _MAC_MISMATCH in str(e).lower():
                raise WrongPassword() from e
            raise KeystoreCorrupt(f"Failed to decrypt keystore: {e}") from e
        except (KeyError, TypeError, AttributeError, NotImplementedError) as e:
            raise KeystoreCorrupt(f"Failed to decrypt keystore: {e!r}") from e

        if len(raw) != 32:
            raise KeystoreCorrupt(f"Keystore holds {len(raw)} bytes, expected 32")
        return "0x" + bytes(raw).hex()

    def address(self) -> str | None:
        """Owner address recorded in the keystore. No password needed."""
        try:
            keyfile = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError):
            return None
        raw = keyfile.get("address") if isinstance(keyfile, dict) else None
        if not raw or not isinstance(raw, str):
            return None
        try:
            return to_checksum_address(raw if raw.startswith("0x") else f"0x{raw}")
        except ValueError:
            return None

    def delete(self) -> bool:
        if not self.exists():
            return False
        self.path.unlink()
        logger.info("Deleted keystore %s", self.path)
        return True
