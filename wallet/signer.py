"""
Signer capability. Anything that can report an address, a chain id and sign a
32-byte hash can back a Session; LocalSigner is the only implementation today.
"""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_hex
from py_clob_client.signer import Signer as ClobSigner

from wallet.errors import InvalidSecret

_HEX_KEY = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


@runtime_checkable
class Signer(Protocol):
    """Minimal signer interface, shaped after py_clob_client's Signer."""

    def address(self) -> str:
        ...

    def get_chain_id(self) -> int:
        ...

    def sign(self, message_hash) -> str:
        ...


def normalize_secret(secret: str) -> str:
    """Return the canonical 0x-prefixed lowercase hex form. Raises InvalidSecret."""
    key = secret.strip()
    if not _HEX_KEY.match(key):
        raise InvalidSecret("Invalid private key: expected 32 bytes of hex")
    if key.startswith("0x"):
        key = key[2:]
    return "0x" + key.lower()


def address_from_secret(secret: str) -> str:
    """Checksum address owning `secret`. Raises InvalidSecret."""
    try:
        return Account.from_key(normalize_secret(secret)).address
    except InvalidSecret:
        raise
    except Exception as e:
        raise InvalidSecret(f"Invalid private key: {e}") from e


class LocalSigner(ClobSigner):
    """In-process secp256k1 key bound to a chain id."""

    @classmethod
    def from_secret(cls, secret: str, chain_id: int) -> LocalSigner:
        key = normalize_secret(secret)
        try:
            return cls(key, chain_id)
        except Exception as e:
            raise InvalidSecret(f"Invalid private key: {e}") from e

    def sign(self, message_hash) -> str:
        """0x-prefixed 65-byte signature over a 32-byte hash."""
        return to_hex(self.account.unsafe_sign_hash(message_hash).signature)

    @property
    def local_account(self) -> LocalAccount:
        """eth_account account for transaction signing (web3 middleware)."""
        return self.account

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address()}, chain_id={self.get_chain_id()})"
