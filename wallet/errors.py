"""
Wallet and authentication errors. Everything fatal bubbles up to run.main().
"""

from __future__ import annotations

NO_WALLET_MSG = (
    "No wallet configured. Run `polymarket wallet create` or `polymarket wallet import <key>`"
)


class WalletError(Exception):
    """Base class for credential and authentication failures."""
    pass


class MissingWallet(WalletError):
    """No secret source is available."""

    def __init__(self, message: str = NO_WALLET_MSG) -> None:
        super().__init__(message)


class InvalidSecret(WalletError):
    """Malformed hex or key material."""
    pass


class WrongPassword(WalletError):
    """Keystore MAC check failed. Caller may offer a retry."""

    def __init__(self, message: str = "Wrong password") -> None:
        super().__init__(message)


class KeystoreCorrupt(WalletError):
    """Keystore could not be parsed or decrypted for a reason other than the password."""
    pass


class KeystoreWriteError(WalletError):
    """Keystore could not be written."""
    pass


class PasswordMismatch(WalletError):
    def __init__(self, message: str = "Passwords do not match") -> None:
        super().__init__(message)


class EmptyPassword(WalletError):
    def __init__(self, message: str = "Password cannot be empty") -> None:
        super().__init__(message)


class MigrationFailure(WalletError):
    """No legacy plaintext secret available to migrate."""
    pass


class ProxyDerivationFailure(WalletError):
    """Signing mode requires a derived contract address that cannot be computed."""
    pass


class AuthenticationFailure(WalletError):
    """CLOB authentication failed. Wraps the transport/protocol error."""
    pass


class NetworkFailure(WalletError):
    """RPC connection, submission or confirmation failed."""
    pass
