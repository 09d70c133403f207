"""
Password prompts. POLYMARKET_PASSWORD short-circuits every prompt so scripts never block.
"""

from __future__ import annotations

import getpass
import logging
from typing import Callable, TypeVar

from config import load_config
from wallet.errors import EmptyPassword, KeystoreCorrupt, PasswordMismatch, WalletError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ATTEMPTS = 3


def obtain(prompt_text: str) -> str:
    """Return the env override if non-empty, otherwise read a hidden password from the terminal."""
    override = load_config().password
    if override:
        return override
    return getpass.getpass(prompt_text)


def obtain_new() -> str:
    """Prompt for a new password plus confirmation (wallet create/import, migration)."""
    password = obtain("Enter password to encrypt wallet: ")
    if not password:
        raise EmptyPassword()
    confirm = obtain("Confirm password: ")
    if not confirm:
        raise EmptyPassword()
    if password != confirm:
        raise PasswordMismatch()
    return password


def obtain_with_retries(
    verify_fn: Callable[[str], T],
    attempts: int = MAX_ATTEMPTS,
    prompt_text: str = "Enter wallet password: ",
) -> T:
    """
    Prompt for a password and pass it to verify_fn, up to `attempts` times.

    Returns the first successful result. On exhaustion the last error raised
    by verify_fn is re-raised as-is, so callers can still tell a wrong
    password from a corrupt keystore.
    """
    if attempts < 1:
        raise ValueError(f"attempts must be at least 1, got {attempts}")

    last_error: WalletError | None = None
    for attempt in range(1, attempts + 1):
        password = obtain(prompt_text)
        try:
            return verify_fn(password)
        except KeystoreCorrupt:
            raise
        except WalletError as e:
            last_error = e
            if attempt < attempts:
                logger.warning("Wrong password. Try again. (%d/%d)", attempt, attempts)
    raise last_error
