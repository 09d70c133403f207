"""
Signing mode resolution: CLI flag > POLYMARKET_SIGNATURE_TYPE > config.json > "proxy".
"""

from __future__ import annotations

from enum import Enum

from config import load_config
from wallet.settings import DEFAULT_SIGNATURE_TYPE, SettingsStore


class SigningMode(Enum):
    DIRECT = "eoa"
    PROXY_FORWARD = "proxy"
    MULTISIG = "gnosis-safe"

    @property
    def clob_signature_type(self) -> int:
        """py_clob_client signature type: 0 = EOA, 1 = POLY_PROXY, 2 = POLY_GNOSIS_SAFE."""
        return _CLOB_SIGNATURE_TYPES[self]


_CLOB_SIGNATURE_TYPES = {
    SigningMode.DIRECT: 0,
    SigningMode.PROXY_FORWARD: 1,
    SigningMode.MULTISIG: 2,
}


def parse_mode(value: str) -> SigningMode:
    """Unknown strings fall back to DIRECT. No error for typos."""
    try:
        return SigningMode(value)
    except ValueError:
        return SigningMode.DIRECT


def resolve_mode_name(
    explicit_override: str | None = None,
    settings_store: SettingsStore | None = None,
) -> str:
    if explicit_override is not None:
        return explicit_override
    env_value = load_config().signature_type
    if env_value:
        return env_value
    settings = (settings_store or SettingsStore()).load()
    if settings is not None:
        return settings.signature_type
    return DEFAULT_SIGNATURE_TYPE


def resolve_mode(
    explicit_override: str | None = None,
    settings_store: SettingsStore | None = None,
) -> SigningMode:
    return parse_mode(resolve_mode_name(explicit_override, settings_store))


def is_proxy_mode(explicit_override: str | None = None, settings_store: SettingsStore | None = None) -> bool:
    return resolve_mode(explicit_override, settings_store) is SigningMode.PROXY_FORWARD
