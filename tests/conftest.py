"""
Shared fixtures: every test gets its own config directory and a clean environment.
"""

import json

import pytest

from wallet.keystore import Keystore

# Well-known development keys (hardhat accounts 0-3). Never fund these.
KEY_0 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
KEY_1 = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"
KEY_2 = "0x5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a"
KEY_3 = "0x7c852118294e51e653712a81e05800f419141751be58f605c371e15141b007a6"
ADDRESS_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

_ENV_VARS = (
    "POLYMARKET_PRIVATE_KEY",
    "POLYMARKET_SIGNATURE_TYPE",
    "POLYMARKET_PASSWORD",
    "POLYMARKET_CHAIN_ID",
    "POLYMARKET_PROXY_CALL_SHAPE",
    "POLYMARKET_CLOB_HOST",
    "POLYMARKET_RPC_URL",
    "POLYMARKET_SESSION_TTL_SEC",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the config dir at tmp_path and clear all overrides."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config_dir = tmp_path / "polymarket"
    monkeypatch.setenv("POLYMARKET_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)  # no stray .env
    return config_dir


@pytest.fixture
def config_dir(isolated_env):
    return isolated_env


@pytest.fixture
def fast_keystore():
    """Keystore with a cheap KDF so tests don't pay for scrypt."""
    return Keystore(kdf="pbkdf2", iterations=2)


@pytest.fixture
def write_legacy_settings(config_dir):
    """Write an old-format config.json that still carries the plaintext key."""

    def _write(private_key: str, chain_id: int = 137, signature_type: str = "proxy"):
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / "config.json"
        path.write_text(json.dumps({
            "private_key": private_key,
            "chain_id": chain_id,
            "signature_type": signature_type,
        }))
        return path

    return _write
