"""
Configuration loaded from environment variables. Secrets are never persisted from here.
"""

from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import Field

POLYGON = 137
AMOY = 80002


def _default_config_dir() -> Path:
    return Path.home() / ".config" / "polymarket"


class Config(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "POLYMARKET_",
        "frozen": True,
        "extra": "ignore",
    }

    # Overrides (POLYMARKET_PRIVATE_KEY, POLYMARKET_SIGNATURE_TYPE, POLYMARKET_PASSWORD).
    # Empty string means "not set".
    private_key: str = Field(default="", description="Wallet private key (hex)", repr=False)
    signature_type: str = Field(default="", description="eoa | proxy | gnosis-safe")
    password: str = Field(default="", description="Non-interactive keystore password", repr=False)

    # On-disk settings + keystore live here
    config_dir: Path = Field(default_factory=_default_config_dir)

    # API endpoints
    clob_host: str = "https://clob.polymarket.com"
    rpc_url: str = "https://polygon.drpc.org"
    chain_id: int = POLYGON

    # Proxy wallet entry point: "proxy" (array-of-calls) or "exec" (two-argument forward)
    proxy_call_shape: str = "proxy"

    # Authenticated sessions are considered stale after this many seconds
    session_ttl_sec: float = Field(default=3600.0, gt=0)

    log_level: str = "INFO"


def load_config() -> Config:
    """Load and validate config from environment. Builds a fresh instance on every call."""
    return Config()
