"""
Polygon RPC providers (web3 async). Read-only or with the resolved wallet attached.
"""

from __future__ import annotations

import logging

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from config import Config, load_config
from wallet.errors import NetworkFailure
from wallet.resolver import resolve_signer

logger = logging.getLogger(__name__)


async def _connect(rpc_url: str) -> AsyncWeb3:
    w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
    try:
        connected = await w3.is_connected()
    except Exception as e:
        raise NetworkFailure(f"Failed to connect to Polygon RPC {rpc_url}: {e}") from e
    if not connected:
        raise NetworkFailure(f"Failed to connect to Polygon RPC {rpc_url}")
    return w3


async def create_readonly_provider(cfg: Config | None = None) -> AsyncWeb3:
    cfg = cfg or load_config()
    return await _connect(cfg.rpc_url)


async def create_provider(private_key: str | None = None, cfg: Config | None = None) -> AsyncWeb3:
    """Provider that signs and sends from the resolved wallet (default account)."""
    cfg = cfg or load_config()
    signer = resolve_signer(private_key, cfg.chain_id)
    w3 = await _connect(cfg.rpc_url)
    w3.middleware_onion.inject(SignAndSendRawMiddlewareBuilder.build(signer.local_account), layer=0)
    w3.eth.default_account = signer.address()
    logger.debug("RPC provider ready for %s", signer.address())
    return w3
