"""
Authentication: signer + signing mode -> authenticated CLOB session.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds

from client.proxy import derive, derive_safe
from config import Config, load_config
from wallet.errors import AuthenticationFailure
from wallet.resolver import resolve_signer
from wallet.signer import LocalSigner
from wallet.signing_mode import SigningMode, resolve_mode

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Authenticated CLOB handle for one process run."""

    client: ClobClient
    address: str
    mode: SigningMode
    funder: str | None
    created_at: float
    expires_at: float

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at


def funder_for(signer: LocalSigner, mode: SigningMode) -> str | None:
    """Address holding the funds: proxy or safe contract, or None for a plain EOA."""
    if mode is SigningMode.PROXY_FORWARD:
        return derive(signer.address(), signer.get_chain_id())
    if mode is SigningMode.MULTISIG:
        return derive_safe(signer.address(), signer.get_chain_id())
    return None


def build_session(
    signer: LocalSigner,
    mode: SigningMode,
    cfg: Config | None = None,
    funder: str | None = None,
) -> Session:
    """
    Authenticate `signer` against the CLOB.
    Steps:
      1. Create L1 client with the signer's key, signature type and funder
      2. Derive or create API credentials (L2)
      3. Return the session
    No retry here; transport errors surface as AuthenticationFailure.
    """
    cfg = cfg or load_config()
    try:
        # L1 client -- can sign orders and derive creds
        client = ClobClient(
            host=cfg.clob_host,
            chain_id=signer.get_chain_id(),
            key=signer.private_key,
            signature_type=mode.clob_signature_type,
            funder=funder,
        )
        # Derive L2 credentials (creates if first time, derives if already exist)
        creds: ApiCreds = client.create_or_derive_api_creds()
        client.set_api_creds(creds)
    except Exception as e:
        raise AuthenticationFailure(f"Failed to authenticate with Polymarket CLOB: {e}") from e

    now = time.time()
    logger.info("Authenticated %s (%s)", signer.address(), mode.value)
    return Session(
        client=client,
        address=signer.address(),
        mode=mode,
        funder=funder,
        created_at=now,
        expires_at=now + cfg.session_ttl_sec,
    )


def authenticated_session(
    private_key: str | None = None,
    signature_type: str | None = None,
    cfg: Config | None = None,
) -> Session:
    """Resolve mode and signer, derive the funder address, authenticate."""
    cfg = cfg or load_config()
    mode = resolve_mode(signature_type)
    signer = resolve_signer(private_key, cfg.chain_id)
    return build_session(signer, mode, cfg, funder=funder_for(signer, mode))


def build_clob_client(cfg: Config | None = None, private_key: str | None = None) -> ClobClient:
    """Build an authenticated ClobClient ready for trading."""
    return authenticated_session(private_key, cfg=cfg).client
