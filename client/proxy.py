"""
Proxy wallet derivation and execution.

Polymarket "proxy" accounts trade through a per-user contract deployed by a
factory with CREATE2, so the address is a pure function of (owner, chain):

    salt  = keccak256(owner)                      # 20 packed bytes
    proxy = keccak256(0xff ++ factory ++ salt ++ init_code_hash)[12:]

On-chain actions in proxy mode are wrapped in a call to the proxy contract.
The entry point changed between contract versions, so the call shape is a
registry entry selected by version, not a constant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from eth_abi import encode as abi_encode
from eth_utils import is_address, keccak, to_bytes, to_checksum_address, to_hex
from hexbytes import HexBytes

from config import AMOY, POLYGON, Config, load_config
from wallet.errors import NetworkFailure, ProxyDerivationFailure
from wallet.keystore import Keystore
from wallet.resolver import resolve_signer
from wallet.settings import SettingsStore
from wallet.signing_mode import SigningMode, resolve_mode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletFactories:
    """CREATE2 parameters for one chain. None = not deployed there."""

    proxy_factory: str | None
    proxy_init_code_hash: str | None
    safe_factory: str | None
    safe_init_code_hash: str | None


_SAFE_INIT_CODE_HASH = "0x2bce2127ff07fb632d16c8347c4ebf501f4841168bed00d9e6ef715ddb6fcecf"

FACTORIES: dict[int, WalletFactories] = {
    POLYGON: WalletFactories(
        proxy_factory="0xaB45c5A4B0c941a2F231C04C3f49182e1A254052",
        proxy_init_code_hash="0xd21df8dc65880a8606f09fe0ce3df9b8869287ab0b058be05aa9e8af6330a00b",
        safe_factory="0xaacFeEa03eb1561C4e67d661e40682Bd20E3541b",
        safe_init_code_hash=_SAFE_INIT_CODE_HASH,
    ),
    AMOY: WalletFactories(
        proxy_factory=None,
        proxy_init_code_hash=None,
        safe_factory="0xaacFeEa03eb1561C4e67d661e40682Bd20E3541b",
        safe_init_code_hash=_SAFE_INIT_CODE_HASH,
    ),
}


def _create2_address(factory: str, salt: bytes, init_code_hash: str) -> str:
    digest = keccak(b"\xff" + to_bytes(hexstr=factory) + salt + to_bytes(hexstr=init_code_hash))
    return to_checksum_address(digest[12:])


def _owner_bytes(owner_address: str) -> bytes:
    if not isinstance(owner_address, str) or not is_address(owner_address):
        raise ProxyDerivationFailure(f"Could not derive wallet: invalid owner address {owner_address!r}")
    return to_bytes(hexstr=owner_address)


def derive(owner_address: str, chain_id: int) -> str:
    """Proxy wallet address for `owner_address` on `chain_id`. Never falls back to the owner."""
    owner = _owner_bytes(owner_address)
    factories = FACTORIES.get(chain_id)
    if factories is None or factories.proxy_factory is None or factories.proxy_init_code_hash is None:
        raise ProxyDerivationFailure(
            f"Could not derive proxy wallet for {to_checksum_address(owner)} on chain {chain_id}"
        )
    return _create2_address(factories.proxy_factory, keccak(owner), factories.proxy_init_code_hash)


def derive_safe(owner_address: str, chain_id: int) -> str:
    """Gnosis Safe address used in gnosis-safe mode. Salt is keccak256(abi.encode(owner))."""
    owner = _owner_bytes(owner_address)
    factories = FACTORIES.get(chain_id)
    if factories is None or factories.safe_factory is None or factories.safe_init_code_hash is None:
        raise ProxyDerivationFailure(
            f"Could not derive safe wallet for {to_checksum_address(owner)} on chain {chain_id}"
        )
    salt = keccak(abi_encode(["address"], [to_checksum_address(owner)]))
    return _create2_address(factories.safe_factory, salt, factories.safe_init_code_hash)


def resolve_proxy_address(
    private_key: str | None = None,
    signature_type: str | None = None,
    cfg: Config | None = None,
    settings_store: SettingsStore | None = None,
    keystore: Keystore | None = None,
) -> str | None:
    """
    Proxy address for the configured wallet, or None when not in proxy mode.

    The mode check comes first: outside proxy mode no key is resolved and no
    password is prompted for.
    """
    if resolve_mode(signature_type, settings_store) is not SigningMode.PROXY_FORWARD:
        return None
    cfg = cfg or load_config()
    signer = resolve_signer(private_key, cfg.chain_id, settings_store, keystore)
    return derive(signer.address(), cfg.chain_id)


# -- Call shapes ---------------------------------------------------------------

CALL_TYPE_CALL = 1  # ProxyWallet CallType: 0 INVALID, 1 CALL, 2 DELEGATECALL


@dataclass(frozen=True)
class ProxyCallShape:
    """How to wrap (target, calldata) into a call on the proxy contract."""

    version: str
    function_name: str
    abi: list[dict[str, Any]]
    build_args: Callable[[str, bytes], tuple]


def _exec_args(target: str, calldata: bytes) -> tuple:
    return (target, calldata)


def _proxy_args(target: str, calldata: bytes) -> tuple:
    return ([(CALL_TYPE_CALL, target, 0, calldata)],)


EXEC_SHAPE = ProxyCallShape(
    version="exec",
    function_name="exec",
    abi=[{
        "type": "function",
        "name": "exec",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    }],
    build_args=_exec_args,
)

PROXY_SHAPE = ProxyCallShape(
    version="proxy",
    function_name="proxy",
    abi=[{
        "type": "function",
        "name": "proxy",
        "stateMutability": "payable",
        "inputs": [{
            "name": "calls",
            "type": "tuple[]",
            "components": [
                {"name": "typeCode", "type": "uint8"},
                {"name": "to", "type": "address"},
                {"name": "value", "type": "uint256"},
                {"name": "data", "type": "bytes"},
            ],
        }],
        "outputs": [{"name": "returnValues", "type": "bytes[]"}],
    }],
    build_args=_proxy_args,
)

CALL_SHAPES: dict[str, ProxyCallShape] = {
    EXEC_SHAPE.version: EXEC_SHAPE,
    PROXY_SHAPE.version: PROXY_SHAPE,
}


def get_call_shape(version: str | None = None) -> ProxyCallShape:
    """Look up a call shape by version; defaults to Config.proxy_call_shape."""
    if version is None:
        version = load_config().proxy_call_shape
    try:
        return CALL_SHAPES[version]
    except KeyError:
        raise ValueError(
            f"Unknown proxy call shape {version!r}; expected one of {sorted(CALL_SHAPES)}"
        ) from None


def build_proxy_call(w3, proxy_address: str, target: str, calldata: bytes | str, shape: ProxyCallShape):
    """Contract function for the wrapped call. Not sent."""
    contract = w3.eth.contract(address=to_checksum_address(proxy_address), abi=shape.abi)
    args = shape.build_args(to_checksum_address(target), bytes(HexBytes(calldata)))
    return contract.functions[shape.function_name](*args)


async def execute_through_proxy(
    w3,
    proxy_address: str,
    target: str,
    calldata: bytes | str,
    shape: ProxyCallShape | None = None,
) -> str:
    """
    Send `calldata` to `target` through the proxy wallet and wait for the receipt.

    `w3` must be an AsyncWeb3 with a default account able to sign
    (see client.chain.create_provider). Returns the 0x transaction hash.
    """
    shape = shape or get_call_shape()
    fn = build_proxy_call(w3, proxy_address, target, calldata, shape)

    try:
        tx_hash = await fn.transact()
    except Exception as e:
        raise NetworkFailure(f"Failed to send proxy {shape.function_name} transaction: {e}") from e

    tx_hex = to_hex(tx_hash)
    logger.info("Proxy %s sent: %s", shape.function_name, tx_hex)

    try:
        receipt = await w3.eth.wait_for_transaction_receipt(tx_hash)
    except Exception as e:
        raise NetworkFailure(f"Failed to confirm proxy {shape.function_name} transaction {tx_hex}: {e}") from e

    if receipt.get("status") != 1:
        raise NetworkFailure(f"Proxy {shape.function_name} transaction {tx_hex} reverted")
    return tx_hex
