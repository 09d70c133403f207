"""
Unit tests for client/proxy.py -- CREATE2 derivation, call shapes, proxy execution.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_abi import decode as abi_decode
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes
from web3 import Web3

from client.proxy import (
    CALL_SHAPES,
    CALL_TYPE_CALL,
    EXEC_SHAPE,
    PROXY_SHAPE,
    derive,
    derive_safe,
    execute_through_proxy,
    get_call_shape,
    resolve_proxy_address,
)
from config import AMOY, POLYGON
from conftest import ADDRESS_0, KEY_0
from wallet.errors import MissingWallet, NetworkFailure, ProxyDerivationFailure
from wallet.settings import SettingsStore

OTHER_OWNER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
TARGET = to_checksum_address("0x4d97dcd97ec945f40cf65f87097ace5ea0476045")
CALLDATA = bytes.fromhex("a9059cbb") + b"\x00" * 64


class TestDerive:
    def test_deterministic(self):
        assert derive(ADDRESS_0, POLYGON) == derive(ADDRESS_0, POLYGON)

    def test_checksummed_and_not_owner(self):
        proxy = derive(ADDRESS_0, POLYGON)
        assert proxy == to_checksum_address(proxy)
        assert proxy != ADDRESS_0

    def test_case_insensitive_owner(self):
        assert derive(ADDRESS_0.lower(), POLYGON) == derive(ADDRESS_0, POLYGON)

    def test_distinct_owners_distinct_proxies(self):
        assert derive(ADDRESS_0, POLYGON) != derive(OTHER_OWNER, POLYGON)

    def test_matches_create2_formula(self):
        factory = bytes.fromhex("aB45c5A4B0c941a2F231C04C3f49182e1A254052".lower())
        init_hash = bytes.fromhex("d21df8dc65880a8606f09fe0ce3df9b8869287ab0b058be05aa9e8af6330a00b")
        salt = keccak(bytes.fromhex(ADDRESS_0[2:]))
        expected = keccak(b"\xff" + factory + salt + init_hash)[12:]
        assert derive(ADDRESS_0, POLYGON) == to_checksum_address(expected)

    def test_chain_without_proxy_factory_fails(self):
        with pytest.raises(ProxyDerivationFailure):
            derive(ADDRESS_0, AMOY)

    def test_unknown_chain_fails(self):
        with pytest.raises(ProxyDerivationFailure):
            derive(ADDRESS_0, 1)

    @pytest.mark.parametrize("owner", ["", "0x1234", "not-an-address", None])
    def test_invalid_owner_fails(self, owner):
        with pytest.raises(ProxyDerivationFailure):
            derive(owner, POLYGON)


class TestDeriveSafe:
    def test_deterministic_and_distinct_from_proxy(self):
        safe = derive_safe(ADDRESS_0, POLYGON)
        assert safe == derive_safe(ADDRESS_0, POLYGON)
        assert safe != derive(ADDRESS_0, POLYGON)
        assert safe != ADDRESS_0

    def test_available_on_amoy(self):
        assert derive_safe(ADDRESS_0, AMOY) == derive_safe(ADDRESS_0, POLYGON)

    def test_unknown_chain_fails(self):
        with pytest.raises(ProxyDerivationFailure):
            derive_safe(ADDRESS_0, 1)


class TestResolveProxyAddress:
    def test_none_outside_proxy_mode_without_touching_keys(self):
        """No wallet configured at all, yet eoa mode returns None instead of MissingWallet."""
        assert resolve_proxy_address(None, "eoa") is None
        assert resolve_proxy_address(None, "gnosis-safe") is None

    def test_none_when_settings_say_eoa(self):
        SettingsStore().save(POLYGON, "eoa")
        assert resolve_proxy_address(None, None) is None

    def test_proxy_mode_derives(self):
        assert resolve_proxy_address(KEY_0, "proxy") == derive(ADDRESS_0, POLYGON)

    def test_proxy_mode_requires_wallet(self):
        with pytest.raises(MissingWallet):
            resolve_proxy_address(None, "proxy")

    def test_proxy_mode_on_chain_without_factory(self, monkeypatch):
        monkeypatch.setenv("POLYMARKET_CHAIN_ID", str(AMOY))
        with pytest.raises(ProxyDerivationFailure):
            resolve_proxy_address(KEY_0, "proxy")


class TestCallShapes:
    def test_registry(self):
        assert set(CALL_SHAPES) == {"exec", "proxy"}
        assert get_call_shape("exec") is EXEC_SHAPE
        assert get_call_shape("proxy") is PROXY_SHAPE

    def test_default_from_config(self, monkeypatch):
        assert get_call_shape() is PROXY_SHAPE
        monkeypatch.setenv("POLYMARKET_PROXY_CALL_SHAPE", "exec")
        assert get_call_shape() is EXEC_SHAPE

    def test_unknown_version(self):
        with pytest.raises(ValueError, match="Unknown proxy call shape"):
            get_call_shape("v9")

    def test_exec_encoding(self):
        contract = Web3().eth.contract(abi=EXEC_SHAPE.abi)
        data = HexBytes(contract.encode_abi("exec", args=EXEC_SHAPE.build_args(TARGET, CALLDATA)))
        assert data[:4] == keccak(text="exec(address,bytes)")[:4]
        to, payload = abi_decode(["address", "bytes"], data[4:])
        assert to_checksum_address(to) == TARGET
        assert payload == CALLDATA

    def test_proxy_encoding_single_call_with_zero_value(self):
        contract = Web3().eth.contract(abi=PROXY_SHAPE.abi)
        data = HexBytes(contract.encode_abi("proxy", args=PROXY_SHAPE.build_args(TARGET, CALLDATA)))
        assert data[:4] == keccak(text="proxy((uint8,address,uint256,bytes)[])")[:4]
        (calls,) = abi_decode(["(uint8,address,uint256,bytes)[]"], data[4:])
        assert len(calls) == 1
        type_code, to, value, payload = calls[0]
        assert type_code == CALL_TYPE_CALL
        assert to_checksum_address(to) == TARGET
        assert value == 0
        assert payload == CALLDATA


def _fake_w3(tx_hash=b"\x11" * 32, receipt=None, send_error=None, wait_error=None):
    w3 = MagicMock()
    fn = MagicMock()
    fn.transact = AsyncMock(return_value=HexBytes(tx_hash), side_effect=send_error)
    contract = MagicMock()
    contract.functions.__getitem__.return_value = MagicMock(return_value=fn)
    w3.eth.contract.return_value = contract
    w3.eth.wait_for_transaction_receipt = AsyncMock(
        return_value=receipt if receipt is not None else {"status": 1},
        side_effect=wait_error,
    )
    return w3, contract, fn


class TestExecuteThroughProxy:
    @pytest.mark.asyncio
    async def test_sends_wrapped_call_and_waits(self):
        w3, contract, fn = _fake_w3()
        proxy = derive(ADDRESS_0, POLYGON)

        tx = await execute_through_proxy(w3, proxy, TARGET, CALLDATA, shape=PROXY_SHAPE)

        assert tx == "0x" + "11" * 32
        w3.eth.contract.assert_called_once_with(address=proxy, abi=PROXY_SHAPE.abi)
        contract.functions.__getitem__.assert_called_once_with("proxy")
        contract.functions.__getitem__.return_value.assert_called_once_with(
            [(CALL_TYPE_CALL, TARGET, 0, CALLDATA)]
        )
        fn.transact.assert_awaited_once()
        w3.eth.wait_for_transaction_receipt.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exec_shape_and_hex_calldata(self):
        w3, contract, _ = _fake_w3()
        await execute_through_proxy(w3, derive(ADDRESS_0, POLYGON), TARGET, "0x" + CALLDATA.hex(), shape=EXEC_SHAPE)
        contract.functions.__getitem__.assert_called_once_with("exec")
        contract.functions.__getitem__.return_value.assert_called_once_with(TARGET, CALLDATA)

    @pytest.mark.asyncio
    async def test_shape_defaults_from_config(self, monkeypatch):
        monkeypatch.setenv("POLYMARKET_PROXY_CALL_SHAPE", "exec")
        w3, contract, _ = _fake_w3()
        await execute_through_proxy(w3, derive(ADDRESS_0, POLYGON), TARGET, CALLDATA)
        contract.functions.__getitem__.assert_called_once_with("exec")

    @pytest.mark.asyncio
    async def test_send_failure(self):
        w3, _, _ = _fake_w3(send_error=RuntimeError("insufficient funds"))
        with pytest.raises(NetworkFailure, match="Failed to send"):
            await execute_through_proxy(w3, derive(ADDRESS_0, POLYGON), TARGET, CALLDATA)
        w3.eth.wait_for_transaction_receipt.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirmation_failure(self):
        w3, _, _ = _fake_w3(wait_error=TimeoutError("no receipt"))
        with pytest.raises(NetworkFailure, match="Failed to confirm"):
            await execute_through_proxy(w3, derive(ADDRESS_0, POLYGON), TARGET, CALLDATA)

    @pytest.mark.asyncio
    async def test_reverted_receipt(self):
        w3, _, _ = _fake_w3(receipt={"status": 0})
        with pytest.raises(NetworkFailure, match="reverted"):
            await execute_through_proxy(w3, derive(ADDRESS_0, POLYGON), TARGET, CALLDATA)
