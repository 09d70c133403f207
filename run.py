#!/usr/bin/env python3
"""
Polymarket CLI -- wallet and authentication commands.

Usage:
  python run.py wallet create              # new random key, encrypted keystore
  python run.py wallet import 0xabc...     # import an existing key
  python run.py wallet show                # address, key source, signing mode, proxy
  python run.py wallet migrate             # move a plaintext config key into the keystore
  python run.py auth                       # authenticate against the CLOB
  python run.py -o json wallet show        # machine-readable output

Global flags --private-key and --signature-type override POLYMARKET_PRIVATE_KEY /
POLYMARKET_SIGNATURE_TYPE and config.json for a single invocation.
"""

from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys

from eth_account import Account

from client.auth import authenticated_session
from client.proxy import derive, derive_safe
from config import Config, load_config
from monitor.logger import setup_logging
from wallet import password as password_prompt
from wallet.errors import ProxyDerivationFailure, WalletError
from wallet.keystore import Keystore
from wallet.resolver import KeySource, describe_source, migrate, needs_migration
from wallet.settings import SettingsStore
from wallet.signer import address_from_secret
from wallet.signing_mode import SigningMode, parse_mode, resolve_mode_name

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="polymarket", description="Polymarket CLI")
    parser.add_argument("-o", "--output", choices=("table", "json"), default="table", help="Output format")
    parser.add_argument("--private-key", default=None, help="Private key (overrides env var and config file)")
    parser.add_argument("--signature-type", default=None, help="Signature type: eoa, proxy, or gnosis-safe")
    parser.add_argument("--log-level", default=None, help="Console log level (default: POLYMARKET_LOG_LEVEL or INFO)")
    parser.add_argument("--log-file", default=None, help="Append a verbose debug log to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    wallet = sub.add_parser("wallet", help="Manage wallet and authentication")
    wsub = wallet.add_subparsers(dest="wallet_command", required=True)

    create = wsub.add_parser("create", help="Generate a new wallet and encrypt it")
    create.add_argument("--force", action="store_true", help="Overwrite an existing wallet")

    imp = wsub.add_parser("import", help="Import an existing private key")
    imp.add_argument("key", help="0x-prefixed hex private key")
    imp.add_argument("--force", action="store_true", help="Overwrite an existing wallet")

    wsub.add_parser("address", help="Print the wallet address")
    wsub.add_parser("show", help="Show wallet address, key source and signing mode")
    wsub.add_parser("migrate", help="Encrypt a plaintext key from config.json")

    reset = wsub.add_parser("reset", help="Delete config.json and the keystore")
    reset.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    sub.add_parser("auth", help="Authenticate against the CLOB and print the session")
    return parser.parse_args(argv)


def _emit(args: argparse.Namespace, data: dict) -> None:
    if args.output == "json":
        print(json.dumps(data))
        return
    width = max(len(k) for k in data)
    for key, value in data.items():
        label = key.replace("_", " ").capitalize()
        print(f"{label + ':':<{width + 2}} {'-' if value is None else value}")


def _store_new_wallet(args: argparse.Namespace, cfg: Config, secret: str) -> dict:
    keystore = Keystore()
    if keystore.exists() and not args.force:
        raise WalletError("A wallet already exists. Use --force to overwrite.")

    address = address_from_secret(secret)
    pw = password_prompt.obtain_new()
    keystore.save(secret, pw)

    mode_name = resolve_mode_name(args.signature_type)
    SettingsStore().save(cfg.chain_id, mode_name)
    return {
        "address": address,
        "proxy_address": _funder_display(address, parse_mode(mode_name), cfg.chain_id),
        "signature_type": mode_name,
        "keystore": str(keystore.path),
    }


def _funder_display(address: str | None, mode: SigningMode, chain_id: int) -> str | None:
    if address is None or mode is SigningMode.DIRECT:
        return None
    try:
        if mode is SigningMode.PROXY_FORWARD:
            return derive(address, chain_id)
        return derive_safe(address, chain_id)
    except ProxyDerivationFailure as e:
        return f"unavailable ({e})"


def _address_without_password(args: argparse.Namespace, source: KeySource) -> str | None:
    """Wallet address for display. Never prompts: the keystore records its own address."""
    if source is KeySource.FLAG:
        return address_from_secret(args.private_key)
    if source is KeySource.ENV_VAR:
        return address_from_secret(load_config().private_key)
    if source in (KeySource.CONFIG_FILE, KeySource.MIGRATION):
        settings = SettingsStore().load()
        return address_from_secret(settings.private_key) if settings else None
    if source is KeySource.KEYSTORE:
        return Keystore().address()
    return None


def cmd_wallet(args: argparse.Namespace, cfg: Config) -> None:
    command = args.wallet_command

    if command == "create":
        account = Account.create()
        _emit(args, _store_new_wallet(args, cfg, account.key.hex()))
        return

    if command == "import":
        _emit(args, _store_new_wallet(args, cfg, args.key))
        return

    if command == "address":
        source = describe_source(args.private_key)
        address = _address_without_password(args, source)
        if address is None:
            raise WalletError(f"No wallet address available (key source: {source.label})")
        _emit(args, {"address": address})
        return

    if command == "show":
        source = describe_source(args.private_key)
        address = _address_without_password(args, source)
        mode_name = resolve_mode_name(args.signature_type)
        mode = parse_mode(mode_name)
        _emit(args, {
            "address": address,
            "key_source": source.label,
            "signature_type": mode_name,
            "proxy_address": _funder_display(address, mode, cfg.chain_id),
            "config_dir": str(cfg.config_dir),
        })
        return

    if command == "migrate":
        if not needs_migration():
            raise WalletError("Nothing to migrate: no plaintext key in config, or keystore already exists")
        secret = migrate()
        _emit(args, {"address": address_from_secret(secret), "keystore": str(Keystore().path)})
        return

    if command == "reset":
        if not args.yes:
            answer = input(f"Delete {cfg.config_dir} including the keystore? [y/N] ").strip().lower()
            if not answer.startswith("y"):
                logger.info("Reset cancelled")
                return
        SettingsStore().delete_all()
        _emit(args, {"deleted": str(cfg.config_dir)})
        return

    raise WalletError(f"Unknown wallet command: {command}")


def cmd_auth(args: argparse.Namespace, cfg: Config) -> None:
    session = authenticated_session(args.private_key, args.signature_type, cfg)
    expires = dt.datetime.fromtimestamp(session.expires_at, tz=dt.timezone.utc)
    _emit(args, {
        "address": session.address,
        "signature_type": session.mode.value,
        "funder": session.funder,
        "expires_at": expires.isoformat(timespec="seconds"),
    })


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    cfg = load_config()
    setup_logging(args.log_level or cfg.log_level, log_file=args.log_file)

    try:
        if args.command == "wallet":
            cmd_wallet(args, cfg)
        elif args.command == "auth":
            cmd_auth(args, cfg)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        return 130
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        if args.output == "json":
            print(json.dumps({"error": str(e)}))
        else:
            print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
