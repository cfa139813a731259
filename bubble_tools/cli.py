"""
Bubble CLI — identifiers, address book, vault servers and wallet keys.

Commands:
  bubble addresses {list|add|remove}        - Local address book
  bubble providers {list|add|remove}        - Local vault server list
  bubble wallet {list|create|add|remove|set-default|info}
  bubble did {create|decode|address|short}  - Bubble DIDs
  bubble url {create|decode}                - Bubble URLs
  bubble resolve                            - Resolve a label or literal
  bubble crypto {hash|to-base58|from-base58|checksum|public-key-to-address|file-hash|sdac-file-hash}
  bubble nft {mint-invite|mint-next-invite} - Signed mint invitations

Any address argument may be an address book label, a wallet key label, a
bubble DID, a 0x hex literal or a decimal number.
"""

from __future__ import annotations

import argparse
import logging
import sys

log = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _setup(args: argparse.Namespace) -> dict:
    """Load config and configure logging. Returns the effective config."""
    from bubble_tools.config import load_config

    config = load_config(app_dir=args.app_dir)
    level = logging.DEBUG if args.verbose else getattr(
        logging, str(config.get("log_level", "WARNING")).upper(), logging.WARNING
    )
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")
    return config


def _address_book(args: argparse.Namespace):
    from bubble_tools.store import AddressBook
    return AddressBook(args.config["app_dir"])


def _servers(args: argparse.Namespace):
    from bubble_tools.store import ServerList
    return ServerList(args.config["app_dir"])


def _wallet(args: argparse.Namespace):
    from bubble_tools.wallet import Wallet
    return Wallet(args.config["app_dir"])


def _resolver(args: argparse.Namespace):
    from bubble_tools.resolver import LabelResolver
    return LabelResolver(_address_book(args), _servers(args), _wallet(args))


# -- addresses ---------------------------------------------------------------


def cmd_addresses_list(args: argparse.Namespace) -> None:
    entries = _address_book(args).list()
    if not entries:
        print("Address book is empty.")
        return
    width = max(len(e.label) for e in entries)
    for e in entries:
        line = f"{e.label.ljust(width)}  {e.address}"
        if e.memo:
            line += f"  {e.memo}"
        print(line)


def cmd_addresses_add(args: argparse.Namespace) -> None:
    entry = _address_book(args).add(args.label, args.address, args.memo, to_lower=args.lower)
    print(f"Added {entry.label}: {entry.address}")


def cmd_addresses_remove(args: argparse.Namespace) -> None:
    _address_book(args).remove(args.label)
    print(f"Removed {args.label}")


# -- providers ---------------------------------------------------------------


def cmd_providers_list(args: argparse.Namespace) -> None:
    entries = _servers(args).list()
    if not entries:
        print("No vault servers.")
        return
    width = max(len(e.label) for e in entries)
    for e in entries:
        print(f"{e.label.ljust(width)}  {e.url}  {e.id or '-'}")


def cmd_providers_add(args: argparse.Namespace) -> None:
    server_id = None
    if args.id:
        server_id = _resolver(args).resolve_address(args.id, "id")
    entry = _servers(args).add(args.label, args.url, server_id)
    print(f"Added {entry.label}: {entry.url}")


def cmd_providers_remove(args: argparse.Namespace) -> None:
    _servers(args).remove(args.label)
    print(f"Removed {args.label}")


# -- wallet ------------------------------------------------------------------


def cmd_wallet_list(args: argparse.Namespace) -> None:
    keys = _wallet(args).list_keys()
    if not keys:
        print("Wallet is empty. Create a key with 'bubble wallet create'.")
        return
    width = max(len(k.label) for k in keys)
    for k in keys:
        print(f"{k.label.ljust(width)}  {k.address}")


def cmd_wallet_create(args: argparse.Namespace) -> None:
    key = _wallet(args).create_key(args.label)
    print(f"Created {key.label}: {key.address}")


def cmd_wallet_add(args: argparse.Namespace) -> None:
    key = _wallet(args).add_key(args.label, args.private_key)
    print(f"Added {key.label}: {key.address}")


def cmd_wallet_remove(args: argparse.Namespace) -> None:
    _wallet(args).remove_key(args.label)
    print(f"Removed {args.label}")


def cmd_wallet_set_default(args: argparse.Namespace) -> None:
    key = _wallet(args).set_default(args.label)
    print(f"Default key is now {key.label}: {key.address}")


def cmd_wallet_info(args: argparse.Namespace) -> None:
    ref = _wallet(args).get_info(args.key or args.config["default_key"])
    print(f"address:    {ref.address}")
    print(f"public key: {ref.public_key}")


# -- did / url ---------------------------------------------------------------


def _identifier_from_args(args: argparse.Namespace, server: str | None):
    from bubble_tools.identifier import ContentIdentifier

    resolver = _resolver(args)
    contract = resolver.resolve_address(args.contract, "contract")
    provider = resolver.resolve_server(server, "provider") if server else None
    file = resolver.resolve_address(args.file, "file") if args.file else None
    return ContentIdentifier(args.config["chain"], contract, provider, file)


def _print_identifier(identifier) -> None:
    print(f"address:    {identifier.contract}")
    if identifier.provider is not None:
        print(f"vault url:  {identifier.provider.url}")
        print(f"vault id:   {identifier.provider.id}")
    if identifier.file is not None:
        print(f"vault file: {identifier.file}")


def cmd_did_create(args: argparse.Namespace) -> None:
    print(_identifier_from_args(args, args.provider).to_did())


def cmd_did_decode(args: argparse.Namespace) -> None:
    from bubble_tools.url import decode_did
    _print_identifier(decode_did(args.did, chain=args.config["chain"]))


def cmd_did_address(args: argparse.Namespace) -> None:
    from bubble_tools.url import decode_did
    print(decode_did(args.did).contract)


def cmd_did_short(args: argparse.Namespace) -> None:
    from bubble_tools.identifier import ContentIdentifier
    print(ContentIdentifier.from_string(args.did).to_short_did())


def cmd_url_create(args: argparse.Namespace) -> None:
    print(_identifier_from_args(args, args.server).to_url())


def cmd_url_decode(args: argparse.Namespace) -> None:
    from bubble_tools.url import decode_url
    _print_identifier(decode_url(args.url, chain=args.config["chain"]))


def cmd_resolve(args: argparse.Namespace) -> None:
    resolver = _resolver(args)
    if args.server:
        server = resolver.resolve_server(args.value)
        print(f"{server.url}?id={server.id}")
    else:
        print(resolver.resolve_address(args.value))


# -- crypto ------------------------------------------------------------------


def cmd_crypto_hash(args: argparse.Namespace) -> None:
    from bubble_tools.address import keccak_hex
    print(keccak_hex(args.data))


def cmd_crypto_to_base58(args: argparse.Namespace) -> None:
    from bubble_tools.codec import hex_to_base58, text_to_base58
    encoded = hex_to_base58(args.data) if args.hex else text_to_base58(args.data)
    print(encoded or "")


def cmd_crypto_from_base58(args: argparse.Namespace) -> None:
    from bubble_tools.codec import base58_to_hex, base58_to_text
    print(base58_to_hex(args.data) if args.hex else base58_to_text(args.data))


def cmd_crypto_checksum(args: argparse.Namespace) -> None:
    from bubble_tools.address import to_checksum_address
    print(to_checksum_address(_resolver(args).resolve_address(args.address)))


def cmd_crypto_public_key_to_address(args: argparse.Namespace) -> None:
    from bubble_tools.address import public_key_to_address
    print(public_key_to_address(args.public_key))


def cmd_crypto_file_hash(args: argparse.Namespace) -> None:
    from bubble_tools.invite import file_hash
    print(file_hash(args.data))


def cmd_crypto_sdac_file_hash(args: argparse.Namespace) -> None:
    from bubble_tools.invite import sdac_file_hash
    resolver = _resolver(args)
    print(sdac_file_hash(
        resolver.resolve_address(args.contract, "contract"),
        resolver.resolve_address(args.file, "file"),
    ))


# -- nft ---------------------------------------------------------------------


def cmd_nft_mint_invite(args: argparse.Namespace) -> None:
    from bubble_tools.invite import generate_mint_invitation

    contract = _resolver(args).resolve_address(args.contract, "contract")
    key = _wallet(args).get_key(args.key or args.config["default_key"])
    print(generate_mint_invitation(contract, args.series, args.token_id, key, args.expiry))


def cmd_nft_mint_next_invite(args: argparse.Namespace) -> None:
    from bubble_tools.invite import generate_mint_next_invitation

    contract = _resolver(args).resolve_address(args.contract, "contract")
    key = _wallet(args).get_key(args.key or args.config["default_key"])
    print(generate_mint_next_invitation(contract, args.series, key, args.expiry))


# -- parser ------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    from bubble_tools import DEFAULT_INVITE_EXPIRY, DEFAULT_KEY, INITIAL_KEY, __version__

    parser = argparse.ArgumentParser(
        prog="bubble",
        description="Bubble tools — identifiers, address book and wallet for Bubble vaults.",
    )
    parser.add_argument("--version", action="version", version=f"bubble {__version__}")
    parser.add_argument("--app-dir", help="Application directory (default: ~/.bubble-tools)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # addresses
    p_addr = sub.add_parser("addresses", help="Local address book")
    addr_sub = p_addr.add_subparsers(dest="sub_command")
    addr_sub.add_parser("list", help="List address book entries")
    p_aa = addr_sub.add_parser("add", help="Add an address (or bubble DID) under a label")
    p_aa.add_argument("label")
    p_aa.add_argument("address")
    p_aa.add_argument("memo", nargs="?", help="Optional note")
    p_aa.add_argument("--lower", action="store_true", help="Store the address in lower case")
    p_ar = addr_sub.add_parser("remove", help="Remove an address by label")
    p_ar.add_argument("label")

    # providers
    p_prov = sub.add_parser("providers", help="Local vault server list")
    prov_sub = p_prov.add_subparsers(dest="sub_command")
    prov_sub.add_parser("list", help="List vault servers")
    p_pa = prov_sub.add_parser("add", help="Add a vault server")
    p_pa.add_argument("label")
    p_pa.add_argument("url", help="Server url, e.g. https://vault.example.com:8131")
    p_pa.add_argument("--id", help="Server public address (or label)")
    p_pr = prov_sub.add_parser("remove", help="Remove a vault server by label")
    p_pr.add_argument("label")

    # wallet
    p_wal = sub.add_parser("wallet", help="Wallet keys")
    wal_sub = p_wal.add_subparsers(dest="sub_command")
    wal_sub.add_parser("list", help="List wallet keys")
    p_wc = wal_sub.add_parser("create", help="Create a new random key")
    p_wc.add_argument("label", nargs="?", default=DEFAULT_KEY)
    p_wa = wal_sub.add_parser("add", help="Add an existing private key")
    p_wa.add_argument("label")
    p_wa.add_argument("private_key", help="32-byte private key as hex")
    p_wr = wal_sub.add_parser("remove", help="Remove a key")
    p_wr.add_argument("label")
    p_wd = wal_sub.add_parser("set-default", help="Make a key the default")
    p_wd.add_argument("label", nargs="?", default=INITIAL_KEY)
    p_wi = wal_sub.add_parser("info", help="Show address and public key")
    p_wi.add_argument("key", nargs="?", help="Key label or private key (default: default-key)")

    # did
    p_did = sub.add_parser("did", help="Bubble DIDs")
    did_sub = p_did.add_subparsers(dest="sub_command")
    p_dc = did_sub.add_parser("create", help="Create a DID for a contract")
    p_dc.add_argument("contract")
    p_dc.add_argument("--provider", help="Server label or <url>?id=<address>")
    p_dc.add_argument("--file", help="File id, label or <dir>/<name> path")
    p_dd = did_sub.add_parser("decode", help="Decode a DID")
    p_dd.add_argument("did")
    p_dad = did_sub.add_parser("address", help="Contract address of a DID")
    p_dad.add_argument("did")
    p_ds = did_sub.add_parser("short", help="Short form of a DID or URL")
    p_ds.add_argument("did")

    # url
    p_url = sub.add_parser("url", help="Bubble URLs")
    url_sub = p_url.add_subparsers(dest="sub_command")
    p_uc = url_sub.add_parser("create", help="Create a bubble URL")
    p_uc.add_argument("server", help="Server label or <url>?id=<address>")
    p_uc.add_argument("contract")
    p_uc.add_argument("file", nargs="?")
    p_ud = url_sub.add_parser("decode", help="Decode a bubble URL")
    p_ud.add_argument("url")

    # resolve
    p_res = sub.add_parser("resolve", help="Resolve a label or literal to an address")
    p_res.add_argument("value")
    p_res.add_argument("--server", action="store_true", help="Resolve a vault server instead")

    # crypto
    p_cr = sub.add_parser("crypto", help="Hashing and encoding utilities")
    cr_sub = p_cr.add_subparsers(dest="sub_command")
    p_ch = cr_sub.add_parser("hash", help="keccak256 of a string")
    p_ch.add_argument("data")
    p_ctb = cr_sub.add_parser("to-base58", help="Encode text (or hex) as base58")
    p_ctb.add_argument("data")
    p_ctb.add_argument("--hex", action="store_true", help="Input is hex bytes")
    p_cfb = cr_sub.add_parser("from-base58", help="Decode base58 to text (or hex)")
    p_cfb.add_argument("data")
    p_cfb.add_argument("--hex", action="store_true", help="Output hex bytes")
    p_cc = cr_sub.add_parser("checksum", help="EIP-55 checksum form of an address")
    p_cc.add_argument("address")
    p_cp = cr_sub.add_parser("public-key-to-address", help="Address of an uncompressed public key")
    p_cp.add_argument("public_key")
    p_cf = cr_sub.add_parser("file-hash", help="Address formed from keccak256 of a string")
    p_cf.add_argument("data")
    p_cs = cr_sub.add_parser("sdac-file-hash", help="keccak256(contract, file) for setPermissions")
    p_cs.add_argument("contract")
    p_cs.add_argument("file")

    # nft
    p_nft = sub.add_parser("nft", help="NFT mint invitations")
    nft_sub = p_nft.add_subparsers(dest="sub_command")
    p_nmi = nft_sub.add_parser("mint-invite", help="Invitation to mint a specific token")
    p_nmi.add_argument("contract")
    p_nmi.add_argument("series")
    p_nmi.add_argument("token_id")
    p_nmn = nft_sub.add_parser("mint-next-invite", help="Invitation to mint the next token")
    p_nmn.add_argument("contract")
    p_nmn.add_argument("series")
    for p in (p_nmi, p_nmn):
        p.add_argument("-k", "--key", help="Wallet key label (default: default-key)")
        p.add_argument(
            "-e", "--expiry", default=DEFAULT_INVITE_EXPIRY,
            help=f"Expiry duration, e.g. 12h, 7d, 2w3d (default: {DEFAULT_INVITE_EXPIRY})",
        )

    return parser


COMMANDS = {
    "addresses": {
        "list": cmd_addresses_list,
        "add": cmd_addresses_add,
        "remove": cmd_addresses_remove,
    },
    "providers": {
        "list": cmd_providers_list,
        "add": cmd_providers_add,
        "remove": cmd_providers_remove,
    },
    "wallet": {
        "list": cmd_wallet_list,
        "create": cmd_wallet_create,
        "add": cmd_wallet_add,
        "remove": cmd_wallet_remove,
        "set-default": cmd_wallet_set_default,
        "info": cmd_wallet_info,
    },
    "did": {
        "create": cmd_did_create,
        "decode": cmd_did_decode,
        "address": cmd_did_address,
        "short": cmd_did_short,
    },
    "url": {
        "create": cmd_url_create,
        "decode": cmd_url_decode,
    },
    "crypto": {
        "hash": cmd_crypto_hash,
        "to-base58": cmd_crypto_to_base58,
        "from-base58": cmd_crypto_from_base58,
        "checksum": cmd_crypto_checksum,
        "public-key-to-address": cmd_crypto_public_key_to_address,
        "file-hash": cmd_crypto_file_hash,
        "sdac-file-hash": cmd_crypto_sdac_file_hash,
    },
    "nft": {
        "mint-invite": cmd_nft_mint_invite,
        "mint-next-invite": cmd_nft_mint_next_invite,
    },
}


def main() -> None:
    from bubble_tools.errors import BubbleError
    from bubble_tools.store import StoreError
    from bubble_tools.wallet import WalletError

    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(0)

    if args.command == "resolve":
        handler = cmd_resolve
    else:
        group = COMMANDS[args.command]
        sc = getattr(args, "sub_command", None)
        if not sc:
            print(f"Usage: bubble {args.command} {{{'|'.join(group)}}}")
            sys.exit(0)
        handler = group[sc]

    args.config = _setup(args)
    try:
        handler(args)
    except (BubbleError, StoreError, WalletError, ValueError, ImportError) as e:
        log.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
