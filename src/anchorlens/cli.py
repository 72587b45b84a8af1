"""anchorlens CLI: decode accounts and transactions from a live cluster."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Any, Optional


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.ERROR
    logging.basicConfig(level=level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")


def _build_lens(args: argparse.Namespace):
    """Construct the orchestrator from CLI flags and ANCHORLENS_* environment."""
    from .api import AnchorLens
    from .config import LensConfig

    config = LensConfig.from_env(
        rpc_url=args.url,
        cache_schemas=False if args.no_cache else None,
    )
    return AnchorLens.from_config(config)


def _emit(payload: Any, outfile: Optional[Path], quiet: bool) -> None:
    from ._internal.json_output import dumps_decoded

    text = dumps_decoded(payload)
    if outfile is not None:
        outfile.parent.mkdir(parents=True, exist_ok=True)
        outfile.write_text(text + "\n", encoding="utf-8")
        if not quiet:
            print(f"[OK] Wrote {outfile}")
    else:
        print(text)


def main():
    """Main CLI entry point for anchorlens commands."""
    try:
        anchorlens_version = get_version("anchorlens")
    except PackageNotFoundError:
        anchorlens_version = "dev"

    parser = argparse.ArgumentParser(
        prog="anchorlens",
        description="anchorlens: decode Solana accounts and transactions using on-chain Anchor IDLs"
    )
    parser.add_argument("--version", action="version", version=f"anchorlens {anchorlens_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--url", "-u",
        default=None,
        help="JSON-RPC endpoint (defaults to $ANCHORLENS_RPC_URL or mainnet-beta)"
    )
    parent_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Fetch the IDL again for every program occurrence."
    )
    parent_parser.add_argument(
        "--outfile", "-o",
        type=Path,
        default=None,
        help="Write JSON to this file instead of stdout"
    )
    verbosity = parent_parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    verbosity.add_argument(
        "--verbose",
        action="store_true",
        help="Log cache and RPC activity to stderr."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    account_parser = subparsers.add_parser(
        "account",
        help="Fetch an account and decode it with its owner's IDL",
        parents=[parent_parser]
    )
    account_parser.add_argument("address", help="Account address (base58)")

    transaction_parser = subparsers.add_parser(
        "transaction",
        help="Fetch a transaction and decode its instructions",
        parents=[parent_parser]
    )
    transaction_parser.add_argument("signature", help="Transaction signature (base58)")

    idl_parser = subparsers.add_parser(
        "idl",
        help="Fetch and print a program's on-chain IDL",
        parents=[parent_parser]
    )
    idl_parser.add_argument("program_id", help="Program id or IDL account address (base58)")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args)

    from ._internal.rpc import ChainAccessError
    from .kernel.errors import AnchorLensError

    try:
        lens = _build_lens(args)
        if args.command == "account":
            account = lens.get_account(args.address)
            schema = lens.get_schema(account.owner)
            payload = lens.descriptive_account_json(schema, args.address, account=account)
        elif args.command == "transaction":
            payload = lens.fetch_and_decode_transaction(args.signature)
        else:
            payload = lens.get_schema(args.program_id).to_idl_json()
        _emit(payload, args.outfile, args.quiet)
    except (AnchorLensError, ChainAccessError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
