"""
Command-line interface for the Batch Minter.

Provides commands for minting and administering the ledger.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

import structlog

from minter import __version__
from minter.config import MinterConfig, NetworkType, set_config
from minter.core.errors import MintError
from minter.service import MintService


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if json_format
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (default: from MINTER_DATABASE_URL)",
    )
    parser.add_argument(
        "--network",
        choices=["mainnet", "preprod", "preview"],
        help="Cardano network (default: from MINTER_NETWORK)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs in JSON format",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="batch-minter",
        description="Batch issuance ledger for unique tokens",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Mint command
    mint_parser = subparsers.add_parser("mint", help="Mint a batch of tokens")
    mint_parser.add_argument(
        "--to",
        required=True,
        help="Recipient address",
    )
    mint_parser.add_argument(
        "--ref",
        action="append",
        default=[],
        help="Metadata reference (repeat once per token)",
    )
    mint_parser.add_argument(
        "--refs-file",
        help="File with one metadata reference per line",
    )
    mint_parser.add_argument(
        "--count",
        type=int,
        help="Number of tokens (default: number of references)",
    )
    mint_parser.add_argument(
        "--payment",
        type=int,
        default=0,
        help="Payment attached, in lovelace (default: 0)",
    )
    _add_common_arguments(mint_parser)

    # Set price command
    price_parser = subparsers.add_parser("set-price", help="Change the unit price")
    price_parser.add_argument("--caller", required=True, help="Caller address")
    price_parser.add_argument("--price", type=int, required=True, help="New price in lovelace")
    _add_common_arguments(price_parser)

    # Set base URI command
    base_parser = subparsers.add_parser("set-base-uri", help="Change the metadata base reference")
    base_parser.add_argument("--caller", required=True, help="Caller address")
    base_parser.add_argument("--base-uri", required=True, help="New base reference")
    _add_common_arguments(base_parser)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show ledger status")
    _add_common_arguments(status_parser)

    # Tokens command
    tokens_parser = subparsers.add_parser("tokens", help="List tokens held by an owner")
    tokens_parser.add_argument("--owner", required=True, help="Owner address")
    _add_common_arguments(tokens_parser)

    # Owner command
    owner_parser = subparsers.add_parser("owner", help="Show owner and URI of a token")
    owner_parser.add_argument("--token-id", type=int, required=True, help="Token ID")
    _add_common_arguments(owner_parser)

    return parser


def build_config(args: argparse.Namespace) -> MinterConfig:
    """Create configuration from environment plus command-line overrides."""
    overrides = {
        "log_level": args.log_level,
        "log_json": args.log_json,
    }
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.network:
        overrides["network"] = NetworkType(args.network)
    return MinterConfig(**overrides)


def read_refs(args: argparse.Namespace) -> List[str]:
    """Collect metadata references from --ref and --refs-file."""
    refs = list(args.ref)
    if args.refs_file:
        lines = Path(args.refs_file).read_text(encoding="utf-8").splitlines()
        refs.extend(line.strip() for line in lines if line.strip())
    return refs


async def run_command(args: argparse.Namespace, config: MinterConfig) -> None:
    """Run a command against an initialized service."""
    service = MintService(config)
    await service.initialize()

    try:
        if args.command == "mint":
            result = await service.mint(
                recipient=args.to,
                metadata_refs=read_refs(args),
                payment_amount=args.payment,
                count=args.count,
            )
            print(f"Minted {len(result)} token(s) to {result.recipient[:30]}...")
            print(f"  Token IDs: {result.first_token_id}..{result.last_token_id}")

        elif args.command == "set-price":
            await service.set_mint_price(args.caller, args.price)
            print(f"Unit price set to {args.price} lovelace")

        elif args.command == "set-base-uri":
            await service.set_base_uri(args.caller, args.base_uri)
            print(f"Base URI set to {args.base_uri!r}")

        elif args.command == "status":
            stats = await service.get_stats()
            engine = stats["engine"]
            print(f"Batch Minter v{__version__}")
            print(f"  Current token ID: {engine['current_token_id']}")
            print(f"  Total supply:     {stats['total_supply']}")
            print(f"  Unit price:       {engine['unit_price']} lovelace")
            print(f"  Base URI:         {engine['base_uri'] or '(none)'}")
            print(f"  Max batch size:   {engine['max_batch_size']}")
            print(f"  Admin:            {stats['admin_address'] or '(not configured)'}")

        elif args.command == "tokens":
            token_ids = await service.tokens_of(args.owner)
            if not token_ids:
                print("No tokens found.")
            else:
                print(f"Found {len(token_ids)} token(s):")
                for token_id in token_ids:
                    print(f"  {token_id}: {await service.token_uri(token_id)}")

        elif args.command == "owner":
            owner = await service.owner_of(args.token_id)
            print(f"Token {args.token_id}")
            print(f"  Owner: {owner}")
            print(f"  URI:   {await service.token_uri(args.token_id)}")
    finally:
        await service.shutdown()


def main() -> None:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = build_config(args)
    set_config(config)
    setup_logging(config.log_level, config.log_json)

    try:
        asyncio.run(run_command(args, config))
    except MintError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
