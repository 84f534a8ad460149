# src/blinkpay/app.py
"""
Application Entry Point - Composition Root and CLI

This module wires every pipeline component from settings and exposes the
command-line interface for merchants and operators: managing listings,
buying a listing with a local keypair, checking settlement status and
listing the supported tokens.

Files that USE this module:
- python -m blinkpay (module entry point)
- blinkpay console script (pyproject entry point)
- tests.test_app (CLI tests)

Files that this module USES:
- blinkpay.shared.logging_conf (setup_logging for logging configuration)
- blinkpay.config (settings for configuration management)
- blinkpay.adapters.* (RPC client, settlement clients, listing store, keypair signer)
- blinkpay.application.* (pipeline services)
- blinkpay.domain (token catalog and errors)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations for forward references

import argparse  # Command-line argument parsing
import asyncio  # Run async services from the synchronous CLI
import logging  # Standard library for logging messages and errors
import sys  # System-specific parameters and functions for exit codes
from dataclasses import dataclass  # Container for wired components
from typing import Optional, Sequence  # Type hints

from blinkpay import __version__
from blinkpay.adapters.network.solana_rpc import SolanaRpcClient  # Chain JSON-RPC client
from blinkpay.adapters.persistence.listing_store import ListingStore  # JSON-file listing store
from blinkpay.adapters.settlement.basic import BasicSettlementRecorder  # Fallback settlement book
from blinkpay.adapters.settlement.circle import CircleSettlementClient  # Settlement network client
from blinkpay.adapters.wallet import KeypairSigner  # Local keypair signer
from blinkpay.application.checkout import CheckoutService  # End-to-end purchase pipeline
from blinkpay.application.ledger import PaymentLedger  # Listings and payment records
from blinkpay.application.listings import ListingService  # Merchant listing operations
from blinkpay.application.settlement import SettlementOrchestrator  # Settlement state machine
from blinkpay.application.submission import TransactionSubmitter  # Sign, send and confirm
from blinkpay.application.transaction_builder import TransactionBuilder  # Unsigned transfer builder
from blinkpay.config import settings  # Application configuration
from blinkpay.domain.errors import BlinkPayError  # Base pipeline error
from blinkpay.domain.tokens import TokenCatalog  # Supported tokens
from blinkpay.shared.logging_conf import setup_logging  # Configure logging with file rotation

log = logging.getLogger(__name__)


@dataclass
class Components:
    """Every wired service, sharing one ledger and one listing store."""
    catalog: TokenCatalog
    ledger: PaymentLedger
    store: ListingStore
    network: SolanaRpcClient
    settlement_client: CircleSettlementClient
    basic_recorder: BasicSettlementRecorder
    orchestrator: SettlementOrchestrator
    checkout: CheckoutService
    listings: ListingService


def build_components(store: Optional[ListingStore] = None) -> Components:
    """
    Wire the pipeline from settings.

    Args:
        store: Optional listing store (defaults to settings.listings_file)

    Returns:
        Components sharing a single PaymentLedger
    """
    catalog = TokenCatalog()
    ledger = PaymentLedger()
    store = store or ListingStore()
    network = SolanaRpcClient()
    settlement_client = CircleSettlementClient()
    basic_recorder = BasicSettlementRecorder()
    orchestrator = SettlementOrchestrator(ledger, settlement_client, basic_recorder)
    checkout = CheckoutService(
        store=store,
        ledger=ledger,
        catalog=catalog,
        builder=TransactionBuilder(catalog),
        submitter=TransactionSubmitter(network),
        orchestrator=orchestrator,
        network=network,
    )
    listings = ListingService(store, ledger)
    return Components(
        catalog=catalog,
        ledger=ledger,
        store=store,
        network=network,
        settlement_client=settlement_client,
        basic_recorder=basic_recorder,
        orchestrator=orchestrator,
        checkout=checkout,
        listings=listings,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blinkpay",
        description="Manage BlinkPay listings and inspect settlements",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    listings = commands.add_parser("listings", help="Create, show and delete listings")
    listing_commands = listings.add_subparsers(dest="action", required=True)

    create = listing_commands.add_parser("create", help="Publish a new listing")
    create.add_argument("--name", required=True)
    create.add_argument("--description", required=True)
    create.add_argument("--price", required=True, help="Price in USDC")
    create.add_argument("--owner", required=True, help="Merchant wallet address")
    create.add_argument("--image-url", default="")

    list_cmd = listing_commands.add_parser("list", help="List listings")
    list_cmd.add_argument("--owner", default=None, help="Only listings owned by this wallet")

    show = listing_commands.add_parser("show", help="Show one listing and its share card")
    show.add_argument("listing_id")

    delete = listing_commands.add_parser("delete", help="Delete a listing")
    delete.add_argument("listing_id")

    purchase = commands.add_parser("purchase", help="Buy a listing with a local keypair")
    purchase.add_argument("listing_id")
    purchase.add_argument("--keypair", required=True, help="Keypair file (JSON byte array or base58)")
    purchase.add_argument("--token", default="USDC", help="Token to pay with (default: USDC)")
    purchase.add_argument("--amount", default=None, help="Defaults to the listing price")

    settlement = commands.add_parser("settlement", help="Inspect settlements")
    settlement_commands = settlement.add_subparsers(dest="action", required=True)

    status = settlement_commands.add_parser("status", help="Settlement status for a payment reference")
    status.add_argument("reference")

    summary = settlement_commands.add_parser("summary", help="Merchant wallet summary")
    summary.add_argument("--wallet-id", default=None, help="Defaults to CIRCLE_MERCHANT_WALLET_ID")

    commands.add_parser("tokens", help="List supported payment tokens")
    return parser


def _print_listing(listings: ListingService, listing) -> None:
    print(f"{listing.id}  {listing.name}  {listing.price} USDC  owner={listing.owner}")
    print(f"  url: {listings.blink_url(listing.id)}")


def _run_listings(args: argparse.Namespace, components: Components) -> int:
    listings = components.listings
    if args.action == "create":
        listing = listings.create_listing(
            name=args.name,
            description=args.description,
            price=args.price,
            owner=args.owner,
            image_url=args.image_url,
        )
        _print_listing(listings, listing)
        return 0

    if args.action == "list":
        found = components.store.list(owner=args.owner)
        if not found:
            print("No listings")
        for listing in found:
            _print_listing(listings, listing)
        return 0

    if args.action == "show":
        listing = listings.get_listing(args.listing_id)
        if listing is None:
            log.error("Listing %s not found", args.listing_id)
            return 1
        _print_listing(listings, listing)
        card = listings.share_card(listing)
        print(f"  title: {card['title']}")
        print(f"  description: {card['description']}")
        if card["image"]:
            print(f"  image: {card['image']}")
        return 0

    if args.action == "delete":
        if not listings.delete_listing(args.listing_id):
            log.error("Listing %s not found", args.listing_id)
            return 1
        print(f"Deleted {args.listing_id}")
        return 0

    return 1


def _run_purchase(args: argparse.Namespace, components: Components) -> int:
    signer = KeypairSigner.from_file(args.keypair)
    result = asyncio.run(components.checkout.purchase(
        args.listing_id, signer.address, args.token, signer, amount=args.amount,
    ))
    outcome = result.settlement
    print(f"Paid {result.record.amount} {result.record.token} for {result.record.listing_id}")
    print(f"  signature: {result.signature}")
    print(f"  settlement: {outcome.status.value} (stage {outcome.stage.value})")
    if outcome.payout_reference:
        print(f"  payout: {outcome.payout_reference} {outcome.payout_amount} USDC (fee {outcome.fee})")
    if outcome.degraded:
        print("  recorded through basic settlement:")
        for txn in components.basic_recorder.transaction_history(result.record.merchant):
            print(f"    {txn.id}  {txn.type}  {txn.amount} {txn.currency}  {txn.status.value}")
    if outcome.error:
        print(f"  note: {outcome.error}")
    return 0


def _run_settlement(args: argparse.Namespace, components: Components) -> int:
    orchestrator = components.orchestrator
    if args.action == "status":
        outcome = asyncio.run(orchestrator.get_status(args.reference))
        print(f"{args.reference}: {outcome.status.value} (stage {outcome.stage.value})")
        if outcome.degraded:
            print("  recorded through basic settlement")
        if outcome.error:
            print(f"  note: {outcome.error}")
        return 0

    if args.action == "summary":
        summary = asyncio.run(orchestrator.merchant_summary(args.wallet_id))
        print(f"Wallet {summary.wallet_id}  {summary.address}")
        print(f"  blockchains: {', '.join(summary.blockchains)}")
        print(f"  total earnings: {summary.total_earnings} USDC")
        print(f"  pending balance: {summary.pending_balance} USDC")
        print(f"  settlement fees: {summary.settlement_fees} USDC")
        print(f"  net earnings: {summary.net_earnings} USDC")
        print(f"  payments: {summary.total_payments}")
        return 0

    return 1


def _run_tokens(components: Components) -> int:
    catalog = components.catalog
    for symbol in catalog.supported_symbols():
        descriptor = catalog.describe(symbol)
        print(f"{descriptor.icon} {descriptor.symbol}: {descriptor.kind.value}, {descriptor.decimals} decimals, mint {descriptor.mint}")
    return 0


def run_cli(argv: Optional[Sequence[str]] = None, components: Optional[Components] = None) -> int:
    """
    Parse arguments and run one command.

    Returns:
        Process exit code (1 on pipeline errors)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        log_file=settings.log_file,
        log_dir=settings.log_dir,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )

    components = components or build_components()
    try:
        if args.command == "listings":
            return _run_listings(args, components)
        if args.command == "purchase":
            return _run_purchase(args, components)
        if args.command == "settlement":
            return _run_settlement(args, components)
        if args.command == "tokens":
            return _run_tokens(components)
    except BlinkPayError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1
    return 1


def main() -> None:
    """Console entry point."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
