# src/blinkpay/application/checkout.py
"""
Checkout Service - End-to-End Purchase Pipeline

Runs one buyer's purchase of a listing, strictly in order:

    listing -> ledger registration -> token accounts -> build
            -> sign/send/confirm -> record payment -> settle

Nothing is written to the ledger's payment records until the transfer is
confirmed, so a purchase that fails or is cancelled before confirmation
leaves no trace. Settlement runs after the record exists and never turns a
confirmed purchase into a failure.

Files that USE this module:
- blinkpay.app (composition root builds the CheckoutService)
- tests.test_checkout (end-to-end purchase scenarios)

Files that this module USES:
- blinkpay.adapters.persistence.listing_store (ListingStore lookups)
- blinkpay.application.ledger (PaymentLedger)
- blinkpay.application.transaction_builder (TransactionBuilder, resolvers)
- blinkpay.application.submission (TransactionSubmitter, Signer, NetworkClient)
- blinkpay.application.settlement (SettlementOrchestrator)
- blinkpay.domain (models, tokens and errors)
- blinkpay.shared.validators (amount parsing)
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from blinkpay.adapters.persistence.listing_store import ListingStore
from blinkpay.application.ledger import PaymentLedger
from blinkpay.application.settlement import SettlementOrchestrator
from blinkpay.application.submission import NetworkClient, Signer, TransactionSubmitter
from blinkpay.application.transaction_builder import (
    StaticAccountResolver,
    TokenAccountResolver,
    TransactionBuilder,
    decode_address,
)
from blinkpay.domain.errors import AmountInvalid, BlinkPayError, UnknownListing
from blinkpay.domain.models import (
    PaymentRecord,
    SettlementOutcome,
    TokenDescriptor,
    TransferKind,
    TransferRequest,
)
from blinkpay.domain.tokens import TokenCatalog
from blinkpay.shared.validators import parse_positive_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    """Confirmed signature, the ledger record and how settlement went."""
    signature: str
    record: PaymentRecord
    settlement: SettlementOutcome


class CheckoutService:
    """Coordinates builder, submitter, ledger and settlement for one purchase."""

    def __init__(
        self,
        store: ListingStore,
        ledger: PaymentLedger,
        catalog: TokenCatalog,
        builder: TransactionBuilder,
        submitter: TransactionSubmitter,
        orchestrator: SettlementOrchestrator,
        network: Optional[NetworkClient] = None,
    ):
        """
        Initialize the checkout service.

        Args:
            store: Source of listings (recipient, price)
            ledger: Ledger receiving the payment record
            catalog: Token catalog
            builder: Transaction builder
            submitter: Signs, sends and confirms
            orchestrator: Settles confirmed payments
            network: When set, token accounts are looked up on the network;
                otherwise the builder's own resolver is used
        """
        self.store = store
        self.ledger = ledger
        self.catalog = catalog
        self.builder = builder
        self.submitter = submitter
        self.orchestrator = orchestrator
        self.network = network

    async def purchase(
        self,
        listing_id: str,
        buyer: str,
        token: str,
        signer: Signer,
        amount=None,
        reference: Optional[str] = None,
    ) -> PurchaseResult:
        """
        Buy a listing with `token`.

        Args:
            listing_id: Listing being bought
            buyer: Buyer wallet address (sender and fee payer)
            token: Token symbol to pay with
            signer: Wallet capability for the buyer
            amount: Amount to pay (defaults to the listing price)
            reference: Optional idempotency reference carried on the transaction

        Returns:
            PurchaseResult for the confirmed transfer

        Raises:
            BlinkPayError: Any pipeline error, with stage, listing id and
                signature (once assigned) filled in
        """
        stage = "listing"
        signature: Optional[str] = None
        try:
            listing = self.store.get(listing_id)
            if listing is None:
                raise UnknownListing(f"Listing {listing_id} not found")
            self.ledger.register_listing(
                listing.id,
                listing.owner,
                listing.name,
                listing.price,
                description=listing.description,
                image_url=listing.image_url,
            )

            stage = "build"
            descriptor = self.catalog.describe(token)
            raw_amount = listing.price if amount is None else amount
            value = parse_positive_decimal(raw_amount)
            if value is None:
                raise AmountInvalid(f"Amount must be a positive number, got {raw_amount!r}")
            decode_address(buyer, "sender")
            decode_address(listing.owner, "recipient")

            stage = "resolve"
            resolver = await self._resolve_accounts(descriptor, buyer, listing.owner)

            stage = "build"
            request = TransferRequest(
                token=descriptor.symbol,
                amount=value,
                sender=buyer,
                recipient=listing.owner,
                reference=reference,
            )
            unsigned = self.builder.build(request, resolver)

            stage = "submit"
            logger.info("Submitting purchase of %s: %s %s from %s", listing.id, value, descriptor.symbol, buyer)
            submitted = await self.submitter.submit(unsigned, signer)
            signature = submitted.signature

            stage = "record"
            record = self.ledger.record_payment(
                listing.id, buyer, listing.owner, value, descriptor.symbol, signature
            )
        except BlinkPayError as e:
            logger.error("Purchase of %s failed at %s: %s", listing_id, stage, e)
            raise e.with_context(stage=stage, signature=signature, listing_id=listing_id)

        outcome = await self.orchestrator.settle(record)
        current = self.ledger.find_by_signature(signature) or record
        logger.info(
            "Purchase of %s complete: %s (settlement %s, %s)",
            listing.id, signature, outcome.stage.value, outcome.status.value,
        )
        return PurchaseResult(signature=signature, record=current, settlement=outcome)

    async def _resolve_accounts(
        self, descriptor: TokenDescriptor, buyer: str, merchant: str
    ) -> Optional[TokenAccountResolver]:
        """Look up both token accounts on the network for account-based tokens."""
        if descriptor.kind is TransferKind.NATIVE or self.network is None:
            return None
        loop = asyncio.get_running_loop()
        sender_account = await loop.run_in_executor(None, self.network.token_account, buyer, descriptor.mint)
        recipient_account = await loop.run_in_executor(
            None, self.network.token_account, merchant, descriptor.mint
        )
        resolver = StaticAccountResolver()
        resolver.add(buyer, descriptor.mint, sender_account)
        resolver.add(merchant, descriptor.mint, recipient_account)
        return resolver
