# src/blinkpay/application/ledger.py
"""
Payment Ledger - In-Process Record of Listings and Payments

The ledger mirrors, on the client side, which listings exist and which
confirmed on-chain transfers were paid against them. Payment records are
append-only; only their settlement fields move forward as settlement
progresses. Per-listing aggregates (sale count, revenue) are updated
under a per-listing lock so concurrent buyers never lose an increment.

The ledger is constructed explicitly by the composition root and passed to
the services that need it. It is not a consensus-safe store.

Files that USE this module:
- blinkpay.application.checkout (registers listings, records payments)
- blinkpay.application.settlement (writes settlement status back)
- blinkpay.application.listings (read surface, listing deletion)
- blinkpay.app (constructs the single ledger instance)
- tests.test_ledger (unit tests)

Files that this module USES:
- blinkpay.domain.models (Listing, PaymentRecord, LedgerAggregate, SettlementStatus)
- blinkpay.domain.errors (UnknownListing, DuplicatePayment, AmountInvalid)
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from blinkpay.domain.errors import AmountInvalid, DuplicatePayment, UnknownListing
from blinkpay.domain.models import (
    LedgerAggregate,
    Listing,
    PaymentRecord,
    SettlementStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

# Settlement status may only move to a higher rank
_STATUS_RANK = {
    SettlementStatus.PENDING: 0,
    SettlementStatus.IN_TRANSIT: 1,
    SettlementStatus.COMPLETED: 2,
    SettlementStatus.FAILED: 2,
}


class PaymentLedger:
    """Thread-safe in-memory ledger of listings, payment records and aggregates."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listing_locks: Dict[str, threading.Lock] = {}
        self._listings: Dict[str, Listing] = {}
        self._aggregates: Dict[str, LedgerAggregate] = {}
        self._records: List[PaymentRecord] = []
        self._index_by_signature: Dict[str, int] = {}

    def register_listing(
        self,
        listing_id: str,
        owner: str,
        name: str,
        price,
        description: str = "",
        image_url: str = "",
    ) -> Listing:
        """
        Register a listing so payments can be recorded against it.

        Idempotent per id: registering an id twice returns the first Listing
        and leaves its aggregate untouched.
        """
        with self._lock:
            existing = self._listings.get(listing_id)
            if existing is not None:
                logger.debug("Listing %s already registered", listing_id)
                return existing
            listing = Listing(
                id=listing_id,
                name=name,
                description=description,
                price=Decimal(str(price)),
                owner=owner,
                image_url=image_url,
            )
            self._listings[listing_id] = listing
            self._aggregates[listing_id] = LedgerAggregate()
            self._listing_locks.setdefault(listing_id, threading.Lock())
            logger.info("Registered listing %s (owner=%s, price=%s)", listing_id, owner, listing.price)
            return listing

    def get_listing(self, listing_id: str) -> Optional[Listing]:
        with self._lock:
            return self._listings.get(listing_id)

    def record_payment(
        self,
        listing_id: str,
        buyer: str,
        merchant: str,
        amount,
        token: str,
        signature: str,
    ) -> PaymentRecord:
        """
        Append a payment record for a confirmed on-chain transfer.

        Args:
            listing_id: Registered listing the payment is for
            buyer: Buyer wallet address
            merchant: Merchant wallet address
            amount: Decimal amount paid
            token: Token symbol paid with
            signature: On-chain transaction signature

        Returns:
            The new PaymentRecord (settlement status PENDING)

        Raises:
            UnknownListing: If the listing was never registered
            DuplicatePayment: If the signature was already recorded
            AmountInvalid: If the amount is not a positive number
        """
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError) as e:
            raise AmountInvalid(f"Amount is not a number: {amount!r}", listing_id=listing_id) from e
        if not value.is_finite() or value <= 0:
            raise AmountInvalid(f"Amount must be positive, got {amount!r}", listing_id=listing_id)

        with self._lock:
            if listing_id not in self._listings:
                raise UnknownListing(
                    f"Listing {listing_id} is not registered", listing_id=listing_id, signature=signature
                )
            listing_lock = self._listing_locks[listing_id]
            aggregate = self._aggregates[listing_id]

        with listing_lock:
            with self._lock:
                if signature in self._index_by_signature:
                    raise DuplicatePayment(
                        "Payment already recorded", listing_id=listing_id, signature=signature
                    )
                record = PaymentRecord(
                    listing_id=listing_id,
                    buyer=buyer,
                    merchant=merchant,
                    amount=value,
                    token=token.upper(),
                    signature=signature,
                )
                self._index_by_signature[signature] = len(self._records)
                self._records.append(record)
            aggregate.sale_count += 1
            aggregate.revenue += value

        logger.info("Recorded payment %s for %s: %s %s", signature, listing_id, value, record.token)
        return record

    def update_settlement(
        self,
        signature: str,
        status: SettlementStatus,
        reference: Optional[str] = None,
        degraded: Optional[bool] = None,
    ) -> Optional[PaymentRecord]:
        """
        Move a record's settlement fields forward.

        A status that would move backwards (or away from a terminal status) is
        ignored. Returns the current record, or None if the signature is unknown.
        """
        with self._lock:
            index = self._index_by_signature.get(signature)
            if index is None:
                logger.warning("Settlement update for unknown payment %s", signature)
                return None
            current = self._records[index]
            if current.settlement_status.is_terminal or _STATUS_RANK[status] < _STATUS_RANK[current.settlement_status]:
                if status != current.settlement_status:
                    logger.debug(
                        "Ignoring settlement status %s for %s (already %s)",
                        status.value, signature, current.settlement_status.value,
                    )
                return current
            updated = replace(
                current,
                settlement_status=status,
                settlement_reference=reference or current.settlement_reference,
                settlement_degraded=current.settlement_degraded if degraded is None else degraded,
                updated_at=utc_now(),
            )
            self._records[index] = updated
            return updated

    def find_by_signature(self, signature: str) -> Optional[PaymentRecord]:
        with self._lock:
            index = self._index_by_signature.get(signature)
            return None if index is None else self._records[index]

    def find_by_settlement_reference(self, reference: str) -> Optional[PaymentRecord]:
        with self._lock:
            for record in self._records:
                if record.settlement_reference == reference:
                    return record
        return None

    def aggregate(self, listing_id: str) -> Optional[LedgerAggregate]:
        """Snapshot of a listing's aggregate, or None if unknown or discarded."""
        with self._lock:
            aggregate = self._aggregates.get(listing_id)
            lock = self._listing_locks.get(listing_id)
        if aggregate is None or lock is None:
            return None
        with lock:
            return LedgerAggregate(sale_count=aggregate.sale_count, revenue=aggregate.revenue)

    def discard_listing(self, listing_id: str) -> bool:
        """
        Forget a listing, its aggregate and its lock.

        Payment records written against it are kept, so they keep pointing at
        a listing id the ledger no longer knows.
        """
        with self._lock:
            removed = self._listings.pop(listing_id, None) is not None
            self._aggregates.pop(listing_id, None)
            self._listing_locks.pop(listing_id, None)
        if removed:
            logger.info("Discarded listing %s (payment records kept)", listing_id)
        return removed

    def transactions_for_merchant(self, merchant: str) -> List[PaymentRecord]:
        with self._lock:
            return [r for r in self._records if r.merchant == merchant]

    def transactions_for_listing(self, listing_id: str) -> List[PaymentRecord]:
        with self._lock:
            return [r for r in self._records if r.listing_id == listing_id]

    def all_transactions(self) -> List[PaymentRecord]:
        with self._lock:
            return list(self._records)
