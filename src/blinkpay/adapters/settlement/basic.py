# src/blinkpay/adapters/settlement/basic.py
"""
Basic Settlement Recorder - Fallback Settlement Book

Records confirmed payments in a simple per-merchant account book when the
settlement network cannot be used. No FX quoting or cross-border features:
a payment is written as completed with its amount, listing, buyer and
on-chain signature. Bank payouts from the book start as pending and are
completed by complete_settlement when the orchestrator polls their status.

Files that USE this module:
- blinkpay.application.settlement (BASIC_FALLBACK path and status lookups)
- blinkpay.app (constructs the recorder, prints its history after a degraded purchase)
- tests.test_settlement (unit tests)

Files that this module USES:
- blinkpay.domain.models (SettlementStatus, utc_now)
- blinkpay.domain.errors (SettlementError)
"""
from __future__ import annotations

import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from blinkpay.domain.errors import SettlementError
from blinkpay.domain.models import SettlementStatus, utc_now

log = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _reference(prefix: str) -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


@dataclass(frozen=True)
class BasicTransaction:
    id: str
    type: str  # "payment" or "settlement"
    merchant: str
    amount: Decimal
    status: SettlementStatus
    currency: str = "USDC"
    listing_id: Optional[str] = None
    signature: Optional[str] = None
    description: str = ""
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class MerchantAccount:
    """Running balances for one merchant wallet."""
    wallet: str
    balance: Decimal = Decimal("0")
    pending_balance: Decimal = Decimal("0")
    total_earnings: Decimal = Decimal("0")
    total_transactions: int = 0
    transactions: List[str] = field(default_factory=list)


class BasicSettlementRecorder:
    """Thread-safe in-memory settlement book keyed by merchant wallet."""

    def __init__(self):
        self._lock = threading.Lock()
        self._accounts: Dict[str, MerchantAccount] = {}
        self._transactions: Dict[str, BasicTransaction] = {}
        self._order: List[str] = []

    def _account(self, wallet: str) -> MerchantAccount:
        account = self._accounts.get(wallet)
        if account is None:
            account = MerchantAccount(wallet=wallet)
            self._accounts[wallet] = account
        return account

    def _store(self, account: MerchantAccount, txn: BasicTransaction) -> None:
        self._transactions[txn.id] = txn
        self._order.append(txn.id)
        account.transactions.append(txn.id)

    def record_payment(
        self,
        merchant: str,
        amount,
        listing_id: str,
        buyer: str,
        signature: str,
        currency: str = "USDC",
    ) -> BasicTransaction:
        """
        Record a confirmed payment as a completed book entry.

        Raises:
            SettlementError: If the payment details are incomplete
        """
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError) as e:
            raise SettlementError(f"Cannot record payment with amount {amount!r}") from e
        if not signature or not merchant or not value.is_finite() or value <= 0:
            raise SettlementError(
                "Cannot record payment: signature, merchant and a positive amount are required",
                signature=signature or None,
                listing_id=listing_id,
            )

        txn = BasicTransaction(
            id=_reference("txn"),
            type="payment",
            merchant=merchant,
            amount=value,
            status=SettlementStatus.COMPLETED,
            currency=currency,
            listing_id=listing_id,
            signature=signature,
            description=f"Payment received from {buyer[:8]}...",
        )
        with self._lock:
            account = self._account(merchant)
            account.balance += value
            account.total_earnings += value
            account.pending_balance += value
            account.total_transactions += 1
            self._store(account, txn)
        log.info("Basic settlement recorded %s: %s %s for %s", txn.id, value, currency, listing_id)
        return txn

    def initiate_settlement(self, merchant: str, amount) -> BasicTransaction:
        """
        Start a payout of `amount` from the merchant's book balance.

        Raises:
            SettlementError: If the merchant has no account or too small a balance
        """
        value = Decimal(str(amount))
        with self._lock:
            account = self._accounts.get(merchant)
            if account is None:
                raise SettlementError(f"Merchant account not found: {merchant}")
            if account.balance < value:
                raise SettlementError(
                    f"Insufficient balance for settlement: {account.balance} < {value}"
                )
            txn = BasicTransaction(
                id=_reference("settlement"),
                type="settlement",
                merchant=merchant,
                amount=value,
                status=SettlementStatus.PENDING,
                description="Settlement to bank account",
            )
            account.balance -= value
            account.pending_balance -= value
            self._store(account, txn)
        log.info("Basic settlement %s initiated for %s: %s", txn.id, merchant, value)
        return txn

    def complete_settlement(self, reference: str) -> Optional[BasicTransaction]:
        with self._lock:
            txn = self._transactions.get(reference)
            if txn is None or txn.status.is_terminal:
                return txn
            txn = replace(txn, status=SettlementStatus.COMPLETED)
            self._transactions[reference] = txn
        log.info("Basic settlement %s completed", reference)
        return txn

    def get(self, reference: str) -> Optional[BasicTransaction]:
        with self._lock:
            return self._transactions.get(reference)

    def merchant_account(self, wallet: str) -> MerchantAccount:
        """Copy of the merchant's account (empty if it never received a payment)."""
        with self._lock:
            account = self._accounts.get(wallet)
            if account is None:
                return MerchantAccount(wallet=wallet)
            return replace(account, transactions=list(account.transactions))

    def transaction_history(self, wallet: str) -> List[BasicTransaction]:
        with self._lock:
            account = self._accounts.get(wallet)
            if account is None:
                return []
            return [self._transactions[ref] for ref in account.transactions]

    def all_transactions(self) -> List[BasicTransaction]:
        with self._lock:
            return [self._transactions[ref] for ref in self._order]
