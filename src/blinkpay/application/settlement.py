# src/blinkpay/application/settlement.py
"""
Settlement Orchestrator - Off-Chain Settlement State Machine

After a payment is confirmed on-chain and recorded in the ledger, the
orchestrator tries the advanced settlement path (FX quote, settlement-network
payment, optional bank payout). If the quote or the payment cannot be
created it falls back to the basic recorder. The on-chain transfer has
already moved the buyer's funds, so settlement problems are never raised to
the purchase caller: they surface as a degraded or failed SettlementOutcome
and as the payment record's settlement fields.

    CONFIRMED_ONCHAIN -> QUOTED -> SETTLEMENT_CREATED [-> BANK_SETTLEMENT_REQUESTED]
            |               |
            +---------------+--> BASIC_FALLBACK -> SETTLEMENT_CREATED (degraded) [-> BANK_SETTLEMENT_REQUESTED]
                                                |
                                                +--> FAILED

Bank payouts are requested only when a bank account is configured and pay out
the settled amount less the settlement fee (SETTLEMENT_FEE_PCT percent).

The orchestrator keeps no state of its own; everything it learns is written
into the PaymentLedger.

Files that USE this module:
- blinkpay.application.checkout (settles each confirmed purchase)
- blinkpay.app (settlement status and summary commands)
- tests.test_settlement (unit tests)

Files that this module USES:
- blinkpay.application.ledger (PaymentLedger for settlement status writes)
- blinkpay.adapters.settlement (CircleSettlementClient, BasicSettlementRecorder)
- blinkpay.config (merchant wallet, bank account, currency and fee settings)
- blinkpay.domain (models and settlement errors)
"""
from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from functools import partial
from typing import Awaitable, Callable, Optional

from blinkpay.adapters.settlement.basic import BasicSettlementRecorder
from blinkpay.adapters.settlement.circle import CircleSettlementClient
from blinkpay.application.ledger import PaymentLedger
from blinkpay.config import settings
from blinkpay.domain.errors import SettlementError, SettlementTrackingFailed
from blinkpay.domain.models import (
    MerchantSummary,
    PaymentRecord,
    SettlementOutcome,
    SettlementStage,
    SettlementStatus,
)

logger = logging.getLogger(__name__)


def idempotency_key(prefix: str, signature: str) -> str:
    """Key for a creation call, stable for one on-chain signature."""
    return f"{prefix}_{signature}"


class SettlementOrchestrator:
    """Runs the settlement state machine for confirmed payments."""

    def __init__(
        self,
        ledger: PaymentLedger,
        client: Optional[CircleSettlementClient],
        basic: BasicSettlementRecorder,
        *,
        merchant_wallet_id: Optional[str] = None,
        bank_account_id: Optional[str] = None,
        settlement_currency: Optional[str] = None,
        fee_pct: Optional[float] = None,
        poll_interval: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ledger = ledger
        self.client = client
        self.basic = basic
        self.merchant_wallet_id = (
            settings.circle_merchant_wallet_id if merchant_wallet_id is None else merchant_wallet_id
        )
        self.bank_account_id = (
            settings.settlement_bank_account_id if bank_account_id is None else bank_account_id
        )
        self.settlement_currency = settlement_currency or settings.settlement_currency
        self.fee_pct = Decimal(str(settings.settlement_fee_pct if fee_pct is None else fee_pct))
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock

    @property
    def advanced_enabled(self) -> bool:
        return self.client is not None and self.client.configured

    async def _call(self, func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def settle(self, record: PaymentRecord) -> SettlementOutcome:
        """
        Settle one confirmed payment.

        Args:
            record: PaymentRecord just written to the ledger

        Returns:
            SettlementOutcome describing the last stage reached. Never raises:
            settlement-network failures go to the basic fallback, and any
            other failure is reported as a FAILED outcome.
        """
        try:
            return await self._settle(record)
        except Exception as e:
            logger.exception("Unexpected settlement failure for %s", record.signature)
            return self._tracking_failed(record, quote_id=None, reason=f"{type(e).__name__}: {e}")

    async def _settle(self, record: PaymentRecord) -> SettlementOutcome:
        signature = record.signature
        logger.info(
            "Settling %s (%s %s, listing %s)", signature, record.amount, record.token, record.listing_id
        )

        if not self.advanced_enabled:
            return self._fallback(record, quote_id=None, reason="advanced settlement not configured")

        try:
            quote = await self._call(
                self.client.create_fx_quote, record.amount, record.token, self.settlement_currency
            )
        except SettlementError as e:
            logger.warning("FX quote failed for %s: %s", signature, e)
            return self._fallback(record, quote_id=None, reason=f"FX quote failed: {e.message}")
        logger.info("Stage %s for %s (quote %s)", SettlementStage.QUOTED.value, signature, quote.id)

        try:
            payment = await self._call(
                self.client.create_payment,
                amount=record.amount,
                source_wallet_id=self.merchant_wallet_id,
                destination_address=record.merchant,
                idempotency_key=idempotency_key("payment", signature),
                currency=record.token,
                fx_quote_id=quote.id,
                metadata={
                    "listingId": record.listing_id,
                    "buyer": record.buyer,
                    "signature": signature,
                },
            )
        except SettlementError as e:
            logger.warning("Settlement payment failed for %s: %s", signature, e)
            return self._fallback(record, quote_id=quote.id, reason=f"Payment creation failed: {e.message}")

        updated = self.ledger.update_settlement(signature, payment.status, payment.id, degraded=False)
        status = updated.settlement_status if updated else payment.status
        stage = SettlementStage.SETTLEMENT_CREATED
        logger.info("Stage %s for %s (payment %s, %s)", stage.value, signature, payment.id, status.value)

        payout_reference = payout_amount = fee = None
        if self.bank_account_id:
            fee = self.settlement_fee(record.amount)
            net = record.amount - fee
            try:
                payout = await self._call(
                    self.client.create_settlement,
                    wallet_id=self.merchant_wallet_id,
                    amount=net,
                    bank_account_id=self.bank_account_id,
                    idempotency_key=idempotency_key("settlement", signature),
                    fx_quote_id=quote.id,
                )
                stage = SettlementStage.BANK_SETTLEMENT_REQUESTED
                payout_reference, payout_amount = payout.id, net
                logger.info("Stage %s for %s (payout %s, fee %s)", stage.value, signature, payout.id, fee)
            except SettlementError as e:
                logger.warning("Bank settlement request failed for %s: %s", signature, e)
                fee = None

        return SettlementOutcome(
            stage=stage,
            status=status,
            payment_reference=payment.id,
            quote_id=quote.id,
            payout_reference=payout_reference,
            payout_amount=payout_amount,
            fee=fee,
        )

    def _fallback(self, record: PaymentRecord, *, quote_id: Optional[str], reason: str) -> SettlementOutcome:
        logger.warning("Stage %s for %s: %s", SettlementStage.BASIC_FALLBACK.value, record.signature, reason)
        try:
            txn = self.basic.record_payment(
                merchant=record.merchant,
                amount=record.amount,
                listing_id=record.listing_id,
                buyer=record.buyer,
                signature=record.signature,
                currency=record.token,
            )
        except SettlementError as e:
            return self._tracking_failed(record, quote_id=quote_id, reason=e.message)

        updated = self.ledger.update_settlement(record.signature, txn.status, txn.id, degraded=True)
        stage = SettlementStage.SETTLEMENT_CREATED
        payout_reference = payout_amount = fee = None
        if self.bank_account_id:
            fee = self.settlement_fee(record.amount)
            try:
                payout = self.basic.initiate_settlement(record.merchant, record.amount - fee)
                stage = SettlementStage.BANK_SETTLEMENT_REQUESTED
                payout_reference, payout_amount = payout.id, payout.amount
            except SettlementError as e:
                logger.warning("Basic bank payout failed for %s: %s", record.signature, e)
                fee = None

        return SettlementOutcome(
            stage=stage,
            status=updated.settlement_status if updated else txn.status,
            payment_reference=txn.id,
            quote_id=quote_id,
            degraded=True,
            error=reason,
            payout_reference=payout_reference,
            payout_amount=payout_amount,
            fee=fee,
        )

    def _tracking_failed(self, record: PaymentRecord, *, quote_id: Optional[str], reason: str) -> SettlementOutcome:
        failure = SettlementTrackingFailed(
            f"Payment confirmed on-chain, settlement tracking failed: {reason}",
            stage=SettlementStage.BASIC_FALLBACK.value,
            signature=record.signature,
            listing_id=record.listing_id,
        )
        logger.error("%s", failure)
        self.ledger.update_settlement(record.signature, SettlementStatus.FAILED, degraded=True)
        return SettlementOutcome(
            stage=SettlementStage.FAILED,
            status=SettlementStatus.FAILED,
            quote_id=quote_id,
            degraded=True,
            error=str(failure),
        )

    @staticmethod
    def _outcome_from_record(record: PaymentRecord, error: Optional[str] = None) -> SettlementOutcome:
        stage = (
            SettlementStage.FAILED
            if record.settlement_status == SettlementStatus.FAILED
            else SettlementStage.SETTLEMENT_CREATED
        )
        return SettlementOutcome(
            stage=stage,
            status=record.settlement_status,
            payment_reference=record.settlement_reference,
            degraded=record.settlement_degraded,
            error=error,
        )

    async def get_status(self, payment_reference: str) -> SettlementOutcome:
        """
        Current settlement state for a payment reference.

        Non-terminal advanced payments are refreshed from the settlement
        network and the new status is written to the ledger. Pending basic
        bank payouts are completed when polled.

        Raises:
            SettlementError: If the reference is unknown locally and cannot be fetched
        """
        record = self.ledger.find_by_settlement_reference(payment_reference)
        if record is not None and (record.settlement_degraded or record.settlement_status.is_terminal):
            return self._outcome_from_record(record)

        txn = self.basic.get(payment_reference)
        if txn is not None and txn.type == "settlement" and txn.status == SettlementStatus.PENDING:
            txn = self.basic.complete_settlement(payment_reference) or txn
        if txn is not None:
            return SettlementOutcome(
                stage=SettlementStage.FAILED if txn.status == SettlementStatus.FAILED
                else SettlementStage.SETTLEMENT_CREATED,
                status=txn.status,
                payment_reference=txn.id,
                degraded=True,
            )

        if not self.advanced_enabled:
            if record is not None:
                return self._outcome_from_record(record)
            raise SettlementError(f"Unknown settlement reference: {payment_reference}")

        try:
            payment = await self._call(self.client.get_payment, payment_reference)
        except SettlementError as e:
            if record is None:
                raise
            logger.warning("Could not refresh settlement %s: %s", payment_reference, e)
            return self._outcome_from_record(record, error=e.message)

        status = payment.status
        if record is not None:
            updated = self.ledger.update_settlement(record.signature, payment.status)
            if updated is not None:
                status = updated.settlement_status
        return SettlementOutcome(
            stage=SettlementStage.FAILED if status == SettlementStatus.FAILED
            else SettlementStage.SETTLEMENT_CREATED,
            status=status,
            payment_reference=payment.id,
            quote_id=payment.fx_quote_id,
        )

    async def await_settlement(
        self, payment_reference: str, timeout: float = 60.0, poll_interval: Optional[float] = None
    ) -> SettlementOutcome:
        """
        Poll get_status until the settlement is terminal or `timeout` passes.

        Returns the last outcome seen, which is non-terminal on timeout.
        """
        interval = self.poll_interval if poll_interval is None else poll_interval
        deadline = self._clock() + timeout
        while True:
            outcome = await self.get_status(payment_reference)
            if outcome.status.is_terminal:
                return outcome
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning(
                    "Settlement %s still %s after %.0fs", payment_reference, outcome.status.value, timeout
                )
                return outcome
            await self._sleep(min(interval, remaining))

    def settlement_fee(self, amount) -> Decimal:
        """Fee charged on a settled amount (SETTLEMENT_FEE_PCT percent)."""
        return Decimal(str(amount)) * self.fee_pct / Decimal(100)

    async def merchant_summary(self, wallet_id: Optional[str] = None) -> MerchantSummary:
        """
        Wallet details, earnings, pending balance and fees for a settlement-network wallet.

        Raises:
            SettlementError: If advanced settlement is not configured or a wallet or listing call fails
        """
        wallet = wallet_id or self.merchant_wallet_id
        if not self.advanced_enabled or not wallet:
            raise SettlementError("Merchant summary needs CIRCLE_API_KEY and a merchant wallet id")
        details = await self._call(self.client.get_wallet, wallet)
        payments = await self._call(self.client.list_payments, wallet)
        total_earnings = sum(
            (p.amount for p in payments if p.type == "transfer" and p.status == SettlementStatus.COMPLETED),
            Decimal("0"),
        )
        pending = sum(
            (p.amount for p in payments if p.status == SettlementStatus.PENDING),
            Decimal("0"),
        )
        fees = self.settlement_fee(total_earnings)
        return MerchantSummary(
            wallet_id=wallet,
            address=details.address,
            blockchains=details.blockchains,
            total_earnings=total_earnings,
            pending_balance=pending,
            total_payments=len(payments),
            settlement_fees=fees,
            net_earnings=total_earnings - fees,
        )
