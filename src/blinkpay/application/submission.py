# src/blinkpay/application/submission.py
"""
Submission & Confirmation - Sign, Send and Wait for Finality

This module hands a built transaction to the signer, sends the signed payload
to the network and polls until the network reports a terminal state or the
confirmation deadline passes. It is the one step of a purchase that
legitimately blocks for several seconds, so every blocking call runs in the
default executor and the whole submission is a cancellable coroutine.

Signing and sending are separate steps: a failed send is retried with the
already-signed payload, so the wallet is never prompted twice for one
purchase.

Files that USE this module:
- blinkpay.application.checkout (submits the purchase transfer)
- blinkpay.adapters.network.solana_rpc (implements NetworkClient)
- tests.test_submission (unit tests)

Files that this module USES:
- blinkpay.config (timeouts, retry budget and commitment level)
- blinkpay.domain.models (UnsignedTransaction, SignedTransaction, SubmittedTransaction)
- blinkpay.domain.errors (pipeline error taxonomy)
"""
from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Awaitable, Callable, Optional

from blinkpay.config import settings
from blinkpay.domain.errors import (
    ConfirmationTimeout,
    NetworkError,
    SubmissionFailed,
    SubmissionRetryExhausted,
    TransactionRejected,
)
from blinkpay.domain.models import (
    SignedTransaction,
    SubmittedTransaction,
    TransactionStatus,
    UnsignedTransaction,
)

log = logging.getLogger(__name__)


class Signer(ABC):
    """Wallet capability: turns an unsigned transaction into a signed one."""

    @abstractmethod
    def sign(self, transaction: UnsignedTransaction) -> SignedTransaction:
        """Sign the transaction, raising SignerRejected if the wallet declines."""
        raise NotImplementedError


class NetworkClient(ABC):
    """Blocking client for the chain's RPC node."""

    @abstractmethod
    def latest_checkpoint(self) -> str:
        """Return a recent blockhash to bind the transaction to."""
        raise NotImplementedError

    @abstractmethod
    def send_transaction(self, signed: SignedTransaction) -> str:
        """Send a signed payload and return its signature."""
        raise NotImplementedError

    @abstractmethod
    def confirm(self, signature: str, target_level: str) -> TransactionStatus:
        """Return the signature's current status at the requested commitment."""
        raise NotImplementedError

    @abstractmethod
    def token_account(self, owner: str, mint: str) -> Optional[str]:
        """Return the owner's token account for `mint`, or None."""
        raise NotImplementedError


class TransactionSubmitter:
    """Signs, sends and confirms transactions against a NetworkClient."""

    def __init__(
        self,
        network: NetworkClient,
        *,
        commitment: Optional[str] = None,
        confirmation_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.network = network
        self.commitment = commitment or settings.solana_commitment
        self.confirmation_timeout = (
            settings.confirmation_timeout_seconds if confirmation_timeout is None else confirmation_timeout
        )
        self.poll_interval = (
            settings.confirmation_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.max_retries = settings.submission_max_retries if max_retries is None else max_retries
        self.backoff = settings.submission_backoff_seconds if backoff is None else backoff
        self._sleep = sleep
        self._clock = clock

    async def submit(self, transaction: UnsignedTransaction, signer: Signer) -> SubmittedTransaction:
        """
        Sign, send and confirm a transaction.

        Args:
            transaction: Output of TransactionBuilder.build
            signer: Wallet capability used exactly once

        Returns:
            SubmittedTransaction with status CONFIRMED

        Raises:
            SubmissionFailed: If no recent blockhash could be fetched
            SignerRejected: If the wallet declines; never retried
            SubmissionRetryExhausted: If every send attempt hit a transport error
            ConfirmationTimeout: If no terminal state is seen before the deadline
            TransactionRejected: If the network reports the transaction as failed
        """
        loop = asyncio.get_running_loop()

        try:
            blockhash = await loop.run_in_executor(None, self.network.latest_checkpoint)
        except NetworkError as e:
            log.error("Could not fetch a recent blockhash: %s", e)
            raise SubmissionFailed(f"Could not fetch a recent blockhash: {e}", stage="checkpoint") from e

        # The sender (authority of the transfer) pays the fee
        sender = transaction.instructions[0].authority if transaction.instructions else transaction.fee_payer
        prepared = replace(transaction, recent_blockhash=blockhash, fee_payer=sender)
        log.info("Requesting signature from %s", prepared.fee_payer)
        signed = await loop.run_in_executor(None, signer.sign, prepared)

        signature = await self._send(loop, signed)
        log.info("Transaction sent: %s", signature)

        return await self._await_confirmation(loop, signature)

    async def _send(self, loop: asyncio.AbstractEventLoop, signed: SignedTransaction) -> str:
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                sent = await loop.run_in_executor(None, self.network.send_transaction, signed)
                return sent or signed.signature
            except NetworkError as e:
                if attempt == attempts:
                    log.error("Send failed after %d attempts: %s", attempts, e)
                    raise SubmissionRetryExhausted(
                        f"Send failed after {attempts} attempts: {e}",
                        attempts=attempts,
                        stage="submit",
                        signature=signed.signature,
                    ) from e
                delay = self.backoff * (2 ** (attempt - 1))
                log.warning("Send attempt %d/%d failed (%s); retrying in %.2fs", attempt, attempts, e, delay)
                await self._sleep(delay)
        raise SubmissionFailed("Send loop ended without a result", stage="submit")

    async def _await_confirmation(self, loop: asyncio.AbstractEventLoop, signature: str) -> SubmittedTransaction:
        deadline = self._clock() + self.confirmation_timeout
        while True:
            try:
                status = await loop.run_in_executor(
                    None, self.network.confirm, signature, self.commitment
                )
            except NetworkError as e:
                log.warning("Confirmation poll for %s failed: %s", signature, e)
                status = TransactionStatus.PENDING

            if status == TransactionStatus.CONFIRMED:
                log.info("Transaction confirmed (%s): %s", self.commitment, signature)
                return SubmittedTransaction(signature=signature, status=TransactionStatus.CONFIRMED)
            if status == TransactionStatus.FAILED:
                log.error("Transaction rejected by the network: %s", signature)
                raise TransactionRejected(
                    "Network reported the transaction as failed", stage="confirm", signature=signature
                )

            remaining = deadline - self._clock()
            if remaining <= 0:
                log.error("No confirmation for %s after %.0fs", signature, self.confirmation_timeout)
                raise ConfirmationTimeout(
                    f"No confirmation after {self.confirmation_timeout:.0f}s",
                    stage="confirm",
                    signature=signature,
                )
            await self._sleep(min(self.poll_interval, remaining))
