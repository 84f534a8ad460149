# src/blinkpay/domain/errors.py
"""
Domain Errors - Payment Pipeline Exceptions

This module defines the exception taxonomy for the whole payment pipeline.
Every error carries the context a caller needs to decide between retrying
and escalating: the pipeline stage reached, the on-chain signature if one was
assigned, and the listing involved.

Files that USE this module:
- blinkpay.domain.tokens (UnknownToken, AmountInvalid)
- blinkpay.application.* (raise and wrap pipeline errors)
- blinkpay.adapters.* (translate transport failures into domain errors)
- blinkpay.app (maps errors to CLI exit codes)
"""
from __future__ import annotations

from typing import Optional


class BlinkPayError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str = "",
        *,
        stage: Optional[str] = None,
        signature: Optional[str] = None,
        listing_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.signature = signature
        self.listing_id = listing_id

    def with_context(
        self,
        *,
        stage: Optional[str] = None,
        signature: Optional[str] = None,
        listing_id: Optional[str] = None,
    ) -> "BlinkPayError":
        """Fill in any context fields that are still unset and return self."""
        if self.stage is None:
            self.stage = stage
        if self.signature is None:
            self.signature = signature
        if self.listing_id is None:
            self.listing_id = listing_id
        return self

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.stage:
            parts.append(f"stage={self.stage}")
        if self.listing_id:
            parts.append(f"listing={self.listing_id}")
        if self.signature:
            parts.append(f"signature={self.signature}")
        return " | ".join(parts)


# --- Input errors: rejected immediately, never retried ---

class InputError(BlinkPayError):
    """Caller supplied invalid input."""
    pass


class AmountInvalid(InputError):
    """Raised when an amount is not a positive number of base units."""
    pass


class AddressInvalid(InputError):
    """Raised when an address cannot be parsed as an on-chain address."""
    pass


class ValidationError(InputError):
    """Raised when a listing fails validation."""
    pass


class UnknownToken(InputError):
    """Raised when a token symbol is not registered in the catalog."""
    pass


class UnknownListing(InputError):
    """Raised when a listing id was never registered."""
    pass


class DuplicatePayment(InputError):
    """Raised when a signature has already been recorded."""
    pass


# --- Capability errors: terminal for the current attempt ---

class CapabilityError(BlinkPayError):
    """An external capability refused or could not perform the step."""
    pass


class SignerRejected(CapabilityError):
    """Raised when the signer declines or no wallet is available."""
    pass


class TokenAccountUnavailable(CapabilityError):
    """Raised when sender or recipient holds no account for the token."""
    pass


# --- Transient network errors: retried with backoff, then surfaced ---

class TransientNetworkError(BlinkPayError):
    """Transport-level failure that may succeed on retry."""
    pass


class RetryExhausted(TransientNetworkError):
    """Raised after the bounded retry budget has been used up."""

    def __init__(self, message: str = "", *, attempts: int = 0, **context):
        super().__init__(message, **context)
        self.attempts = attempts


class NetworkError(TransientNetworkError):
    """Raised by the network client on RPC transport failures."""
    pass


class SubmissionFailed(TransientNetworkError):
    """Raised when a signed transaction could not be sent."""
    pass


class SubmissionRetryExhausted(SubmissionFailed, RetryExhausted):
    """Raised when every send attempt failed."""
    pass


# --- Confirmation errors: on-chain state is authoritative ---

class ConfirmationError(BlinkPayError):
    """Submitted transaction did not reach a confirmed state."""
    pass


class ConfirmationTimeout(ConfirmationError):
    """Raised when no terminal state is reached before the deadline."""
    pass


class TransactionRejected(ConfirmationError):
    """Raised when the network reports the transaction as failed."""
    pass


# --- Settlement errors: never escalated to a purchase failure ---

class SettlementError(BlinkPayError):
    """Base exception for settlement-network failures."""
    pass


class SettlementRejected(SettlementError):
    """Raised when the settlement network answers with a 4xx status."""

    def __init__(self, message: str = "", *, status_code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.status_code = status_code


class SettlementTransportError(SettlementError, TransientNetworkError):
    """Raised on timeouts, connection errors and 5xx answers."""
    pass


class SettlementRetryExhausted(SettlementTransportError, RetryExhausted):
    """Raised when every settlement attempt hit a transport failure."""
    pass


class SettlementTrackingFailed(SettlementError):
    """Payment confirmed on-chain, but no settlement path recorded it."""
    pass
