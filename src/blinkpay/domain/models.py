# src/blinkpay/domain/models.py
"""
Domain Models - Pure Business Objects

This module contains domain models representing core business concepts:
- Transfer requests and the unsigned/signed transactions built from them
- Listings ("blinks") and the payment records written against them
- Settlement state carried back from the settlement network

Files that USE this module:
- blinkpay.application.* (all services use domain models)
- blinkpay.adapters.* (adapters create and use domain models)
- tests.* (tests use domain models for test data)

Files that this module USES:
- None (pure domain layer, no external dependencies)
"""

from __future__ import annotations  # Enable postponed evaluation of annotations

from dataclasses import dataclass, field  # Decorators for creating data classes
from datetime import datetime, timezone  # Date/time utilities for timestamps
from decimal import Decimal  # Exact decimal arithmetic for money
from enum import Enum  # Closed enumerations for statuses and kinds
from typing import Optional, Tuple  # Type hints


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransferKind(str, Enum):
    """How a token moves on-chain."""
    NATIVE = "native"
    ACCOUNT_BASED = "account_based"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class SettlementStatus(str, Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SettlementStatus.COMPLETED, SettlementStatus.FAILED)


class SettlementStage(str, Enum):
    """Steps of the per-payment settlement state machine."""
    CONFIRMED_ONCHAIN = "confirmed_onchain"
    QUOTED = "quoted"
    SETTLEMENT_CREATED = "settlement_created"
    BANK_SETTLEMENT_REQUESTED = "bank_settlement_requested"
    BASIC_FALLBACK = "basic_fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenDescriptor:
    """
    Transfer mechanics for a single token symbol.

    Attributes:
        symbol: Upper-case ticker (e.g., "USDC")
        decimals: Number of decimal places in one whole token
        kind: Native transfer or token-account transfer
        mint: Mint address, or "native" for the chain currency
        icon: Display glyph used when rendering amounts
    """
    symbol: str
    decimals: int
    kind: TransferKind
    mint: str
    icon: str = ""


@dataclass(frozen=True)
class TransferRequest:
    """A buyer's intent to move `amount` of `token` from sender to recipient."""
    token: str
    amount: Decimal
    sender: str
    recipient: str
    reference: Optional[str] = None


@dataclass(frozen=True)
class TransferInstruction:
    """
    One on-chain transfer instruction.

    Attributes:
        program_id: Program executing the transfer (system or token program)
        source: Account debited (wallet for native, token account otherwise)
        destination: Account credited
        authority: Wallet authorising the debit
        amount: Integer base units moved
        mint: Token mint checked by account-based transfers
        decimals: Mint decimals checked by account-based transfers
    """
    program_id: str
    source: str
    destination: str
    authority: str
    amount: int
    mint: Optional[str] = None
    decimals: Optional[int] = None


@dataclass(frozen=True)
class UnsignedTransaction:
    token: str
    fee_payer: str
    instructions: Tuple[TransferInstruction, ...]
    recent_blockhash: Optional[str] = None
    reference: Optional[str] = None


@dataclass(frozen=True)
class SignedTransaction:
    """Signature plus the wire payload (base64) produced by the signer."""
    signature: str
    payload: str


@dataclass(frozen=True)
class SubmittedTransaction:
    signature: str
    status: TransactionStatus = TransactionStatus.PENDING


@dataclass(frozen=True)
class Listing:
    """
    A merchant's published sellable item (a "blink").

    Attributes:
        id: Stable id derived from name and creation time
        name: Product name
        description: Product description
        price: Price in the reference unit (USDC)
        image_url: Image reference shown in previews
        owner: Merchant wallet address that receives payments
        created_at: Creation time (UTC)
    """
    id: str
    name: str
    description: str
    price: Decimal
    owner: str
    image_url: str = ""
    created_at: datetime = field(default_factory=utc_now)

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "image_url": self.image_url,
            "owner": self.owner,
            "created_at": self.created_at.isoformat(),
        }

    @staticmethod
    def from_json(data: dict) -> "Listing":
        created_raw = data.get("created_at")
        if isinstance(created_raw, str):
            created_at = datetime.fromisoformat(created_raw.replace("Z", "+00:00"))
            created_at = created_at.astimezone(timezone.utc)
        else:
            created_at = utc_now()
        return Listing(
            id=str(data["id"]),
            name=str(data["name"]),
            description=str(data.get("description", "")),
            price=Decimal(str(data["price"])),
            owner=str(data["owner"]),
            image_url=str(data.get("image_url", "")),
            created_at=created_at,
        )


@dataclass(frozen=True)
class PaymentRecord:
    """One confirmed on-chain transfer written against a listing."""
    listing_id: str
    buyer: str
    merchant: str
    amount: Decimal
    token: str
    signature: str
    settlement_status: SettlementStatus = SettlementStatus.PENDING
    settlement_reference: Optional[str] = None
    settlement_degraded: bool = False
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class LedgerAggregate:
    """Running totals for one listing (mutated under the ledger's lock)."""
    sale_count: int = 0
    revenue: Decimal = Decimal("0")


@dataclass(frozen=True)
class FxQuote:
    id: str
    amount: Decimal
    rate: Decimal
    source_currency: str
    destination_currency: str
    expires_at: Optional[str] = None
    buy_price: Decimal = Decimal("1")
    sell_price: Decimal = Decimal("1")


@dataclass(frozen=True)
class SettlementPayment:
    """A payment or settlement object as reported by the settlement network."""
    id: str
    status: SettlementStatus
    amount: Decimal
    type: str = "transfer"
    currency: str = "USDC"
    fx_quote_id: Optional[str] = None
    blockchain_hash: Optional[str] = None
    create_date: Optional[str] = None
    update_date: Optional[str] = None


@dataclass(frozen=True)
class SettlementOutcome:
    """
    Result of running (or polling) the settlement state machine for a payment.

    Attributes:
        stage: Last stage reached
        status: Settlement status written to the payment record
        payment_reference: Settlement-network or basic-recorder reference
        quote_id: FX quote used, if any
        degraded: True when the basic fallback recorded the payment
        error: Message describing the last failure, if any
        payout_reference: Bank payout requested for the payment, if any
        payout_amount: Amount paid out after the settlement fee
        fee: Settlement fee withheld from the payout
    """
    stage: SettlementStage
    status: SettlementStatus
    payment_reference: Optional[str] = None
    quote_id: Optional[str] = None
    degraded: bool = False
    error: Optional[str] = None
    payout_reference: Optional[str] = None
    payout_amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None


@dataclass(frozen=True)
class MerchantWallet:
    """A merchant's settlement-network wallet."""
    id: str
    address: str
    blockchains: Tuple[str, ...] = ("SOL",)
    state: str = "LIVE"
    create_date: Optional[str] = None
    update_date: Optional[str] = None


@dataclass(frozen=True)
class MerchantSummary:
    """Dashboard view of a merchant wallet: identity, earnings and fees."""
    wallet_id: str
    address: str
    blockchains: Tuple[str, ...]
    total_earnings: Decimal
    pending_balance: Decimal
    total_payments: int
    settlement_fees: Decimal = Decimal("0")
    net_earnings: Decimal = Decimal("0")
