# src/blinkpay/application/transaction_builder.py
"""
Transaction Builder - Unsigned Transfer Construction

Turns a buyer's TransferRequest into an UnsignedTransaction for the token's
transfer mechanism. The builder performs no network I/O: token accounts for
account-based transfers come from an injected TokenAccountResolver, which is
either derived locally (associated token accounts) or pre-populated from
network lookups.

Once the submitter has attached a recent blockhash, compile_message turns the
transaction into a chain message: a system-program transfer for the native
token, or a checked token-program transfer (amount, mint and decimals) for
account-based tokens.

Files that USE this module:
- blinkpay.application.checkout (builds the purchase transfer)
- blinkpay.adapters.wallet.keypair_signer (compiles the message it signs)
- blinkpay.app (wires the builder with the token catalog)
- tests.test_transaction_builder (unit tests)

Files that this module USES:
- blinkpay.domain.tokens (TokenCatalog, program ids)
- blinkpay.domain.models (TransferRequest, UnsignedTransaction, TransferInstruction)
- blinkpay.domain.errors (AddressInvalid, AmountInvalid, TokenAccountUnavailable)
- base58 (address decoding with precise error messages)
- solders (public keys, hashes, system transfers, messages)
- spl.token (associated token accounts, checked token transfers)
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import base58
from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.instructions import get_associated_token_address, transfer_checked
from spl.token.models import TransferCheckedParams

from blinkpay.domain.errors import AddressInvalid, AmountInvalid, TokenAccountUnavailable
from blinkpay.domain.models import (
    TokenDescriptor,
    TransferInstruction,
    TransferKind,
    TransferRequest,
    UnsignedTransaction,
)
from blinkpay.domain.tokens import SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, TokenCatalog

log = logging.getLogger(__name__)

PUBLIC_KEY_LENGTH = 32


def decode_address(address: str, role: str = "address") -> bytes:
    """
    Decode a base58 address into its 32 raw key bytes.

    Raises:
        AddressInvalid: If the string is not base58 or not 32 bytes long
    """
    if not address or not isinstance(address, str):
        raise AddressInvalid(f"Missing {role}")
    try:
        raw = base58.b58decode(address.strip())
    except ValueError as e:
        raise AddressInvalid(f"Invalid {role}: {address!r} is not base58") from e
    if len(raw) != PUBLIC_KEY_LENGTH:
        raise AddressInvalid(
            f"Invalid {role}: {address!r} decodes to {len(raw)} bytes, expected {PUBLIC_KEY_LENGTH}"
        )
    return raw


def to_pubkey(address: str, role: str = "address") -> Pubkey:
    return Pubkey(decode_address(address, role))


class TokenAccountResolver(ABC):
    @abstractmethod
    def resolve(self, owner: str, mint: str) -> Optional[str]:
        """Return the owner's token account for `mint`, or None if it has none."""
        raise NotImplementedError


class DerivedAccountResolver(TokenAccountResolver):
    """
    Resolves the associated token account of (owner, mint).

    The address is the program-derived address of (owner, token program,
    mint) under the associated token account program, which is the account
    wallets create by default. Its existence is not checked: a transfer to an
    associated account that was never created fails on-chain.
    """

    def resolve(self, owner: str, mint: str) -> Optional[str]:
        account = get_associated_token_address(to_pubkey(owner, "owner"), to_pubkey(mint, "mint"))
        return str(account)


class StaticAccountResolver(TokenAccountResolver):
    """Resolver backed by accounts already looked up against the network."""

    def __init__(self, accounts: Optional[Dict[Tuple[str, str], Optional[str]]] = None):
        self._accounts: Dict[Tuple[str, str], Optional[str]] = dict(accounts or {})

    def add(self, owner: str, mint: str, account: Optional[str]) -> None:
        self._accounts[(owner, mint)] = account

    def resolve(self, owner: str, mint: str) -> Optional[str]:
        return self._accounts.get((owner, mint))


class TransactionBuilder:
    """Builds unsigned transfer transactions for the tokens in a catalog."""

    def __init__(self, catalog: TokenCatalog, resolver: Optional[TokenAccountResolver] = None):
        self.catalog = catalog
        self.resolver = resolver or DerivedAccountResolver()

    def build(
        self, request: TransferRequest, resolver: Optional[TokenAccountResolver] = None
    ) -> UnsignedTransaction:
        """
        Build the unsigned transfer for a request.

        Args:
            request: Token, amount, sender, recipient and optional reference
            resolver: Overrides the builder's resolver for this call

        Returns:
            UnsignedTransaction with the sender as fee payer and one instruction

        Raises:
            UnknownToken: If the token is not in the catalog
            AddressInvalid: If sender or recipient is not a 32-byte base58 key
            AmountInvalid: If the amount is not positive after scaling
            TokenAccountUnavailable: If an account-based transfer has no account to use
        """
        descriptor = self.catalog.describe(request.token)
        decode_address(request.sender, "sender")
        decode_address(request.recipient, "recipient")
        units = self._base_units(descriptor, request.amount)

        if descriptor.kind is TransferKind.NATIVE:
            instruction = TransferInstruction(
                program_id=SYSTEM_PROGRAM_ID,
                source=request.sender,
                destination=request.recipient,
                authority=request.sender,
                amount=units,
            )
        else:
            instruction = self._token_transfer(descriptor, request, units, resolver or self.resolver)

        log.info(
            "Built %s transfer: %s base units %s -> %s",
            descriptor.symbol, units, request.sender, request.recipient,
        )
        return UnsignedTransaction(
            token=descriptor.symbol,
            fee_payer=request.sender,
            instructions=(instruction,),
            reference=request.reference,
        )

    def _base_units(self, descriptor: TokenDescriptor, amount) -> int:
        if amount is None or isinstance(amount, bool):
            raise AmountInvalid(f"Amount must be a positive number, got {amount!r}")
        units = self.catalog.to_base_units(descriptor.symbol, amount)
        if units <= 0:
            raise AmountInvalid(
                f"Amount {amount} {descriptor.symbol} is not a positive number of base units"
            )
        return units

    def _token_transfer(
        self,
        descriptor: TokenDescriptor,
        request: TransferRequest,
        units: int,
        resolver: TokenAccountResolver,
    ) -> TransferInstruction:
        source = resolver.resolve(request.sender, descriptor.mint)
        if not source:
            raise TokenAccountUnavailable(
                f"Sender holds no {descriptor.symbol} account; it must hold the token already"
            )
        destination = resolver.resolve(request.recipient, descriptor.mint)
        if not destination:
            raise TokenAccountUnavailable(
                f"Recipient holds no {descriptor.symbol} account; it must hold the token already"
            )
        decode_address(source, "sender token account")
        decode_address(destination, "recipient token account")
        return TransferInstruction(
            program_id=TOKEN_PROGRAM_ID,
            source=source,
            destination=destination,
            authority=request.sender,
            amount=units,
            mint=descriptor.mint,
            decimals=descriptor.decimals,
        )


def to_instruction(instruction: TransferInstruction) -> Instruction:
    """
    Chain instruction for one TransferInstruction.

    Raises:
        AddressInvalid: If an account is not a 32-byte base58 key
        ValueError: If the program is unsupported or a token transfer lacks mint/decimals
    """
    if instruction.program_id == SYSTEM_PROGRAM_ID:
        return transfer(TransferParams(
            from_pubkey=to_pubkey(instruction.source, "sender"),
            to_pubkey=to_pubkey(instruction.destination, "recipient"),
            lamports=instruction.amount,
        ))
    if instruction.program_id == TOKEN_PROGRAM_ID:
        if instruction.mint is None or instruction.decimals is None:
            raise ValueError("Token transfer needs the mint and its decimals")
        return transfer_checked(TransferCheckedParams(
            program_id=to_pubkey(TOKEN_PROGRAM_ID, "token program"),
            source=to_pubkey(instruction.source, "sender token account"),
            mint=to_pubkey(instruction.mint, "mint"),
            dest=to_pubkey(instruction.destination, "recipient token account"),
            owner=to_pubkey(instruction.authority, "authority"),
            amount=instruction.amount,
            decimals=instruction.decimals,
        ))
    raise ValueError(f"Unsupported transfer program {instruction.program_id}")


def compile_message(transaction: UnsignedTransaction) -> Message:
    """
    Compile a transaction into the message a wallet signs.

    Raises:
        ValueError: If no recent blockhash has been attached yet
        AddressInvalid: If the fee payer, an account or the blockhash is malformed
    """
    if not transaction.recent_blockhash:
        raise ValueError("Transaction has no recent blockhash")
    blockhash = Hash(decode_address(transaction.recent_blockhash, "recent blockhash"))
    return Message.new_with_blockhash(
        [to_instruction(ix) for ix in transaction.instructions],
        to_pubkey(transaction.fee_payer, "fee payer"),
        blockhash,
    )
