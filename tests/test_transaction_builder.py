# tests/test_transaction_builder.py
"""
Transaction Builder Tests - Native and Account-Based Transfers

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.application.transaction_builder (TransactionBuilder, resolvers)
- blinkpay.domain (models, tokens and errors)
- solders (program-derived addresses, compiled messages)
- pytest (testing framework)
"""
import struct
from dataclasses import replace
from decimal import Decimal

import pytest  # Testing framework for writing and running tests
from solders.pubkey import Pubkey

from conftest import BUYER, MERCHANT, make_address
from blinkpay.application.transaction_builder import (
    DerivedAccountResolver,
    StaticAccountResolver,
    TransactionBuilder,
    compile_message,
    decode_address,
    to_instruction,
)
from blinkpay.domain.errors import AddressInvalid, AmountInvalid, TokenAccountUnavailable, UnknownToken
from blinkpay.domain.models import TransferRequest
from blinkpay.domain.tokens import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    TokenCatalog,
)

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _request(token="USDC", amount="25", sender=BUYER, recipient=MERCHANT, reference=None):
    return TransferRequest(
        token=token, amount=Decimal(amount), sender=sender, recipient=recipient, reference=reference
    )


class TestNativeTransfer:
    def test_listing_price_five_in_native_token(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="SOL", amount="5"))
        assert len(tx.instructions) == 1
        ix = tx.instructions[0]
        assert ix.program_id == SYSTEM_PROGRAM_ID
        assert ix.source == BUYER
        assert ix.destination == MERCHANT
        assert ix.amount == 5_000_000_000

    def test_sender_is_fee_payer(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="SOL", amount="0.5", reference="ref-1"))
        assert tx.fee_payer == BUYER
        assert tx.reference == "ref-1"
        assert tx.recent_blockhash is None


class TestAccountBasedTransfer:
    def test_twenty_five_usdc(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="USDC", amount="25"))
        assert len(tx.instructions) == 1
        ix = tx.instructions[0]
        assert ix.program_id == TOKEN_PROGRAM_ID
        assert ix.amount == 25_000_000
        assert ix.authority == BUYER
        # Token accounts, not wallets
        assert ix.source not in (BUYER, MERCHANT)
        assert ix.destination not in (BUYER, MERCHANT)

    def test_derived_accounts_are_deterministic(self):
        resolver = DerivedAccountResolver()
        first = resolver.resolve(BUYER, USDC_MINT)
        assert first == resolver.resolve(BUYER, USDC_MINT)
        assert first != resolver.resolve(MERCHANT, USDC_MINT)
        assert len(decode_address(first)) == 32

    def test_derived_account_is_associated_token_account(self):
        owner, mint = Pubkey.from_string(BUYER), Pubkey.from_string(USDC_MINT)
        expected, _bump = Pubkey.find_program_address(
            [bytes(owner), bytes(Pubkey.from_string(TOKEN_PROGRAM_ID)), bytes(mint)],
            Pubkey.from_string(ASSOCIATED_TOKEN_PROGRAM_ID),
        )
        assert DerivedAccountResolver().resolve(BUYER, USDC_MINT) == str(expected)

    def test_instruction_carries_mint_and_decimals(self):
        ix = TransactionBuilder(TokenCatalog()).build(_request()).instructions[0]
        assert ix.mint == USDC_MINT
        assert ix.decimals == 6

    def test_static_resolver_accounts_used(self):
        source, destination = make_address(10), make_address(11)
        resolver = StaticAccountResolver({(BUYER, USDC_MINT): source, (MERCHANT, USDC_MINT): destination})
        tx = TransactionBuilder(TokenCatalog(), resolver).build(_request())
        assert tx.instructions[0].source == source
        assert tx.instructions[0].destination == destination

    def test_per_call_resolver_overrides_default(self):
        resolver = StaticAccountResolver({(BUYER, USDC_MINT): make_address(10)})
        with pytest.raises(TokenAccountUnavailable, match="Recipient"):
            TransactionBuilder(TokenCatalog()).build(_request(), resolver)

    def test_sender_without_account(self):
        resolver = StaticAccountResolver({(MERCHANT, USDC_MINT): make_address(11)})
        with pytest.raises(TokenAccountUnavailable, match="Sender"):
            TransactionBuilder(TokenCatalog(), resolver).build(_request())


class TestValidation:
    @pytest.mark.parametrize("amount", ["0", "-1", "-0.000001"])
    def test_non_positive_amount(self, amount):
        with pytest.raises(AmountInvalid):
            TransactionBuilder(TokenCatalog()).build(_request(amount=amount))

    def test_amount_truncating_to_zero_units(self):
        with pytest.raises(AmountInvalid):
            TransactionBuilder(TokenCatalog()).build(_request(amount="0.0000001"))

    @pytest.mark.parametrize("amount", ["0.000001", "1", "1234.5"])
    def test_positive_amounts_build(self, amount):
        tx = TransactionBuilder(TokenCatalog()).build(_request(amount=amount))
        assert tx.instructions[0].amount > 0

    def test_invalid_sender(self):
        with pytest.raises(AddressInvalid):
            TransactionBuilder(TokenCatalog()).build(_request(sender="not-an-address"))

    def test_recipient_with_wrong_length(self):
        # Valid base58, far too short for a key
        with pytest.raises(AddressInvalid):
            TransactionBuilder(TokenCatalog()).build(_request(recipient="2NEpo7TZRRrLZSi2U"))

    def test_unknown_token(self):
        with pytest.raises(UnknownToken):
            TransactionBuilder(TokenCatalog()).build(_request(token="BTC"))


class TestCompileMessage:
    BLOCKHASH = make_address(9)

    def test_system_transfer_instruction(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="SOL", amount="5"))
        ix = to_instruction(tx.instructions[0])

        assert str(ix.program_id) == SYSTEM_PROGRAM_ID
        assert bytes(ix.data) == struct.pack("<IQ", 2, 5_000_000_000)
        assert [str(meta.pubkey) for meta in ix.accounts] == [BUYER, MERCHANT]
        assert ix.accounts[0].is_signer

    def test_checked_token_transfer_instruction(self):
        source, destination = make_address(10), make_address(11)
        resolver = StaticAccountResolver({(BUYER, USDC_MINT): source, (MERCHANT, USDC_MINT): destination})
        tx = TransactionBuilder(TokenCatalog(), resolver).build(_request(amount="25"))
        ix = to_instruction(tx.instructions[0])

        assert str(ix.program_id) == TOKEN_PROGRAM_ID
        assert bytes(ix.data) == bytes([12]) + struct.pack("<Q", 25_000_000) + bytes([6])
        assert [str(meta.pubkey) for meta in ix.accounts] == [source, USDC_MINT, destination, BUYER]

    def test_token_transfer_without_mint(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request())
        ix = replace(tx.instructions[0], mint=None)
        with pytest.raises(ValueError, match="mint"):
            to_instruction(ix)

    def test_message_uses_fee_payer_and_blockhash(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="SOL", amount="1"))
        message = compile_message(replace(tx, recent_blockhash=self.BLOCKHASH))

        assert str(message.account_keys[0]) == BUYER
        assert str(message.recent_blockhash) == self.BLOCKHASH
        assert len(message.instructions) == 1

    def test_missing_blockhash(self):
        tx = TransactionBuilder(TokenCatalog()).build(_request(token="SOL", amount="1"))
        with pytest.raises(ValueError, match="blockhash"):
            compile_message(tx)
