# src/blinkpay/adapters/wallet/keypair_signer.py
"""
Keypair Signer - Local Ed25519 Wallet

Signs purchase transactions with a keypair held by the process, such as a
Solana CLI keypair file. The signer compiles the unsigned transaction into a
chain message, signs it once and returns the signature together with the
base64 wire payload that the network client sends.

Files that USE this module:
- blinkpay.app (purchase command)
- tests.test_keypair_signer (unit tests)

Files that this module USES:
- blinkpay.application.submission (Signer interface)
- blinkpay.application.transaction_builder (compile_message)
- blinkpay.domain (SignedTransaction, SignerRejected)
- solders (Keypair, Transaction)
- base58 (base58-encoded secret keys)
"""
import base64
import json
import logging
from pathlib import Path
from typing import Union

import base58
from solders.keypair import Keypair
from solders.transaction import Transaction

from blinkpay.application.submission import Signer
from blinkpay.application.transaction_builder import compile_message
from blinkpay.domain.errors import AddressInvalid, SignerRejected
from blinkpay.domain.models import SignedTransaction, UnsignedTransaction

log = logging.getLogger(__name__)

SECRET_KEY_LENGTH = 64


def load_keypair(source: Union[str, Path]) -> Keypair:
    """
    Load a keypair from a file.

    The file holds either a JSON array of 64 byte values (the Solana CLI
    format) or the same 64 bytes as a base58 string.

    Raises:
        SignerRejected: If the file is missing or does not hold a valid keypair
    """
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise SignerRejected(f"Cannot read keypair file {path}: {e}") from e

    try:
        if text.startswith("["):
            raw = bytes(json.loads(text))
        else:
            raw = base58.b58decode(text)
    except (TypeError, ValueError) as e:
        raise SignerRejected(f"Keypair file {path} is not a JSON byte array or base58 key") from e

    if len(raw) != SECRET_KEY_LENGTH:
        raise SignerRejected(f"Keypair file {path} holds {len(raw)} bytes, expected {SECRET_KEY_LENGTH}")
    try:
        return Keypair.from_bytes(raw)
    except ValueError as e:
        raise SignerRejected(f"Keypair file {path} holds an invalid keypair: {e}") from e


class KeypairSigner(Signer):
    """Signer for transactions paid by a local keypair."""

    def __init__(self, keypair: Keypair):
        self.keypair = keypair

    @classmethod
    def from_file(cls, source: Union[str, Path]) -> "KeypairSigner":
        return cls(load_keypair(source))

    @property
    def address(self) -> str:
        return str(self.keypair.pubkey())

    def sign(self, transaction: UnsignedTransaction) -> SignedTransaction:
        """
        Compile and sign the transaction.

        Raises:
            SignerRejected: If the keypair is not the fee payer or the
                transaction cannot be compiled
        """
        if transaction.fee_payer != self.address:
            raise SignerRejected(
                f"Keypair {self.address} cannot sign for fee payer {transaction.fee_payer}"
            )
        try:
            message = compile_message(transaction)
        except (ValueError, AddressInvalid) as e:
            raise SignerRejected(f"Cannot sign transaction: {e}") from e

        signed = Transaction([self.keypair], message, message.recent_blockhash)
        signature = str(signed.signatures[0])
        log.info("Signed %s transfer as %s: %s", transaction.token, self.address, signature)
        return SignedTransaction(
            signature=signature,
            payload=base64.b64encode(bytes(signed)).decode("ascii"),
        )
