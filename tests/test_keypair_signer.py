# tests/test_keypair_signer.py
"""
Keypair Signer Tests - Loading Keypairs and Signing Transfers

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.adapters.wallet (KeypairSigner, load_keypair)
- blinkpay.application.transaction_builder (TransactionBuilder)
- solders (Keypair, Transaction)
- pytest (testing framework)
"""
import base64
import json
from dataclasses import replace
from decimal import Decimal

import base58
import pytest  # Testing framework for writing and running tests
from solders.keypair import Keypair
from solders.transaction import Transaction

from conftest import MERCHANT, make_address
from blinkpay.adapters.wallet import KeypairSigner, load_keypair
from blinkpay.application.transaction_builder import TransactionBuilder
from blinkpay.domain.errors import SignerRejected
from blinkpay.domain.models import TransferRequest
from blinkpay.domain.tokens import TokenCatalog

BLOCKHASH = make_address(9)


@pytest.fixture
def keypair():
    return Keypair.from_seed(bytes([7]) * 32)


def _sol_transfer(sender, blockhash=BLOCKHASH):
    tx = TransactionBuilder(TokenCatalog()).build(
        TransferRequest(token="SOL", amount=Decimal("0.25"), sender=sender, recipient=MERCHANT)
    )
    return replace(tx, recent_blockhash=blockhash)


class TestSign:
    def test_signature_matches_wire_payload(self, keypair):
        signer = KeypairSigner(keypair)

        signed = signer.sign(_sol_transfer(signer.address))

        wire = Transaction.from_bytes(base64.b64decode(signed.payload))
        assert str(wire.signatures[0]) == signed.signature
        assert str(wire.message.account_keys[0]) == signer.address
        wire.verify()

    def test_other_fee_payer_rejected(self, keypair):
        with pytest.raises(SignerRejected, match="fee payer"):
            KeypairSigner(keypair).sign(_sol_transfer(make_address(3)))

    def test_unset_blockhash_rejected(self, keypair):
        signer = KeypairSigner(keypair)
        with pytest.raises(SignerRejected, match="blockhash"):
            signer.sign(_sol_transfer(signer.address, blockhash=None))


class TestLoadKeypair:
    def test_json_byte_array(self, keypair, tmp_path):
        path = tmp_path / "id.json"
        path.write_text(json.dumps(list(bytes(keypair))), encoding="utf-8")

        assert load_keypair(path).pubkey() == keypair.pubkey()
        assert KeypairSigner.from_file(path).address == str(keypair.pubkey())

    def test_base58_secret(self, keypair, tmp_path):
        path = tmp_path / "id.txt"
        path.write_text(base58.b58encode(bytes(keypair)).decode("ascii") + "\n", encoding="utf-8")

        assert load_keypair(path).pubkey() == keypair.pubkey()

    @pytest.mark.parametrize("content", ["[1, 2, 3]", "not base58 0OIl", "[1, 2", '["a"]'])
    def test_malformed_file(self, tmp_path, content):
        path = tmp_path / "id.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(SignerRejected):
            load_keypair(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(SignerRejected, match="Cannot read"):
            load_keypair(tmp_path / "missing.json")
