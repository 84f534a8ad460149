# tests/conftest.py
"""
Shared Test Fixtures - Addresses, Clocks, Fakes

Files that USE this module:
- pytest (fixtures are collected automatically)

Files that this module USES:
- base58 (valid 32-byte test addresses)
- blinkpay.domain.models (SignedTransaction)
"""
import base58  # Encode raw key bytes into base58 addresses
import pytest  # Testing framework for writing and running tests

from blinkpay.domain.models import SignedTransaction  # Signer output


def make_address(seed: int) -> str:
    """A valid 32-byte base58 address built from a single repeated byte."""
    return base58.b58encode(bytes([seed]) * 32).decode("ascii")


BUYER = make_address(1)
MERCHANT = make_address(2)


class FakeClock:
    """Monotonic clock that only moves when the code under test sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def sync_sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeSigner:
    """Signer that records what it was asked to sign."""

    def __init__(self, signature: str = "sig-1"):
        self.signature = signature
        self.signed = []

    def sign(self, transaction):
        self.signed.append(transaction)
        return SignedTransaction(signature=self.signature, payload="c2lnbmVk")


@pytest.fixture
def buyer():
    return BUYER


@pytest.fixture
def merchant():
    return MERCHANT


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer():
    return FakeSigner()


@pytest.fixture
def listings_file(tmp_path):
    return tmp_path / "listings.json"
