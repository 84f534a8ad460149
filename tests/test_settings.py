# tests/test_settings.py
"""
Settings Tests - Environment Loading and Validation

Files that USE this module:
- pytest (test runner executes these tests)

Files that this module USES:
- blinkpay.config.settings (Settings)
- pydantic (ValidationError raised by field checks)
- pytest (testing framework)
"""
import pydantic  # Validation errors raised by Settings
import pytest  # Testing framework for writing and running tests

from blinkpay.config.settings import CIRCLE_API_BASE, CIRCLE_SANDBOX_API_BASE, Settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LISTINGS_FILE", str(tmp_path / "data" / "listings.json"))


class TestSettings:
    def test_defaults(self, tmp_path):
        s = Settings()
        assert s.solana_commitment == "confirmed"
        assert s.confirmation_timeout_seconds == 45
        assert s.settlement_max_attempts == 3
        assert s.settlement_fee_pct == 1.0
        assert s.circle_api_base == CIRCLE_SANDBOX_API_BASE
        assert (tmp_path / "data").is_dir()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SOLANA_COMMITMENT", " Finalized ")
        monkeypatch.setenv("SETTLEMENT_CURRENCY", "eur")
        monkeypatch.setenv("CIRCLE_USE_SANDBOX", "false")
        monkeypatch.setenv("SETTLEMENT_BANK_ACCOUNT_ID", "  ")
        monkeypatch.setenv("BLINK_BASE_URL", "https://shop.example/buy/")

        s = Settings()

        assert s.solana_commitment == "finalized"
        assert s.settlement_currency == "EUR"
        assert s.circle_api_base == CIRCLE_API_BASE
        assert s.settlement_bank_account_id is None
        assert s.blink_base_url == "https://shop.example/buy"

    @pytest.mark.parametrize("name,value", [
        ("SOLANA_COMMITMENT", "instant"),
        ("SOLANA_RPC_URL", "not-a-url"),
        ("SETTLEMENT_CURRENCY", "DOLLARS"),
        ("CONFIRMATION_TIMEOUT_SECONDS", "5"),
        ("SETTLEMENT_TIMEOUT_SECONDS", "30"),
        ("SETTLEMENT_MAX_ATTEMPTS", "9"),
    ])
    def test_rejects_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(pydantic.ValidationError):
            Settings()
