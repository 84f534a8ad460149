# src/blinkpay/adapters/settlement/circle.py
"""
Circle Settlement Client - Payments Network HTTP Adapter

This module implements the settlement-network client: FX quotes, payment
creation, payment status, bank settlements and payment listings over
bearer-authenticated JSON, plus merchant wallet lookups. Responses are turned
into FxQuote, SettlementPayment and MerchantWallet objects here, with defaults
for missing fields applied once so callers never inspect raw JSON.

Every call is bounded by a per-request timeout. Timeouts, connection errors
and 5xx answers are retried with exponential backoff up to max_attempts;
4xx answers are terminal. Creation calls carry the caller's idempotency key
in the body and in the Idempotency-Key header, and the same key is resent on
every retry, so a retried create never produces a second payment.

Files that USE this module:
- blinkpay.application.settlement (SettlementOrchestrator advanced path)
- blinkpay.app (constructs the client from settings)
- tests.test_settlement_client (unit tests)

Files that this module USES:
- blinkpay.config (API key, base URL, timeout and retry settings)
- blinkpay.domain.models (FxQuote, MerchantWallet, SettlementPayment, SettlementStatus)
- blinkpay.domain.errors (SettlementError, SettlementRejected, SettlementRetryExhausted)
"""
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

import requests

from blinkpay.config import settings
from blinkpay.domain.errors import (
    SettlementError,
    SettlementRejected,
    SettlementRetryExhausted,
)
from blinkpay.domain.models import FxQuote, MerchantWallet, SettlementPayment, SettlementStatus

log = logging.getLogger(__name__)

# Remote status strings mapped onto the local settlement status
_STATUS_MAP = {
    "pending": SettlementStatus.PENDING,
    "in_transit": SettlementStatus.IN_TRANSIT,
    "confirmed": SettlementStatus.IN_TRANSIT,
    "complete": SettlementStatus.COMPLETED,
    "completed": SettlementStatus.COMPLETED,
    "paid": SettlementStatus.COMPLETED,
    "failed": SettlementStatus.FAILED,
}


def parse_status(raw: Optional[str]) -> SettlementStatus:
    """Map a remote status string; unknown or missing values count as pending."""
    if not raw:
        return SettlementStatus.PENDING
    status = _STATUS_MAP.get(str(raw).strip().lower())
    if status is None:
        log.warning("Unknown settlement status %r, treating as pending", raw)
        return SettlementStatus.PENDING
    return status


def _decimal(value: Any, default: str = "0") -> Decimal:
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, dict):
        # Amount objects look like {"amount": "1.00", "currency": "USD"}
        return _decimal(value.get("amount"), default)
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        log.warning("Unparseable amount %r, using %s", value, default)
        return Decimal(default)


def _data(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class CircleSettlementClient:
    """
    Client for the Circle payments API.

    Every method blocks; async callers run them in an executor.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff: Optional[float] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the settlement client.

        Args:
            api_key: Bearer token (defaults to settings.circle_api_key)
            base_url: API base URL (defaults to sandbox or production per settings)
            timeout: Per-request timeout in seconds
            max_attempts: Total attempts per call, including the first
            backoff: Base delay for exponential backoff between attempts
            session: Optional requests session (tests inject a mock)
            sleep: Sleep function used between attempts
        """
        self.api_key = api_key if api_key is not None else settings.circle_api_key
        self.base_url = (base_url or settings.circle_api_base).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.settlement_timeout_seconds
        self.max_attempts = max(1, max_attempts if max_attempts is not None else settings.settlement_max_attempts)
        self.backoff = backoff if backoff is not None else settings.settlement_backoff_seconds
        self.session = session or requests.Session()
        self._sleep = sleep

        if not self.api_key:
            log.warning("CIRCLE_API_KEY not configured - settlement calls will be rejected")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, idempotency_key: Optional[str]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Any:
        """
        Send one API call with bounded retries.

        Returns:
            Decoded JSON body

        Raises:
            SettlementRejected: On any 4xx answer (not retried)
            SettlementRetryExhausted: When every attempt hit a transport failure or 5xx
            SettlementError: When a 2xx answer is not valid JSON
        """
        url = f"{self.base_url}{path}"
        headers = self._headers(idempotency_key)
        last_error: Optional[str] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = self.session.request(
                    method, url, json=body, params=params, headers=headers, timeout=self.timeout
                )
            except requests.exceptions.Timeout:
                last_error = f"timeout after {self.timeout}s"
                log.warning("Settlement %s %s timed out (attempt %d/%d)", method, path, attempt, self.max_attempts)
            except requests.exceptions.RequestException as e:
                last_error = f"request failed: {e}"
                log.warning("Settlement %s %s failed (attempt %d/%d): %s", method, path, attempt, self.max_attempts, e)
            else:
                if 400 <= resp.status_code < 500:
                    message = self._error_message(resp)
                    log.error("Settlement %s %s rejected (%d): %s", method, path, resp.status_code, message)
                    raise SettlementRejected(
                        f"Settlement API rejected {method} {path} ({resp.status_code}): {message}",
                        status_code=resp.status_code,
                        stage="settlement",
                    )
                if resp.status_code >= 500:
                    last_error = f"server error {resp.status_code}"
                    log.warning(
                        "Settlement %s %s returned %d (attempt %d/%d)",
                        method, path, resp.status_code, attempt, self.max_attempts,
                    )
                else:
                    try:
                        return resp.json()
                    except ValueError as e:
                        log.error("Settlement API returned invalid JSON: %s", e)
                        raise SettlementError(f"Settlement API returned invalid JSON: {e}", stage="settlement") from e

            if attempt < self.max_attempts:
                self._sleep(self.backoff * (2 ** (attempt - 1)))

        log.error("Settlement %s %s gave up after %d attempts: %s", method, path, self.max_attempts, last_error)
        raise SettlementRetryExhausted(
            f"Settlement API {method} {path} failed after {self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
            stage="settlement",
        )

    @staticmethod
    def _error_message(resp: requests.Response) -> str:
        try:
            payload = resp.json()
        except ValueError:
            return resp.text[:200] if resp.text else "no body"
        if isinstance(payload, dict):
            return str(payload.get("message") or payload.get("code") or payload)
        return str(payload)

    @staticmethod
    def _payment(data: Any, *, fallback_id: str = "", fallback_amount: Decimal = Decimal("0"),
                 default_type: str = "transfer", fx_quote_id: Optional[str] = None) -> SettlementPayment:
        if not isinstance(data, dict):
            data = {}
        return SettlementPayment(
            id=str(data.get("id") or fallback_id),
            status=parse_status(data.get("status")),
            amount=_decimal(data.get("amount"), str(fallback_amount)),
            type=str(data.get("type") or default_type),
            currency=str(data.get("currency") or "USDC"),
            fx_quote_id=data.get("fxQuoteId") or fx_quote_id,
            blockchain_hash=data.get("blockchainHash"),
            create_date=data.get("createDate"),
            update_date=data.get("updateDate"),
        )

    def create_fx_quote(
        self, amount: Decimal, source_currency: str = "USDC", destination_currency: str = "USD"
    ) -> FxQuote:
        """
        Request an FX quote for converting `amount` of source into destination currency.

        Raises:
            SettlementError: If the quote has no id
        """
        body = self._request(
            "POST",
            "/payments/fx/quotes",
            body={
                "amount": str(amount),
                "sourceCurrency": source_currency,
                "destinationCurrency": destination_currency,
            },
        )
        data = _data(body)
        if not isinstance(data, dict):
            data = {}
        quote_id = data.get("quoteId") or data.get("id")
        if not quote_id:
            raise SettlementError("FX quote response carried no quote id", stage="quote")
        quote = FxQuote(
            id=str(quote_id),
            amount=_decimal(data.get("amount"), str(amount)),
            rate=_decimal(data.get("rate"), "1"),
            source_currency=source_currency,
            destination_currency=destination_currency,
            expires_at=data.get("expiresAt"),
            buy_price=_decimal(data.get("buyPrice"), "1"),
            sell_price=_decimal(data.get("sellPrice"), "1"),
        )
        log.info("FX quote %s: %s %s at rate %s", quote.id, quote.amount, source_currency, quote.rate)
        return quote

    def create_payment(
        self,
        *,
        amount: Decimal,
        source_wallet_id: str,
        destination_address: str,
        idempotency_key: str,
        currency: str = "USDC",
        fx_quote_id: Optional[str] = None,
        description: str = "BlinkPay merchant payment",
        metadata: Optional[Dict[str, str]] = None,
    ) -> SettlementPayment:
        body: Dict[str, Any] = {
            "idempotencyKey": idempotency_key,
            "amount": str(amount),
            "currency": currency,
            "source": {"type": "wallet", "id": source_wallet_id},
            "destination": {"type": "wallet", "address": destination_address},
            "description": description,
        }
        if fx_quote_id:
            body["fxQuoteId"] = fx_quote_id
        if metadata:
            body["metadata"] = metadata
        response = self._request("POST", "/payments", body=body, idempotency_key=idempotency_key)
        payment = self._payment(_data(response), fallback_amount=amount, fx_quote_id=fx_quote_id)
        if not payment.id:
            raise SettlementError("Payment response carried no payment id", stage="create_payment")
        log.info("Created settlement payment %s (%s)", payment.id, payment.status.value)
        return payment

    def get_payment(self, payment_id: str) -> SettlementPayment:
        response = self._request("GET", f"/payments/{payment_id}")
        return self._payment(_data(response), fallback_id=payment_id)

    def create_settlement(
        self,
        *,
        wallet_id: str,
        amount: Decimal,
        bank_account_id: str,
        idempotency_key: str,
        fx_quote_id: Optional[str] = None,
    ) -> SettlementPayment:
        """Request a payout from the merchant wallet to a bank account."""
        body: Dict[str, Any] = {
            "idempotencyKey": idempotency_key,
            "walletId": wallet_id,
            "amount": str(amount),
            "destinationBankAccountId": bank_account_id,
        }
        if fx_quote_id:
            body["fxQuoteId"] = fx_quote_id
        response = self._request("POST", "/settlements", body=body, idempotency_key=idempotency_key)
        settlement = self._payment(
            _data(response), fallback_amount=amount, default_type="settlement", fx_quote_id=fx_quote_id
        )
        log.info("Requested bank settlement %s for wallet %s", settlement.id or "(no id)", wallet_id)
        return settlement

    def list_payments(self, wallet_id: Optional[str] = None, limit: int = 50) -> List[SettlementPayment]:
        params: Dict[str, Any] = {"limit": limit}
        if wallet_id:
            params["walletId"] = wallet_id
        response = self._request("GET", "/payments", params=params)
        items = _data(response)
        if not isinstance(items, list):
            log.warning("Payment listing returned %s instead of a list", type(items).__name__)
            return []
        return [self._payment(item) for item in items]

    def get_wallet(self, wallet_id: str) -> MerchantWallet:
        """Wallet details (on-chain address, blockchains, state) for a merchant wallet id."""
        response = self._request("GET", f"/wallets/{wallet_id}")
        data = _data(response)
        if not isinstance(data, dict):
            data = {}
        blockchains = data.get("blockchains") or ["SOL"]
        if isinstance(blockchains, str):
            blockchains = [blockchains]
        return MerchantWallet(
            id=str(data.get("walletId") or data.get("id") or wallet_id),
            address=str(data.get("address") or ""),
            blockchains=tuple(str(chain) for chain in blockchains),
            state=str(data.get("state") or "LIVE"),
            create_date=data.get("createDate"),
            update_date=data.get("updateDate"),
        )
