# src/blinkpay/adapters/network/solana_rpc.py
"""
Solana RPC Client - JSON-RPC Network Adapter

This module implements the NetworkClient used by submission and checkout:
recent blockhash lookup, sending signed transactions, signature status
polling and token account lookup, all over the node's JSON-RPC endpoint.

Files that USE this module:
- blinkpay.app (constructs the client from settings)
- tests.test_solana_rpc (unit tests)

Files that this module USES:
- blinkpay.application.submission (NetworkClient interface)
- blinkpay.config (RPC URL, HTTP timeout, commitment level)
- blinkpay.domain.models (SignedTransaction, TransactionStatus)
- blinkpay.domain.errors (NetworkError, TransactionRejected)
"""
import itertools
import logging
from typing import Any, List, Optional

import requests

from blinkpay.application.submission import NetworkClient
from blinkpay.config import settings
from blinkpay.domain.errors import NetworkError, TransactionRejected
from blinkpay.domain.models import SignedTransaction, TransactionStatus

log = logging.getLogger(__name__)

# Commitment levels from weakest to strongest
COMMITMENT_ORDER = ("processed", "confirmed", "finalized")


class RpcError(NetworkError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, message: str = "", *, code: Optional[int] = None, **context):
        super().__init__(message, **context)
        self.code = code


class SolanaRpcClient(NetworkClient):
    """Blocking JSON-RPC client for a Solana node."""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        timeout: Optional[int] = None,
        commitment: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.rpc_url = rpc_url or settings.solana_rpc_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.commitment = commitment or settings.solana_commitment
        self.session = session or requests.Session()
        self._ids = itertools.count(1)

    def _call(self, method: str, params: List[Any]) -> Any:
        """
        Perform one JSON-RPC call and return its `result`.

        Raises:
            NetworkError: On transport failure, invalid JSON or an RPC error object
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            resp = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.exceptions.Timeout as e:
            log.error("RPC %s timeout after %d seconds", method, self.timeout)
            raise NetworkError(f"RPC {method} timeout after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            log.error("RPC %s request failed: %s", method, e)
            raise NetworkError(f"RPC {method} request failed: {e}") from e
        except ValueError as e:
            log.error("RPC %s returned invalid JSON: %s", method, e)
            raise NetworkError(f"RPC {method} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise NetworkError(f"RPC {method} returned {type(body).__name__} instead of an object")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            log.error("RPC %s error (%s): %s", method, code, message)
            raise RpcError(f"RPC {method} error: {message}", code=code)
        return body.get("result")

    def latest_checkpoint(self) -> str:
        result = self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        try:
            return result["value"]["blockhash"]
        except (KeyError, TypeError) as e:
            raise NetworkError("getLatestBlockhash response carried no blockhash") from e

    def send_transaction(self, signed: SignedTransaction) -> str:
        """
        Send a base64 wire payload.

        Raises:
            NetworkError: On transport failure (retryable)
            TransactionRejected: If the node refuses the transaction (preflight failure)
        """
        params = [
            signed.payload,
            {"encoding": "base64", "preflightCommitment": self.commitment},
        ]
        try:
            result = self._call("sendTransaction", params)
        except RpcError as e:
            raise TransactionRejected(e.message, stage="submit", signature=signed.signature) from e
        return str(result) if result else signed.signature

    def confirm(self, signature: str, target_level: str) -> TransactionStatus:
        """
        Status of a signature relative to a target commitment level.

        Returns PENDING until the signature reaches `target_level`, FAILED if
        the transaction carries an error, CONFIRMED otherwise.
        """
        result = self._call(
            "getSignatureStatuses", [[signature], {"searchTransactionHistory": True}]
        )
        values = (result or {}).get("value") or [None]
        status = values[0]
        if not status:
            return TransactionStatus.PENDING
        if status.get("err"):
            log.warning("Transaction %s failed on-chain: %s", signature, status["err"])
            return TransactionStatus.FAILED

        reached = status.get("confirmationStatus") or "processed"
        target = target_level if target_level in COMMITMENT_ORDER else "confirmed"
        if reached not in COMMITMENT_ORDER:
            return TransactionStatus.PENDING
        if COMMITMENT_ORDER.index(reached) >= COMMITMENT_ORDER.index(target):
            return TransactionStatus.CONFIRMED
        return TransactionStatus.PENDING

    def token_account(self, owner: str, mint: str) -> Optional[str]:
        result = self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        accounts = (result or {}).get("value") or []
        if not accounts:
            log.info("No %s token account for %s", mint, owner)
            return None
        return accounts[0].get("pubkey")
