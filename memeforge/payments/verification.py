"""x402 SOL payment verification against a Solana JSON-RPC node.

Verifies that a claimed payment actually happened on-chain by:
1. Fetching the transaction by signature via ``getTransaction``
2. Reading the first two account keys as sender and recipient
3. Deriving the paid amount from the sender's pre/post lamport balances
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import httpx

from ..config import Settings
from ..logging_config import get_logger, log_payment_event, shorten

logger = get_logger("payments.verification")

LAMPORTS_PER_SOL = Decimal(1_000_000_000)

# Base58 Ed25519 signatures are 87-88 characters; anything under 64 is garbage.
MIN_SIGNATURE_LENGTH = 64


class PaymentVerificationError(Exception):
    """Raised when the RPC node cannot be queried."""
    pass


class ErrorCode(str, Enum):
    """Diagnostic codes returned for rejected payments."""

    MISSING_PARAMS = "MISSING_PARAMS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    SENDER_MISMATCH = "SENDER_MISMATCH"
    RECIPIENT_MISMATCH = "RECIPIENT_MISMATCH"
    NO_BALANCE_DATA = "NO_BALANCE_DATA"
    INSUFFICIENT_AMOUNT = "INSUFFICIENT_AMOUNT"
    VERIFICATION_ERROR = "VERIFICATION_ERROR"


class FailureClass(str, Enum):
    """How a rejected payment is surfaced to the client."""

    bad_request = "bad_request"
    payment_required = "payment_required"
    not_found = "not_found"
    upstream_error = "upstream_error"


# Exhaustive: every ErrorCode has exactly one class.
FAILURE_CLASSES: dict[ErrorCode, FailureClass] = {
    ErrorCode.MISSING_PARAMS: FailureClass.bad_request,
    ErrorCode.INVALID_SIGNATURE: FailureClass.bad_request,
    ErrorCode.TRANSACTION_NOT_FOUND: FailureClass.not_found,
    ErrorCode.TRANSACTION_FAILED: FailureClass.payment_required,
    ErrorCode.SENDER_MISMATCH: FailureClass.payment_required,
    ErrorCode.RECIPIENT_MISMATCH: FailureClass.payment_required,
    ErrorCode.NO_BALANCE_DATA: FailureClass.payment_required,
    ErrorCode.INSUFFICIENT_AMOUNT: FailureClass.payment_required,
    ErrorCode.VERIFICATION_ERROR: FailureClass.upstream_error,
}


def classify_failure(code: ErrorCode) -> FailureClass:
    """Look up the failure class for a code. Raises KeyError for unknown codes."""
    return FAILURE_CLASSES[code]


@dataclass(frozen=True)
class PaymentVerificationResult:
    """Outcome of verifying one SOL payment."""

    verified: bool
    signature: str
    required_amount: Decimal

    # Payment details (populated as far as verification got)
    paid_amount: Optional[Decimal] = None
    block_timestamp: Optional[int] = None
    sender: Optional[str] = None
    recipient: Optional[str] = None

    # Error info (populated if verified=False)
    error_code: Optional[ErrorCode] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def failure_class(self) -> Optional[FailureClass]:
        if self.error_code is None:
            return None
        return classify_failure(self.error_code)

    def to_dict(self) -> dict:
        """Convert to the x402 wire shape (camelCase, numeric amounts)."""
        if self.verified:
            return {
                "verified": True,
                "amount": float(self.paid_amount) if self.paid_amount is not None else None,
                "requiredAmount": float(self.required_amount),
                "signature": self.signature,
                "timestamp": self.block_timestamp,
                "sender": self.sender,
                "recipient": self.recipient,
            }
        payload = {
            "verified": False,
            "error": self.error,
            "code": self.error_code.value if self.error_code else None,
        }
        payload.update(self.details)
        return payload


async def _rpc_call(rpc_url: str, method: str, params: list, timeout: float = 30.0) -> Any:
    """Make a JSON-RPC call to a Solana node and return its ``result`` member."""
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(
            rpc_url,
            json={
                "jsonrpc": "2.0",
                "id": 1,
                "method": method,
                "params": params,
            },
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        body = response.json()

    if "error" in body:
        raise PaymentVerificationError(f"RPC error: {body['error']}")

    return body.get("result")


def _account_key(keys: list, index: int) -> Optional[str]:
    """Return the base58 key at *index*; ``jsonParsed`` wraps keys in objects."""
    if len(keys) <= index:
        return None
    key = keys[index]
    if isinstance(key, dict):
        return key.get("pubkey")
    return key


def extract_parties(transaction: dict) -> tuple[Optional[str], Optional[str]]:
    """Read (sender, recipient) from account index 0 and 1 of the message.

    Position based only: assumes a plain two-party SOL transfer.
    """
    message = (transaction.get("transaction") or {}).get("message") or {}
    keys = message.get("accountKeys") or []
    return _account_key(keys, 0), _account_key(keys, 1)


def balance_delta(meta: dict) -> Optional[Decimal]:
    """SOL spent by account 0, or None when balance data is missing."""
    pre_balances = meta.get("preBalances") or []
    post_balances = meta.get("postBalances") or []
    if not pre_balances or not post_balances:
        return None
    return Decimal(pre_balances[0] - post_balances[0]) / LAMPORTS_PER_SOL


class PaymentVerifier:
    """Checks a submitted transaction signature against the x402 policy."""

    def __init__(
        self,
        rpc_url: str,
        recipient_wallet: str,
        default_amount: Decimal,
        commitment: str = "confirmed",
        timeout: float = 30.0,
    ):
        self.rpc_url = rpc_url
        self.recipient_wallet = recipient_wallet
        self.default_amount = default_amount
        self.commitment = commitment
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentVerifier":
        return cls(
            rpc_url=settings.rpc_url,
            recipient_wallet=settings.x402_recipient_wallet,
            default_amount=settings.x402_payment_amount,
            commitment=settings.solana_commitment,
            timeout=settings.rpc_timeout_seconds,
        )

    def _reject(
        self,
        signature: str,
        required: Decimal,
        code: ErrorCode,
        error: str,
        wallet: Optional[str] = None,
        **fields: Any,
    ) -> PaymentVerificationResult:
        details = fields.pop("details", {})
        result = PaymentVerificationResult(
            verified=False,
            signature=signature,
            required_amount=required,
            error_code=code,
            error=error,
            details=details,
            **fields,
        )
        log_payment_event(signature, wallet, False, code.value, error)
        return result

    async def fetch_transaction(self, signature: str) -> Optional[dict]:
        return await _rpc_call(
            self.rpc_url,
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
            timeout=self.timeout,
        )

    async def verify(
        self,
        transaction_signature: Optional[str],
        user_wallet: Optional[str],
        required_amount: Optional[Decimal | float] = None,
    ) -> PaymentVerificationResult:
        """Verify a SOL payment from *user_wallet* to the configured recipient.

        Args:
            transaction_signature: Base58 transaction signature to look up
            user_wallet: Base58 public key expected to have paid
            required_amount: Minimum SOL; defaults to the configured policy.
                Floats are read by their decimal text, so 0.01 means 0.01

        Returns:
            PaymentVerificationResult. Never raises for an expected outcome;
            RPC trouble is reported as VERIFICATION_ERROR.
        """
        required = Decimal(str(required_amount)) if required_amount is not None else self.default_amount
        signature = transaction_signature or ""

        if not transaction_signature or not user_wallet:
            return self._reject(
                signature, required, ErrorCode.MISSING_PARAMS,
                "Missing transaction signature or user wallet",
                wallet=user_wallet,
            )

        if not isinstance(transaction_signature, str) or len(transaction_signature) < MIN_SIGNATURE_LENGTH:
            return self._reject(
                signature, required, ErrorCode.INVALID_SIGNATURE,
                "Invalid transaction signature format",
                wallet=user_wallet,
            )

        logger.debug(
            f"Fetching transaction sig={shorten(signature)} wallet={shorten(user_wallet)} "
            f"commitment={self.commitment}"
        )

        try:
            transaction = await self.fetch_transaction(signature)
        except (httpx.HTTPError, PaymentVerificationError, ValueError) as e:
            logger.error(f"RPC error verifying transaction {shorten(signature)}: {e}")
            return self._reject(
                signature, required, ErrorCode.VERIFICATION_ERROR,
                "x402 payment verification failed",
                wallet=user_wallet,
            )

        if not transaction:
            return self._reject(
                signature, required, ErrorCode.TRANSACTION_NOT_FOUND,
                "Transaction not found or not confirmed",
                wallet=user_wallet,
            )

        if not isinstance(transaction, dict):
            logger.error(f"Malformed getTransaction result for {shorten(signature)}: {type(transaction).__name__}")
            return self._reject(
                signature, required, ErrorCode.VERIFICATION_ERROR,
                "x402 payment verification failed",
                wallet=user_wallet,
            )

        meta = transaction.get("meta") or {}
        block_timestamp = transaction.get("blockTime")

        if meta.get("err") is not None:
            return self._reject(
                signature, required, ErrorCode.TRANSACTION_FAILED,
                "Transaction execution failed",
                wallet=user_wallet,
                block_timestamp=block_timestamp,
                details={"details": meta["err"]},
            )

        sender, recipient = extract_parties(transaction)

        if sender != user_wallet:
            return self._reject(
                signature, required, ErrorCode.SENDER_MISMATCH,
                "Transaction sender does not match user wallet",
                wallet=user_wallet,
                block_timestamp=block_timestamp,
                sender=sender,
                recipient=recipient,
                details={"expected": user_wallet, "actual": sender},
            )

        if recipient != self.recipient_wallet:
            return self._reject(
                signature, required, ErrorCode.RECIPIENT_MISMATCH,
                "Transaction recipient does not match expected x402 recipient",
                wallet=user_wallet,
                block_timestamp=block_timestamp,
                sender=sender,
                recipient=recipient,
                details={"expected": self.recipient_wallet, "actual": recipient},
            )

        try:
            paid = balance_delta(meta)
        except (TypeError, ArithmeticError) as e:
            logger.error(f"Unreadable balance data for {shorten(signature)}: {e}")
            return self._reject(
                signature, required, ErrorCode.VERIFICATION_ERROR,
                "x402 payment verification failed",
                wallet=user_wallet,
            )

        if paid is None:
            return self._reject(
                signature, required, ErrorCode.NO_BALANCE_DATA,
                "Unable to verify payment amount - no balance data",
                wallet=user_wallet,
                block_timestamp=block_timestamp,
                sender=sender,
                recipient=recipient,
            )

        if paid < required:
            return self._reject(
                signature, required, ErrorCode.INSUFFICIENT_AMOUNT,
                "Insufficient payment amount",
                wallet=user_wallet,
                paid_amount=paid,
                block_timestamp=block_timestamp,
                sender=sender,
                recipient=recipient,
                details={"paid": float(paid), "required": float(required)},
            )

        log_payment_event(signature, user_wallet, True, detail=f"paid={paid} required={required}")
        return PaymentVerificationResult(
            verified=True,
            signature=signature,
            required_amount=required,
            paid_amount=paid,
            block_timestamp=block_timestamp,
            sender=sender,
            recipient=recipient,
        )
