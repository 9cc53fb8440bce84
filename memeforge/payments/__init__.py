"""x402 payment verification for Meme Forge."""

from .verification import (
    FAILURE_CLASSES,
    LAMPORTS_PER_SOL,
    ErrorCode,
    FailureClass,
    PaymentVerificationError,
    PaymentVerificationResult,
    PaymentVerifier,
    classify_failure,
)

__all__ = [
    "PaymentVerifier",
    "PaymentVerificationResult",
    "PaymentVerificationError",
    "ErrorCode",
    "FailureClass",
    "FAILURE_CLASSES",
    "LAMPORTS_PER_SOL",
    "classify_failure",
]
