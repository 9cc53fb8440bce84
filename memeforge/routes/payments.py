"""x402 payment verification routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..dependencies import AppSettings, Verifier
from ..logging_config import get_logger
from ..models import VerifyPaymentRequest
from ..payments import FailureClass, PaymentVerificationResult
from ..rate_limit import limiter

logger = get_logger("routes.payments")

router = APIRouter(tags=["payments"])

PROTOCOL = "x402"
PROTOCOL_VERSION = "1.0.0"
CURRENCY = "SOL"

HTTP_STATUS: dict[FailureClass, int] = {
    FailureClass.bad_request: 400,
    FailureClass.payment_required: 402,
    FailureClass.not_found: 404,
    FailureClass.upstream_error: 500,
}


def _verify_limit() -> str:
    return get_settings().verify_rate_limit


def payment_required_headers(amount, paid=None) -> dict[str, str]:
    headers = {
        "Payment-Required": "true",
        "X-Protocol": PROTOCOL,
        "X-Payment-Amount": str(amount),
        "X-Payment-Currency": CURRENCY,
    }
    if paid is not None:
        headers["X-Payment-Paid"] = str(paid)
    return headers


def verification_response(result: PaymentVerificationResult, settings: Settings) -> JSONResponse:
    """Render a verification result as an x402 HTTP response."""
    body = result.to_dict()

    if result.verified:
        body.update({"protocol": PROTOCOL, "network": settings.solana_network})
        return JSONResponse(
            body,
            headers={
                "X-Protocol": PROTOCOL,
                "X-Payment-Verified": "true",
                "X-Payment-Amount": str(result.paid_amount),
                "X-Payment-Currency": CURRENCY,
                "X-Payment-Signature": result.signature,
            },
        )

    failure = result.failure_class or FailureClass.upstream_error
    status_code = HTTP_STATUS[failure]
    headers = None
    if failure is FailureClass.payment_required:
        body.update({
            "protocol": PROTOCOL,
            "payment_required": f"{result.required_amount} {CURRENCY}",
        })
        headers = payment_required_headers(result.required_amount, result.paid_amount)

    return JSONResponse(body, status_code=status_code, headers=headers)


# ── POST /verify-payment ──────────────────────────────────────────────────

@router.post("/verify-payment")
@limiter.limit(_verify_limit)
async def verify_payment(
    request: Request,
    body: VerifyPaymentRequest,
    verifier: Verifier,
    settings: AppSettings,
):
    """
    Verify that a Solana transaction pays the x402 price to our wallet.

    Returns 200 with payment details, or an error body carrying one of the
    x402 error codes. Missing/malformed input is 400, policy failures are 402,
    an unknown signature is 404 (clients may poll), RPC trouble is 500.
    """
    try:
        result = await verifier.verify(
            body.transaction_signature,
            body.user_wallet,
            body.amount,
        )
    except Exception as e:
        # Log full error server-side; keep the client message generic
        logger.exception(f"Unexpected error verifying payment: {e}")
        return JSONResponse(
            {
                "verified": False,
                "error": "x402 payment verification failed",
                "code": "VERIFICATION_ERROR",
            },
            status_code=500,
        )

    return verification_response(result, settings)


# ── GET /verify-payment ───────────────────────────────────────────────────

@router.get("/verify-payment")
async def describe_verification(settings: AppSettings):
    """Describe the x402 protocol and the public payment configuration."""
    return {
        "protocol": PROTOCOL,
        "version": PROTOCOL_VERSION,
        "description": "x402 Payment Verification Protocol",
        "endpoints": {
            "POST /verify-payment": "Verify x402 payment transaction",
        },
        "configuration": {
            "paymentAmount": float(settings.x402_payment_amount),
            "recipientWallet": settings.x402_recipient_wallet,
            "network": settings.solana_network,
            "explorer": settings.explorer_url,
        },
    }
