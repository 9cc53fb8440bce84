"""Paid meme generation routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..dependencies import Gate
from ..generation import GenerationError, GenerationOptions
from ..logging_config import get_logger
from ..models import GenerateRequest, GenerateResponse
from ..rate_limit import limiter

logger = get_logger("routes.generate")

router = APIRouter(tags=["generate"])

BYPASS_HEADER = "X-Debug-Skip-Payment"


def _generate_limit() -> str:
    return get_settings().generate_rate_limit


def _bypass_requested(request: Request, body: GenerateRequest) -> bool:
    header = request.headers.get(BYPASS_HEADER, "")
    return body.debug or header.strip().lower() in {"1", "true", "yes"}


# ── POST /generate ────────────────────────────────────────────────────────

@router.post("/generate", response_model=GenerateResponse)
@limiter.limit(_generate_limit)
async def generate_meme(
    request: Request,
    body: GenerateRequest,
    gate: Gate,
):
    """
    Generate a meme once the caller's x402 payment is verified.

    The payment is checked first; generation only runs on a verified
    payment. Failures carry the verifier's code so a client can tell an
    unconfirmed transaction (TRANSACTION_NOT_FOUND) from a bad one.
    """
    options = GenerationOptions(
        model=body.model,
        style=body.style,
        width=body.width,
        height=body.height,
    )

    try:
        outcome = await gate.handle(
            body.prompt,
            body.transaction_signature,
            body.user_wallet,
            options,
            bypass_payment=_bypass_requested(request, body),
        )
    except Exception as e:
        logger.exception(f"Generate API error: {e}")
        return JSONResponse(
            {"error": "Failed to generate meme content", "code": "GENERATION_ERROR"},
            status_code=500,
        )

    if isinstance(outcome, GenerationError):
        return JSONResponse(outcome.to_dict(), status_code=outcome.status_code)

    return outcome.to_dict()


# ── GET /generate ─────────────────────────────────────────────────────────

@router.get("/generate")
async def describe_generation():
    """Describe the generation API."""
    return {
        "message": "AI Meme Generator API",
        "version": "1.0.0",
        "protocol": "x402",
        "endpoints": {
            "POST /generate": "Generate AI meme after payment verification",
            "POST /verify-payment": "Verify x402 payment transaction",
            "GET /metadata/{id}": "NFT metadata for a generated meme",
        },
    }
