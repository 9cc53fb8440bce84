"""Verify-then-generate orchestration for paid meme requests."""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from ..logging_config import get_logger, shorten
from ..payments import (
    ErrorCode,
    FailureClass,
    PaymentVerificationResult,
    PaymentVerifier,
)
from .content import CaptionGenerator, GenerationOptions, ImageGenerator

logger = get_logger("generation")

MISSING_FIELDS = "MISSING_FIELDS"
GENERATION_ERROR = "GENERATION_ERROR"

# Gate-level status per failure class; not-found is payment-required here
# because the client has not (yet) paid as far as the ledger knows.
GATE_STATUS: dict[FailureClass, int] = {
    FailureClass.bad_request: 400,
    FailureClass.payment_required: 402,
    FailureClass.not_found: 402,
    FailureClass.upstream_error: 500,
}


@dataclass
class GenerationResult:
    """Generated content plus the payment that unlocked it."""

    image_url: str
    meme_text: str
    prompt: str
    payment: PaymentVerificationResult
    bypassed: bool = False
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        payment = self.payment
        return {
            "success": True,
            "imageUrl": self.image_url,
            "memeText": self.meme_text,
            "prompt": self.prompt,
            "paymentVerified": {
                "signature": payment.signature,
                "amount": float(payment.paid_amount) if payment.paid_amount is not None else None,
                "timestamp": payment.block_timestamp,
                "sender": payment.sender,
                "recipient": payment.recipient,
            },
            "paymentBypassed": self.bypassed,
            "timestamp": self.generated_at.isoformat(),
        }


@dataclass
class GenerationError:
    """A request the gate refused or could not complete."""

    status_code: int
    code: str
    error: str
    details: Any = None

    def to_dict(self) -> dict:
        payload = {"error": self.error, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class GenerationGate:
    """Runs content generation only after the payment checks out."""

    def __init__(
        self,
        verifier: PaymentVerifier,
        image_generator: ImageGenerator,
        caption_generator: CaptionGenerator,
        allow_bypass: bool = False,
    ):
        self.verifier = verifier
        self.image_generator = image_generator
        self.caption_generator = caption_generator
        self.allow_bypass = allow_bypass

    def _bypass_result(self, signature: str, user_wallet: str) -> PaymentVerificationResult:
        amount: Decimal = self.verifier.default_amount
        return PaymentVerificationResult(
            verified=True,
            signature=signature,
            required_amount=amount,
            paid_amount=amount,
            block_timestamp=int(time.time()),
            sender=user_wallet,
            recipient=self.verifier.recipient_wallet,
        )

    async def handle(
        self,
        prompt: Optional[str],
        transaction_signature: Optional[str],
        user_wallet: Optional[str],
        options: Optional[GenerationOptions] = None,
        bypass_payment: bool = False,
    ) -> GenerationResult | GenerationError:
        if not prompt or not transaction_signature or not user_wallet:
            return GenerationError(
                status_code=400,
                code=MISSING_FIELDS,
                error="Missing required fields: prompt, transactionSignature, userWallet",
            )

        options = options or GenerationOptions()
        bypassed = False

        if bypass_payment and self.allow_bypass:
            logger.warning(f"Payment bypass active for wallet={shorten(user_wallet)}")
            payment = self._bypass_result(transaction_signature, user_wallet)
            bypassed = True
        else:
            if bypass_payment:
                logger.warning(
                    f"Ignoring payment bypass request from wallet={shorten(user_wallet)}: "
                    f"bypass is disabled"
                )
            payment = await self.verifier.verify(transaction_signature, user_wallet)

        if not payment.verified:
            code = payment.error_code or ErrorCode.VERIFICATION_ERROR
            return GenerationError(
                status_code=GATE_STATUS[payment.failure_class or FailureClass.upstream_error],
                code=code.value,
                error="Payment verification failed",
                details=payment.error,
            )

        try:
            image_url, meme_text = await asyncio.gather(
                self.image_generator.generate(prompt, options),
                self.caption_generator.generate(prompt, options),
            )
        except Exception as e:
            logger.exception(f"Content generation failed for sig={shorten(transaction_signature)}: {e}")
            return GenerationError(
                status_code=500,
                code=GENERATION_ERROR,
                error="Failed to generate meme content",
            )

        logger.info(
            f"GENERATED | sig={shorten(transaction_signature)} wallet={shorten(user_wallet)} "
            f"model={options.model or 'default'} style={options.style or 'meme'}"
        )
        return GenerationResult(
            image_url=image_url,
            meme_text=meme_text,
            prompt=prompt,
            payment=payment,
            bypassed=bypassed,
        )
