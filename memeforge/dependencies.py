"""FastAPI dependencies wiring settings into the verifier and the gate."""

from typing import Annotated

from fastapi import Depends

from .config import Settings, get_settings
from .generation import (
    CaptionGenerator,
    GenerationGate,
    ImageGenerator,
    PlaceholderImageGenerator,
    TemplateCaptionGenerator,
)
from .payments import PaymentVerifier


def get_verifier(settings: Annotated[Settings, Depends(get_settings)]) -> PaymentVerifier:
    return PaymentVerifier.from_settings(settings)


def get_image_generator() -> ImageGenerator:
    return PlaceholderImageGenerator()


def get_caption_generator() -> CaptionGenerator:
    return TemplateCaptionGenerator()


def get_generation_gate(
    settings: Annotated[Settings, Depends(get_settings)],
    verifier: Annotated[PaymentVerifier, Depends(get_verifier)],
    image_generator: Annotated[ImageGenerator, Depends(get_image_generator)],
    caption_generator: Annotated[CaptionGenerator, Depends(get_caption_generator)],
) -> GenerationGate:
    return GenerationGate(
        verifier=verifier,
        image_generator=image_generator,
        caption_generator=caption_generator,
        allow_bypass=settings.allow_payment_bypass,
    )


AppSettings = Annotated[Settings, Depends(get_settings)]
Verifier = Annotated[PaymentVerifier, Depends(get_verifier)]
Gate = Annotated[GenerationGate, Depends(get_generation_gate)]
