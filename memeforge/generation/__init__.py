"""Paid meme generation: the verify-then-produce gate and its collaborators."""

from .content import (
    CaptionGenerator,
    GenerationOptions,
    ImageGenerator,
    PlaceholderImageGenerator,
    TemplateCaptionGenerator,
)
from .gate import GENERATION_ERROR, MISSING_FIELDS, GenerationError, GenerationGate, GenerationResult

__all__ = [
    "GenerationGate",
    "GenerationResult",
    "GenerationError",
    "GenerationOptions",
    "ImageGenerator",
    "CaptionGenerator",
    "PlaceholderImageGenerator",
    "TemplateCaptionGenerator",
    "MISSING_FIELDS",
    "GENERATION_ERROR",
]
