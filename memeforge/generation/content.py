"""Content collaborators used by the generation gate.

The gate only relies on "prompt in, string out". The defaults here are
deterministic placeholders so the service runs end to end without an
image model behind it; swap them through dependency overrides.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from urllib.parse import quote_plus

PLACEHOLDER_HOST = "https://fpoimg.com"

STYLE_PREFIXES = {
    "photorealistic": "photorealistic, highly detailed, professional photography",
    "artistic": "digital art, artistic, creative, expressive",
    "cartoon": "cartoon style, colorful, fun, animated",
    "meme": "meme style, funny, viral, shareable, internet culture",
}

CAPTION_TEMPLATES = [
    "When you {lower} but the deadline is tomorrow",
    "{prompt}: Solana Edition",
    "Me trying to {lower} while my SOL bags are heavy",
    "{prompt}? More like SOLana to the moon!",
    "That moment when you {lower} and remember you bought the dip",
]


@dataclass(frozen=True)
class GenerationOptions:
    model: Optional[str] = None
    style: Optional[str] = None
    width: int = 512
    height: int = 512


class ImageGenerator(Protocol):
    async def generate(self, prompt: str, options: GenerationOptions) -> str: ...


class CaptionGenerator(Protocol):
    async def generate(self, prompt: str, options: GenerationOptions) -> str: ...


def prompt_seed(text: str) -> int:
    """Stable non-negative 32-bit hash of *text* (Java ``String.hashCode`` style)."""
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def enhance_prompt(prompt: str, style: Optional[str]) -> str:
    prefix = STYLE_PREFIXES.get(style or "meme", STYLE_PREFIXES["meme"])
    return f"{prefix}, {prompt}, high quality, vibrant colors, trending style"


class PlaceholderImageGenerator:
    """Returns a placeholder image URL seeded by the prompt."""

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        text = quote_plus(" ".join(prompt[:30].split()))
        seed = prompt_seed(enhance_prompt(prompt, options.style))
        return (
            f"{PLACEHOLDER_HOST}/{options.width}x{options.height}"
            f"?text={text}&bg_color=e6e6e6&text_color=8F8F8F&random={seed}"
        )


class TemplateCaptionGenerator:
    """Picks a caption template deterministically from the prompt."""

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        template = CAPTION_TEMPLATES[prompt_seed(prompt) % len(CAPTION_TEMPLATES)]
        return template.format(prompt=prompt, lower=prompt.lower())
