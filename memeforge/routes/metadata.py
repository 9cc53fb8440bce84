"""Mock NFT metadata server for minted memes.

Metadata ids look like ``<epoch-ms>-<url-encoded meme text>``; everything
is derived from the id, nothing is stored.
"""

from datetime import datetime, timezone
from urllib.parse import quote, unquote

from fastapi import APIRouter, HTTPException, status

from ..dependencies import AppSettings
from ..generation.content import PLACEHOLDER_HOST
from ..logging_config import get_logger
from ..models import NFTMetadata

logger = get_logger("routes.metadata")

router = APIRouter(tags=["metadata"])

PLATFORM_NAME = "AI Meme Forge"
DEFAULT_MEME_TEXT = "AI Meme"


def _image_uri(meme_text: str, seed: str) -> str:
    return (
        f"{PLACEHOLDER_HOST}/1024x1024?text={quote(meme_text[:30], safe='')}"
        f"&bg_color=e6e6e6&text_color=8F8F8F&random={seed}"
    )


def build_metadata(metadata_id: str, creator_address: str, external_url: str) -> dict:
    """Build Metaplex-style metadata from a ``<epoch-ms>-<text>`` id.

    Raises ValueError when the timestamp part is not an integer.
    """
    timestamp, _, encoded_text = metadata_id.partition("-")
    created = datetime.fromtimestamp(int(timestamp) / 1000, tz=timezone.utc)
    meme_text = unquote(encoded_text) or DEFAULT_MEME_TEXT
    image = _image_uri(meme_text, timestamp)

    return {
        "name": f"AI Meme #{timestamp}",
        "description": (
            "AI-generated meme created with x402 protocol. "
            f"Generated on {created.date().isoformat()}"
        ),
        "image": image,
        "attributes": [
            {"trait_type": "Platform", "value": PLATFORM_NAME},
            {"trait_type": "Protocol", "value": "x402"},
            {"trait_type": "Created", "value": created.date().isoformat()},
            {"trait_type": "Meme Text", "value": meme_text},
        ],
        "external_url": external_url,
        "properties": {
            "category": "image",
            "creators": [{"address": creator_address, "share": 100}],
            "files": [{"uri": image, "type": "image/png"}],
        },
        "collection": {
            "name": f"{PLATFORM_NAME} Collection",
            "family": PLATFORM_NAME,
        },
    }


@router.get("/metadata/{metadata_id}", response_model=NFTMetadata)
async def get_metadata(metadata_id: str, settings: AppSettings):
    """Serve token metadata for a generated meme."""
    try:
        metadata = build_metadata(
            metadata_id,
            creator_address=settings.x402_recipient_wallet,
            external_url=settings.public_base_url,
        )
    except (ValueError, OverflowError, OSError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid metadata id", "code": "INVALID_METADATA_ID"},
        )

    logger.info(f"Metadata served: id={metadata_id} name={metadata['name']}")
    return metadata
