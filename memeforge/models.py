"""Pydantic models for API requests and responses.

Wire names are camelCase to match the existing web client; required fields
are optional here so the handlers can answer with x402 error codes instead
of a generic 422.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

# =============================================================================
# Payment Models
# =============================================================================

class VerifyPaymentRequest(BaseModel):
    """Request to verify an x402 payment transaction."""
    transaction_signature: str | None = Field(default=None, alias="transactionSignature")
    user_wallet: str | None = Field(default=None, alias="userWallet")
    amount: Decimal | None = Field(default=None, gt=0)  # SOL; policy default if omitted

    class Config:
        populate_by_name = True


# =============================================================================
# Generation Models
# =============================================================================

class GenerateRequest(BaseModel):
    """Request to generate a meme after payment verification."""
    prompt: str | None = Field(default=None, max_length=500)
    transaction_signature: str | None = Field(default=None, alias="transactionSignature")
    user_wallet: str | None = Field(default=None, alias="userWallet")
    model: str | None = None
    style: str | None = None
    width: int = Field(default=512, ge=64, le=2048)
    height: int = Field(default=512, ge=64, le=2048)
    debug: bool = False  # Only honoured when ALLOW_PAYMENT_BYPASS is set

    class Config:
        populate_by_name = True


class PaymentVerifiedInfo(BaseModel):
    """Payment metadata echoed back with generated content."""
    signature: str
    amount: float | None = None
    timestamp: int | None = None
    sender: str | None = None
    recipient: str | None = None


class GenerateResponse(BaseModel):
    """Generated meme content."""
    success: bool = True
    imageUrl: str
    memeText: str
    prompt: str
    paymentVerified: PaymentVerifiedInfo
    paymentBypassed: bool = False
    timestamp: str


# =============================================================================
# Metadata Models
# =============================================================================

class MetadataAttribute(BaseModel):
    trait_type: str
    value: Any


class MetadataCreator(BaseModel):
    address: str
    share: int


class MetadataFile(BaseModel):
    uri: str
    type: str


class MetadataProperties(BaseModel):
    category: str = "image"
    creators: list[MetadataCreator]
    files: list[MetadataFile]


class MetadataCollection(BaseModel):
    name: str
    family: str


class NFTMetadata(BaseModel):
    """Metaplex-style off-chain token metadata."""
    name: str
    description: str
    image: str
    attributes: list[MetadataAttribute]
    external_url: str
    properties: MetadataProperties
    collection: MetadataCollection
