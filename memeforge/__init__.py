"""Meme Forge backend: x402-gated meme generation on Solana."""

__version__ = "0.1.0"
