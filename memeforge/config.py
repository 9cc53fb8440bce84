"""Configuration settings for the Meme Forge backend."""

from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings

# Public Solana clusters. SOLANA_RPC_URL overrides the preset endpoint.
NETWORK_CONFIG = {
    "devnet": {
        "rpc_url": "https://api.devnet.solana.com",
        "explorer": "https://explorer.solana.com/?cluster=devnet",
    },
    "testnet": {
        "rpc_url": "https://api.testnet.solana.com",
        "explorer": "https://explorer.solana.com/?cluster=testnet",
    },
    "mainnet-beta": {
        "rpc_url": "https://api.mainnet-beta.solana.com",
        "explorer": "https://explorer.solana.com",
    },
}


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Solana
    solana_network: str = "devnet"
    solana_rpc_url: str | None = None  # Overrides the network preset
    solana_commitment: str = "confirmed"
    rpc_timeout_seconds: float = 30.0

    # x402 payment policy
    x402_payment_amount: Decimal = Decimal("0.01")  # SOL
    x402_recipient_wallet: str = "4YweNXQbjMMDnD2sBG5FSWDP5mnqeu1gmCm48r4WV9q3"
    # Testing affordance only. Never enable in production.
    allow_payment_bypass: bool = False

    # App
    debug: bool = False
    log_level: str = "INFO"
    public_base_url: str = "https://ai-meme-forge.vercel.app"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Rate limiting (slowapi syntax)
    verify_rate_limit: str = "30/minute"
    generate_rate_limit: str = "10/minute"
    trusted_proxy_cidrs: list[str] = [
        "10.0.0.0/8",
        "172.16.0.0/12",
        "192.168.0.0/16",
        "127.0.0.0/8",
        "::1/128",
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars not in model

    @property
    def rpc_url(self) -> str:
        """Effective RPC endpoint: explicit override, else the network preset."""
        if self.solana_rpc_url:
            return self.solana_rpc_url
        preset = NETWORK_CONFIG.get(self.solana_network)
        if preset is None:
            raise ValueError(
                f"Unknown Solana network '{self.solana_network}'. "
                f"Set SOLANA_RPC_URL or use one of: {', '.join(NETWORK_CONFIG)}"
            )
        return preset["rpc_url"]

    @property
    def explorer_url(self) -> str | None:
        """Block explorer for the configured network, if it is a known preset."""
        preset = NETWORK_CONFIG.get(self.solana_network)
        return preset["explorer"] if preset else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
