"""Pytest configuration and fixtures."""

import os

import pytest

SENDER_WALLET = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
RECIPIENT_WALLET = "4YweNXQbjMMDnD2sBG5FSWDP5mnqeu1gmCm48r4WV9q3"
VALID_SIGNATURE = "5" * 88

# Settings are read at import time; seed a deterministic test environment.
os.environ.setdefault("SOLANA_NETWORK", "devnet")
os.environ.setdefault("SOLANA_RPC_URL", "https://rpc.test.invalid")
os.environ.setdefault("X402_PAYMENT_AMOUNT", "0.01")
os.environ.setdefault("X402_RECIPIENT_WALLET", RECIPIENT_WALLET)
os.environ.setdefault("ALLOW_PAYMENT_BYPASS", "false")

from fastapi.testclient import TestClient  # noqa: E402

from memeforge.config import get_settings  # noqa: E402
from memeforge.main import app  # noqa: E402
from memeforge.rate_limit import limiter  # noqa: E402


def _make_transaction(
    sender: str = SENDER_WALLET,
    recipient: str = RECIPIENT_WALLET,
    lamports_spent: int = 20_000_000,
    err=None,
    block_time: int = 1_700_000_000,
) -> dict:
    """Minimal getTransaction result for a two-party SOL transfer."""
    pre_sender = 5_000_000_000
    return {
        "slot": 250_000_000,
        "blockTime": block_time,
        "meta": {
            "err": err,
            "fee": 5000,
            "preBalances": [pre_sender, 1_000_000_000, 1],
            "postBalances": [pre_sender - lamports_spent, 1_000_000_000 + lamports_spent, 1],
        },
        "transaction": {
            "message": {
                "accountKeys": [sender, recipient, "11111111111111111111111111111111"],
            },
            "signatures": [VALID_SIGNATURE],
        },
    }


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Each test starts with empty rate limit counters."""
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def client():
    """Create a test client."""
    return TestClient(app)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def override():
    """Apply FastAPI dependency overrides for one test."""
    def _apply(dependency, provider):
        app.dependency_overrides[dependency] = provider

    yield _apply
    app.dependency_overrides.clear()


@pytest.fixture
def sender_wallet():
    return SENDER_WALLET


@pytest.fixture
def recipient_wallet():
    return RECIPIENT_WALLET


@pytest.fixture
def signature():
    return VALID_SIGNATURE


@pytest.fixture
def make_transaction():
    """Factory for getTransaction results; see ``_make_transaction``."""
    return _make_transaction
