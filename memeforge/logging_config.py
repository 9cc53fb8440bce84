"""Logging helpers for the Meme Forge backend.

All service loggers live under the ``memeforge`` namespace so a single
``configure_logging`` call controls them.
"""

import logging

_ROOT_LOGGER = "memeforge"
_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Attach a stream handler to the service root logger (idempotent)."""
    root = logging.getLogger(_ROOT_LOGGER)
    root.setLevel(level.upper())
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(_ROOT_LOGGER):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def shorten(value: str | None, keep: int = 10) -> str:
    """Truncate wallets and signatures for log lines."""
    if not value:
        return "-"
    if len(value) <= keep:
        return value
    return value[:keep] + "..."


_payment_logger = get_logger("payments")


def log_payment_event(
    signature: str | None,
    wallet: str | None,
    verified: bool,
    code: str | None = None,
    detail: str | None = None,
) -> None:
    """Emit one line per verification outcome."""
    status = "VERIFIED" if verified else f"REJECTED {code}"
    message = f"X402 | sig={shorten(signature)} wallet={shorten(wallet)} | {status}"
    if detail:
        message += f" | {detail}"
    if verified:
        _payment_logger.info(message)
    else:
        _payment_logger.warning(message)
