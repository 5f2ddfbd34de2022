"""Settings loaded from the environment (and .env, if present)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

VERIFY_URL = "https://api-waterfall.bounceban.com/v1/verify/single"
ACCOUNT_URL = "https://api.bounceban.com/v1/account"
CLIENT_SOURCE = "n8n_node"

DEFAULT_MAX_RETRIES = 15
DEFAULT_TIMEOUT = 90.0
DEFAULT_RETRY_DELAY = 0.0
DEFAULT_MAX_WORKERS = 50


@dataclass
class Settings:
    api_key: Optional[str] = None
    verify_url: str = VERIFY_URL
    account_url: str = ACCOUNT_URL
    client_source: str = CLIENT_SOURCE
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float = DEFAULT_TIMEOUT
    retry_delay: float = DEFAULT_RETRY_DELAY  # seconds between 408 retries
    max_workers: int = DEFAULT_MAX_WORKERS  # batch mode thread cap


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from BOUNCEBAN_* environment variables."""
    if dotenv:
        load_dotenv()
    return Settings(
        api_key=os.getenv("BOUNCEBAN_API_KEY") or None,
        verify_url=os.getenv("BOUNCEBAN_VERIFY_URL") or VERIFY_URL,
        account_url=os.getenv("BOUNCEBAN_ACCOUNT_URL") or ACCOUNT_URL,
        max_retries=_int_env("BOUNCEBAN_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        timeout=_float_env("BOUNCEBAN_TIMEOUT", DEFAULT_TIMEOUT),
        retry_delay=_float_env("BOUNCEBAN_RETRY_DELAY", DEFAULT_RETRY_DELAY),
        max_workers=_int_env("BOUNCEBAN_MAX_WORKERS", DEFAULT_MAX_WORKERS),
    )
