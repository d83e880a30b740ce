import os
from typing import Optional

from pydantic import BaseModel

from invite_gateway.core.errors import ConfigurationError


DEFAULT_PROVIDER_BASE_URL = "https://api.apyhub.com"
DEFAULT_TIMEOUT_MS = 15000


class AppConfig(BaseModel):
    apy_cred: Optional[str] = None
    apy_token: Optional[str] = None
    provider_base_url: str = DEFAULT_PROVIDER_BASE_URL
    provider_timeout_seconds: float = DEFAULT_TIMEOUT_MS / 1000.0
    ics_filename: str = "invite.ics"
    timezone: str = "UTC"


def load_config() -> AppConfig:
    timeout_ms_str = os.getenv("PROVIDER_TIMEOUT_MS", "")
    timeout_ms = int(timeout_ms_str) if timeout_ms_str.isdigit() and int(timeout_ms_str) > 0 else DEFAULT_TIMEOUT_MS
    return AppConfig(
        apy_cred=(os.getenv("APY_CRED") or "").strip() or None,
        apy_token=(os.getenv("APY_TOKEN") or "").strip() or None,
        provider_base_url=os.getenv("PROVIDER_BASE_URL", DEFAULT_PROVIDER_BASE_URL).rstrip("/"),
        provider_timeout_seconds=timeout_ms / 1000.0,
        ics_filename=os.getenv("ICS_FILENAME", "invite.ics"),
        timezone=os.getenv("TIMEZONE", "UTC"),
    )


def require_provider_credentials(cfg: AppConfig) -> None:
    """Raise ConfigurationError unless both provider secrets are set."""
    missing = []
    if not cfg.apy_cred:
        missing.append("APY_CRED")
    if not cfg.apy_token:
        missing.append("APY_TOKEN")
    if missing:
        raise ConfigurationError(f"Provider credentials not configured ({', '.join(missing)})")
