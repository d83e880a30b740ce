"""
Structured logging for provider relays.

Each provider call ends in one JSON log line on the ``invite_gateway.relay``
logger carrying the response mode, the provider status and, for file relays,
how many bytes reached the caller. Attendee and organizer addresses are
masked before anything is written, in log lines and in Sentry events alike.
"""

import os
import re
import json
import time
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger("invite_gateway.relay")

EMAIL_PATTERN = re.compile(r"([A-Za-z0-9._%+-])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+)")
MAX_FIELD_CHARS = 120


def mask_emails(text: str) -> str:
    """Keep the first character of the local part and the domain: j***@apyhub.com."""
    return EMAIL_PATTERN.sub(r"\1***@\2", text)


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        masked = mask_emails(value)
        if len(masked) > MAX_FIELD_CHARS:
            return masked[:MAX_FIELD_CHARS - 3] + "..."
        return masked
    if isinstance(value, (list, tuple)):
        return [_scrub(item) for item in value]
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}
    return value


class RelayTimer:
    """Wall-clock duration of a provider call, in milliseconds."""

    def __init__(self):
        self._started: Optional[float] = None
        self.elapsed_ms: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000


def log_relay(
    action: str,
    mode: str,
    provider_status: Optional[int] = None,
    bytes_relayed: Optional[int] = None,
    duration_ms: Optional[float] = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """
    Write one relay log line.

    Args:
        action: 'relayed', 'linked', 'interrupted' or 'failed'
        mode: provider response mode, 'file' or 'url'
        provider_status: HTTP status the provider answered with, if any
        bytes_relayed: body bytes forwarded to the caller (file mode)
        duration_ms: time spent on the provider call
        level: logging level for the line
        **fields: extra context; string values are email-masked and clipped
    """
    entry: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "action": action,
        "mode": mode,
    }
    if provider_status is not None:
        entry["provider_status"] = provider_status
    if bytes_relayed is not None:
        entry["bytes_relayed"] = bytes_relayed
    if duration_ms is not None:
        entry["duration_ms"] = round(duration_ms, 1)
    entry.update(_scrub(fields))

    logger.log(level, json.dumps(entry, separators=(",", ":")))


def log_relay_failure(error: Exception, action: str, mode: str, **fields: Any) -> None:
    log_relay(
        action=action,
        mode=mode,
        level=logging.ERROR,
        error=str(error),
        error_type=type(error).__name__,
        **fields,
    )


def _scrub_sentry_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    for exc in event.get("exception", {}).get("values", []):
        if isinstance(exc.get("value"), str):
            exc["value"] = mask_emails(exc["value"])
    if "logentry" in event:
        event["logentry"] = _scrub(event["logentry"])
    event.pop("request", None)
    return event


def init_sentry() -> bool:
    """
    Enable Sentry when OBS_ENABLED=true and SENTRY_DSN is set.

    Request bodies are never attached since they carry attendee addresses.
    """
    if os.getenv("OBS_ENABLED", "false").lower() != "true":
        return False

    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info("Sentry DSN not provided, skipping Sentry initialization")
        return False

    try:
        from sentry_sdk.integrations.fastapi import FastApiIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FastApiIntegration()],
            send_default_pii=False,
            before_send=_scrub_sentry_event,
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
            environment=os.getenv("ENVIRONMENT", "development"),
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    logger.info("Sentry initialized")
    return True
