import os
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from invite_gateway.core.config import load_config, require_provider_credentials
from invite_gateway.core.errors import ConfigurationError

router = APIRouter()

# Snapshot of the most recent provider call
_last_relay: Optional[Dict[str, Any]] = None


def _now_iso() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"


def update_last_relay(
    action: str,
    mode: str,
    status_code: int,
    success: bool = True,
    error: Optional[str] = None
) -> None:
    """
    Update the last relay information.

    Args:
        action: The action performed ('relaying', 'linked', 'failed')
        mode: The provider response mode ('file' or 'url')
        status_code: Status code returned to the caller
        success: Whether the provider call succeeded
        error: Optional error message
    """
    global _last_relay

    _last_relay = {
        "time": _now_iso(),
        "action": action,
        "mode": mode,
        "status_code": status_code,
        "success": success,
    }

    if error is not None:
        _last_relay["error"] = error


def get_last_relay() -> Optional[Dict[str, Any]]:
    """Get the last relay information."""
    return _last_relay


@router.get("/")
def root():
    return {"status": "ok"}


@router.get("/healthz")
async def health_check() -> JSONResponse:
    """
    Health check endpoint with last relay information.

    Returns:
        JSON response with status and last relay metadata
    """
    response = {
        "status": "ok",
        "timestamp": _now_iso(),
    }

    last_relay = get_last_relay()
    if last_relay:
        response["last_relay"] = last_relay

    obs_enabled = os.getenv("OBS_ENABLED", "false").lower() == "true"
    response["observability"] = {
        "enabled": obs_enabled,
        "sentry_configured": bool(os.getenv("SENTRY_DSN")),
    }

    return JSONResponse(status_code=200, content=response)


@router.get("/healthz/ready")
async def readiness_check() -> JSONResponse:
    """
    Readiness check: the service can only relay when provider credentials are set.
    """
    checks = {"provider_credentials": "ok"}
    try:
        require_provider_credentials(load_config())
    except ConfigurationError as e:
        checks["provider_credentials"] = str(e)

    all_healthy = all(status == "ok" for status in checks.values())

    response = {
        "status": "ready" if all_healthy else "not_ready",
        "timestamp": _now_iso(),
        "checks": checks,
    }

    status_code = 200 if all_healthy else 503
    return JSONResponse(status_code=status_code, content=response)


@router.get("/healthz/live")
async def liveness_check() -> JSONResponse:
    response = {
        "status": "alive",
        "timestamp": _now_iso(),
    }

    return JSONResponse(status_code=200, content=response)
