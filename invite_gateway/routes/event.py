"""
Event endpoints: normalize the submitted event and relay it to the provider.
"""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from invite_gateway.core.config import load_config
from invite_gateway.core.errors import ProviderError
from invite_gateway.routes.health import update_last_relay
from invite_gateway.schemas.event import CalendarLinkResponse, ErrorResponse, EventRequest
from invite_gateway.services.normalizer import normalize_event
from invite_gateway.services.provider_gateway import ResponseFormat, create_provider_gateway

router = APIRouter()

_ERROR_RESPONSES = {
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
    504: {"model": ErrorResponse},
}


@router.post(
    "/event",
    response_class=StreamingResponse,
    responses={200: {"content": {"text/calendar": {}}}, **_ERROR_RESPONSES},
)
async def create_event_file(body: EventRequest):
    """Generate an .ics file for the event and stream it back as a download."""
    cfg = load_config()
    payload = normalize_event(body, default_timezone=cfg.timezone)
    gateway = create_provider_gateway(cfg)

    try:
        stream = await gateway.generate(payload, ResponseFormat.FILE)
    except ProviderError as e:
        update_last_relay("failed", ResponseFormat.FILE.value, e.status_code, success=False, error=e.message)
        raise

    provider_status = stream.response.status_code

    def _record_outcome(completed: bool, error: Optional[str]) -> None:
        update_last_relay(
            "relayed" if completed else "interrupted",
            ResponseFormat.FILE.value,
            provider_status,
            success=completed,
            error=error,
        )

    stream.on_finish = _record_outcome
    update_last_relay("relaying", ResponseFormat.FILE.value, provider_status)
    return StreamingResponse(stream.relay(), media_type=stream.media_type, headers=stream.headers)


@router.post("/ical", response_model=CalendarLinkResponse, responses=_ERROR_RESPONSES)
async def create_event_link(body: EventRequest):
    """Generate a hosted .ics file for the event and return its URL."""
    cfg = load_config()
    payload = normalize_event(body, default_timezone=cfg.timezone)
    gateway = create_provider_gateway(cfg)

    try:
        url = await gateway.generate(payload, ResponseFormat.URL)
    except ProviderError as e:
        update_last_relay("failed", ResponseFormat.URL.value, e.status_code, success=False, error=e.message)
        raise

    update_last_relay("linked", ResponseFormat.URL.value, 200)
    return CalendarLinkResponse(data=url)


@router.post("/event/preview")
async def preview_event_payload(body: EventRequest):
    """Return the payload that would be sent to the provider, without calling it."""
    cfg = load_config()
    return normalize_event(body, default_timezone=cfg.timezone)
