"""
Translate a validated EventRequest into the provider's payload shape.

The provider expects day-first dates, 24-hour clock strings and an explicit
recurrence object. "No recurrence" is always sent as ``recurring: false`` with
``recurrence: null``; the empty-object form is never emitted.
"""

from datetime import date, time
from typing import Any, Dict, Optional

from invite_gateway.schemas.event import EventRequest


MIDNIGHT = "00:00"


def format_meeting_date(value: date) -> str:
    """Format a calendar date as DD-MM-YYYY."""
    return value.strftime("%d-%m-%Y")


def format_clock(value: Optional[time]) -> str:
    """Format a time of day as HH:mm (24-hour); missing times read as midnight."""
    if value is None:
        return MIDNIGHT
    return value.strftime("%H:%M")


def normalize_recurrence(event: EventRequest) -> Dict[str, Any]:
    if event.recurring and event.recurrence is not None:
        return {
            "recurring": True,
            "recurrence": {
                "frequency": event.recurrence.frequency.upper(),
                "count": int(event.recurrence.count),
            },
        }
    return {"recurring": False, "recurrence": None}


def normalize_event(event: EventRequest, default_timezone: str = "UTC") -> Dict[str, Any]:
    """
    Build the provider payload for an event.

    Args:
        event: Validated event request
        default_timezone: IANA zone used when the request carries none

    Returns:
        JSON-serializable dict in the provider's field naming
    """
    if event.all_day:
        start_time = end_time = MIDNIGHT
    else:
        start_time = format_clock(event.start_time)
        end_time = format_clock(event.end_time)

    payload: Dict[str, Any] = {
        "summary": event.summary,
        "description": event.description,
        "organizer_email": event.organizer_email,
        "attendees_emails": list(event.attendees_emails),
        "location": event.location,
        "time_zone": event.timezone or default_timezone,
        "meeting_date": format_meeting_date(event.meeting_date),
        "start_time": start_time,
        "end_time": end_time,
    }
    payload.update(normalize_recurrence(event))
    return payload
