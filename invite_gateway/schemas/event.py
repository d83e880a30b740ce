from datetime import date, datetime, time
from typing import List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, PositiveInt, field_validator, model_validator


Frequency = Literal["DAILY", "WEEKLY", "MONTHLY", "YEARLY"]


def _require_at_sign(value: str) -> str:
    if "@" not in value:
        raise ValueError(f"invalid email address: {value!r}")
    return value


class RecurrenceRule(BaseModel):
    frequency: Frequency
    count: PositiveInt

    @field_validator("frequency", mode="before")
    @classmethod
    def _upper_frequency(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


class EventRequest(BaseModel):
    summary: str
    description: str = ""
    organizer_email: str
    attendees_emails: List[str] = []
    location: str = ""
    timezone: Optional[str] = None
    meeting_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    all_day: bool = False
    recurring: Optional[bool] = None
    recurrence: Optional[RecurrenceRule] = None

    @field_validator("summary")
    @classmethod
    def _summary_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("summary must not be empty")
        return v

    @field_validator("organizer_email")
    @classmethod
    def _organizer_has_at(cls, v: str) -> str:
        return _require_at_sign(v)

    @field_validator("attendees_emails")
    @classmethod
    def _attendees_have_at(cls, v: List[str]) -> List[str]:
        return [_require_at_sign(email) for email in v]

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            # Directory names like "America" and overlong keys surface as OSError.
            raise ValueError(f"unknown timezone: {v!r}")
        return v

    @field_validator("meeting_date", mode="before")
    @classmethod
    def _accept_day_first(cls, v):
        # The form posts DD-MM-YYYY; ISO dates are accepted as well.
        if isinstance(v, str) and len(v) == 10 and v[2] == "-" and v[5] == "-":
            return datetime.strptime(v, "%d-%m-%Y").date()
        return v

    @model_validator(mode="before")
    @classmethod
    def _none_frequency_means_no_rule(cls, data):
        if isinstance(data, dict):
            rule = data.get("recurrence")
            if isinstance(rule, dict) and str(rule.get("frequency") or "").strip().lower() in ("", "none"):
                data = {**data, "recurrence": None, "recurring": False}
        return data

    @model_validator(mode="after")
    def _check_consistency(self) -> "EventRequest":
        if self.recurring is None:
            self.recurring = self.recurrence is not None
        if self.recurring and self.recurrence is None:
            raise ValueError("recurring events need a recurrence frequency and count")
        if not self.recurring:
            self.recurrence = None
        return self


class CalendarLinkResponse(BaseModel):
    data: str


class ErrorResponse(BaseModel):
    error: str
