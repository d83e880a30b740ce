from datetime import date, time

import pytest
from pydantic import ValidationError

from invite_gateway.schemas.event import EventRequest


BASE = {
    "summary": "Final Call",
    "organizer_email": "johndoe@apyhub.com",
    "attendees_emails": ["mark@apyhub.com"],
    "meeting_date": "2022-11-30",
    "start_time": "08:00",
    "end_time": "09:00",
}


def _build(**overrides) -> EventRequest:
    return EventRequest(**{**BASE, **overrides})


def test_minimal_event_defaults():
    event = _build()

    assert event.description == ""
    assert event.location == ""
    assert event.timezone is None
    assert event.all_day is False
    assert event.recurring is False
    assert event.recurrence is None
    assert event.meeting_date == date(2022, 11, 30)
    assert event.start_time == time(8, 0)


def test_day_first_meeting_date_is_accepted():
    assert _build(meeting_date="30-11-2022").meeting_date == date(2022, 11, 30)


def test_invalid_day_first_meeting_date_is_rejected():
    with pytest.raises(ValidationError):
        _build(meeting_date="31-02-2022")


@pytest.mark.parametrize("summary", ["", "   "])
def test_blank_summary_is_rejected(summary):
    with pytest.raises(ValidationError) as exc_info:
        _build(summary=summary)
    assert "summary must not be empty" in str(exc_info.value)


def test_summary_is_stripped():
    assert _build(summary="  Standup  ").summary == "Standup"


def test_organizer_email_needs_at_sign():
    with pytest.raises(ValidationError) as exc_info:
        _build(organizer_email="johndoe.apyhub.com")
    assert "invalid email address" in str(exc_info.value)


def test_attendee_email_needs_at_sign():
    with pytest.raises(ValidationError):
        _build(attendees_emails=["mark@apyhub.com", "not-an-email"])


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        _build(timezone="Mars/Olympus_Mons")
    assert "unknown timezone" in str(exc_info.value)


def test_blank_timezone_reads_as_unset():
    assert _build(timezone="").timezone is None


def test_times_are_optional():
    event = _build(start_time=None, end_time=None)

    assert event.start_time is None
    assert event.end_time is None
    assert event.all_day is False


def test_overnight_event_is_accepted():
    event = _build(start_time="22:00", end_time="01:00")

    assert event.start_time == time(22, 0)
    assert event.end_time == time(1, 0)


@pytest.mark.parametrize("zone", ["America", "a" * 300, "../etc/passwd"])
def test_non_zone_timezone_keys_are_rejected(zone):
    with pytest.raises(ValidationError) as exc_info:
        _build(timezone=zone)
    assert "unknown timezone" in str(exc_info.value)


def test_known_timezone_is_kept():
    assert _build(timezone="America/New_York").timezone == "America/New_York"


def test_recurring_without_rule_is_rejected():
    with pytest.raises(ValidationError):
        _build(recurring=True)


def test_rule_without_recurring_flag_implies_recurring():
    event = _build(recurrence={"frequency": "monthly", "count": 6})

    assert event.recurring is True
    assert event.recurrence.frequency == "MONTHLY"
    assert event.recurrence.count == 6


def test_recurring_false_drops_rule():
    event = _build(recurring=False, recurrence={"frequency": "DAILY", "count": 2})
    assert event.recurrence is None


@pytest.mark.parametrize("rule", [{"frequency": "None", "count": 2}, {"frequency": "none"}, {}])
def test_none_frequency_means_no_recurrence(rule):
    event = _build(recurring=True, recurrence=rule)

    assert event.recurring is False
    assert event.recurrence is None


@pytest.mark.parametrize("count", [0, -1])
def test_recurrence_count_must_be_positive(count):
    with pytest.raises(ValidationError):
        _build(recurring=True, recurrence={"frequency": "WEEKLY", "count": count})


def test_unknown_frequency_is_rejected():
    with pytest.raises(ValidationError):
        _build(recurring=True, recurrence={"frequency": "HOURLY", "count": 2})
