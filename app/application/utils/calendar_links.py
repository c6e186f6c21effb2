from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta, timezone
from urllib.parse import urlencode

from app.domain.entities.appointment import Appointment

_GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"
_DEFAULT_DURATION_MINUTES = 60


@dataclass(frozen=True)
class CalendarLinks:
    ics_url: str
    google_url: str | None


def build_ics_url(base_url: str, appointment_id: str, locale: str) -> str:
    return f"{base_url.rstrip('/')}/api/appointments/{appointment_id}/calendar?{urlencode({'locale': locale})}"


def build_google_calendar_url(appointment: Appointment, salon_name: str, location: str) -> str | None:
    if appointment.start_at is None:
        return None

    start = appointment.start_at.astimezone(timezone.utc)
    end = start + timedelta(minutes=appointment.duration_minutes or _DEFAULT_DURATION_MINUTES)
    title = f"{appointment.service_title or 'Appointment'} at {salon_name}"
    details = [f"Appointment: {appointment.appointment_id}"]
    if appointment.master_name:
        details.append(f"Master: {appointment.master_name}")

    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{start:%Y%m%dT%H%M%SZ}/{end:%Y%m%dT%H%M%SZ}",
        "details": "\n".join(details),
        "location": location,
    }
    return f"{_GOOGLE_CALENDAR_URL}?{urlencode(params)}"
