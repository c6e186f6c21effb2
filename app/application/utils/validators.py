from __future__ import annotations

import re
from datetime import date

from app.application.exceptions import BookingValidationError
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft, ReferralSource

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
_PHONE_CHARS_RE = re.compile(r"^\+?[\d\s\-()]+$")
_MIN_PHONE_DIGITS = 6
_MIN_NAME_LENGTH = 2


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email.strip()))


def is_valid_phone(phone: str) -> bool:
    stripped = phone.strip()
    if not _PHONE_CHARS_RE.match(stripped):
        return False
    return sum(ch.isdigit() for ch in stripped) >= _MIN_PHONE_DIGITS


def years_between(born: date, today: date) -> int:
    years = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        years -= 1
    return years


def validate_selection(selection: BookingSelection) -> None:
    errors: dict[str, str] = {}

    if not selection.service_ids or any(not sid or not sid.strip() for sid in selection.service_ids):
        errors["service_ids"] = "At least one service must be selected"
    if not selection.master_id or not selection.master_id.strip():
        errors["master_id"] = "A master must be selected"

    start, end = selection.start_at, selection.end_at
    if start.tzinfo is None or end.tzinfo is None:
        errors["time_range"] = "Start and end must carry a timezone"
    elif start >= end:
        errors["time_range"] = "Start must be before end"

    if errors:
        raise BookingValidationError("Invalid booking selection", errors)


def validate_contact(contact: ContactDraft, min_age: int = 16, today: date | None = None) -> None:
    today = today or date.today()
    errors: dict[str, str] = {}

    if len(contact.name.strip()) < _MIN_NAME_LENGTH:
        errors["name"] = "Name is too short"

    if not contact.phone.strip():
        errors["phone"] = "Phone is required"
    elif not is_valid_phone(contact.phone):
        errors["phone"] = "Phone number is invalid"

    if not contact.email.strip():
        errors["email"] = "Email is required"
    elif not is_valid_email(contact.email):
        errors["email"] = "Email is invalid"

    if contact.birth_date is None:
        errors["birth_date"] = "Birth date is required"
    elif contact.birth_date > today:
        errors["birth_date"] = "Birth date is in the future"
    elif years_between(contact.birth_date, today) < min_age:
        errors["birth_date"] = f"Clients must be at least {min_age} years old"

    if contact.referral is None:
        errors["referral"] = "Referral source is required"
    elif contact.referral == ReferralSource.other and not (contact.referral_other or "").strip():
        errors["referral_other"] = "Please describe how you found us"

    if errors:
        raise BookingValidationError("Invalid contact details", errors)
