from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class ReferralSource(str, Enum):
    google = "google"
    facebook = "facebook"
    instagram = "instagram"
    friends = "friends"
    other = "other"


@dataclass(frozen=True)
class ContactDraft:
    name: str
    phone: str
    email: str
    birth_date: date | None
    referral: ReferralSource | None
    referral_other: str | None = None  # required when referral is "other"
    notes: str | None = None
