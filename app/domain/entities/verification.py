from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VerificationChannel(str, Enum):
    google = "google"
    telegram = "telegram"
    sms = "sms"
    manual = "manual"


class VerificationStatus(str, Enum):
    pending = "pending"
    verified = "verified"
    failed = "failed"


class SelectorState(str, Enum):
    idle = "idle"
    channel_selected = "channel_selected"
    in_progress = "in_progress"
    verified = "verified"
    failed = "failed"
    aborted = "aborted"


@dataclass(frozen=True)
class VerificationRequest:
    channel: VerificationChannel
    draft_id: str
    request_id: str | None = None  # google only
    deep_link: str | None = None  # telegram / sms only
    status: VerificationStatus = VerificationStatus.pending
    appointment_id: str | None = None
