from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Appointment:
    appointment_id: str
    service_title: str | None = None
    master_name: str | None = None
    start_at: datetime | None = None
    duration_minutes: int | None = None
    total_price: float | None = None  # euros, as stored by the salon
    payment_status: str | None = None
