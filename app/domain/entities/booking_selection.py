from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class BookingSelection:
    service_ids: tuple[str, ...]
    master_id: str
    start_at: datetime  # timezone-aware
    end_at: datetime  # timezone-aware
    selected_date: date | None = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)

    @property
    def primary_service_id(self) -> str:
        return self.service_ids[0]
