from __future__ import annotations

from dataclasses import dataclass

from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft


@dataclass(frozen=True)
class Draft:
    draft_id: str
    selection: BookingSelection
    contact: ContactDraft
