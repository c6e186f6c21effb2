from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from app.domain.entities.appointment import Appointment
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft


@dataclass(frozen=True)
class GoogleAuthInit:
    auth_url: str
    request_id: str


@dataclass(frozen=True)
class GoogleAuthStatus:
    verified: bool
    appointment_id: str | None = None
    error: str | None = None


class BookingBackendPort(ABC):
    @abstractmethod
    async def create_draft(self, selection: BookingSelection, contact: ContactDraft) -> str:
        """Create a booking draft. Returns draft_id."""
        raise NotImplementedError

    @abstractmethod
    async def init_google_auth(self, draft_id: str, selection: BookingSelection, locale: str) -> GoogleAuthInit:
        """Request an OAuth URL and a verification request id."""
        raise NotImplementedError

    @abstractmethod
    async def get_google_auth_status(self, request_id: str) -> GoogleAuthStatus:
        """Poll the verification request. Backend-reported errors come back in `error`."""
        raise NotImplementedError

    @abstractmethod
    async def promote(self, reference: str) -> str:
        """Turn a verified draft (or request) into an appointment. Returns appointment_id."""
        raise NotImplementedError

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Appointment:
        raise NotImplementedError
