from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from app.application.exceptions import BookingError
from app.application.ports.booking_backend import BookingBackendPort, GoogleAuthInit, GoogleAuthStatus
from app.domain.entities.appointment import Appointment
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft


class MockBookingBackend(BookingBackendPort):
    """
    In-memory booking site used in dev and tests.

    Google requests stay pending until mark_verified() or mark_failed() is called.
    Errors and delays can be injected per operation.
    """

    def __init__(self, auth_base_url: str = "https://accounts.example.test", default_price: float = 45.0) -> None:
        self._auth_base_url = auth_base_url
        self._default_price = default_price
        self.drafts: dict[str, tuple[BookingSelection, ContactDraft]] = {}
        self.auth_requests: dict[str, GoogleAuthStatus] = {}
        self.appointments: dict[str, Appointment] = {}

        self.draft_error: BookingError | None = None
        self.auth_error: BookingError | None = None
        self.status_error: BookingError | None = None
        self.promote_error: BookingError | None = None
        self.appointment_error: BookingError | None = None
        self.draft_delay = 0.0
        self.promote_delay = 0.0

        self.create_draft_calls = 0
        self.init_auth_calls = 0
        self.status_calls = 0
        self.promote_calls: list[str] = []
        self._logger = logging.getLogger(__name__)

    async def create_draft(self, selection: BookingSelection, contact: ContactDraft) -> str:
        self.create_draft_calls += 1
        if self.draft_delay:
            await asyncio.sleep(self.draft_delay)
        if self.draft_error is not None:
            raise self.draft_error
        draft_id = f"draft_{len(self.drafts) + 1}"
        self.drafts[draft_id] = (selection, contact)
        self._logger.info("Mock draft created", extra={"draft_id": draft_id})
        return draft_id

    async def init_google_auth(self, draft_id: str, selection: BookingSelection, locale: str) -> GoogleAuthInit:
        self.init_auth_calls += 1
        if self.auth_error is not None:
            raise self.auth_error
        request_id = f"req_{len(self.auth_requests) + 1}"
        self.auth_requests[request_id] = GoogleAuthStatus(verified=False)
        return GoogleAuthInit(
            auth_url=f"{self._auth_base_url}/o/oauth2/auth?state={request_id}&hl={locale}",
            request_id=request_id,
        )

    async def get_google_auth_status(self, request_id: str) -> GoogleAuthStatus:
        self.status_calls += 1
        if self.status_error is not None:
            raise self.status_error
        status = self.auth_requests.get(request_id)
        if status is None:
            return GoogleAuthStatus(verified=False, error="Request not found")
        return status

    async def promote(self, reference: str) -> str:
        self.promote_calls.append(reference)
        if self.promote_delay:
            await asyncio.sleep(self.promote_delay)
        if self.promote_error is not None:
            raise self.promote_error
        appointment_id = self._store_appointment()
        self._logger.info("Mock draft promoted", extra={"request_id": reference, "appointment_id": appointment_id})
        return appointment_id

    async def get_appointment(self, appointment_id: str) -> Appointment:
        if self.appointment_error is not None:
            raise self.appointment_error
        if appointment_id not in self.appointments:
            self._store_appointment(appointment_id)
        return self.appointments[appointment_id]

    def mark_verified(self, request_id: str, appointment_id: str | None = None) -> None:
        """Simulate the OAuth callback. With an appointment id the backend created it itself."""
        if appointment_id is not None:
            self._store_appointment(appointment_id)
        self.auth_requests[request_id] = GoogleAuthStatus(verified=True, appointment_id=appointment_id)

    def mark_failed(self, request_id: str, error: str) -> None:
        self.auth_requests[request_id] = GoogleAuthStatus(verified=False, error=error)

    def _store_appointment(self, appointment_id: str | None = None) -> str:
        appointment_id = appointment_id or f"apt_{len(self.appointments) + 1}"
        start = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0) + timedelta(days=1)
        self.appointments.setdefault(
            appointment_id,
            Appointment(
                appointment_id=appointment_id,
                service_title="Manicure",
                master_name="Elena",
                start_at=start,
                duration_minutes=60,
                total_price=self._default_price,
                payment_status="PENDING",
            ),
        )
        return appointment_id
