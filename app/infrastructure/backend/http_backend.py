from __future__ import annotations

import logging

from app.application.dto.backend import (
    AppointmentDTO,
    DraftResponseDTO,
    GoogleAuthInitDTO,
    GoogleAuthStatusDTO,
    PromotionResponseDTO,
)
from app.application.exceptions import BackendRejectedError
from app.application.ports.booking_backend import BookingBackendPort, GoogleAuthInit, GoogleAuthStatus
from app.domain.entities.appointment import Appointment
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft
from app.infrastructure.backend.api_client import BookingApiClient


class HttpBookingBackend(BookingBackendPort):
    def __init__(self, client: BookingApiClient) -> None:
        self._client = client
        self._logger = logging.getLogger(__name__)

    async def create_draft(self, selection: BookingSelection, contact: ContactDraft) -> str:
        params = {
            "s": ",".join(selection.service_ids),
            "m": selection.master_id,
            "start": selection.start_at.isoformat(),
            "end": selection.end_at.isoformat(),
        }
        payload = {
            "customerName": contact.name.strip(),
            "phone": contact.phone.strip(),
            "email": contact.email.strip(),
            "birthDateISO": contact.birth_date.isoformat() if contact.birth_date else None,
            "referral": contact.referral.value if contact.referral else None,
            "notes": (contact.notes or "").strip() or None,
        }
        payload = {key: value for key, value in payload.items() if value is not None}
        data = await self._client.request(
            "POST",
            "/api/booking/client",
            DraftResponseDTO,
            json=payload,
            params=params,
            fallback_error="could not create draft",
        )
        if data.error or not data.draft_id:
            raise BackendRejectedError(data.error or "could not create draft")
        return data.draft_id

    async def init_google_auth(self, draft_id: str, selection: BookingSelection, locale: str) -> GoogleAuthInit:
        payload = {
            "draftId": draft_id,
            "serviceId": selection.primary_service_id,
            "masterId": selection.master_id,
            "startAt": selection.start_at.isoformat(),
            "endAt": selection.end_at.isoformat(),
            "locale": locale,
        }
        data = await self._client.request(
            "POST",
            "/api/booking/client/google-quick",
            GoogleAuthInitDTO,
            json=payload,
            fallback_error="Google sign-in could not be started",
        )
        if data.error or data.ok is False or not data.auth_url or not data.request_id:
            raise BackendRejectedError(data.error or "Google sign-in could not be started")
        return GoogleAuthInit(auth_url=data.auth_url, request_id=data.request_id)

    async def get_google_auth_status(self, request_id: str) -> GoogleAuthStatus:
        try:
            data = await self._client.request(
                "GET",
                "/api/booking/client/google-quick/status",
                GoogleAuthStatusDTO,
                params={"requestId": request_id},
            )
        except BackendRejectedError as e:
            # Expired or unknown requests come back as 4xx with an error body.
            return GoogleAuthStatus(verified=False, error=e.message)
        return GoogleAuthStatus(verified=data.verified, appointment_id=data.appointment_id, error=data.error)

    async def promote(self, reference: str) -> str:
        data = await self._client.request(
            "POST",
            "/api/booking/client/complete",
            PromotionResponseDTO,
            json={"registrationId": reference},
            fallback_error="could not confirm the appointment",
        )
        if data.error or not data.appointment_id:
            raise BackendRejectedError(data.error or "could not confirm the appointment")
        return data.appointment_id

    async def get_appointment(self, appointment_id: str) -> Appointment:
        data = await self._client.request(
            "GET",
            f"/api/appointments/{appointment_id}",
            AppointmentDTO,
            fallback_error="appointment not found",
        )
        if data.error:
            raise BackendRejectedError(data.error)
        return Appointment(
            appointment_id=data.id or appointment_id,
            service_title=data.service_title,
            master_name=data.master_name,
            start_at=data.start_at,
            duration_minutes=data.duration,
            total_price=data.total_price,
            payment_status=data.payment_status,
        )
