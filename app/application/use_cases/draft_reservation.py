from __future__ import annotations

import logging

from app.application.exceptions import BackendRejectedError, DraftInFlightError
from app.application.ports.booking_backend import BookingBackendPort
from app.application.utils.validators import validate_contact, validate_selection
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft
from app.domain.entities.draft import Draft


class DraftReservationManager:
    def __init__(self, backend: BookingBackendPort, min_age: int = 16) -> None:
        self._backend = backend
        self._min_age = min_age
        self._in_flight = False
        self._logger = logging.getLogger(__name__)

    async def create_draft(self, selection: BookingSelection, contact: ContactDraft) -> Draft:
        """
        Validate the form and create a server-side draft with exactly one backend call.
        Never retries; a retry is the user submitting the form again.
        """
        validate_selection(selection)
        validate_contact(contact, min_age=self._min_age)

        if self._in_flight:
            raise DraftInFlightError("A draft is already being created")

        self._in_flight = True
        try:
            draft_id = await self._backend.create_draft(selection, contact)
        except BackendRejectedError as e:
            self._logger.warning("Draft rejected", extra={"error": e.message})
            raise
        finally:
            self._in_flight = False

        if not draft_id:
            raise BackendRejectedError("could not create draft")

        self._logger.info("Draft created", extra={"draft_id": draft_id})
        return Draft(draft_id=draft_id, selection=selection, contact=contact)
