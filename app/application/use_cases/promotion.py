from __future__ import annotations

import asyncio
import logging

from app.application.exceptions import BackendRejectedError, SlotUnavailableError
from app.application.ports.booking_backend import BookingBackendPort

# Statuses the backend uses when the held slot or the draft is gone.
_SLOT_GONE_STATUSES = {404, 409, 410}


class AppointmentPromoter:
    """
    Converts one verified draft into a confirmed appointment.

    Bound to a single draft: concurrent promote() calls share the in-flight request,
    and once an appointment id is known every later call returns it without a network call.
    """

    def __init__(self, backend: BookingBackendPort, draft_id: str) -> None:
        self._backend = backend
        self._draft_id = draft_id
        self._appointment_id: str | None = None
        self._in_flight: asyncio.Task | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def appointment_id(self) -> str | None:
        return self._appointment_id

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def adopt(self, appointment_id: str) -> None:
        """Record an appointment the backend created on its own (e.g. during the OAuth callback)."""
        if self._appointment_id is None:
            self._appointment_id = appointment_id

    async def promote(self, reference: str | None = None) -> str:
        reference = reference or self._draft_id

        if self._appointment_id is not None:
            self._logger.info(
                "Draft already promoted, ignoring signal",
                extra={"draft_id": self._draft_id, "appointment_id": self._appointment_id},
            )
            return self._appointment_id

        task = self._in_flight
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._promote(reference))
            task.add_done_callback(self._on_done)
            self._in_flight = task
        else:
            self._logger.info("Promotion already in flight, joining", extra={"draft_id": self._draft_id})

        # Shielded so a cancelled caller does not abort a promotion the backend may complete.
        return await asyncio.shield(task)

    async def _promote(self, reference: str) -> str:
        self._logger.info("Promoting draft", extra={"draft_id": self._draft_id, "request_id": reference})
        try:
            appointment_id = await self._backend.promote(reference)
        except SlotUnavailableError:
            raise
        except BackendRejectedError as e:
            if e.status_code in _SLOT_GONE_STATUSES:
                raise SlotUnavailableError(e.message, status_code=e.status_code) from e
            raise
        self._logger.info(
            "Draft promoted", extra={"draft_id": self._draft_id, "appointment_id": appointment_id}
        )
        return appointment_id

    def _on_done(self, task: asyncio.Task) -> None:
        if self._in_flight is task:
            self._in_flight = None
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._logger.warning(
                "Promotion failed", extra={"draft_id": self._draft_id, "error": str(error)}
            )
            return
        if self._appointment_id is None:
            self._appointment_id = task.result()
