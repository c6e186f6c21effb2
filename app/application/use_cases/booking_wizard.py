from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from app.application.exceptions import BookingError
from app.application.ports.booking_backend import BookingBackendPort
from app.application.ports.browser import BrowserPort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.use_cases.draft_reservation import DraftReservationManager
from app.application.use_cases.payment import PaymentConfirmationFlow
from app.application.use_cases.popup_auth import PopupAuthBridge
from app.application.use_cases.promotion import AppointmentPromoter
from app.application.use_cases.verification import VerificationChannelSelector
from app.application.utils.calendar_links import CalendarLinks
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft
from app.domain.entities.draft import Draft
from app.domain.entities.payment import PaymentMethod, PaymentState
from app.domain.entities.verification import SelectorState, VerificationChannel


class WizardStep(str, Enum):
    contact = "contact"
    verification = "verification"
    payment = "payment"
    done = "done"


class BookingWizard:
    """
    One client's way through the booking flow: contact form, identity
    verification, payment, calendar export.

    Every BookingError raised below is recorded as the user-visible error;
    nothing escapes to the caller.
    """

    def __init__(
        self,
        backend: BookingBackendPort,
        gateway: PaymentGatewayPort,
        browser: BrowserPort,
        *,
        app_origin: str,
        app_base_url: str,
        calendar_base_url: str,
        locale: str = "de",
        poll_interval: float = 2.0,
        poll_timeout: float | None = None,
        popup_width: int = 500,
        popup_height: int = 600,
        min_age: int = 16,
        default_amount_cents: int = 5000,
        salon_name: str = "",
        salon_location: str = "",
    ) -> None:
        self._backend = backend
        self._gateway = gateway
        self._browser = browser
        self._app_origin = app_origin
        self._app_base_url = app_base_url
        self._calendar_base_url = calendar_base_url
        self._locale = locale
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._popup_width = popup_width
        self._popup_height = popup_height
        self._default_amount_cents = default_amount_cents
        self._salon_name = salon_name
        self._salon_location = salon_location

        self._drafts = DraftReservationManager(backend, min_age=min_age)
        self._step = WizardStep.contact
        self._draft: Draft | None = None
        self._promoter: AppointmentPromoter | None = None
        self._selector: VerificationChannelSelector | None = None
        self._payment: PaymentConfirmationFlow | None = None
        self._appointment_id: str | None = None
        self._error: BookingError | None = None
        self._restart_required = False
        self._logger = logging.getLogger(__name__)

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def browser(self) -> BrowserPort:
        return self._browser

    @property
    def draft(self) -> Draft | None:
        return self._draft

    @property
    def selector(self) -> VerificationChannelSelector | None:
        return self._selector

    @property
    def payment(self) -> PaymentConfirmationFlow | None:
        return self._payment

    @property
    def appointment_id(self) -> str | None:
        return self._appointment_id

    @property
    def error(self) -> BookingError | None:
        return self._error

    @property
    def restart_required(self) -> bool:
        return self._restart_required

    async def submit_contact(self, selection: BookingSelection, contact: ContactDraft) -> Draft | None:
        if self._step not in (WizardStep.contact, WizardStep.verification):
            self._logger.warning("Contact submitted after verification", extra={"state": self._step.value})
            return None

        self._error = None
        try:
            draft = await self._drafts.create_draft(selection, contact)
        except BookingError as e:
            self._record(e)
            return None

        if self._selector is not None:
            await self._selector.teardown()

        self._draft = draft
        self._restart_required = False
        self._promoter = AppointmentPromoter(self._backend, draft.draft_id)
        bridge = PopupAuthBridge(self._browser, self._app_origin, self._popup_width, self._popup_height)
        self._selector = VerificationChannelSelector(
            draft,
            self._backend,
            self._browser,
            bridge,
            self._promoter,
            app_base_url=self._app_base_url,
            locale=self._locale,
            poll_interval=self._poll_interval,
            poll_timeout=self._poll_timeout,
            on_verified=self._on_verified,
            on_failed=self._record,
        )
        self._step = WizardStep.verification
        return draft

    async def start_verification(self, channel: VerificationChannel | str) -> SelectorState | None:
        if self._selector is None:
            self._logger.warning("Verification requested without a draft")
            return None
        self._error = None
        return await self._selector.start_verification(channel)

    async def cancel_verification(self) -> SelectorState | None:
        if self._selector is None:
            return None
        return await self._selector.cancel_verification()

    async def complete_out_of_band(
        self, reference: str | None = None, appointment_id: str | None = None
    ) -> SelectorState | None:
        if self._selector is None:
            return None
        return await self._selector.complete_out_of_band(reference, appointment_id)

    async def select_method(self, method: PaymentMethod | str) -> PaymentState | None:
        if self._payment is None:
            self._logger.warning("Payment method selected before verification")
            return None
        return await self._guard(self._payment.select_method(method))

    async def retry_payment(self) -> PaymentState | None:
        if self._payment is None:
            return None
        return await self._guard(self._payment.retry())

    async def confirm_onsite(self) -> PaymentState | None:
        if self._payment is None:
            return None
        return await self._guard(self._payment.confirm_onsite())

    def stripe_succeeded(self, payment_intent_id: str | None = None) -> PaymentState | None:
        if self._payment is None:
            return None
        return self._payment.stripe_succeeded(payment_intent_id)

    def stripe_failed(self, message: str | None = None) -> PaymentState | None:
        if self._payment is None:
            return None
        return self._payment.stripe_failed(message)

    async def paypal_create_order(self) -> str | None:
        if self._payment is None:
            return None
        return await self._guard(self._payment.paypal_create_order())

    async def paypal_approve(self, order_id: str) -> PaymentState | None:
        if self._payment is None:
            return None
        return await self._guard(self._payment.paypal_approve(order_id))

    async def calendar_links(self) -> CalendarLinks | None:
        if self._payment is None:
            return None
        return await self._guard(self._payment.calendar_links())

    async def close(self) -> None:
        """Release every timer, popup and listener the wizard still owns."""
        if self._selector is not None:
            await self._selector.teardown()
        await self._browser.close()
        self._logger.info(
            "Wizard closed",
            extra={"draft_id": self._draft.draft_id if self._draft else None, "state": self._step.value},
        )

    def snapshot(self) -> dict[str, Any]:
        selector = self._selector
        payment = self._payment
        error = self.current_error()
        request = selector.request if selector is not None else None
        intent = payment.intent if payment is not None else None
        return {
            "step": self._step.value,
            "draft_id": self._draft.draft_id if self._draft else None,
            "appointment_id": self._appointment_id,
            "restart_required": self._restart_required,
            "verification": None
            if selector is None
            else {
                "state": selector.state.value,
                "loading": selector.loading,
                "channel": request.channel.value if request else None,
                "request_id": request.request_id if request else None,
                "deep_link": request.deep_link if request else None,
            },
            "payment": None
            if payment is None
            else {
                "state": payment.state.value,
                "loading": payment.loading,
                "method": intent.method.value if intent else None,
                "amount_cents": intent.amount_cents if intent else None,
                "client_secret": intent.client_secret if intent else None,
                "order_id": intent.order_id if intent else None,
                "retry_eligible": payment.retry_eligible,
            },
            "error": None if error is None else {"code": error.code, "message": error.message},
        }

    def current_error(self) -> BookingError | None:
        if self._payment is not None and self._payment.error is not None:
            return self._payment.error
        return self._error

    async def _guard(self, awaitable):
        try:
            return await awaitable
        except BookingError as e:
            self._record(e)
            return None

    def _on_verified(self, appointment_id: str) -> None:
        self._appointment_id = appointment_id
        self._error = None
        self._payment = PaymentConfirmationFlow(
            appointment_id,
            self._backend,
            self._gateway,
            locale=self._locale,
            default_amount_cents=self._default_amount_cents,
            calendar_base_url=self._calendar_base_url,
            salon_name=self._salon_name,
            salon_location=self._salon_location,
            on_payment_succeeded=self._on_payment_succeeded,
        )
        self._step = WizardStep.payment
        self._logger.info("Moving to payment", extra={"appointment_id": appointment_id})

    def _on_payment_succeeded(self, payment_id: str) -> None:
        self._step = WizardStep.done
        self._logger.info("Booking complete", extra={"appointment_id": self._appointment_id})

    def _record(self, error: BookingError) -> None:
        self._error = error
        if error.fatal:
            # The held slot is gone; the client has to pick a new time.
            self._restart_required = True
            self._step = WizardStep.contact
        self._logger.warning(
            "Booking error", extra={"error": error.message, "reason": error.code, "state": self._step.value}
        )
