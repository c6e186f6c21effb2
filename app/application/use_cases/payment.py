from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable

from app.application.exceptions import BookingError, PaymentFailedError
from app.application.ports.booking_backend import BookingBackendPort
from app.application.ports.payment_gateway import PaymentGatewayPort
from app.application.utils.calendar_links import CalendarLinks, build_google_calendar_url, build_ics_url
from app.domain.entities.appointment import Appointment
from app.domain.entities.payment import PaymentIntent, PaymentMethod, PaymentState


class PaymentConfirmationFlow:
    """
    Drives one appointment from method selection to a single terminal success.

    Selecting a method always replaces the current PaymentIntent; results that
    arrive for a replaced intent (a slow Stripe intent creation, say) are dropped.
    """

    def __init__(
        self,
        appointment_id: str,
        backend: BookingBackendPort,
        gateway: PaymentGatewayPort,
        *,
        locale: str,
        default_amount_cents: int = 5000,
        calendar_base_url: str = "",
        salon_name: str = "",
        salon_location: str = "",
        on_payment_succeeded: Callable[[str], None] | None = None,
    ) -> None:
        self._appointment_id = appointment_id
        self._backend = backend
        self._gateway = gateway
        self._locale = locale
        self._default_amount_cents = default_amount_cents
        self._calendar_base_url = calendar_base_url
        self._salon_name = salon_name
        self._salon_location = salon_location
        self.on_payment_succeeded = on_payment_succeeded

        self._state = PaymentState.method_selecting
        self._intent: PaymentIntent | None = None
        self._error: BookingError | None = None
        self._loading = False
        self._confirming = False
        self._generation = 0
        self._payment_id: str | None = None
        self._appointment: Appointment | None = None
        self._logger = logging.getLogger(__name__)

    @property
    def appointment_id(self) -> str:
        return self._appointment_id

    @property
    def state(self) -> PaymentState:
        return self._state

    @property
    def intent(self) -> PaymentIntent | None:
        return self._intent

    @property
    def error(self) -> BookingError | None:
        return self._error

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def payment_id(self) -> str | None:
        return self._payment_id

    @property
    def retry_eligible(self) -> bool:
        return (
            self._state == PaymentState.stripe_preparing
            and self._error is not None
            and not self._loading
        )

    async def select_method(self, method: PaymentMethod | str) -> PaymentState:
        method = PaymentMethod(method)
        if self._state == PaymentState.succeeded:
            self._logger.warning(
                "Payment already succeeded, ignoring method change",
                extra={"appointment_id": self._appointment_id, "method": method.value},
            )
            return self._state

        self._generation += 1
        generation = self._generation
        self._discard_intent()
        self._error = None
        self._loading = False
        self._intent = PaymentIntent(method=method, appointment_id=self._appointment_id)
        self._logger.info("Payment method selected", extra={"appointment_id": self._appointment_id, "method": method.value})

        if method == PaymentMethod.onsite:
            self._state = PaymentState.onsite_confirming
        elif method == PaymentMethod.stripe:
            await self._prepare_stripe(generation)
        else:
            self._state = PaymentState.paypal_paying
            amount = await self._resolve_amount()
            if generation == self._generation:
                self._intent = replace(self._intent, amount_cents=amount)

        return self._state

    async def retry(self) -> PaymentState:
        """Re-run Stripe preparation after a failed intent creation."""
        if not self.retry_eligible:
            return self._state
        self._generation += 1
        await self._prepare_stripe(self._generation)
        return self._state

    async def confirm_onsite(self) -> PaymentState:
        if self._state != PaymentState.onsite_confirming:
            self._logger.warning(
                "Onsite confirmation outside the onsite method",
                extra={"appointment_id": self._appointment_id, "state": self._state.value},
            )
            return self._state
        if self._confirming:
            return self._state

        generation = self._generation
        self._confirming = True
        self._loading = True
        self._error = None
        try:
            await self._gateway.confirm_onsite_payment(self._appointment_id)
        except BookingError as e:
            if generation == self._generation:
                self._set_payment_error(e)
            return self._state
        finally:
            self._confirming = False
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            self._logger.warning(
                "Onsite confirmation finished after a method switch", extra={"appointment_id": self._appointment_id}
            )
            return self._state

        self._intent = replace(self._intent, status="confirmed")
        self._succeed(self._appointment_id)
        return self._state

    def stripe_succeeded(self, payment_intent_id: str | None = None) -> PaymentState:
        if self._state != PaymentState.stripe_paying:
            return self._state
        payment_id = payment_intent_id or self._intent.payment_intent_id or self._appointment_id
        self._succeed(payment_id)
        return self._state

    def stripe_failed(self, message: str | None = None) -> PaymentState:
        if self._state != PaymentState.stripe_paying:
            return self._state
        self._set_payment_error(PaymentFailedError(message or "Payment failed"))
        return self._state

    async def paypal_create_order(self) -> str | None:
        if self._state != PaymentState.paypal_paying:
            return None
        generation = self._generation
        amount = self._intent.amount_cents or await self._resolve_amount()
        try:
            order_id = await self._gateway.create_paypal_order(self._appointment_id, amount)
        except BookingError as e:
            if generation == self._generation:
                self._set_payment_error(e)
            return None
        if generation != self._generation:
            return None
        self._error = None
        self._intent = replace(self._intent, amount_cents=amount, order_id=order_id)
        self._logger.info("PayPal order created", extra={"appointment_id": self._appointment_id})
        return order_id

    async def paypal_approve(self, order_id: str) -> PaymentState:
        if self._state != PaymentState.paypal_paying:
            return self._state
        generation = self._generation
        self._loading = True
        try:
            await self._gateway.capture_paypal_order(order_id, self._appointment_id)
        except BookingError as e:
            if generation == self._generation:
                self._set_payment_error(e)
            return self._state
        finally:
            if generation == self._generation:
                self._loading = False
        if generation != self._generation:
            return self._state
        self._intent = replace(self._intent, order_id=order_id)
        self._succeed(order_id)
        return self._state

    async def calendar_links(self) -> CalendarLinks | None:
        """Export links for the booked visit. Offered only after payment succeeded; safe to repeat."""
        if self._state != PaymentState.succeeded:
            return None
        appointment = await self._load_appointment()
        google_url = None
        if appointment is not None:
            google_url = build_google_calendar_url(appointment, self._salon_name, self._salon_location)
        return CalendarLinks(
            ics_url=build_ics_url(self._calendar_base_url, self._appointment_id, self._locale),
            google_url=google_url,
        )

    async def _prepare_stripe(self, generation: int) -> None:
        self._state = PaymentState.stripe_preparing
        self._loading = True
        self._error = None
        try:
            amount = await self._resolve_amount()
            if generation != self._generation:
                return
            stripe_intent = await self._gateway.create_stripe_intent(self._appointment_id, amount, self._locale)
        except BookingError as e:
            if generation == self._generation:
                self._set_payment_error(e)
            return
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            self._logger.info("Discarding Stripe intent for a replaced method", extra={"appointment_id": self._appointment_id})
            return

        self._intent = replace(
            self._intent,
            amount_cents=amount,
            client_secret=stripe_intent.client_secret,
            payment_intent_id=stripe_intent.payment_intent_id,
        )
        self._state = PaymentState.stripe_paying
        self._logger.info("Stripe intent ready", extra={"appointment_id": self._appointment_id})

    async def _resolve_amount(self) -> int:
        appointment = await self._load_appointment()
        if appointment is None or not appointment.total_price or appointment.total_price <= 0:
            return self._default_amount_cents
        return int(round(appointment.total_price * 100))

    async def _load_appointment(self) -> Appointment | None:
        if self._appointment is not None:
            return self._appointment
        try:
            self._appointment = await self._backend.get_appointment(self._appointment_id)
        except BookingError as e:
            self._logger.warning(
                "Appointment lookup failed", extra={"appointment_id": self._appointment_id, "error": e.message}
            )
            return None
        return self._appointment

    def _discard_intent(self) -> None:
        if self._intent is not None and (self._intent.client_secret or self._intent.order_id):
            self._logger.info(
                "Discarding payment intent",
                extra={"appointment_id": self._appointment_id, "method": self._intent.method.value},
            )
        self._intent = None

    def _set_payment_error(self, error: BookingError) -> None:
        if not isinstance(error, PaymentFailedError):
            error = PaymentFailedError(error.message)
        self._error = error
        self._logger.warning(
            "Payment error", extra={"appointment_id": self._appointment_id, "error": error.message}
        )

    def _succeed(self, payment_id: str) -> None:
        if self._state == PaymentState.succeeded:
            return
        self._state = PaymentState.succeeded
        self._payment_id = payment_id
        self._error = None
        if self._intent is not None:
            self._intent = replace(self._intent, status="succeeded")
        self._logger.info("Payment succeeded", extra={"appointment_id": self._appointment_id})
        if self.on_payment_succeeded is not None:
            self.on_payment_succeeded(payment_id)
