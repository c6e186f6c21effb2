from __future__ import annotations

import asyncio
import logging

from app.application.exceptions import BookingError
from app.application.ports.payment_gateway import PaymentGatewayPort, StripeIntent


class MockPaymentGateway(PaymentGatewayPort):
    def __init__(self) -> None:
        self.stripe_error: BookingError | None = None
        self.onsite_error: BookingError | None = None
        self.paypal_error: BookingError | None = None
        self.capture_error: BookingError | None = None
        self.stripe_delay = 0.0
        self.onsite_delay = 0.0

        self.stripe_calls: list[tuple[str, int, str]] = []
        self.onsite_calls: list[str] = []
        self.paypal_calls: list[tuple[str, int]] = []
        self.capture_calls: list[tuple[str, str]] = []
        self._logger = logging.getLogger(__name__)

    async def create_stripe_intent(self, appointment_id: str, amount_cents: int, locale: str) -> StripeIntent:
        self.stripe_calls.append((appointment_id, amount_cents, locale))
        if self.stripe_delay:
            await asyncio.sleep(self.stripe_delay)
        if self.stripe_error is not None:
            raise self.stripe_error
        n = len(self.stripe_calls)
        return StripeIntent(client_secret=f"pi_mock_{n}_secret_{n}", payment_intent_id=f"pi_mock_{n}")

    async def confirm_onsite_payment(self, appointment_id: str) -> None:
        self.onsite_calls.append(appointment_id)
        if self.onsite_delay:
            await asyncio.sleep(self.onsite_delay)
        if self.onsite_error is not None:
            raise self.onsite_error
        self._logger.info("Mock onsite payment confirmed", extra={"appointment_id": appointment_id})

    async def create_paypal_order(self, appointment_id: str, amount_cents: int) -> str:
        self.paypal_calls.append((appointment_id, amount_cents))
        if self.paypal_error is not None:
            raise self.paypal_error
        return f"order_mock_{len(self.paypal_calls)}"

    async def capture_paypal_order(self, order_id: str, appointment_id: str) -> None:
        self.capture_calls.append((order_id, appointment_id))
        if self.capture_error is not None:
            raise self.capture_error
