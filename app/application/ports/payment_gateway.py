from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class StripeIntent:
    client_secret: str
    payment_intent_id: str | None = None


class PaymentGatewayPort(ABC):
    @abstractmethod
    async def create_stripe_intent(self, appointment_id: str, amount_cents: int, locale: str) -> StripeIntent:
        raise NotImplementedError

    @abstractmethod
    async def confirm_onsite_payment(self, appointment_id: str) -> None:
        """Mark the appointment as paid in the salon. Raises on refusal."""
        raise NotImplementedError

    @abstractmethod
    async def create_paypal_order(self, appointment_id: str, amount_cents: int) -> str:
        """Create a PayPal order. Returns order_id."""
        raise NotImplementedError

    @abstractmethod
    async def capture_paypal_order(self, order_id: str, appointment_id: str) -> None:
        raise NotImplementedError
