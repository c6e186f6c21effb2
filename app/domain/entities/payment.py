from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PaymentMethod(str, Enum):
    onsite = "onsite"
    stripe = "stripe"
    paypal = "paypal"


class PaymentState(str, Enum):
    method_selecting = "method_selecting"
    onsite_confirming = "onsite_confirming"
    stripe_preparing = "stripe_preparing"
    stripe_paying = "stripe_paying"
    paypal_paying = "paypal_paying"
    succeeded = "succeeded"


@dataclass(frozen=True)
class PaymentIntent:
    method: PaymentMethod
    appointment_id: str
    amount_cents: int | None = None
    client_secret: str | None = None  # stripe only
    payment_intent_id: str | None = None  # stripe only
    order_id: str | None = None  # paypal only
    status: str = "created"  # "created", "confirmed", "succeeded"
