from __future__ import annotations

from app.application.dto.backend import OnsiteConfirmDTO, PaypalCaptureDTO, PaypalOrderDTO, StripeIntentDTO
from app.application.exceptions import BackendRejectedError, PaymentFailedError
from app.application.ports.payment_gateway import PaymentGatewayPort, StripeIntent
from app.infrastructure.backend.api_client import BookingApiClient


class HttpPaymentGateway(PaymentGatewayPort):
    def __init__(self, client: BookingApiClient) -> None:
        self._client = client

    async def create_stripe_intent(self, appointment_id: str, amount_cents: int, locale: str) -> StripeIntent:
        data = await self._call(
            "/api/payment/create-stripe-intent",
            StripeIntentDTO,
            {"appointmentId": appointment_id, "amount": amount_cents, "locale": locale},
            "Card payment could not be prepared",
        )
        if data.error or not data.client_secret:
            raise PaymentFailedError(data.error or "Card payment could not be prepared")
        return StripeIntent(client_secret=data.client_secret, payment_intent_id=data.payment_intent_id)

    async def confirm_onsite_payment(self, appointment_id: str) -> None:
        data = await self._call(
            "/api/booking/confirm-onsite-payment",
            OnsiteConfirmDTO,
            {"appointmentId": appointment_id},
            "Payment at the salon could not be confirmed",
        )
        if not data.success:
            raise PaymentFailedError(data.error or "Payment at the salon could not be confirmed")

    async def create_paypal_order(self, appointment_id: str, amount_cents: int) -> str:
        data = await self._call(
            "/api/payment/create-paypal-order",
            PaypalOrderDTO,
            {"appointmentId": appointment_id, "amount": amount_cents},
            "PayPal order could not be created",
        )
        if data.error or not data.order_id:
            raise PaymentFailedError(data.error or "PayPal order could not be created")
        return data.order_id

    async def capture_paypal_order(self, order_id: str, appointment_id: str) -> None:
        data = await self._call(
            "/api/payment/capture-paypal-order",
            PaypalCaptureDTO,
            {"orderId": order_id, "appointmentId": appointment_id},
            "PayPal payment could not be captured",
        )
        if data.error or not data.completed:
            raise PaymentFailedError(data.error or "PayPal payment could not be captured")

    async def _call(self, path, dto, payload, fallback):
        try:
            return await self._client.request("POST", path, dto, json=payload, fallback_error=fallback)
        except BackendRejectedError as e:
            raise PaymentFailedError(e.message) from e
