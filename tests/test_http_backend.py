"""
Tests for the HTTP adapters against a mocked booking site.
"""

from __future__ import annotations

import json

import httpx
import pytest

from app.application.exceptions import BackendRejectedError, NetworkUnavailableError, PaymentFailedError
from app.infrastructure.backend.api_client import BookingApiClient
from app.infrastructure.backend.http_backend import HttpBookingBackend
from app.infrastructure.backend.http_payment import HttpPaymentGateway

BASE_URL = "https://salon.example.test"


def make_client(handler) -> BookingApiClient:
    transport = httpx.MockTransport(handler)
    return BookingApiClient(BASE_URL, client=httpx.AsyncClient(transport=transport, base_url=BASE_URL))


@pytest.mark.asyncio
async def test_create_draft_sends_form_and_slot(selection, contact):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"draftId": "draft_77"})

    backend = HttpBookingBackend(make_client(handler))

    draft_id = await backend.create_draft(selection, contact)

    assert draft_id == "draft_77"
    assert seen["path"] == "/api/booking/client"
    assert seen["params"]["s"] == "svc_manicure"
    assert seen["params"]["m"] == "master_elena"
    assert seen["params"]["start"] == selection.start_at.isoformat()
    assert seen["body"]["customerName"] == "Anna Schmidt"
    assert seen["body"]["birthDateISO"] == "1990-03-02"
    assert seen["body"]["referral"] == "instagram"
    assert "notes" not in seen["body"]


@pytest.mark.asyncio
async def test_create_draft_refusal_carries_backend_reason(selection, contact):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "Slot already taken"})

    backend = HttpBookingBackend(make_client(handler))

    with pytest.raises(BackendRejectedError) as exc:
        await backend.create_draft(selection, contact)
    assert exc.value.message == "Slot already taken"
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_create_draft_without_id_uses_generic_reason(selection, contact):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    backend = HttpBookingBackend(make_client(handler))

    with pytest.raises(BackendRejectedError, match="could not create draft"):
        await backend.create_draft(selection, contact)


@pytest.mark.asyncio
async def test_transport_error_maps_to_network_unavailable(selection, contact):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = HttpBookingBackend(make_client(handler))

    with pytest.raises(NetworkUnavailableError) as exc:
        await backend.create_draft(selection, contact)
    assert exc.value.code == "network_unavailable"


@pytest.mark.asyncio
async def test_google_auth_init_and_status(selection):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/booking/client/google-quick":
            body = json.loads(request.content)
            assert body["serviceId"] == "svc_manicure"
            assert body["locale"] == "de"
            return httpx.Response(
                200, json={"ok": True, "authUrl": "https://accounts.google.test/auth", "requestId": "req_9"}
            )
        assert request.url.params["requestId"] == "req_9"
        return httpx.Response(200, json={"verified": True, "appointmentId": "apt_9"})

    backend = HttpBookingBackend(make_client(handler))

    init = await backend.init_google_auth("draft_1", selection, "de")
    status = await backend.get_google_auth_status(init.request_id)

    assert init.auth_url == "https://accounts.google.test/auth"
    assert status.verified
    assert status.appointment_id == "apt_9"


@pytest.mark.asyncio
async def test_expired_status_request_reports_error_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(410, json={"error": "Request expired"})

    backend = HttpBookingBackend(make_client(handler))

    status = await backend.get_google_auth_status("req_old")

    assert not status.verified
    assert status.error == "Request expired"


@pytest.mark.asyncio
async def test_promote_and_appointment_lookup():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/booking/client/complete":
            assert json.loads(request.content) == {"registrationId": "req_1"}
            return httpx.Response(200, json={"ok": True, "appointmentId": "apt_1"})
        return httpx.Response(
            200,
            json={
                "id": "apt_1",
                "serviceTitle": "Manicure",
                "masterName": "Elena",
                "startAt": "2030-05-14T10:00:00.000Z",
                "duration": 60,
                "totalPrice": 45.5,
                "paymentStatus": "PENDING",
            },
        )

    backend = HttpBookingBackend(make_client(handler))

    appointment_id = await backend.promote("req_1")
    appointment = await backend.get_appointment(appointment_id)

    assert appointment_id == "apt_1"
    assert appointment.total_price == 45.5
    assert appointment.duration_minutes == 60
    assert appointment.start_at.tzinfo is not None


@pytest.mark.asyncio
async def test_promote_slot_gone_keeps_status_code():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(410, json={"error": "Draft expired"})

    backend = HttpBookingBackend(make_client(handler))

    with pytest.raises(BackendRejectedError) as exc:
        await backend.promote("draft_1")
    assert exc.value.status_code == 410


@pytest.mark.asyncio
async def test_payment_endpoints():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append((request.url.path, body))
        if request.url.path.endswith("create-stripe-intent"):
            return httpx.Response(200, json={"clientSecret": "cs_1", "paymentIntentId": "pi_1"})
        if request.url.path.endswith("confirm-onsite-payment"):
            return httpx.Response(200, json={"success": True})
        if request.url.path.endswith("create-paypal-order"):
            return httpx.Response(200, json={"orderId": "order_1"})
        return httpx.Response(200, json={"status": "COMPLETED"})

    gateway = HttpPaymentGateway(make_client(handler))

    intent = await gateway.create_stripe_intent("apt_1", 4550, "de")
    await gateway.confirm_onsite_payment("apt_1")
    order_id = await gateway.create_paypal_order("apt_1", 4550)
    await gateway.capture_paypal_order(order_id, "apt_1")

    assert intent.client_secret == "cs_1"
    assert order_id == "order_1"
    assert calls[0] == ("/api/payment/create-stripe-intent", {"appointmentId": "apt_1", "amount": 4550, "locale": "de"})
    assert calls[3] == ("/api/payment/capture-paypal-order", {"orderId": "order_1", "appointmentId": "apt_1"})


@pytest.mark.asyncio
async def test_payment_refusal_maps_to_payment_failed():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("confirm-onsite-payment"):
            return httpx.Response(200, json={"success": False, "error": "Already paid"})
        return httpx.Response(500, json={"error": "Stripe not configured"})

    gateway = HttpPaymentGateway(make_client(handler))

    with pytest.raises(PaymentFailedError, match="Stripe not configured"):
        await gateway.create_stripe_intent("apt_1", 5000, "de")
    with pytest.raises(PaymentFailedError, match="Already paid"):
        await gateway.confirm_onsite_payment("apt_1")
