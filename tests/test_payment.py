"""
Tests for the payment confirmation flow: method switching, intent lifecycle and single success.
"""

from __future__ import annotations

import asyncio

import pytest

from app.application.exceptions import BackendRejectedError, PaymentFailedError
from app.application.use_cases.payment import PaymentConfirmationFlow
from app.domain.entities.payment import PaymentMethod, PaymentState


@pytest.fixture
def succeeded():
    return []


@pytest.fixture
def flow(backend, gateway, succeeded):
    return PaymentConfirmationFlow(
        "apt_1",
        backend,
        gateway,
        locale="de",
        default_amount_cents=5000,
        calendar_base_url="https://salon.example.test",
        salon_name="Salon Elen",
        salon_location="Halle (Saale)",
        on_payment_succeeded=succeeded.append,
    )


@pytest.mark.asyncio
async def test_stripe_prepares_intent_from_appointment_price(flow, gateway):
    state = await flow.select_method("stripe")

    assert state == PaymentState.stripe_paying
    assert flow.intent.client_secret == "pi_mock_1_secret_1"
    assert flow.intent.amount_cents == 4500
    assert gateway.stripe_calls == [("apt_1", 4500, "de")]
    assert not flow.loading


@pytest.mark.asyncio
async def test_unknown_appointment_lookup_returns_priced_appointment(backend):
    appointment = await backend.get_appointment("apt_unseen")
    again = await backend.get_appointment("apt_unseen")

    assert appointment.appointment_id == "apt_unseen"
    assert appointment.total_price == 45.0
    assert again is appointment


@pytest.mark.asyncio
async def test_stripe_amount_falls_back_to_default(flow, backend, gateway):
    backend.appointment_error = BackendRejectedError("not found", status_code=404)

    await flow.select_method(PaymentMethod.stripe)

    assert flow.intent.amount_cents == 5000


@pytest.mark.asyncio
async def test_stripe_failure_is_retry_eligible(flow, gateway):
    gateway.stripe_error = BackendRejectedError("Stripe is down")

    state = await flow.select_method("stripe")

    assert state == PaymentState.stripe_preparing
    assert isinstance(flow.error, PaymentFailedError)
    assert flow.error.code == "payment_failed"
    assert flow.retry_eligible
    assert flow.intent.client_secret is None

    gateway.stripe_error = None
    assert await flow.retry() == PaymentState.stripe_paying
    assert flow.error is None
    assert len(gateway.stripe_calls) == 2


@pytest.mark.asyncio
async def test_switching_to_onsite_discards_stripe_secret(flow, gateway):
    """Test that a method switch drops the live intent and reselecting creates a new one."""
    await flow.select_method("stripe")
    first_secret = flow.intent.client_secret

    await flow.select_method("onsite")

    assert flow.state == PaymentState.onsite_confirming
    assert flow.intent.method == PaymentMethod.onsite
    assert flow.intent.client_secret is None

    await flow.select_method("stripe")

    assert flow.intent.client_secret not in (None, first_secret)
    assert len(gateway.stripe_calls) == 2


@pytest.mark.asyncio
async def test_late_stripe_intent_is_dropped_after_switch(flow, gateway):
    gateway.stripe_delay = 0.05

    preparing = asyncio.create_task(flow.select_method("stripe"))
    await asyncio.sleep(0.01)
    await flow.select_method("onsite")
    await preparing

    assert flow.state == PaymentState.onsite_confirming
    assert flow.intent.method == PaymentMethod.onsite
    assert flow.intent.client_secret is None
    assert not flow.loading


@pytest.mark.asyncio
async def test_onsite_confirmation_is_not_duplicated(flow, gateway, succeeded):
    gateway.onsite_delay = 0.03
    await flow.select_method("onsite")

    await asyncio.gather(flow.confirm_onsite(), flow.confirm_onsite())

    assert gateway.onsite_calls == ["apt_1"]
    assert flow.state == PaymentState.succeeded
    assert succeeded == ["apt_1"]


@pytest.mark.asyncio
async def test_onsite_refusal_keeps_method(flow, gateway):
    gateway.onsite_error = PaymentFailedError("Appointment already paid")
    await flow.select_method("onsite")

    state = await flow.confirm_onsite()

    assert state == PaymentState.onsite_confirming
    assert flow.error.message == "Appointment already paid"


@pytest.mark.asyncio
async def test_success_fires_exactly_once(flow, succeeded):
    await flow.select_method("stripe")

    flow.stripe_succeeded("pi_mock_1")
    flow.stripe_succeeded("pi_mock_1")
    state = await flow.select_method("paypal")

    assert state == PaymentState.succeeded
    assert succeeded == ["pi_mock_1"]
    assert flow.payment_id == "pi_mock_1"


@pytest.mark.asyncio
async def test_stripe_sdk_failure_keeps_paying_state(flow):
    await flow.select_method("stripe")

    state = flow.stripe_failed("Your card was declined.")

    assert state == PaymentState.stripe_paying
    assert flow.error.message == "Your card was declined."


@pytest.mark.asyncio
async def test_paypal_order_and_capture(flow, gateway, succeeded):
    assert await flow.select_method("paypal") == PaymentState.paypal_paying
    assert flow.intent.amount_cents == 4500

    order_id = await flow.paypal_create_order()
    state = await flow.paypal_approve(order_id)

    assert order_id == "order_mock_1"
    assert gateway.paypal_calls == [("apt_1", 4500)]
    assert gateway.capture_calls == [("order_mock_1", "apt_1")]
    assert state == PaymentState.succeeded
    assert succeeded == ["order_mock_1"]


@pytest.mark.asyncio
async def test_paypal_capture_failure(flow, gateway, succeeded):
    gateway.capture_error = PaymentFailedError("INSTRUMENT_DECLINED")
    await flow.select_method("paypal")
    order_id = await flow.paypal_create_order()

    state = await flow.paypal_approve(order_id)

    assert state == PaymentState.paypal_paying
    assert flow.error.code == "payment_failed"
    assert succeeded == []


@pytest.mark.asyncio
async def test_calendar_links_only_after_success(flow):
    await flow.select_method("onsite")
    assert await flow.calendar_links() is None

    await flow.confirm_onsite()
    links = await flow.calendar_links()

    assert links.ics_url == "https://salon.example.test/api/appointments/apt_1/calendar?locale=de"
    assert links.google_url.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert "Salon+Elen" in links.google_url
    assert await flow.calendar_links() == links
