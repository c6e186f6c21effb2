"""
End-to-end tests for the booking wizard on in-memory adapters.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from app.application.exceptions import BackendRejectedError
from app.application.use_cases.booking_wizard import BookingWizard, WizardStep
from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.payment import PaymentState
from app.domain.entities.verification import SelectorState

APP_ORIGIN = "https://salon.example.test"


@pytest.fixture
def wizard(backend, gateway, browser):
    return BookingWizard(
        backend,
        gateway,
        browser,
        app_origin=APP_ORIGIN,
        app_base_url=APP_ORIGIN,
        calendar_base_url=APP_ORIGIN,
        poll_interval=0.01,
        salon_name="Salon Elen",
    )


@pytest.mark.asyncio
async def test_google_booking_paid_onsite(wizard, backend, browser, selection, contact, eventually):
    """Contact form, Google popup completion message, onsite payment, calendar export."""
    draft = await wizard.submit_contact(selection, contact)
    assert draft is not None
    assert wizard.step == WizardStep.verification

    await wizard.start_verification("google")
    browser.post_message(APP_ORIGIN, {"type": "booking-complete", "appointmentId": "apt_55"})
    await eventually(lambda: wizard.step == WizardStep.payment)

    assert wizard.appointment_id == "apt_55"
    assert backend.promote_calls == []

    assert await wizard.select_method("onsite") == PaymentState.onsite_confirming
    assert await wizard.confirm_onsite() == PaymentState.succeeded
    assert wizard.step == WizardStep.done

    links = await wizard.calendar_links()
    assert links.ics_url.endswith("/api/appointments/apt_55/calendar?locale=de")

    snapshot = wizard.snapshot()
    assert snapshot["step"] == "done"
    assert snapshot["verification"]["state"] == "verified"
    assert snapshot["payment"]["state"] == "succeeded"
    assert snapshot["error"] is None

    await wizard.close()
    assert browser.listener_count == 0


@pytest.mark.asyncio
async def test_validation_error_is_recorded_not_raised(wizard, backend, selection, contact):
    draft = await wizard.submit_contact(selection, replace(contact, email=""))

    assert draft is None
    assert wizard.step == WizardStep.contact
    assert wizard.error.code == "validation_error"
    assert wizard.snapshot()["error"]["code"] == "validation_error"
    assert backend.create_draft_calls == 0


@pytest.mark.asyncio
async def test_slot_gone_requires_restart(wizard, backend, selection, contact):
    backend.promote_error = BackendRejectedError("Slot no longer available", status_code=409)
    await wizard.submit_contact(selection, contact)

    state = await wizard.start_verification("manual")

    assert state == SelectorState.failed
    assert wizard.restart_required
    assert wizard.step == WizardStep.contact
    assert wizard.error.code == "slot_unavailable"

    backend.promote_error = None
    await wizard.submit_contact(selection, contact)
    assert not wizard.restart_required
    assert wizard.draft.draft_id == "draft_2"


@pytest.mark.asyncio
async def test_payment_actions_before_verification_are_ignored(wizard):
    assert await wizard.select_method("stripe") is None
    assert await wizard.calendar_links() is None
    assert wizard.stripe_succeeded("pi_1") is None


@pytest.mark.asyncio
async def test_stripe_error_shows_in_snapshot(wizard, gateway, selection, contact):
    gateway.stripe_error = BackendRejectedError("Stripe is down")
    await wizard.submit_contact(selection, contact)
    await wizard.start_verification("manual")

    await wizard.select_method("stripe")

    snapshot = wizard.snapshot()
    assert snapshot["payment"]["state"] == "stripe_preparing"
    assert snapshot["payment"]["retry_eligible"]
    assert snapshot["error"]["code"] == "payment_failed"

    gateway.stripe_error = None
    assert await wizard.retry_payment() == PaymentState.stripe_paying
    assert wizard.snapshot()["payment"]["client_secret"]


@pytest.mark.asyncio
async def test_poll_with_appointment_skips_promotion_then_onsite(wizard, backend, browser, contact, eventually):
    """Poll reports verified with an appointment id; promotion is skipped and onsite payment completes."""
    start = datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
    selection = BookingSelection(
        service_ids=("svc1",), master_id="m1", start_at=start, end_at=start + timedelta(minutes=30)
    )
    draft = await wizard.submit_contact(selection, contact)
    await wizard.start_verification("google")
    backend.mark_verified(wizard.selector.request.request_id, appointment_id="a1")
    await eventually(lambda: wizard.step == WizardStep.payment)

    await wizard.select_method("onsite")
    await wizard.confirm_onsite()

    assert draft.draft_id == "draft_1"
    assert backend.promote_calls == []
    assert wizard.appointment_id == "a1"
    assert wizard.step == WizardStep.done
    assert wizard.payment.payment_id == "a1"
    assert browser.open_popups == []


@pytest.mark.asyncio
async def test_failed_poll_allows_reselecting_channel(wizard, backend, browser, selection, contact, eventually):
    """Poll reports an error; verification fails, the timer stops and another channel can be picked."""
    await wizard.submit_contact(selection, contact)
    await wizard.start_verification("google")
    polling = wizard.selector.resources.polling

    backend.mark_failed(wizard.selector.request.request_id, "expired")
    await eventually(lambda: wizard.selector.state == SelectorState.failed)

    assert wizard.error.message == "expired"
    assert not polling.active
    assert browser.listener_count == 0

    assert await wizard.start_verification("manual") == SelectorState.verified
    assert wizard.step == WizardStep.payment
