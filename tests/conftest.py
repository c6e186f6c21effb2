"""
Shared fixtures for the booking orchestrator tests.
"""

from __future__ import annotations

import asyncio
import os
from datetime import date, datetime, timedelta, timezone

# Settings are read at import time; keep every test on the in-memory adapters.
os.environ.setdefault("ENV", "test")
os.environ.setdefault("BACKEND_PROVIDER", "mock")
os.environ.setdefault("BROWSER_PROVIDER", "mock")

import pytest

from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft, ReferralSource
from app.domain.entities.draft import Draft
from app.infrastructure.backend.mock_backend import MockBookingBackend
from app.infrastructure.backend.mock_payment import MockPaymentGateway
from app.infrastructure.browser.mock_browser import MockBrowser


@pytest.fixture
def selection() -> BookingSelection:
    start = datetime(2030, 5, 14, 10, 0, tzinfo=timezone.utc)
    return BookingSelection(
        service_ids=("svc_manicure",),
        master_id="master_elena",
        start_at=start,
        end_at=start + timedelta(minutes=60),
        selected_date=start.date(),
    )


@pytest.fixture
def contact() -> ContactDraft:
    return ContactDraft(
        name="Anna Schmidt",
        phone="+49 176 1234567",
        email="anna@example.com",
        birth_date=date(1990, 3, 2),
        referral=ReferralSource.instagram,
    )


@pytest.fixture
def draft(selection, contact) -> Draft:
    return Draft(draft_id="draft_1", selection=selection, contact=contact)


@pytest.fixture
def backend() -> MockBookingBackend:
    return MockBookingBackend()


@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()


@pytest.fixture
def browser() -> MockBrowser:
    return MockBrowser()


@pytest.fixture
def eventually():
    """Wait until a condition holds, polling the event loop."""

    async def wait(predicate, timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() >= deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.005)

    return wait
