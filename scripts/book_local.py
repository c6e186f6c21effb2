#!/usr/bin/env python3
"""
Interactive local booking harness (no HTTP, no real browser).

Usage:
  python3 scripts/book_local.py

What it does:
- Builds one BookingWizard on the wiring's adapters (set BACKEND_PROVIDER=mock for a fully local run)
- Lets you walk a demo booking through contact, verification and payment
- Prints the wizard snapshot after every command
"""

from __future__ import annotations

import asyncio
import json
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.domain.entities.booking_selection import BookingSelection
from app.domain.entities.contact_draft import ContactDraft, ReferralSource
from app.infrastructure.backend.mock_backend import MockBookingBackend
from app.infrastructure.browser.mock_browser import MockBrowser
from app.wiring.dependencies import build_wizard, get_booking_backend
from app.core.config import settings

HELP = """Commands:
  /contact            -> submit the demo contact form
  /verify <channel>   -> google | telegram | sms | manual
  /google-ok          -> (mock backend) mark the pending Google request verified
  /message <apt_id>   -> post a booking-complete message from the auth popup
  /complete           -> finish a Telegram / SMS handoff
  /cancel             -> cancel verification
  /pay <method>       -> onsite | stripe | paypal
  /onsite             -> confirm payment at the salon
  /stripe-ok          -> report Stripe success
  /paypal             -> create and approve a PayPal order
  /calendar           -> show calendar export links
  /quit"""


def _demo_form() -> tuple[BookingSelection, ContactDraft]:
    start = (datetime.now(timezone.utc) + timedelta(days=2)).replace(hour=9, minute=0, second=0, microsecond=0)
    selection = BookingSelection(
        service_ids=("svc_manicure",),
        master_id="master_elena",
        start_at=start,
        end_at=start + timedelta(minutes=60),
        selected_date=start.date(),
    )
    contact = ContactDraft(
        name="Anna Schmidt",
        phone="+49 176 1234567",
        email="anna@example.com",
        birth_date=date(1990, 3, 2),
        referral=ReferralSource.friends,
    )
    return selection, contact


async def main() -> None:
    browser = MockBrowser()
    wizard = build_wizard(browser=browser)
    backend = get_booking_backend()
    print("\nLocal Booking Harness")
    print("-" * 60)
    print(HELP)
    print("-" * 60)

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "\n> ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                return
            if not line:
                continue

            cmd, _, arg = line.partition(" ")
            arg = arg.strip()
            if cmd in ("/quit", "/exit"):
                print("Bye!")
                return
            if cmd == "/help":
                print(HELP)
                continue

            if cmd == "/contact":
                await wizard.submit_contact(*_demo_form())
            elif cmd == "/verify":
                await wizard.start_verification(arg or "google")
            elif cmd == "/google-ok":
                request = wizard.selector.request if wizard.selector else None
                if not isinstance(backend, MockBookingBackend) or request is None or request.request_id is None:
                    print("(no pending Google request on the mock backend)")
                    continue
                backend.mark_verified(request.request_id)
                await asyncio.sleep(settings.VERIFICATION_POLL_INTERVAL_SECONDS * 1.5)
            elif cmd == "/message":
                browser.post_message(settings.APP_ORIGIN, {"type": "booking-complete", "appointmentId": arg})
                await asyncio.sleep(0.1)
            elif cmd == "/complete":
                await wizard.complete_out_of_band()
            elif cmd == "/cancel":
                await wizard.cancel_verification()
            elif cmd == "/pay":
                await wizard.select_method(arg or "onsite")
            elif cmd == "/onsite":
                await wizard.confirm_onsite()
            elif cmd == "/stripe-ok":
                wizard.stripe_succeeded()
            elif cmd == "/paypal":
                order_id = await wizard.paypal_create_order()
                if order_id:
                    await wizard.paypal_approve(order_id)
            elif cmd == "/calendar":
                links = await wizard.calendar_links()
                print(links or "(calendar export is offered after payment)")
                continue
            else:
                print("Unknown command, try /help")
                continue

            print(json.dumps(wizard.snapshot(), indent=2))
            if browser.redirects:
                print(f"(browser redirected to {browser.redirects[-1]})")
    finally:
        await wizard.close()


if __name__ == "__main__":
    asyncio.run(main())
